from facetry.engine.response import SearchResponse
from facetry.search.results import shape_results


def grouped_payload() -> dict:
    return {
        "responseHeader": {"params": {}},
        "grouped": {
            "format": {
                "matches": 3,
                "groups": [
                    {"groupValue": "Book", "doclist": {"numFound": 2, "docs": [{"id": "1"}, {"id": "2"}]}},
                    {"groupValue": "Video", "doclist": {"numFound": 1, "docs": [{"id": "3"}]}},
                ],
            }
        },
    }


def test_parses_documents_and_facets_in_flat_and_map_form() -> None:
    response = SearchResponse(
        {
            "responseHeader": {"params": {"facet.limit": "6", "f.format.facet.sort": ["count", "index"]}},
            "response": {"numFound": 42, "start": 10, "docs": [{"id": "1", "title": ["A", "B"]}]},
            "facet_counts": {
                "facet_fields": {
                    "format": ["Book", 10, "Video", 2],
                    "language_facet": {"English": 7},
                },
                "facet_queries": {"pub_date:[NOW-5YEARS TO *]": 4},
            },
        }
    )
    assert response.total == 42
    assert response.start == 10
    assert response.documents[0]["id"] == "1"
    assert response.documents[0].first("title") == "A"
    fmt = response.facet_by_field_name("format")
    assert fmt is not None
    assert [(i.value, i.hits) for i in fmt.items] == [("Book", 10), ("Video", 2)]
    assert fmt.limit == 6
    # repeated params echo as lists, the last one applies
    assert fmt.sort == "index"
    lang = response.facet_by_field_name("language_facet")
    assert lang is not None and lang.items[0].value == "English"
    assert response.facet_queries == {"pub_date:[NOW-5YEARS TO *]": 4}


def test_shape_flat_results() -> None:
    response = SearchResponse({"response": {"numFound": 1, "docs": [{"id": "1"}]}})
    shaped, docs = shape_results(response, "format")
    assert shaped is response
    assert [d["id"] for d in docs] == ["1"]


def test_shape_grouped_by_field() -> None:
    response = SearchResponse(grouped_payload())
    shaped, docs = shape_results(response, "format")
    assert docs == []
    assert shaped.key == "format"
    assert [g.value for g in shaped.groups] == ["Book", "Video"]
    assert shaped.groups[0].documents[1]["id"] == "2"


def test_shape_single_group_is_unwrapped_without_group_field() -> None:
    response = SearchResponse(grouped_payload())
    shaped, docs = shape_results(response)
    assert docs == []
    assert shaped is response.grouped[0]
    assert shaped.matches == 3
