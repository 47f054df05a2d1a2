"""Send a `QueryRelation` to Solr and parse the answer."""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from facetry.engine.connection import SolrConnection
from facetry.engine.response import SearchResponse
from facetry.exceptions import SearchEngineUnavailable
from facetry.query.relation import QueryRelation

logger = logging.getLogger(__name__)

# Always requested so facet limits can be read back from the response
_TRANSPORT_PARAMS = (("wt", "json"), ("echoParams", "explicit"))


class Executor:
    """Runs one request per call; no retries."""

    def __init__(
        self,
        connection: SolrConnection,
        *,
        default_path: str = "select",
        verbose: bool = False,
    ) -> None:
        self._connection = connection
        self.default_path = default_path
        self.verbose = verbose

    def execute(self, relation: QueryRelation, endpoint: Optional[str] = None) -> SearchResponse:
        """Execute `relation` and return the parsed response.

        The path is `endpoint`, else the relation's endpoint, else its request
        handler, else the default path.

        The relation is frozen first; it cannot change after submission.
        Raises `SearchEngineUnavailable` when Solr cannot be reached. HTTP
        errors returned by Solr propagate as `httpx.HTTPStatusError`.
        """
        path = endpoint or relation.endpoint or relation.request_handler or self.default_path
        relation.freeze()
        params = relation.to_params()
        sent = {k for k, _ in params}
        params.extend(p for p in _TRANSPORT_PARAMS if p[0] not in sent)

        logger.debug("Solr query: %s %r", path, params)
        started = time.perf_counter()
        try:
            data = self._connection.get(path, params)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise SearchEngineUnavailable(self._connection.url_for(path)) from e
        logger.debug("Solr fetch (%.1fms)", (time.perf_counter() - started) * 1000)
        if self.verbose:
            logger.debug("Solr response: %r", data)
        return SearchResponse(data)
