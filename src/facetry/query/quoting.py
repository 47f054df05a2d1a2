"""Quoting of values interpolated into Solr local-parameter and Lucene query syntax."""

from __future__ import annotations

import re

_BARE_TOKEN = re.compile(r"[a-zA-Z0-9$_\-^]+")


def param_quote(value: str, quote: str = '"') -> str:
    """Put quotes around the value unless it is a bare word.

    Internal single and double quotes are backslash-escaped.
    """
    value = str(value)
    if _BARE_TOKEN.fullmatch(value):
        return value
    escaped = value.replace("'", "\\'").replace('"', '\\"')
    return f"{quote}{escaped}{quote}"


# Characters with meaning in the standard Lucene query syntax, plus whitespace
_LUCENE_SPECIAL = re.compile(r'([\\+\-!():^\[\]"{}~*?|&/\s])')
_LUCENE_KEYWORDS = frozenset({"AND", "OR", "NOT"})


def lucene_escape(value: str) -> str:
    """Escape `value` so the Lucene parser reads it as a single literal term."""
    value = str(value)
    if value in _LUCENE_KEYWORDS:
        return f'"{value}"'
    return _LUCENE_SPECIAL.sub(r"\\\1", value)
