"""Explicitly owned HTTP connection to a Solr core.

Uses a synchronous httpx client; one instance per application, created at
startup and passed to the executor.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import httpx

from facetry.config import SolrConfig


class SolrConnection:
    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        username: Optional[str] = None,
        password: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        auth = (username, password) if username and password else None
        self._client = httpx.Client(
            base_url=self.base_url + "/",
            auth=auth,
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_config(cls, cfg: SolrConfig, **kwargs: Any) -> "SolrConnection":
        return cls(
            base_url=cfg.url,
            timeout=cfg.timeout,
            verify_ssl=cfg.verify_ssl,
            username=cfg.username,
            password=cfg.password,
            **kwargs,
        )

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path: str, params: List[Tuple[str, str]]) -> Dict[str, Any]:
        """GET `path` with the given params and return the decoded JSON body.

        Non-2xx responses raise `httpx.HTTPStatusError`.
        """
        resp = self._client.get(path.lstrip("/"), params=params)
        resp.raise_for_status()
        return resp.json()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SolrConnection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
