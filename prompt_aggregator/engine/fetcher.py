"""Asynchronous HTTP fetching with per-source auth and an enforced timeout."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping

import httpx
import structlog

from ..config import GlobalConfig, SourceConfig, SourceKind
from ..errors import FetchError

_ACCEPT_BY_KIND: dict[SourceKind, str] = {
    SourceKind.REPOSITORY: "application/vnd.github.v3+json",
    SourceKind.API: "application/json",
    SourceKind.FEED: "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
    SourceKind.PAGE: "text/html, */*;q=0.8",
}


@dataclass(slots=True)
class FetchRequest:
    """Input for the fetcher."""

    url: str
    headers: dict[str, str] | None = None
    timeout: float | None = None
    # File downloads from a repository listing go to a CDN host and skip the token.
    authenticate: bool = True


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value.lower()
        return ""

    @property
    def is_json(self) -> bool:
        return "json" in self.content_type


class Fetcher:
    """Issue GET requests for sources and normalise failures into ``FetchError``.

    Clients are opened per source run with :meth:`open_client`, so a fetcher
    can be reused across event loops (scheduler jobs each run their own loop).
    """

    def __init__(
        self,
        global_config: GlobalConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.global_config = global_config
        self.transport = transport
        self.logger = logger or structlog.get_logger("prompt_aggregator.fetcher")
        self._environ = environ if environ is not None else os.environ

    def open_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.global_config.fetch_timeout_seconds,
            headers={"User-Agent": self.global_config.user_agent},
            transport=self.transport,
        )

    def build_headers(self, source: SourceConfig, request: FetchRequest) -> dict[str, str]:
        headers = {"Accept": _ACCEPT_BY_KIND[source.kind]}
        if source.requires_auth and request.authenticate:
            # Read at fetch time; the value is never logged.
            token = self._environ.get(source.auth_ref or "")
            if not token:
                raise FetchError(
                    f"Missing credential: environment variable {source.auth_ref} is not set"
                )
            scheme = "token" if source.kind is SourceKind.REPOSITORY else "Bearer"
            headers["Authorization"] = f"{scheme} {token}"
        if request.headers:
            headers.update(request.headers)
        return headers

    async def fetch(
        self,
        client: httpx.AsyncClient,
        source: SourceConfig,
        request: FetchRequest | None = None,
    ) -> FetchResponse:
        request = request or FetchRequest(url=source.endpoint)
        headers = self.build_headers(source, request)
        timeout = request.timeout or self.global_config.fetch_timeout_seconds
        try:
            response = await asyncio.wait_for(
                client.get(request.url, headers=headers, timeout=timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            self.logger.warning("fetch_timeout", url=request.url, timeout=timeout)
            raise FetchError(f"Timed out after {timeout:g}s fetching {request.url}") from exc
        except httpx.HTTPError as exc:
            self.logger.warning("fetch_error", url=request.url, error=str(exc))
            raise FetchError(f"Transport error fetching {request.url}: {exc}") from exc

        if not response.is_success:
            self.logger.warning("fetch_bad_status", url=request.url, status=response.status_code)
            raise FetchError(
                f"HTTP {response.status_code} from {request.url}",
                status_code=response.status_code,
            )
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
        )


__all__ = ["Fetcher", "FetchRequest", "FetchResponse"]
