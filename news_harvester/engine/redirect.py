"""Resolve aggregator tracking links to publisher URLs."""

from __future__ import annotations

import httpx
import structlog


class RedirectResolver:
    """Follow a tracking link's redirects, degrading to the link itself on failure.

    The first attempt uses a strict client. Any transport error triggers one
    retry on a permissive client that skips certificate validation. ``resolve``
    never raises.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        headers: dict[str, str] | None = None,
        client: httpx.Client | None = None,
        fallback_client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.timeout = timeout
        self._client = client or httpx.Client(
            follow_redirects=True, timeout=timeout, headers=headers
        )
        self._fallback_client = fallback_client or httpx.Client(
            follow_redirects=True, timeout=timeout, headers=headers, verify=False
        )
        self.logger = logger or structlog.get_logger("news_harvester.redirect")

    def close(self) -> None:
        self._client.close()
        self._fallback_client.close()

    def resolve(self, url: str) -> str:
        if not url:
            return url
        try:
            return self._final_url(self._client, url)
        except Exception as exc:  # noqa: BLE001
            self.logger.debug("redirect_retry_permissive", url=url, error=str(exc))
        try:
            return self._final_url(self._fallback_client, url)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("redirect_unresolved", url=url, error=str(exc))
        return url

    def _final_url(self, client: httpx.Client, url: str) -> str:
        # Only the final location matters, so the body is never read
        with client.stream("GET", url, timeout=self.timeout) as response:
            return str(response.url)


__all__ = ["RedirectResolver"]
