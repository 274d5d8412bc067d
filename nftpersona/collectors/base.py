"""Shared httpx client lifecycle and debug logging for provider clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class BaseClient:
    """Base class for HTTP-backed data providers."""

    name: str = "base"

    def __init__(self, config: dict) -> None:
        self.config = config
        self.timeout = float(config.get("timeout", 30.0))
        self._client: httpx.AsyncClient | None = None
        self.debug = False
        self._debug_log: list[dict[str, Any]] = []

    async def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def get_debug_log(self) -> list[dict[str, Any]]:
        return list(self._debug_log)

    async def debug_request(
        self, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        """Make an HTTP request and log it when debug mode is on."""
        client = await self.client()
        resp = await client.request(method, url, **kwargs)
        logger.debug("[%s] %s %s -> %s", self.name, method, _redact(url), resp.status_code)
        if self.debug:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text[:3000]
            self._debug_log.append({
                "client": self.name,
                "label": f"{method} {_redact(url)}",
                "status": resp.status_code,
                "response": body,
            })
        return resp


def _redact(url: str) -> str:
    # Alchemy puts the API key in the path: /v2/<key> or /nft/v3/<key>/method
    parts = url.split("/")
    if len(parts) < 3 or not parts[2].endswith("alchemy.com"):
        return url
    for i, part in enumerate(parts[:-1]):
        if part in ("v2", "v3"):
            parts[i + 1] = "***"
            break
    return "/".join(parts)
