"""Outbound HTTP adapter exposed to branch callbacks as ``bot.request``."""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Mapping, Optional


class HttpRequester:
    """Minimal JSON-over-HTTP helper satisfying the RequestPort contract."""

    def __init__(self, timeout: float = 10) -> None:
        self._timeout = timeout

    def _get_sync(self, url: str, params: Optional[Mapping[str, Any]]) -> Any:
        if params:
            query = urllib.parse.urlencode({k: v for k, v in params.items() if v is not None})
            url = f"{url}{'&' if '?' in url else '?'}{query}"
        request = urllib.request.Request(url, method="GET")
        request.add_header("Accept", "application/json")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"HTTP error {e.code}: {body}") from e
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            return body

    async def get(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """GET ``url`` and decode the JSON body (raw text if it is not JSON)."""

        # urllib blocks, so the call runs in a worker thread to keep other
        # dispatch cycles moving.
        return await asyncio.to_thread(self._get_sync, url, params)
