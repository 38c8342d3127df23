"""Async client for the local recall worker API.

Three operations back the MCP tools: fetching memories relevant to a
context, searching stored memories and saving a new memory. Transport and
HTTP status failures are mapped to the project's error types.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional

import httpx

from core.errors import ExternalServiceError, NotFoundError, ValidationError


class RecallClient:
    """Async client for the recall worker (default http://127.0.0.1:37777).

    Purpose:
      - fetch_context(context, limit, project=None) -> {"memories": [...], "count": n}
      - search(query, limit, types=None) -> {"results": [...], "count": n}
      - save_memory(content, memory_type, metadata=None, project=None) -> {"id": ..., ...}
    """

    USER_AGENT = "recall-mcp"

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 10.0,
        verify: bool = False,
        max_concurrency: int = 4,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._timeout = float(timeout)
        self._verify = bool(verify)
        self._sem = asyncio.Semaphore(max(1, int(max_concurrency)))

    async def fetch_context(
        self,
        *,
        context: str,
        limit: int,
        project: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"context": context, "limit": int(limit)}
        if project:
            params["project"] = project
        return await self._request("GET", "/api/context", params=params)

    async def search(
        self,
        *,
        query: str,
        limit: int,
        types: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"query": query, "limit": int(limit)}
        if types:
            params["types"] = ",".join(types)
        return await self._request("GET", "/api/search", params=params)

    async def save_memory(
        self,
        *,
        content: str,
        memory_type: str,
        metadata: Optional[Mapping[str, Any]] = None,
        project: Optional[str] = None,
    ) -> Dict[str, Any]:
        text = (content or "").strip()
        if not text:
            raise ValidationError("Memory content is empty")

        body: Dict[str, Any] = {"content": text, "type": memory_type, "metadata": dict(metadata or {})}
        if project:
            body["project"] = project
        return await self._request("POST", "/api/memories", json=body)

    # --- HTTP helpers ---

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Accept": "application/json", "User-Agent": self.USER_AGENT},
            timeout=self._timeout,
            verify=self._verify,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            # Limit concurrent requests across tasks
            async with self._sem:
                async with self._create_client() as client:
                    resp = await client.request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Failed to call recall worker ({method} {url}): {e}") from e

        if resp.status_code == 404:
            raise NotFoundError(f"Recall worker endpoint not found: {url}")

        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(f"Recall worker returned an error: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise ExternalServiceError(f"Recall worker returned invalid JSON ({method} {url})") from e

        if not isinstance(data, dict):
            raise ExternalServiceError(f"Recall worker returned unexpected payload ({method} {url})")
        return data
