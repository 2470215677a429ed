from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp

logger = logging.getLogger(__name__)


class TransportError(Exception):
    pass


class Transport(Protocol):
    async def execute(self, operation_name: str, variables: dict[str, Any]) -> dict[str, Any]: ...

    async def close(self) -> None: ...


class HttpTransport:
    """Posts operations to the directory endpoint over one reused aiohttp session."""

    def __init__(self, base_url: str, path: str = "/api/v1/operations", timeout: float = 30.0) -> None:
        self.url = f"{base_url.rstrip('/')}{path}"
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Content-Type": "application/json"},
            )
        return self._session

    async def execute(self, operation_name: str, variables: dict[str, Any]) -> dict[str, Any]:
        payload = {"operationName": operation_name, "variables": variables}
        session = self._get_session()
        try:
            async with session.post(self.url, json=payload) as response:
                try:
                    return await response.json()
                except (aiohttp.ContentTypeError, ValueError) as err:
                    text = await response.text()
                    raise TransportError(f"Unexpected response ({response.status}): {text[:200]}") from err
        except aiohttp.ClientError as err:
            logger.error("Request for %s failed: %s", operation_name, err)
            raise TransportError(f"Request for {operation_name} failed: {err}") from err

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
