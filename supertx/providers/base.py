from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx


class Provider(ABC):
    """
    Base for HTTP-backed providers.

    Each provider owns one lazily created httpx.AsyncClient; subclasses
    describe it through _client_options() and may inject a transport for tests.
    """

    name: str
    timeout_s: float = 10
    _client: Optional[httpx.AsyncClient] = None
    _transport: Optional[httpx.AsyncBaseTransport] = None

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is configured to serve requests"""

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""

    def _client_options(self) -> Dict[str, Any]:
        return {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            options: Dict[str, Any] = {"timeout": self.timeout_s, "transport": self._transport}
            options.update(self._client_options())
            self._client = httpx.AsyncClient(**options)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


def api_headers(api_key: str = "", **extra: str) -> Dict[str, str]:
    headers = {"Content-Type": "application/json", **extra}
    if api_key:
        headers["x-api-key"] = api_key
    return headers
