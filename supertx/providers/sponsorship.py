"""
Sponsorship service provider.

Supplies nonces for the sponsorship account, co-signs sponsored quotes when
self-hosted sponsorship is enabled, and serves receipts for sponsored payment
operations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import httpx

from .base import Provider, api_headers
from .mee_node import raise_for_node_error
from ..config import settings
from ..core.errors import NodeApiError
from ..types.quote import Quote

logger = logging.getLogger(__name__)


@dataclass
class SponsorshipConfig:
    base_url: str = ""
    api_key: str = ""
    timeout_s: float = 30.0


class SponsorshipProvider(Provider):
    name = "sponsorship"

    def __init__(
        self,
        config: Optional[SponsorshipConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or SponsorshipConfig(
            base_url=settings.sponsorship_url or settings.mee_node_url,
            api_key=settings.mee_api_key,
            timeout_s=settings.request_timeout_seconds,
        )
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def _client_options(self) -> Dict[str, Any]:
        return {
            "base_url": self._config.base_url.rstrip("/") + "/",
            "headers": api_headers(self._config.api_key),
            "timeout": self._config.timeout_s,
        }

    async def ready(self) -> bool:
        return bool(self._config.base_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "disabled", "reason": "Sponsorship URL not configured"}
        return {"status": "healthy", "url": self._config.base_url}

    async def _request(self, method: str, path: str, body: Optional[Any] = None) -> Any:
        try:
            response = await self._get_client().request(method, path, json=body)
        except httpx.RequestError as e:
            logger.error(f"Sponsorship request {method} {path} failed: {e}")
            raise NodeApiError(f"Sponsorship request failed: {e}") from e
        raise_for_node_error(response)
        return response.json()

    async def get_nonce(self, chain_id: int, address: str) -> Tuple[int, int]:
        """Return (nonce, nonce_key) for the sponsorship account on a chain."""
        data = await self._request("GET", f"sponsorship/nonce/{chain_id}/{address}")
        return int(data["nonce"]), int(data.get("nonceKey", 0))

    async def sign_quote(self, chain_id: int, address: str, quote: Quote) -> Quote:
        """Forward a sponsored quote for co-signature and return the co-signed quote."""
        data = await self._request(
            "POST",
            f"sponsorship/sign/{chain_id}/{address}",
            body=quote.to_wire(),
        )
        logger.info(f"Quote {quote.hash} co-signed by sponsorship service")
        return Quote.model_validate(data)

    async def get_receipt(self, chain_id: int, execution_data: str) -> Dict[str, Any]:
        return await self._request("GET", f"sponsorship/receipt/{chain_id}/{execution_data}")


_sponsorship_provider: Optional[SponsorshipProvider] = None


def get_sponsorship_provider() -> SponsorshipProvider:
    global _sponsorship_provider
    if _sponsorship_provider is None:
        _sponsorship_provider = SponsorshipProvider()
    return _sponsorship_provider
