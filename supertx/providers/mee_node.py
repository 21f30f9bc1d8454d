"""
Execution node provider.

Talks to the node that quotes, accepts and reports on supertransactions:
GET info, POST quote / quote-permit, POST v1/exec, GET v1/explorer/{hash}.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .base import Provider, api_headers
from ..config import settings
from ..core.errors import NodeApiError, parse_error_message
from ..types.info import NodeInfo
from ..types.quote import ExecuteResponse, ExplorerResponse, Quote, QuoteRequest, SignedQuote

logger = logging.getLogger(__name__)


@dataclass
class MeeNodeConfig:
    """Execution node configuration."""
    base_url: str = "https://network.biconomy.io/v1"
    api_key: str = ""
    timeout_s: float = 30.0


def raise_for_node_error(response: httpx.Response) -> None:
    """Turn a non-2xx node response into NodeApiError with the best available message."""
    if response.is_success:
        return
    try:
        payload: Any = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict) and payload.get("error") is not None:
        error: Any = payload["error"]
    elif payload:
        error = payload
    else:
        error = response.text or response.reason_phrase

    message = parse_error_message(error)
    logger.error(f"Node request {response.request.url} failed: {response.status_code} - {message}")
    raise NodeApiError(message, status_code=response.status_code, details={"payload": payload})


class MeeNodeProvider(Provider):
    """
    Execution node client.

    Usage:
        node = get_mee_node_provider()
        info = await node.get_info()
        quote = await node.get_quote(request)
        signed = quote.with_signature(signature)
        result = await node.execute(signed)
        status = await node.get_explorer(result.hash)
    """

    name = "mee_node"

    def __init__(
        self,
        config: Optional[MeeNodeConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or MeeNodeConfig(
            base_url=settings.mee_node_url,
            api_key=settings.mee_api_key,
            timeout_s=settings.request_timeout_seconds,
        )
        self._transport = transport
        self._info: Optional[NodeInfo] = None

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def _client_options(self) -> Dict[str, Any]:
        return {
            "base_url": self._config.base_url.rstrip("/") + "/",
            "headers": api_headers(self._config.api_key, **{"User-Agent": "supertx/0.1"}),
            "timeout": self._config.timeout_s,
        }

    async def ready(self) -> bool:
        return bool(self._config.base_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "disabled", "reason": "Node URL not configured"}

        try:
            info = await self.get_info(refresh=True)
            return {"status": "healthy", "version": info.version, "node": info.node}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def request(
        self,
        path: str,
        method: str = "POST",
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request to ``{base_url}/{path}`` and return the decoded JSON."""
        client = self._get_client()
        try:
            response = await client.request(
                method,
                path.lstrip("/"),
                json=body if method.upper() != "GET" else None,
                params=params,
            )
        except httpx.RequestError as e:
            logger.error(f"Node request {method} {path} failed: {e}")
            raise NodeApiError(f"Request failed: {e}") from e

        raise_for_node_error(response)
        return response.json()

    async def get_info(self, refresh: bool = False) -> NodeInfo:
        if self._info is None or refresh:
            data = await self.request("info", method="GET")
            self._info = NodeInfo.model_validate(data)
        return self._info

    async def get_quote(self, request: QuoteRequest, path: str = "quote") -> Quote:
        logger.info(
            f"Requesting quote via {path}: {len(request.user_ops)} operations, "
            f"fee token {request.payment_info.token} on {request.payment_info.chain_id}"
        )
        data = await self.request(path, body=request.to_wire())
        return Quote.model_validate(data)

    async def execute(self, signed_quote: SignedQuote) -> ExecuteResponse:
        data = await self.request("v1/exec", body=signed_quote.to_wire())
        result = ExecuteResponse.model_validate(data)
        logger.info(f"Supertransaction submitted: {result.hash}")
        return result

    async def get_explorer(self, hash: str) -> ExplorerResponse:
        data = await self.request(f"v1/explorer/{hash}", method="GET")
        return ExplorerResponse.model_validate(data)


_mee_node_provider: Optional[MeeNodeProvider] = None


def get_mee_node_provider() -> MeeNodeProvider:
    global _mee_node_provider
    if _mee_node_provider is None:
        _mee_node_provider = MeeNodeProvider()
    return _mee_node_provider
