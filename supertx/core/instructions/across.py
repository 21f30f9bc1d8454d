"""
Across bridging plugin.

Docs: https://docs.across.to/reference/api-reference
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ...config import settings
from ...constants import TESTNET_CHAIN_IDS
from ..abi import build_erc20_approve, encode_call
from ..errors import NodeApiError
from .bridging import BridgingPluginResult, MultichainToken
from .models import AbstractCall, Instruction

logger = logging.getLogger(__name__)

DEPOSIT_V3_SIGNATURE = (
    "depositV3(address,address,address,address,uint256,uint256,uint256,"
    "address,uint32,uint32,uint32,bytes)"
)
FILL_DEADLINE_BUFFER_S = 18000
APPROVE_GAS_LIMIT = 100_000
DEPOSIT_GAS_LIMIT = 1_500


@dataclass
class AcrossConfig:
    api_url: str = "https://app.across.to/api"
    testnet_api_url: str = "https://testnet.across.to/api"
    timeout_s: float = 30.0


class AcrossPlugin:
    """Bridges via Across: approve the spoke pool, then depositV3."""

    def __init__(
        self,
        config: Optional[AcrossConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or AcrossConfig(
            api_url=settings.across_api_url,
            testnet_api_url=settings.across_testnet_api_url,
            timeout_s=settings.request_timeout_seconds,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._config.timeout_s, transport=self._transport)
        return self._client

    async def get_suggested_fees(
        self,
        input_token: str,
        output_token: str,
        origin_chain_id: int,
        destination_chain_id: int,
        amount: int,
    ) -> Dict[str, Any]:
        base_url = (
            self._config.testnet_api_url
            if origin_chain_id in TESTNET_CHAIN_IDS
            else self._config.api_url
        )
        params = {
            "inputToken": input_token,
            "outputToken": output_token,
            "originChainId": str(origin_chain_id),
            "destinationChainId": str(destination_chain_id),
            "amount": str(amount),
        }
        try:
            response = await self._get_client().get(f"{base_url.rstrip('/')}/suggested-fees", params=params)
        except httpx.RequestError as e:
            raise NodeApiError(f"Across request failed: {e}") from e

        if response.status_code != 200:
            raise NodeApiError(
                f"Across suggested-fees failed: {response.text}",
                status_code=response.status_code,
            )
        return response.json()

    async def encode_bridge_instruction(
        self,
        *,
        depositor: str,
        recipient: str,
        from_chain_id: int,
        to_chain_id: int,
        token: MultichainToken,
        amount: int,
    ) -> BridgingPluginResult:
        input_token = token.address_on(from_chain_id)
        output_token = token.address_on(to_chain_id)

        fees = await self.get_suggested_fees(input_token, output_token, from_chain_id, to_chain_id, amount)
        output_amount = amount - int(fees["totalRelayFee"]["total"])
        spoke_pool = fees["spokePoolAddress"]
        fill_deadline = int(time.time()) + FILL_DEADLINE_BUFFER_S

        approve = AbstractCall(
            to=input_token,
            data=build_erc20_approve(spoke_pool, amount),
            gas_limit=APPROVE_GAS_LIMIT,
        )
        deposit = AbstractCall(
            to=spoke_pool,
            data=encode_call(
                DEPOSIT_V3_SIGNATURE,
                [
                    depositor,
                    recipient,
                    input_token,
                    output_token,
                    amount,
                    output_amount,
                    to_chain_id,
                    fees["exclusiveRelayer"],
                    int(fees["timestamp"]),
                    fill_deadline,
                    int(fees["exclusivityDeadline"]),
                    b"",
                ],
            ),
            gas_limit=DEPOSIT_GAS_LIMIT,
        )
        logger.debug(f"Across route {from_chain_id} -> {to_chain_id}: {amount} in, {output_amount} out")
        return BridgingPluginResult(
            instruction=Instruction(calls=[approve, deposit], chain_id=from_chain_id),
            received_at_destination=output_amount,
        )
