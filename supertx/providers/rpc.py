"""
Per-chain JSON-RPC provider and the registry that maps chain ids to providers.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .base import Provider
from ..config import settings
from ..core.errors import ConfigurationError, ExecutionError, RpcError

logger = logging.getLogger(__name__)


@dataclass
class ChainRpcConfig:
    chain_id: int
    rpc_url: str


@dataclass
class TransactionReceipt:
    transaction_hash: str
    success: bool
    block_number: int
    gas_used: int = 0
    effective_gas_price: int = 0
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "TransactionReceipt":
        def parse_hex(value: Optional[str]) -> int:
            return int(value, 16) if value else 0

        return cls(
            transaction_hash=data.get("transactionHash", ""),
            success=int(data.get("status", "0x1"), 16) == 1,
            block_number=parse_hex(data.get("blockNumber")),
            gas_used=parse_hex(data.get("gasUsed")),
            effective_gas_price=parse_hex(data.get("effectiveGasPrice")),
            raw=data,
        )


class ChainRpcProvider(Provider):
    name = "chain_rpc"
    timeout_s = 20

    def __init__(
        self,
        config: ChainRpcConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport

    @property
    def chain_id(self) -> int:
        return self._config.chain_id

    async def ready(self) -> bool:
        return bool(self._config.rpc_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "disabled", "reason": "RPC URL not configured"}

        try:
            result = await self._rpc_call("eth_chainId", [])
            return {"status": "healthy", "chainId": result}
        except Exception as exc:
            return {"status": "error", "reason": str(exc)}

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        try:
            response = await self._get_client().post(
                self._config.rpc_url,
                json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RpcError(f"{method} failed: {e}", chain_id=self.chain_id) from e

        payload = response.json()
        if "error" in payload:
            error = payload["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise RpcError(
                f"{method} failed: {message}",
                chain_id=self.chain_id,
                details={"error": error},
            )
        return payload.get("result")

    async def call(self, to: str, data: str, from_address: Optional[str] = None) -> str:
        tx: Dict[str, Any] = {"to": to, "data": data}
        if from_address:
            tx["from"] = from_address
        return await self._rpc_call("eth_call", [tx, "latest"])

    async def get_code(self, address: str) -> str:
        return await self._rpc_call("eth_getCode", [address, "latest"])

    async def get_balance(self, address: str) -> int:
        return int(await self._rpc_call("eth_getBalance", [address, "latest"]), 16)

    async def get_transaction_count(self, address: str) -> int:
        return int(await self._rpc_call("eth_getTransactionCount", [address, "pending"]), 16)

    async def gas_price(self) -> int:
        return int(await self._rpc_call("eth_gasPrice", []), 16)

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return int(await self._rpc_call("eth_estimateGas", [tx]), 16)

    async def block_number(self) -> int:
        return int(await self._rpc_call("eth_blockNumber", []), 16)

    async def send_raw_transaction(self, raw_tx: str) -> str:
        tx_hash = await self._rpc_call("eth_sendRawTransaction", [raw_tx])
        logger.info(f"Transaction submitted on chain {self.chain_id}: {tx_hash}")
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        result = await self._rpc_call("eth_getTransactionReceipt", [tx_hash])
        if not result:
            return None
        return TransactionReceipt.from_rpc(result)

    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        confirmations: int = 1,
        timeout_s: float = 120.0,
        poll_interval_s: float = 2.0,
    ) -> TransactionReceipt:
        """
        Poll until the transaction is mined with enough confirmations.

        Raises:
            ExecutionError: If the transaction reverts or is not confirmed in time
        """
        start_time = time.time()

        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                if not receipt.success:
                    raise ExecutionError(
                        f"Transaction {tx_hash} reverted",
                        chain_id=self.chain_id,
                    )
                current_block = await self.block_number()
                if current_block - receipt.block_number + 1 >= confirmations:
                    logger.info(
                        f"Transaction confirmed: {tx_hash} "
                        f"(chain {self.chain_id}, block {receipt.block_number})"
                    )
                    return receipt

            if time.time() - start_time >= timeout_s:
                raise ExecutionError(
                    f"Transaction {tx_hash} not confirmed after {timeout_s}s",
                    chain_id=self.chain_id,
                )

            await asyncio.sleep(poll_interval_s)


class RpcRegistry:
    """
    Chain id -> ChainRpcProvider.

    Built once (from settings or explicit URLs) and shared by the accounts and
    the receipt tracker.
    """

    def __init__(
        self,
        rpc_urls: Optional[Mapping[int, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        urls = dict(settings.chain_rpc_urls if rpc_urls is None else rpc_urls)
        self._providers: Dict[int, ChainRpcProvider] = {
            int(chain_id): ChainRpcProvider(ChainRpcConfig(int(chain_id), url), transport=transport)
            for chain_id, url in urls.items()
        }

    def chain_ids(self) -> List[int]:
        return sorted(self._providers)

    def add(self, provider: ChainRpcProvider) -> None:
        self._providers[provider.chain_id] = provider

    def get(self, chain_id: int) -> ChainRpcProvider:
        provider = self._providers.get(chain_id)
        if provider is None:
            raise ConfigurationError(f"No RPC endpoint configured for chain {chain_id}", chain_id=chain_id)
        return provider

    async def close(self) -> None:
        await asyncio.gather(*(p.close() for p in self._providers.values()))
