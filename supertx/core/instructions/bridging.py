"""
Bridging instructions for intents.

Given where a token sits across chains, work out whether the destination
already holds enough and otherwise pull the shortfall over the best routes
the bridging plugins offer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol, Sequence

from ..abi import build_erc20_balance_of
from ..errors import ConfigurationError
from .models import Instruction

if TYPE_CHECKING:
    from ..account.deployment import MultichainAccount

logger = logging.getLogger(__name__)


class BridgingMode(str, Enum):
    DEBIT = "DEBIT"            # bridge only what each source chain actually holds
    OPTIMISTIC = "OPTIMISTIC"  # quote routes for the full amount regardless of balance


@dataclass
class MultichainToken:
    """One token's address per chain."""
    deployments: Dict[int, str]
    symbol: str = ""

    def address_on(self, chain_id: int) -> str:
        address = self.deployments.get(chain_id)
        if address is None:
            raise ConfigurationError(f"Token {self.symbol or '?'} has no deployment on chain {chain_id}", chain_id=chain_id)
        return address


@dataclass
class ChainBalance:
    chain_id: int
    balance: int


@dataclass
class UnifiedBalance:
    token: MultichainToken
    breakdown: List[ChainBalance] = field(default_factory=list)

    @property
    def balance(self) -> int:
        return sum(entry.balance for entry in self.breakdown)

    def on(self, chain_id: int) -> int:
        for entry in self.breakdown:
            if entry.chain_id == chain_id:
                return entry.balance
        return 0


@dataclass
class FeeData:
    tx_fee_chain_id: int
    tx_fee_amount: int


@dataclass
class BridgingPluginResult:
    instruction: Instruction
    received_at_destination: Optional[int] = None
    bridging_duration_expected_ms: Optional[int] = None


class BridgingPlugin(Protocol):
    async def encode_bridge_instruction(
        self,
        *,
        depositor: str,
        recipient: str,
        from_chain_id: int,
        to_chain_id: int,
        token: MultichainToken,
        amount: int,
    ) -> BridgingPluginResult: ...


@dataclass
class BridgeQueryResult:
    from_chain_id: int
    amount: int
    received_at_destination: int
    plugin: BridgingPlugin
    instruction: Instruction
    bridging_duration_expected_ms: Optional[int] = None


@dataclass
class BridgingInstructions:
    instructions: List[Instruction]
    bridging: List[BridgeQueryResult]
    total_available_on_destination: int


async def query_bridge(
    plugin: BridgingPlugin,
    *,
    depositor: str,
    recipient: str,
    from_chain_id: int,
    to_chain_id: int,
    token: MultichainToken,
    amount: int,
) -> Optional[BridgeQueryResult]:
    result = await plugin.encode_bridge_instruction(
        depositor=depositor,
        recipient=recipient,
        from_chain_id=from_chain_id,
        to_chain_id=to_chain_id,
        token=token,
        amount=amount,
    )
    if not result.received_at_destination:
        return None
    return BridgeQueryResult(
        from_chain_id=from_chain_id,
        amount=amount,
        received_at_destination=result.received_at_destination,
        plugin=plugin,
        instruction=result.instruction,
        bridging_duration_expected_ms=result.bridging_duration_expected_ms,
    )


async def build_bridge_instructions(
    *,
    depositor: str,
    recipient: str,
    amount: int,
    to_chain_id: int,
    unified_balance: UnifiedBalance,
    plugins: Sequence[BridgingPlugin],
    fee_data: Optional[FeeData] = None,
    mode: BridgingMode = BridgingMode.DEBIT,
) -> BridgingInstructions:
    destination_balance = unified_balance.on(to_chain_id)
    if destination_balance >= amount:
        return BridgingInstructions([], [], destination_balance)

    to_bridge = amount - destination_balance

    sources: List[ChainBalance] = []
    for entry in unified_balance.breakdown:
        if entry.chain_id == to_chain_id:
            continue
        available = entry.balance if mode == BridgingMode.DEBIT else amount
        if fee_data and fee_data.tx_fee_chain_id == entry.chain_id:
            available = max(available - fee_data.tx_fee_amount, 0)
        if available > 0:
            sources.append(ChainBalance(entry.chain_id, available))

    queries = [
        query_bridge(
            plugin,
            depositor=depositor,
            recipient=recipient,
            from_chain_id=source.chain_id,
            to_chain_id=to_chain_id,
            token=unified_balance.token,
            amount=source.balance,
        )
        for source in sources
        for plugin in plugins
    ]
    routes = [r for r in await asyncio.gather(*queries) if r is not None]
    routes.sort(key=lambda r: r.received_at_destination * 10000 // r.amount, reverse=True)

    remaining = to_bridge
    selected = []
    # several plugins may quote the same source chain; its balance is spent once
    spent: Dict[int, int] = {}
    for route in routes:
        if remaining <= 0:
            break
        take = min(route.amount - spent.get(route.from_chain_id, 0), remaining)
        if take <= 0:
            continue
        spent[route.from_chain_id] = spent.get(route.from_chain_id, 0) + take
        selected.append((route, take))
        remaining -= take

    if remaining > 0:
        available = sum(route.received_at_destination for route, _ in selected)
        raise ConfigurationError(
            f"Insufficient balance for bridging: required {amount}, "
            f"available to bridge {available}, shortfall {remaining}",
            chain_id=to_chain_id,
        )

    async def settle(route: BridgeQueryResult, take: int) -> BridgeQueryResult:
        if take == route.amount:
            return route
        # partial route: re-encode so the deposit matches what is actually taken
        requoted = await query_bridge(
            route.plugin,
            depositor=depositor,
            recipient=recipient,
            from_chain_id=route.from_chain_id,
            to_chain_id=to_chain_id,
            token=unified_balance.token,
            amount=take,
        )
        if requoted is None:
            raise ConfigurationError(
                f"Bridge route from chain {route.from_chain_id} rejected amount {take}",
                chain_id=route.from_chain_id,
            )
        return requoted

    chosen = list(await asyncio.gather(*(settle(route, take) for route, take in selected)))
    total_bridged = sum(route.received_at_destination for route in chosen)

    logger.info(f"Bridging {to_bridge} to chain {to_chain_id} over {len(chosen)} route(s)")
    return BridgingInstructions(
        instructions=[route.instruction for route in chosen],
        bridging=chosen,
        total_available_on_destination=destination_balance + total_bridged,
    )


async def get_unified_erc20_balance(account: "MultichainAccount", token: MultichainToken) -> UnifiedBalance:
    """Read the account's balance of ``token`` on every chain both are deployed on."""
    chain_ids = [c for c in account.chain_ids if c in token.deployments]

    async def read(chain_id: int) -> ChainBalance:
        deployment = account.deployment_on(chain_id, strict=True)
        if deployment.rpc is None:
            raise ConfigurationError(f"No RPC endpoint configured for chain {chain_id}", chain_id=chain_id)
        result = await deployment.rpc.call(token.address_on(chain_id), build_erc20_balance_of(deployment.address))
        return ChainBalance(chain_id, int(result, 16) if result and result != "0x" else 0)

    breakdown = await asyncio.gather(*(read(chain_id) for chain_id in chain_ids))
    return UnifiedBalance(token=token, breakdown=list(breakdown))
