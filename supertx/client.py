"""
MeeClient: one account, one execution node, every step of a supertransaction.

    build -> get_quote -> sign_quote -> execute_signed_quote -> wait_for_supertransaction_receipt

or, when the signer funds the account in the same flow,

    get_fusion_quote -> sign_fusion_quote -> execute_signed_quote -> ...
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from .config import settings
from .core.account.deployment import MultichainAccount
from .core.composability.models import Constraint, RuntimeValue
from .core.composability.runtime_values import ReadRegistry, RuntimeSource, build_default_read_registry, runtime_value_of
from .core.errors import ConfigurationError
from .core.instructions.bridging import BridgingPlugin
from .core.instructions.builders import InstructionBuilder
from .core.instructions.models import Instruction
from .core.instructions.resolver import InstructionLike
from .core.quote.builder import QuoteBuilder
from .core.quote.fusion import FusionQuote, QuoteType, get_fusion_quote, get_quote_type
from .core.quote.triggers import CleanUp, FeeToken, Trigger
from .core.signing.fusion import sign_fusion_quote
from .core.signing.simple import sign_simple_quote
from .core.tracking.receipts import ReceiptTracker, SupertransactionReceipt
from .providers.mee_node import MeeNodeProvider
from .providers.rpc import RpcRegistry
from .providers.sponsorship import SponsorshipProvider
from .types.info import GasTokens, NodeInfo, PaymentToken
from .types.quote import ExecuteResponse, Quote, SignedQuote

logger = logging.getLogger(__name__)


class MeeClient:
    """
    Usage:
        rpc = RpcRegistry()
        account = MultichainAccount.from_addresses(LocalSigner(key), {8453: addr}, rpc)
        client = MeeClient(account, rpc=rpc)

        instructions = await client.build("transfer", chain_id=8453, token_address=usdc, amount=10**6, recipient=bob)
        result = await client.execute(instructions, FeeToken(usdc, 8453))
        receipt = await client.wait_for_supertransaction_receipt(result.hash)
    """

    def __init__(
        self,
        account: MultichainAccount,
        node: Optional[MeeNodeProvider] = None,
        rpc: Optional[RpcRegistry] = None,
        sponsorship: Optional[SponsorshipProvider] = None,
        read_registry: Optional[ReadRegistry] = None,
        bridging_plugins: Optional[Sequence[BridgingPlugin]] = None,
        polling_interval_ms: Optional[int] = None,
    ) -> None:
        self.account = account
        self.node = node or MeeNodeProvider()
        self.rpc = rpc or RpcRegistry()
        self.sponsorship = sponsorship or SponsorshipProvider()
        self.read_registry = read_registry or build_default_read_registry()
        self.instructions = InstructionBuilder(account, bridging_plugins)
        self.quotes = QuoteBuilder(
            self.node,
            sponsorship=self.sponsorship,
            self_hosted_sponsorship=settings.self_hosted_sponsorship,
        )
        self.tracker = ReceiptTracker(
            self.node,
            self.rpc,
            sponsorship=self.sponsorship,
            polling_interval_ms=polling_interval_ms,
        )

    # -- node info ----------------------------------------------------------

    async def get_info(self, refresh: bool = False) -> NodeInfo:
        return await self.node.get_info(refresh=refresh)

    async def get_gas_token(self, chain_id: int) -> GasTokens:
        info = await self.get_info()
        gas_tokens = info.gas_tokens_on(chain_id)
        if gas_tokens is None:
            raise ConfigurationError(f"No gas tokens supported on chain {chain_id}", chain_id=chain_id)
        return gas_tokens

    async def get_payment_token(self, chain_id: int, token_address: str) -> PaymentToken:
        gas_tokens = await self.get_gas_token(chain_id)
        for token in gas_tokens.payment_tokens:
            if token.address.lower() == token_address.lower():
                return token
        raise ConfigurationError(
            f"Payment token {token_address} is not listed on chain {chain_id}",
            chain_id=chain_id,
        )

    # -- instructions -------------------------------------------------------

    async def build(
        self,
        type: str,
        current_instructions: Optional[Sequence[InstructionLike]] = None,
        **data: Any,
    ) -> List[Instruction]:
        return await self.instructions.build(type, current_instructions, **data)

    def runtime_value(self, source: RuntimeSource, constraints: Iterable[Constraint] = ()) -> RuntimeValue:
        """Resolve a runtime source through this client's read registry."""
        return runtime_value_of(source, constraints, registry=self.read_registry)

    # -- quotes -------------------------------------------------------------

    def _sponsored(self, sponsorship: Optional[bool]) -> bool:
        return settings.sponsorship_enabled if sponsorship is None else sponsorship

    async def get_quote(
        self,
        instructions: Sequence[InstructionLike],
        fee_token: Optional[FeeToken] = None,
        *,
        sponsorship: Optional[bool] = None,
        cleanups: Sequence[CleanUp] = (),
        **options: Any,
    ) -> Quote:
        return await self.quotes.get_quote(
            self.account,
            instructions,
            fee_token,
            sponsorship=self._sponsored(sponsorship),
            cleanups=cleanups,
            **options,
        )

    async def sign_quote(self, quote: Quote) -> SignedQuote:
        return await sign_simple_quote(quote, self.account.signer)

    async def execute_signed_quote(self, signed_quote: SignedQuote) -> ExecuteResponse:
        return await self.node.execute(signed_quote)

    async def execute_quote(self, quote: Quote) -> ExecuteResponse:
        return await self.execute_signed_quote(await self.sign_quote(quote))

    async def execute(
        self,
        instructions: Sequence[InstructionLike],
        fee_token: Optional[FeeToken] = None,
        **options: Any,
    ) -> ExecuteResponse:
        quote = await self.get_quote(instructions, fee_token, **options)
        return await self.execute_quote(quote)

    # -- fusion -------------------------------------------------------------

    async def get_quote_type(self, trigger: Trigger) -> QuoteType:
        return await get_quote_type(self.node, self.rpc, trigger)

    async def get_fusion_quote(
        self,
        trigger: Trigger,
        instructions: Sequence[InstructionLike],
        fee_token: Optional[FeeToken] = None,
        *,
        sponsorship: Optional[bool] = None,
        cleanups: Sequence[CleanUp] = (),
        **options: Any,
    ) -> FusionQuote:
        return await get_fusion_quote(
            self.quotes,
            self.rpc,
            self.account,
            trigger,
            instructions,
            fee_token,
            sponsorship=self._sponsored(sponsorship),
            cleanups=cleanups,
            **options,
        )

    async def sign_fusion_quote(self, fusion_quote: FusionQuote, confirmations: Optional[int] = None) -> SignedQuote:
        logger.info(f"Signing quote {fusion_quote.quote.hash} with {fusion_quote.quote_type.value} strategy")
        return await sign_fusion_quote(fusion_quote, self.account, self.rpc, confirmations)

    async def execute_fusion_quote(
        self,
        fusion_quote: FusionQuote,
        confirmations: Optional[int] = None,
    ) -> ExecuteResponse:
        return await self.execute_signed_quote(await self.sign_fusion_quote(fusion_quote, confirmations))

    # -- tracking -----------------------------------------------------------

    async def get_supertransaction_receipt(
        self,
        hash: str,
        wait_for_receipts: bool = True,
    ) -> SupertransactionReceipt:
        return await self.tracker.get_supertransaction_receipt(hash, wait_for_receipts)

    async def wait_for_supertransaction_receipt(
        self,
        hash: str,
        polling_interval_ms: Optional[int] = None,
        timeout_s: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> SupertransactionReceipt:
        return await self.tracker.wait_for_supertransaction_receipt(
            hash,
            polling_interval_ms=polling_interval_ms,
            timeout_s=timeout_s,
            max_attempts=max_attempts,
        )

    async def close(self) -> None:
        await self.node.close()
        await self.sponsorship.close()
        await self.tracker.close()
        await self.rpc.close()
