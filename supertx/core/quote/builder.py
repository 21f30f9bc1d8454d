"""
Quote builder.

Turns resolved instructions (plus optional cleanups) into a quote request:
validate chains and fee token, compute payment info, read nonce/deployment
state for every operation, append cleanups, place init data once per chain,
assign verification gas, then ask the node for a quote.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from ...constants import (
    CLEANUP_EXECUTION_WINDOW_S,
    DEFAULT_CLEANUP_GAS_LIMIT,
    DEFAULT_EXECUTION_WINDOW_S,
    DEFAULT_QUOTE_PATH,
    DEFAULT_VERIFICATION_GAS_LIMIT,
    FIRST_OP_VERIFICATION_GAS_LIMIT,
    LARGE_DEFAULT_GAS_LIMIT,
    SPONSORSHIP_ACCOUNT_ADDRESS,
    SPONSORSHIP_CHAIN_ID,
    SPONSORSHIP_TESTNET_CHAIN_ID,
    SPONSORSHIP_TESTNET_TOKEN_ADDRESS,
    SPONSORSHIP_TOKEN_ADDRESS,
    TESTNET_CHAIN_IDS,
    ZERO_ADDRESS,
)
from ...providers.mee_node import MeeNodeProvider
from ...providers.sponsorship import SponsorshipProvider
from ...types.info import NodeInfo
from ...types.quote import PaymentInfo, Quote, QuoteRequest, QuoteUserOp
from ..account.deployment import ChainDeployment, MultichainAccount
from ..composability.models import InputParamType
from ..composability.runtime_values import (
    greater_than_or_equal_to,
    runtime_erc20_balance_of,
    runtime_native_balance_of,
    runtime_nonce_of,
)
from ..errors import ConfigurationError
from ..instructions.composable import build_composable_call, build_raw_composable_call
from ..instructions.models import ComposableCall, Instruction
from ..instructions.resolver import InstructionLike, resolve_instructions
from .triggers import CleanUp, FeeToken

logger = logging.getLogger(__name__)


@dataclass
class PlannedOp:
    """One operation before it is serialized into the quote request."""
    chain_id: int
    deployment: ChainDeployment
    call_data: str
    call_gas_limit: int
    nonce_key: int
    nonce: int
    is_deployed: bool
    init_code: Optional[str] = None
    authorization: Optional[Dict[str, Any]] = None
    is_cleanup: bool = False


@dataclass
class PaymentPlan:
    info: PaymentInfo
    chain_id: int
    sponsored: bool
    is_deployed: bool = True
    init_code: Optional[str] = None
    authorization: Optional[Dict[str, Any]] = None


class QuoteBuilder:
    """
    Builds and requests quotes.

    Usage:
        builder = QuoteBuilder(get_mee_node_provider())
        quote = await builder.get_quote(
            account,
            instructions=[transfer_instruction],
            fee_token=FeeToken(address=usdc, chain_id=8453),
        )
    """

    def __init__(
        self,
        node: MeeNodeProvider,
        sponsorship: Optional[SponsorshipProvider] = None,
        self_hosted_sponsorship: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.node = node
        self.sponsorship = sponsorship
        self.self_hosted_sponsorship = self_hosted_sponsorship
        self._clock = clock

    async def get_quote(
        self,
        account: MultichainAccount,
        instructions: Sequence[InstructionLike],
        fee_token: Optional[FeeToken] = None,
        *,
        sponsorship: bool = False,
        cleanups: Sequence[CleanUp] = (),
        path: str = DEFAULT_QUOTE_PATH,
        eoa: Optional[str] = None,
        lower_bound_timestamp: Optional[int] = None,
        upper_bound_timestamp: Optional[int] = None,
        short_encoding: Optional[bool] = None,
    ) -> Quote:
        resolved = await resolve_instructions(instructions)
        if not resolved:
            raise ConfigurationError("A supertransaction needs at least one instruction")
        self._validate_cleanups(resolved, cleanups)
        if not sponsorship and fee_token is None:
            raise ConfigurationError("A fee token is required unless the supertransaction is sponsored")

        info = await self.node.get_info()
        self._validate_chains(account, resolved, cleanups, info)
        if not sponsorship:
            self._validate_fee_token(account, fee_token, info)

        now = int(self._clock())
        seed = int(self._clock() * 1000)

        payment = await self._plan_payment(account, resolved, fee_token, sponsorship, eoa, seed)

        ops = list(
            await asyncio.gather(
                *(self._plan_instruction(account, instruction, seed + index + 1) for index, instruction in enumerate(resolved))
            )
        )

        cleanup_ops = await asyncio.gather(
            *(
                self._plan_cleanup(account, cleanup, ops, seed + len(ops) + index + 1)
                for index, cleanup in enumerate(cleanups)
            )
        )
        ops.extend(cleanup_ops)

        self._assign_init_data(payment, ops)
        user_ops = self._serialize(
            payment,
            ops,
            now=now,
            lower_bound_timestamp=lower_bound_timestamp,
            upper_bound_timestamp=upper_bound_timestamp,
            short_encoding=short_encoding,
        )

        quote = await self.node.get_quote(QuoteRequest(user_ops=user_ops, payment_info=payment.info), path)
        logger.info(f"Quote {quote.hash}: {len(quote.user_ops)} operations via {path}")

        if sponsorship and self.self_hosted_sponsorship:
            quote = await self._require_sponsorship().sign_quote(payment.chain_id, payment.info.sender, quote)
        return quote

    # -- validation ---------------------------------------------------------

    @staticmethod
    def _validate_cleanups(resolved: Sequence[Instruction], cleanups: Sequence[CleanUp]) -> None:
        for cleanup in cleanups:
            if not cleanup.dependencies and not any(i.chain_id == cleanup.chain_id for i in resolved):
                raise ConfigurationError(
                    f"Cleanup on chain {cleanup.chain_id} has no operation to wait for; "
                    "add an instruction on that chain or declare dependencies",
                    chain_id=cleanup.chain_id,
                )
            for dependency in cleanup.dependencies or []:
                if not 0 <= dependency < len(resolved):
                    raise ConfigurationError(
                        f"Cleanup dependency {dependency} is out of range (0..{len(resolved) - 1})",
                        chain_id=cleanup.chain_id,
                        op_index=dependency,
                    )
                if resolved[dependency].chain_id != cleanup.chain_id:
                    raise ConfigurationError(
                        f"Cleanup on chain {cleanup.chain_id} cannot depend on operation {dependency} "
                        f"on chain {resolved[dependency].chain_id}",
                        chain_id=cleanup.chain_id,
                        op_index=dependency,
                    )

    @staticmethod
    def _validate_chains(
        account: MultichainAccount,
        resolved: Sequence[Instruction],
        cleanups: Sequence[CleanUp],
        info: NodeInfo,
    ) -> None:
        chain_ids = [i.chain_id for i in resolved] + [c.chain_id for c in cleanups]
        for index, chain_id in enumerate(chain_ids):
            if account.deployment_on(chain_id) is None:
                raise ConfigurationError(
                    f"Account is not configured on chain {chain_id}",
                    chain_id=chain_id,
                    op_index=index,
                )
            if not info.supports_chain(chain_id):
                raise ConfigurationError(
                    f"Chain {chain_id} is not supported by the node",
                    chain_id=chain_id,
                    op_index=index,
                )

    @staticmethod
    def _validate_fee_token(account: MultichainAccount, fee_token: FeeToken, info: NodeInfo) -> None:
        if account.deployment_on(fee_token.chain_id) is None:
            raise ConfigurationError(
                f"Account is not configured on fee chain {fee_token.chain_id}",
                chain_id=fee_token.chain_id,
            )
        gas_tokens = info.gas_tokens_on(fee_token.chain_id)
        if gas_tokens is None:
            raise ConfigurationError(
                f"Fee token {fee_token.address} is not supported on chain {fee_token.chain_id}",
                chain_id=fee_token.chain_id,
            )
        listed = any(t.address.lower() == fee_token.address.lower() for t in gas_tokens.payment_tokens)
        if not listed and not gas_tokens.is_arbitrary_payment_tokens_supported:
            raise ConfigurationError(
                f"Fee token {fee_token.address} is not accepted on chain {fee_token.chain_id}",
                chain_id=fee_token.chain_id,
            )

    def _require_sponsorship(self) -> SponsorshipProvider:
        if self.sponsorship is None:
            raise ConfigurationError("Sponsorship requested but no sponsorship provider is configured")
        return self.sponsorship

    # -- planning -----------------------------------------------------------

    async def _plan_payment(
        self,
        account: MultichainAccount,
        resolved: Sequence[Instruction],
        fee_token: Optional[FeeToken],
        sponsorship: bool,
        eoa: Optional[str],
        seed: int,
    ) -> PaymentPlan:
        if sponsorship:
            provider = self._require_sponsorship()
            if fee_token is not None:
                chain_id, token = fee_token.chain_id, fee_token.address
            elif all(i.chain_id in TESTNET_CHAIN_IDS for i in resolved):
                chain_id, token = SPONSORSHIP_TESTNET_CHAIN_ID, SPONSORSHIP_TESTNET_TOKEN_ADDRESS
            else:
                chain_id, token = SPONSORSHIP_CHAIN_ID, SPONSORSHIP_TOKEN_ADDRESS

            nonce, _ = await provider.get_nonce(chain_id, SPONSORSHIP_ACCOUNT_ADDRESS)
            # the sponsorship account is always deployed: no init data
            info = PaymentInfo(
                sender=SPONSORSHIP_ACCOUNT_ADDRESS,
                token=token,
                nonce=str(nonce),
                chain_id=str(chain_id),
                sponsored=True,
                sponsorship_url=provider.base_url,
                eoa=eoa,
            )
            return PaymentPlan(info=info, chain_id=chain_id, sponsored=True)

        deployment = account.deployment_on(fee_token.chain_id, strict=True)
        nonce_key = deployment.nonce_key(seed)
        nonce, is_deployed, init_code, authorization = await asyncio.gather(
            deployment.get_nonce(nonce_key),
            deployment.is_deployed(),
            deployment.get_init_code(),
            deployment.get_delegation_authorization(),
        )
        info = PaymentInfo(
            sender=deployment.address,
            token=fee_token.address,
            nonce=str(nonce),
            chain_id=str(fee_token.chain_id),
            eoa=eoa,
        )
        return PaymentPlan(
            info=info,
            chain_id=fee_token.chain_id,
            sponsored=False,
            is_deployed=is_deployed,
            init_code=init_code,
            authorization=authorization,
        )

    async def _plan_instruction(self, account: MultichainAccount, instruction: Instruction, seed: int) -> PlannedOp:
        deployment = account.deployment_on(instruction.chain_id, strict=True)
        nonce_key = deployment.nonce_key(seed)
        nonce, is_deployed, init_code, authorization = await asyncio.gather(
            deployment.get_nonce(nonce_key),
            deployment.is_deployed(),
            deployment.get_init_code(),
            deployment.get_delegation_authorization(),
        )
        return PlannedOp(
            chain_id=instruction.chain_id,
            deployment=deployment,
            call_data=deployment.encode_calls(instruction.calls, instruction.is_composable),
            call_gas_limit=sum(c.gas_limit or LARGE_DEFAULT_GAS_LIMIT for c in instruction.calls),
            nonce_key=nonce_key,
            nonce=nonce,
            is_deployed=is_deployed,
            init_code=init_code,
            authorization=authorization,
        )

    async def _plan_cleanup(
        self,
        account: MultichainAccount,
        cleanup: CleanUp,
        ops: Sequence[PlannedOp],
        seed: int,
    ) -> PlannedOp:
        deployment = account.deployment_on(cleanup.chain_id, strict=True)
        if cleanup.dependencies:
            dependencies = [ops[i] for i in cleanup.dependencies]
        else:
            same_chain = [op for op in ops if op.chain_id == cleanup.chain_id]
            dependencies = same_chain[-1:]

        call = build_cleanup_call(cleanup, deployment.address, dependencies)
        nonce_key = deployment.nonce_key(seed)
        nonce, is_deployed, init_code, authorization = await asyncio.gather(
            deployment.get_nonce(nonce_key),
            deployment.is_deployed(),
            deployment.get_init_code(),
            deployment.get_delegation_authorization(),
        )
        return PlannedOp(
            chain_id=cleanup.chain_id,
            deployment=deployment,
            call_data=deployment.encode_calls([call], is_composable=True),
            call_gas_limit=cleanup.gas_limit or DEFAULT_CLEANUP_GAS_LIMIT,
            nonce_key=nonce_key,
            nonce=nonce,
            is_deployed=is_deployed,
            init_code=init_code,
            authorization=authorization,
            is_cleanup=True,
        )

    # -- assembly -----------------------------------------------------------

    @staticmethod
    def _assign_init_data(payment: PaymentPlan, ops: Sequence[PlannedOp]) -> None:
        """Attach init code / delegation to the first operation per undeployed chain only."""
        initialized: Set[int] = set()
        if not payment.sponsored and not payment.is_deployed:
            if payment.authorization is not None:
                payment.info.eip7702_auth = payment.authorization
                initialized.add(payment.chain_id)
            elif payment.init_code:
                payment.info.init_code = payment.init_code
                initialized.add(payment.chain_id)

        for op in ops:
            keep = not op.is_deployed and op.chain_id not in initialized and (op.authorization or op.init_code)
            if keep:
                initialized.add(op.chain_id)
            else:
                op.init_code = None
                op.authorization = None

    @staticmethod
    def _serialize(
        payment: PaymentPlan,
        ops: Sequence[PlannedOp],
        *,
        now: int,
        lower_bound_timestamp: Optional[int],
        upper_bound_timestamp: Optional[int],
        short_encoding: Optional[bool],
    ) -> List[QuoteUserOp]:
        next_index: Dict[int, int] = {}
        if not payment.sponsored:
            payment.info.verification_gas_limit = str(FIRST_OP_VERIFICATION_GAS_LIMIT)
            next_index[payment.chain_id] = 1

        lower = lower_bound_timestamp if lower_bound_timestamp is not None else now
        upper = upper_bound_timestamp if upper_bound_timestamp is not None else now + DEFAULT_EXECUTION_WINDOW_S

        user_ops = []
        for op in ops:
            index_in_chain = next_index.get(op.chain_id, 0)
            next_index[op.chain_id] = index_in_chain + 1
            verification_gas = FIRST_OP_VERIFICATION_GAS_LIMIT if index_in_chain == 0 else DEFAULT_VERIFICATION_GAS_LIMIT

            user_ops.append(
                QuoteUserOp(
                    sender=op.deployment.address,
                    call_data=op.call_data,
                    call_gas_limit=str(op.call_gas_limit),
                    nonce=str(op.nonce),
                    chain_id=str(op.chain_id),
                    init_code=op.init_code if op.authorization is None else None,
                    eip7702_auth=op.authorization,
                    verification_gas_limit=str(verification_gas),
                    lower_bound_timestamp=lower,
                    upper_bound_timestamp=max(upper, now + CLEANUP_EXECUTION_WINDOW_S) if op.is_cleanup else upper,
                    is_clean_up_user_op=True if op.is_cleanup else None,
                    short_encoding=short_encoding,
                )
            )
        return user_ops


def build_cleanup_call(
    cleanup: CleanUp,
    account_address: str,
    dependencies: Sequence[PlannedOp],
) -> ComposableCall:
    """
    Sweep transfer gated on the nonces of the operations it depends on.

    Each dependency adds one constrained nonce word after the transfer
    arguments; token contracts ignore trailing call data.
    """
    is_native = cleanup.token_address.lower() == ZERO_ADDRESS
    amount = cleanup.amount
    if amount is None:
        minimum = [greater_than_or_equal_to(1)]
        amount = (
            runtime_native_balance_of(account_address, minimum)
            if is_native
            else runtime_erc20_balance_of(cleanup.token_address, account_address, minimum)
        )

    if is_native:
        call = build_raw_composable_call(cleanup.recipient, "0x00000000", value=amount, gas_limit=cleanup.gas_limit)
    else:
        call = build_composable_call(
            cleanup.token_address,
            "transfer(address,uint256)",
            [cleanup.recipient, amount],
            gas_limit=cleanup.gas_limit,
        )

    nonce_params = [
        param
        for op in dependencies
        for param in runtime_nonce_of(
            op.deployment.address,
            op.nonce_key,
            [greater_than_or_equal_to(op.nonce + 1)],
        ).input_params
    ]
    call_data_params = [p for p in call.input_params if p.param_type == InputParamType.CALL_DATA]
    other_params = [p for p in call.input_params if p.param_type != InputParamType.CALL_DATA]
    return ComposableCall(
        function_sig=call.function_sig,
        input_params=call_data_params + nonce_params + other_params,
        output_params=call.output_params,
        gas_limit=call.gas_limit,
    )
