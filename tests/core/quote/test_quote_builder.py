"""
Tests for quote building: nonce keys, gas, init data, cleanups and sponsorship.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from supertx.constants import SPONSORSHIP_ACCOUNT_ADDRESS, ZERO_ADDRESS
from supertx.core.abi import pad32
from supertx.core.account import ChainDeployment, Nexus7579Encoder
from supertx.core.composability.models import ConstraintType, InputParamFetcherType, InputParamType
from supertx.core.errors import ConfigurationError
from supertx.core.instructions import AbstractCall, Instruction
from supertx.core.quote import CleanUp, FeeToken, QuoteBuilder, build_cleanup_call
from supertx.core.quote import builder as builder_module
from supertx.core.quote.builder import PlannedOp
from supertx.types.quote import Quote

from tests.factories import ACCOUNT, RECIPIENT, USDC_BASE, FakeReader, make_account, quote_payload

NOW = 1_700_000_000
FEE = FeeToken(address=USDC_BASE, chain_id=8453)
GET_NONCE_SELECTOR = bytes.fromhex("35567e1a")


def transfer(chain_id: int, value: int = 1) -> Instruction:
    return Instruction(calls=[AbstractCall(to=RECIPIENT, value=value)], chain_id=chain_id)


def sent_request(node):
    request, path = node.get_quote.await_args.args
    return request, path


@pytest.fixture
def builder(fake_node):
    return QuoteBuilder(fake_node, clock=lambda: float(NOW))


class TestQuoteBuilder:
    @pytest.mark.asyncio
    async def test_every_operation_gets_its_own_nonce_key(self, fake_node):
        readers = {8453: FakeReader(), 10: FakeReader()}
        account = make_account(readers)
        builder = QuoteBuilder(fake_node, clock=lambda: float(NOW))

        await builder.get_quote(account, [transfer(8453), transfer(8453), transfer(10)], FEE)

        keys = readers[8453].nonce_keys + readers[10].nonce_keys
        # payment op + three instructions
        assert len(keys) == 4
        assert len(set(keys)) == 4

    @pytest.mark.asyncio
    async def test_verification_gas_counts_per_chain(self, builder, fake_node, account):
        await builder.get_quote(account, [transfer(8453), transfer(10), transfer(10)], FEE)

        request, path = sent_request(fake_node)
        assert path == "quote"
        assert request.payment_info.verification_gas_limit == "250000"
        assert [op.verification_gas_limit for op in request.user_ops] == ["150000", "250000", "150000"]
        assert {op.lower_bound_timestamp for op in request.user_ops} == {NOW}
        assert {op.upper_bound_timestamp for op in request.user_ops} == {NOW + 180}

    @pytest.mark.asyncio
    async def test_init_code_placed_once_per_chain(self, builder, fake_node):
        readers = {
            8453: FakeReader(deployed=False, init_code="0xbeef"),
            10: FakeReader(deployed=False, init_code="0xfeed"),
        }
        account = make_account(readers)

        await builder.get_quote(account, [transfer(8453), transfer(10), transfer(10)], FEE)

        request, _ = sent_request(fake_node)
        assert request.payment_info.init_code == "0xbeef"
        assert [op.init_code for op in request.user_ops] == [None, "0xfeed", None]

    @pytest.mark.asyncio
    async def test_delegation_replaces_init_code(self, builder, fake_node):
        authorization = {"address": ACCOUNT, "chainId": 10, "nonce": 0}
        readers = {
            8453: FakeReader(),
            10: FakeReader(deployed=False, init_code="0xfeed", authorization=authorization),
        }
        account = make_account(readers)

        await builder.get_quote(account, [transfer(10)], FEE)

        request, _ = sent_request(fake_node)
        [op] = request.user_ops
        assert op.eip7702_auth == authorization
        assert op.init_code is None

    @pytest.mark.asyncio
    async def test_explicit_time_bounds(self, builder, fake_node, account):
        await builder.get_quote(
            account,
            [transfer(8453)],
            FEE,
            lower_bound_timestamp=NOW + 60,
            upper_bound_timestamp=NOW + 600,
        )

        request, _ = sent_request(fake_node)
        assert request.user_ops[0].lower_bound_timestamp == NOW + 60
        assert request.user_ops[0].upper_bound_timestamp == NOW + 600

    @pytest.mark.asyncio
    async def test_cleanup_appended_with_wider_window(self, builder, fake_node, account):
        cleanup = CleanUp(chain_id=8453, token_address=USDC_BASE, recipient=RECIPIENT)

        await builder.get_quote(account, [transfer(8453)], FEE, cleanups=[cleanup])

        request, _ = sent_request(fake_node)
        regular, sweep = request.user_ops
        assert regular.is_clean_up_user_op is None
        assert sweep.is_clean_up_user_op is True
        assert sweep.call_gas_limit == "300000"
        assert sweep.upper_bound_timestamp == NOW + 900
        assert regular.upper_bound_timestamp == NOW + 180
        assert "isCleanUpUserOp" not in request.to_wire()["userOps"][0]

    @pytest.mark.asyncio
    async def test_cleanup_dependency_checked_before_network(self, builder, fake_node, account):
        cleanup = CleanUp(chain_id=8453, token_address=USDC_BASE, recipient=RECIPIENT, dependencies=[3])

        with pytest.raises(ConfigurationError):
            await builder.get_quote(account, [transfer(8453)], FEE, cleanups=[cleanup])

        fake_node.get_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cleanup_waits_for_last_operation_on_its_chain(self, builder, fake_node, account, monkeypatch):
        sweep_builder = MagicMock(wraps=builder_module.build_cleanup_call)
        monkeypatch.setattr(builder_module, "build_cleanup_call", sweep_builder)
        instructions = [
            Instruction(calls=[AbstractCall(to=RECIPIENT, value=1, gas_limit=111)], chain_id=8453),
            Instruction(calls=[AbstractCall(to=RECIPIENT, value=1, gas_limit=222)], chain_id=8453),
            transfer(10),
        ]
        cleanup = CleanUp(chain_id=8453, token_address=USDC_BASE, recipient=RECIPIENT)

        await builder.get_quote(account, instructions, FEE, cleanups=[cleanup])

        _, _, dependencies = sweep_builder.call_args.args
        [dependency] = dependencies
        assert dependency.chain_id == 8453
        assert dependency.call_gas_limit == 222

    @pytest.mark.asyncio
    async def test_cleanup_without_operation_on_its_chain_rejected(self, builder, fake_node, account):
        cleanup = CleanUp(chain_id=10, token_address=USDC_BASE, recipient=RECIPIENT)

        with pytest.raises(ConfigurationError, match="no operation to wait for") as exc_info:
            await builder.get_quote(account, [transfer(8453)], FEE, cleanups=[cleanup])

        assert exc_info.value.chain_id == 10
        fake_node.get_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cleanup_dependency_must_share_chain(self, builder, fake_node, account):
        cleanup = CleanUp(chain_id=8453, token_address=USDC_BASE, recipient=RECIPIENT, dependencies=[0])

        with pytest.raises(ConfigurationError, match="cannot depend"):
            await builder.get_quote(account, [transfer(10)], FEE, cleanups=[cleanup])

    @pytest.mark.asyncio
    async def test_empty_instructions_rejected(self, builder, account):
        with pytest.raises(ConfigurationError):
            await builder.get_quote(account, [None, []], FEE)

    @pytest.mark.asyncio
    async def test_chain_without_deployment_rejected(self, builder, account):
        with pytest.raises(ConfigurationError, match="not configured on chain 42161"):
            await builder.get_quote(account, [transfer(42161)], FEE)

    @pytest.mark.asyncio
    async def test_chain_unsupported_by_node_rejected(self, builder):
        account = make_account({8453: FakeReader(), 1: FakeReader()})

        with pytest.raises(ConfigurationError, match="not supported by the node") as exc_info:
            await builder.get_quote(account, [transfer(8453), transfer(1)], FEE)

        assert exc_info.value.op_index == 1

    @pytest.mark.asyncio
    async def test_fee_token_required(self, builder, fake_node, account):
        with pytest.raises(ConfigurationError, match="fee token is required"):
            await builder.get_quote(account, [transfer(8453)])

        fake_node.get_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unlisted_fee_token_rejected(self, builder, account):
        with pytest.raises(ConfigurationError, match="not accepted"):
            await builder.get_quote(account, [transfer(8453)], FeeToken(address=RECIPIENT, chain_id=8453))

    @pytest.mark.asyncio
    async def test_fee_token_checked_case_insensitively(self, builder, fake_node, account):
        await builder.get_quote(account, [transfer(8453)], FeeToken(address=USDC_BASE.upper().replace("0X", "0x"), chain_id=8453))

        fake_node.get_quote.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sponsored_payment(self, fake_node, account):
        sponsorship = MagicMock()
        sponsorship.base_url = "https://sponsor.example/v1"
        sponsorship.get_nonce = AsyncMock(return_value=(4, 0))
        signed = Quote.model_validate(quote_payload(sponsored=True))
        sponsorship.sign_quote = AsyncMock(return_value=signed)
        builder = QuoteBuilder(fake_node, sponsorship=sponsorship, self_hosted_sponsorship=True, clock=lambda: float(NOW))

        quote = await builder.get_quote(account, [transfer(8453)], sponsorship=True)

        request, _ = sent_request(fake_node)
        assert request.payment_info.sender == SPONSORSHIP_ACCOUNT_ADDRESS
        assert request.payment_info.sponsored is True
        assert request.payment_info.nonce == "4"
        assert request.payment_info.sponsorship_url == "https://sponsor.example/v1"
        assert request.payment_info.verification_gas_limit is None
        # no payment op on the account's chain, so the first op is the heavy one
        assert request.user_ops[0].verification_gas_limit == "250000"
        sponsorship.sign_quote.assert_awaited_once()
        assert sponsorship.sign_quote.await_args.args[:2] == (8453, SPONSORSHIP_ACCOUNT_ADDRESS)
        assert quote is signed

    @pytest.mark.asyncio
    async def test_sponsorship_without_provider(self, builder, account):
        with pytest.raises(ConfigurationError, match="no sponsorship provider"):
            await builder.get_quote(account, [transfer(8453)], sponsorship=True)

    @pytest.mark.asyncio
    async def test_custom_quote_path_and_eoa(self, builder, fake_node, account):
        await builder.get_quote(account, [transfer(8453)], FEE, path="quote-permit", eoa=RECIPIENT)

        request, path = sent_request(fake_node)
        assert path == "quote-permit"
        assert request.payment_info.eoa == RECIPIENT


def planned(nonce_key: int, nonce: int) -> PlannedOp:
    deployment = ChainDeployment(8453, ACCOUNT, FakeReader(), Nexus7579Encoder())
    return PlannedOp(
        chain_id=8453,
        deployment=deployment,
        call_data="0x",
        call_gas_limit=1,
        nonce_key=nonce_key,
        nonce=nonce,
        is_deployed=True,
    )


class TestBuildCleanupCall:
    def test_token_sweep_waits_on_dependency_nonce(self):
        cleanup = CleanUp(chain_id=8453, token_address=USDC_BASE, recipient=RECIPIENT)

        call = build_cleanup_call(cleanup, ACCOUNT, [planned(nonce_key=77, nonce=5)])

        *_, nonce_param, target = call.input_params
        assert target.param_type == InputParamType.TARGET
        assert nonce_param.param_type == InputParamType.CALL_DATA
        assert nonce_param.fetcher_type == InputParamFetcherType.STATIC_CALL
        assert GET_NONCE_SELECTOR in nonce_param.param_data
        [constraint] = nonce_param.constraints
        assert constraint.constraint_type == ConstraintType.GTE
        assert constraint.reference_data == pad32(6)

    def test_default_amount_is_full_balance(self):
        cleanup = CleanUp(chain_id=8453, token_address=USDC_BASE, recipient=RECIPIENT)

        call = build_cleanup_call(cleanup, ACCOUNT, [])

        balance_params = [p for p in call.input_params if p.fetcher_type == InputParamFetcherType.BALANCE]
        assert len(balance_params) == 1
        assert balance_params[0].constraints[0].reference_data == pad32(1)

    def test_native_sweep_uses_value(self):
        cleanup = CleanUp(chain_id=8453, token_address=ZERO_ADDRESS, recipient=RECIPIENT)

        call = build_cleanup_call(cleanup, ACCOUNT, [planned(nonce_key=1, nonce=0), planned(nonce_key=2, nonce=3)])

        assert call.function_sig == "0x00000000"
        types = [p.param_type for p in call.input_params]
        assert types == [
            InputParamType.CALL_DATA,
            InputParamType.CALL_DATA,
            InputParamType.TARGET,
            InputParamType.VALUE,
        ]
        assert call.input_params[-1].fetcher_type == InputParamFetcherType.BALANCE

    def test_fixed_amount(self):
        cleanup = CleanUp(chain_id=8453, token_address=USDC_BASE, recipient=RECIPIENT, amount=10)

        call = build_cleanup_call(cleanup, ACCOUNT, [])

        assert all(p.fetcher_type == InputParamFetcherType.RAW_BYTES for p in call.input_params)
