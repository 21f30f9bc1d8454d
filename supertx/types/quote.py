"""
Wire models for quote requests, quotes, signed quotes and explorer payloads.

Quotes are frozen: signing produces a new SignedQuote instead of mutating.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExecutionStatus(str, Enum):
    """Per-operation status as reported by the explorer endpoint."""
    PENDING = "PENDING"
    MINING = "MINING"
    MINED_SUCCESS = "MINED_SUCCESS"
    MINED_FAIL = "MINED_FAIL"
    FAILED = "FAILED"
    SUCCESS = "SUCCESS"  # legacy alias of MINED_SUCCESS
    ERROR = "ERROR"


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class PaymentInfo(WireModel):
    sender: str = Field(description="Account paying the fee")
    token: str = Field(description="Fee token address")
    nonce: str = Field(description="Payment operation nonce")
    chain_id: str = Field(alias="chainId", description="Fee chain id")
    init_code: Optional[str] = Field(default=None, alias="initCode")
    eip7702_auth: Optional[Dict[str, Any]] = Field(default=None, alias="eip7702Auth")
    eoa: Optional[str] = Field(default=None, description="Permit owner for quote-permit requests")
    sponsored: Optional[bool] = Field(default=None, description="Fee paid by the sponsorship account")
    sponsorship_url: Optional[str] = Field(default=None, alias="sponsorshipUrl")
    call_gas_limit: Optional[str] = Field(default=None, alias="callGasLimit")
    verification_gas_limit: Optional[str] = Field(default=None, alias="verificationGasLimit")


class FilledPaymentInfo(PaymentInfo):
    token_amount: str = Field(default="0", alias="tokenAmount")
    token_wei_amount: str = Field(default="0", alias="tokenWeiAmount")
    token_value: str = Field(default="0", alias="tokenValue")


class QuoteUserOp(WireModel):
    """One operation in a quote request."""
    sender: str
    call_data: str = Field(alias="callData")
    call_gas_limit: str = Field(alias="callGasLimit")
    nonce: str
    chain_id: str = Field(alias="chainId")
    init_code: Optional[str] = Field(default=None, alias="initCode")
    verification_gas_limit: Optional[str] = Field(default=None, alias="verificationGasLimit")
    lower_bound_timestamp: Optional[int] = Field(default=None, alias="lowerBoundTimestamp")
    upper_bound_timestamp: Optional[int] = Field(default=None, alias="upperBoundTimestamp")
    eip7702_auth: Optional[Dict[str, Any]] = Field(default=None, alias="eip7702Auth")
    is_clean_up_user_op: Optional[bool] = Field(default=None, alias="isCleanUpUserOp")
    short_encoding: Optional[bool] = Field(default=None, alias="shortEncoding")


class QuoteRequest(WireModel):
    user_ops: List[QuoteUserOp] = Field(alias="userOps")
    payment_info: PaymentInfo = Field(alias="paymentInfo")


class MeeUserOp(WireModel):
    sender: str
    nonce: str
    init_code: str = Field(default="0x", alias="initCode")
    call_data: str = Field(alias="callData")
    call_gas_limit: str = Field(alias="callGasLimit")
    verification_gas_limit: str = Field(default="0", alias="verificationGasLimit")
    max_fee_per_gas: str = Field(default="0", alias="maxFeePerGas")
    max_priority_fee_per_gas: str = Field(default="0", alias="maxPriorityFeePerGas")
    paymaster_and_data: str = Field(default="0x", alias="paymasterAndData")
    pre_verification_gas: str = Field(default="0", alias="preVerificationGas")


class FilledUserOp(WireModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True, frozen=True)

    user_op: MeeUserOp = Field(alias="userOp")
    user_op_hash: str = Field(alias="userOpHash")
    mee_user_op_hash: Optional[str] = Field(default=None, alias="meeUserOpHash")
    lower_bound_timestamp: Optional[str] = Field(default=None, alias="lowerBoundTimestamp")
    upper_bound_timestamp: Optional[str] = Field(default=None, alias="upperBoundTimestamp")
    max_gas_limit: Optional[str] = Field(default=None, alias="maxGasLimit")
    max_fee_per_gas: Optional[str] = Field(default=None, alias="maxFeePerGas")
    chain_id: str = Field(alias="chainId")
    is_clean_up_user_op: bool = Field(default=False, alias="isCleanUpUserOp")
    short_encoding: Optional[bool] = Field(default=None, alias="shortEncoding")


class Quote(WireModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True, frozen=True)

    hash: str = Field(description="Quote hash the user signs")
    node: str = Field(description="Quoting node address")
    commitment: str = Field(description="Node commitment")
    payment_info: FilledPaymentInfo = Field(alias="paymentInfo")
    user_ops: List[FilledUserOp] = Field(alias="userOps")

    def with_signature(self, signature: str) -> "SignedQuote":
        return SignedQuote(**self.model_dump(by_alias=True), signature=signature)


class SignedQuote(Quote):
    signature: str = Field(description="Prefix-tagged signature")


class ExecuteResponse(WireModel):
    hash: str


class UserOpWithStatus(FilledUserOp):
    execution_status: ExecutionStatus = Field(alias="executionStatus")
    execution_data: Optional[str] = Field(default=None, alias="executionData")
    execution_error: Optional[str] = Field(default=None, alias="executionError")


class ExplorerResponse(WireModel):
    hash: Optional[str] = None
    node: str = ""
    commitment: str = ""
    payment_info: FilledPaymentInfo = Field(alias="paymentInfo")
    user_ops: List[UserOpWithStatus] = Field(alias="userOps")
