from .info import GasTokens, NodeInfo, PaymentToken, SupportedChain
from .quote import (
    ExecuteResponse,
    ExecutionStatus,
    ExplorerResponse,
    FilledPaymentInfo,
    FilledUserOp,
    MeeUserOp,
    PaymentInfo,
    Quote,
    QuoteRequest,
    QuoteUserOp,
    SignedQuote,
    UserOpWithStatus,
)

__all__ = [
    "GasTokens",
    "NodeInfo",
    "PaymentToken",
    "SupportedChain",
    "ExecuteResponse",
    "ExecutionStatus",
    "ExplorerResponse",
    "FilledPaymentInfo",
    "FilledUserOp",
    "MeeUserOp",
    "PaymentInfo",
    "Quote",
    "QuoteRequest",
    "QuoteUserOp",
    "SignedQuote",
    "UserOpWithStatus",
]
