"""
Supertransaction status aggregation.

Per-operation statuses (and, once fetched, chain receipts) fold into one
overall status. Rules are checked in priority order; the first match wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from ...types.quote import ExecutionStatus, UserOpWithStatus


class SupertransactionStatus(str, Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    MINING = "MINING"
    MINED_SUCCESS = "MINED_SUCCESS"
    MINED_FAIL = "MINED_FAIL"
    FAILED = "FAILED"


TERMINAL_OP_STATUSES = frozenset(
    {
        ExecutionStatus.MINED_SUCCESS,
        ExecutionStatus.MINED_FAIL,
        ExecutionStatus.FAILED,
        ExecutionStatus.SUCCESS,
        ExecutionStatus.ERROR,
    }
)

_SUCCESS_STATUSES = frozenset({ExecutionStatus.MINED_SUCCESS, ExecutionStatus.SUCCESS})


@dataclass(frozen=True)
class StatusSummary:
    status: SupertransactionStatus
    message: str
    finalised: bool


def is_rejected(receipt: Any) -> bool:
    return isinstance(receipt, BaseException)


def _first_index(user_ops: Sequence[UserOpWithStatus], *statuses: ExecutionStatus) -> Optional[int]:
    for index, op in enumerate(user_ops):
        if op.execution_status in statuses:
            return index
    return None


def aggregate_status(
    user_ops: Sequence[UserOpWithStatus],
    receipts: Optional[Sequence[Any]] = None,
) -> StatusSummary:
    """
    Fold operation statuses into one.

    ``receipts`` is aligned with ``user_ops``; an exception entry means the
    receipt fetch was rejected, ``None`` means it was not fetched.
    """
    receipts = receipts or []
    rejected = [index for index, receipt in enumerate(receipts) if is_rejected(receipt)]
    all_terminal = all(op.execution_status in TERMINAL_OP_STATUSES for op in user_ops)

    def summary(status: SupertransactionStatus, message: str) -> StatusSummary:
        finalised = status in (SupertransactionStatus.FAILED, SupertransactionStatus.MINED_FAIL) or all_terminal
        return StatusSummary(status=status, message=message, finalised=finalised)

    index = _first_index(user_ops, ExecutionStatus.FAILED, ExecutionStatus.ERROR)
    if index is not None:
        error = user_ops[index].execution_error or "execution failed"
        return summary(SupertransactionStatus.FAILED, f"Operation {index} failed: {error}")

    index = _first_index(user_ops, ExecutionStatus.MINED_FAIL)
    if index is not None:
        error = user_ops[index].execution_error or "reverted on chain"
        return summary(SupertransactionStatus.MINED_FAIL, f"Operation {index} mined with failure: {error}")

    index = _first_index(user_ops, ExecutionStatus.MINING)
    if index is not None:
        return summary(SupertransactionStatus.MINING, f"Operation {index} is being mined")

    index = _first_index(user_ops, ExecutionStatus.PENDING)
    if index is not None:
        if rejected:
            return summary(
                SupertransactionStatus.SUBMITTED,
                f"Operation {index} is pending; receipt for operation {rejected[0]} not available yet",
            )
        return summary(SupertransactionStatus.PENDING, f"Operation {index} is pending")

    if user_ops and all(op.execution_status in _SUCCESS_STATUSES for op in user_ops):
        if rejected:
            return summary(
                SupertransactionStatus.MINING,
                f"Receipt for operation {rejected[0]} not available yet",
            )
        return summary(SupertransactionStatus.MINED_SUCCESS, "All operations mined successfully")

    return summary(SupertransactionStatus.PENDING, "Waiting for operations")
