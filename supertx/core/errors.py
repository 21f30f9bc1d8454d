"""
Error Classification

Every error raised by the client carries an ErrorContext so callers can tell
which chain and which operation index it belongs to.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of errors raised while building or executing a supertransaction."""

    CONFIGURATION = "configuration"  # Unsupported chain/token, bad cleanup index
    VALIDATION = "validation"        # Malformed instruction or call
    NETWORK = "network"              # Node / RPC transport
    EXECUTION = "execution"          # Reverts, malformed execution data
    PERMIT = "permit"                # Token lacks permit capability
    TIMEOUT = "timeout"              # Caller-supplied polling bound reached


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.CONFIGURATION
    chain_id: Optional[int] = None
    op_index: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


class SupertxError(Exception):
    """Base class for all supertx errors."""

    category = ErrorCategory.CONFIGURATION

    def __init__(
        self,
        message: str,
        *,
        chain_id: Optional[int] = None,
        op_index: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = ErrorContext(
            category=self.category,
            chain_id=chain_id,
            op_index=op_index,
            details=details or {},
        )

    @property
    def chain_id(self) -> Optional[int]:
        return self.context.chain_id

    @property
    def op_index(self) -> Optional[int]:
        return self.context.op_index


class ConfigurationError(SupertxError):
    """Request rejected before any network call (chain, fee token, cleanup index)."""
    category = ErrorCategory.CONFIGURATION


class InstructionError(SupertxError):
    """Malformed instruction, call or runtime value."""
    category = ErrorCategory.VALIDATION


class NodeApiError(SupertxError):
    """Execution node or sponsorship service returned an error."""
    category = ErrorCategory.NETWORK

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class RpcError(SupertxError):
    """Chain JSON-RPC call failed."""
    category = ErrorCategory.NETWORK


class ExecutionError(SupertxError):
    """An operation errored or returned malformed execution data."""
    category = ErrorCategory.EXECUTION


class SupertransactionFailedError(ExecutionError):
    """The aggregate status of a supertransaction is FAILED or MINED_FAIL."""

    def __init__(self, message: str, receipt: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.receipt = receipt


class PermitNotSupportedError(SupertxError):
    """Token exposes neither nonces() nor DOMAIN_SEPARATOR(); use on-chain signing."""
    category = ErrorCategory.PERMIT


class PollingTimeoutError(SupertxError):
    """Receipt polling exceeded the caller's attempt or time bound."""
    category = ErrorCategory.TIMEOUT


_FAILED_OP_PATTERN = re.compile(r'errorArgs=\[.*?,\s*"([^"]+)"\]')
_LABEL_PATTERN = re.compile(r"^(Error|Details|Message):\s*", re.IGNORECASE)


def parse_error_message(error: Any) -> str:
    """
    Extract a readable message from the error envelopes the node and bundlers return.

    Handles plain strings, ``{"error": ...}``, ``{"errors": [...]}``, ``{"message": ...}``,
    ``{"statusText": ...}`` and bundler FailedOp strings carrying ``errorArgs=[..., "AA21 ..."]``.
    """
    if error is None:
        return "Unknown error"

    if isinstance(error, BaseException):
        return parse_error_message(str(error))

    if isinstance(error, str):
        match = _FAILED_OP_PATTERN.search(error)
        if match:
            return match.group(1)
        return _LABEL_PATTERN.sub("", error.strip()) or "Unknown error"

    if isinstance(error, dict):
        if error.get("error") is not None:
            return parse_error_message(error["error"])
        errors = error.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict):
                return parse_error_message(first.get("message") or first)
            return parse_error_message(first)
        for key in ("message", "shortMessage", "statusText"):
            if error.get(key):
                return parse_error_message(error[key])
        return json.dumps(error)

    if isinstance(error, list) and error:
        return parse_error_message(error[0])

    return str(error)
