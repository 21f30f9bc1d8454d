"""
Receipt tracking for submitted supertransactions.

get_supertransaction_receipt() takes one snapshot from the explorer endpoint;
wait_for_supertransaction_receipt() polls it in an explicit loop until the
supertransaction is finalised or a caller-supplied bound is hit.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...config import settings
from ...logging_config import bind_supertransaction, clear_supertransaction
from ...providers.mee_node import MeeNodeProvider
from ...providers.rpc import RpcRegistry
from ...providers.sponsorship import SponsorshipConfig, SponsorshipProvider
from ...types.quote import ExecutionStatus, ExplorerResponse, UserOpWithStatus
from ..errors import ExecutionError, PollingTimeoutError, SupertransactionFailedError, parse_error_message
from .explorer import build_explorer_links
from .status import SupertransactionStatus, TERMINAL_OP_STATUSES, aggregate_status

logger = logging.getLogger(__name__)

_TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")

_MINED_STATUSES = frozenset(
    {ExecutionStatus.MINED_SUCCESS, ExecutionStatus.MINED_FAIL, ExecutionStatus.SUCCESS}
)


@dataclass
class SupertransactionReceipt:
    hash: str
    status: SupertransactionStatus
    message: str
    finalised: bool
    explorer: ExplorerResponse
    explorer_links: List[str] = field(default_factory=list)
    # aligned with explorer.user_ops; None = not fetched, exception = rejected
    receipts: Optional[List[Any]] = None

    @property
    def user_ops(self) -> List[UserOpWithStatus]:
        return self.explorer.user_ops


class ReceiptTracker:
    """
    Usage:
        tracker = ReceiptTracker(get_mee_node_provider(), RpcRegistry())
        receipt = await tracker.wait_for_supertransaction_receipt(hash, timeout_s=300)
    """

    def __init__(
        self,
        node: MeeNodeProvider,
        rpc: RpcRegistry,
        sponsorship: Optional[SponsorshipProvider] = None,
        polling_interval_ms: Optional[int] = None,
        confirmations: Optional[int] = None,
    ) -> None:
        self.node = node
        self.rpc = rpc
        self.sponsorship = sponsorship
        self.polling_interval_ms = polling_interval_ms or settings.polling_interval_ms
        self.confirmations = confirmations if confirmations is not None else settings.receipt_confirmations
        # sponsorship services named by explorer responses, keyed by URL
        self._sponsorship_by_url: Dict[str, SponsorshipProvider] = {}

    @staticmethod
    def _check_operations(explorer: ExplorerResponse) -> None:
        for index, op in enumerate(explorer.user_ops):
            chain_id = int(op.chain_id)
            if op.execution_status == ExecutionStatus.ERROR:
                raise ExecutionError(
                    parse_error_message(op.execution_error or "Operation errored"),
                    chain_id=chain_id,
                    op_index=index,
                )
            if op.execution_status in _MINED_STATUSES and not _TX_HASH_PATTERN.match(op.execution_data or ""):
                raise ExecutionError(
                    f"Malformed execution data for operation {index}: {op.execution_data!r}",
                    chain_id=chain_id,
                    op_index=index,
                )

    def _sponsorship_for(self, explorer: ExplorerResponse) -> SponsorshipProvider:
        url = explorer.payment_info.sponsorship_url
        if self.sponsorship is not None and (not url or url == self.sponsorship.base_url):
            return self.sponsorship
        base_url = url or settings.sponsorship_url or settings.mee_node_url
        provider = self._sponsorship_by_url.get(base_url)
        if provider is None:
            provider = SponsorshipProvider(
                SponsorshipConfig(
                    base_url=base_url,
                    api_key=settings.mee_api_key,
                    timeout_s=settings.request_timeout_seconds,
                )
            )
            self._sponsorship_by_url[base_url] = provider
        return provider

    async def close(self) -> None:
        for provider in self._sponsorship_by_url.values():
            await provider.close()
        self._sponsorship_by_url.clear()

    async def _fetch_receipt(self, explorer: ExplorerResponse, index: int, op: UserOpWithStatus) -> Any:
        if op.is_clean_up_user_op and op.execution_status != ExecutionStatus.MINED_SUCCESS:
            return None

        chain_id = int(op.chain_id)
        if explorer.payment_info.sponsored and index == 0:
            return await self._sponsorship_for(explorer).get_receipt(chain_id, op.execution_data)

        return await self.rpc.get(chain_id).wait_for_transaction_receipt(
            op.execution_data,
            confirmations=self.confirmations,
            poll_interval_s=self.polling_interval_ms / 1000,
        )

    async def get_supertransaction_receipt(
        self,
        hash: str,
        wait_for_receipts: bool = True,
    ) -> SupertransactionReceipt:
        bind_supertransaction(hash)
        try:
            return await self._snapshot(hash, wait_for_receipts)
        finally:
            clear_supertransaction()

    async def _snapshot(self, hash: str, wait_for_receipts: bool) -> SupertransactionReceipt:
        explorer = await self.node.get_explorer(hash)
        self._check_operations(explorer)

        receipts: Optional[List[Any]] = None
        all_terminal = all(op.execution_status in TERMINAL_OP_STATUSES for op in explorer.user_ops)
        if all_terminal and wait_for_receipts:
            receipts = list(
                await asyncio.gather(
                    *(self._fetch_receipt(explorer, index, op) for index, op in enumerate(explorer.user_ops)),
                    return_exceptions=True,
                )
            )
            for index, receipt in enumerate(receipts):
                if isinstance(receipt, BaseException):
                    logger.warning(f"Receipt for operation {index} of {hash} unavailable: {receipt}")

        summary = aggregate_status(explorer.user_ops, receipts)
        return SupertransactionReceipt(
            hash=hash,
            status=summary.status,
            message=summary.message,
            finalised=summary.finalised,
            explorer=explorer,
            explorer_links=build_explorer_links(hash, explorer.user_ops),
            receipts=receipts,
        )

    async def wait_for_supertransaction_receipt(
        self,
        hash: str,
        polling_interval_ms: Optional[int] = None,
        timeout_s: Optional[float] = None,
        max_attempts: Optional[int] = None,
        wait_for_receipts: bool = True,
    ) -> SupertransactionReceipt:
        """
        Poll until the supertransaction is finalised.

        Unbounded unless ``timeout_s`` (or ``settings.polling_timeout_seconds``)
        or ``max_attempts`` is given.

        Raises:
            ExecutionError: An operation reported ERROR or malformed execution data
            SupertransactionFailedError: Final status is FAILED or MINED_FAIL
            PollingTimeoutError: A polling bound was reached first
        """
        interval_s = (polling_interval_ms or self.polling_interval_ms) / 1000
        if timeout_s is None:
            timeout_s = settings.polling_timeout_seconds

        bind_supertransaction(hash)
        try:
            return await self._poll(hash, interval_s, timeout_s, max_attempts, wait_for_receipts)
        finally:
            clear_supertransaction()

    async def _poll(
        self,
        hash: str,
        interval_s: float,
        timeout_s: Optional[float],
        max_attempts: Optional[int],
        wait_for_receipts: bool,
    ) -> SupertransactionReceipt:
        start_time = time.time()
        attempts = 0

        while True:
            attempts += 1
            receipt = await self._snapshot(hash, wait_for_receipts)
            logger.debug(f"Poll {attempts} for {hash}: {receipt.status.value}")

            if receipt.finalised:
                if receipt.status in (SupertransactionStatus.FAILED, SupertransactionStatus.MINED_FAIL):
                    logger.error(f"Supertransaction {hash} {receipt.status.value}: {receipt.message}")
                    raise SupertransactionFailedError(parse_error_message(receipt.message), receipt=receipt)
                logger.info(f"Supertransaction {hash} finalised: {receipt.status.value}")
                return receipt

            if max_attempts is not None and attempts >= max_attempts:
                raise PollingTimeoutError(
                    f"Supertransaction {hash} still {receipt.status.value} after {attempts} attempts",
                    details={"status": receipt.status.value},
                )
            if timeout_s is not None and time.time() - start_time >= timeout_s:
                raise PollingTimeoutError(
                    f"Supertransaction {hash} still {receipt.status.value} after {timeout_s}s",
                    details={"status": receipt.status.value},
                )

            await asyncio.sleep(interval_s)
