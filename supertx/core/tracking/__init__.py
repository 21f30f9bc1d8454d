"""
Execution tracking: status aggregation, explorer links and receipt polling.
"""

from .explorer import build_explorer_links, get_explorer_tx_link, get_jiffyscan_link, get_meescan_link
from .receipts import ReceiptTracker, SupertransactionReceipt
from .status import StatusSummary, SupertransactionStatus, TERMINAL_OP_STATUSES, aggregate_status

__all__ = [
    "build_explorer_links",
    "get_explorer_tx_link",
    "get_jiffyscan_link",
    "get_meescan_link",
    "ReceiptTracker",
    "SupertransactionReceipt",
    "StatusSummary",
    "SupertransactionStatus",
    "TERMINAL_OP_STATUSES",
    "aggregate_status",
]
