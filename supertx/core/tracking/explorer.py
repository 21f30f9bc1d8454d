"""
Explorer links for a supertransaction and its operations.
"""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from ...config import settings
from ...types.quote import UserOpWithStatus


def get_meescan_link(hash: str, base_url: Optional[str] = None) -> str:
    return f"{(base_url or settings.meescan_url).rstrip('/')}/details/{hash}"


def get_jiffyscan_link(user_op_hash: str, base_url: Optional[str] = None) -> str:
    return f"{(base_url or settings.jiffyscan_url).rstrip('/')}/tx/{user_op_hash}"


def get_explorer_tx_link(
    tx_hash: str,
    chain_id: int,
    explorer_urls: Optional[Mapping[int, str]] = None,
) -> Optional[str]:
    explorer_urls = settings.chain_explorer_urls if explorer_urls is None else explorer_urls
    base_url = explorer_urls.get(int(chain_id))
    if not base_url:
        return None
    return f"{base_url.rstrip('/')}/tx/{tx_hash}"


def build_explorer_links(
    hash: str,
    user_ops: Sequence[UserOpWithStatus],
    explorer_urls: Optional[Mapping[int, str]] = None,
) -> List[str]:
    """One overview link, then a chain explorer link (when known) and a jiffyscan link per operation."""
    links = [get_meescan_link(hash)]
    for op in user_ops:
        if op.execution_data:
            tx_link = get_explorer_tx_link(op.execution_data, int(op.chain_id), explorer_urls)
            if tx_link:
                links.append(tx_link)
        links.append(get_jiffyscan_link(op.user_op_hash))
    return links
