"""
Quote signing strategies: simple, permit and on-chain.

Every signature is a fixed protocol prefix followed by the ABI-encoded
payload, so the node can pick the verifier from the prefix alone.
"""

from .fusion import sign_fusion_quote
from .onchain import append_quote_hash, build_trigger_call, sign_onchain_quote
from .permit import build_permit_typed_data, compute_domain_separator, read_permit_domain, sign_permit_quote
from .simple import prefix_signature, sign_simple_quote

__all__ = [
    "sign_fusion_quote",
    "append_quote_hash",
    "build_trigger_call",
    "sign_onchain_quote",
    "build_permit_typed_data",
    "compute_domain_separator",
    "read_permit_domain",
    "sign_permit_quote",
    "prefix_signature",
    "sign_simple_quote",
]
