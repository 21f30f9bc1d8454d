"""
Quoting: instructions in, node quote out.
"""

from .builder import QuoteBuilder, build_cleanup_call
from .fusion import FusionQuote, QuoteType, get_fusion_quote, get_quote_type, is_permit_supported
from .triggers import CleanUp, CustomTrigger, FeeToken, NoTrigger, TokenTrigger, Trigger

__all__ = [
    "QuoteBuilder",
    "build_cleanup_call",
    "FusionQuote",
    "QuoteType",
    "get_fusion_quote",
    "get_quote_type",
    "is_permit_supported",
    "CleanUp",
    "CustomTrigger",
    "FeeToken",
    "NoTrigger",
    "TokenTrigger",
    "Trigger",
]
