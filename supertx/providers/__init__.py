from .base import Provider
from .mee_node import MeeNodeConfig, MeeNodeProvider, get_mee_node_provider
from .rpc import ChainRpcConfig, ChainRpcProvider, RpcRegistry, TransactionReceipt
from .sponsorship import SponsorshipConfig, SponsorshipProvider, get_sponsorship_provider

__all__ = [
    "Provider",
    "MeeNodeConfig",
    "MeeNodeProvider",
    "get_mee_node_provider",
    "ChainRpcConfig",
    "ChainRpcProvider",
    "RpcRegistry",
    "TransactionReceipt",
    "SponsorshipConfig",
    "SponsorshipProvider",
    "get_sponsorship_provider",
]
