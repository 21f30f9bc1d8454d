from .capabilities import AccountReader, CallEncoder, Signer
from .deployment import ChainDeployment, MultichainAccount
from .nexus import Nexus7579Encoder, RpcAccountReader
from .signer import LocalSigner

__all__ = [
    "AccountReader",
    "CallEncoder",
    "Signer",
    "ChainDeployment",
    "MultichainAccount",
    "Nexus7579Encoder",
    "RpcAccountReader",
    "LocalSigner",
]
