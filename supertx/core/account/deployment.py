"""
Multichain account built from per-chain deployments.

A ChainDeployment is composed from an AccountReader and a CallEncoder
supplied at construction; nothing is attached afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ...constants import MEE_VALIDATOR_ADDRESS, NONCE_KEY_TIMESTAMP_MODULUS
from ...providers.rpc import ChainRpcProvider, RpcRegistry
from ..errors import ConfigurationError
from ..instructions.models import Call
from .capabilities import AccountReader, CallEncoder, Signer
from .nexus import Nexus7579Encoder, RpcAccountReader


@dataclass
class ChainDeployment:
    chain_id: int
    address: str
    reader: AccountReader
    encoder: CallEncoder
    rpc: Optional[ChainRpcProvider] = None
    validator_address: str = MEE_VALIDATOR_ADDRESS

    def nonce_key(self, seed: int, validation_mode: int = 0) -> int:
        """Pack a per-operation seed, validation mode and validator into a uint192 key."""
        return (
            (seed % NONCE_KEY_TIMESTAMP_MODULUS) << 168
            | validation_mode << 160
            | int(self.validator_address, 16)
        )

    async def get_nonce(self, key: int = 0) -> int:
        return await self.reader.get_nonce(key)

    async def is_deployed(self) -> bool:
        return await self.reader.is_deployed()

    async def get_init_code(self) -> Optional[str]:
        return await self.reader.get_init_code()

    async def get_delegation_authorization(self) -> Optional[Dict[str, Any]]:
        return await self.reader.get_delegation_authorization()

    def encode_calls(self, calls: Sequence[Call], is_composable: bool = False) -> str:
        if is_composable:
            return self.encoder.encode_execute_composable(calls)
        return self.encoder.encode_execute_batch(calls)


class MultichainAccount:
    """
    One logical smart account deployed at (possibly different) addresses on several chains.

    Usage:
        account = MultichainAccount.from_addresses(
            signer=LocalSigner(private_key),
            addresses={8453: "0x...", 10: "0x..."},
            rpc=RpcRegistry(),
        )
        deployment = account.deployment_on(8453, strict=True)
    """

    def __init__(self, signer: Signer, deployments: Sequence[ChainDeployment]) -> None:
        self.signer = signer
        self._deployments: Dict[int, ChainDeployment] = {d.chain_id: d for d in deployments}

    @classmethod
    def from_addresses(
        cls,
        signer: Signer,
        addresses: Mapping[int, str],
        rpc: RpcRegistry,
        init_codes: Optional[Mapping[int, str]] = None,
        authorizations: Optional[Mapping[int, Dict[str, Any]]] = None,
        encoder: Optional[CallEncoder] = None,
    ) -> "MultichainAccount":
        encoder = encoder or Nexus7579Encoder()
        init_codes = init_codes or {}
        authorizations = authorizations or {}
        deployments = []
        for chain_id, address in addresses.items():
            chain_rpc = rpc.get(chain_id)
            reader = RpcAccountReader(
                address,
                chain_rpc,
                init_code=init_codes.get(chain_id),
                authorization=authorizations.get(chain_id),
            )
            deployments.append(
                ChainDeployment(
                    chain_id=chain_id,
                    address=address,
                    reader=reader,
                    encoder=encoder,
                    rpc=chain_rpc,
                )
            )
        return cls(signer, deployments)

    @property
    def chain_ids(self) -> List[int]:
        return sorted(self._deployments)

    @property
    def signer_address(self) -> str:
        return self.signer.address

    def deployment_on(self, chain_id: int, strict: bool = False) -> Optional[ChainDeployment]:
        deployment = self._deployments.get(chain_id)
        if deployment is None and strict:
            raise ConfigurationError(
                f"Account is not configured on chain {chain_id}",
                chain_id=chain_id,
            )
        return deployment

    def address_on(self, chain_id: int, strict: bool = False) -> Optional[str]:
        deployment = self.deployment_on(chain_id, strict)
        return deployment.address if deployment else None
