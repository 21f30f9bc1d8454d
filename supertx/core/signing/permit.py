"""
Permit signing.

The signer authorizes the smart account to pull the trigger amount with an
ERC-2612 permit whose deadline is the quote hash, so the permit signature
doubles as the quote signature.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from eth_abi import decode
from eth_utils import keccak

from ...constants import PERMIT_SIGNATURE_PREFIX, PERMIT_TYPEHASH
from ...providers.rpc import ChainRpcProvider, RpcRegistry
from ...types.quote import SignedQuote
from ..abi import encode_args, encode_call, selector_hex, to_bytes, to_hex
from ..account.deployment import MultichainAccount
from ..errors import PermitNotSupportedError, RpcError
from ..quote.fusion import FusionQuote
from ..quote.triggers import TokenTrigger
from .simple import prefix_signature

logger = logging.getLogger(__name__)

EIP712_DOMAIN_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

PERMIT_FIELDS = [
    {"name": "owner", "type": "address"},
    {"name": "spender", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
]

_DOMAIN_TYPEHASH = keccak(text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)")

_EIP712_DOMAIN_RESULT = ["bytes1", "string", "string", "uint256", "address", "bytes32", "uint256[]"]


def split_signature_vrs(signature: str) -> Tuple[int, bytes, bytes]:
    raw = to_bytes(signature)
    if len(raw) != 65:
        raise ValueError(f"Expected a 65-byte signature, got {len(raw)} bytes")
    v = raw[64]
    if v < 27:
        v += 27
    return v, raw[:32], raw[32:64]


def compute_domain_separator(name: str, version: str, chain_id: int, token_address: str) -> bytes:
    return keccak(
        encode_args(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [_DOMAIN_TYPEHASH, keccak(text=name), keccak(text=version), chain_id, token_address],
        )
    )


def build_permit_typed_data(
    *,
    name: str,
    version: str,
    chain_id: int,
    token_address: str,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> Dict[str, Any]:
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_FIELDS, "Permit": PERMIT_FIELDS},
        "primaryType": "Permit",
        "domain": {
            "name": name,
            "version": version,
            "chainId": chain_id,
            "verifyingContract": token_address,
        },
        "message": {
            "owner": owner,
            "spender": spender,
            "value": value,
            "nonce": nonce,
            "deadline": deadline,
        },
    }


async def _read_string(rpc: ChainRpcProvider, token_address: str, signature: str) -> str:
    result = await rpc.call(token_address, selector_hex(signature))
    return decode(["string"], to_bytes(result))[0]


async def _read_domain(rpc: ChainRpcProvider, token_address: str) -> Tuple[str, str]:
    """Fall back to ERC-5267 eip712Domain() when name()/version() are missing."""
    result = await rpc.call(token_address, selector_hex("eip712Domain()"))
    _, name, version, *_ = decode(_EIP712_DOMAIN_RESULT, to_bytes(result))
    return name, version


async def read_permit_domain(
    rpc: ChainRpcProvider,
    token_address: str,
    owner: str,
) -> Tuple[int, str, str, bytes]:
    """Read (nonce, name, version, domain separator) for ``owner`` on a permit token."""
    nonce_result, name_result, version_result, separator_result = await asyncio.gather(
        rpc.call(token_address, encode_call("nonces(address)", [owner])),
        _read_string(rpc, token_address, "name()"),
        _read_string(rpc, token_address, "version()"),
        rpc.call(token_address, selector_hex("DOMAIN_SEPARATOR()")),
        return_exceptions=True,
    )
    for result in (nonce_result, name_result, version_result, separator_result):
        if isinstance(result, BaseException) and not isinstance(result, (RpcError, ValueError)):
            raise result

    nonce_missing = isinstance(nonce_result, BaseException)
    separator_missing = isinstance(separator_result, BaseException)
    if nonce_missing:
        raise PermitNotSupportedError(
            f"Token {token_address} does not expose nonces(); use on-chain signing",
            chain_id=rpc.chain_id,
            details={"domain_separator_missing": separator_missing},
        )

    if isinstance(name_result, BaseException) or isinstance(version_result, BaseException):
        try:
            name, version = await _read_domain(rpc, token_address)
        except RpcError as e:
            raise PermitNotSupportedError(
                f"Token {token_address} exposes neither name()/version() nor eip712Domain()",
                chain_id=rpc.chain_id,
            ) from e
        if not isinstance(name_result, BaseException):
            name = name_result
        if not isinstance(version_result, BaseException):
            version = version_result
    else:
        name, version = name_result, version_result

    if separator_missing:
        domain_separator = compute_domain_separator(name, version, rpc.chain_id, token_address)
    else:
        domain_separator = to_bytes(separator_result)

    return int(nonce_result, 16), name, version, domain_separator


async def sign_permit_quote(
    fusion_quote: FusionQuote,
    account: MultichainAccount,
    rpc: RpcRegistry,
    spender: Optional[str] = None,
) -> SignedQuote:
    quote, trigger = fusion_quote.quote, fusion_quote.trigger
    if not isinstance(trigger, TokenTrigger):
        raise PermitNotSupportedError("Permit signing needs a token trigger")

    chain_rpc = rpc.get(trigger.chain_id)
    owner = account.signer_address
    spender = spender or account.address_on(trigger.chain_id, strict=True)
    value = trigger.allowance_amount()

    nonce, name, version, domain_separator = await read_permit_domain(chain_rpc, trigger.token_address, owner)
    typed_data = build_permit_typed_data(
        name=name,
        version=version,
        chain_id=trigger.chain_id,
        token_address=trigger.token_address,
        owner=owner,
        spender=spender,
        value=value,
        nonce=nonce,
        deadline=int(quote.hash, 16),
    )
    signature = await account.signer.sign_typed_data(typed_data)
    v, r, s = split_signature_vrs(signature)

    payload = encode_args(
        ["address", "address", "bytes32", "bytes32", "uint256", "uint256", "uint256", "uint256", "bytes32", "bytes32"],
        [
            trigger.token_address,
            spender,
            domain_separator,
            to_bytes(PERMIT_TYPEHASH),
            value,
            trigger.chain_id,
            nonce,
            v,
            r,
            s,
        ],
    )
    logger.info(f"Signed permit for quote {quote.hash} on chain {trigger.chain_id}")
    return quote.with_signature(prefix_signature(PERMIT_SIGNATURE_PREFIX, to_hex(payload)))
