"""
Call-data helpers over eth-abi / eth-utils.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Union

from eth_abi import encode
from eth_abi.packed import encode_packed
from eth_utils import keccak, to_checksum_address

HexLike = Union[str, bytes]


def strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def to_bytes(value: HexLike) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    hex_data = strip_0x(value)
    if len(hex_data) % 2 != 0:
        raise ValueError("Byte data must have an even-length hex string")
    return bytes.fromhex(hex_data)


def to_hex(value: Union[bytes, int]) -> str:
    if isinstance(value, int):
        return hex(value)
    return "0x" + bytes(value).hex()


def pad32(value: int) -> bytes:
    if value < 0:
        raise ValueError("Value must be non-negative")
    return value.to_bytes(32, "big")


def checksum(address: str) -> str:
    return to_checksum_address(address)


def split_signature(signature: str) -> tuple[str, List[str]]:
    """Split ``name(type1,(type2,type3)[])`` into its name and top-level argument types."""
    open_idx = signature.find("(")
    if open_idx <= 0 or not signature.endswith(")"):
        raise ValueError(f"Invalid function signature: {signature}")
    name = signature[:open_idx].strip()
    return name, split_types(signature[open_idx + 1:-1])


def split_types(types: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current = ""
    for char in types.replace(" ", ""):
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current += char
    if current:
        parts.append(current)
    return parts


def canonical_signature(signature: str) -> str:
    name, types = split_signature(signature)
    return f"{name}({','.join(types)})"


def selector(signature: str) -> bytes:
    return keccak(text=canonical_signature(signature))[:4]


def selector_hex(signature: str) -> str:
    return to_hex(selector(signature))


def encode_call(signature: str, args: Sequence[Any]) -> str:
    """ABI-encode a function call, e.g. ``encode_call("transfer(address,uint256)", [to, 1])``."""
    _, types = split_signature(signature)
    if len(types) != len(args):
        raise ValueError(
            f"{signature} expects {len(types)} arguments, got {len(args)}"
        )
    return to_hex(selector(signature) + encode(types, list(args)))


def encode_args(types: Sequence[str], args: Sequence[Any]) -> bytes:
    return encode(list(types), list(args))


def encode_packed_args(types: Sequence[str], args: Sequence[Any]) -> bytes:
    return encode_packed(list(types), list(args))


def build_erc20_transfer(recipient: str, amount: int) -> str:
    return encode_call("transfer(address,uint256)", [recipient, amount])


def build_erc20_transfer_from(sender: str, recipient: str, amount: int) -> str:
    return encode_call("transferFrom(address,address,uint256)", [sender, recipient, amount])


def build_erc20_approve(spender: str, amount: int) -> str:
    return encode_call("approve(address,uint256)", [spender, amount])


def build_erc20_balance_of(owner: str) -> str:
    return encode_call("balanceOf(address)", [owner])


def build_entrypoint_get_nonce_call(sender: str, key: int = 0) -> str:
    """
    Build calldata for EntryPoint.getNonce(address,uint192).
    """
    return encode_call("getNonce(address,uint192)", [sender, key])
