"""Off-chain prediction of CREATE2 deployment addresses."""
from __future__ import annotations

from typing import Union

from eth_utils import is_address, to_canonical_address, to_checksum_address

from .encoding import hex_to_bytes
from .errors import AddressDerivationError, EncodingError
from .hashing import digest

AddressLike = Union[str, bytes]

_CREATE2_PREFIX = b"\xff"


def _address_bytes(value: AddressLike) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise AddressDerivationError(f"Factory address must be 20 bytes, got {len(value)}")
        return bytes(value)
    if isinstance(value, str) and is_address(value):
        return to_canonical_address(value)
    raise AddressDerivationError(f"Invalid factory address: {value!r}")


def _fixed(value: Union[str, bytes], size: int, label: str) -> bytes:
    try:
        return hex_to_bytes(value, size=size, label=label)
    except EncodingError as exc:
        raise AddressDerivationError(str(exc)) from exc


def derive_future_address(factory: AddressLike, salt: Union[str, bytes], init_code_hash: Union[str, bytes]) -> str:
    """Return the checksum address CREATE2 will assign.

    ``keccak256(0xff ++ factory ++ salt ++ init_code_hash)[12:]``, identical to
    the EIP-1014 rule every EVM deployer follows.
    """

    preimage = (
        _CREATE2_PREFIX
        + _address_bytes(factory)
        + _fixed(salt, 32, "salt")
        + _fixed(init_code_hash, 32, "init code hash")
    )
    return to_checksum_address(digest(preimage)[12:])


def derive_future_address_from_code(factory: AddressLike, salt: Union[str, bytes], init_code: Union[str, bytes]) -> str:
    """Hash the creation code and derive its future address."""

    try:
        code = hex_to_bytes(init_code, label="init code")
    except EncodingError as exc:
        raise AddressDerivationError(str(exc)) from exc
    return derive_future_address(factory, salt, digest(code))


__all__ = ["derive_future_address", "derive_future_address_from_code"]
