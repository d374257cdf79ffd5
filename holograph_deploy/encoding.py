"""Canonical encoding of structured initializer records.

Records are dataclasses; their field order is the schema order, so flattening
never depends on runtime dictionary iteration.  Flattened values are checked
against an explicit ABI type signature before they are handed to ``eth_abi``.
"""
from __future__ import annotations

import dataclasses
import re
import time
from typing import Any, List, Mapping, Optional, Sequence, Union

from eth_abi import encode as abi_encode
from eth_abi import exceptions as abi_exceptions
from eth_abi.grammar import BasicType, TupleType, normalize, parse
from eth_abi.packed import encode_packed as abi_encode_packed
from eth_utils import decode_hex, is_address, is_hex, to_checksum_address

from .errors import EncodingError

BytesLike = Union[bytes, bytearray, str]

_TUPLE_KEYWORD = re.compile(r"\btuple\(")
_ABI_ERRORS = (
    abi_exceptions.EncodingError,
    abi_exceptions.ABITypeError,
    abi_exceptions.ParseError,
)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def flatten_record(record: Any) -> Any:
    """Flatten ``record`` into nested lists in schema declaration order.

    Dataclass instances become lists of their field values (ABI tuples),
    sequences are flattened element by element and scalars are returned
    unchanged.  Plain mappings are refused because they carry no schema order.
    """

    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return [flatten_record(getattr(record, field.name)) for field in dataclasses.fields(record)]
    if isinstance(record, Mapping):
        raise EncodingError("Mappings have no canonical field order; use a dataclass record")
    if _is_sequence(record):
        return [flatten_record(item) for item in record]
    return record


def hex_to_bytes(value: BytesLike, *, size: Optional[int] = None, label: str = "value") -> bytes:
    """Return ``value`` as bytes, decoding ``0x`` hex strings."""

    if isinstance(value, (bytes, bytearray)):
        data = bytes(value)
    elif isinstance(value, str):
        text = value.strip()
        if not is_hex(text):
            raise EncodingError(f"{label} is not a hex string: {value!r}")
        try:
            data = decode_hex(text)
        except ValueError as exc:
            raise EncodingError(f"{label} is not valid hex: {value!r}") from exc
    else:
        raise EncodingError(f"{label} must be bytes or a hex string, got {type(value).__name__}")
    if size is not None and len(data) != size:
        raise EncodingError(f"{label} must be {size} bytes, got {len(data)}")
    return data


def to_bytes32(value: BytesLike, *, label: str = "value") -> bytes:
    return hex_to_bytes(value, size=32, label=label)


def parse_bytes(text: str, size: int = 32) -> bytes:
    """UTF-8 encode ``text`` and left-pad it with zero bytes to ``size``."""

    raw = text.encode("utf-8")
    if len(raw) > size:
        raise EncodingError(f"{text!r} does not fit in {size} bytes")
    return raw.rjust(size, b"\x00")


def generate_salt(now: Optional[float] = None) -> bytes:
    """Return a time-derived 32-byte salt (milliseconds since the epoch)."""

    millis = int((time.time() if now is None else now) * 1000)
    return millis.to_bytes(32, "big")


def normalise_type(type_str: str) -> str:
    """Accept ``tuple(...)`` spelling and return the ``eth_abi`` grammar form."""

    return normalize(_TUPLE_KEYWORD.sub("(", type_str.replace(" ", "")))


def _parse_type(type_str: str):
    try:
        abi_type = parse(normalise_type(type_str))
        abi_type.validate()
    except _ABI_ERRORS as exc:
        raise EncodingError(f"Invalid ABI type {type_str!r}: {exc}") from exc
    return abi_type


def _check_basic(abi_type: BasicType, value: Any, path: str) -> Any:
    base, sub = abi_type.base, abi_type.sub
    if base in ("uint", "int"):
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodingError(f"{path}: expected {abi_type.to_type_str()}, got {type(value).__name__}")
        if base == "uint":
            low, high = 0, 2 ** sub - 1
        else:
            low, high = -(2 ** (sub - 1)), 2 ** (sub - 1) - 1
        if not low <= value <= high:
            raise EncodingError(f"{path}: {value} out of range for {abi_type.to_type_str()}")
        return value
    if base == "bool":
        if not isinstance(value, bool):
            raise EncodingError(f"{path}: expected bool, got {type(value).__name__}")
        return value
    if base == "address":
        if isinstance(value, (bytes, bytearray)) and len(value) == 20:
            return to_checksum_address(bytes(value))
        if isinstance(value, str) and is_address(value):
            return to_checksum_address(value)
        raise EncodingError(f"{path}: expected a 20-byte address, got {value!r}")
    if base == "string":
        if not isinstance(value, str):
            raise EncodingError(f"{path}: expected string, got {type(value).__name__}")
        return value
    if base == "bytes":
        return hex_to_bytes(value, size=sub, label=path)
    raise EncodingError(f"{path}: unsupported ABI type {abi_type.to_type_str()}")


def _check(abi_type: Any, value: Any, path: str) -> Any:
    if abi_type.is_array:
        if not _is_sequence(value):
            raise EncodingError(f"{path}: expected array for {abi_type.to_type_str()}, got {type(value).__name__}")
        dimension = abi_type.arrlist[-1]
        if dimension and len(value) != dimension[0]:
            raise EncodingError(f"{path}: expected {dimension[0]} elements, got {len(value)}")
        item_type = abi_type.item_type
        return [_check(item_type, item, f"{path}[{index}]") for index, item in enumerate(value)]
    if isinstance(abi_type, TupleType):
        if not _is_sequence(value):
            raise EncodingError(f"{path}: expected tuple, got {type(value).__name__}")
        if len(value) != len(abi_type.components):
            raise EncodingError(
                f"{path}: tuple arity mismatch, expected {len(abi_type.components)} got {len(value)}"
            )
        return tuple(
            _check(component, item, f"{path}.{index}")
            for index, (component, item) in enumerate(zip(abi_type.components, value))
        )
    return _check_basic(abi_type, value, path)


def check_types(types: Sequence[str], values: Sequence[Any]) -> List[Any]:
    """Validate ``values`` against ``types`` and return them in encoder form.

    Hex strings are decoded for ``bytes`` slots and addresses are checksummed;
    no other conversion happens, so an ``int`` never passes for a ``bool`` or
    a ``str`` for a number.
    """

    if len(types) != len(values):
        raise EncodingError(f"Expected {len(types)} values for signature, got {len(values)}")
    return [
        _check(_parse_type(type_str), value, f"arg{index}")
        for index, (type_str, value) in enumerate(zip(types, values))
    ]


def encode_arguments(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """ABI-encode ``values`` against the explicit ``types`` signature."""

    checked = check_types(types, values)
    try:
        return abi_encode([normalise_type(t) for t in types], checked)
    except _ABI_ERRORS as exc:
        raise EncodingError(f"ABI encoding failed: {exc}") from exc


def encode_record(type_str: str, record: Any) -> bytes:
    """Flatten a dataclass record and encode it as a single ABI tuple."""

    return encode_arguments([type_str], [flatten_record(record)])


def encode_packed(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """Tightly pack ``values`` the way ``abi.encodePacked`` does."""

    checked = check_types(types, values)
    try:
        return abi_encode_packed([normalise_type(t) for t in types], checked)
    except _ABI_ERRORS as exc:
        raise EncodingError(f"Packed encoding failed: {exc}") from exc


__all__ = [
    "check_types",
    "encode_arguments",
    "encode_packed",
    "encode_record",
    "flatten_record",
    "generate_salt",
    "hex_to_bytes",
    "normalise_type",
    "parse_bytes",
    "to_bytes32",
]
