"""Symmetric block-keyed XOR cipher used for delayed-reveal URIs.

Every 32-byte block at offset ``i`` is XORed with ``keccak(key ++ uint256(i))``.
Applying the function twice with the same key returns the input.
"""
from __future__ import annotations

from .encoding import BytesLike, hex_to_bytes
from .hashing import digest

BLOCK_SIZE = 32


def keystream_block(key: bytes, offset: int) -> bytes:
    return digest(key + offset.to_bytes(32, "big"))


def encrypt_decrypt(data: BytesLike, key: BytesLike) -> bytes:
    payload = hex_to_bytes(data, label="data") if isinstance(data, str) else bytes(data)
    secret = hex_to_bytes(key, label="key")
    output = bytearray(len(payload))
    for offset in range(0, len(payload), BLOCK_SIZE):
        block = keystream_block(secret, offset)
        chunk = payload[offset : offset + BLOCK_SIZE]
        for index, value in enumerate(chunk):
            output[offset + index] = value ^ block[index]
    return bytes(output)


__all__ = ["BLOCK_SIZE", "encrypt_decrypt", "keystream_block"]
