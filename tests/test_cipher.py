from __future__ import annotations

import pytest
from eth_utils import keccak

from holograph_deploy.cipher import encrypt_decrypt

KEY = bytes.fromhex("5f" * 32)


@pytest.mark.parametrize("length", [0, 1, 31, 32, 33, 64, 1001])
def test_encrypt_decrypt_is_self_inverse(length):
    data = bytes((index * 7) % 256 for index in range(length))
    ciphertext = encrypt_decrypt(data, KEY)

    assert len(ciphertext) == length
    assert encrypt_decrypt(ciphertext, KEY) == data


def test_empty_input_returns_empty_bytes():
    assert encrypt_decrypt(b"", KEY) == b""


def test_keystream_is_keyed_by_block_offset():
    data = b"\x00" * 40
    ciphertext = encrypt_decrypt(data, KEY)

    assert ciphertext[:32] == keccak(KEY + (0).to_bytes(32, "big"))
    assert ciphertext[32:] == keccak(KEY + (32).to_bytes(32, "big"))[:8]


def test_different_keys_produce_different_ciphertexts():
    data = b"ipfs://bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi/"
    assert encrypt_decrypt(data, KEY) != encrypt_decrypt(data, bytes.fromhex("60" * 32))


def test_accepts_hex_key_and_ciphertext():
    ciphertext = encrypt_decrypt(b"reveal", KEY)
    assert encrypt_decrypt("0x" + ciphertext.hex(), "0x" + KEY.hex()) == b"reveal"
