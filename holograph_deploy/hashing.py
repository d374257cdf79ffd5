"""Content hashes binding deployments and delayed-reveal batches."""
from __future__ import annotations

from typing import TYPE_CHECKING, Union

from eth_utils import keccak

from .encoding import BytesLike, encode_packed, hex_to_bytes, parse_bytes

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .authorization import DeploymentDescriptor

# Field order and widths of the descriptor preimage. Changing either
# invalidates every signature produced so far.
DESCRIPTOR_HASH_TYPES = ("bytes32", "uint32", "bytes32", "bytes32", "bytes32", "address")
PROVENANCE_HASH_TYPES = ("string", "bytes", "uint256")


def digest(data: bytes) -> bytes:
    """Return the keccak-256 digest of ``data``."""

    return keccak(primitive=bytes(data))


def contract_type_hash(name: str) -> bytes:
    """Return the 32-byte type hash used for reserved contract names."""

    return parse_bytes(name)


def descriptor_hash(descriptor: "DeploymentDescriptor", signer: Union[str, bytes]) -> bytes:
    """Hash a deployment descriptor together with the signer address."""

    packed = encode_packed(
        DESCRIPTOR_HASH_TYPES,
        [
            descriptor.contract_type,
            descriptor.chain_type,
            descriptor.salt,
            digest(descriptor.byte_code),
            digest(descriptor.init_code),
            signer,
        ],
    )
    return digest(packed)


def provenance_hash(reveal_uri: str, key: BytesLike, chain_id: int) -> bytes:
    """Bind a revealed URI to its decryption key and chain id."""

    packed = encode_packed(
        PROVENANCE_HASH_TYPES,
        [reveal_uri, hex_to_bytes(key, label="key"), chain_id],
    )
    return digest(packed)


def delayed_reveal_secret(prefix: str, chain_id: int, contract_address: str, reveal_id: Union[int, str]) -> bytes:
    """Derive a per-batch reveal key from human-managed inputs."""

    secret = f"{prefix},{chain_id},{contract_address},{reveal_id}"
    return digest(secret.encode("utf-8"))


def deployer_secret(secret: str) -> bytes:
    """Return the 20-byte deployer secret derived from ``secret``."""

    return digest(secret.encode("utf-8"))[:20]


__all__ = [
    "DESCRIPTOR_HASH_TYPES",
    "PROVENANCE_HASH_TYPES",
    "contract_type_hash",
    "delayed_reveal_secret",
    "deployer_secret",
    "descriptor_hash",
    "digest",
    "provenance_hash",
]
