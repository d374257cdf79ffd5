"""Deployment descriptors and their off-chain signed authorizations.

A :class:`DeploymentDescriptor` pins everything that determines a deployment:
contract type, chain identity, salt, bytecode and init code.  Its hash, bound
to the signer address, is signed as an EIP-191 personal message so the factory
contract can recover the signer independently of who submits the transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Tuple, Union, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_address, to_checksum_address

from .encoding import BytesLike, hex_to_bytes, to_bytes32
from .errors import AddressDerivationError, EncodingError, SignatureError
from .hashing import contract_type_hash, descriptor_hash, digest

_LOGGER = logging.getLogger(__name__)

_UINT32_MAX = 2 ** 32 - 1


@dataclass(frozen=True)
class DeploymentDescriptor:
    """Canonical description of a deterministic deployment."""

    contract_type: bytes
    chain_type: int
    salt: bytes
    byte_code: bytes
    init_code: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.contract_type, bytes) or len(self.contract_type) != 32:
            raise EncodingError("contract_type must be 32 bytes")
        if not isinstance(self.salt, bytes) or len(self.salt) != 32:
            raise AddressDerivationError("salt must be 32 bytes")
        if isinstance(self.chain_type, bool) or not isinstance(self.chain_type, int):
            raise EncodingError("chain_type must be an integer")
        if not 0 <= self.chain_type <= _UINT32_MAX:
            raise EncodingError(f"chain_type {self.chain_type} does not fit in uint32")
        if not isinstance(self.byte_code, bytes) or not isinstance(self.init_code, bytes):
            raise EncodingError("byte_code and init_code must be bytes")

    @classmethod
    def create(
        cls,
        contract_name: str,
        chain_type: int,
        salt: BytesLike,
        byte_code: BytesLike,
        init_code: BytesLike,
    ) -> "DeploymentDescriptor":
        """Build a descriptor from a reserved name and hex or byte inputs."""

        try:
            salt_bytes = to_bytes32(salt, label="salt")
        except EncodingError as exc:
            raise AddressDerivationError(str(exc)) from exc
        return cls(
            contract_type=contract_type_hash(contract_name),
            chain_type=chain_type,
            salt=salt_bytes,
            byte_code=hex_to_bytes(byte_code, label="byte code"),
            init_code=hex_to_bytes(init_code, label="init code"),
        )

    @property
    def byte_code_hash(self) -> bytes:
        return digest(self.byte_code)

    @property
    def init_code_hash(self) -> bytes:
        return digest(self.init_code)

    def as_tuple(self) -> Tuple[bytes, int, bytes, bytes, bytes]:
        """Return the factory's ``DeploymentConfig`` ABI tuple."""

        return (self.contract_type, self.chain_type, self.salt, self.byte_code, self.init_code)


@dataclass(frozen=True)
class Signature:
    """Recoverable secp256k1 signature split into fixed-width parts."""

    r: bytes
    s: bytes
    v: int

    @classmethod
    def from_bytes(cls, signature: BytesLike) -> "Signature":
        raw = hex_to_bytes(signature, label="signature")
        if len(raw) != 65:
            raise SignatureError(f"Signature must be 65 bytes, got {len(raw)}")
        return cls(r=raw[0:32], s=raw[32:64], v=raw[64])

    def to_bytes(self) -> bytes:
        return self.r + self.s + bytes([self.v])

    def as_tuple(self) -> Tuple[bytes, bytes, int]:
        return (self.r, self.s, self.v)


@dataclass(frozen=True)
class DeploymentAuthorization:
    descriptor: DeploymentDescriptor
    signature: Signature
    signer: str

    def as_call_arguments(self) -> Tuple[Any, Any, str]:
        """Arguments for ``deployHolographableContract(config, signature, signer)``."""

        return (self.descriptor.as_tuple(), self.signature.as_tuple(), self.signer)


@runtime_checkable
class Signer(Protocol):
    """Anything able to sign a 32-byte digest on behalf of an address."""

    @property
    def address(self) -> str:  # pragma: no cover - protocol
        ...

    def sign_hash(self, message_hash: bytes) -> Signature:  # pragma: no cover - protocol
        ...


class LocalSigner:
    """Signer backed by an in-memory private key."""

    def __init__(self, private_key: Union[str, bytes]) -> None:
        try:
            self._account = Account.from_key(private_key)
        except Exception:  # pylint: disable=broad-except - never chain key material
            raise SignatureError("Invalid private key") from None

    def __repr__(self) -> str:
        return f"LocalSigner(address={self.address!r})"

    @property
    def address(self) -> str:
        return self._account.address

    def sign_hash(self, message_hash: bytes) -> Signature:
        if len(message_hash) != 32:
            raise SignatureError(f"Expected a 32-byte digest, got {len(message_hash)} bytes")
        signed = self._account.sign_message(encode_defunct(primitive=message_hash))
        return Signature.from_bytes(bytes(signed.signature))

    def sign_transaction(self, transaction: dict) -> bytes:
        signed = self._account.sign_transaction(transaction)
        raw = getattr(signed, "raw_transaction", None)
        if raw is None:  # eth-account < 0.13
            raw = signed.rawTransaction
        return bytes(raw)


def authorize(descriptor: DeploymentDescriptor, signer: Signer) -> DeploymentAuthorization:
    """Sign ``descriptor`` with ``signer`` and return the bound authorization."""

    signer_address = to_checksum_address(signer.address)
    message_hash = descriptor_hash(descriptor, signer_address)
    try:
        signature = signer.sign_hash(message_hash)
    except SignatureError:
        raise
    except Exception as exc:  # pylint: disable=broad-except - signer backends vary
        raise SignatureError(f"Signing failed for {signer_address}: {exc}") from exc
    _LOGGER.debug("Authorized descriptor hash 0x%s for %s", message_hash.hex(), signer_address)
    return DeploymentAuthorization(descriptor=descriptor, signature=signature, signer=signer_address)


def recover_signer(authorization: DeploymentAuthorization) -> str:
    message_hash = descriptor_hash(authorization.descriptor, authorization.signer)
    try:
        return Account.recover_message(
            encode_defunct(primitive=message_hash),
            signature=authorization.signature.to_bytes(),
        )
    except Exception as exc:  # pylint: disable=broad-except
        raise SignatureError(f"Unable to recover signer: {exc}") from exc


def verify(authorization: DeploymentAuthorization) -> bool:
    """Return True when the signature recovers to ``authorization.signer``."""

    if not is_address(authorization.signer):
        return False
    try:
        recovered = recover_signer(authorization)
    except SignatureError:
        return False
    return recovered.lower() == authorization.signer.lower()


def verify_or_raise(authorization: DeploymentAuthorization) -> None:
    if not verify(authorization):
        raise SignatureError(f"Authorization is not signed by {authorization.signer}")


__all__ = [
    "DeploymentAuthorization",
    "DeploymentDescriptor",
    "LocalSigner",
    "Signature",
    "Signer",
    "authorize",
    "recover_signer",
    "verify",
    "verify_or_raise",
]
