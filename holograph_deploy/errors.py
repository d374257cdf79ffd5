"""Exception hierarchy shared by the deployment and batch reveal tooling."""
from __future__ import annotations

from typing import Optional


class HolographDeployError(RuntimeError):
    """Base class for every error raised by :mod:`holograph_deploy`."""


class ConfigurationError(HolographDeployError):
    """Raised when the environment does not describe a usable configuration."""


class EncodingError(HolographDeployError):
    """Raised when a value cannot be reconciled with its declared ABI type."""


class AddressDerivationError(HolographDeployError):
    """Raised for malformed address, salt or init code inputs."""


class SignatureError(HolographDeployError):
    """Raised when a deployment authorization cannot be signed or verified."""


class TransactionError(HolographDeployError):
    """Raised when a submission throws or its receipt reports failure.

    Nothing can be assumed about on-chain state after this error; callers
    recover by re-running the idempotent entry point from scratch.
    """

    def __init__(self, message: str, *, tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class RegistrationError(TransactionError):
    """Raised when the registry still disagrees after a confirmed write."""


class ProvenanceMismatchError(TransactionError):
    """Raised when the chain rejects the key supplied for a batch reveal."""

    def __init__(self, batch_id: int, message: str, *, tx_hash: Optional[str] = None) -> None:
        super().__init__(message, tx_hash=tx_hash)
        self.batch_id = batch_id


class ValidationError(HolographDeployError):
    """Raised when a batch CSV header or row violates the schema."""

    def __init__(self, message: str, *, row_index: Optional[int] = None) -> None:
        if row_index is not None:
            message = f"Row {row_index}: {message}"
        super().__init__(message)
        self.row_index = row_index


__all__ = [
    "AddressDerivationError",
    "ConfigurationError",
    "EncodingError",
    "HolographDeployError",
    "ProvenanceMismatchError",
    "RegistrationError",
    "SignatureError",
    "TransactionError",
    "ValidationError",
]
