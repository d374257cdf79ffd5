"""Deterministic Holograph deployments and delayed-reveal batch tooling."""
from __future__ import annotations

from .addresses import derive_future_address, derive_future_address_from_code
from .authorization import (
    DeploymentAuthorization,
    DeploymentDescriptor,
    LocalSigner,
    Signature,
    Signer,
    authorize,
    verify,
)
from .batches import BatchFile, RevealBatch, encrypt_batches, lazy_mint_configuration
from .cipher import encrypt_decrypt
from .deployer import DeploymentOrchestrator, DeploymentResult, DeploymentState
from .errors import (
    AddressDerivationError,
    ConfigurationError,
    EncodingError,
    HolographDeployError,
    ProvenanceMismatchError,
    RegistrationError,
    SignatureError,
    TransactionError,
    ValidationError,
)
from .hashing import descriptor_hash, digest, provenance_hash
from .registry import RegistrationState, RegistryRegistrar
from .reveal import RevealOutcome, reveal_batches

__all__ = [
    "AddressDerivationError",
    "BatchFile",
    "ConfigurationError",
    "DeploymentAuthorization",
    "DeploymentDescriptor",
    "DeploymentOrchestrator",
    "DeploymentResult",
    "DeploymentState",
    "EncodingError",
    "HolographDeployError",
    "LocalSigner",
    "ProvenanceMismatchError",
    "RegistrationError",
    "RegistrationState",
    "RegistryRegistrar",
    "RevealBatch",
    "RevealOutcome",
    "Signature",
    "SignatureError",
    "Signer",
    "TransactionError",
    "ValidationError",
    "authorize",
    "derive_future_address",
    "derive_future_address_from_code",
    "descriptor_hash",
    "digest",
    "encrypt_batches",
    "encrypt_decrypt",
    "lazy_mint_configuration",
    "provenance_hash",
    "reveal_batches",
    "verify",
]
