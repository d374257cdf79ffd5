"""Idempotent "derive, check, deploy, verify" orchestration.

The factory deploys every holographable contract with CREATE2, using the
signed descriptor hash as the salt.  The future address is therefore known
before anything is submitted and doubles as the idempotency key: code present
at that address means the deployment already happened.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from eth_utils import to_checksum_address

from .addresses import derive_future_address
from .authorization import DeploymentAuthorization, DeploymentDescriptor, Signer, authorize
from .chain import (
    BRIDGEABLE_CONTRACT_DEPLOYED_TOPIC,
    ChainReader,
    ChainWriter,
    Receipt,
    deploy_holographable_contract_call,
    topic_to_address,
)
from .encoding import to_bytes32
from .errors import AddressDerivationError, TransactionError
from .hashing import descriptor_hash

_LOGGER = logging.getLogger(__name__)


class DeploymentState(enum.Enum):
    UNKNOWN = "unknown"
    ALREADY_DEPLOYED = "already_deployed"
    PENDING_DEPLOY = "pending_deploy"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class DeploymentResult:
    address: str
    state: DeploymentState
    history: Tuple[DeploymentState, ...]
    tx_hash: Optional[str] = None
    authorization: Optional[DeploymentAuthorization] = None

    @property
    def deployed_now(self) -> bool:
        return self.state is DeploymentState.CONFIRMED


def contract_type_name(contract_type: bytes) -> str:
    """Best-effort readable name for a left-padded contract type hash."""

    try:
        return contract_type.lstrip(b"\x00").decode("utf-8")
    except UnicodeDecodeError:
        return "0x" + contract_type.hex()


class DeploymentOrchestrator:
    """Drive one deployment target through :class:`DeploymentState`.

    ``creation_code_hash`` is the keccak-256 of the creation code the factory
    feeds to CREATE2 (the Holographer proxy for Holograph factories).  When
    omitted, the descriptor's own bytecode hash is used, which matches
    factories that CREATE2 the bytecode directly.
    """

    def __init__(
        self,
        reader: ChainReader,
        writer: ChainWriter,
        signer: Signer,
        factory_address: str,
        *,
        creation_code_hash: Optional[Union[str, bytes]] = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.signer = signer
        self.factory_address = to_checksum_address(factory_address)
        self.creation_code_hash = None if creation_code_hash is None else to_bytes32(
            creation_code_hash, label="creation code hash"
        )

    def deployment_salt(self, descriptor: DeploymentDescriptor) -> bytes:
        return descriptor_hash(descriptor, to_checksum_address(self.signer.address))

    def future_address(self, descriptor: DeploymentDescriptor) -> str:
        code_hash = self.creation_code_hash or descriptor.byte_code_hash
        return derive_future_address(self.factory_address, self.deployment_salt(descriptor), code_hash)

    def is_deployed(self, address: str) -> bool:
        return len(self.reader.get_code(address)) > 0

    def ensure_deployed(self, descriptor: DeploymentDescriptor) -> DeploymentResult:
        """Deploy ``descriptor`` unless its future address already holds code.

        Returns the same address whether the contract was deployed by this
        call or earlier.  Raises :class:`TransactionError` when the deployment
        failed and no code appeared; re-running is always safe.
        """

        name = contract_type_name(descriptor.contract_type)
        history = [DeploymentState.UNKNOWN]
        address = self.future_address(descriptor)
        _LOGGER.info('The future "%s" address is %s', name, address)

        if self.is_deployed(address):
            history.append(DeploymentState.ALREADY_DEPLOYED)
            _LOGGER.info('"%s" is already deployed.', name)
            return DeploymentResult(address, DeploymentState.ALREADY_DEPLOYED, tuple(history))

        history.append(DeploymentState.PENDING_DEPLOY)
        _LOGGER.info('"%s" bytecode not found, need to deploy', name)
        authorization = authorize(descriptor, self.signer)
        call = deploy_holographable_contract_call(self.factory_address, authorization)

        tx_hash: Optional[str] = None
        try:
            tx_hash = self.writer.submit(call.as_transaction())
            _LOGGER.info("Deployment transaction: %s", tx_hash)
            receipt = self.reader.get_transaction_receipt(tx_hash)
        except TransactionError as exc:
            failure, cause = exc, exc.__cause__
        except Exception as exc:  # pylint: disable=broad-except - writer backends vary
            failure, cause = TransactionError(f"Failed to deploy {name}: {exc}", tx_hash=tx_hash), exc
        else:
            if receipt.succeeded:
                self._verify_deployed_address(receipt, address, name)
                history.append(DeploymentState.CONFIRMED)
                _LOGGER.info('"%s" deployed to %s', name, address)
                return DeploymentResult(
                    address, DeploymentState.CONFIRMED, tuple(history), tx_hash=tx_hash, authorization=authorization
                )
            failure = TransactionError(f"Deployment transaction {tx_hash} for {name} reverted", tx_hash=tx_hash)
            cause = None

        # A concurrent deployer may have won the race; chain state decides.
        if self.is_deployed(address):
            history.append(DeploymentState.ALREADY_DEPLOYED)
            _LOGGER.warning('"%s" deployment did not confirm but code is present at %s', name, address)
            return DeploymentResult(
                address, DeploymentState.ALREADY_DEPLOYED, tuple(history), tx_hash=tx_hash, authorization=authorization
            )

        history.append(DeploymentState.FAILED)
        _LOGGER.error('"%s" deployment failed: %s', name, failure)
        raise failure from cause

    def _verify_deployed_address(self, receipt: Receipt, expected: str, name: str) -> None:
        logs = receipt.logs_with_topic(BRIDGEABLE_CONTRACT_DEPLOYED_TOPIC)
        if logs and len(logs[0].topics) > 1:
            observed = topic_to_address(logs[0].topics[1])
            if observed.lower() != expected.lower():
                raise AddressDerivationError(
                    f'"{name}" was deployed to {observed} but {expected} was derived off-chain'
                )
            return
        if not self.is_deployed(expected):
            raise TransactionError(
                f'"{name}" transaction {receipt.transaction_hash} succeeded but no code exists at {expected}',
                tx_hash=receipt.transaction_hash,
            )


__all__ = [
    "DeploymentOrchestrator",
    "DeploymentResult",
    "DeploymentState",
    "contract_type_name",
]
