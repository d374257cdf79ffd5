"""Idempotent contract-type registration in the Holograph registry."""
from __future__ import annotations

import enum
import logging
from typing import Optional

from eth_utils import to_checksum_address

from .chain import (
    ChainReader,
    ChainWriter,
    decode_address,
    get_contract_type_address_call,
    set_contract_type_address_call,
    wait_for_success,
)
from .deployer import contract_type_name
from .encoding import BytesLike, to_bytes32
from .errors import RegistrationError
from .multisig import MultisigRelay

_LOGGER = logging.getLogger(__name__)


class RegistrationState(enum.Enum):
    ALREADY_REGISTERED = "already_registered"
    REGISTERED = "registered"
    PROPOSED = "proposed"


class RegistryRegistrar:
    """Map contract-type hashes to addresses, writing only when they differ.

    With a ``multisig`` relay the write is proposed instead of submitted and
    convergence is confirmed by the next run once the owners have executed it.
    """

    def __init__(
        self,
        reader: ChainReader,
        writer: ChainWriter,
        registry_address: str,
        multisig: Optional[MultisigRelay] = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.registry_address = to_checksum_address(registry_address)
        self.multisig = multisig

    def current_address(self, type_hash: BytesLike) -> str:
        call = get_contract_type_address_call(self.registry_address, to_bytes32(type_hash, label="type hash"))
        return decode_address(self.reader.call(call.to, call.data))

    def ensure_registered(self, type_hash: BytesLike, address: str) -> RegistrationState:
        type_hash = to_bytes32(type_hash, label="type hash")
        target = to_checksum_address(address)
        name = contract_type_name(type_hash)

        current = self.current_address(type_hash)
        if current.lower() == target.lower():
            _LOGGER.info('Registry already maps "%s" to %s', name, target)
            return RegistrationState.ALREADY_REGISTERED

        _LOGGER.info('Registry maps "%s" to %s, updating to %s', name, current, target)
        call = set_contract_type_address_call(self.registry_address, type_hash, target)

        if self.multisig is not None:
            self.multisig.propose_transaction(call)
            _LOGGER.info('Proposed registry update for "%s" through multisig', name)
            return RegistrationState.PROPOSED

        tx_hash = self.writer.submit(call.as_transaction())
        wait_for_success(self.reader, tx_hash, f'Registry update for "{name}"')

        observed = self.current_address(type_hash)
        if observed.lower() != target.lower():
            raise RegistrationError(
                f'Registry maps "{name}" to {observed} after confirmed update to {target}',
                tx_hash=tx_hash,
            )
        _LOGGER.info('Registered "%s" at %s', name, target)
        return RegistrationState.REGISTERED


__all__ = ["RegistrationState", "RegistryRegistrar"]
