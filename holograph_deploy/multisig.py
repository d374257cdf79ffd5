"""Route mutating calls through a Safe multisig instead of direct submission.

Proposals are signed off-chain by one owner and posted to the Safe
transaction service, where the remaining owners approve and execute them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import requests
from eth_account.messages import encode_typed_data
from eth_utils import keccak, to_checksum_address, to_hex

from .authorization import Signature, Signer
from .chain import ContractCall
from .errors import TransactionError

_LOGGER = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
# Safe's signature type for eth_sign'ed hashes: v is shifted by 4.
_ETH_SIGN_V_OFFSET = 4

SAFE_TX_TYPES = {
    "EIP712Domain": [
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "SafeTx": [
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "data", "type": "bytes"},
        {"name": "operation", "type": "uint8"},
        {"name": "safeTxGas", "type": "uint256"},
        {"name": "baseGas", "type": "uint256"},
        {"name": "gasPrice", "type": "uint256"},
        {"name": "gasToken", "type": "address"},
        {"name": "refundReceiver", "type": "address"},
        {"name": "nonce", "type": "uint256"},
    ],
}


@dataclass(frozen=True)
class SafeTransactionProposal:
    """A signed Safe transaction ready to be relayed."""

    safe: str
    to: str
    value: int
    data: bytes
    nonce: int
    safe_tx_hash: bytes
    signature: Signature
    sender: str
    operation: int = 0

    def as_payload(self) -> Dict[str, Any]:
        return {
            "to": self.to,
            "value": str(self.value),
            "data": to_hex(self.data),
            "operation": self.operation,
            "safeTxGas": "0",
            "baseGas": "0",
            "gasPrice": "0",
            "gasToken": ZERO_ADDRESS,
            "refundReceiver": ZERO_ADDRESS,
            "nonce": self.nonce,
            "contractTransactionHash": to_hex(self.safe_tx_hash),
            "sender": self.sender,
            "signature": to_hex(self.signature.to_bytes()),
            "origin": "holograph-deploy",
        }


class MultisigRelay(Protocol):
    def propose_transaction(self, call: ContractCall) -> SafeTransactionProposal:  # pragma: no cover - protocol
        ...


def safe_transaction_hash(safe: str, chain_id: int, call: ContractCall, nonce: int) -> bytes:
    """Return the EIP-712 ``SafeTx`` hash the Safe contract checks signatures against."""

    message = {
        "types": SAFE_TX_TYPES,
        "primaryType": "SafeTx",
        "domain": {"chainId": chain_id, "verifyingContract": to_checksum_address(safe)},
        "message": {
            "to": to_checksum_address(call.to),
            "value": call.value,
            "data": call.data,
            "operation": 0,
            "safeTxGas": 0,
            "baseGas": 0,
            "gasPrice": 0,
            "gasToken": ZERO_ADDRESS,
            "refundReceiver": ZERO_ADDRESS,
            "nonce": nonce,
        },
    }
    signable = encode_typed_data(full_message=message)
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def build_safe_proposal(
    safe: str, chain_id: int, call: ContractCall, nonce: int, signer: Signer
) -> SafeTransactionProposal:
    tx_hash = safe_transaction_hash(safe, chain_id, call, nonce)
    signed = signer.sign_hash(tx_hash)
    signature = Signature(r=signed.r, s=signed.s, v=signed.v + _ETH_SIGN_V_OFFSET)
    return SafeTransactionProposal(
        safe=to_checksum_address(safe),
        to=to_checksum_address(call.to),
        value=call.value,
        data=call.data,
        nonce=nonce,
        safe_tx_hash=tx_hash,
        signature=signature,
        sender=to_checksum_address(signer.address),
    )


@dataclass
class SafeTransactionServiceRelay:
    """:class:`MultisigRelay` backed by the Safe transaction service HTTP API."""

    base_url: str
    safe_address: str
    chain_id: int
    signer: Signer
    session: Optional[requests.Session] = None
    timeout: Optional[float] = 10.0

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()
        self.base_url = self.base_url.rstrip("/")
        self.safe_address = to_checksum_address(self.safe_address)
        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": "holograph-deploy/1.0",
        }

    def _safe_url(self, suffix: str = "") -> str:
        return f"{self.base_url}/api/v1/safes/{self.safe_address}/{suffix}"

    def next_nonce(self) -> int:
        response = self.session.get(self._safe_url(), headers=self._headers, timeout=self.timeout)
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise TransactionError(f"Safe service error for {self.safe_address}: {exc}") from exc
        payload = response.json()
        try:
            return int(payload["nonce"])
        except (KeyError, TypeError, ValueError) as exc:
            raise TransactionError(f"Unexpected Safe payload for {self.safe_address}: {payload!r}") from exc

    def propose_transaction(self, call: ContractCall) -> SafeTransactionProposal:
        proposal = build_safe_proposal(self.safe_address, self.chain_id, call, self.next_nonce(), self.signer)
        response = self.session.post(
            self._safe_url("multisig-transactions/"),
            json=proposal.as_payload(),
            headers=self._headers,
            timeout=self.timeout,
        )
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise TransactionError(f"Safe service rejected proposal for {self.safe_address}: {exc}") from exc
        _LOGGER.info(
            "Proposed Safe transaction %s (nonce %d) to %s",
            to_hex(proposal.safe_tx_hash),
            proposal.nonce,
            self.safe_address,
        )
        return proposal


__all__ = [
    "MultisigRelay",
    "SAFE_TX_TYPES",
    "SafeTransactionProposal",
    "SafeTransactionServiceRelay",
    "build_safe_proposal",
    "safe_transaction_hash",
]
