"""Chain collaborators and calldata builders for the Holograph contracts.

The orchestration code only depends on the :class:`ChainReader` and
:class:`ChainWriter` protocols.  :class:`Web3Chain` implements both on top of
web3.py; tests substitute in-memory fakes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from eth_abi import decode as abi_decode
from eth_utils import function_signature_to_4byte_selector, keccak, to_checksum_address, to_hex
from web3 import Web3
from web3.exceptions import TimeExhausted

from .authorization import DeploymentAuthorization, LocalSigner
from .encoding import encode_arguments
from .errors import TransactionError

_LOGGER = logging.getLogger(__name__)

DEPLOY_HOLOGRAPHABLE_CONTRACT = (
    "deployHolographableContract((bytes32,uint32,bytes32,bytes,bytes),(bytes32,bytes32,uint8),address)"
)
GET_CONTRACT_TYPE_ADDRESS = "getContractTypeAddress(bytes32)"
SET_CONTRACT_TYPE_ADDRESS = "setContractTypeAddress(bytes32,address)"
REVEAL = "reveal(uint256,bytes)"
LAZY_MINT = "lazyMint(uint256,string,bytes)"
GET_FACTORY = "getFactory()"
GET_REGISTRY = "getRegistry()"

BRIDGEABLE_CONTRACT_DEPLOYED_TOPIC = bytes.fromhex(
    "a802207d4c618b40db3b25b7b90e6f483e16b2c1f8d3610b15b345a718c6b41b"
)
TOKEN_URI_REVEALED_TOPIC = keccak(text="TokenURIRevealed(uint256,string)")


@dataclass(frozen=True)
class Log:
    address: str
    topics: Tuple[bytes, ...]
    data: bytes = b""


@dataclass(frozen=True)
class Receipt:
    """The subset of a transaction receipt the tooling inspects."""

    transaction_hash: str
    status: int
    logs: Tuple[Log, ...] = ()
    block_number: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    def logs_with_topic(self, topic: bytes) -> List[Log]:
        return [log for log in self.logs if log.topics and log.topics[0] == topic]


@dataclass(frozen=True)
class ContractCall:
    to: str
    data: bytes
    value: int = 0

    def as_transaction(self) -> Dict[str, Any]:
        return {"to": to_checksum_address(self.to), "data": to_hex(self.data), "value": self.value}


class ChainReader(Protocol):
    def get_code(self, address: str) -> bytes:  # pragma: no cover - protocol
        ...

    def call(self, to: str, data: bytes) -> bytes:  # pragma: no cover - protocol
        ...

    def get_transaction_receipt(self, tx_hash: str) -> Receipt:  # pragma: no cover - protocol
        ...


class ChainWriter(Protocol):
    def submit(self, transaction: Mapping[str, Any]) -> str:  # pragma: no cover - protocol
        ...


def _signature_types(signature: str) -> List[str]:
    inner = signature[signature.index("(") + 1 : -1]
    types: List[str] = []
    depth = 0
    current = ""
    for char in inner:
        if char == "," and depth == 0:
            types.append(current)
            current = ""
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current += char
    if current:
        types.append(current)
    return types


def encode_call(signature: str, arguments: Sequence[Any]) -> bytes:
    """Return ``selector ++ abi.encode(arguments)`` for ``signature``."""

    selector = function_signature_to_4byte_selector(signature)
    return selector + encode_arguments(_signature_types(signature), list(arguments))


def deploy_holographable_contract_call(factory: str, authorization: DeploymentAuthorization) -> ContractCall:
    return ContractCall(factory, encode_call(DEPLOY_HOLOGRAPHABLE_CONTRACT, authorization.as_call_arguments()))


def get_contract_type_address_call(registry: str, type_hash: bytes) -> ContractCall:
    return ContractCall(registry, encode_call(GET_CONTRACT_TYPE_ADDRESS, [type_hash]))


def set_contract_type_address_call(registry: str, type_hash: bytes, address: str) -> ContractCall:
    return ContractCall(registry, encode_call(SET_CONTRACT_TYPE_ADDRESS, [type_hash, address]))


def reveal_call(contract: str, batch_id: int, key: bytes) -> ContractCall:
    return ContractCall(contract, encode_call(REVEAL, [batch_id, key]))


def lazy_mint_call(contract: str, amount: int, base_uri: str, data: bytes) -> ContractCall:
    return ContractCall(contract, encode_call(LAZY_MINT, [amount, base_uri, data]))


def decode_address(result: bytes) -> str:
    (address,) = abi_decode(["address"], result)
    return to_checksum_address(address)


def topic_to_address(topic: bytes) -> str:
    return to_checksum_address(topic[-20:])


def read_address(reader: ChainReader, contract: str, signature: str) -> str:
    """Call a parameterless ``view returns (address)`` function."""

    return decode_address(reader.call(contract, encode_call(signature, [])))


def get_factory_address(reader: ChainReader, holograph: str) -> str:
    return read_address(reader, holograph, GET_FACTORY)


def get_registry_address(reader: ChainReader, holograph: str) -> str:
    return read_address(reader, holograph, GET_REGISTRY)


def wait_for_success(reader: ChainReader, tx_hash: str, action: str) -> Receipt:
    receipt = reader.get_transaction_receipt(tx_hash)
    if not receipt.succeeded:
        raise TransactionError(f"{action} transaction {tx_hash} reverted", tx_hash=tx_hash)
    return receipt


@dataclass
class Web3Chain:
    """:class:`ChainReader` and :class:`ChainWriter` backed by web3.py."""

    web3: Web3
    signer: Optional[LocalSigner] = None
    receipt_timeout: float = 120.0
    poll_latency: float = 0.5
    _chain_id: Optional[int] = field(default=None, init=False, repr=False)

    @classmethod
    def from_url(cls, url: str, signer: Optional[LocalSigner] = None, **kwargs: Any) -> "Web3Chain":
        return cls(Web3(Web3.HTTPProvider(url)), signer=signer, **kwargs)

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(self.web3.eth.chain_id)
        return self._chain_id

    def get_code(self, address: str) -> bytes:
        return bytes(self.web3.eth.get_code(to_checksum_address(address)))

    def call(self, to: str, data: bytes) -> bytes:
        return bytes(self.web3.eth.call({"to": to_checksum_address(to), "data": to_hex(data)}))

    def submit(self, transaction: Mapping[str, Any]) -> str:
        tx = dict(transaction)
        try:
            if self.signer is None:
                tx_hash = self.web3.eth.send_transaction(tx)
            else:
                sender = self.signer.address
                tx.setdefault("from", sender)
                tx.setdefault("chainId", self.chain_id)
                tx.setdefault("nonce", self.web3.eth.get_transaction_count(sender, "pending"))
                if "gasPrice" not in tx and "maxFeePerGas" not in tx:
                    tx["gasPrice"] = self.web3.eth.gas_price
                if "gas" not in tx:
                    tx["gas"] = self.web3.eth.estimate_gas(tx)
                tx_hash = self.web3.eth.send_raw_transaction(self.signer.sign_transaction(tx))
        except Exception as exc:  # pylint: disable=broad-except - RPC errors vary by provider
            raise TransactionError(f"Failed to submit transaction to {tx.get('to')}: {exc}") from exc
        tx_hash_hex = to_hex(tx_hash)
        _LOGGER.info("Submitted transaction %s", tx_hash_hex)
        return tx_hash_hex

    def get_transaction_receipt(self, tx_hash: str) -> Receipt:
        try:
            raw = self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout, poll_latency=self.poll_latency
            )
        except TimeExhausted as exc:
            raise TransactionError(
                f"Timed out waiting for {tx_hash}; outcome is inconclusive, re-run to converge",
                tx_hash=tx_hash,
            ) from exc
        logs = tuple(
            Log(
                address=entry["address"],
                topics=tuple(bytes(topic) for topic in entry["topics"]),
                data=bytes(entry["data"]),
            )
            for entry in raw["logs"]
        )
        return Receipt(
            transaction_hash=tx_hash,
            status=int(raw["status"]),
            logs=logs,
            block_number=raw.get("blockNumber"),
        )


__all__ = [
    "BRIDGEABLE_CONTRACT_DEPLOYED_TOPIC",
    "ChainReader",
    "ChainWriter",
    "ContractCall",
    "Log",
    "Receipt",
    "TOKEN_URI_REVEALED_TOPIC",
    "Web3Chain",
    "decode_address",
    "deploy_holographable_contract_call",
    "encode_call",
    "get_contract_type_address_call",
    "get_factory_address",
    "get_registry_address",
    "lazy_mint_call",
    "read_address",
    "reveal_call",
    "set_contract_type_address_call",
    "topic_to_address",
    "wait_for_success",
]
