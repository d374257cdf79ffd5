"""Shared fixtures: in-memory chain, HTTP and multisig doubles."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

import pytest
import requests

from holograph_deploy.authorization import LocalSigner
from holograph_deploy.chain import ContractCall, Receipt
from holograph_deploy.multisig import SafeTransactionProposal

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_PRIVATE_KEY = "0x" + "11" * 32


class FakeChain:
    """Reader and writer in one, driven entirely by test-provided state."""

    def __init__(self) -> None:
        self.codes: Dict[str, bytes] = {}
        self.receipts: Dict[str, Receipt] = {}
        self.submitted: List[Dict[str, Any]] = []
        self.call_handler: Optional[Callable[[str, bytes], bytes]] = None
        self.on_submit: Optional[Callable[[Mapping[str, Any], str], Optional[Receipt]]] = None
        self.submit_error: Optional[Exception] = None

    def set_code(self, address: str, code: bytes = b"\x60\x80\x60\x40") -> None:
        self.codes[address.lower()] = code

    def get_code(self, address: str) -> bytes:
        return self.codes.get(address.lower(), b"")

    def call(self, to: str, data: bytes) -> bytes:
        if self.call_handler is None:
            raise AssertionError(f"Unexpected eth_call to {to}")
        return self.call_handler(to, data)

    def submit(self, transaction: Mapping[str, Any]) -> str:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(dict(transaction))
        tx_hash = "0x" + f"{len(self.submitted):064x}"
        receipt = self.on_submit(transaction, tx_hash) if self.on_submit else None
        self.receipts[tx_hash] = receipt or Receipt(transaction_hash=tx_hash, status=1)
        return tx_hash

    def get_transaction_receipt(self, tx_hash: str) -> Receipt:
        return self.receipts[tx_hash]


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        return self._payload


class FakeSession:
    """Records requests and replays canned responses keyed by HTTP method."""

    def __init__(self, get: Optional[FakeResponse] = None, post: Optional[FakeResponse] = None) -> None:
        self._get = get
        self._post = post
        self.requests: List[Dict[str, Any]] = []

    def get(self, url, headers=None, timeout=None):
        self.requests.append({"method": "GET", "url": url})
        if self._get is None:
            raise AssertionError(f"Unexpected GET {url}")
        return self._get

    def post(self, url, json=None, headers=None, timeout=None):
        self.requests.append({"method": "POST", "url": url, "json": json})
        if self._post is None:
            raise AssertionError(f"Unexpected POST {url}")
        return self._post


class FakeMultisig:
    def __init__(self) -> None:
        self.calls: List[ContractCall] = []

    def propose_transaction(self, call: ContractCall) -> SafeTransactionProposal:
        self.calls.append(call)
        return SafeTransactionProposal(
            safe="0x" + "55" * 20,
            to=call.to,
            value=call.value,
            data=call.data,
            nonce=len(self.calls) - 1,
            safe_tx_hash=b"\x00" * 32,
            signature=None,  # type: ignore[arg-type]
            sender="0x" + "66" * 20,
        )


@pytest.fixture
def signer() -> LocalSigner:
    return LocalSigner(PRIVATE_KEY)


@pytest.fixture
def other_signer() -> LocalSigner:
    return LocalSigner(OTHER_PRIVATE_KEY)


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def fake_multisig() -> FakeMultisig:
    return FakeMultisig()


@pytest.fixture
def private_key() -> str:
    return PRIVATE_KEY
