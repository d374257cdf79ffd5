"""Reveal phase of the delayed-reveal pipeline.

The contract is the authority on provenance: it recomputes the hash from the
supplied key and reverts on mismatch.  Batches are independent, so by default
a failed batch is recorded and the loop moves on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from .batches import RevealBatch
from .chain import TOKEN_URI_REVEALED_TOPIC, ChainReader, ChainWriter, Receipt, reveal_call
from .cipher import encrypt_decrypt
from .errors import HolographDeployError, ProvenanceMismatchError, TransactionError, ValidationError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevealOutcome:
    batch_id: int
    tx_hash: Optional[str] = None
    revealed_uri: Optional[str] = None
    error: Optional[HolographDeployError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def revealed_uri_from_receipt(receipt: Receipt, batch_id: int) -> Optional[str]:
    """Return the URI from the ``TokenURIRevealed`` event for ``batch_id``, if emitted."""

    for log in receipt.logs_with_topic(TOKEN_URI_REVEALED_TOPIC):
        if len(log.topics) > 1 and int.from_bytes(log.topics[1], "big") != batch_id:
            continue
        try:
            (uri,) = abi_decode(["string"], log.data)
        except DecodingError:
            _LOGGER.warning("Undecodable TokenURIRevealed payload in %s", receipt.transaction_hash)
            continue
        return uri
    return None


def reveal_batch(batch: RevealBatch, reader: ChainReader, writer: ChainWriter, contract: str) -> RevealOutcome:
    call = reveal_call(contract, batch.batch_id, batch.key)
    try:
        tx_hash = writer.submit(call.as_transaction())
    except TransactionError:
        raise
    except Exception as exc:  # pylint: disable=broad-except - writer backends vary
        raise TransactionError(f"Failed to create reveal transaction for batch {batch.batch_id}: {exc}") from exc

    _LOGGER.info("Reveal transaction for batch %d: %s", batch.batch_id, tx_hash)
    receipt = reader.get_transaction_receipt(tx_hash)
    if not receipt.succeeded:
        raise ProvenanceMismatchError(
            batch.batch_id,
            f"Reveal of batch {batch.batch_id} reverted; the key does not match the committed provenance hash",
            tx_hash=tx_hash,
        )
    uri = revealed_uri_from_receipt(receipt, batch.batch_id)
    if uri is None:
        _LOGGER.warning("Batch %d revealed but no TokenURIRevealed event was found", batch.batch_id)
    else:
        _LOGGER.info("Successfully revealed batch %d. URI: %s", batch.batch_id, uri)
    return RevealOutcome(batch_id=batch.batch_id, tx_hash=tx_hash, revealed_uri=uri)


def reveal_batches(
    batches: Sequence[RevealBatch],
    reader: ChainReader,
    writer: ChainWriter,
    contract: str,
    stop_on_error: bool = False,
) -> List[RevealOutcome]:
    """Reveal every batch flagged ``should_decrypt``, in file order."""

    outcomes: List[RevealOutcome] = []
    for batch in batches:
        if not batch.should_decrypt:
            continue
        try:
            outcomes.append(reveal_batch(batch, reader, writer, contract))
        except TransactionError as exc:
            if stop_on_error:
                raise
            _LOGGER.error("Batch %d failed to reveal: %s", batch.batch_id, exc)
            outcomes.append(RevealOutcome(batch_id=batch.batch_id, tx_hash=exc.tx_hash, error=exc))
    return outcomes


def decrypt_locally(batch: RevealBatch) -> str:
    """Preview the plaintext URI of an encrypted batch without touching the chain."""

    if batch.encrypted_uri is None:
        raise ValidationError(f"Batch {batch.batch_id} has no encrypted URI")
    plaintext = encrypt_decrypt(batch.encrypted_uri, batch.key)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationError(f"Batch {batch.batch_id} does not decrypt to UTF-8 with its key") from exc


__all__ = [
    "RevealOutcome",
    "decrypt_locally",
    "reveal_batch",
    "reveal_batches",
    "revealed_uri_from_receipt",
]
