"""CSV-driven delayed-reveal batches: schema, resumable file and encrypt phase.

The batch file is its own resume cursor.  A row whose ``ProvenanceHash`` and
``EncryptedURI`` are populated is finished and is never encrypted again, and
the file is rewritten atomically after every row so an interrupted run picks
up where it stopped.
"""
from __future__ import annotations

import csv
import io
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from eth_utils import to_hex

from .chain import ChainReader, ChainWriter, lazy_mint_call, wait_for_success
from .cipher import encrypt_decrypt
from .encoding import encode_arguments, hex_to_bytes
from .errors import EncodingError, ValidationError
from .hashing import provenance_hash
from .initializers import LazyMintConfiguration

_LOGGER = logging.getLogger(__name__)

EXPECTED_HEADER: Tuple[str, ...] = (
    "BatchId",
    "Name",
    "Range",
    "PlaceholderURI Path",
    "RevealURI Path",
    "Key",
    "ProvenanceHash",
    "EncryptedURI",
    "Should Decrypt",
)
LAZY_MINT_DATA_TYPES = ("bytes", "bytes32")


@dataclass(frozen=True)
class RevealBatch:
    batch_id: int
    name: str
    range_size: int
    placeholder_uri: str
    reveal_uri: str
    key: bytes
    provenance_hash: Optional[bytes] = None
    encrypted_uri: Optional[bytes] = None
    should_decrypt: bool = False
    # Cells as read from disk; rows that were not modified are written back verbatim.
    source_cells: Optional[Tuple[str, ...]] = field(default=None, compare=False, repr=False)

    @property
    def is_encrypted(self) -> bool:
        return self.provenance_hash is not None and self.encrypted_uri is not None

    def to_row(self) -> List[str]:
        if self.source_cells is not None:
            return list(self.source_cells)
        return [
            str(self.batch_id),
            self.name,
            str(self.range_size),
            self.placeholder_uri,
            self.reveal_uri,
            to_hex(self.key),
            "" if self.provenance_hash is None else to_hex(self.provenance_hash),
            "" if self.encrypted_uri is None else to_hex(self.encrypted_uri),
            "true" if self.should_decrypt else "false",
        ]


def _trim_trailing_blanks(cells: Sequence[str]) -> List[str]:
    trimmed = [cell.strip() for cell in cells]
    while trimmed and not trimmed[-1]:
        trimmed.pop()
    return trimmed


def validate_header(header: Sequence[str]) -> None:
    """Require the exact expected columns in the exact expected order."""

    columns = _trim_trailing_blanks(header)
    for position, expected in enumerate(EXPECTED_HEADER):
        found = columns[position] if position < len(columns) else None
        if found != expected:
            raise ValidationError(
                f"Header column name mismatch at column {position + 1}. Expected: {expected}, Found: {found}"
            )
    if len(columns) > len(EXPECTED_HEADER):
        raise ValidationError(f"Unexpected header column {len(EXPECTED_HEADER) + 1}: {columns[len(EXPECTED_HEADER)]}")


def _positive_int(value: str, column: str, row_index: int) -> int:
    try:
        number = int(value)
    except ValueError:
        raise ValidationError(f"{column} must be an integer, got {value!r}", row_index=row_index) from None
    if number <= 0:
        raise ValidationError(f"{column} must be positive, got {number}", row_index=row_index)
    return number


def _hex_cell(value: str, column: str, row_index: int, size: Optional[int] = None) -> bytes:
    try:
        return hex_to_bytes(value, size=size, label=column)
    except EncodingError as exc:
        raise ValidationError(str(exc), row_index=row_index) from exc


def _bool_cell(value: str, column: str, row_index: int) -> bool:
    lowered = value.lower()
    if lowered not in ("true", "false"):
        raise ValidationError(f"{column} must be true or false, got {value!r}", row_index=row_index)
    return lowered == "true"


def parse_row(cells: Sequence[str], row_index: int) -> RevealBatch:
    """Parse one data row; ``row_index`` is 1-based and used in error messages."""

    values = [cell.strip() for cell in cells]
    if len(values) < len(EXPECTED_HEADER):
        values.extend([""] * (len(EXPECTED_HEADER) - len(values)))
    if len(values) > len(EXPECTED_HEADER) and any(values[len(EXPECTED_HEADER):]):
        raise ValidationError(
            f"Expected {len(EXPECTED_HEADER)} columns, got {len(values)}", row_index=row_index
        )
    batch_id, name, range_size, placeholder, reveal_uri, key, provenance, encrypted, should_decrypt = values[
        : len(EXPECTED_HEADER)
    ]

    if not reveal_uri:
        raise ValidationError("RevealURI Path is required", row_index=row_index)
    if not key:
        raise ValidationError("Key is required", row_index=row_index)
    if bool(provenance) != bool(encrypted):
        raise ValidationError(
            "ProvenanceHash and EncryptedURI must be populated together", row_index=row_index
        )
    key_bytes = _hex_cell(key, "Key", row_index)
    if not key_bytes:
        raise ValidationError("Key is required", row_index=row_index)

    return RevealBatch(
        batch_id=_positive_int(batch_id, "BatchId", row_index),
        name=name,
        range_size=_positive_int(range_size, "Range", row_index),
        placeholder_uri=placeholder,
        reveal_uri=reveal_uri,
        key=key_bytes,
        provenance_hash=_hex_cell(provenance, "ProvenanceHash", row_index, size=32) if provenance else None,
        encrypted_uri=_hex_cell(encrypted, "EncryptedURI", row_index) if encrypted else None,
        should_decrypt=_bool_cell(should_decrypt, "Should Decrypt", row_index),
        source_cells=tuple(cells),
    )


class BatchFile:
    """A batch CSV on disk, read in full and rewritten atomically."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        if self.path.suffix.lower() != ".csv":
            raise ValidationError(f"{self.path} is not a CSV file")

    def load(self) -> List[RevealBatch]:
        """Validate the header and every row before returning anything.

        Row numbers count records after the header, blank ones included, so
        an error message points at the same row an editor shows.
        """

        with self.path.open("r", encoding="utf-8", newline="") as handle:
            records = list(enumerate(csv.reader(handle)))
        rows = [(index, row) for index, row in records if any(cell.strip() for cell in row)]
        if not rows:
            raise ValidationError(f"{self.path} is empty")
        (header_index, header), *lines = rows
        validate_header(header)
        return [parse_row(cells, index - header_index) for index, cells in lines]

    def checkpoint(self, batches: Sequence[RevealBatch]) -> None:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(EXPECTED_HEADER)
        for batch in batches:
            writer.writerow(batch.to_row())

        tmp = self.path.with_name(f".{self.path.name}.tmp")
        with open(tmp, "w", encoding="utf-8", newline="") as handle:
            handle.write(buffer.getvalue())
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp, self.path)


@dataclass(frozen=True)
class EncryptionReport:
    batches: Tuple[RevealBatch, ...]
    encrypted: int
    skipped: int


def encrypt_batch(batch: RevealBatch, chain_id: int) -> RevealBatch:
    return replace(
        batch,
        provenance_hash=provenance_hash(batch.reveal_uri, batch.key, chain_id),
        encrypted_uri=encrypt_decrypt(batch.reveal_uri.encode("utf-8"), batch.key),
        source_cells=None,
    )


def encrypt_batches(batch_file: BatchFile, chain_id: int) -> EncryptionReport:
    """Encrypt every pending row of ``batch_file``, checkpointing after each one."""

    batches = batch_file.load()
    encrypted = skipped = 0
    for position, batch in enumerate(batches):
        if batch.is_encrypted:
            skipped += 1
            _LOGGER.debug("Batch %d already encrypted, skipping", batch.batch_id)
            continue
        batches[position] = encrypt_batch(batch, chain_id)
        batch_file.checkpoint(batches)
        encrypted += 1
        _LOGGER.info("Encrypted batch %d (%s)", batch.batch_id, batch.name)
    _LOGGER.info("Encryption finished: %d encrypted, %d already done", encrypted, skipped)
    return EncryptionReport(batches=tuple(batches), encrypted=encrypted, skipped=skipped)


def lazy_mint_configuration(batch: RevealBatch) -> LazyMintConfiguration:
    if not batch.is_encrypted:
        raise ValidationError(f"Batch {batch.batch_id} has not been encrypted yet")
    data = encode_arguments(LAZY_MINT_DATA_TYPES, [batch.encrypted_uri, batch.provenance_hash])
    return LazyMintConfiguration(amount=batch.range_size, base_uri=batch.placeholder_uri, data=data)


def lazy_mint_batches(
    batches: Sequence[RevealBatch], reader: ChainReader, writer: ChainWriter, contract: str
) -> List[str]:
    """Submit ``lazyMint`` for each batch in order and return the transaction hashes."""

    configurations = [lazy_mint_configuration(batch) for batch in batches]
    tx_hashes: List[str] = []
    for batch, configuration in zip(batches, configurations):
        call = lazy_mint_call(contract, configuration.amount, configuration.base_uri, configuration.data)
        tx_hash = writer.submit(call.as_transaction())
        wait_for_success(reader, tx_hash, f"Lazy mint of batch {batch.batch_id}")
        _LOGGER.info("Lazy minted batch %d (%d tokens): %s", batch.batch_id, configuration.amount, tx_hash)
        tx_hashes.append(tx_hash)
    return tx_hashes


__all__ = [
    "BatchFile",
    "EXPECTED_HEADER",
    "EncryptionReport",
    "RevealBatch",
    "encrypt_batch",
    "encrypt_batches",
    "lazy_mint_batches",
    "lazy_mint_configuration",
    "parse_row",
    "validate_header",
]
