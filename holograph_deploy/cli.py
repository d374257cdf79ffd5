"""Plumbing shared by the ``scripts/`` entry points."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional, Tuple

from .authorization import LocalSigner
from .chain import Web3Chain
from .config import Settings
from .encoding import hex_to_bytes
from .errors import ConfigurationError, EncodingError
from .multisig import MultisigRelay, SafeTransactionServiceRelay


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


def add_log_level_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging verbosity (DEBUG, INFO, WARNING)",
    )


def connect(settings: Settings, *, sign: bool = True) -> Tuple[Web3Chain, Optional[LocalSigner]]:
    """Open a :class:`Web3Chain` for ``settings``, signing locally when ``sign`` is set."""

    signer = settings.signer() if sign else None
    return Web3Chain.from_url(settings.provider_url, signer=signer), signer


def multisig_relay(settings: Settings, chain: Web3Chain, signer: LocalSigner) -> Optional[MultisigRelay]:
    if not settings.multisig_enabled:
        return None
    return SafeTransactionServiceRelay(
        base_url=settings.safe_service_url,
        safe_address=settings.safe_address,
        chain_id=chain.chain_id,
        signer=signer,
    )


def load_bytecode(path: Path) -> bytes:
    """Read creation bytecode from a hex file or a compiler artifact JSON."""

    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigurationError(f"Unable to read bytecode from {path}: {exc}") from exc
    if path.suffix.lower() == ".json":
        try:
            artifact = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc
        bytecode = artifact.get("bytecode") if isinstance(artifact, dict) else None
        if isinstance(bytecode, dict):
            bytecode = bytecode.get("object")
        if not isinstance(bytecode, str):
            raise ConfigurationError(f"{path} has no 'bytecode' entry")
        text = bytecode if bytecode.startswith("0x") else "0x" + bytecode
    try:
        code = hex_to_bytes(text, label=str(path))
    except EncodingError as exc:
        raise ConfigurationError(str(exc)) from exc
    if not code:
        raise ConfigurationError(f"{path} contains no bytecode")
    return code


__all__ = [
    "add_log_level_argument",
    "configure_logging",
    "connect",
    "load_bytecode",
    "multisig_relay",
]
