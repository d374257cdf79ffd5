#!/usr/bin/env python3
"""Compute provenance hashes and encrypt reveal URIs for a batch CSV, in place."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from holograph_deploy.batches import BatchFile, encrypt_batches
from holograph_deploy.cli import add_log_level_argument, configure_logging, connect
from holograph_deploy.config import load_settings
from holograph_deploy.errors import HolographDeployError


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--file", type=Path, required=True, help="Batch CSV file to encrypt")
    parser.add_argument(
        "--chain-id",
        type=int,
        default=None,
        help="Chain id bound into provenance hashes (default: read from the provider)",
    )
    add_log_level_argument(parser)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    load_dotenv()

    try:
        batch_file = BatchFile(args.file)
        chain_id = args.chain_id
        if chain_id is None:
            chain, _ = connect(load_settings(), sign=False)
            chain_id = chain.chain_id
        report = encrypt_batches(batch_file, chain_id)
    except HolographDeployError as exc:
        logging.error("Encryption failed: %s", exc)
        return 1

    print(f"Encrypted {report.encrypted} batch(es); {report.skipped} already encrypted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
