#!/usr/bin/env python3
"""Lazy mint the encrypted batches of a CSV on an already deployed contract."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from holograph_deploy.batches import BatchFile, lazy_mint_batches
from holograph_deploy.cli import add_log_level_argument, configure_logging, connect
from holograph_deploy.config import load_settings
from holograph_deploy.errors import HolographDeployError


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--file", type=Path, required=True, help="Encrypted batch CSV file")
    parser.add_argument("--address", required=True, help="Deployed contract address")
    add_log_level_argument(parser)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    load_dotenv()

    try:
        batches = BatchFile(args.file).load()
        chain, _ = connect(load_settings())
        tx_hashes = lazy_mint_batches(batches, chain, chain, args.address)
    except HolographDeployError as exc:
        logging.error("Lazy mint failed: %s", exc)
        return 1

    for tx_hash in tx_hashes:
        print(tx_hash)
    return 0


if __name__ == "__main__":
    sys.exit(main())
