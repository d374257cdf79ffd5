#!/usr/bin/env python3
"""Reveal every batch marked ``Should Decrypt`` in a batch CSV."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from holograph_deploy.batches import BatchFile
from holograph_deploy.cli import add_log_level_argument, configure_logging, connect
from holograph_deploy.config import load_settings
from holograph_deploy.errors import HolographDeployError
from holograph_deploy.reveal import reveal_batches


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--file", type=Path, required=True, help="Encrypted batch CSV file")
    parser.add_argument("--address", required=True, help="Deployed contract address")
    parser.add_argument(
        "--stop-on-error",
        action="store_true",
        help="Abort at the first batch that fails to reveal",
    )
    add_log_level_argument(parser)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    load_dotenv()

    try:
        batches = BatchFile(args.file).load()
        chain, _ = connect(load_settings())
        outcomes = reveal_batches(batches, chain, chain, args.address, stop_on_error=args.stop_on_error)
    except HolographDeployError as exc:
        logging.error("Reveal failed: %s", exc)
        return 1

    failed = [outcome for outcome in outcomes if not outcome.succeeded]
    for outcome in outcomes:
        status = "revealed" if outcome.succeeded else f"failed: {outcome.error}"
        print(f"Batch {outcome.batch_id}: {status}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
