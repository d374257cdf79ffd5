#!/usr/bin/env python3
"""Derive delayed-reveal keys and deployer secrets.

Arguments fall back to the ``SECRET_PREFIX``, ``CHAIN_ID``,
``CONTRACT_ADDRESS``, ``ID_FOR_DELAYED_REVEAL_NFTS`` and ``DEPLOYER_SECRET``
environment variables.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv
from eth_utils import to_hex

from holograph_deploy.cli import add_log_level_argument, configure_logging
from holograph_deploy.errors import ConfigurationError
from holograph_deploy.hashing import delayed_reveal_secret, deployer_secret


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    add_log_level_argument(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    reveal = subparsers.add_parser("reveal", help="Key for one delayed-reveal batch")
    reveal.add_argument("--prefix", default=None, help="Secret prefix (env: SECRET_PREFIX)")
    reveal.add_argument("--chain-id", default=None, help="Chain id (env: CHAIN_ID)")
    reveal.add_argument("--contract-address", default=None, help="Contract address (env: CONTRACT_ADDRESS)")
    reveal.add_argument("--reveal-id", default=None, help="Batch id (env: ID_FOR_DELAYED_REVEAL_NFTS)")

    deployer = subparsers.add_parser("deployer", help="20-byte deployer secret")
    deployer.add_argument("--secret", default=None, help="Secret phrase (env: DEPLOYER_SECRET)")
    return parser.parse_args(argv)


def _resolve(value: Optional[str], env_name: str) -> str:
    resolved = value if value is not None else os.getenv(env_name)
    if not resolved:
        raise ConfigurationError(f"{env_name} is required")
    return resolved


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    load_dotenv()

    try:
        if args.command == "reveal":
            chain_id = _resolve(args.chain_id, "CHAIN_ID")
            if not chain_id.isdigit():
                raise ConfigurationError(f"CHAIN_ID must be an integer, got {chain_id!r}")
            secret = delayed_reveal_secret(
                _resolve(args.prefix, "SECRET_PREFIX"),
                int(chain_id),
                _resolve(args.contract_address, "CONTRACT_ADDRESS"),
                _resolve(args.reveal_id, "ID_FOR_DELAYED_REVEAL_NFTS"),
            )
        else:
            secret = deployer_secret(_resolve(args.secret, "DEPLOYER_SECRET"))
    except ConfigurationError as exc:
        logging.error("%s", exc)
        return 1

    print(to_hex(secret))
    return 0


if __name__ == "__main__":
    sys.exit(main())
