#!/usr/bin/env python3
"""Point a reserved Holograph namespace at a deployed address in the registry."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from holograph_deploy.chain import get_registry_address
from holograph_deploy.cli import add_log_level_argument, configure_logging, connect, multisig_relay
from holograph_deploy.config import load_settings
from holograph_deploy.errors import HolographDeployError
from holograph_deploy.networks import reserved_namespace
from holograph_deploy.registry import RegistryRegistrar


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--name", required=True, help="Reserved namespace, e.g. CustomERC721")
    parser.add_argument("--address", required=True, help="Address the namespace should resolve to")
    parser.add_argument(
        "--registry",
        default=None,
        help="Registry address (default: resolved from the Holograph contract)",
    )
    add_log_level_argument(parser)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    load_dotenv()

    try:
        type_hash = reserved_namespace(args.name)
        settings = load_settings()
        chain, signer = connect(settings)
        registry = args.registry or get_registry_address(chain, settings.holograph_address)
        registrar = RegistryRegistrar(chain, chain, registry, multisig=multisig_relay(settings, chain, signer))
        state = registrar.ensure_registered(type_hash, args.address)
    except HolographDeployError as exc:
        logging.error("Registration failed: %s", exc)
        return 1

    print(f"{args.name}: {state.value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
