#!/usr/bin/env python3
"""Deploy a CustomERC721 or CountdownERC721 through the Holograph factory."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv
from eth_utils import to_hex

from holograph_deploy.authorization import DeploymentDescriptor
from holograph_deploy.batches import BatchFile, lazy_mint_configuration
from holograph_deploy.chain import get_factory_address, get_registry_address
from holograph_deploy.cli import add_log_level_argument, configure_logging, connect, load_bytecode
from holograph_deploy.config import load_settings
from holograph_deploy.deployer import DeploymentOrchestrator
from holograph_deploy.errors import ConfigurationError, HolographDeployError
from holograph_deploy.hashing import digest
from holograph_deploy.initializers import (
    CountdownERC721Initializer,
    CustomERC721Initializer,
    Initializer,
    LazyMintConfiguration,
    SalesConfiguration,
    build_holographable_init_code,
)
from holograph_deploy.networks import chain_identity

SOURCE_CONTRACTS = ("CustomERC721", "CountdownERC721")
HOLOGRAPH_CONTRACT_TYPE = "HolographERC721"
DEFAULT_SALT_FILE = Path("deployment-salt.txt")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--source",
        choices=SOURCE_CONTRACTS,
        default="CustomERC721",
        help="Source contract wrapped by HolographERC721 (default: CustomERC721)",
    )
    parser.add_argument("--bytecode", type=Path, required=True, help="Hex file or artifact JSON with the bytecode")
    creation = parser.add_mutually_exclusive_group(required=True)
    creation.add_argument(
        "--holographer-bytecode",
        type=Path,
        help="Holographer proxy creation code (hex file or artifact JSON) the factory feeds to CREATE2",
    )
    creation.add_argument(
        "--creation-code-hash",
        help="keccak-256 of the Holographer proxy creation code",
    )
    parser.add_argument(
        "--salt-file",
        type=Path,
        default=DEFAULT_SALT_FILE,
        help="Where a generated salt is saved and reused when CUSTOM_ERC721_SALT is unset",
    )
    parser.add_argument(
        "--chain-identity",
        type=int,
        default=None,
        help="Holograph chain identity to use instead of the built-in table",
    )
    parser.add_argument("--file", type=Path, default=None, help="Encrypted batch CSV to lazy mint at deploy time")
    parser.add_argument("--name", default=None, help="Collection name (default: the source contract name)")
    parser.add_argument("--symbol", default="C721", help="Collection symbol (default: C721)")
    parser.add_argument("--contract-uri", default="https://example.com/metadata.json", help="Contract metadata URI")
    parser.add_argument("--start-date", type=int, default=1718822400, help="Countdown start (epoch seconds)")
    parser.add_argument(
        "--initial-max-supply",
        type=int,
        default=4173120,
        help="Theoretical maximum supply at the start of the countdown",
    )
    parser.add_argument("--mint-interval", type=int, default=600, help="Seconds removed per mint (default: 600)")
    parser.add_argument("--public-sale-price", type=int, default=100, help="Public sale price (default: 100)")
    parser.add_argument(
        "--max-per-address",
        type=int,
        default=0,
        help="Purchase limit per address, 0 for unlimited",
    )
    parser.add_argument("--description", default="", help="CountdownERC721 collection description")
    parser.add_argument("--image-uri", default="", help="CountdownERC721 image URI")
    parser.add_argument("--external-link", default="", help="CountdownERC721 external link")
    parser.add_argument("--encrypted-media-uri", default="", help="CountdownERC721 encrypted media URI")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the future address and descriptor hash",
    )
    add_log_level_argument(parser)
    return parser.parse_args(argv)


def load_lazy_mints(path: Optional[Path]) -> List[LazyMintConfiguration]:
    if path is None:
        return []
    return [lazy_mint_configuration(batch) for batch in BatchFile(path).load()]


def build_initializer(args: argparse.Namespace, owner: str) -> Initializer:
    sales = SalesConfiguration(args.public_sale_price, args.max_per_address)
    if args.source == "CountdownERC721":
        if args.file is not None:
            raise ConfigurationError("--file is only supported for CustomERC721 deployments")
        return CountdownERC721Initializer(
            description=args.description,
            image_uri=args.image_uri,
            external_link=args.external_link,
            encrypted_media_uri=args.encrypted_media_uri,
            start_date=args.start_date,
            initial_max_supply=args.initial_max_supply,
            mint_interval=args.mint_interval,
            initial_owner=owner,
            initial_minter=owner,
            funds_recipient=owner,
            contract_uri=args.contract_uri,
            sales_configuration=sales,
        )
    return CustomERC721Initializer(
        start_date=args.start_date,
        initial_max_supply=args.initial_max_supply,
        mint_interval=args.mint_interval,
        initial_owner=owner,
        initial_minter=owner,
        funds_recipient=owner,
        contract_uri=args.contract_uri,
        sales_configuration=sales,
        lazy_mint_configurations=load_lazy_mints(args.file),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    load_dotenv()

    try:
        settings = load_settings()
        chain, signer = connect(settings)
        byte_code = load_bytecode(args.bytecode)
        if args.holographer_bytecode is not None:
            creation_code_hash = digest(load_bytecode(args.holographer_bytecode))
        else:
            creation_code_hash = args.creation_code_hash

        factory = get_factory_address(chain, settings.holograph_address)
        registry = get_registry_address(chain, settings.holograph_address)
        initializer = build_initializer(args, signer.address)
        init_code = build_holographable_init_code(
            initializer, args.source, registry, args.name or args.source, args.symbol
        )
        overrides = None if args.chain_identity is None else {chain.chain_id: args.chain_identity}
        salt = settings.deployment_salt(args.salt_file)
        logging.info("Deployment salt: %s", to_hex(salt))
        descriptor = DeploymentDescriptor.create(
            HOLOGRAPH_CONTRACT_TYPE,
            chain_identity(chain.chain_id, overrides=overrides),
            salt,
            byte_code,
            init_code,
        )
        orchestrator = DeploymentOrchestrator(chain, chain, signer, factory, creation_code_hash=creation_code_hash)

        if args.dry_run:
            print(f"Future address: {orchestrator.future_address(descriptor)}")
            print(f"Descriptor hash: {to_hex(orchestrator.deployment_salt(descriptor))}")
            print(f"Salt: {to_hex(descriptor.salt)}")
            return 0

        result = orchestrator.ensure_deployed(descriptor)
    except HolographDeployError as exc:
        logging.error("Deployment failed: %s", exc)
        return 1

    print(f"Contract address: {result.address} ({result.state.value})")
    print(f"Salt: {to_hex(descriptor.salt)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
