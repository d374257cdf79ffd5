"""Process-wide constant tables for Holograph networks and namespaces."""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from eth_utils import to_checksum_address

from .errors import ConfigurationError
from .hashing import contract_type_hash

ENVIRONMENTS = ("localhost", "experimental", "develop", "testnet", "mainnet")
DEFAULT_ENVIRONMENT = "develop"

HOLOGRAPH_ADDRESSES: Mapping[str, str] = MappingProxyType(
    {
        "localhost": "0x17253175f447ca4b560a87a3f39591dfc7a021e3",
        "experimental": "0x199728d88a68856868f50fc259f01bb4d2672da9",
        "develop": "0x11bc5912f9ed5e16820f018692f8e7fda91a8529",
        "testnet": "0x1ed99dfe7462763eaf6925271d7cb2232a61854c",
        "mainnet": "0x1ed99dfe7462763eaf6925271d7cb2232a61854c",
    }
)

# EVM chain id -> Holograph chain identity (uint32 ``chainType``).
# Mainnets use small ids; each testnet shares its mainnet's id offset by 4000000000.
CHAIN_IDENTITIES: Mapping[int, int] = MappingProxyType(
    {
        # ethereum
        1: 1,
        5: 4000000001,
        11155111: 4000000001,
        # binance smart chain
        56: 2,
        97: 4000000002,
        # avalanche
        43114: 3,
        43113: 4000000003,
        # polygon
        137: 4,
        80001: 4000000004,
        80002: 4000000004,
        # fantom
        250: 5,
        4002: 4000000005,
        # arbitrum
        42161: 6,
        421613: 4000000006,
        421614: 4000000006,
        # optimism
        10: 7,
        420: 4000000007,
        11155420: 4000000007,
        # mantle
        5000: 8,
        5001: 4000000008,
        5003: 4000000008,
        # base
        8453: 9,
        84531: 4000000009,
        84532: 4000000009,
        # zora
        7777777: 10,
        999: 4000000010,
        999999999: 4000000010,
        # linea
        59144: 11,
        59140: 4000000011,
        59141: 4000000011,
        # local hardhat/anvil pair
        1338: 4294967294,
        1339: 4294967293,
    }
)

RESERVED_NAMESPACE_NAMES = (
    "HolographGeneric",
    "HolographERC20",
    "HolographERC721",
    "HolographDropERC721",
    "HolographDropERC721V2",
    "CustomERC721",
    "CountdownERC721",
    "HolographDropERC1155",
    "HolographERC1155",
    "CxipERC721",
    "CxipERC1155",
    "HolographRoyalties",
    "DropsPriceOracleProxy",
    "EditionsMetadataRendererProxy",
    "DropsMetadataRendererProxy",
    "hToken",
)

RESERVED_NAMESPACES: Mapping[str, bytes] = MappingProxyType(
    {name: contract_type_hash(name) for name in RESERVED_NAMESPACE_NAMES}
)


def holograph_address(environment: str) -> str:
    try:
        return to_checksum_address(HOLOGRAPH_ADDRESSES[environment])
    except KeyError as exc:
        raise ConfigurationError(
            f"Unknown Holograph environment {environment!r}; expected one of {', '.join(ENVIRONMENTS)}"
        ) from exc


def chain_identity(chain_id: int, overrides: Optional[Mapping[int, int]] = None) -> int:
    """Map an EVM chain id to the framework-internal chain identity."""

    if overrides and chain_id in overrides:
        return overrides[chain_id]
    try:
        return CHAIN_IDENTITIES[chain_id]
    except KeyError as exc:
        raise ConfigurationError(f"No Holograph chain identity known for chain id {chain_id}") from exc


def reserved_namespace(name: str) -> bytes:
    try:
        return RESERVED_NAMESPACES[name]
    except KeyError as exc:
        raise ConfigurationError(f"{name!r} is not a reserved namespace") from exc


__all__ = [
    "CHAIN_IDENTITIES",
    "DEFAULT_ENVIRONMENT",
    "ENVIRONMENTS",
    "HOLOGRAPH_ADDRESSES",
    "RESERVED_NAMESPACES",
    "RESERVED_NAMESPACE_NAMES",
    "chain_identity",
    "holograph_address",
    "reserved_namespace",
]
