"""Typed initializer records for holographable ERC721 deployments.

Each record carries the ABI tuple signature it encodes to in ``ABI_TYPE``;
field declaration order is the tuple order.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Union

from .encoding import encode_arguments, encode_record, parse_bytes

SALES_CONFIGURATION_TYPE = "tuple(uint104,uint24)"
LAZY_MINT_CONFIGURATION_TYPE = "tuple(uint256,string,bytes)"


@dataclass(frozen=True)
class SalesConfiguration:
    ABI_TYPE: ClassVar[str] = SALES_CONFIGURATION_TYPE

    public_sale_price: int
    max_sale_purchase_per_address: int = 0  # 0 means unlimited


@dataclass(frozen=True)
class LazyMintConfiguration:
    """One ``lazyMint`` batch: token count, placeholder base URI and reveal data."""

    ABI_TYPE: ClassVar[str] = LAZY_MINT_CONFIGURATION_TYPE

    amount: int
    base_uri: str
    data: bytes


@dataclass(frozen=True)
class CustomERC721Initializer:
    ABI_TYPE: ClassVar[str] = (
        "tuple(uint40,uint32,uint24,address,address,address,string,"
        f"{SALES_CONFIGURATION_TYPE},{LAZY_MINT_CONFIGURATION_TYPE}[])"
    )

    start_date: int
    initial_max_supply: int
    mint_interval: int
    initial_owner: str
    initial_minter: str
    funds_recipient: str
    contract_uri: str
    sales_configuration: SalesConfiguration
    lazy_mint_configurations: List[LazyMintConfiguration] = field(default_factory=list)


@dataclass(frozen=True)
class CountdownERC721Initializer:
    ABI_TYPE: ClassVar[str] = (
        "tuple(string,string,string,string,uint40,uint32,uint24,address,address,address,string,"
        f"{SALES_CONFIGURATION_TYPE})"
    )

    description: str
    image_uri: str
    external_link: str
    encrypted_media_uri: str
    start_date: int
    initial_max_supply: int
    mint_interval: int
    initial_owner: str
    initial_minter: str
    funds_recipient: str
    contract_uri: str
    sales_configuration: SalesConfiguration


@dataclass(frozen=True)
class HolographERC721InitConfig:
    """Outer ``HolographERC721`` init parameters wrapping the source contract's init code."""

    ABI_TYPES: ClassVar[tuple] = ("string", "string", "uint16", "uint256", "bool", "bytes")

    contract_name: str
    contract_symbol: str
    contract_bps: int
    event_config: int
    skip_init: bool
    encoded_init_code: bytes

    def encode(self) -> bytes:
        return encode_arguments(
            self.ABI_TYPES,
            [
                self.contract_name,
                self.contract_symbol,
                self.contract_bps,
                self.event_config,
                self.skip_init,
                self.encoded_init_code,
            ],
        )


Initializer = Union[CustomERC721Initializer, CountdownERC721Initializer]

SOURCE_INIT_TYPES = ("bytes32", "address", "bytes")


def encode_initializer(initializer: Initializer) -> bytes:
    return encode_record(initializer.ABI_TYPE, initializer)


def build_holographable_init_code(
    initializer: Initializer,
    source_name: str,
    registry: str,
    name: str,
    symbol: str,
    bps: int = 0,
    event_config: int = 0,
    skip_init: bool = False,
) -> bytes:
    """Layer ``initializer`` into the init code passed to the Holograph factory.

    The source contract's tuple is wrapped with its reserved type name and the
    registry address, and the result becomes the ``bytes`` tail of the
    ``HolographERC721`` init parameters.
    """

    source_init = encode_arguments(
        SOURCE_INIT_TYPES,
        [parse_bytes(source_name), registry, encode_initializer(initializer)],
    )
    return HolographERC721InitConfig(
        contract_name=name,
        contract_symbol=symbol,
        contract_bps=bps,
        event_config=event_config,
        skip_init=skip_init,
        encoded_init_code=source_init,
    ).encode()


__all__ = [
    "CountdownERC721Initializer",
    "CustomERC721Initializer",
    "HolographERC721InitConfig",
    "Initializer",
    "LazyMintConfiguration",
    "SalesConfiguration",
    "build_holographable_init_code",
    "encode_initializer",
]
