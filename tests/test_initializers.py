from __future__ import annotations

from eth_abi import decode as abi_decode
from eth_utils import to_checksum_address

from holograph_deploy.encoding import parse_bytes
from holograph_deploy.initializers import (
    CountdownERC721Initializer,
    CustomERC721Initializer,
    LazyMintConfiguration,
    SalesConfiguration,
    build_holographable_init_code,
    encode_initializer,
)

OWNER = to_checksum_address("0x" + "ab" * 20)
REGISTRY = to_checksum_address("0x" + "1e" * 20)


def _custom() -> CustomERC721Initializer:
    return CustomERC721Initializer(
        start_date=1718822400,
        initial_max_supply=4173120,
        mint_interval=600,
        initial_owner=OWNER,
        initial_minter=OWNER,
        funds_recipient=OWNER,
        contract_uri="https://example.com/metadata.json",
        sales_configuration=SalesConfiguration(100),
        lazy_mint_configurations=[LazyMintConfiguration(5, "ipfs://p/", b"\x01")],
    )


def test_init_code_layers_decode_back_to_inputs():
    initializer = _custom()

    init_code = build_holographable_init_code(initializer, "CustomERC721", REGISTRY, "Collection", "COL", bps=250)

    name, symbol, bps, event_config, skip_init, source_init = abi_decode(
        ["string", "string", "uint16", "uint256", "bool", "bytes"], init_code
    )
    assert (name, symbol, bps, event_config, skip_init) == ("Collection", "COL", 250, 0, False)

    type_hash, registry, encoded = abi_decode(["bytes32", "address", "bytes"], source_init)
    assert type_hash == parse_bytes("CustomERC721")
    assert to_checksum_address(registry) == REGISTRY
    assert encoded == encode_initializer(initializer)


def test_custom_initializer_round_trips_through_its_abi_type():
    (decoded,) = abi_decode(
        ["(uint40,uint32,uint24,address,address,address,string,(uint104,uint24),(uint256,string,bytes)[])"],
        encode_initializer(_custom()),
    )
    assert decoded[0] == 1718822400
    assert decoded[7] == (100, 0)
    assert decoded[8] == ((5, "ipfs://p/", b"\x01"),)


def test_countdown_initializer_encodes_metadata_fields_first():
    initializer = CountdownERC721Initializer(
        description="desc",
        image_uri="ipfs://image",
        external_link="https://example.com",
        encrypted_media_uri="ipfs://media",
        start_date=1714512791,
        initial_max_supply=4173120,
        mint_interval=600,
        initial_owner=OWNER,
        initial_minter=OWNER,
        funds_recipient=OWNER,
        contract_uri="https://example.com/metadata.json",
        sales_configuration=SalesConfiguration(100, 5),
    )

    (decoded,) = abi_decode(
        ["(string,string,string,string,uint40,uint32,uint24,address,address,address,string,(uint104,uint24))"],
        encode_initializer(initializer),
    )
    assert decoded[:4] == ("desc", "ipfs://image", "https://example.com", "ipfs://media")
    assert decoded[11] == (100, 5)
