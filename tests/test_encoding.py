from __future__ import annotations

import pytest
from eth_abi import encode as abi_encode
from eth_utils import to_checksum_address

from holograph_deploy.encoding import (
    check_types,
    encode_arguments,
    encode_packed,
    encode_record,
    flatten_record,
    generate_salt,
    hex_to_bytes,
    parse_bytes,
    to_bytes32,
)
from holograph_deploy.errors import EncodingError
from holograph_deploy.initializers import CustomERC721Initializer, LazyMintConfiguration, SalesConfiguration

OWNER = "0x" + "ab" * 20


def _initializer(**overrides):
    values = dict(
        start_date=1718822400,
        initial_max_supply=4173120,
        mint_interval=600,
        initial_owner=OWNER,
        initial_minter=OWNER,
        funds_recipient=OWNER,
        contract_uri="https://example.com/metadata.json",
        sales_configuration=SalesConfiguration(100, 0),
        lazy_mint_configurations=[LazyMintConfiguration(10, "ipfs://placeholder/", b"\x01\x02")],
    )
    values.update(overrides)
    return CustomERC721Initializer(**values)


def test_parse_bytes_left_pads_utf8_name():
    value = parse_bytes("Widget")
    assert len(value) == 32
    assert value == b"\x00" * 26 + b"Widget"


def test_parse_bytes_rejects_names_longer_than_32_bytes():
    with pytest.raises(EncodingError):
        parse_bytes("x" * 33)


def test_generate_salt_is_millisecond_timestamp():
    assert generate_salt(now=1.5) == (1500).to_bytes(32, "big")


def test_hex_to_bytes_accepts_prefixed_hex_and_bytes():
    assert hex_to_bytes("0x0102") == b"\x01\x02"
    assert hex_to_bytes(bytearray(b"\x03")) == b"\x03"


@pytest.mark.parametrize("value", ["0xzz", "not hex", 12])
def test_hex_to_bytes_rejects_invalid_input(value):
    with pytest.raises(EncodingError):
        hex_to_bytes(value)


def test_to_bytes32_enforces_width():
    with pytest.raises(EncodingError):
        to_bytes32("0x01")


def test_flatten_record_follows_field_declaration_order():
    flattened = flatten_record(_initializer())

    assert flattened[:3] == [1718822400, 4173120, 600]
    assert flattened[7] == [100, 0]
    assert flattened[8] == [[10, "ipfs://placeholder/", b"\x01\x02"]]


def test_flatten_record_rejects_mappings():
    with pytest.raises(EncodingError):
        flatten_record({"amount": 1})


@pytest.mark.parametrize(
    "types, values",
    [
        (["uint256"], [True]),
        (["uint8"], [256]),
        (["uint8"], [-1]),
        (["int8"], [-129]),
        (["bool"], [1]),
        (["string"], [b"bytes"]),
        (["bytes32"], [b"\x00" * 31]),
        (["address"], ["0x1234"]),
        (["(uint256,bool)"], [[1]]),
        (["uint8[2]"], [[1]]),
        (["uint256[]"], [5]),
        (["uint256", "bool"], [1]),
    ],
)
def test_check_types_rejects_mismatched_values(types, values):
    with pytest.raises(EncodingError):
        check_types(types, values)


def test_check_types_checksums_addresses_and_decodes_hex():
    checked = check_types(["address", "bytes"], [OWNER, "0x0a0b"])

    assert checked[0] == to_checksum_address(OWNER)
    assert checked[1] == b"\x0a\x0b"


def test_encode_arguments_accepts_tuple_keyword():
    expected = abi_encode(["(uint256,bool)"], [(7, True)])
    assert encode_arguments(["tuple(uint256,bool)"], [[7, True]]) == expected


def test_encode_record_matches_direct_eth_abi_encoding():
    initializer = _initializer()
    expected = abi_encode(
        ["(uint40,uint32,uint24,address,address,address,string,(uint104,uint24),(uint256,string,bytes)[])"],
        [
            (
                1718822400,
                4173120,
                600,
                OWNER,
                OWNER,
                OWNER,
                "https://example.com/metadata.json",
                (100, 0),
                [(10, "ipfs://placeholder/", b"\x01\x02")],
            )
        ],
    )
    assert encode_record(CustomERC721Initializer.ABI_TYPE, initializer) == expected


def test_encode_record_surfaces_out_of_range_fields():
    with pytest.raises(EncodingError, match="arg0.0"):
        encode_record(CustomERC721Initializer.ABI_TYPE, _initializer(start_date=2 ** 40))


def test_encode_packed_is_tight():
    packed = encode_packed(["string", "bytes", "uint256", "uint32"], ["a", b"\x01", 1, 2])
    assert packed == b"a" + b"\x01" + (1).to_bytes(32, "big") + (2).to_bytes(4, "big")
