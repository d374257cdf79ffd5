from __future__ import annotations

from dataclasses import replace

import pytest

from holograph_deploy.authorization import (
    DeploymentAuthorization,
    DeploymentDescriptor,
    LocalSigner,
    Signature,
    Signer,
    authorize,
    recover_signer,
    verify,
    verify_or_raise,
)
from holograph_deploy.errors import AddressDerivationError, EncodingError, SignatureError


def _descriptor() -> DeploymentDescriptor:
    return DeploymentDescriptor.create(
        "HolographERC721",
        4000000001,
        "0x" + "00" * 31 + "01",
        "0x60806040",
        "0x010203",
    )


def _with_descriptor(authorization: DeploymentAuthorization, **changes) -> DeploymentAuthorization:
    return replace(authorization, descriptor=replace(authorization.descriptor, **changes))


def test_local_signer_satisfies_protocol_and_hides_key(signer, private_key):
    assert isinstance(signer, Signer)
    assert private_key[2:] not in repr(signer)
    assert signer.address in repr(signer)


def test_local_signer_rejects_invalid_key():
    with pytest.raises(SignatureError) as excinfo:
        LocalSigner("0x1234")
    assert excinfo.value.__cause__ is None


def test_authorize_then_verify_round_trips(signer):
    authorization = authorize(_descriptor(), signer)

    assert authorization.signer == signer.address
    assert authorization.signature.v in (27, 28)
    assert recover_signer(authorization) == signer.address
    assert verify(authorization)
    verify_or_raise(authorization)


@pytest.mark.parametrize(
    "changes",
    [
        {"chain_type": 4000000002},
        {"salt": b"\x00" * 31 + b"\x02"},
        {"byte_code": b"\x60\x80"},
        {"init_code": b"\x01\x02\x04"},
        {"contract_type": b"\x00" * 31 + b"\x01"},
    ],
)
def test_verification_fails_after_any_descriptor_mutation(signer, changes):
    authorization = authorize(_descriptor(), signer)
    tampered = _with_descriptor(authorization, **changes)

    assert not verify(tampered)
    with pytest.raises(SignatureError):
        verify_or_raise(tampered)


def test_verification_fails_for_a_different_claimed_signer(signer, other_signer):
    authorization = authorize(_descriptor(), signer)
    forged = DeploymentAuthorization(authorization.descriptor, authorization.signature, other_signer.address)

    assert not verify(forged)


def test_verification_fails_for_malformed_signature(signer):
    authorization = authorize(_descriptor(), signer)
    broken = DeploymentAuthorization(authorization.descriptor, Signature(b"\x00" * 32, b"\x00" * 32, 99), signer.address)

    assert not verify(broken)


def test_signer_errors_are_wrapped(signer):
    class ExplodingSigner:
        address = signer.address

        def sign_hash(self, message_hash):
            raise RuntimeError("device unplugged")

    with pytest.raises(SignatureError, match="device unplugged"):
        authorize(_descriptor(), ExplodingSigner())


def test_signature_round_trips_through_bytes():
    raw = bytes(range(64)) + b"\x1b"
    signature = Signature.from_bytes(raw)

    assert signature.r == raw[:32]
    assert signature.s == raw[32:64]
    assert signature.v == 27
    assert signature.to_bytes() == raw


def test_signature_requires_65_bytes():
    with pytest.raises(SignatureError):
        Signature.from_bytes(b"\x00" * 64)


def test_descriptor_validates_widths():
    with pytest.raises(AddressDerivationError):
        DeploymentDescriptor.create("HolographERC721", 1, "0x01", "0x00", "0x00")
    with pytest.raises(EncodingError):
        DeploymentDescriptor.create("HolographERC721", 2 ** 32, "0x" + "00" * 32, "0x00", "0x00")


def test_call_arguments_follow_factory_layout(signer):
    authorization = authorize(_descriptor(), signer)
    config, signature, signer_address = authorization.as_call_arguments()

    assert config == authorization.descriptor.as_tuple()
    assert signature == (authorization.signature.r, authorization.signature.s, authorization.signature.v)
    assert signer_address == signer.address
