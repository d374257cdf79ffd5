from __future__ import annotations

import logging

import pytest
from eth_utils import function_signature_to_4byte_selector, keccak, to_canonical_address, to_checksum_address

from holograph_deploy.authorization import DeploymentDescriptor
from holograph_deploy.chain import BRIDGEABLE_CONTRACT_DEPLOYED_TOPIC, DEPLOY_HOLOGRAPHABLE_CONTRACT, Log, Receipt
from holograph_deploy.deployer import DeploymentOrchestrator, DeploymentState, contract_type_name
from holograph_deploy.errors import AddressDerivationError, TransactionError
from holograph_deploy.hashing import descriptor_hash

FACTORY = "0x" + "fa" * 20
WIDGET_ADDRESS = "0xF347E43bbfA7f89F26e463ecE63f60CDae5E38bb"


def _descriptor(name: str = "HolographERC721", init_code: str = "0x0102") -> DeploymentDescriptor:
    return DeploymentDescriptor.create(name, 4000000001, "0x" + "00" * 31 + "01", "0x60806040", init_code)


def _deployed_event(address: str) -> Log:
    return Log(
        address=FACTORY,
        topics=(BRIDGEABLE_CONTRACT_DEPLOYED_TOPIC, b"\x00" * 12 + to_canonical_address(address)),
    )


def _deploy_to(chain, address, *, status=1, emit=True, event_address=None):
    def on_submit(transaction, tx_hash):
        if status == 1 or event_address == "race":
            chain.set_code(address)
        logs = (_deployed_event(event_address or address),) if emit and event_address != "race" else ()
        return Receipt(transaction_hash=tx_hash, status=status, logs=logs)

    chain.on_submit = on_submit


@pytest.fixture
def orchestrator(fake_chain, signer):
    return DeploymentOrchestrator(fake_chain, fake_chain, signer, FACTORY)


def test_future_address_uses_descriptor_hash_as_create2_salt(orchestrator, signer):
    descriptor = _descriptor()
    salt = descriptor_hash(descriptor, signer.address)
    expected = to_checksum_address(
        keccak(b"\xff" + to_canonical_address(FACTORY) + salt + keccak(descriptor.byte_code))[12:]
    )

    assert orchestrator.future_address(descriptor) == expected


def test_widget_regression_fixture_is_reproducible(fake_chain, signer):
    assert signer.address == "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
    descriptor = _descriptor(name="Widget", init_code="0x")

    assert descriptor_hash(descriptor, signer.address).hex() == (
        "a32ff498e23824e544effd074b3b8149efcc2f5fbc34d96a8136b3b45d4a2c30"
    )
    for _ in range(3):
        orchestrator = DeploymentOrchestrator(fake_chain, fake_chain, signer, FACTORY)
        assert orchestrator.future_address(_descriptor(name="Widget", init_code="0x")) == WIDGET_ADDRESS


def test_creation_code_hash_override_changes_future_address(fake_chain, signer, orchestrator):
    descriptor = _descriptor()
    custom = DeploymentOrchestrator(fake_chain, fake_chain, signer, FACTORY, creation_code_hash="0x" + "ab" * 32)

    assert custom.future_address(descriptor) != orchestrator.future_address(descriptor)


def test_ensure_deployed_is_idempotent(fake_chain, orchestrator):
    descriptor = _descriptor()
    address = orchestrator.future_address(descriptor)
    _deploy_to(fake_chain, address)

    first = orchestrator.ensure_deployed(descriptor)
    second = orchestrator.ensure_deployed(descriptor)

    assert len(fake_chain.submitted) == 1
    assert first.address == second.address == address
    assert first.state is DeploymentState.CONFIRMED
    assert first.history == (DeploymentState.UNKNOWN, DeploymentState.PENDING_DEPLOY, DeploymentState.CONFIRMED)
    assert first.deployed_now
    assert second.state is DeploymentState.ALREADY_DEPLOYED
    assert second.tx_hash is None


def test_submitted_call_targets_factory(fake_chain, orchestrator):
    descriptor = _descriptor()
    _deploy_to(fake_chain, orchestrator.future_address(descriptor))

    result = orchestrator.ensure_deployed(descriptor)

    transaction = fake_chain.submitted[0]
    selector = function_signature_to_4byte_selector(DEPLOY_HOLOGRAPHABLE_CONTRACT)
    assert transaction["to"] == to_checksum_address(FACTORY)
    assert transaction["data"].startswith("0x" + selector.hex())
    assert result.authorization is not None


def test_existing_code_skips_submission(fake_chain, orchestrator):
    descriptor = _descriptor()
    fake_chain.set_code(orchestrator.future_address(descriptor))

    result = orchestrator.ensure_deployed(descriptor)

    assert result.state is DeploymentState.ALREADY_DEPLOYED
    assert fake_chain.submitted == []


def test_lost_race_resolves_to_already_deployed(fake_chain, orchestrator):
    descriptor = _descriptor()
    address = orchestrator.future_address(descriptor)
    _deploy_to(fake_chain, address, status=0, event_address="race")

    result = orchestrator.ensure_deployed(descriptor)

    assert result.state is DeploymentState.ALREADY_DEPLOYED
    assert result.address == address
    assert DeploymentState.PENDING_DEPLOY in result.history


def test_reverted_deployment_without_code_raises(fake_chain, orchestrator, caplog):
    caplog.set_level(logging.ERROR)
    descriptor = _descriptor()
    _deploy_to(fake_chain, orchestrator.future_address(descriptor), status=0, emit=False)

    with pytest.raises(TransactionError) as excinfo:
        orchestrator.ensure_deployed(descriptor)

    assert excinfo.value.tx_hash == "0x" + f"{1:064x}"
    assert "deployment failed" in caplog.text


def test_submission_exception_is_wrapped_with_cause(fake_chain, orchestrator):
    fake_chain.submit_error = RuntimeError("nonce too low")

    with pytest.raises(TransactionError) as excinfo:
        orchestrator.ensure_deployed(_descriptor())

    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_event_address_mismatch_is_an_error(fake_chain, orchestrator):
    descriptor = _descriptor()
    _deploy_to(fake_chain, orchestrator.future_address(descriptor), event_address="0x" + "99" * 20)

    with pytest.raises(AddressDerivationError):
        orchestrator.ensure_deployed(descriptor)


def test_missing_event_falls_back_to_code_check(fake_chain, orchestrator):
    descriptor = _descriptor()
    _deploy_to(fake_chain, orchestrator.future_address(descriptor), emit=False)

    assert orchestrator.ensure_deployed(descriptor).state is DeploymentState.CONFIRMED


def test_contract_type_name_strips_padding():
    assert contract_type_name(b"\x00" * 26 + b"Widget") == "Widget"
    assert contract_type_name(b"\xff" * 32) == "0x" + "ff" * 32
