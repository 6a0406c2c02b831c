"""
Tests for the operator registration and deposit confirmation flows.

Contracts are MagicMocks; FakeEvm records every transaction label.
"""

from unittest.mock import MagicMock

import pytest
from eth_account import Account

from bitdsm_operator.abis import DELEGATION_MANAGER_ABI
from bitdsm_operator.config import OperatorConfig
from bitdsm_operator.errors import ConfigError, DeploymentError, RegistrationError, TransactionFailed
from bitdsm_operator.operator_client import BitDSMOperator
from bitdsm_operator.signer import BitcoinDepositRequest, recover_deposit_signer

from conftest import (
    AVS_DIRECTORY,
    DELEGATION_MANAGER,
    OPERATOR_ADDRESS,
    POD_MANAGER,
    REGISTRY,
    SERVICE_MANAGER,
    FakeEvm,
)

DIGEST = bytes.fromhex("5a" * 32)


def _set_registered(fake_evm: FakeEvm, eigenlayer: bool, avs: bool) -> None:
    fake_evm.contracts[DELEGATION_MANAGER].functions.isOperator.return_value.call.return_value = eigenlayer
    fake_evm.contracts[REGISTRY].functions.operatorRegistered.return_value.call.return_value = avs
    digest_fn = fake_evm.contracts[AVS_DIRECTORY].functions.calculateOperatorAVSRegistrationDigestHash
    digest_fn.return_value.call.return_value = DIGEST


@pytest.fixture
def operator(config: OperatorConfig, fake_evm: FakeEvm) -> BitDSMOperator:
    return BitDSMOperator(config, evm=fake_evm)


class TestInitialization:
    """Tests for contract handle construction."""

    def test_binds_all_contracts(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        assert operator.delegation_manager is fake_evm.contracts[DELEGATION_MANAGER]
        assert operator.avs_directory is fake_evm.contracts[AVS_DIRECTORY]
        assert operator.service_manager is fake_evm.contracts[SERVICE_MANAGER]
        assert operator.registry is fake_evm.contracts[REGISTRY]
        assert operator.pod_manager is fake_evm.contracts[POD_MANAGER]

    def test_uses_bundled_abis_without_abi_dir(self, operator: BitDSMOperator) -> None:
        assert operator.delegation_manager.abi == DELEGATION_MANAGER_ABI

    def test_requires_private_key(self, config: OperatorConfig, fake_evm: FakeEvm) -> None:
        config.settings.private_key = ""

        with pytest.raises(ConfigError, match="PRIVATE_KEY"):
            BitDSMOperator(config, evm=fake_evm)

    def test_missing_deployment(self, config: OperatorConfig, fake_evm: FakeEvm) -> None:
        config.settings.avs_deployment_file = "missing.json"

        with pytest.raises(DeploymentError):
            BitDSMOperator(config, evm=fake_evm)


class TestRegisterOperator:
    """Tests for the registration sequence."""

    def test_full_registration(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        """Unregistered operator registers with EigenLayer, then with the AVS."""
        _set_registered(fake_evm, eigenlayer=False, avs=False)

        result = operator.register_operator()

        assert fake_evm.labels == ["registerAsOperator", "registerOperatorWithSignature"]
        assert result.operator == OPERATOR_ADDRESS
        assert result.registered_eigenlayer
        assert result.registered_avs

    def test_eigenlayer_registration_arguments(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        """Operator is its own earnings receiver and delegation approver."""
        _set_registered(fake_evm, eigenlayer=False, avs=True)

        operator.register_operator()

        register = fake_evm.contracts[DELEGATION_MANAGER].functions.registerAsOperator
        register.assert_called_once_with(
            (OPERATOR_ADDRESS, OPERATOR_ADDRESS, 0),
            "https://operator.example/metadata.json",
        )

    def test_avs_registration_arguments(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        """AVS registration carries the signed digest, operator address and BTC key."""
        _set_registered(fake_evm, eigenlayer=True, avs=False)

        operator.register_operator()

        digest_fn = fake_evm.contracts[AVS_DIRECTORY].functions.calculateOperatorAVSRegistrationDigestHash
        operator_arg, avs_arg, salt, expiry = digest_fn.call_args.args
        assert operator_arg == OPERATOR_ADDRESS
        assert avs_arg == SERVICE_MANAGER
        assert len(salt) == 32

        register = fake_evm.contracts[REGISTRY].functions.registerOperatorWithSignature
        (signature, sig_salt, sig_expiry), signing_key, btc_key = register.call_args.args
        assert sig_salt == salt
        assert sig_expiry == expiry
        assert signing_key == OPERATOR_ADDRESS
        assert btc_key == bytes.fromhex(
            "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
        )
        assert Account._recover_hash(DIGEST, signature=signature) == OPERATOR_ADDRESS

    def test_expiry_uses_configured_ttl(
        self, operator: BitDSMOperator, fake_evm: FakeEvm, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("bitdsm_operator.signer.time.time", lambda: 1_700_000_000)
        operator.config.settings.signature_expiry_seconds = 600
        _set_registered(fake_evm, eigenlayer=True, avs=False)

        operator.register_operator()

        digest_fn = fake_evm.contracts[AVS_DIRECTORY].functions.calculateOperatorAVSRegistrationDigestHash
        assert digest_fn.call_args.args[3] == 1_700_000_600

    def test_already_registered_everywhere(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        _set_registered(fake_evm, eigenlayer=True, avs=True)

        result = operator.register_operator()

        assert fake_evm.labels == []
        assert not result.registered_eigenlayer
        assert not result.registered_avs

    def test_eigenlayer_failure_raises_registration_error(
        self, operator: BitDSMOperator, fake_evm: FakeEvm
    ) -> None:
        """Core registration failure stops the sequence before AVS registration."""
        _set_registered(fake_evm, eigenlayer=False, avs=False)
        fake_evm.fail_labels["registerAsOperator"] = RuntimeError("execution reverted")

        with pytest.raises(RegistrationError, match="execution reverted"):
            operator.register_operator()

        assert fake_evm.labels == []
        fake_evm.contracts[REGISTRY].functions.operatorRegistered.assert_not_called()

    def test_avs_failure_propagates(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        """AVS registration errors are not wrapped."""
        _set_registered(fake_evm, eigenlayer=True, avs=False)
        fake_evm.fail_labels["registerOperatorWithSignature"] = TransactionFailed(
            "registerOperatorWithSignature", "0xdead"
        )

        with pytest.raises(TransactionFailed):
            operator.register_operator()

    def test_missing_btc_public_key(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        operator.config.settings.btc_public_key = ""
        _set_registered(fake_evm, eigenlayer=True, avs=False)

        with pytest.raises(ConfigError, match="BTC_PUBLIC_KEY"):
            operator.register_operator()

        assert fake_evm.labels == []


class TestDeregisterOperator:
    """Tests for deregistration."""

    def test_deregister(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        tx = operator.deregister_operator()

        assert tx is not None
        assert fake_evm.labels == ["deregisterOperator"]

    def test_failure_is_swallowed(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        """Deregistration errors are logged and do not raise."""
        fake_evm.fail_labels["deregisterOperator"] = RuntimeError("not registered")

        assert operator.deregister_operator() is None


class TestStatus:
    def test_status(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        _set_registered(fake_evm, eigenlayer=True, avs=False)

        state = operator.status()

        assert state.operator == OPERATOR_ADDRESS
        assert state.eigenlayer_operator is True
        assert state.avs_registered is False


class TestDepositConfirmation:
    """Tests for signing and submitting deposit confirmations."""

    POD = "0x1234567890123456789012345678901234567890"

    def test_sign_and_respond(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        request = BitcoinDepositRequest(bytes.fromhex("ab" * 32), 1_000_000, True)

        operator.sign_and_respond(self.POD, OPERATOR_ADDRESS, request)

        assert fake_evm.labels == ["confirmDeposit"]
        confirm = fake_evm.contracts[SERVICE_MANAGER].functions.confirmDeposit
        pod, signature = confirm.call_args.args
        assert pod == self.POD
        assert recover_deposit_signer(self.POD, OPERATOR_ADDRESS, request, signature) == OPERATOR_ADDRESS

    def test_create_reference_task(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        operator.create_reference_task(self.POD, b"\x12" * 32, 1_000_000)

        assert fake_evm.labels == ["verifyBitcoinDepositRequest"]
        verify = fake_evm.contracts[POD_MANAGER].functions.verifyBitcoinDepositRequest
        verify.assert_called_once_with(self.POD, b"\x12" * 32, 1_000_000)


class TestMonitorNewTasks:
    """Tests for wiring the watcher to the operator."""

    def _log(self, pod: str) -> dict:
        return {
            "blockNumber": 100,
            "args": {
                "pod": pod,
                "operator": OPERATOR_ADDRESS,
                "bitcoinDepositRequest": {
                    "transactionId": b"\x12" * 32,
                    "amount": 1_000_000,
                    "isPending": True,
                },
            },
        }

    def test_reference_task_then_confirm(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        """The reference request is picked up and confirmed on the first poll."""
        event = fake_evm.contracts[POD_MANAGER].events.VerifyBitcoinDepositRequest.return_value
        event.get_logs.return_value = [self._log(TestDepositConfirmation.POD)]

        watcher = operator.monitor_new_tasks()
        dispatched = watcher.poll_once()

        assert dispatched == 1
        assert fake_evm.labels == ["verifyBitcoinDepositRequest", "confirmDeposit"]
        event.get_logs.assert_called_once_with(from_block=100, to_block=100)

    def test_without_reference_task(self, operator: BitDSMOperator, fake_evm: FakeEvm) -> None:
        """Without a reference task only blocks after the current head are watched."""
        event = fake_evm.contracts[POD_MANAGER].events.VerifyBitcoinDepositRequest.return_value
        event.get_logs.return_value = []

        watcher = operator.monitor_new_tasks(reference_task=False)

        assert fake_evm.labels == []
        assert watcher.poll_once() == 0
        event.get_logs.assert_not_called()
        assert watcher.poll_interval == operator.config.settings.poll_interval_seconds

    def test_handler_is_sign_and_respond(self, operator: BitDSMOperator) -> None:
        watcher = operator.deposit_watcher()

        assert watcher.handler == operator.sign_and_respond
