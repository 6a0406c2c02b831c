"""
BitDSM operator: EigenLayer and AVS registration, deposit confirmations.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from .config import OperatorConfig
from .deployment import load_abi, load_avs_deployment, load_core_deployment
from .errors import RegistrationError
from .evm import EvmClient, TxResult
from .signer import (
    BitcoinDepositRequest,
    btc_pubkey_to_bytes,
    new_registration_signature,
    sign_deposit_confirmation,
)
from .watcher import DepositRequestWatcher

logger = structlog.get_logger()


@dataclass
class RegistrationResult:
    """Outcome of the registration sequence."""

    operator: str
    eigenlayer_tx: Optional[str] = None  # None if already registered
    avs_tx: Optional[str] = None  # None if already registered

    @property
    def registered_eigenlayer(self) -> bool:
        return self.eigenlayer_tx is not None

    @property
    def registered_avs(self) -> bool:
        return self.avs_tx is not None


@dataclass
class OperatorStatus:
    """On-chain registration state of the operator."""

    operator: str
    eigenlayer_operator: bool
    avs_registered: bool


class BitDSMOperator:
    """
    Operator client for the BitDSM AVS:
    1. Registers with the EigenLayer DelegationManager
    2. Registers with the BitDSM registry using a signed AVS digest
    3. Confirms Bitcoin deposit requests emitted by the BitcoinPodManager
    """

    def __init__(self, config: OperatorConfig, evm: Optional[EvmClient] = None):
        self.config = config
        settings = config.settings

        self.private_key = config.require_private_key()
        self.evm = evm or EvmClient(
            rpc_url=settings.rpc_url,
            private_key=self.private_key,
            chain_id=settings.chain_id,
            gas_limit=settings.gas_limit,
            tx_timeout=settings.tx_timeout_seconds,
        )

        core = load_core_deployment(config.core_deployment_path, settings.network)
        avs = load_avs_deployment(config.avs_deployment_path)
        abi_dir = config.abi_path

        self.delegation_manager = self.evm.contract(
            core.delegation_manager, load_abi("IDelegationManager", abi_dir)
        )
        self.avs_directory = self.evm.contract(
            core.avs_directory, load_abi("IAVSDirectory", abi_dir)
        )
        self.service_manager = self.evm.contract(
            avs.service_manager, load_abi("BitDSMServiceManager", abi_dir)
        )
        self.registry = self.evm.contract(
            avs.registry, load_abi("BitDSMRegistry", abi_dir)
        )
        self.pod_manager = self.evm.contract(
            avs.pod_manager, load_abi("BitcoinPodManager", abi_dir)
        )

        logger.info(
            "operator_initialized",
            operator=self.address,
            delegation_manager=core.delegation_manager,
            avs_directory=core.avs_directory,
            service_manager=avs.service_manager,
            registry=avs.registry,
            pod_manager=avs.pod_manager,
        )

    @property
    def address(self) -> str:
        return self.evm.address

    def status(self) -> OperatorStatus:
        """Read registration state from the contracts."""
        return OperatorStatus(
            operator=self.address,
            eigenlayer_operator=self.delegation_manager.functions.isOperator(
                self.address
            ).call(),
            avs_registered=self.registry.functions.operatorRegistered(
                self.address
            ).call(),
        )

    def register_operator(self) -> RegistrationResult:
        """
        Register with EigenLayer core, then with the BitDSM AVS registry.

        Each step is skipped if the operator is already registered.

        Raises:
            RegistrationError: if EigenLayer core registration fails
        """
        result = RegistrationResult(operator=self.address)
        logger.info("registering_operator", operator=self.address)

        if self.delegation_manager.functions.isOperator(self.address).call():
            logger.info("operator_already_registered", contracts="eigenlayer")
        else:
            result.eigenlayer_tx = self._register_eigenlayer()

        if self.registry.functions.operatorRegistered(self.address).call():
            logger.info("operator_already_registered", contracts="avs")
            return result

        result.avs_tx = self._register_avs()
        return result

    def _register_eigenlayer(self) -> str:
        details = (
            self.address,  # __deprecated_earningsReceiver
            self.address,  # delegationApprover
            0,  # stakerOptOutWindowBlocks
        )
        try:
            tx = self.evm.transact(
                self.delegation_manager.functions.registerAsOperator(
                    details, self.config.settings.operator_uri
                ),
                label="registerAsOperator",
            )
        except Exception as e:
            logger.error("operator_registration_failed", contracts="eigenlayer", error=str(e))
            raise RegistrationError(f"Error in registering as operator: {e}") from e

        logger.info("operator_registered", contracts="eigenlayer", tx_hash=tx.tx_hash)
        return tx.tx_hash

    def _register_avs(self) -> str:
        service_manager = self.service_manager.address

        def digest_fn(salt: bytes, expiry: int) -> bytes:
            return self.avs_directory.functions.calculateOperatorAVSRegistrationDigestHash(
                self.address, service_manager, salt, expiry
            ).call()

        logger.info("signing_registration_digest", avs=service_manager)
        signature = new_registration_signature(
            digest_fn,
            self.private_key,
            ttl_seconds=self.config.settings.signature_expiry_seconds,
        )

        btc_public_key = btc_pubkey_to_bytes(self.config.require_btc_public_key())
        logger.info("btc_public_key_loaded", btc_public_key=btc_public_key.hex())

        tx = self.evm.transact(
            self.registry.functions.registerOperatorWithSignature(
                signature.as_tuple(), self.address, btc_public_key
            ),
            label="registerOperatorWithSignature",
        )
        logger.info(
            "operator_registered",
            contracts="avs",
            operator=self.address,
            tx_hash=tx.tx_hash,
            expiry=signature.expiry,
        )
        return tx.tx_hash

    def deregister_operator(self) -> Optional[TxResult]:
        """Deregister from the AVS registry. Failures are logged, not raised."""
        try:
            tx = self.evm.transact(
                self.registry.functions.deregisterOperator(),
                label="deregisterOperator",
            )
        except Exception as e:
            logger.error("operator_deregistration_failed", error=str(e))
            return None

        logger.info("operator_deregistered", operator=self.address, tx_hash=tx.tx_hash)
        return tx

    def sign_and_respond(
        self, pod: str, operator: str, request: BitcoinDepositRequest
    ) -> TxResult:
        """Sign a deposit confirmation and submit it to the service manager."""
        signature = sign_deposit_confirmation(pod, operator, request, self.private_key)

        logger.info("responding_to_task", pod=pod, txid=request.transaction_id_hex)
        tx = self.evm.transact(
            self.service_manager.functions.confirmDeposit(pod, signature),
            label="confirmDeposit",
        )
        logger.info("responded_to_task", pod=pod, tx_hash=tx.tx_hash)
        return tx

    def create_reference_task(
        self, pod: str, transaction_id: bytes, amount: int
    ) -> TxResult:
        """Submit a deposit verification request, for exercising the flow on a testnet."""
        logger.info(
            "creating_reference_task",
            pod=pod,
            txid="0x" + transaction_id.hex(),
            amount=amount,
        )
        return self.evm.transact(
            self.pod_manager.functions.verifyBitcoinDepositRequest(
                pod, transaction_id, amount
            ),
            label="verifyBitcoinDepositRequest",
        )

    def deposit_watcher(self, start_block: Optional[int] = None) -> DepositRequestWatcher:
        """Build a watcher that confirms every new deposit request."""
        return DepositRequestWatcher(
            event=self.pod_manager.events.VerifyBitcoinDepositRequest(),
            handler=self.sign_and_respond,
            block_number_fn=self.evm.block_number,
            poll_interval=self.config.settings.poll_interval_seconds,
            start_block=start_block,
        )

    def monitor_new_tasks(
        self,
        reference_task: bool = True,
        pod: str = "0x1234567890123456789012345678901234567890",
        transaction_id: bytes = bytes.fromhex("12" * 32),
        amount: int = 1_000_000,
    ) -> DepositRequestWatcher:
        """
        Prepare deposit monitoring.

        When reference_task is set, a deposit verification request is submitted
        first and the watcher starts from that block so the request is picked up.
        Returns the watcher; call run() or poll_once() on it.
        """
        start_block = None
        if reference_task:
            tx = self.create_reference_task(pod, transaction_id, amount)
            start_block = tx.block_number

        watcher = self.deposit_watcher(start_block=start_block)
        logger.info("monitoring_for_new_tasks", operator=self.address)
        return watcher
