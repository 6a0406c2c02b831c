"""
BitDSM Operator

Registers an operator with the EigenLayer DelegationManager and the BitDSM
AVS registry, and confirms Bitcoin deposit requests emitted by the
BitcoinPodManager.

Usage:
    # Register with EigenLayer and the AVS
    bitdsm-operator register

    # Register, then watch for deposit requests
    bitdsm-operator run --monitor

    # Deregister from the AVS
    bitdsm-operator deregister
"""

__version__ = "0.1.0"

from .config import OperatorConfig, Settings
from .errors import (
    ConfigError,
    DeploymentError,
    OperatorError,
    RegistrationError,
    TransactionFailed,
)
from .evm import EvmClient, TxResult
from .operator_client import BitDSMOperator, OperatorStatus, RegistrationResult
from .signer import (
    BitcoinDepositRequest,
    SignatureWithSaltAndExpiry,
    sign_deposit_confirmation,
    sign_registration_digest,
)
from .watcher import DepositRequestWatcher

__all__ = [
    "__version__",
    "OperatorConfig",
    "Settings",
    "ConfigError",
    "DeploymentError",
    "OperatorError",
    "RegistrationError",
    "TransactionFailed",
    "EvmClient",
    "TxResult",
    "BitDSMOperator",
    "OperatorStatus",
    "RegistrationResult",
    "BitcoinDepositRequest",
    "SignatureWithSaltAndExpiry",
    "sign_deposit_confirmation",
    "sign_registration_digest",
    "DepositRequestWatcher",
]
