"""
Exceptions raised by the BitDSM operator.
"""

from typing import Optional


class OperatorError(Exception):
    """Base class for operator errors."""


class ConfigError(OperatorError):
    """Required configuration is missing or invalid."""


class DeploymentError(OperatorError):
    """Deployment addresses or ABIs could not be loaded."""


class RegistrationError(OperatorError):
    """Registration with the EigenLayer core contracts failed."""


class TransactionFailed(OperatorError):
    """A submitted transaction was mined but reverted."""

    def __init__(self, label: str, tx_hash: Optional[str] = None):
        self.label = label
        self.tx_hash = tx_hash
        super().__init__(f"Transaction {label} reverted (tx: {tx_hash})")
