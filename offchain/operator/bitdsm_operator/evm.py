"""
EVM interaction: contract handles and signed transaction submission.
"""

from dataclasses import dataclass
from typing import Any, Optional

from eth_account import Account
from web3 import Web3
from web3.contract import Contract
from web3.contract.contract import ContractFunction
from web3.types import TxReceipt
import structlog

from .errors import TransactionFailed

logger = structlog.get_logger()


@dataclass
class TxResult:
    """Result of a confirmed transaction."""

    tx_hash: str
    block_number: int
    gas_used: int


class EvmClient:
    """Client for EVM interactions, bound to the operator's signing account."""

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        chain_id: int = 31337,
        gas_limit: int = 500_000,
        tx_timeout: int = 120,
        w3: Optional[Web3] = None,
    ):
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url))
        self.account = Account.from_key(private_key)
        self.chain_id = chain_id
        self.gas_limit = gas_limit
        self.tx_timeout = tx_timeout

        logger.info(
            "evm_client_initialized",
            rpc_url=rpc_url,
            chain_id=chain_id,
            sender=self.account.address,
        )

    @property
    def address(self) -> str:
        """Operator account address."""
        return self.account.address

    def contract(self, address: str, abi: list[dict[str, Any]]) -> Contract:
        """Get a contract instance."""
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=abi,
        )

    def block_number(self) -> int:
        """Get current block height."""
        return self.w3.eth.block_number

    def transact(self, fn: ContractFunction, label: str) -> TxResult:
        """
        Build, sign and send a contract call, then wait for its receipt.

        Raises:
            TransactionFailed: if the transaction was mined but reverted
        """
        nonce = self.w3.eth.get_transaction_count(self.account.address)
        gas_price = self.w3.eth.gas_price

        tx = fn.build_transaction(
            {
                "from": self.account.address,
                "chainId": self.chain_id,
                "nonce": nonce,
                "gasPrice": gas_price,
                "gas": self.gas_limit,
            }
        )

        signed_tx = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        tx_hex = Web3.to_hex(tx_hash)

        logger.info("tx_sent", label=label, tx_hash=tx_hex, nonce=nonce)

        receipt: TxReceipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.tx_timeout
        )

        if receipt["status"] != 1:
            logger.error("tx_reverted", label=label, tx_hash=tx_hex)
            raise TransactionFailed(label, tx_hex)

        logger.info(
            "tx_confirmed",
            label=label,
            tx_hash=tx_hex,
            block=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
        )

        return TxResult(
            tx_hash=tx_hex,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
        )
