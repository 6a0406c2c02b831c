"""
Signatures produced by the operator.

Two kinds of signatures are needed:

- AVS registration: a raw secp256k1 signature over the digest returned by
  ``AVSDirectory.calculateOperatorAVSRegistrationDigestHash``.
- Deposit confirmation: an EIP-191 signature over
  ``keccak256("<pod> <operator> <txid> <amount> <isPending>")``.
"""

import os
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3
import structlog

logger = structlog.get_logger()


@dataclass
class BitcoinDepositRequest:
    """Deposit request emitted by the BitcoinPodManager."""

    transaction_id: bytes  # Bitcoin txid (32 bytes)
    amount: int  # Amount in satoshis
    is_pending: bool

    @classmethod
    def from_event(cls, value: Mapping | tuple) -> "BitcoinDepositRequest":
        """Build from a decoded event struct (mapping or positional tuple)."""
        if isinstance(value, Mapping):
            return cls(
                transaction_id=bytes(value["transactionId"]),
                amount=int(value["amount"]),
                is_pending=bool(value["isPending"]),
            )
        transaction_id, amount, is_pending = value
        return cls(
            transaction_id=bytes(transaction_id),
            amount=int(amount),
            is_pending=bool(is_pending),
        )

    @property
    def transaction_id_hex(self) -> str:
        return "0x" + self.transaction_id.hex()


@dataclass
class SignatureWithSaltAndExpiry:
    """Operator signature for AVS registration."""

    signature: bytes  # 65 bytes (r || s || v)
    salt: bytes  # 32 bytes
    expiry: int  # unix timestamp

    def as_tuple(self) -> tuple[bytes, bytes, int]:
        """ABI tuple (signature, salt, expiry)."""
        return (self.signature, self.salt, self.expiry)


def deposit_confirmation_message(
    pod: str, operator: str, request: BitcoinDepositRequest
) -> str:
    """Build the plain-text deposit confirmation message."""
    is_pending = "true" if request.is_pending else "false"
    return (
        f"{Web3.to_checksum_address(pod)} {Web3.to_checksum_address(operator)} "
        f"{request.transaction_id_hex} {request.amount} {is_pending}"
    )


def deposit_confirmation_hash(
    pod: str, operator: str, request: BitcoinDepositRequest
) -> bytes:
    """keccak256 of the packed confirmation message."""
    message = deposit_confirmation_message(pod, operator, request)
    return bytes(Web3.solidity_keccak(["string"], [message]))


def sign_deposit_confirmation(
    pod: str,
    operator: str,
    request: BitcoinDepositRequest,
    private_key: str,
) -> bytes:
    """
    Sign a deposit confirmation.

    The 32-byte message hash is signed as an EIP-191 personal message, so the
    contract recovers the signer with ``toEthSignedMessageHash(hash)``.

    Returns:
        65-byte signature (r || s || v)
    """
    message_hash = deposit_confirmation_hash(pod, operator, request)
    signed = Account.sign_message(encode_defunct(primitive=message_hash), private_key)

    logger.info(
        "signed_deposit_confirmation",
        pod=pod,
        operator=operator,
        txid=request.transaction_id_hex,
        amount=request.amount,
        is_pending=request.is_pending,
    )

    return bytes(signed.signature)


def recover_deposit_signer(
    pod: str,
    operator: str,
    request: BitcoinDepositRequest,
    signature: bytes,
) -> str:
    """Recover the address that signed a deposit confirmation."""
    message_hash = deposit_confirmation_hash(pod, operator, request)
    return Account.recover_message(encode_defunct(primitive=message_hash), signature=signature)


def sign_registration_digest(digest: bytes, private_key: str) -> bytes:
    """Sign an AVS registration digest without any message prefix."""
    if len(digest) != 32:
        raise ValueError(f"Digest must be 32 bytes, got {len(digest)}")
    signed = Account.unsafe_sign_hash(digest, private_key)
    return bytes(signed.signature)


def new_registration_signature(
    digest_fn: Callable[[bytes, int], bytes],
    private_key: str,
    ttl_seconds: int = 3600,
    now: Optional[int] = None,
) -> SignatureWithSaltAndExpiry:
    """
    Create a salted, expiring registration signature.

    Args:
        digest_fn: Called with (salt, expiry), returns the digest to sign
        private_key: Operator private key
        ttl_seconds: Signature lifetime
        now: Current unix time (defaults to time.time())
    """
    salt = os.urandom(32)
    expiry = (int(time.time()) if now is None else now) + ttl_seconds
    digest = bytes(digest_fn(salt, expiry))

    return SignatureWithSaltAndExpiry(
        signature=sign_registration_digest(digest, private_key),
        salt=salt,
        expiry=expiry,
    )


def strip_hex_prefix(value: str) -> str:
    """Strip surrounding whitespace and a 0x/0X prefix."""
    value = value.strip()
    if value[:2].lower() == "0x":
        return value[2:]
    return value


def btc_pubkey_to_bytes(pubkey_hex: str) -> bytes:
    """
    Convert a hex Bitcoin public key into bytes.

    Accepts compressed (33 bytes) and uncompressed (65 bytes) keys, with or
    without a 0x prefix.
    """
    pubkey_hex = strip_hex_prefix(pubkey_hex)
    if not pubkey_hex:
        raise ValueError("Bitcoin public key is empty")
    if any(c.isspace() for c in pubkey_hex):
        raise ValueError(f"Bitcoin public key contains whitespace: {pubkey_hex!r}")

    try:
        pubkey = bytes.fromhex(pubkey_hex)
    except ValueError:
        raise ValueError(f"Bitcoin public key is not valid hex: {pubkey_hex}") from None

    if len(pubkey) == 33 and pubkey[0] in (0x02, 0x03):
        return pubkey
    if len(pubkey) == 65 and pubkey[0] == 0x04:
        return pubkey
    raise ValueError(
        f"Bitcoin public key must be 33 (compressed) or 65 (uncompressed) bytes, got {len(pubkey)}"
    )
