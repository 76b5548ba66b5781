"""
Account - wraps the signing key of a transaction originator.

Key handling and elliptic-curve signing are delegated to eth-account;
this module validates the key source and exposes the operations the
broadcasters need.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import structlog
from eth_account import Account as EthAccount
from eth_account.datastructures import SignedMessage, SignedTransaction
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import keccak, to_hex

from relaycast.config import RelaycastConfig, get_config
from relaycast.errors import (
    AmbiguousKeySource,
    InvalidMnemonic,
    InvalidPrivateKey,
    MissingKeySource,
)

logger = structlog.get_logger(__name__)

# BIP-44 path for Ethereum accounts, formatted with the address index
DERIVATION_PATH = "m/44'/60'/0'/0/{index}"

EthAccount.enable_unaudited_hdwallet_features()


@dataclass(frozen=True)
class KeyMaterial:
    """
    Source of an account's signing key.

    Exactly one of ``private_key`` or ``mnemonic`` must be non-empty.
    """
    private_key: Optional[str] = None
    mnemonic: Optional[str] = None
    account_index: int = 0

    @classmethod
    def from_private_key(cls, private_key: str) -> "KeyMaterial":
        return cls(private_key=private_key)

    @classmethod
    def from_mnemonic(cls, mnemonic: str, account_index: int = 0) -> "KeyMaterial":
        return cls(mnemonic=mnemonic, account_index=account_index)

    def __repr__(self) -> str:
        # Never leak secrets through logs or tracebacks
        kind = "private_key" if self.private_key else "mnemonic" if self.mnemonic else "empty"
        return f"KeyMaterial(<{kind}>)"


class Account:
    """
    Signing account derived from a private key or a mnemonic phrase.

    The address is derived once at construction and never changes.

    Usage:
        ```python
        account = Account.from_private_key("0x...")
        signed = account.sign_transaction(tx)
        ```
    """

    def __init__(self, key_material: KeyMaterial):
        """
        Build the account.

        Args:
            key_material: Private key or mnemonic to derive the signer from

        Raises:
            MissingKeySource: Neither key nor phrase supplied
            AmbiguousKeySource: Both key and phrase supplied
            InvalidPrivateKey: The private key cannot be parsed
            InvalidMnemonic: The phrase cannot be turned into a key
        """
        private_key = (key_material.private_key or "").strip()
        mnemonic = (key_material.mnemonic or "").strip()

        if not private_key and not mnemonic:
            raise MissingKeySource()
        if private_key and mnemonic:
            raise AmbiguousKeySource()

        if mnemonic:
            self._signer = _signer_from_mnemonic(mnemonic, key_material.account_index)
        else:
            self._signer = _signer_from_private_key(private_key)

        self._address = self._signer.address.lower()

        logger.info("account_loaded", address=self._address[:10] + "...")

    @classmethod
    def from_private_key(cls, private_key: str) -> "Account":
        return cls(KeyMaterial.from_private_key(private_key))

    @classmethod
    def from_mnemonic(cls, mnemonic: str, account_index: int = 0) -> "Account":
        return cls(KeyMaterial.from_mnemonic(mnemonic, account_index))

    @classmethod
    def from_config(cls, config: Optional[RelaycastConfig] = None) -> "Account":
        """Load the account from configuration."""
        config = config or get_config()
        return cls(
            KeyMaterial(
                private_key=config.private_key_value,
                mnemonic=config.mnemonic_value,
                account_index=config.account_index,
            )
        )

    @property
    def address(self) -> str:
        """Lowercase 0x-prefixed address."""
        return self._address

    @property
    def checksum_address(self) -> str:
        """EIP-55 checksummed address."""
        return self._signer.address

    def sign_message(self, message: Union[bytes, str]) -> SignedMessage:
        """
        Sign a message with EIP-191 personal-sign semantics.

        Args:
            message: Raw bytes or text to sign

        Returns:
            Signed message carrying the signature bytes
        """
        if isinstance(message, str):
            signable = encode_defunct(text=message)
        else:
            signable = encode_defunct(primitive=message)
        return self._signer.sign_message(signable)

    def sign_transaction(self, tx: Dict[str, Any]) -> SignedTransaction:
        """
        Sign a transaction.

        Args:
            tx: Transaction fields (nonce, gas, chainId, ...)

        Returns:
            Signed transaction; ``raw_transaction`` holds the broadcastable bytes
        """
        signed = self._signer.sign_transaction(tx)
        logger.debug("transaction_signed", tx_hash=to_hex(signed.hash)[:18] + "...")
        return signed

    def raw_transaction_hex(self, tx: Dict[str, Any]) -> str:
        """Sign a transaction and return its raw bytes as a 0x hex string."""
        return to_hex(self.sign_transaction(tx).raw_transaction)

    def flashbots_signature(self, body: str) -> str:
        """
        Build the ``X-Flashbots-Signature`` header value for a request body.

        The relay expects ``<address>:<signature>`` where the signature is an
        EIP-191 signature over the hex keccak-256 digest of the body.
        """
        body_hash = to_hex(keccak(text=body))
        signature = self.sign_message(body_hash).signature
        return f"{self._address}:{to_hex(signature)}"

    def __repr__(self) -> str:
        return f"Account(address={self._address})"


def _signer_from_private_key(private_key: str) -> LocalAccount:
    try:
        return EthAccount.from_key(private_key)
    except Exception as e:
        raise InvalidPrivateKey(f"invalid private key: {type(e).__name__}") from e


def _signer_from_mnemonic(mnemonic: str, account_index: int) -> LocalAccount:
    if account_index < 0:
        raise InvalidMnemonic(f"invalid account index: {account_index}")
    try:
        return EthAccount.from_mnemonic(
            mnemonic,
            account_path=DERIVATION_PATH.format(index=account_index),
        )
    except Exception as e:
        raise InvalidMnemonic(f"invalid mnemonic phrase: {type(e).__name__}") from e


def generate_test_account() -> Account:
    """
    Generate a new random account for testing.

    WARNING: Do not use in production. The key is not persisted.
    """
    signer = EthAccount.create()
    account = Account.from_private_key(to_hex(signer.key))

    logger.warning("test_account_generated", address=account.address[:10] + "...")

    return account
