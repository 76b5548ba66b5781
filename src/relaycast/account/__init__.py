"""
Account module.

Handles key loading, signing and nonce tracking for the sending account.
"""

from relaycast.account.account import Account, KeyMaterial, generate_test_account
from relaycast.account.nonce import NonceTracker

__all__ = [
    "Account",
    "KeyMaterial",
    "NonceTracker",
    "generate_test_account",
]
