"""
Exceptions for the setcode SDK.
"""
from typing import Optional


class SetCodeError(Exception):
    """Base exception for all SDK errors."""
    pass


class EncodingError(SetCodeError, ValueError):
    """Raised when a value cannot be encoded (RLP or ABI)."""
    pass


class DecodingError(SetCodeError, ValueError):
    """Raised on truncated, over-long or non-canonical encoded input."""
    pass


class InvalidKeyError(SetCodeError, ValueError):
    """Raised when private key material is malformed or out of range."""
    pass


class RecoveryError(SetCodeError):
    """Raised when a signature does not recover to any public key."""
    pass


class UnsignedPayloadError(SetCodeError):
    """
    Raised when a payload is finalized without a signature computed over
    the exact bytes being finalized.
    """
    pass


class NetworkError(SetCodeError):
    """Raised when the connected node does not match the expected network."""
    pass


class TransactionError(SetCodeError):
    """Raised when submitting a transaction to the node fails."""
    pass


class StaleNonceError(TransactionError):
    """
    Raised when the node rejects a transaction because its nonce no longer
    matches the account state.
    """

    def __init__(self, message: str, nonce: Optional[int] = None):
        self.nonce = nonce
        super().__init__(message)
