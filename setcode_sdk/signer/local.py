"""
In-process secp256k1 signing backed by ``eth_keys``.
"""
import logging
from typing import Union

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from ..exceptions import InvalidKeyError, RecoveryError
from ..models import Signature

logger = logging.getLogger(__name__)

PrivateKeyLike = Union[str, bytes, keys.PrivateKey]


def parse_private_key(private_key: PrivateKeyLike) -> keys.PrivateKey:
    """
    Normalize key material into an ``eth_keys`` private key.

    Args:
        private_key: 32 raw bytes, a hex string (with or without 0x prefix)
            or an existing ``eth_keys.keys.PrivateKey``

    Raises:
        InvalidKeyError: If the key is malformed or outside [1, N-1]
    """
    if isinstance(private_key, keys.PrivateKey):
        return private_key

    if isinstance(private_key, str):
        hex_key = private_key[2:] if private_key.startswith(("0x", "0X")) else private_key
        try:
            key_bytes = bytes.fromhex(hex_key)
        except ValueError:
            raise InvalidKeyError("Private key is not valid hex")
    elif isinstance(private_key, (bytes, bytearray)):
        key_bytes = bytes(private_key)
    else:
        raise InvalidKeyError(f"Unsupported private key type: {type(private_key).__name__}")

    try:
        return keys.PrivateKey(key_bytes)
    except ValidationError as e:
        # Never echo the key itself
        raise InvalidKeyError(f"Invalid secp256k1 private key: {e}") from None


def _check_digest(digest: bytes) -> bytes:
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != 32:
        raise ValueError("Digest must be exactly 32 bytes")
    return bytes(digest)


def sign_digest(digest: bytes, private_key: PrivateKeyLike) -> Signature:
    """
    Sign a 32-byte digest.

    Signing is deterministic (RFC 6979) and the returned ``s`` is always in
    the lower half of the curve order.

    Args:
        digest: 32-byte message hash
        private_key: Signing key material

    Returns:
        Signature bound to ``digest`` through ``message_hash``

    Raises:
        InvalidKeyError: If the key is malformed
        ValueError: If the digest is not 32 bytes
    """
    digest = _check_digest(digest)
    key = parse_private_key(private_key)
    signed = key.sign_msg_hash(digest)
    v, r, s = signed.vrs
    return Signature(y_parity=v, r=r, s=s, message_hash=digest)


def recover_address(digest: bytes, signature: Signature) -> str:
    """
    Recover the checksummed address that produced ``signature`` over ``digest``.

    Raises:
        RecoveryError: If no public key can be recovered
    """
    digest = _check_digest(digest)
    try:
        raw = keys.Signature(vrs=(signature.y_parity, signature.r, signature.s))
        public_key = raw.recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError) as e:
        raise RecoveryError(f"Could not recover signer: {e}") from e
    return public_key.to_checksum_address()


def derive_address(private_key: PrivateKeyLike) -> str:
    """Checksummed address controlled by ``private_key``."""
    return parse_private_key(private_key).public_key.to_checksum_address()


class LocalSigner:
    """
    Signer over an in-memory private key.

    Satisfies the :class:`setcode_sdk.signer.Signer` protocol.
    """

    def __init__(self, private_key: PrivateKeyLike):
        self._key = parse_private_key(private_key)
        self.address = self._key.public_key.to_checksum_address()

    def sign_hash(self, digest: bytes) -> Signature:
        """Sign a 32-byte digest"""
        return sign_digest(digest, self._key)

    def __repr__(self) -> str:
        return f"LocalSigner(address={self.address})"
