"""
Signing primitives and the pluggable signer protocol.
"""
from typing import Protocol, Union, runtime_checkable

from ..models import Signature
from .local import (
    LocalSigner,
    PrivateKeyLike,
    derive_address,
    parse_private_key,
    recover_address,
    sign_digest,
)


@runtime_checkable
class Signer(Protocol):
    """Protocol for custom signers (hardware wallets, remote signers, ...)"""
    address: str

    def sign_hash(self, digest: bytes) -> Signature:
        """Sign a 32-byte digest and return a 0/1 recovery-id signature"""
        ...


KeyOrSigner = Union[PrivateKeyLike, Signer]


def sign_with(digest: bytes, key_or_signer: KeyOrSigner) -> Signature:
    """
    Sign ``digest`` with either raw key material or a :class:`Signer`.

    Raises:
        InvalidKeyError: If raw key material is malformed
    """
    if isinstance(key_or_signer, (str, bytes, bytearray)) or not hasattr(key_or_signer, "sign_hash"):
        return sign_digest(digest, key_or_signer)
    return key_or_signer.sign_hash(digest)


__all__ = [
    "Signer",
    "LocalSigner",
    "KeyOrSigner",
    "PrivateKeyLike",
    "sign_with",
    "sign_digest",
    "recover_address",
    "derive_address",
    "parse_private_key",
]
