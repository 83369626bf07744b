"""
EIP-7702 authorization tuples.

An authority grants code delegation to a contract by signing
``keccak256(0x05 || rlp([chain_id, address, nonce]))``. The signed tuple is
then embedded in a set-code transaction, which may be paid for by a
different account (the sponsor).
"""
import logging
from typing import Any, List

from eth_utils import keccak

from . import rlp_codec
from .exceptions import UnsignedPayloadError
from .models import Authorization, Signature
from .signer import KeyOrSigner, recover_address, sign_with

logger = logging.getLogger(__name__)

SET_CODE_AUTHORIZATION_MAGIC = b"\x05"
# chain_id 0 makes the authorization valid on every chain
ANY_CHAIN_ID = 0


def build_authorization(chain_id: int, delegate_address: Any, authority_nonce: int) -> Authorization:
    """
    Build an unsigned authorization.

    Args:
        chain_id: Target chain, or 0 for any chain
        delegate_address: Contract whose code the authority delegates to
        authority_nonce: The authority account's next nonce. Not checked
            against the network; if the authority also sends the
            transaction this must be its transaction nonce + 1.

    Returns:
        Unsigned Authorization
    """
    return Authorization(chain_id=chain_id, address=delegate_address, nonce=authority_nonce)


def authorization_preimage(authorization: Authorization) -> bytes:
    """``0x05 || rlp([chain_id, address, nonce])``"""
    return SET_CODE_AUTHORIZATION_MAGIC + rlp_codec.encode(
        [authorization.chain_id, authorization.address, authorization.nonce]
    )


def authorization_hash(authorization: Authorization) -> bytes:
    """Digest the authority signs"""
    return keccak(authorization_preimage(authorization))


def sign_authorization(authorization: Authorization, authority: KeyOrSigner) -> Authorization:
    """
    Sign an authorization with the authority's key.

    Only the ``(chain_id, address, nonce)`` part is signed; any existing
    signature on ``authorization`` is replaced in the returned copy.

    Args:
        authorization: Authorization to sign
        authority: Authority private key or Signer

    Returns:
        New, signed Authorization

    Raises:
        InvalidKeyError: If the key is malformed
    """
    digest = authorization_hash(authorization)
    signature = sign_with(digest, authority)
    logger.debug(
        f"Signed authorization chain_id={authorization.chain_id} "
        f"delegate={authorization.delegate} nonce={authorization.nonce}"
    )
    return authorization.model_copy(
        update={"y_parity": signature.y_parity, "r": signature.r, "s": signature.s}
    )


def authorization_signature(authorization: Authorization) -> Signature:
    """
    The attached signature, bound to the authorization hash.

    Raises:
        UnsignedPayloadError: If the authorization has not been signed
    """
    if not authorization.is_signed:
        raise UnsignedPayloadError("Authorization has not been signed")
    return Signature(
        y_parity=authorization.y_parity,
        r=authorization.r,
        s=authorization.s,
        message_hash=authorization_hash(authorization),
    )


def recover_authority(authorization: Authorization) -> str:
    """
    Checksummed address of the account that signed ``authorization``.

    The authority is never stored on the tuple; it is always derived from
    the signature.

    Raises:
        UnsignedPayloadError: If the authorization has not been signed
        RecoveryError: If the signature is malformed
    """
    signature = authorization_signature(authorization)
    return recover_address(signature.message_hash, signature)


def authorization_fields(authorization: Authorization) -> List[Any]:
    """
    Wire order ``[chain_id, address, nonce, y_parity, r, s]``.

    Raises:
        UnsignedPayloadError: If the authorization has not been signed
    """
    if not authorization.is_signed:
        raise UnsignedPayloadError("Cannot encode an unsigned authorization")
    return [
        authorization.chain_id,
        authorization.address,
        authorization.nonce,
        authorization.y_parity,
        authorization.r,
        authorization.s,
    ]
