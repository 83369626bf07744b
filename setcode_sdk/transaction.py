"""
EIP-7702 set-code transaction builder and encoder.

Wire format::

    0x04 || rlp([chain_id, nonce, max_priority_fee_per_gas, max_fee_per_gas,
                 gas_limit, destination, value, data, access_list,
                 authorization_list, signature_y_parity, signature_r,
                 signature_s])

    authorization_list = [[chain_id, address, nonce, y_parity, r, s], ...]

The destination and the authorization targets are independent. Sending to
the authority's own address together with that address's authorization
runs the delegated code at the authority; sending to any other address is a
plain call that happens to carry delegation grants.
"""
import logging
from typing import Any, Iterable, List, Optional, Sequence

from eth_utils import keccak
from pydantic import ValidationError

from . import rlp_codec
from .authorization import authorization_fields
from .config import DEFAULT_GAS_LIMIT
from .exceptions import DecodingError, UnsignedPayloadError
from .fees import ResolvedFees
from .models import (
    AccessListEntry,
    Authorization,
    Signature,
    SignedTransaction,
    TransactionRequest,
)
from .signer import KeyOrSigner, recover_address, sign_with

logger = logging.getLogger(__name__)

SET_CODE_TX_TYPE = 0x04
_SIGNED_FIELD_COUNT = 13


def build_transaction(
    *,
    chain_id: int,
    nonce: int,
    fees: ResolvedFees,
    destination: Any,
    gas_limit: int = DEFAULT_GAS_LIMIT,
    value: int = 0,
    data: Any = b"",
    access_list: Iterable[AccessListEntry] = (),
    authorization_list: Iterable[Authorization] = (),
) -> TransactionRequest:
    """
    Assemble a set-code transaction request.

    Args:
        chain_id: Chain the transaction is valid on
        nonce: Sponsor's account nonce, read by the caller just before building
        fees: Resolved fee pair (see :func:`setcode_sdk.fees.resolve_fees`)
        destination: Account whose (possibly delegated) code is called
        gas_limit: Gas limit
        value: Wei sent with the call
        data: Calldata as bytes or hex
        access_list: Optional EIP-2930 access list
        authorization_list: Signed authorizations, in order

    Returns:
        Immutable TransactionRequest
    """
    return TransactionRequest(
        chain_id=chain_id,
        nonce=nonce,
        max_priority_fee_per_gas=fees.max_priority_fee_per_gas,
        max_fee_per_gas=fees.max_fee_per_gas,
        gas_limit=gas_limit,
        destination=destination,
        value=value,
        data=data,
        access_list=tuple(access_list),
        authorization_list=tuple(authorization_list),
    )


def _request_fields(request: TransactionRequest) -> List[Any]:
    return [
        request.chain_id,
        request.nonce,
        request.max_priority_fee_per_gas,
        request.max_fee_per_gas,
        request.gas_limit,
        request.destination,
        request.value,
        request.data,
        [[entry.address, list(entry.storage_keys)] for entry in request.access_list],
        [authorization_fields(authorization) for authorization in request.authorization_list],
    ]


def build_signing_payload(request: TransactionRequest) -> bytes:
    """``0x04 || rlp(10 request fields)``, the bytes the sponsor signs over"""
    return bytes([SET_CODE_TX_TYPE]) + rlp_codec.encode(_request_fields(request))


def signing_hash(payload: bytes) -> bytes:
    """keccak256 of a signing payload"""
    return keccak(payload)


def sign(digest: bytes, sponsor: KeyOrSigner) -> Signature:
    """Sign a transaction signing hash as the sponsor"""
    return sign_with(digest, sponsor)


def finalize(request: TransactionRequest, signature: Optional[Signature]) -> bytes:
    """
    Serialize a request and its sponsor signature to wire bytes.

    The signature must have been produced over this exact request: its
    ``message_hash`` is compared with the request's signing hash.

    Raises:
        UnsignedPayloadError: If there is no signature, or it was computed
            over different field values
    """
    if signature is None:
        raise UnsignedPayloadError("Transaction has not been signed")
    if signature.message_hash is None:
        raise UnsignedPayloadError("Signature is not bound to a signing hash")

    expected = signing_hash(build_signing_payload(request))
    if signature.message_hash != expected:
        raise UnsignedPayloadError(
            f"Signature was computed over 0x{signature.message_hash.hex()}, "
            f"but this transaction hashes to 0x{expected.hex()}"
        )

    fields = _request_fields(request) + [signature.y_parity, signature.r, signature.s]
    return bytes([SET_CODE_TX_TYPE]) + rlp_codec.encode(fields)


def sign_transaction(request: TransactionRequest, sponsor: KeyOrSigner) -> SignedTransaction:
    """
    Payload, hash, sign and finalize in one step.

    Args:
        request: Transaction to sign
        sponsor: Sponsor private key or Signer (pays for gas)

    Returns:
        SignedTransaction with the raw wire bytes
    """
    digest = signing_hash(build_signing_payload(request))
    signature = sign(digest, sponsor)
    raw = finalize(request, signature)
    logger.debug(
        f"Signed set-code transaction nonce={request.nonce} "
        f"authorizations={len(request.authorization_list)} hash=0x{keccak(raw).hex()}"
    )
    return SignedTransaction(request=request, signature=signature, raw=raw)


def transaction_hash(raw: bytes) -> bytes:
    """Network hash of a finalized transaction"""
    return keccak(raw)


def _expect_list(item: Any, what: str) -> list:
    if not isinstance(item, list):
        raise DecodingError(f"{what} must be an RLP list")
    return item


def _expect_bytes(item: Any, what: str) -> bytes:
    if not isinstance(item, bytes):
        raise DecodingError(f"{what} must be an RLP string")
    return item


def _int(item: Any, what: str) -> int:
    return rlp_codec.decode_int(_expect_bytes(item, what))


def _decode_authorization(item: Any, index: int) -> Authorization:
    fields = _expect_list(item, f"authorization {index}")
    if len(fields) != 6:
        raise DecodingError(f"Authorization {index} has {len(fields)} fields, expected 6")
    chain_id, address, nonce, y_parity, r, s = fields
    return Authorization(
        chain_id=_int(chain_id, "authorization chain_id"),
        address=_expect_bytes(address, "authorization address"),
        nonce=_int(nonce, "authorization nonce"),
        y_parity=_int(y_parity, "authorization y_parity"),
        r=_int(r, "authorization r"),
        s=_int(s, "authorization s"),
    )


def _decode_access_list(item: Any) -> List[AccessListEntry]:
    entries = []
    for entry in _expect_list(item, "access list"):
        pair = _expect_list(entry, "access list entry")
        if len(pair) != 2:
            raise DecodingError("Access list entry must be [address, storage_keys]")
        keys = [_expect_bytes(key, "storage key") for key in _expect_list(pair[1], "storage keys")]
        entries.append(AccessListEntry(address=_expect_bytes(pair[0], "access list address"), storage_keys=keys))
    return entries


def decode_transaction(raw: bytes) -> SignedTransaction:
    """
    Parse wire bytes produced by :func:`finalize`.

    The returned signature is bound to the decoded request's signing hash,
    so the result round-trips through :func:`finalize`.

    Raises:
        DecodingError: On a wrong type byte, field count or field shape
    """
    if not raw or raw[0] != SET_CODE_TX_TYPE:
        raise DecodingError("Not a set-code (type 0x04) transaction")

    fields = _expect_list(rlp_codec.decode(raw[1:]), "transaction")
    if len(fields) != _SIGNED_FIELD_COUNT:
        raise DecodingError(f"Transaction has {len(fields)} fields, expected {_SIGNED_FIELD_COUNT}")

    try:
        request = TransactionRequest(
            chain_id=_int(fields[0], "chain_id"),
            nonce=_int(fields[1], "nonce"),
            max_priority_fee_per_gas=_int(fields[2], "max_priority_fee_per_gas"),
            max_fee_per_gas=_int(fields[3], "max_fee_per_gas"),
            gas_limit=_int(fields[4], "gas_limit"),
            destination=_expect_bytes(fields[5], "destination"),
            value=_int(fields[6], "value"),
            data=_expect_bytes(fields[7], "data"),
            access_list=_decode_access_list(fields[8]),
            authorization_list=[
                _decode_authorization(item, index)
                for index, item in enumerate(_expect_list(fields[9], "authorization list"))
            ],
        )
        signature = Signature(
            y_parity=_int(fields[10], "signature y_parity"),
            r=_int(fields[11], "signature r"),
            s=_int(fields[12], "signature s"),
            message_hash=signing_hash(build_signing_payload(request)),
        )
    except ValidationError as e:
        raise DecodingError(f"Invalid transaction field: {e}") from e

    return SignedTransaction(request=request, signature=signature, raw=bytes(raw))


def recover_sender(signed: SignedTransaction) -> str:
    """
    Checksummed address of the sponsor that signed ``signed``.

    Raises:
        RecoveryError: If the signature is malformed
    """
    digest = signing_hash(build_signing_payload(signed.request))
    return recover_address(digest, signed.signature)


def wire_fields(raw: bytes) -> Sequence[Any]:
    """Top-level RLP items of a finalized transaction, without the type byte"""
    if not raw or raw[0] != SET_CODE_TX_TYPE:
        raise DecodingError("Not a set-code (type 0x04) transaction")
    return _expect_list(rlp_codec.decode(raw[1:]), "transaction")
