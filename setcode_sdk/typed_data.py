"""
EIP-712 structured-data hashing and signing.

Only flat structs are supported: every field is an atomic ABI type
(``address``, ``bool``, ``uintN``, ``intN``, ``bytesN``) or a dynamic
``string``/``bytes`` value, which is keccak-hashed before encoding. This
covers the relay contract's ``SponsoredTransfer`` message and the standard
``EIP712Domain``.
"""
import logging
import re
from typing import Any, Dict, List, Mapping, NamedTuple, Tuple

from eth_abi import encode as abi_encode
from eth_abi.exceptions import EncodingError as ABIEncodingError
from eth_utils import keccak, to_checksum_address

from .exceptions import EncodingError
from .models import Signature, SponsoredTransfer, TypedDataDomain
from .signer import KeyOrSigner, sign_with

logger = logging.getLogger(__name__)

_ATOMIC_TYPE = re.compile(r"^(address|bool|u?int(8|16|24|32|40|48|56|64|72|80|88|96|104|112|120|128|136|144|152|160|168|176|184|192|200|208|216|224|232|240|248|256)|bytes([1-9]|[12][0-9]|3[0-2]))$")


class TypedSchema(NamedTuple):
    """A named flat struct: ``(name, [(field_name, field_type), ...])``"""
    name: str
    fields: Tuple[Tuple[str, str], ...]

    def encode_type(self) -> str:
        """Canonical type string, e.g. ``Mail(address from,string contents)``"""
        members = ",".join(f"{field_type} {field_name}" for field_name, field_type in self.fields)
        return f"{self.name}({members})"

    def type_hash(self) -> bytes:
        return keccak(text=self.encode_type())


EIP712_DOMAIN = TypedSchema(
    "EIP712Domain",
    (
        ("name", "string"),
        ("version", "string"),
        ("chainId", "uint256"),
        ("verifyingContract", "address"),
    ),
)

SPONSORED_TRANSFER = TypedSchema(
    "SponsoredTransfer",
    (
        ("sender", "address"),
        ("recipient", "address"),
        ("amount", "uint256"),
        ("nonce", "uint256"),
    ),
)

SPONSOR_DOMAIN_NAME = "Sponsor"
SPONSOR_DOMAIN_VERSION = "1"


def _encode_field(field_type: str, value: Any) -> Tuple[str, Any]:
    """Map one field to the (abi_type, abi_value) pair that goes into encodeData."""
    if field_type == "string":
        if not isinstance(value, str):
            raise EncodingError(f"Expected str for string field, got {type(value).__name__}")
        return "bytes32", keccak(text=value)
    if field_type == "bytes":
        if not isinstance(value, (bytes, bytearray)):
            raise EncodingError(f"Expected bytes for bytes field, got {type(value).__name__}")
        return "bytes32", keccak(bytes(value))
    if not _ATOMIC_TYPE.match(field_type):
        raise EncodingError(f"Unsupported EIP-712 field type: {field_type}")
    return field_type, value


def hash_struct(schema: TypedSchema, values: Mapping[str, Any]) -> bytes:
    """
    ``keccak256(typeHash || encodeData(values))``

    Args:
        schema: Struct definition
        values: Field values keyed by field name

    Raises:
        EncodingError: On missing fields, unsupported types or bad values
    """
    abi_types: List[str] = ["bytes32"]
    abi_values: List[Any] = [schema.type_hash()]

    for field_name, field_type in schema.fields:
        if field_name not in values:
            raise EncodingError(f"{schema.name} is missing field '{field_name}'")
        abi_type, abi_value = _encode_field(field_type, values[field_name])
        abi_types.append(abi_type)
        abi_values.append(abi_value)

    try:
        encoded = abi_encode(abi_types, abi_values)
    except (ABIEncodingError, TypeError, ValueError) as e:
        raise EncodingError(f"Could not encode {schema.name}: {e}") from e
    return keccak(encoded)


def _domain_values(domain: TypedDataDomain) -> Dict[str, Any]:
    return {
        "name": domain.name,
        "version": domain.version,
        "chainId": domain.chain_id,
        "verifyingContract": domain.verifying_contract,
    }


def _transfer_values(transfer: SponsoredTransfer) -> Dict[str, Any]:
    return {
        "sender": transfer.sender,
        "recipient": transfer.recipient,
        "amount": transfer.amount,
        "nonce": transfer.nonce,
    }


def domain_separator(domain: TypedDataDomain) -> bytes:
    return hash_struct(EIP712_DOMAIN, _domain_values(domain))


def hash_typed_data(domain: TypedDataDomain, schema: TypedSchema, message: Mapping[str, Any]) -> bytes:
    """
    Domain-separated EIP-712 digest:
    ``keccak256(0x1901 || domainSeparator || hashStruct(message))``
    """
    digest = keccak(b"\x19\x01" + domain_separator(domain) + hash_struct(schema, message))
    logger.debug(f"Typed-data digest for {schema.name}: 0x{digest.hex()}")
    return digest


def sign_typed_data(
    domain: TypedDataDomain,
    schema: TypedSchema,
    message: Mapping[str, Any],
    key_or_signer: KeyOrSigner,
) -> Signature:
    """Hash ``message`` under ``domain`` and sign the digest"""
    return sign_with(hash_typed_data(domain, schema, message), key_or_signer)


def sponsor_domain(chain_id: int, verifying_contract: Any) -> TypedDataDomain:
    """The relay contract's fixed ``{name: "Sponsor", version: "1"}`` domain"""
    return TypedDataDomain(
        name=SPONSOR_DOMAIN_NAME,
        version=SPONSOR_DOMAIN_VERSION,
        chain_id=chain_id,
        verifying_contract=verifying_contract,
    )


def hash_sponsored_transfer(domain: TypedDataDomain, transfer: SponsoredTransfer) -> bytes:
    return hash_typed_data(domain, SPONSORED_TRANSFER, _transfer_values(transfer))


def sign_sponsored_transfer(
    domain: TypedDataDomain,
    transfer: SponsoredTransfer,
    key_or_signer: KeyOrSigner,
) -> Signature:
    """
    Sign a ``SponsoredTransfer`` as its sender.

    The signature lets any third party call ``sponsoredTransfer`` on the
    relay contract; the contract checks the nonce and the recovered signer.
    """
    return sign_with(hash_sponsored_transfer(domain, transfer), key_or_signer)


def to_eip712_message(
    domain: TypedDataDomain,
    schema: TypedSchema,
    message: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Build the ``eth_signTypedData_v4`` JSON structure.

    Useful when the signature is produced by an external wallet.
    Addresses are rendered checksummed and byte values as 0x-hex.
    """
    def _render(field_type: str, value: Any) -> Any:
        if field_type == "address":
            return to_checksum_address(value)
        if isinstance(value, (bytes, bytearray)):
            return "0x" + bytes(value).hex()
        return value

    return {
        "types": {
            EIP712_DOMAIN.name: [{"name": n, "type": t} for n, t in EIP712_DOMAIN.fields],
            schema.name: [{"name": n, "type": t} for n, t in schema.fields],
        },
        "primaryType": schema.name,
        "domain": {
            name: _render(field_type, value)
            for (name, field_type), value in zip(EIP712_DOMAIN.fields, _domain_values(domain).values())
        },
        "message": {name: _render(field_type, message[name]) for name, field_type in schema.fields},
    }


def sponsored_transfer_message(domain: TypedDataDomain, transfer: SponsoredTransfer) -> Dict[str, Any]:
    return to_eip712_message(domain, SPONSORED_TRANSFER, _transfer_values(transfer))
