"""
Data models for the setcode SDK.
"""
from typing import Annotated, Any, Dict, List, Optional, Tuple

from eth_utils import keccak, to_canonical_address, to_checksum_address
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

UINT256_MAX = 2**256 - 1
UINT64_MAX = 2**64 - 1


def _to_address_bytes(value: Any) -> bytes:
    """Accept a hex address (any casing) or 20 raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise ValueError(f"Address must be 20 bytes, got {len(value)}")
        return bytes(value)
    if isinstance(value, str):
        # Checksum casing is display-only, so compare lower-cased
        try:
            return to_canonical_address(value.lower())
        except ValueError as e:
            raise ValueError(f"Invalid address {value!r}: {e}")
    raise ValueError(f"Address must be a hex string or bytes, got {type(value).__name__}")


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        hex_value = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            return bytes.fromhex(hex_value)
        except ValueError as e:
            raise ValueError(f"Invalid hex data {value!r}: {e}")
    raise ValueError(f"Expected bytes or a hex string, got {type(value).__name__}")


Address = Annotated[bytes, BeforeValidator(_to_address_bytes)]
HexData = Annotated[bytes, BeforeValidator(_to_bytes)]
Uint256 = Annotated[int, Field(ge=0, le=UINT256_MAX)]
Uint64 = Annotated[int, Field(ge=0, le=UINT64_MAX)]


class Signature(BaseModel):
    """secp256k1 signature with a 0/1 recovery id"""
    model_config = ConfigDict(frozen=True)

    y_parity: int = Field(ge=0, le=1)
    r: Uint256
    s: Uint256
    # Digest the signature was produced over; never part of a wire encoding
    message_hash: Optional[HexData] = None

    @field_validator("message_hash")
    @classmethod
    def _check_message_hash(cls, value: Optional[bytes]) -> Optional[bytes]:
        if value is not None and len(value) != 32:
            raise ValueError(f"message_hash must be 32 bytes, got {len(value)}")
        return value

    @property
    def v(self) -> int:
        """Legacy 27/28 recovery value, as expected by ``ecrecover`` callers."""
        return self.y_parity + 27

    def to_bytes(self) -> bytes:
        """65-byte ``r || s || v`` form."""
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])


class Authorization(BaseModel):
    """
    EIP-7702 authorization tuple.

    Unsigned until ``y_parity``, ``r`` and ``s`` are attached by
    :func:`setcode_sdk.authorization.sign_authorization`.
    """
    model_config = ConfigDict(frozen=True)

    chain_id: Uint256
    address: Address
    nonce: Uint64
    y_parity: Optional[int] = Field(default=None, ge=0, le=1)
    r: Optional[Uint256] = None
    s: Optional[Uint256] = None

    @property
    def is_signed(self) -> bool:
        return self.y_parity is not None and self.r is not None and self.s is not None

    @property
    def delegate(self) -> str:
        """Checksummed delegate contract address."""
        return to_checksum_address(self.address)


class AccessListEntry(BaseModel):
    """EIP-2930 access list entry"""
    model_config = ConfigDict(frozen=True)

    address: Address
    storage_keys: Tuple[HexData, ...] = ()

    @field_validator("storage_keys")
    @classmethod
    def _check_storage_keys(cls, value: Tuple[bytes, ...]) -> Tuple[bytes, ...]:
        for key in value:
            if len(key) != 32:
                raise ValueError(f"Storage key must be 32 bytes, got {len(key)}")
        return value


class TransactionRequest(BaseModel):
    """
    Unsigned EIP-7702 set-code transaction.

    Fields are kept by name; the positional wire order only exists inside
    :mod:`setcode_sdk.transaction`.
    """
    model_config = ConfigDict(frozen=True)

    chain_id: Uint256
    nonce: Uint64
    max_priority_fee_per_gas: Uint256
    max_fee_per_gas: Uint256
    gas_limit: Uint64
    destination: Address
    value: Uint256 = 0
    data: HexData = b""
    access_list: Tuple[AccessListEntry, ...] = ()
    authorization_list: Tuple[Authorization, ...] = ()

    @field_validator("authorization_list")
    @classmethod
    def _check_authorizations_signed(cls, value: Tuple[Authorization, ...]) -> Tuple[Authorization, ...]:
        for index, authorization in enumerate(value):
            if not authorization.is_signed:
                raise ValueError(f"Authorization at index {index} is not signed")
        return value


class SignedTransaction(BaseModel):
    """Fully signed set-code transaction, ready for submission"""
    model_config = ConfigDict(frozen=True)

    request: TransactionRequest
    signature: Signature
    raw: bytes

    @property
    def hash(self) -> bytes:
        """Network transaction hash (keccak256 of the raw bytes)."""
        return keccak(self.raw)

    @property
    def raw_hex(self) -> str:
        return "0x" + self.raw.hex()


class TypedDataDomain(BaseModel):
    """EIP-712 domain for the relay contract"""
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    chain_id: Uint256
    verifying_contract: Address


class SponsoredTransfer(BaseModel):
    """Transfer approved by ``sender`` and executed by a sponsor"""
    model_config = ConfigDict(frozen=True)

    sender: Address
    recipient: Address
    amount: Uint256
    nonce: Uint256


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    status: int
    gas_used: int = Field(..., alias="gasUsed")
    from_address: str = Field(..., alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    logs: List[Dict[str, Any]]
