"""
setcode-sdk - EIP-7702 set-code transactions and sponsored transfers.
"""
from .version import __version__
from .exceptions import (
    SetCodeError,
    EncodingError,
    DecodingError,
    InvalidKeyError,
    RecoveryError,
    UnsignedPayloadError,
    NetworkError,
    TransactionError,
    StaleNonceError,
)
from .models import (
    Signature,
    Authorization,
    AccessListEntry,
    TransactionRequest,
    SignedTransaction,
    TypedDataDomain,
    SponsoredTransfer,
    TxReceipt,
)
from .signer import Signer, LocalSigner
from .authorization import (
    build_authorization,
    authorization_hash,
    sign_authorization,
    recover_authority,
)
from .typed_data import (
    hash_typed_data,
    sign_typed_data,
    sponsor_domain,
    hash_sponsored_transfer,
    sign_sponsored_transfer,
)
from .transaction import (
    build_transaction,
    build_signing_payload,
    signing_hash,
    sign,
    finalize,
    sign_transaction,
    decode_transaction,
    recover_sender,
)
from .fees import Eip1559Fees, LegacyFees, FeePolicy, ResolvedFees, resolve_fees
from .config import NetworkConfig
from .client import SponsorClient

__all__ = [
    "SponsorClient",
    "NetworkConfig",
    "Signer",
    "LocalSigner",
    "Signature",
    "Authorization",
    "AccessListEntry",
    "TransactionRequest",
    "SignedTransaction",
    "TypedDataDomain",
    "SponsoredTransfer",
    "TxReceipt",
    "build_authorization",
    "authorization_hash",
    "sign_authorization",
    "recover_authority",
    "hash_typed_data",
    "sign_typed_data",
    "sponsor_domain",
    "hash_sponsored_transfer",
    "sign_sponsored_transfer",
    "build_transaction",
    "build_signing_payload",
    "signing_hash",
    "sign",
    "finalize",
    "sign_transaction",
    "decode_transaction",
    "recover_sender",
    "Eip1559Fees",
    "LegacyFees",
    "FeePolicy",
    "ResolvedFees",
    "resolve_fees",
    "SetCodeError",
    "EncodingError",
    "DecodingError",
    "InvalidKeyError",
    "RecoveryError",
    "UnsignedPayloadError",
    "NetworkError",
    "TransactionError",
    "StaleNonceError",
    "__version__",
]
