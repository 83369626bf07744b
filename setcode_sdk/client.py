"""
SponsorClient - relays user transfers through a Sponsor contract.

The sponsor account pays for gas. The user (authority) only signs an
EIP-712 ``SponsoredTransfer`` and, optionally, an EIP-7702 authorization
delegating their account to the Sponsor code.
"""
import logging
import urllib.parse
from typing import Any, Dict, Iterable, Optional, Union

from eth_abi import encode as abi_encode
from eth_utils import keccak, to_checksum_address
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception
from web3.types import TxReceipt as Web3TxReceipt

from . import transaction as tx_codec
from ._rate_limited_log import rate_limited_log
from .authorization import build_authorization, sign_authorization
from .config import DEFAULT_GAS_LIMIT, RECEIPT_TIMEOUT_SECONDS, NetworkConfig
from .exceptions import NetworkError, StaleNonceError, TransactionError
from .fees import Eip1559Fees, LegacyFees, ResolvedFees, fee_policy_from_fee_data, resolve_fees
from .models import (
    Authorization,
    Signature,
    SponsoredTransfer,
    TransactionRequest,
    TxReceipt,
    TypedDataDomain,
)
from .signer import KeyOrSigner, LocalSigner, Signer, derive_address
from .typed_data import domain_separator, sign_sponsored_transfer, sponsor_domain

SPONSORED_TRANSFER_SIGNATURE = "sponsoredTransfer(address,address,uint256,uint256,uint8,bytes32,bytes32)"
SPONSORED_TRANSFER_SELECTOR = keccak(text=SPONSORED_TRANSFER_SIGNATURE)[:4]

_NONCE_REJECTIONS = ("nonce too low", "nonce too high", "invalid nonce")


class SponsorClient:
    """
    Client for sponsored (gas-less for the user) transfers.

    This client handles:
    1. Reading relay state (``nonces``, ``gasSpent``) from the Sponsor contract
    2. Building, signing and submitting EIP-7702 set-code transactions

    Nonces and fees are read from the node on every call and never cached.
    """

    SPONSOR_ABI = [
        {
            "inputs": [{"internalType": "address", "name": "", "type": "address"}],
            "name": "nonces",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [{"internalType": "address", "name": "", "type": "address"}],
            "name": "gasSpent",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [],
            "name": "DOMAIN_SEPARATOR",
            "outputs": [{"internalType": "bytes32", "name": "", "type": "bytes32"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [
                {"internalType": "address", "name": "sender", "type": "address"},
                {"internalType": "address", "name": "recipient", "type": "address"},
                {"internalType": "uint256", "name": "amount", "type": "uint256"},
                {"internalType": "uint256", "name": "nonce", "type": "uint256"},
                {"internalType": "uint8", "name": "v", "type": "uint8"},
                {"internalType": "bytes32", "name": "r", "type": "bytes32"},
                {"internalType": "bytes32", "name": "s", "type": "bytes32"}
            ],
            "name": "sponsoredTransfer",
            "outputs": [],
            "stateMutability": "nonpayable",
            "type": "function"
        }
    ]

    def __init__(
        self,
        rpc_url: str,
        sponsor_contract: Optional[str] = None,
        sponsor_key: Optional[Union[str, bytes]] = None,
        signer: Optional[Signer] = None,
        expected_chain_id: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the SponsorClient

        Args:
            rpc_url: Ethereum RPC endpoint URL
            sponsor_contract: Sponsor relay contract address (required for relay operations)
            sponsor_key: Sponsor private key (optional if signer provided)
            signer: Custom signer for the sponsor (optional if sponsor_key provided)
            expected_chain_id: Chain ID the node must report (see assert_chain_id)
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ValueError: If neither sponsor_key nor signer is provided
            ValueError: If the RPC URL doesn't use https (unless it's localhost/127.0.0.1)
        """
        if not sponsor_key and not signer:
            raise ValueError("Either sponsor_key or signer must be provided")

        parsed = urllib.parse.urlparse(rpc_url)
        host = parsed.netloc.split(':')[0]
        is_local = host in ('localhost', '127.0.0.1')
        if parsed.scheme != 'https' and not is_local:
            raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")

        self.rpc_url = rpc_url
        self.expected_chain_id = expected_chain_id
        self.logger = logger or logging.getLogger(__name__)
        self.signer: Signer = signer if signer is not None else LocalSigner(sponsor_key)

        self.w3 = Web3(Web3.HTTPProvider(rpc_url))

        self.sponsor_contract: Optional[str] = None
        self.contract = None
        if sponsor_contract:
            self.sponsor_contract = to_checksum_address(sponsor_contract)
            self.contract = self.w3.eth.contract(
                address=self.sponsor_contract,
                abi=self.SPONSOR_ABI
            )

    @classmethod
    def from_network(
        cls,
        network: str,
        sponsor_key: Optional[Union[str, bytes]] = None,
        signer: Optional[Signer] = None,
        rpc_url: Optional[str] = None,
        sponsor_contract: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ) -> "SponsorClient":
        """
        Create a client for a network defined in ``networks.json``.

        The network's chain ID becomes the expected chain ID; RPC URL and
        contract address fall back to environment and file configuration.
        """
        return cls(
            rpc_url=NetworkConfig.get_rpc_url(network, rpc_url),
            sponsor_contract=sponsor_contract or NetworkConfig.get_sponsor_contract(network),
            sponsor_key=sponsor_key,
            signer=signer,
            expected_chain_id=NetworkConfig.get_chain_id(network),
            logger=logger,
        )

    @property
    def address(self) -> str:
        """Sponsor address (pays for gas)"""
        return self.signer.address

    @property
    def chain_id(self) -> int:
        """Chain ID reported by the node"""
        return int(self.w3.eth.chain_id)

    def assert_chain_id(self) -> None:
        """
        Check the node's chain ID against ``expected_chain_id``.

        Raises:
            NetworkError: On mismatch, or if the node cannot be queried
        """
        if self.expected_chain_id is None:
            self.logger.warning("No expected chain ID set, skipping chain ID validation")
            return

        try:
            actual = self.chain_id
        except (Web3Exception, OSError, ValueError) as e:
            raise NetworkError(f"Failed to validate chain ID: {e}") from e

        if actual != self.expected_chain_id:
            raise NetworkError(
                f"Chain ID mismatch: expected {self.expected_chain_id}, node reports {actual}"
            )

    def _require_contract(self):
        if self.contract is None:
            raise ValueError("Sponsor contract address not provided during initialization")
        return self.contract

    def account_nonce(self, address: str) -> int:
        """Transaction count of ``address``, including pending transactions"""
        return int(self.w3.eth.get_transaction_count(to_checksum_address(address), "pending"))

    def relay_nonce(self, address: str) -> int:
        """Next ``SponsoredTransfer`` nonce for ``address`` on the Sponsor contract"""
        return int(self._require_contract().functions.nonces(to_checksum_address(address)).call())

    def gas_spent(self, address: str) -> int:
        """Gas the Sponsor contract has paid on behalf of ``address``"""
        return int(self._require_contract().functions.gasSpent(to_checksum_address(address)).call())

    def fee_policy(self) -> Union[Eip1559Fees, LegacyFees]:
        """
        Read fee data from the node and pick a fee policy.

        Falls back to the legacy gas price when the node has no EIP-1559
        support, and to the configured default when it reports nothing.
        """
        fee_data: Dict[str, Any] = {}
        try:
            base_fee = self.w3.eth.get_block("latest").get("baseFeePerGas")
            tip = self.w3.eth.max_priority_fee
            if base_fee is not None:
                fee_data["maxPriorityFeePerGas"] = tip
                fee_data["maxFeePerGas"] = 2 * base_fee + tip
        except (Web3Exception, ValueError) as e:
            rate_limited_log(
                f"EIP-1559 fee data unavailable, using legacy gas price: {e}",
                level="warning",
                logger_instance=self.logger,
            )

        if "maxFeePerGas" not in fee_data:
            try:
                fee_data["gasPrice"] = self.w3.eth.gas_price
            except (Web3Exception, ValueError) as e:
                rate_limited_log(
                    f"Gas price unavailable: {e}",
                    level="warning",
                    logger_instance=self.logger,
                )

        policy = fee_policy_from_fee_data(fee_data)
        self.logger.debug(f"Fee policy: {policy}")
        return policy

    def domain(self) -> TypedDataDomain:
        """EIP-712 domain of the Sponsor contract on the connected chain"""
        self._require_contract()
        return sponsor_domain(self.chain_id, self.sponsor_contract)

    def contract_domain_separator(self) -> bytes:
        """``DOMAIN_SEPARATOR()`` as stored by the Sponsor contract"""
        return bytes(self._require_contract().functions.DOMAIN_SEPARATOR().call())

    def check_domain(self, domain: Optional[TypedDataDomain] = None) -> TypedDataDomain:
        """
        Verify the local EIP-712 domain against the Sponsor contract.

        Returns:
            The verified domain

        Raises:
            NetworkError: If the separators differ or the contract cannot be read
        """
        domain = domain or self.domain()
        try:
            onchain = self.contract_domain_separator()
        except (Web3Exception, ValueError) as e:
            raise NetworkError(f"Failed to read DOMAIN_SEPARATOR: {e}") from e

        local = domain_separator(domain)
        if onchain != local:
            raise NetworkError(
                f"EIP-712 domain mismatch: contract has 0x{onchain.hex()}, "
                f"local domain hashes to 0x{local.hex()}"
            )
        return domain

    @staticmethod
    def encode_sponsored_transfer(transfer: SponsoredTransfer, signature: Signature) -> bytes:
        """
        ABI-encode a ``sponsoredTransfer`` call.

        The contract expects the legacy 27/28 ``v``.
        """
        args = abi_encode(
            ["address", "address", "uint256", "uint256", "uint8", "bytes32", "bytes32"],
            [
                transfer.sender,
                transfer.recipient,
                transfer.amount,
                transfer.nonce,
                signature.v,
                signature.r.to_bytes(32, "big"),
                signature.s.to_bytes(32, "big"),
            ],
        )
        return SPONSORED_TRANSFER_SELECTOR + args

    def build_transaction(
        self,
        destination: str,
        data: Union[bytes, str] = b"",
        authorization_list: Iterable[Authorization] = (),
        value: int = 0,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        fees: Optional[ResolvedFees] = None,
        nonce: Optional[int] = None
    ) -> TransactionRequest:
        """
        Build a set-code transaction paid for by the sponsor.

        Args:
            destination: Account whose (possibly delegated) code is called
            data: Calldata
            authorization_list: Signed authorizations to carry
            value: Wei to send
            gas_limit: Gas limit
            fees: Fee pair (read from the node if None)
            nonce: Sponsor nonce (read from the node if None)

        Returns:
            Unsigned TransactionRequest
        """
        if fees is None:
            fees = resolve_fees(self.fee_policy())
        if nonce is None:
            nonce = self.account_nonce(self.address)

        return tx_codec.build_transaction(
            chain_id=self.chain_id,
            nonce=nonce,
            fees=fees,
            destination=destination,
            gas_limit=gas_limit,
            value=value,
            data=data,
            authorization_list=authorization_list,
        )

    def send_transaction(self, request: TransactionRequest) -> str:
        """
        Sign a request as the sponsor and submit it.

        Returns:
            Transaction hash as 0x-prefixed hex

        Raises:
            StaleNonceError: If the node rejects the sponsor nonce
            TransactionError: If signing or submission fails otherwise
        """
        signed = tx_codec.sign_transaction(request, self.signer)

        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw)
        except (Web3Exception, ValueError) as e:
            message = str(e)
            self.logger.error(f"Failed to send transaction: {message}")
            if any(marker in message.lower() for marker in _NONCE_REJECTIONS):
                raise StaleNonceError(
                    f"Node rejected nonce {request.nonce}: {message}", nonce=request.nonce
                ) from e
            raise TransactionError(f"Failed to send transaction: {message}") from e

        tx_hash_hex = tx_hash if isinstance(tx_hash, str) else '0x' + bytes(tx_hash).hex()
        self.logger.info(f"Transaction sent: {tx_hash_hex}")
        return tx_hash_hex

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = RECEIPT_TIMEOUT_SECONDS,
        poll_interval: float = 0.1
    ) -> TxReceipt:
        """
        Wait for a transaction to be mined.

        Raises:
            TransactionError: If no receipt arrives within ``timeout``
        """
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=timeout,
                poll_latency=poll_interval
            )
        except TimeExhausted as e:
            raise TransactionError(f"Transaction {tx_hash} not mined within {timeout}s") from e
        return self._convert_receipt(receipt)

    def sponsor_transfer(
        self,
        authority_key: KeyOrSigner,
        recipient: str,
        amount: int,
        delegate: Optional[str] = None,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        wait_for_receipt: bool = True
    ) -> Union[TxReceipt, str]:
        """
        Relay a transfer signed by the authority, paid for by the sponsor.

        Args:
            authority_key: Authority private key or Signer (the token sender)
            recipient: Transfer recipient
            amount: Amount to transfer
            delegate: If set, attach an authorization delegating the
                authority's account to this contract. The call itself
                always goes to the Sponsor contract.
            gas_limit: Gas limit
            wait_for_receipt: Whether to wait for the transaction receipt

        Returns:
            TxReceipt if waiting, otherwise the transaction hash

        Raises:
            NetworkError: On a chain ID or EIP-712 domain mismatch
            StaleNonceError: If a nonce went stale between read and submit
            TransactionError: If submission fails
        """
        self.assert_chain_id()
        chain_id = self.chain_id
        sender = (
            authority_key.address if hasattr(authority_key, "sign_hash")
            else derive_address(authority_key)
        )

        transfer = SponsoredTransfer(
            sender=sender,
            recipient=recipient,
            amount=amount,
            nonce=self.relay_nonce(sender),
        )
        signature = sign_sponsored_transfer(self.check_domain(), transfer, authority_key)
        data = self.encode_sponsored_transfer(transfer, signature)

        authorizations = []
        if delegate is not None:
            authorization = build_authorization(chain_id, delegate, self.account_nonce(sender))
            authorizations.append(sign_authorization(authorization, authority_key))

        self.logger.debug(
            f"Relaying transfer sender={sender} recipient={to_checksum_address(recipient)} "
            f"amount={amount} nonce={transfer.nonce} delegated={delegate is not None}"
        )
        request = self.build_transaction(
            destination=self.sponsor_contract,
            data=data,
            authorization_list=authorizations,
            gas_limit=gas_limit,
        )
        tx_hash = self.send_transaction(request)

        if not wait_for_receipt:
            return tx_hash
        return self.wait_for_receipt(tx_hash)

    def _convert_receipt(self, web3_receipt: Web3TxReceipt) -> TxReceipt:
        """
        Convert Web3 receipt to our TxReceipt model

        Args:
            web3_receipt: The Web3 transaction receipt

        Returns:
            Our TxReceipt model
        """
        receipt_dict = dict(web3_receipt)

        for key, value in list(receipt_dict.items()):
            if isinstance(value, bytes):
                receipt_dict[key] = '0x' + value.hex()

        return TxReceipt.model_validate(receipt_dict)
