"""
Pytest fixtures for the setcode SDK tests.
"""
import pytest
from unittest.mock import MagicMock

from web3 import Web3
from web3.providers.rpc import HTTPProvider

from setcode_sdk._rate_limited_log import reset_rate_limits
from setcode_sdk.authorization import build_authorization, sign_authorization
from setcode_sdk.config import NetworkConfig
from setcode_sdk.fees import ResolvedFees
from setcode_sdk.signer import LocalSigner
from setcode_sdk.transaction import build_transaction
from setcode_sdk.typed_data import domain_separator, sponsor_domain
from tests.test_helpers import (
    TEST_AUTHORITY_KEY,
    TEST_CHAIN_ID,
    TEST_DELEGATE,
    TEST_PRIV_KEY,
    TEST_RECIPIENT,
    TEST_SPONSOR_CONTRACT,
)


@pytest.fixture(autouse=True)
def _patch_http_provider(monkeypatch):
    """
    Stub every Web3 HTTP call so no DNS / network traffic is triggered.
    Works for all tests because it is autouse.
    """
    def _dummy(self, method, params=None, _=None):
        if method == "eth_chainId":
            return {"jsonrpc": "2.0", "id": 1, "result": hex(TEST_CHAIN_ID)}
        return {"jsonrpc": "2.0", "id": 1, "result": "0x0"}

    monkeypatch.setattr(HTTPProvider, "make_request", _dummy, raising=True)


@pytest.fixture(autouse=True)
def _reset_module_state():
    """Clear caches that would leak between tests."""
    reset_rate_limits()
    NetworkConfig._networks_cache = None
    yield
    reset_rate_limits()
    NetworkConfig._networks_cache = None


@pytest.fixture
def sponsor_signer():
    return LocalSigner(TEST_PRIV_KEY)


@pytest.fixture
def authority_signer():
    return LocalSigner(TEST_AUTHORITY_KEY)


@pytest.fixture
def signed_authorization():
    """Authorization from the authority delegating to TEST_DELEGATE"""
    return sign_authorization(build_authorization(TEST_CHAIN_ID, TEST_DELEGATE, 0), TEST_AUTHORITY_KEY)


@pytest.fixture
def fees():
    return ResolvedFees(max_fee_per_gas=2_000_000_000, max_priority_fee_per_gas=1_000_000_000)


@pytest.fixture
def tx_request(fees, signed_authorization):
    """Set-code transaction calling the Sponsor contract with one authorization"""
    return build_transaction(
        chain_id=TEST_CHAIN_ID,
        nonce=7,
        fees=fees,
        destination=TEST_SPONSOR_CONTRACT,
        gas_limit=1_000_000,
        data="0xdeadbeef",
        authorization_list=[signed_authorization],
    )


@pytest.fixture
def mock_w3():
    """
    Mock Web3 instance modelling the node and the Sponsor contract.
    """
    mock = MagicMock(spec=Web3)
    eth = MagicMock()
    eth.chain_id = TEST_CHAIN_ID
    eth.gas_price = 3_000_000_000
    eth.max_priority_fee = 1_000_000_000
    eth.get_block = MagicMock(return_value={"number": 100, "baseFeePerGas": 5_000_000_000})
    eth.get_transaction_count = MagicMock(return_value=12)
    eth.send_raw_transaction = MagicMock(return_value=bytes.fromhex("ab" * 32))

    def wait_for_receipt(tx_hash, **kwargs):
        return {
            "transactionHash": bytes.fromhex(tx_hash[2:]) if isinstance(tx_hash, str) else tx_hash,
            "blockNumber": 12345,
            "blockHash": bytes.fromhex("abcdef1234567890" * 4),
            "status": 1,
            "gasUsed": 85000,
            "from": "0xC5bd15E3CeE2Ae1c2bA36DA14ef0C1b2e4Da0B8C",
            "to": TEST_SPONSOR_CONTRACT,
            "logs": [],
        }

    eth.wait_for_transaction_receipt = MagicMock(side_effect=wait_for_receipt)

    contract = MagicMock()
    contract.functions.nonces.return_value.call.return_value = 3
    contract.functions.gasSpent.return_value.call.return_value = 21000
    contract.functions.DOMAIN_SEPARATOR.return_value.call.return_value = domain_separator(
        sponsor_domain(TEST_CHAIN_ID, TEST_SPONSOR_CONTRACT)
    )
    eth.contract = MagicMock(return_value=contract)

    mock.eth = eth
    return mock
