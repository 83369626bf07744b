"""
Shared constants and factories for the setcode SDK tests.
"""
from typing import Optional

from setcode_sdk.client import SponsorClient

# Test constants used throughout tests
TEST_RPC_URL = "https://rpc.example.com"
TEST_CHAIN_ID = 51178
TEST_SPONSOR_CONTRACT = "0x1234567890123456789012345678901234567890"
TEST_DELEGATE = "0x5ce9454909639d2d17a3f753ce7d93fa0b9ab12e"
TEST_RECIPIENT = "0x2345678901234567890123456789012345678901"
# Sponsor (pays gas)
TEST_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
# Authority (delegates its account)
TEST_AUTHORITY_KEY = "0x" + "aa" * 32


def create_test_client(
    rpc_url: str = TEST_RPC_URL,
    sponsor_key: Optional[str] = TEST_PRIV_KEY,
    signer=None,
    sponsor_contract: Optional[str] = TEST_SPONSOR_CONTRACT,
    expected_chain_id: Optional[int] = TEST_CHAIN_ID,
    **kwargs
) -> SponsorClient:
    """
    Create a client instance for testing with consistent defaults.

    Callers patch ``setcode_sdk.client.Web3`` (or replace ``client.w3``)
    before talking to the node.
    """
    return SponsorClient(
        rpc_url=rpc_url,
        sponsor_contract=sponsor_contract,
        sponsor_key=sponsor_key,
        signer=signer,
        expected_chain_id=expected_chain_id,
        **kwargs
    )
