#!/usr/bin/env python3
"""
Example of relaying a user's transfer through the Sponsor contract.
"""
import os

from setcode_sdk import NetworkConfig, SponsorClient, LocalSigner


def main():
    """
    Demonstrate a sponsored transfer on the Sichang network.

    This example shows how to:
    1. Initialize the client from a network configuration
    2. Read the user's relay nonce and sponsored gas
    3. Relay a transfer with an EIP-7702 delegation, paid for by the sponsor
    4. Get a block explorer URL for the transaction
    """
    SPONSOR_KEY = os.environ.get("SPONSOR_PRIVATE_KEY")
    USER_KEY = os.environ.get("USER_PRIVATE_KEY")
    RECIPIENT = os.environ.get("RECIPIENT_ADDRESS")
    DELEGATE = os.environ.get("DELEGATE_ADDRESS")

    if not SPONSOR_KEY or not USER_KEY or not RECIPIENT:
        print("ERROR: SPONSOR_PRIVATE_KEY, USER_PRIVATE_KEY and RECIPIENT_ADDRESS are required")
        return

    print("Available networks:")
    for network_name in NetworkConfig.load_networks().keys():
        print(f"  - {network_name}")
    print()

    network = os.environ.get("NETWORK", "sichang")
    client = SponsorClient.from_network(network=network, sponsor_key=SPONSOR_KEY)
    client.assert_chain_id()

    user = LocalSigner(USER_KEY)
    print(f"Sponsor: {client.address}")
    print(f"User:    {user.address}")
    print(f"Relay nonce: {client.relay_nonce(user.address)}")

    receipt = client.sponsor_transfer(
        authority_key=user,
        recipient=RECIPIENT,
        amount=10**15,
        delegate=DELEGATE,
    )
    print(f"Status: {'success' if receipt.status == 1 else 'reverted'} (gas used: {receipt.gas_used})")
    print(f"New relay nonce: {client.relay_nonce(user.address)}")
    print(f"Gas sponsored so far: {client.gas_spent(user.address)}")

    explorer_url = NetworkConfig.get_explorer_tx_url(network, receipt.tx_hash)
    if explorer_url:
        print(f"Explorer: {explorer_url}")


if __name__ == "__main__":
    main()
