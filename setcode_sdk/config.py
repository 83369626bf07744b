"""
Network configuration for the setcode SDK.
"""
import json
import logging
import os
from importlib import resources
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 1_000_000
DEFAULT_GAS_PRICE_WEI = 10 * 10**9  # 10 gwei
RECEIPT_TIMEOUT_SECONDS = 120


class NetworkConfig:
    """
    Access to the bundled ``networks.json``.

    Each entry has ``chainId`` and ``rpc`` and may carry ``explorer`` and
    ``sponsorContract``. ``<NETWORK>_RPC_URL`` and
    ``<NETWORK>_SPONSOR_CONTRACT`` environment variables (network name
    upper-cased, dashes as underscores) take precedence over the file.
    """

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """Load and cache the network table."""
        if cls._networks_cache is not None:
            return cls._networks_cache

        text = resources.files("setcode_sdk").joinpath("networks.json").read_text(encoding="utf-8")
        cls._networks_cache = json.loads(text)
        logger.debug(f"Loaded {len(cls._networks_cache)} network definitions")
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get a network definition by name.

        Raises:
            ValueError: If the network is unknown
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network '{network}'. Available networks: {available}")
        return networks[network]

    @staticmethod
    def _env_key(network: str, suffix: str) -> str:
        return f"{network.upper().replace('-', '_')}_{suffix}"

    @classmethod
    def get_rpc_url(cls, network: str, override: Optional[str] = None) -> str:
        """
        Resolve the RPC URL: explicit override, then environment, then file.

        Raises:
            ValueError: If no RPC URL is configured anywhere
        """
        if override:
            return override
        env_url = os.environ.get(cls._env_key(network, "RPC_URL"))
        if env_url:
            return env_url
        rpc_url = cls.get_network(network).get("rpc")
        if not rpc_url:
            raise ValueError(
                f"No RPC URL configured for '{network}'. "
                f"Set {cls._env_key(network, 'RPC_URL')} or pass an override."
            )
        return rpc_url

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        return int(cls.get_network(network)["chainId"])

    @classmethod
    def get_sponsor_contract(cls, network: str) -> Optional[str]:
        """Relay contract address, if one is configured."""
        env_address = os.environ.get(cls._env_key(network, "SPONSOR_CONTRACT"))
        if env_address:
            return env_address
        return cls.get_network(network).get("sponsorContract")

    @classmethod
    def get_explorer_tx_url(cls, network: str, tx_hash: str) -> Optional[str]:
        explorer = cls.get_network(network).get("explorer")
        if not explorer:
            return None
        if not tx_hash.startswith("0x"):
            tx_hash = "0x" + tx_hash
        return f"{explorer.rstrip('/')}/tx/{tx_hash}"
