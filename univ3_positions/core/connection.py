"""Web3 connection management"""

import json
import logging
from pathlib import Path

from eth_account import Account
from web3 import Web3

from .exceptions import ConfigError, NetworkError


logger = logging.getLogger(__name__)

# Contract ABIs ship inside the package
ABIS_FILE = Path(__file__).parent.parent / "abis.json"


def load_abis():
    """Load packaged ABIs keyed by contract name"""
    if not ABIS_FILE.exists():
        raise ConfigError(f"ABIs not found: {ABIS_FILE}")
    with open(ABIS_FILE) as f:
        return json.load(f)


class Web3Manager:
    """Manages Web3 connection and signing account for one Config"""

    def __init__(self, config, require_signer=False, w3=None):
        """
        Args:
            config: Config instance
            require_signer: If True, loads the private key for signing transactions
            w3: Pre-built Web3 instance (skips provider setup)
        """
        self.config = config
        self._abis = load_abis()
        self.w3 = w3 if w3 is not None else self._setup_web3()

        self.account = None
        if require_signer:
            self._setup_account()

    def _setup_web3(self):
        """Setup Web3 connection with a client-side request timeout"""
        rpc_url = self.config.rpc_url
        if not rpc_url:
            raise ConfigError("RPC_URL not found in environment")

        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": self.config.rpc_timeout}))

        if not w3.is_connected():
            raise NetworkError(f"Failed to connect to {rpc_url}")

        chain_id = w3.eth.chain_id
        if chain_id != self.config.chain_id:
            raise ConfigError(
                f"RPC endpoint is on chain {chain_id}, config '{self.config.network}' expects {self.config.chain_id}"
            )
        logger.debug("Connected to %s (chain %s)", self.config.network, chain_id)
        return w3

    def _setup_account(self):
        """Setup signing account from private key"""
        private_key = self.config.private_key
        if not private_key:
            raise ConfigError("PRIVATE_KEY not found in environment or wallet.env")

        try:
            self.account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise ConfigError(f"PRIVATE_KEY is not a valid key: {e}")

    @property
    def address(self):
        """Get account address (from signer or PUBLIC_KEY for read-only use)"""
        if self.account:
            return self.account.address
        if self.config.public_key:
            return self.checksum(self.config.public_key)
        return None

    @property
    def chain_id(self):
        return self.config.chain_id

    def get_nonce(self, address=None):
        """Get transaction count (nonce)"""
        addr = address or self.address
        if not addr:
            raise ConfigError("No address configured (set PRIVATE_KEY or PUBLIC_KEY)")
        return self.w3.eth.get_transaction_count(addr)

    def get_abi(self, name):
        if name not in self._abis:
            raise ConfigError(f"ABI not found: {name}")
        return self._abis[name]

    def get_contract(self, address, abi_name):
        """Create contract instance"""
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=self.get_abi(abi_name),
        )

    def checksum(self, address):
        """Convert address to checksum format"""
        return Web3.to_checksum_address(address)
