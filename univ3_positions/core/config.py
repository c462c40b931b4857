"""Configuration loading and management"""

import os
import json
import dataclasses
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

from .exceptions import ConfigError, InvalidInputError
from .types import FeeTier, PoolReference, Token, to_decimal


DEFAULT_NETWORK = "sepolia"
DEFAULT_SLIPPAGE_TOLERANCE = Decimal("0.005")
DEFAULT_DEADLINE_MINUTES = 10
DEFAULT_RPC_TIMEOUT = 30
DEFAULT_RECEIPT_TIMEOUT = 300

# Packaged per-network defaults (not user-configurable)
NETWORKS_FILE = Path(__file__).parent.parent / "networks.json"
USER_CONFIG_NAME = "univ3.json"


@dataclass(frozen=True)
class Config:
    """
    Immutable settings for one network and one pool.

    Built once at process start by Config.load() and passed explicitly into
    the workflows. Tests construct it directly or derive variants with
    replace().
    """

    network: str
    chain_id: int
    nfpm_address: str
    pool_address: str
    base_token: Token
    quote_token: Token
    fee_tier: FeeTier
    slippage_tolerance: Decimal = DEFAULT_SLIPPAGE_TOLERANCE
    deadline_minutes: int = DEFAULT_DEADLINE_MINUTES
    rpc_url: str = None
    private_key: str = field(default=None, repr=False)
    public_key: str = None
    rpc_timeout: int = DEFAULT_RPC_TIMEOUT
    receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT

    def __post_init__(self):
        if self.base_token == self.quote_token:
            raise ConfigError("base_token and quote_token must be different tokens")
        if not (Decimal(0) <= self.slippage_tolerance < Decimal(1)):
            raise ConfigError(f"slippage_tolerance must be in [0, 1), got {self.slippage_tolerance}")
        if self.deadline_minutes <= 0:
            raise ConfigError(f"deadline_minutes must be positive, got {self.deadline_minutes}")

    @property
    def pool(self):
        """The configured pool as an ordered PoolReference"""
        return PoolReference.for_pair(self.base_token, self.quote_token, self.fee_tier, self.pool_address)

    def replace(self, **changes):
        """Return a copy with some fields changed"""
        return dataclasses.replace(self, **changes)

    @classmethod
    def load(cls, network=None, config_dir=None):
        """
        Load configuration from packaged defaults, an optional user file and
        the environment (.env and wallet.env are read first).

        Args:
            network: Network name (default: $UNIV3_NETWORK or "sepolia")
            config_dir: Directory holding univ3.json (searched if None)

        Returns:
            Config instance
        """
        load_dotenv()
        load_dotenv("wallet.env")

        network = (network or os.getenv("UNIV3_NETWORK") or DEFAULT_NETWORK).lower()
        settings = _load_network_defaults(network)

        user_dir = Path(config_dir) if config_dir else _find_config_dir()
        if user_dir:
            settings.update(_load_user_overrides(user_dir, network))

        try:
            chain_id = int(settings["chain_id"])
            return cls(
                network=network,
                chain_id=chain_id,
                nfpm_address=settings["nfpm"],
                pool_address=settings["pool"],
                base_token=Token.from_dict(settings["base_token"], chain_id),
                quote_token=Token.from_dict(settings["quote_token"], chain_id),
                fee_tier=FeeTier.from_value(settings["fee_tier"]),
                slippage_tolerance=to_decimal(
                    os.getenv("SLIPPAGE_TOLERANCE", settings.get("slippage_tolerance", DEFAULT_SLIPPAGE_TOLERANCE)),
                    "slippage_tolerance",
                ),
                deadline_minutes=int(os.getenv("DEADLINE_MINUTES", settings.get("deadline_minutes", DEFAULT_DEADLINE_MINUTES))),
                rpc_url=os.getenv("RPC_URL") or settings.get("rpc_url"),
                private_key=os.getenv("PRIVATE_KEY"),
                public_key=os.getenv("PUBLIC_KEY"),
                rpc_timeout=int(os.getenv("RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT)),
                receipt_timeout=int(os.getenv("RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT)),
            )
        except KeyError as e:
            raise ConfigError(f"Missing config key for network '{network}': {e}")
        except InvalidInputError as e:
            raise ConfigError(f"Invalid config for network '{network}': {e.message}")
        except ValueError as e:
            raise ConfigError(f"Invalid config for network '{network}': {e}")


def _find_config_dir():
    """Find user config directory"""
    # Check environment variable first
    env_path = os.getenv("UNIV3_CONFIG_DIR")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    locations = [
        Path.cwd() / "config",
        Path.home() / ".univ3-positions" / "config",
    ]

    for path in locations:
        if path.exists():
            return path

    return None


def _load_network_defaults(network):
    """Load packaged defaults for a network"""
    if not NETWORKS_FILE.exists():
        raise ConfigError(f"Network defaults not found: {NETWORKS_FILE}")
    with open(NETWORKS_FILE) as f:
        networks = json.load(f)

    if network not in networks:
        raise ConfigError(f"Unknown network: {network}. Valid: {sorted(networks)}")
    return dict(networks[network])


def _load_user_overrides(config_dir, network):
    """
    Load univ3.json overrides. The file may either hold keys for a single
    network at top level or be keyed by network name.
    """
    path = Path(config_dir) / USER_CONFIG_NAME
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}")

    if network in data and isinstance(data[network], dict):
        return data[network]
    return {k: v for k, v in data.items() if not isinstance(v, dict) or k in ("base_token", "quote_token")}
