"""EIP-1559 gas parameters with user-configurable limits"""

import json
import logging
from pathlib import Path

from web3.exceptions import ContractLogicError, Web3RPCError

from ..core.exceptions import ConfigError, NetworkError


logger = logging.getLogger(__name__)

GWEI = 10 ** 9


class GasPriceTooHighError(NetworkError):
    """Current base fee exceeds the configured maximum fee per gas"""
    kind = "GasPriceTooHigh"


class GasConfig:
    """Gas limits and fee caps from gas_config.json, or defaults"""

    DEFAULT_GAS_LIMITS = {
        "approve": 65000,
        "setApprovalForAll": 60000,
        "mint": 500000,
        "decreaseLiquidity": 200000,
        "collect": 150000,
        "default": 500000,
    }
    DEFAULT_PRIORITY_FEE_GWEI = 1.5

    def __init__(self, config_path=None):
        self._config = self._load_config(config_path)

    def _load_config(self, config_path=None):
        search_paths = [
            config_path,
            Path.cwd() / "gas_config.json",
            Path.home() / ".univ3-positions" / "gas_config.json",
        ]

        for path in search_paths:
            if path and Path(path).exists():
                try:
                    with open(path) as f:
                        return json.load(f)
                except json.JSONDecodeError as e:
                    raise ConfigError(f"Invalid JSON in {path}: {e}")

        return {
            "maxFeePerGas": None,
            "maxPriorityFeePerGas": self.DEFAULT_PRIORITY_FEE_GWEI,
            "gasLimit": dict(self.DEFAULT_GAS_LIMITS),
        }

    @property
    def max_fee_per_gas_gwei(self):
        """Cap on total fee per gas in Gwei (None = no cap)"""
        return self._config.get("maxFeePerGas")

    @property
    def priority_fee_gwei(self):
        return self._config.get("maxPriorityFeePerGas", self.DEFAULT_PRIORITY_FEE_GWEI)

    def gas_limit(self, operation):
        limits = self._config.get("gasLimit", self.DEFAULT_GAS_LIMITS)
        return limits.get(operation, limits.get("default", self.DEFAULT_GAS_LIMITS["default"]))


class GasManager:
    """
    EIP-1559 fee selection.

    maxFeePerGas is either the configured cap (refused if below the current
    base fee) or (base fee + tip) * 1.2.
    """

    def __init__(self, manager, max_fee_per_gas_gwei=None, priority_fee_gwei=None, config=None):
        """
        Args:
            manager: Web3Manager instance
            max_fee_per_gas_gwei: Fee cap override in Gwei
            priority_fee_gwei: Tip override in Gwei
            config: GasConfig instance (loaded if None)
        """
        self.manager = manager
        self.config = config or GasConfig()
        self._max_fee_override = max_fee_per_gas_gwei
        self._priority_override = priority_fee_gwei

    @property
    def max_fee_per_gas_gwei(self):
        if self._max_fee_override is not None:
            return self._max_fee_override
        return self.config.max_fee_per_gas_gwei

    @property
    def priority_fee_gwei(self):
        if self._priority_override is not None:
            return self._priority_override
        return self.config.priority_fee_gwei

    def base_fee(self):
        """Base fee of the latest block in Wei"""
        latest_block = self.manager.w3.eth.get_block("latest")
        return latest_block.get("baseFeePerGas", 0)

    def fee_params(self):
        """
        Returns:
            Dict with maxFeePerGas and maxPriorityFeePerGas in Wei

        Raises:
            GasPriceTooHighError: base fee is above the configured cap
        """
        base_fee = self.base_fee()
        priority_fee = int(self.priority_fee_gwei * GWEI)

        if self.max_fee_per_gas_gwei is not None:
            max_fee = int(self.max_fee_per_gas_gwei * GWEI)
            if max_fee < base_fee:
                raise GasPriceTooHighError(
                    f"Current base fee ({base_fee / GWEI:.2f} Gwei) exceeds maxFeePerGas "
                    f"({self.max_fee_per_gas_gwei} Gwei)"
                )
        else:
            max_fee = int((base_fee + priority_fee) * 1.2)

        return {"maxFeePerGas": max_fee, "maxPriorityFeePerGas": min(priority_fee, max_fee)}

    def estimate_gas(self, contract_func, from_address, operation):
        """
        Estimate gas, falling back to the configured limit when the node
        cannot estimate. A revert during estimation is raised as is.
        """
        try:
            return contract_func.estimate_gas({"from": from_address})
        except ContractLogicError:
            raise
        except (Web3RPCError, ValueError) as e:
            fallback = self.config.gas_limit(operation)
            logger.warning("Gas estimate for %s failed (%s), using limit %s", operation, e, fallback)
            return fallback
