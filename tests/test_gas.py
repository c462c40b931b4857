import json
from unittest.mock import MagicMock

import pytest
from web3.exceptions import ContractLogicError, Web3RPCError

from univ3_positions.core.exceptions import ConfigError
from univ3_positions.utils.gas import GWEI, GasConfig, GasManager, GasPriceTooHighError


@pytest.fixture
def gas_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return GasConfig()


def _manager(base_fee_gwei):
    manager = MagicMock()
    manager.w3.eth.get_block.return_value = {"baseFeePerGas": int(base_fee_gwei * GWEI)}
    return manager


class TestGasConfig:
    def test_defaults(self, gas_config):
        assert gas_config.max_fee_per_gas_gwei is None
        assert gas_config.priority_fee_gwei == 1.5
        assert gas_config.gas_limit("mint") == 500000
        assert gas_config.gas_limit("approve") == 65000
        assert gas_config.gas_limit("unknown") == 500000

    def test_file_in_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "gas_config.json").write_text(json.dumps({
            "maxFeePerGas": 30, "gasLimit": {"collect": 99000, "default": 400000},
        }))
        config = GasConfig()
        assert config.max_fee_per_gas_gwei == 30
        assert config.gas_limit("collect") == 99000
        assert config.gas_limit("mint") == 400000

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "gas.json"
        path.write_text("{")
        with pytest.raises(ConfigError):
            GasConfig(path)


class TestGasManager:
    def test_uncapped_fee(self, gas_config):
        params = GasManager(_manager(10), config=gas_config).fee_params()
        assert params["maxPriorityFeePerGas"] == int(1.5 * GWEI)
        assert params["maxFeePerGas"] == int((10 * GWEI + int(1.5 * GWEI)) * 1.2)

    def test_cap_applied(self, gas_config):
        params = GasManager(_manager(10), max_fee_per_gas_gwei=50, config=gas_config).fee_params()
        assert params["maxFeePerGas"] == 50 * GWEI

    def test_cap_below_base_fee(self, gas_config):
        gas = GasManager(_manager(80), max_fee_per_gas_gwei=50, config=gas_config)
        with pytest.raises(GasPriceTooHighError) as info:
            gas.fee_params()
        assert info.value.kind == "GasPriceTooHigh"

    def test_tip_never_exceeds_cap(self, gas_config):
        params = GasManager(_manager(0.5), max_fee_per_gas_gwei=1, priority_fee_gwei=3,
                            config=gas_config).fee_params()
        assert params["maxPriorityFeePerGas"] == params["maxFeePerGas"] == GWEI

    def test_estimate_falls_back_to_limit(self, gas_config):
        func = MagicMock()
        func.estimate_gas.side_effect = ValueError("estimation unsupported")
        gas = GasManager(_manager(1), config=gas_config)
        assert gas.estimate_gas(func, "0xabc", "decreaseLiquidity") == 200000

    def test_estimate_node_error_falls_back_to_limit(self, gas_config):
        func = MagicMock()
        func.estimate_gas.side_effect = Web3RPCError("method not supported")
        gas = GasManager(_manager(1), config=gas_config)
        assert gas.estimate_gas(func, "0xabc", "collect") == 150000

    def test_estimate_revert_propagates(self, gas_config):
        func = MagicMock()
        func.estimate_gas.side_effect = ContractLogicError("execution reverted: STF")
        gas = GasManager(_manager(1), config=gas_config)
        with pytest.raises(ContractLogicError):
            gas.estimate_gas(func, "0xabc", "mint")
