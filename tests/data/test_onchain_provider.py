"""Tests for OnChainDataProvider unit conversions and mocked RPC reads."""

from __future__ import annotations

from unittest.mock import MagicMock, PropertyMock, patch

import pytest

from reservecore.data.constants import DAI, MAINNET_CHAIN_ID, USDC, WETH
from reservecore.data.contracts import ASSET_ADDRESSES
from reservecore.data.interfaces import ReserveDataProvider, ReserveParams, ReserveSnapshot
from reservecore.data.onchain_provider import (
    OnChainDataProvider,
    _normalize_amount,
    _reserve_factor_from_configuration,
    _TTLCache,
)
from reservecore.data.provider_factory import check_assets, create_provider, resolve_rpc_url
from reservecore.data.static_params import StaticDataProvider
from reservecore.errors import ReserveNotFound
from reservecore.math.wad_ray import RAY, WAD, to_ray


# ======================================================================
# 1. Unit conversion tests
# ======================================================================


class TestUnitConversions:
    """Pure math, no mocking required."""

    def test_reserve_factor_from_configuration(self):
        # ltv=7500, threshold=8000, bonus=10500, decimals=18 ... reserve factor=1000
        configuration = 7500 | (8000 << 16) | (10_500 << 32) | (18 << 48) | (1_000 << 64)
        assert _reserve_factor_from_configuration(configuration) == 1_000

    def test_reserve_factor_ignores_higher_bits(self):
        assert _reserve_factor_from_configuration((1 << 80) | (2_000 << 64)) == 2_000

    def test_normalize_six_decimals(self):
        assert _normalize_amount(1_000 * 10**6, 6) == 1_000 * WAD

    def test_normalize_eighteen_decimals(self):
        assert _normalize_amount(5 * WAD, 18) == 5 * WAD

    def test_normalize_more_decimals(self):
        assert _normalize_amount(10**24, 24) == WAD


# ======================================================================
# 2. TTL cache tests
# ======================================================================


class TestTTLCache:
    def test_set_and_get(self):
        cache = _TTLCache(ttl=60.0)
        cache.set("key", "value")
        assert cache.get("key") == "value"

    def test_miss_returns_none(self):
        cache = _TTLCache(ttl=60.0)
        assert cache.get("missing") is None

    def test_expired_entry(self):
        cache = _TTLCache(ttl=-1.0)  # Always expired
        cache.set("key", "value")
        assert cache.get("key") is None

    def test_clear(self):
        cache = _TTLCache(ttl=60.0)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert cache.get("a") is None
        assert cache.get("b") is None


# ======================================================================
# 3. Mock-based integration tests
# ======================================================================


def _make_provider(**kwargs) -> OnChainDataProvider:
    """Create an OnChainDataProvider whose Web3 instance is a mock."""
    mock_w3 = MagicMock()
    mock_w3.is_connected.return_value = True
    mock_w3.to_checksum_address = lambda addr: addr

    def _make_contract(address, abi):
        contract = MagicMock()
        contract.address = address
        return contract

    mock_w3.eth.contract = MagicMock(side_effect=_make_contract)

    with patch("web3.Web3") as web3_cls:
        web3_cls.return_value = mock_w3
        provider = OnChainDataProvider(rpc_url="http://localhost:8545", **kwargs)

    return provider


def _reserve_data(available: int, stable: int, variable: int) -> tuple:
    return (
        available,
        stable,
        variable,
        to_ray("0.02"),  # liquidityRate
        to_ray("0.03"),  # variableBorrowRate
        to_ray("0.05"),  # stableBorrowRate
        to_ray("0.06"),  # averageStableBorrowRate
        RAY + RAY // 10,  # liquidityIndex
        RAY + RAY // 5,  # variableBorrowIndex
        1_700_000_000,  # lastUpdateTimestamp
    )


class TestOnChainProviderMocked:
    """Full integration flow with mocked Web3."""

    def test_get_reserve_snapshot(self):
        provider = _make_provider()

        functions = provider._data_provider.functions
        functions.getReserveConfigurationData.return_value.call.return_value = (
            6, 8000, 8500, 10_500, 1_000, True, True, True, True, False,
        )
        functions.getReserveData.return_value.call.return_value = _reserve_data(
            1_000 * 10**6, 100 * 10**6, 400 * 10**6
        )

        snapshot = provider.get_reserve_snapshot(USDC)
        assert isinstance(snapshot, ReserveSnapshot)
        assert snapshot.available_liquidity == 1_000 * WAD
        assert snapshot.total_stable_debt == 100 * WAD
        assert snapshot.total_variable_debt == 400 * WAD
        assert snapshot.variable_borrow_rate == to_ray("0.03")
        assert snapshot.liquidity_index == RAY + RAY // 10
        assert snapshot.last_update_timestamp == 1_700_000_000

    def test_get_reserve_params(self):
        provider = _make_provider()

        strategy = MagicMock()
        strategy.functions.OPTIMAL_UTILIZATION_RATE.return_value.call.return_value = to_ray("0.8")
        strategy.functions.baseVariableBorrowRate.return_value.call.return_value = 0
        strategy.functions.variableRateSlope1.return_value.call.return_value = to_ray("0.04")
        strategy.functions.variableRateSlope2.return_value.call.return_value = to_ray("0.75")
        strategy.functions.stableRateSlope1.return_value.call.return_value = to_ray("0.02")
        strategy.functions.stableRateSlope2.return_value.call.return_value = to_ray("0.75")
        provider._get_rate_strategy_contract = MagicMock(return_value=strategy)
        provider._lending_pool.functions.getReserveData.return_value.call.return_value = (
            1_000 << 64,
        )

        params = provider.get_reserve_params(DAI)
        assert isinstance(params, ReserveParams)
        assert params.optimal_utilization == to_ray("0.8")
        assert params.variable_rate_slope1 == to_ray("0.04")
        assert params.stable_rate_slope2 == to_ray("0.75")
        assert params.reserve_factor == 1_000

    def test_rate_strategy_contract_is_resolved_once(self):
        provider = _make_provider()

        strategy_address = "0x" + "ab" * 20
        reserve = [0] * 12
        reserve[10] = strategy_address
        call_mock = provider._lending_pool.functions.getReserveData.return_value.call
        call_mock.return_value = reserve

        first = provider._get_rate_strategy_contract(WETH)
        second = provider._get_rate_strategy_contract(WETH)
        assert first is second
        assert first.address == strategy_address
        assert call_mock.call_count == 1

    def test_get_market_borrow_rate(self):
        provider = _make_provider()

        call_mock = provider._rate_oracle.functions.getMarketBorrowRate.return_value.call
        call_mock.return_value = to_ray("0.035")

        assert provider.get_market_borrow_rate(DAI) == to_ray("0.035")
        provider._rate_oracle.functions.getMarketBorrowRate.assert_called_with(
            ASSET_ADDRESSES[DAI]
        )

    def test_fallback_on_rpc_failure(self):
        fallback = StaticDataProvider()
        provider = _make_provider(fallback=fallback)

        provider._data_provider.functions.getReserveConfigurationData.return_value.call.side_effect = Exception("RPC error")

        snapshot = provider.get_reserve_snapshot(WETH)
        assert snapshot == fallback.get_reserve_snapshot(WETH)

    def test_failure_without_fallback(self):
        provider = _make_provider()

        provider._rate_oracle.functions.getMarketBorrowRate.return_value.call.side_effect = Exception("RPC error")

        with pytest.raises(RuntimeError):
            provider.get_market_borrow_rate(DAI)

    def test_unknown_asset_uses_fallback_path(self):
        provider = _make_provider()
        with pytest.raises(RuntimeError):
            provider.get_market_borrow_rate("XYZ")

    def test_caching(self):
        provider = _make_provider()

        call_mock = provider._rate_oracle.functions.getMarketBorrowRate.return_value.call
        call_mock.return_value = to_ray("0.035")

        provider.get_market_borrow_rate(DAI)
        assert call_mock.call_count == 1

        provider.get_market_borrow_rate(DAI)
        assert call_mock.call_count == 1

    def test_refresh_clears_cache(self):
        provider = _make_provider()

        call_mock = provider._rate_oracle.functions.getMarketBorrowRate.return_value.call
        call_mock.return_value = to_ray("0.035")

        provider.get_market_borrow_rate(DAI)
        assert call_mock.call_count == 1

        provider.refresh()
        provider.get_market_borrow_rate(DAI)
        assert call_mock.call_count == 2

    def test_is_connected(self):
        provider = _make_provider()
        provider._w3.is_connected.return_value = True
        assert provider.is_connected is True

        provider._w3.is_connected.return_value = False
        assert provider.is_connected is False

    def test_is_connected_swallows_errors(self):
        provider = _make_provider()
        provider._w3.is_connected.side_effect = Exception("connection refused")
        assert provider.is_connected is False

    def test_list_assets(self):
        provider = _make_provider()
        assert provider.list_assets() == [WETH, USDC, DAI]


# ======================================================================
# 4. Interface conformance tests
# ======================================================================


class TestInterfaceConformance:
    def test_static_is_reserve_data_provider(self):
        assert isinstance(StaticDataProvider(), ReserveDataProvider)

    def test_onchain_is_reserve_data_provider(self):
        provider = _make_provider()
        assert isinstance(provider, ReserveDataProvider)


# ======================================================================
# 5. Provider factory tests
# ======================================================================


class TestProviderFactory:
    def test_static_by_default(self):
        provider = create_provider(use_onchain=False)
        assert isinstance(provider, StaticDataProvider)

    @patch.dict("os.environ", {}, clear=True)
    def test_onchain_without_url_falls_back(self):
        provider = create_provider(use_onchain=True, rpc_url=None)
        assert isinstance(provider, StaticDataProvider)

    def test_onchain_with_url(self):
        with patch("web3.Web3") as mock_web3:
            mock_web3.return_value.eth.chain_id = MAINNET_CHAIN_ID
            provider = create_provider(use_onchain=True, rpc_url="http://localhost:8545")
        assert isinstance(provider, OnChainDataProvider)

    @patch.dict("os.environ", {"ETH_RPC_URL": "http://localhost:8545"})
    def test_url_from_environment(self):
        with patch("web3.Web3") as mock_web3:
            mock_web3.return_value.eth.chain_id = MAINNET_CHAIN_ID
            provider = create_provider(use_onchain=True)
        assert isinstance(provider, OnChainDataProvider)

    @patch.dict("os.environ", {"ETH_RPC_URL": ""})
    def test_empty_env_var_falls_back(self):
        provider = create_provider(use_onchain=True)
        assert isinstance(provider, StaticDataProvider)

    def test_construction_failure_falls_back(self):
        with patch("web3.Web3", side_effect=RuntimeError("bad provider")):
            provider = create_provider(use_onchain=True, rpc_url="http://localhost:8545")
        assert isinstance(provider, StaticDataProvider)

    def test_wrong_chain_falls_back(self):
        with patch("web3.Web3") as mock_web3:
            mock_web3.return_value.eth.chain_id = 137
            provider = create_provider(use_onchain=True, rpc_url="http://localhost:8545")
        assert isinstance(provider, StaticDataProvider)

    def test_unreachable_chain_id_keeps_onchain(self):
        with patch("web3.Web3") as mock_web3:
            type(mock_web3.return_value.eth).chain_id = PropertyMock(
                side_effect=ConnectionError("offline")
            )
            provider = create_provider(use_onchain=True, rpc_url="http://localhost:8545")
            assert isinstance(provider, OnChainDataProvider)
            assert provider.chain_id is None

    def test_known_assets_accepted(self):
        provider = create_provider(assets=[WETH, DAI])
        assert isinstance(provider, StaticDataProvider)

    def test_unknown_assets_rejected(self):
        with pytest.raises(ReserveNotFound, match="WBTC"):
            create_provider(assets=[WETH, "WBTC"])

    def test_check_assets_preserves_order(self):
        assert check_assets(StaticDataProvider(), [USDC, WETH]) == [USDC, WETH]

    @patch.dict("os.environ", {"ETH_RPC_URL": "http://env:8545"})
    def test_explicit_url_wins(self):
        assert resolve_rpc_url("http://explicit:8545") == "http://explicit:8545"
        assert resolve_rpc_url() == "http://env:8545"
