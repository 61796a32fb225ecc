"""On-chain data provider fetching live Aave V2 reserve data via web3.py."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from reservecore.data.contracts import (
    AAVE_V2_LENDING_POOL,
    AAVE_V2_LENDING_RATE_ORACLE,
    AAVE_V2_PROTOCOL_DATA_PROVIDER,
    ASSET_ADDRESSES,
    LENDING_POOL_ABI,
    LENDING_RATE_ORACLE_ABI,
    PROTOCOL_DATA_PROVIDER_ABI,
    RATE_STRATEGY_ABI,
)
from reservecore.data.interfaces import (
    ReserveDataProvider,
    ReserveParams,
    ReserveSnapshot,
)

logger = logging.getLogger(__name__)

# Bits 64-79 of the reserve configuration bitmap hold the reserve factor.
_RESERVE_FACTOR_SHIFT = 64
_RESERVE_FACTOR_MASK = 0xFFFF


# ---------------------------------------------------------------------------
# TTL cache
# ---------------------------------------------------------------------------

class _TTLCache:
    """Simple dict-based cache with per-entry TTL expiry."""

    def __init__(self, ttl: float) -> None:
        self._ttl = ttl
        self._store: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        ts, value = entry
        if time.monotonic() - ts > self._ttl:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._store[key] = (time.monotonic(), value)

    def clear(self) -> None:
        self._store.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _reserve_factor_from_configuration(configuration: int) -> int:
    """Extract the reserve factor (basis points) from a configuration bitmap."""
    return (configuration >> _RESERVE_FACTOR_SHIFT) & _RESERVE_FACTOR_MASK


def _normalize_amount(raw: int, decimals: int) -> int:
    """Rescale a token amount with ``decimals`` places to wad."""
    if decimals == 18:
        return raw
    if decimals < 18:
        return raw * 10 ** (18 - decimals)
    return raw // 10 ** (decimals - 18)


# ---------------------------------------------------------------------------
# OnChainDataProvider
# ---------------------------------------------------------------------------

class OnChainDataProvider(ReserveDataProvider):
    """Live on-chain data provider for Aave V2 via web3.py.

    Parameters
    ----------
    rpc_url : str
        Ethereum JSON-RPC endpoint URL.
    cache_ttl : float
        Seconds before a cached value expires (default 60).
    fallback : ReserveDataProvider | None
        Optional fallback provider used when an RPC call fails.
    """

    def __init__(
        self,
        rpc_url: str,
        cache_ttl: float = 60.0,
        fallback: ReserveDataProvider | None = None,
    ) -> None:
        from web3 import Web3

        self._w3 = Web3(Web3.HTTPProvider(rpc_url))
        self._cache = _TTLCache(cache_ttl)
        self._fallback = fallback

        # Pre-build main contract objects (no RPC calls here)
        self._data_provider = self._w3.eth.contract(
            address=self._w3.to_checksum_address(AAVE_V2_PROTOCOL_DATA_PROVIDER),
            abi=PROTOCOL_DATA_PROVIDER_ABI,
        )
        self._lending_pool = self._w3.eth.contract(
            address=self._w3.to_checksum_address(AAVE_V2_LENDING_POOL),
            abi=LENDING_POOL_ABI,
        )
        self._rate_oracle = self._w3.eth.contract(
            address=self._w3.to_checksum_address(AAVE_V2_LENDING_RATE_ORACLE),
            abi=LENDING_RATE_ORACLE_ABI,
        )

        # Lazily resolved per-asset rate strategy contracts
        self._rate_strategy_contracts: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_address(self, asset: str) -> str:
        """Map asset symbol to checksummed on-chain address."""
        raw = ASSET_ADDRESSES.get(asset)
        if raw is None:
            raise ValueError(f"Unknown asset: {asset}")
        return self._w3.to_checksum_address(raw)

    def _get_rate_strategy_contract(self, asset: str) -> Any:
        """Lazily fetch and cache the rate strategy contract for *asset*."""
        if asset in self._rate_strategy_contracts:
            return self._rate_strategy_contracts[asset]

        reserve = self._lending_pool.functions.getReserveData(
            self._resolve_address(asset),
        ).call()
        contract = self._w3.eth.contract(
            address=self._w3.to_checksum_address(reserve[10]),
            abi=RATE_STRATEGY_ABI,
        )
        self._rate_strategy_contracts[asset] = contract
        return contract

    def _call_with_fallback(
        self,
        cache_key: str,
        fetcher: Callable[[], Any],
        fallback_method: Callable[..., Any] | None,
        *fallback_args: Any,
    ) -> Any:
        """Cache → RPC → fallback pipeline."""
        # 1. Cache hit
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        # 2. RPC call
        try:
            value = fetcher()
            self._cache.set(cache_key, value)
            return value
        except Exception:
            logger.warning(
                "RPC call failed for key=%s, using fallback", cache_key, exc_info=True
            )

        # 3. Fallback
        if fallback_method is not None:
            return fallback_method(*fallback_args)

        raise RuntimeError(f"RPC call failed and no fallback available for {cache_key}")

    def _fetch_rate_params(self, asset: str) -> ReserveParams:
        strategy = self._get_rate_strategy_contract(asset)
        reserve = self._lending_pool.functions.getReserveData(
            self._resolve_address(asset),
        ).call()

        return ReserveParams(
            optimal_utilization=strategy.functions.OPTIMAL_UTILIZATION_RATE().call(),
            base_variable_borrow_rate=strategy.functions.baseVariableBorrowRate().call(),
            variable_rate_slope1=strategy.functions.variableRateSlope1().call(),
            variable_rate_slope2=strategy.functions.variableRateSlope2().call(),
            stable_rate_slope1=strategy.functions.stableRateSlope1().call(),
            stable_rate_slope2=strategy.functions.stableRateSlope2().call(),
            reserve_factor=_reserve_factor_from_configuration(reserve[0]),
        )

    def _fetch_snapshot(self, asset: str) -> ReserveSnapshot:
        asset_addr = self._resolve_address(asset)
        decimals = self._data_provider.functions.getReserveConfigurationData(
            asset_addr,
        ).call()[0]
        data = self._data_provider.functions.getReserveData(asset_addr).call()
        return ReserveSnapshot(
            available_liquidity=_normalize_amount(data[0], decimals),
            total_stable_debt=_normalize_amount(data[1], decimals),
            total_variable_debt=_normalize_amount(data[2], decimals),
            liquidity_rate=data[3],
            variable_borrow_rate=data[4],
            stable_borrow_rate=data[5],
            average_stable_borrow_rate=data[6],
            liquidity_index=data[7],
            variable_borrow_index=data[8],
            last_update_timestamp=data[9],
        )

    # ------------------------------------------------------------------
    # ReserveDataProvider interface
    # ------------------------------------------------------------------

    def get_reserve_params(self, asset: str) -> ReserveParams:
        fb = self._fallback.get_reserve_params if self._fallback else None
        return self._call_with_fallback(
            f"reserve_params:{asset}", lambda: self._fetch_rate_params(asset), fb, asset
        )

    def get_reserve_snapshot(self, asset: str) -> ReserveSnapshot:
        fb = self._fallback.get_reserve_snapshot if self._fallback else None
        return self._call_with_fallback(
            f"reserve_snapshot:{asset}", lambda: self._fetch_snapshot(asset), fb, asset
        )

    def get_market_borrow_rate(self, asset: str) -> int:
        def _fetch() -> int:
            return self._rate_oracle.functions.getMarketBorrowRate(
                self._resolve_address(asset),
            ).call()

        fb = self._fallback.get_market_borrow_rate if self._fallback else None
        return self._call_with_fallback(f"market_rate:{asset}", _fetch, fb, asset)

    def list_assets(self) -> list[str]:
        return list(ASSET_ADDRESSES)

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Invalidate all cached values, forcing fresh RPC calls."""
        self._cache.clear()
        self._rate_strategy_contracts.clear()

    @property
    def is_connected(self) -> bool:
        """Check if the Web3 provider is connected."""
        try:
            return self._w3.is_connected()
        except Exception:
            return False

    @property
    def chain_id(self) -> int | None:
        """Chain id reported by the endpoint, or None when it cannot be reached."""
        try:
            return int(self._w3.eth.chain_id)
        except Exception:
            logger.debug("chain id unavailable", exc_info=True)
            return None
