"""Provider selection and asset checks for reserve configuration.

On-chain data is only used when an RPC endpoint is configured and it serves
the chain the Aave V2 addresses in ``contracts.py`` belong to. In every other
case the static mainnet parameters answer.
"""

from __future__ import annotations

import logging
import os

from reservecore.data.constants import MAINNET_CHAIN_ID
from reservecore.data.interfaces import ReserveDataProvider
from reservecore.data.onchain_provider import OnChainDataProvider
from reservecore.data.static_params import StaticDataProvider
from reservecore.errors import ReserveNotFound

logger = logging.getLogger(__name__)

RPC_URL_ENV = "ETH_RPC_URL"


def resolve_rpc_url(rpc_url: str | None = None) -> str | None:
    """Explicit URL first, then ``ETH_RPC_URL``. Empty strings count as unset."""
    return rpc_url or os.environ.get(RPC_URL_ENV) or None


def check_assets(provider: ReserveDataProvider, assets: list[str]) -> list[str]:
    """Return ``assets`` unchanged if ``provider`` knows every one of them.

    Raises:
        ReserveNotFound: naming every asset the provider has no data for.
    """
    known = set(provider.list_assets())
    unknown = [asset for asset in assets if asset not in known]
    if unknown:
        raise ReserveNotFound(
            f"no reserve data for {', '.join(unknown)}; known assets: {', '.join(sorted(known))}"
        )
    return list(assets)


def _connect_onchain(
    rpc_url: str,
    cache_ttl: float,
    fallback: StaticDataProvider,
    chain_id: int,
) -> ReserveDataProvider:
    try:
        provider = OnChainDataProvider(rpc_url=rpc_url, cache_ttl=cache_ttl, fallback=fallback)
    except Exception:
        logger.warning("Failed to create OnChainDataProvider; using static data", exc_info=True)
        return fallback

    # None means the endpoint did not answer; reads fall back per call.
    served_chain = provider.chain_id
    if served_chain is not None and served_chain != chain_id:
        logger.warning(
            "RPC endpoint serves chain %d but reserve contracts are on chain %d; using static data",
            served_chain,
            chain_id,
        )
        return fallback
    return provider


def create_provider(
    use_onchain: bool = False,
    rpc_url: str | None = None,
    cache_ttl: float = 60.0,
    assets: list[str] | None = None,
    chain_id: int = MAINNET_CHAIN_ID,
) -> ReserveDataProvider:
    """Create a data provider, selecting static or on-chain.

    Parameters
    ----------
    use_onchain : bool
        If True, attempt to create an ``OnChainDataProvider``.
    rpc_url : str | None
        Ethereum JSON-RPC URL. Falls back to ``ETH_RPC_URL``.
    cache_ttl : float
        TTL in seconds for the on-chain cache.
    assets : list[str] | None
        Assets the caller needs. Checked against the chosen provider.
    chain_id : int
        Chain the on-chain endpoint must serve.

    Raises
    ------
    ReserveNotFound
        When ``assets`` names a reserve the provider cannot describe.
    """
    static = StaticDataProvider()
    provider: ReserveDataProvider = static

    if use_onchain:
        resolved_url = resolve_rpc_url(rpc_url)
        if resolved_url is None:
            logger.warning("On-chain data requested but no RPC URL provided; using static data")
        else:
            provider = _connect_onchain(resolved_url, cache_ttl, static, chain_id)

    if assets is not None:
        check_assets(provider, assets)
    logger.info("Using %s", type(provider).__name__)
    return provider
