"""Reserve Interest Dashboard: main Streamlit entry point."""

import logging
import os
from pathlib import Path

import streamlit as st

# Load .env file if present (for ETH_RPC_URL, etc.)
_env_path = Path(__file__).resolve().parents[2] / ".env"
if _env_path.exists():
    for line in _env_path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())

from reservecore.dashboard.components.sidebar import render_sidebar
from reservecore.dashboard.tabs.accrual import render_accrual
from reservecore.dashboard.tabs.rates import render_rates
from reservecore.data.onchain_provider import OnChainDataProvider
from reservecore.data.provider_factory import create_provider, resolve_rpc_url

logger = logging.getLogger(__name__)


def main() -> None:
    st.set_page_config(
        page_title="Reserve Interest Dashboard",
        page_icon="📈",
        layout="wide",
    )

    st.title("Reserve Interest Dashboard")
    st.caption("Aave V2: Rate Curves and Index Accrual")

    # The on-chain toggle uses a stable key so its state persists across reruns.
    st.sidebar.header("Data Source")
    use_onchain = st.sidebar.checkbox("Use On-Chain Data", value=False, key="use_onchain")
    provider = create_provider(use_onchain=use_onchain)

    if use_onchain:
        if isinstance(provider, OnChainDataProvider):
            if provider.is_connected:
                st.sidebar.success("On-chain: connected")
            else:
                st.sidebar.error("On-chain: cannot reach RPC endpoint")
            if st.sidebar.button("Refresh On-Chain Data"):
                provider.refresh()
                st.rerun()
        else:
            logger.warning("On-chain data requested; dashboard is showing static parameters")
            st.sidebar.error("Fell back to static data")
            if resolve_rpc_url() is None:
                st.sidebar.caption("ETH_RPC_URL not found in environment")

    params = render_sidebar(provider.list_assets())

    tab1, tab2 = st.tabs(["Interest Rates", "Index Accrual"])

    with tab1:
        render_rates(provider, params.asset, params.utilization_override)

    with tab2:
        render_accrual(provider, params.asset, params.horizon_days, params.step_days)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
