"""Asset identifiers and protocol constants."""

# Asset symbols
WETH = "WETH"
USDC = "USDC"
DAI = "DAI"

# Underlying token decimals
ASSET_DECIMALS: dict[str, int] = {
    WETH: 18,
    USDC: 6,
    DAI: 18,
}

# EIP-712 domain version used by supply-token permits
PERMIT_VERSION = "1"
MAINNET_CHAIN_ID = 1
