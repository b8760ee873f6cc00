# USD-stable reference currency: all realized PNL is measured against it
REFERENCE_CURRENCY = "USDT"

USD_LIKE_ASSETS = frozenset({"USDT", "BUSD", "USDC", "TUSD", "FDUSD"})

# Simple Earn balances show up as LD<asset> (LDUSDT, LDBTC)
LENDING_ASSET_PREFIX = "LD"


def is_usd_like(asset: str) -> bool:
    return asset in USD_LIKE_ASSETS


def normalize_lending_asset(asset: str) -> str:
    """LDBTC -> BTC. Other symbols are returned unchanged."""
    if asset and len(asset) >= 3 and asset.startswith(LENDING_ASSET_PREFIX):
        return asset[len(LENDING_ASSET_PREFIX):]
    return asset
