"""Tradable assets: symbol → CoinGecko id, plus static fallback quotes.

Orders name an asset as "BTC/USDT" or "BTC/USD"; only the base symbol matters
for pricing since every quote is taken in USD.
"""

from dataclasses import dataclass
from decimal import Decimal

from src.bo_common.errors import UnsupportedAssetError

_QUOTE_CURRENCIES = ("USDT", "USD")


@dataclass(frozen=True)
class Asset:
    symbol: str
    coingecko_id: str
    default_price: Decimal


SUPPORTED_ASSETS: dict[str, Asset] = {
    a.symbol: a
    for a in (
        Asset("BTC", "bitcoin", Decimal("107314.24")),
        Asset("ETH", "ethereum", Decimal("2449.91")),
        Asset("DOGE", "dogecoin", Decimal("0.08")),
        Asset("LTC", "litecoin", Decimal("73.42")),
        Asset("CHZ", "chiliz", Decimal("0.07")),
        Asset("BCH", "bitcoin-cash", Decimal("354.67")),
        Asset("SOL", "solana", Decimal("89.32")),
        Asset("LINK", "chainlink", Decimal("11.23")),
        Asset("MATIC", "matic-network", Decimal("0.42")),
        Asset("UNI", "uniswap", Decimal("6.78")),
    )
}


def normalize_asset(raw: str) -> str:
    """'btc/usdt' -> 'BTC/USDT'; a bare 'BTC' becomes 'BTC/USDT'."""
    text = raw.strip().upper()
    if "/" not in text:
        return f"{text}/USDT"
    return text


def lookup_asset(raw: str) -> Asset:
    """Resolve an order's asset string, raising UnsupportedAssetError if unknown."""
    base, _, quote = normalize_asset(raw).partition("/")
    asset = SUPPORTED_ASSETS.get(base)
    if asset is None or quote not in _QUOTE_CURRENCIES:
        raise UnsupportedAssetError(raw)
    return asset
