"""Oracle — price feed collaborators and the write-once outcome resolver."""

from secretmarket.oracle.price_feed import ChainlinkPriceFeed, PriceFeed, StaticPriceFeed
from secretmarket.oracle.resolver import OutcomeResolver, Resolution

__all__ = [
    "ChainlinkPriceFeed",
    "OutcomeResolver",
    "PriceFeed",
    "Resolution",
    "StaticPriceFeed",
]
