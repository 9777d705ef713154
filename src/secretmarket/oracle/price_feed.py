"""Price feed collaborators.

The market only ever needs one thing from a feed: the current price.
It is read once, at resolution, and never again. Whether that reading is
stale or manipulated is a trust assumption about the feed, not something
the market can check.

Feeds:
- StaticPriceFeed: a settable price (tests, dry runs, manual resolution).
- ChainlinkPriceFeed: an on-chain aggregator read through web3.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Protocol, Union, runtime_checkable


# Minimal AggregatorV3Interface ABI: only what current_price() reads.
AGGREGATOR_V3_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": [
            {"internalType": "uint80", "name": "roundId", "type": "uint80"},
            {"internalType": "int256", "name": "answer", "type": "int256"},
            {"internalType": "uint256", "name": "startedAt", "type": "uint256"},
            {"internalType": "uint256", "name": "updatedAt", "type": "uint256"},
            {"internalType": "uint80", "name": "answeredInRound", "type": "uint80"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


@runtime_checkable
class PriceFeed(Protocol):
    """Anything that can report a single current price."""

    def current_price(self) -> Decimal:
        ...


class StaticPriceFeed:
    """Price feed backed by a settable value."""

    def __init__(self, price: Union[Decimal, int, str] = Decimal("0")) -> None:
        self._price = Decimal(price)
        self.reads = 0

    def set_price(self, price: Union[Decimal, int, str]) -> None:
        self._price = Decimal(price)

    def current_price(self) -> Decimal:
        self.reads += 1
        return self._price


class ChainlinkPriceFeed:
    """Reads the latest answer of a Chainlink-style aggregator contract.

    The raw integer answer is scaled by the aggregator's decimals(), so a
    benchmark of 5000 means 5000 units of the quote currency.

    Args:
        address: Aggregator contract address.
        rpc_url: JSON-RPC endpoint. Ignored if w3 is given.
        w3: An existing Web3 instance (lets callers share a provider).
    """

    def __init__(
        self,
        address: str,
        rpc_url: Optional[str] = None,
        w3: Any = None,
    ) -> None:
        from web3 import Web3, HTTPProvider

        if w3 is None:
            if not rpc_url:
                raise ValueError("ChainlinkPriceFeed needs an rpc_url or a Web3 instance")
            w3 = Web3(HTTPProvider(rpc_url))
        self._address = Web3.to_checksum_address(address)
        self._contract = w3.eth.contract(address=self._address, abi=AGGREGATOR_V3_ABI)
        self._decimals: Optional[int] = None

    @property
    def address(self) -> str:
        return self._address

    def current_price(self) -> Decimal:
        if self._decimals is None:
            self._decimals = int(self._contract.functions.decimals().call())
        round_data = self._contract.functions.latestRoundData().call()
        answer = int(round_data[1])
        return Decimal(answer).scaleb(-self._decimals)
