"""Static price table — prices supplied up front by config or snapshot."""
from decimal import Decimal


class StaticOracle:
    """Serve prices from a fixed table."""

    def __init__(self, prices: dict[str, Decimal]) -> None:
        self.prices = dict(prices)

    async def fetch_prices(self, asset_types: list[str]) -> dict[str, Decimal]:
        return {k: self.prices[k] for k in asset_types if k in self.prices}
