"""Price oracle protocol — price feed abstraction."""
from decimal import Decimal
from typing import Protocol


class PriceOracle(Protocol):
    """Abstract interface for fetching USD prices keyed by asset type name."""

    async def fetch_prices(self, asset_types: list[str]) -> dict[str, Decimal]: ...
