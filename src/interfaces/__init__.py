"""Protocol interfaces for the solvency analyzer."""
from .entity_source import EntitySource
from .price_oracle import PriceOracle

__all__ = ["EntitySource", "PriceOracle"]
