"""Price oracle implementations."""
from .aggregator import AggregatorOracle
from .pyth import PythOracle
from .static import StaticOracle

__all__ = ["AggregatorOracle", "PythOracle", "StaticOracle"]
