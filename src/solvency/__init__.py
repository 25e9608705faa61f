"""Shortfall propagation engine."""
from .engine import check_entity_solvency
from .propagation import build_dependency_graph
from .serialize import report_to_dict

__all__ = [
    "build_dependency_graph",
    "check_entity_solvency",
    "report_to_dict",
]
