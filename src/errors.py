"""Errors raised by the solvency analysis. All are terminal for a run."""
from __future__ import annotations


class SolvencyError(Exception):
    """Base class for analysis failures."""


class MissingPriceError(SolvencyError):
    """An asset type has no USD price where one is required."""

    def __init__(self, asset_type: str) -> None:
        self.asset_type = asset_type
        super().__init__(f'Price not found for asset type: "{asset_type}"')


class CyclicDependencyError(SolvencyError):
    """The obligation graph is not a DAG."""

    def __init__(self, cycle: list[tuple[str, str]]) -> None:
        self.cycle = cycle
        path = " -> ".join([edge[0] for edge in cycle] + [cycle[0][0]]) if cycle else ""
        super().__init__(
            "Dependency graph contains cycles. Shortfall propagation requires "
            f"a DAG. Offending cycle: {path}"
        )


class MissingReferenceError(SolvencyError):
    """A snapshot references an entity, pool or asset that cannot be resolved."""

    def __init__(self, kind: str, reference: str, context: str = "") -> None:
        self.kind = kind
        self.reference = reference
        message = f"Unknown {kind} '{reference}'"
        if context:
            message += f" referenced by {context}"
        super().__init__(message)
