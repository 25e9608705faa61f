"""Solvency analysis entry point — three passes over the entity set.

1. Per-entity netting and swaps, independent for each entity.
2. Shortfall propagation along the topological order of the obligation DAG.
3. Final insolvency classification using the propagated records.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from decimal import Context, Decimal, localcontext

from ..models import Entity, EntitySolvencyRecord, Obligation, SolvencyReport
from .calculator import compute_entity_solvency
from .propagation import propagate_shortfalls

logger = logging.getLogger(__name__)

# Significant digits for all amount/USD arithmetic in a run.
DECIMAL_PRECISION = 60


def _validate_entities(entities: Mapping[str, Entity]) -> None:
    for key, entity in entities.items():
        if key != entity.id:
            raise ValueError(f"Entity keyed as '{key}' has id '{entity.id}'")
        for ob in entity.obligations:
            if ob.debtor != entity.id:
                raise ValueError(
                    f"Entity '{entity.id}' lists an obligation owed by '{ob.debtor}'"
                )


def _index_inbound(entities: Mapping[str, Entity]) -> dict[str, list[Obligation]]:
    inbound: dict[str, list[Obligation]] = {entity_id: [] for entity_id in entities}
    for entity in entities.values():
        for ob in entity.obligations:
            if ob.creditor in inbound:
                inbound[ob.creditor].append(ob)
    return inbound


def is_insolvent(record: EntitySolvencyRecord) -> bool:
    """Final classification after propagation.

    Insolvent when a per-asset shortfall remains, or when the entity owes
    something and at least one debtor failed to pay it. An entity that owes
    nothing is never insolvent.
    """
    if not record.has_obligations:
        return False
    has_shortfall = any(amount > 0 for amount in record.shortfalls_by_asset.values())
    return has_shortfall or len(record.shortfalls_received) > 0


def check_entity_solvency(
    entities: Mapping[str, Entity],
    prices: Mapping[str, Decimal],
) -> SolvencyReport:
    """Analyze solvency across a network of interconnected entities.

    Args:
        entities: Entity id → entity. Ids must be unique and stable.
        prices: Asset type name → positive USD price.

    Raises:
        MissingPriceError: A required asset type has no price.
        CyclicDependencyError: The obligation graph contains a cycle.
    """
    _validate_entities(entities)

    with localcontext(Context(prec=DECIMAL_PRECISION)):
        inbound = _index_inbound(entities)
        first_pass = {
            entity_id: compute_entity_solvency(
                entity, entities.values(), prices, inbound=inbound[entity_id]
            )
            for entity_id, entity in entities.items()
        }
        provisional = sum(1 for r in first_pass.values() if r.is_insolvent)
        logger.debug("First pass: %d of %d entities short", provisional, len(first_pass))

        propagated = propagate_shortfalls(first_pass, entities, prices)

    details = tuple(
        replace(propagated[entity_id], is_insolvent=is_insolvent(propagated[entity_id]))
        for entity_id in entities
    )
    insolvent = tuple(r.entity_id for r in details if r.is_insolvent)

    logger.info(
        "Solvency check complete: %d entities, %d insolvent", len(details), len(insolvent)
    )
    return SolvencyReport(
        is_solvent=not insolvent,
        insolvent_entities=insolvent,
        details=details,
    )
