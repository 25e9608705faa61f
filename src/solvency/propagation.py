"""Dependency graph and topological shortfall propagation."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from decimal import Decimal

import networkx as nx

from ..errors import CyclicDependencyError
from ..models import Entity, EntitySolvencyRecord
from .calculator import get_price, settle
from .ledger import ShortfallLedger

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


def build_dependency_graph(entities: Iterable[Entity]) -> nx.DiGraph:
    """One node per entity, one debtor → creditor edge per related pair.

    Obligations to creditors outside the entity set add no edge. Parallel
    obligations between the same pair collapse into a single edge.
    """
    entities = list(entities)
    graph = nx.DiGraph()
    graph.add_nodes_from(entity.id for entity in entities)
    for entity in entities:
        for ob in entity.obligations:
            if ob.creditor in graph:
                graph.add_edge(entity.id, ob.creditor)
    return graph


def ensure_acyclic(graph: nx.DiGraph) -> None:
    """Raise CyclicDependencyError if the obligation graph has a cycle."""
    if nx.is_directed_acyclic_graph(graph):
        return
    cycle = [(u, v) for u, v in nx.find_cycle(graph)]
    logger.error("Obligation graph contains a cycle: %s", cycle)
    raise CyclicDependencyError(cycle)


def processing_order(graph: nx.DiGraph) -> list[str]:
    """Topological order: every debtor comes before its creditors."""
    ensure_acyclic(graph)
    return list(nx.topological_sort(graph))


def obligations_by_creditor(entity: Entity, asset_type: str) -> dict[str, Decimal]:
    """Outbound amount of ``asset_type`` owed to each creditor, in human units."""
    owed: dict[str, Decimal] = {}
    for ob in entity.obligations:
        for line_type, raw in ob.asset.lines():
            if line_type.type_name != asset_type:
                continue
            owed[ob.creditor] = owed.get(ob.creditor, ZERO) + line_type.to_decimal(raw)
    return owed


def residual_shortfalls(
    record: EntitySolvencyRecord,
    received: ShortfallLedger,
    prices: Mapping[str, Decimal],
) -> tuple[dict[str, Decimal], Decimal]:
    """Per-asset shortfall an entity forwards, and its USD value.

    Inbound assets are reduced by what debtors failed to deliver before the
    entity's netting and swaps are re-run. Terminal absorbers (no outbound
    obligations) keep their first-pass figures.
    """
    if not received or not record.has_obligations:
        return dict(record.shortfalls_by_asset), record.shortfall_usd

    assets = {b.asset_type: b.amount for b in record.total_assets}
    for asset_type, missing in received.totals_by_asset().items():
        assets[asset_type] = max(assets.get(asset_type, ZERO) - missing, ZERO)
    liabilities = {b.asset_type: b.amount for b in record.total_liabilities}

    settlement = settle(assets, liabilities, prices)
    return settlement.shortfalls_by_asset, settlement.shortfall_usd


def distribute_shortfall(
    entity: Entity,
    asset_type: str,
    shortfall: Decimal,
    prices: Mapping[str, Decimal],
    caused: ShortfallLedger,
    received: Mapping[str, ShortfallLedger],
) -> None:
    """Split one asset type's shortfall across creditors, pro-rata to what each is owed."""
    owed = obligations_by_creditor(entity, asset_type)
    total_owed = sum(owed.values(), ZERO)
    if total_owed <= 0:
        return

    price = get_price(prices, asset_type)
    for creditor, amount in owed.items():
        if amount <= 0:
            continue
        allocated = shortfall * amount / total_owed
        allocated_usd = allocated * price
        caused.record(creditor, asset_type, allocated, allocated_usd, entity.id)
        creditor_ledger = received.get(creditor)
        if creditor_ledger is not None:
            creditor_ledger.record(entity.id, asset_type, allocated, allocated_usd, entity.id)


def propagate_shortfalls(
    records: Mapping[str, EntitySolvencyRecord],
    entities: Mapping[str, Entity],
    prices: Mapping[str, Decimal],
) -> dict[str, EntitySolvencyRecord]:
    """Cascade unresolved shortfalls from debtors to creditors.

    Returns new records carrying received/caused shortfalls and the per-asset
    shortfall that remains after inbound failures. The input records are not
    modified.

    Raises:
        CyclicDependencyError: The obligation graph is not a DAG.
        MissingPriceError: A shortfall asset type has no price.
    """
    graph = build_dependency_graph(entities.values())
    order = processing_order(graph)
    logger.debug("Propagating shortfalls over %d entities", len(order))

    received = {entity_id: ShortfallLedger() for entity_id in entities}
    caused = {entity_id: ShortfallLedger() for entity_id in entities}
    updated: dict[str, EntitySolvencyRecord] = {}

    for entity_id in order:
        entity = entities[entity_id]
        record = records[entity_id]

        by_asset, shortfall_usd = residual_shortfalls(record, received[entity_id], prices)
        for asset_type, shortfall in by_asset.items():
            distribute_shortfall(
                entity, asset_type, shortfall, prices, caused[entity_id], received
            )

        updated[entity_id] = replace(
            record,
            shortfalls_by_asset=by_asset,
            effective_shortfall_usd=shortfall_usd,
        )

    return {
        entity_id: replace(
            updated[entity_id],
            shortfalls_received=received[entity_id].to_shortfalls(),
            shortfalls_caused=caused[entity_id].to_shortfalls(),
        )
        for entity_id in entities
    }
