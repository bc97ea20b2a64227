# Overview: Read-only projections over the cached snapshot for dashboards and lists.

"""
Reporting Service

All functions are pure over a Snapshot: no I/O, no mutation of the cached
collections (sorting always builds a new list).

Outflow figures count only EXIT movements that were not reversed.
Month keys are "YYYY-MM".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..models import Movement, MovementType, Snapshot
from ..time_utils import utcnow


TOP_N = 5


@dataclass(frozen=True)
class StockLine:
    name: str
    total_balance: float
    unit: str


@dataclass(frozen=True)
class CriticalItem:
    name: str
    balance: float
    min_stock: float
    unit: str


@dataclass(frozen=True)
class DashboardStats:
    total_value_stock: float
    total_items: int
    low_stock_count: int
    current_month_outflow: float
    monthly_outflow: list[tuple[str, float]] = field(default_factory=list)
    top_products: list[tuple[str, float]] = field(default_factory=list)
    critical_items: list[CriticalItem] = field(default_factory=list)


def consolidated_stock(snapshot: Snapshot) -> list[StockLine]:
    """Balance per product name (first-seen order), positive totals only."""
    totals: dict[str, float] = {}
    units: dict[str, str] = {}
    for batch in snapshot.batches:
        if batch.product_name not in totals:
            totals[batch.product_name] = 0.0
            units[batch.product_name] = batch.unit
        totals[batch.product_name] += batch.current_balance

    return [
        StockLine(name=name, total_balance=total, unit=units[name])
        for name, total in totals.items()
        if total > 0
    ]


def _effective_outflows(snapshot: Snapshot) -> list[Movement]:
    return [
        m for m in snapshot.movements
        if m.type == MovementType.EXIT and not m.is_reversed and m.occurred_at is not None
    ]


def dashboard_stats(snapshot: Snapshot, now: datetime | None = None) -> DashboardStats:
    now = now or utcnow()
    batches = snapshot.batches

    monthly: dict[str, float] = {}
    current_month_outflow = 0.0
    for movement in _effective_outflows(snapshot):
        key = movement.occurred_at.strftime("%Y-%m")
        monthly[key] = monthly.get(key, 0.0) + movement.value
        if movement.occurred_at.year == now.year and movement.occurred_at.month == now.month:
            current_month_outflow += movement.value

    top_products = sorted(
        ((b.product_name, b.consumed_qty) for b in batches),
        key=lambda pair: pair[1],
        reverse=True,
    )[:TOP_N]

    critical = sorted(
        (b for b in batches if 0 <= b.current_balance <= b.min_stock),
        key=lambda b: b.current_balance,
    )[:TOP_N]

    return DashboardStats(
        total_value_stock=sum(b.stock_value for b in batches),
        total_items=len(batches),
        low_stock_count=sum(1 for b in batches if b.is_low_stock),
        current_month_outflow=current_month_outflow,
        monthly_outflow=sorted(monthly.items()),
        top_products=top_products,
        critical_items=[
            CriticalItem(name=b.product_name, balance=b.current_balance, min_stock=b.min_stock, unit=b.unit)
            for b in critical
        ],
    )


def movements_newest_first(snapshot: Snapshot) -> list[Movement]:
    """Undated movements sink to the end."""
    dated = [m for m in snapshot.movements if m.occurred_at is not None]
    undated = [m for m in snapshot.movements if m.occurred_at is None]
    return sorted(dated, key=lambda m: m.occurred_at, reverse=True) + undated
