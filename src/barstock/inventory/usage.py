"""Depletion between inventory count snapshots."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from barstock.schemas import InventoryCountLog


def usage(older: InventoryCountLog | None, newer: InventoryCountLog) -> float | None:
    """
    Quantity used between two counts of the same item.

    Positive values are depletion, negative values a restock. There is no
    usage without an older count to compare against.
    """
    if older is None:
        return None
    return (older.counted_quantity or 0.0) - (newer.counted_quantity or 0.0)


def format_usage(value: float | None) -> str | None:
    """Display a usage figure: "-0.48" for depletion, "+1.00" for a restock."""
    if value is None:
        return None
    if value > 0:
        return f"-{value:.2f}"
    return f"+{abs(value):.2f}"


@dataclass
class HistoryRow:
    """One count in an item's history with usage against the previous count."""

    log: InventoryCountLog
    usage: float | None

    @property
    def usage_display(self) -> str | None:
        return format_usage(self.usage)


def usage_history(logs: Iterable[InventoryCountLog]) -> list[HistoryRow]:
    """Counts newest first, each paired with usage since the next-older count."""
    ordered = sorted(logs, key=lambda log: log.count_date, reverse=True)
    rows: list[HistoryRow] = []
    for index, log in enumerate(ordered):
        older = ordered[index + 1] if index + 1 < len(ordered) else None
        rows.append(HistoryRow(log=log, usage=usage(older, log)))
    return rows


@dataclass
class ItemReconciliation:
    """Start and end quantities of one item across two reports."""

    inventory_item_id: str
    start: float = 0.0
    end: float = 0.0

    @property
    def usage(self) -> float:
        return self.start - self.end


def reconcile_reports(
    start_logs: Sequence[InventoryCountLog],
    end_logs: Sequence[InventoryCountLog],
) -> dict[str, ItemReconciliation]:
    """
    Compare two count snapshots item by item.

    An item counted in only one snapshot gets 0 for the other side rather
    than being left out.
    """
    items: dict[str, ItemReconciliation] = {}

    for log in start_logs:
        entry = items.setdefault(log.inventory_item_id, ItemReconciliation(log.inventory_item_id))
        entry.start = log.counted_quantity or 0.0

    for log in end_logs:
        entry = items.setdefault(log.inventory_item_id, ItemReconciliation(log.inventory_item_id))
        entry.end = log.counted_quantity or 0.0

    return items
