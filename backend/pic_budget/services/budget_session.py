"""
BudgetSession — the live line-item collection, its original snapshot and the
item counter.

The live collection is what adjustments rewrite; the originals are what
``restore_originals`` brings back. Create, update and delete touch both.
Every total is recomputed with the compositor on the way in, so a
hand-edited ``valorTotal`` never survives a create or update.

One RLock serializes all mutations and the adjust-then-aggregate sequence;
readers get copies taken under the same lock.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pic_budget.models.line_item import LineItem, LineItemInput, LineItemUpdate
from pic_budget.models.adjustment import AdjustmentResult
from pic_budget.models.statistics import BudgetStatistics, BudgetSummary
from pic_budget.services.adjustment_engine import AdjustmentEngine
from pic_budget.services.budget_aggregator import compute_statistics, summarize
from pic_budget.services.pricing_engine import price_line_item

logger = logging.getLogger("pic-budget.session")

_DEMO_ITEMS = [
    ("test-1", "Cuaderno A4", 10, "Unidad", "papeleria", 1500.0, 25.0),
    ("test-2", "Bolígrafo Azul", 50, "Unidad", "papeleria", 500.0, 30.0),
    ("test-3", "Arroz 500g", 20, "Paquete", "alimentos", 2000.0, 15.0),
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BudgetSession:

    def __init__(self, engine: Optional[AdjustmentEngine] = None) -> None:
        self._lock = threading.RLock()
        self._engine = engine or AdjustmentEngine()
        self._items: List[LineItem] = []
        self._originals: List[LineItem] = []
        self._counter: int = 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def items(self) -> List[LineItem]:
        with self._lock:
            return list(self._items)

    @property
    def originals(self) -> List[LineItem]:
        with self._lock:
            return list(self._originals)

    @property
    def counter(self) -> int:
        return self._counter

    def get_item(self, item_id: str) -> LineItem:
        with self._lock:
            for item in self._items:
                if item.id == item_id:
                    return item
        raise KeyError(item_id)

    def filter_items(self, search: str = "", category: str = "") -> List[LineItem]:
        """Case-insensitive substring match on the name, exact match on the category."""
        needle = (search or "").strip().lower()
        with self._lock:
            return [
                item for item in self._items
                if (not needle or needle in item.name.lower())
                and (not category or item.category == category)
            ]

    def summary(self) -> BudgetSummary:
        with self._lock:
            return summarize(self._items)

    def statistics(self) -> BudgetStatistics:
        with self._lock:
            return compute_statistics(self._items)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _unique_id(self, n: int) -> str:
        taken = {i.id for i in self._items} | {i.id for i in self._originals}
        candidate = f"prod-{n}"
        suffix = 1
        while candidate in taken:
            suffix += 1
            candidate = f"prod-{n}-{suffix}"
        return candidate

    @staticmethod
    def _build(data: LineItemInput, item_id: str, item_no: int) -> LineItem:
        now = _now()
        item = LineItem(
            id=item_id,
            item=item_no,
            name=data.name,
            quantity=data.quantity,
            presentation=data.presentation,
            category=data.category,
            cost=data.cost,
            margin=data.margin,
            taxes=[t.model_copy() for t in data.taxes],
            additional_costs=[c.model_copy() for c in data.additional_costs],
            created_at=now,
            updated_at=now,
        )
        return price_line_item(item)

    def add_item(self, data: LineItemInput) -> LineItem:
        with self._lock:
            n = self._counter
            item = self._build(data, self._unique_id(n), n)
            self._items.append(item)
            self._originals.append(item.model_copy(deep=True))
            self._counter = n + 1
        logger.info(f"Line item added: {item.id} '{item.name}' total={item.total:,.2f}")
        return item

    def update_item(self, item_id: str, changes: LineItemUpdate) -> LineItem:
        """Merge ``changes`` into the live and original copies, recomputing both totals."""
        update: Dict[str, Any] = {
            name: getattr(changes, name)
            for name in changes.model_fields_set
            if getattr(changes, name) is not None
        }
        update["updated_at"] = _now()

        with self._lock:
            index = next((i for i, it in enumerate(self._items) if it.id == item_id), None)
            if index is None:
                raise KeyError(item_id)
            updated = price_line_item(self._items[index].model_copy(update=update, deep=True))
            self._items[index] = updated
            for i, original in enumerate(self._originals):
                if original.id == item_id:
                    self._originals[i] = price_line_item(original.model_copy(update=update, deep=True))
        logger.info(f"Line item updated: {item_id} fields={sorted(update)}")
        return updated

    def delete_item(self, item_id: str) -> None:
        with self._lock:
            remaining = [i for i in self._items if i.id != item_id]
            if len(remaining) == len(self._items):
                raise KeyError(item_id)
            self._items = remaining
            self._originals = [i for i in self._originals if i.id != item_id]
        logger.info(f"Line item deleted: {item_id}")

    def clear(self) -> None:
        with self._lock:
            self._items = []
            self._originals = []
            self._counter = 1
        logger.info("Budget cleared")

    def add_items_bulk(self, rows: Sequence[LineItemInput]) -> List[LineItem]:
        """Append rows numbered after the current highest item index."""
        with self._lock:
            current_max = max((i.item for i in self._items), default=0)
            added = []
            for offset, data in enumerate(rows, start=1):
                n = current_max + offset
                item = self._build(data, self._unique_id(n), n)
                self._items.append(item)
                self._originals.append(item.model_copy(deep=True))
                added.append(item)
            self._counter = current_max + len(rows) + 1
        logger.info(f"Bulk import: {len(added)} line items added")
        return added

    def replace_items(self, rows: Sequence[LineItemInput]) -> List[LineItem]:
        """Discard everything and load ``rows`` numbered 1..n."""
        items = [self._build(data, f"prod-{n}", n) for n, data in enumerate(rows, start=1)]
        with self._lock:
            self._items = items
            self._originals = [i.model_copy(deep=True) for i in items]
            self._counter = len(items) + 1
        logger.info(f"Budget replaced with {len(items)} line items")
        return list(items)

    def apply_adjustment(self, method) -> AdjustmentResult:
        """Adjust the live items; the originals are left for ``restore_originals``."""
        with self._lock:
            outcome = self._engine.apply(self._items, method)
            self._items = list(outcome.items)
            return outcome.result

    def restore_originals(self) -> bool:
        with self._lock:
            if not self._originals:
                return False
            self._items = [i.model_copy(deep=True) for i in self._originals]
        logger.info("Line items restored to their original values")
        return True

    def load_test_data(self) -> List[LineItem]:
        now = _now()
        items = [
            price_line_item(LineItem(
                id=item_id, item=n, name=name, quantity=qty, presentation=presentation,
                category=category, cost=cost, margin=margin, created_at=now, updated_at=now,
            ))
            for n, (item_id, name, qty, presentation, category, cost, margin)
            in enumerate(_DEMO_ITEMS, start=1)
        ]
        with self._lock:
            self._items = items
            self._originals = [i.model_copy(deep=True) for i in items]
            self._counter = len(items) + 1
        return list(items)

    # ------------------------------------------------------------------
    # Persistence hand-off
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Store state in the persisted camelCase shape."""
        with self._lock:
            return {
                "productos": [i.to_store() for i in self._items],
                "productosOriginales": [i.to_store() for i in self._originals],
                "contadorItems": self._counter,
            }

    def load_snapshot(self, state: Dict[str, Any]) -> None:
        items = [LineItem.model_validate(p) for p in state.get("productos") or []]
        originals_raw = state.get("productosOriginales")
        originals = (
            [LineItem.model_validate(p) for p in originals_raw]
            if originals_raw is not None
            else [i.model_copy(deep=True) for i in items]
        )
        counter = state.get("contadorItems") or max((i.item for i in items), default=0) + 1
        with self._lock:
            self._items = items
            self._originals = originals
            self._counter = int(counter)

    @classmethod
    def from_snapshot(cls, state: Optional[Dict[str, Any]], engine: Optional[AdjustmentEngine] = None) -> "BudgetSession":
        session = cls(engine)
        if state:
            session.load_snapshot(state)
        return session
