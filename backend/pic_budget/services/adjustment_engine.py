"""
AdjustmentEngine — rewrites every line item's total and margin toward a goal.

Strategies:
  - proporcional  : scale all totals by target / current budget
  - margen_fijo   : one margin for every item
  - por_categoria : margin looked up by category, default 20 %

Cost and quantity are never touched. Margin strategies recompute the total
from cost and margin only; taxes and additional costs configured on the item
are not reapplied.

A method without its parameter (or with a NaN or infinite one) is a no-op:
the items come back unchanged and the result reports ``changed=False``.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence

from pic_budget import config as cfg
from pic_budget.exceptions import AdjustmentError
from pic_budget.models.adjustment import (
    AdjustmentOutcome,
    AdjustmentResult,
    FixedMarginAdjustment,
    PerCategoryAdjustment,
    ProportionalAdjustment,
)
from pic_budget.models.line_item import LineItem
from pic_budget.services.pricing_engine import (
    average_margin,
    budget_total,
    compose_total,
    solve_margin,
)

logger = logging.getLogger("pic-budget.adjustment")


class AdjustmentEngine:
    """Stateless between calls; one transition per ``apply``."""

    def __init__(self, default_category_margin: float = cfg.DEFAULT_CATEGORY_MARGIN) -> None:
        self.default_category_margin = float(default_category_margin)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def apply(self, items: Sequence[LineItem], method) -> AdjustmentOutcome:
        """
        Apply one adjustment method to a collection of line items.

        Args:
            items:  Live line items (not the original snapshot).
            method: ProportionalAdjustment | FixedMarginAdjustment | PerCategoryAdjustment

        Returns:
            AdjustmentOutcome with the new items and a before/after summary.

        Raises:
            AdjustmentError: proportional target given but the current budget is 0,
                             or the target itself is negative.
        """
        items = list(items)

        if isinstance(method, ProportionalAdjustment):
            if not method.target_budget or not math.isfinite(method.target_budget):
                return self._unchanged(items, "proportional adjustment without target budget")
            adjusted, factor = self.apply_proportional(items, method.target_budget)
            return self._outcome(items, adjusted, factor)

        if isinstance(method, FixedMarginAdjustment):
            if method.margin_pct is None or not math.isfinite(method.margin_pct):
                return self._unchanged(items, "fixed margin adjustment without margin")
            return self._outcome(items, self.apply_fixed_margin(items, method.margin_pct))

        if isinstance(method, PerCategoryAdjustment):
            if method.margins_by_category is None:
                return self._unchanged(items, "per-category adjustment without margin table")
            return self._outcome(items, self.apply_per_category(items, method.margins_by_category))

        return self._unchanged(items, f"unknown adjustment method {type(method).__name__}")

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def apply_proportional(self, items: List[LineItem], target_budget: float):
        """Return (adjusted_items, factor). Uses live totals as the base."""
        if target_budget < 0:
            raise AdjustmentError(f"Target budget must be positive; received {target_budget}")

        current = budget_total(items)
        if current <= 0:
            raise AdjustmentError(
                "Cannot apply a proportional adjustment: the current budget is 0 "
                "(add items with a positive cost and quantity first)"
            )

        factor = target_budget / current
        adjusted = []
        for item in items:
            new_total = item.total * factor
            adjusted.append(item.model_copy(update={
                "total": new_total,
                "margin": solve_margin(new_total, item.cost),
            }))
        return adjusted, factor

    def apply_fixed_margin(self, items: List[LineItem], margin_pct: float) -> List[LineItem]:
        return [self._with_margin(item, margin_pct) for item in items]

    def apply_per_category(
        self,
        items: List[LineItem],
        margins_by_category: Dict[str, float],
    ) -> List[LineItem]:
        adjusted = []
        for item in items:
            margin = margins_by_category.get(item.category)
            if margin is None or not math.isfinite(margin):
                margin = self.default_category_margin
            adjusted.append(self._with_margin(item, margin))
        return adjusted

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _with_margin(item: LineItem, margin_pct: float) -> LineItem:
        margin_pct = float(margin_pct)
        return item.model_copy(update={
            "margin": margin_pct,
            "total": compose_total(item.cost, margin_pct),
        })

    @staticmethod
    def _unchanged(items: List[LineItem], reason: str) -> AdjustmentOutcome:
        logger.info(f"Adjustment skipped: {reason}")
        budget = budget_total(items)
        margin = average_margin(items)
        return AdjustmentOutcome(
            items=items,
            result=AdjustmentResult(
                changed=False,
                previous_budget=budget,
                new_budget=budget,
                previous_margin=margin,
                new_margin=margin,
            ),
        )

    @staticmethod
    def _outcome(
        before: List[LineItem],
        after: List[LineItem],
        factor: Optional[float] = None,
    ) -> AdjustmentOutcome:
        result = AdjustmentResult(
            changed=True,
            items_adjusted=len(after),
            previous_budget=budget_total(before),
            new_budget=budget_total(after),
            factor=factor,
            previous_margin=average_margin(before),
            new_margin=average_margin(after),
        )
        logger.info(
            f"Adjustment applied to {result.items_adjusted} items: "
            f"{result.previous_budget:,.2f} -> {result.new_budget:,.2f}"
        )
        return AdjustmentOutcome(items=after, result=result)


def apply_adjustment(items: Sequence[LineItem], method) -> AdjustmentOutcome:
    """Module-level shortcut using the default category margin."""
    return AdjustmentEngine().apply(items, method)
