"""
PricingEngine — unit price composition and its inverse.

Composition order (changing it changes every downstream total):
  1. with_margin = cost × (1 + margin/100)
  2. tax_rate    = Σ rate of every enabled tax (additive, no compounding)
  3. with_taxes  = with_margin × (1 + tax_rate/100)
  4. total       = with_taxes + Σ value of every enabled additional cost

Additional costs are flat amounts added after tax and are never taxed.
Invalid numeric input degrades to 0; nothing here raises or returns NaN/Infinity.
"""

import math
from typing import Iterable, Optional, Sequence

from pic_budget import config as cfg
from pic_budget.models.line_item import AdditionalCost, LineItem, TaxRate


def finite(value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def enabled_tax_rate(taxes: Optional[Iterable[TaxRate]]) -> float:
    """Sum of the rates of enabled taxes, whatever their kind."""
    return sum(finite(t.rate) for t in (taxes or []) if t.enabled)


def enabled_additional_costs(additional_costs: Optional[Iterable[AdditionalCost]]) -> float:
    return sum(finite(c.value) for c in (additional_costs or []) if c.enabled)


def compose_total(
    cost: float,
    margin_pct: float,
    taxes: Optional[Sequence[TaxRate]] = None,
    additional_costs: Optional[Sequence[AdditionalCost]] = None,
) -> float:
    """
    Total unit price from cost, margin, enabled taxes and enabled additional costs.

    cost <= 0 returns 0 so zero/negative-cost lines never propagate prices.
    """
    cost = finite(cost)
    if cost <= 0:
        return 0.0

    with_margin = cost * (1.0 + finite(margin_pct) / 100.0)
    with_taxes = with_margin * (1.0 + enabled_tax_rate(taxes) / 100.0)
    total = with_taxes + enabled_additional_costs(additional_costs)
    return finite(total)


def solve_margin(total: float, cost: float) -> float:
    """
    Margin % implied by a total over a cost: ((total - cost) / cost) × 100.

    Exact inverse of step 1 of ``compose_total`` only when no taxes or
    additional costs apply. cost <= 0 returns 0.
    """
    cost = finite(cost)
    if cost <= 0:
        return 0.0
    return finite((finite(total) - cost) / cost * 100.0)


def subtotal(total: float, quantity: float) -> float:
    return finite(total) * finite(quantity)


def budget_total(items: Iterable[LineItem]) -> float:
    """Σ total × quantity over the live items."""
    return sum(subtotal(i.total, i.quantity) for i in items)


def cost_total(items: Iterable[LineItem]) -> float:
    """Σ cost × quantity."""
    return sum(subtotal(i.cost, i.quantity) for i in items)


def average_margin(items: Sequence[LineItem]) -> float:
    """Cost-weighted average margin: (budget - cost) / cost × 100, or 0 without cost."""
    budget = budget_total(items)
    cost = cost_total(items)
    return (budget - cost) / cost * 100.0 if cost > 0 else 0.0


def proportional_factor(target_budget: float, current_budget: float) -> float:
    """target / current; 0 when the current budget is not positive."""
    current_budget = finite(current_budget)
    if current_budget <= 0:
        return 0.0
    return finite(target_budget) / current_budget


def round_to(value: float, decimals: int = 2) -> float:
    return round(finite(value), decimals)


def apply_tax(value: float, rate: float = cfg.DEFAULT_IVA_RATE) -> float:
    """Value with a single percentage tax applied (IVA 19% by default)."""
    return finite(value) * (1.0 + finite(rate) / 100.0)


def convert_currency(amount: float, exchange_rate: float = 1.0) -> float:
    # Placeholder multiplier; no rate source is wired in
    return finite(amount) * finite(exchange_rate)


def roi(gain: float, investment: float) -> float:
    investment = finite(investment)
    if investment <= 0:
        return 0.0
    return finite(gain) / investment * 100.0


def break_even(fixed_costs: float, sale_price: float, variable_cost: float) -> float:
    """Units needed to cover fixed costs; 0 when the contribution margin is not positive."""
    contribution = finite(sale_price) - finite(variable_cost)
    if contribution <= 0:
        return 0.0
    return finite(fixed_costs) / contribution


def price_line_item(item: LineItem) -> LineItem:
    """Return ``item`` with its total recomputed from cost, margin, taxes and costs."""
    total = compose_total(item.cost, item.margin, item.taxes, item.additional_costs)
    return item.model_copy(update={"total": total})
