"""
Budget aggregation — summary and extended statistics over line items.

Recomputed on every read; nothing is cached, so the only invariant is
correctness: Σ category budget_total == budget_total.
"""

import math
from typing import Dict, Sequence

from pic_budget import config as cfg
from pic_budget.models.line_item import LineItem
from pic_budget.models.statistics import (
    BudgetStatistics,
    BudgetSummary,
    CategoryStats,
    MarginAnalysis,
    NamedValue,
    PriceRange,
)
from pic_budget.services.pricing_engine import average_margin, budget_total, cost_total


def summarize(items: Sequence[LineItem]) -> BudgetSummary:
    return BudgetSummary(
        total_items=len(items),
        budget_total=budget_total(items),
        cost_total=cost_total(items),
        average_margin=average_margin(items),
    )


def _median(values: Sequence[float]) -> float:
    ordered = sorted(values)
    n = len(ordered)
    mid = n // 2
    if n % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2.0
    return ordered[mid]


def category_distribution(items: Sequence[LineItem], total_budget: float) -> Dict[str, CategoryStats]:
    """
    Per-category count, cost, budget, weighted margin and share of the total.

    The known categories are always present (zeros when empty); any other
    category string is added as it is seen.
    """
    categories: Dict[str, CategoryStats] = {name: CategoryStats() for name in cfg.KNOWN_CATEGORIES}

    for item in items:
        stats = categories.setdefault(item.category, CategoryStats())
        stats.count += 1
        stats.cost_total += item.cost_subtotal
        stats.budget_total += item.subtotal

    for stats in categories.values():
        if stats.cost_total > 0:
            stats.average_margin = (stats.budget_total - stats.cost_total) / stats.cost_total * 100.0
        if total_budget > 0:
            stats.percent_of_total = stats.budget_total / total_budget * 100.0

    return categories


def compute_statistics(items: Sequence[LineItem]) -> BudgetStatistics:
    if not items:
        return BudgetStatistics(
            categories={name: CategoryStats() for name in cfg.KNOWN_CATEGORIES},
        )

    summary = summarize(items)

    prices = [i.total for i in items]
    max_price = max(prices)
    min_price = min(prices)
    most_expensive = next(i for i in items if i.total == max_price)
    cheapest = next(i for i in items if i.total == min_price)

    margins = [i.margin for i in items]
    mean_margin = sum(margins) / len(margins)
    variance = sum((m - mean_margin) ** 2 for m in margins) / len(margins)

    return BudgetStatistics(
        **summary.model_dump(),
        categories=category_distribution(items, summary.budget_total),
        most_expensive=NamedValue(name=most_expensive.name, value=most_expensive.total),
        cheapest=NamedValue(name=cheapest.name, value=cheapest.total),
        price_range=PriceRange(
            minimum=min_price,
            maximum=max_price,
            mean=sum(prices) / len(prices),
            median=_median(prices),
        ),
        margin_analysis=MarginAnalysis(
            minimum=min(margins),
            maximum=max(margins),
            std_deviation=math.sqrt(variance),
        ),
    )
