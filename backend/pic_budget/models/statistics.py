from typing import Dict

from pydantic import BaseModel


class BudgetSummary(BaseModel):
    total_items: int = 0
    budget_total: float = 0.0       # Σ total × quantity
    cost_total: float = 0.0         # Σ cost × quantity
    average_margin: float = 0.0     # weighted by cost, in %


class CategoryStats(BaseModel):
    count: int = 0
    cost_total: float = 0.0
    budget_total: float = 0.0
    average_margin: float = 0.0
    percent_of_total: float = 0.0


class NamedValue(BaseModel):
    name: str = ""
    value: float = 0.0


class PriceRange(BaseModel):
    minimum: float = 0.0
    maximum: float = 0.0
    mean: float = 0.0
    median: float = 0.0


class MarginAnalysis(BaseModel):
    minimum: float = 0.0
    maximum: float = 0.0
    std_deviation: float = 0.0      # population


class BudgetStatistics(BudgetSummary):
    categories: Dict[str, CategoryStats] = {}
    most_expensive: NamedValue = NamedValue()
    cheapest: NamedValue = NamedValue()
    price_range: PriceRange = PriceRange()
    margin_analysis: MarginAnalysis = MarginAnalysis()
