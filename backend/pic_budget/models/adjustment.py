"""
Bulk adjustment methods — a tagged union discriminated on ``type``.

Parameters are optional on purpose: a method that arrives without its
parameter is a no-op for that call, not a validation error.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from pic_budget.models.line_item import LineItem


class ProportionalAdjustment(BaseModel):
    """Scale every total by target / current budget."""
    type: Literal["proporcional"] = "proporcional"
    target_budget: Optional[float] = Field(None, alias="presupuestoObjetivo")

    model_config = {"populate_by_name": True, "allow_inf_nan": False}


class FixedMarginAdjustment(BaseModel):
    """Apply one margin to every item."""
    type: Literal["margen_fijo"] = "margen_fijo"
    margin_pct: Optional[float] = Field(None, alias="margenFijo")

    model_config = {"populate_by_name": True, "allow_inf_nan": False}


class PerCategoryAdjustment(BaseModel):
    """Look the margin up by category, falling back to the default margin."""
    type: Literal["por_categoria"] = "por_categoria"
    margins_by_category: Optional[Dict[str, float]] = Field(None, alias="margenesPorCategoria")

    model_config = {"populate_by_name": True, "allow_inf_nan": False}


AdjustmentMethod = Annotated[
    Union[ProportionalAdjustment, FixedMarginAdjustment, PerCategoryAdjustment],
    Field(discriminator="type"),
]


class AdjustmentResult(BaseModel):
    """What an adjustment did to the aggregate budget."""
    changed: bool
    items_adjusted: int = 0
    previous_budget: float = 0.0
    new_budget: float = 0.0
    factor: Optional[float] = None
    previous_margin: float = 0.0
    new_margin: float = 0.0


class AdjustmentOutcome(BaseModel):
    items: List[LineItem]
    result: AdjustmentResult


_method_adapter = TypeAdapter(AdjustmentMethod)


def parse_adjustment(data: Any):
    """Validate a raw ``{"type": ..., ...}`` payload into one of the method models."""
    return _method_adapter.validate_python(data)
