"""
Line item schema.

Field names are English; aliases match the camelCase Spanish keys the budget
store persists (``valorCosto``, ``valorTotal`` ...) so backups and imports
validate without a translation step.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaxRate(BaseModel):
    """A percentage tax. Disabled entries are kept and filtered, never dropped."""
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    type: str = Field("iva", description="iva | consumo | otros (open string)")
    rate: float = Field(0.0, ge=0, description="Percentage, e.g. 19 for IVA 19%")
    enabled: bool = True
    name: Optional[str] = None


class AdditionalCost(BaseModel):
    """A flat currency amount added after taxes; never taxed itself."""
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    type: str = Field("otro", description="e.g. transporte, empaque")
    value: float = Field(0.0, ge=0)
    enabled: bool = True
    name: Optional[str] = None


class LineItemInput(BaseModel):
    """
    Line item payload (no id, index or total).

    Imports validate mapped rows with it, so a missing cost defaults to 0.
    """
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    name: str = Field("", alias="producto")
    quantity: int = Field(1, ge=1, alias="cantidad")
    presentation: str = Field("UNIDAD", alias="presentacion")
    category: str = Field("otros", alias="categoria")
    cost: float = Field(0.0, ge=0, alias="valorCosto")
    margin: float = Field(0.0, ge=0, alias="margen")
    taxes: List[TaxRate] = Field(default_factory=list, alias="impuestos")
    additional_costs: List[AdditionalCost] = Field(default_factory=list, alias="costosAdicionales")


class LineItemCreate(LineItemInput):
    """Form payload from the product editor: the cost is required and positive."""
    cost: float = Field(..., gt=0, alias="valorCosto")


class LineItemUpdate(BaseModel):
    """Partial edit. ``None`` means "leave unchanged"; the total is always recomputed."""
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    name: Optional[str] = Field(None, alias="producto")
    quantity: Optional[int] = Field(None, ge=1, alias="cantidad")
    presentation: Optional[str] = Field(None, alias="presentacion")
    category: Optional[str] = Field(None, alias="categoria")
    cost: Optional[float] = Field(None, gt=0, alias="valorCosto")
    margin: Optional[float] = Field(None, ge=0, alias="margen")
    taxes: Optional[List[TaxRate]] = Field(None, alias="impuestos")
    additional_costs: Optional[List[AdditionalCost]] = Field(None, alias="costosAdicionales")


class LineItem(BaseModel):
    """
    One priced product row.

    ``total`` is derived: after any create/update/adjust it equals
    ``compose_total(cost, margin, taxes, additional_costs)`` (adjustments by
    margin recompute it from cost and margin only). Margin is unconstrained
    because a proportional cut can push it below zero.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    item: int = Field(..., description="Sequential display index")
    name: str = Field("", alias="producto")
    quantity: int = Field(1, alias="cantidad")
    presentation: str = Field("UNIDAD", alias="presentacion")
    category: str = Field("otros", alias="categoria")
    cost: float = Field(0.0, alias="valorCosto")
    margin: float = Field(0.0, alias="margen")
    total: float = Field(0.0, alias="valorTotal")
    taxes: List[TaxRate] = Field(default_factory=list, alias="impuestos")
    additional_costs: List[AdditionalCost] = Field(default_factory=list, alias="costosAdicionales")
    created_at: Optional[datetime] = Field(None, alias="fechaCreacion")
    updated_at: Optional[datetime] = Field(None, alias="fechaActualizacion")

    @property
    def subtotal(self) -> float:
        return self.total * self.quantity

    @property
    def cost_subtotal(self) -> float:
        return self.cost * self.quantity

    def to_store(self) -> dict:
        """Serialize with the persisted camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
