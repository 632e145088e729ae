"""
conftest.py — Shared pytest fixtures for the PIC budget backend test suite.

Most tests are pure unit tests over the pricing, adjustment, aggregation and
workbook modules. API tests run the FastAPI app against an in-memory
repository, so no database file is touched unless a test asks for one.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``pic_budget.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
from datetime import date

import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any package imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


FIXED_DATE = date(2025, 3, 5)


def make_item(n, name="Cuaderno A4", quantity=10, category="papeleria", cost=1500.0,
              margin=25.0, total=None, presentation="UNIDAD", **extra):
    """LineItem with ``total`` defaulting to cost × (1 + margin/100)."""
    from pic_budget.models.line_item import LineItem
    if total is None:
        total = cost * (1 + margin / 100.0)
    return LineItem(
        id=f"prod-{n}", item=n, name=name, quantity=quantity, presentation=presentation,
        category=category, cost=cost, margin=margin, total=total, **extra,
    )


# ---------------------------------------------------------------------------
# Line item fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def demo_items():
    """
    The three demo items:
      Cuaderno A4     1500 × 1.25 = 1875,  qty 10 → 18 750
      Bolígrafo Azul   500 × 1.30 =  650,  qty 50 → 32 500
      Arroz 500g      2000 × 1.15 = 2300,  qty 20 → 46 000
    Budget 97 250, cost 80 000.
    """
    return [
        make_item(1, "Cuaderno A4", 10, "papeleria", 1500.0, 25.0),
        make_item(2, "Bolígrafo Azul", 50, "papeleria", 500.0, 30.0),
        make_item(3, "Arroz 500g", 20, "alimentos", 2000.0, 15.0, presentation="Paquete"),
    ]


@pytest.fixture
def two_items():
    """A: cost 100, margin 20, qty 2 (total 120). B: cost 50, margin 10, qty 4 (total 55). Budget 460."""
    return [
        make_item(1, "A", 2, "papeleria", 100.0, 20.0),
        make_item(2, "B", 4, "alimentos", 50.0, 10.0),
    ]


# ---------------------------------------------------------------------------
# Workbook config fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def export_config():
    """Default export config with an entity name and a fixed document date (valid as-is)."""
    from pic_budget.models.workbook_config import WorkbookConfig
    config = WorkbookConfig()
    return config.model_copy(update={
        "headers": config.headers.model_copy(update={
            "entity_name": "E.S.E. HOSPITAL SAN RAFAEL",
            "document_date": FIXED_DATE,
        }),
    })


@pytest.fixture
def bare_config(export_config):
    """No header blocks at all; only the always-present spacers remain above the table."""
    headers = export_config.headers.model_copy(update={
        "include_contract": False,
        "include_entity": False,
        "include_category": False,
        "include_date": False,
        "include_responsible": False,
    })
    return export_config.model_copy(update={"headers": headers})


# ---------------------------------------------------------------------------
# Tracker isolation
# ---------------------------------------------------------------------------

@pytest.fixture
def fresh_tracker():
    from pic_budget.services.perf_monitor import tracker
    tracker.reset()
    yield tracker
    tracker.reset()


@pytest.fixture
def item_factory():
    """Callable building LineItems; see ``make_item``."""
    return make_item
