"""
Key-value persistence for the budget stores.

Each store is one JSON value under a fixed key, wrapped the way the browser
stores persisted it: ``{"state": {...}, "version": n}``. The product store
lives under ``pic-product-store`` and the export config under
``excel-config-storage``; backups read and write the raw keys.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from pic_budget import config as cfg
from pic_budget.models.orm_models import KeyValueEntry

logger = logging.getLogger("pic-budget.repository")

_PRODUCT_STORE_VERSION = 0
_CONFIG_STORE_VERSION = 1


class Repository(ABC):
    """Async key-value store plus typed accessors for the two budget stores."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...

    @abstractmethod
    async def dump(self) -> Dict[str, Any]:
        """Every stored key with its value."""

    # ── Product store ────────────────────────────────────────────────────────
    async def load(self) -> Optional[Dict[str, Any]]:
        stored = await self.get(cfg.STORE_KEY_PRODUCTS)
        if not isinstance(stored, dict):
            return None
        state = stored.get("state", stored)
        return state if isinstance(state, dict) else None

    async def save(self, snapshot: Dict[str, Any]) -> None:
        await self.put(cfg.STORE_KEY_PRODUCTS, {"state": snapshot, "version": _PRODUCT_STORE_VERSION})

    # ── Export config store ──────────────────────────────────────────────────
    async def load_config(self) -> Optional[Dict[str, Any]]:
        stored = await self.get(cfg.STORE_KEY_EXCEL_CONFIG)
        if not isinstance(stored, dict):
            return None
        state = stored.get("state", stored)
        flat = state.get("excelConfig") if isinstance(state, dict) else None
        return flat if isinstance(flat, dict) else None

    async def save_config(self, flat_config: Dict[str, Any]) -> None:
        await self.put(
            cfg.STORE_KEY_EXCEL_CONFIG,
            {"state": {"excelConfig": flat_config}, "version": _CONFIG_STORE_VERSION},
        )


class InMemoryRepository(Repository):
    """Process-local store; used by tests and when no database is wanted."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def put(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def dump(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)


class SqlKeyValueRepository(Repository):
    """One row per key in ``key_value_store`` (SQLite via aiosqlite by default)."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[Any]:
        async with self.session_factory() as session:
            entry = await session.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

    async def put(self, key: str, value: Any) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                entry = await session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=value))
                else:
                    entry.value = value
        logger.debug(f"Stored key '{key}'")

    async def remove(self, key: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))

    async def dump(self) -> Dict[str, Any]:
        async with self.session_factory() as session:
            result = await session.execute(select(KeyValueEntry).order_by(KeyValueEntry.key))
            return {entry.key: entry.value for entry in result.scalars()}
