"""
Backup / restore of the whole key-value store.

A backup is one JSON document: a metadata block plus every stored key sorted
into the config / products / ui / other buckets. Restoring validates and
re-prices the product rows first; only then is anything written, so a bad
backup leaves the store untouched and hand-edited totals never survive.
"""
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, List, Optional

from pydantic import ValidationError

from pic_budget import config as cfg
from pic_budget.exceptions import ImportValidationError
from pic_budget.models.backup import BackupDocument, BackupMetadata
from pic_budget.models.line_item import LineItem
from pic_budget.services.import_mapping import describe_validation_error
from pic_budget.services.perf_monitor import timed_async
from pic_budget.services.pricing_engine import price_line_item
from pic_budget.services.repository import Repository

logger = logging.getLogger("pic-budget.backup")


def bucket_for(key: str) -> str:
    """Bucket a stored key by substring match against the known key lists."""
    for bucket, known in cfg.BACKUP_BUCKETS.items():
        if any(k in key for k in known):
            return bucket
    return "other"


def _serialized_size(value: Any) -> int:
    return len(json.dumps(value, ensure_ascii=False).encode("utf-8"))


def backup_file_name(today: Optional[date] = None) -> str:
    return f"respaldo_sistema_pic_{(today or date.today()).isoformat()}.json"


async def build_backup(repo: Repository, now: Optional[datetime] = None) -> BackupDocument:
    stored = await repo.dump()
    buckets = {"config": {}, "products": {}, "ui": {}, "other": {}}
    total_size = 0
    for key, value in stored.items():
        total_size += _serialized_size(value)
        buckets[bucket_for(key)][key] = value

    metadata = BackupMetadata(
        version=cfg.BACKUP_VERSION,
        timestamp=now or datetime.now(timezone.utc),
        app_name=cfg.APP_NAME,
        total_items=len(stored),
        total_size=total_size,
    )
    logger.info(f"Backup built: {len(stored)} keys, {total_size} bytes")
    return BackupDocument(metadata=metadata, **buckets)


def extract_line_items(doc: BackupDocument) -> Optional[List[LineItem]]:
    """
    First product array found in the products bucket, known keys first.

    Accepts a bare list, ``{"productos": [...]}`` or the persisted store
    ``{"state": {"productos": [...]}}``. Every total is recomputed.

    Raises:
        ImportValidationError: one or more rows are not valid line items;
                               ``errors`` lists each bad row.
    """
    ordered = [k for k in cfg.BACKUP_BUCKETS["products"] if k in doc.products]
    ordered += [k for k in doc.products if k not in ordered]

    for key in ordered:
        rows = _product_rows(doc.products[key])
        if rows is None:
            continue
        items: List[LineItem] = []
        errors: List[str] = []
        for index, row in enumerate(rows, start=1):
            try:
                items.append(price_line_item(LineItem.model_validate(row)))
            except ValidationError as e:
                errors.append(f"Row {index}: {describe_validation_error(e)}")
        if errors:
            logger.warning(f"Backup rejected: {len(errors)} invalid product rows under '{key}'")
            raise ImportValidationError(f"Backup products under '{key}' are invalid", errors)
        return items
    return None


def _product_rows(value: Any) -> Optional[list]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        state = value.get("state", value)
        if isinstance(state, dict) and isinstance(state.get("productos"), list):
            return state["productos"]
    return None


@dataclass
class RestoreReport:
    keys_restored: int
    items_restored: int


@timed_async
async def restore_backup(repo: Repository, doc: BackupDocument) -> RestoreReport:
    """
    Write every bucketed key back, replacing the product store with the
    re-priced collection. Product rows are validated before the first write.
    """
    items = extract_line_items(doc)

    keys = 0
    for bucket in (doc.config, doc.products, doc.ui, doc.other):
        for key, value in bucket.items():
            keys += 1
            if items is not None and key == cfg.STORE_KEY_PRODUCTS:
                continue
            await repo.put(key, value)

    if items is not None:
        await repo.save({
            "productos": [i.to_store() for i in items],
            "productosOriginales": [i.to_store() for i in items],
            "contadorItems": max((i.item for i in items), default=0) + 1,
        })

    report = RestoreReport(keys_restored=keys, items_restored=len(items or []))
    logger.info(f"Backup restored: {report.keys_restored} keys, {report.items_restored} line items")
    return report
