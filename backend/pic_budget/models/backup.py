"""Backup document shape: a metadata block plus four key-value buckets."""
from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BackupMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str
    timestamp: datetime
    app_name: str
    total_items: int = 0
    total_size: int = 0          # bytes of serialized bucket values


class BackupDocument(BaseModel):
    metadata: BackupMetadata
    config: Dict[str, Any] = Field(default_factory=dict)
    products: Dict[str, Any] = Field(default_factory=dict)
    ui: Dict[str, Any] = Field(default_factory=dict)
    other: Dict[str, Any] = Field(default_factory=dict)
