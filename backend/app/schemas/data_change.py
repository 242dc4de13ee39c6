"""Audit log schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ChangeType = Literal["insert", "update", "delete"]
ChangeSource = Literal["automated_pipeline", "human_review", "manual_edit", "admin_approval"]


class DataChangeCreate(BaseModel):
    """Validated audit entry before it is written."""

    table_name: str = Field(min_length=1, max_length=64)
    record_id: str | None = None
    change_type: ChangeType
    old_data: dict[str, object] | None = None
    new_data: dict[str, object] | None = None
    source: ChangeSource
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("table_name is required")
        return cleaned


class DataChangeRead(BaseModel):
    """Serialized audit entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    table_name: str
    record_id: str | None
    change_type: str
    old_data_json: dict[str, object] | None
    new_data_json: dict[str, object] | None
    source: str
    confidence: float | None
    created_at: datetime
