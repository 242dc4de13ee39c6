"""Staged discovery approval schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ApproveRequest(BaseModel):
    """Admin decision for one staged discovery."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    action: Literal["approve", "reject"]
    reviewed_by: str | None = None


class ApproveResult(BaseModel):
    success: bool
    message: str
    entity_id: str | None = None


class ExistingRestaurantRef(BaseModel):
    id: str = Field(min_length=1)
    name: str


class NewRestaurantRef(BaseModel):
    name: str
    city: str | None = None


class PotentialDuplicateData(BaseModel):
    action: Literal["potential_duplicate"]
    existing_restaurant: ExistingRestaurantRef
    new_restaurant: NewRestaurantRef | None = None


class NotFoundData(BaseModel):
    action: Literal["not_found_by_llm"]
    restaurant_id: str = Field(min_length=1)
    restaurant_name: str


class NewRestaurantData(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default=None, max_length=100)
    address: str | None = Field(default=None, max_length=500)
    ownership: str | None = None
    price_range: str | None = None
    status: str | None = None


class ShowData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    show_name: str | None = Field(default=None, alias="showName", min_length=1, max_length=200)
    name: str | None = Field(default=None, min_length=1, max_length=200)
    season: str | None = Field(default=None, max_length=50)
    result: str | None = None
    performance_blurb: str | None = Field(default=None, alias="performanceBlurb", max_length=1000)

    @model_validator(mode="after")
    def validate_has_name(self) -> "ShowData":
        if not (self.show_name or self.name):
            raise ValueError("Either showName or name is required")
        return self

    @property
    def resolved_name(self) -> str:
        return (self.show_name or self.name or "").strip()


class ChefData(BaseModel):
    name: str = Field(min_length=1, max_length=200)
