"""Duplicate review and merge schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MergeRequest(BaseModel):
    """Reviewer merge choice for one duplicate group.

    Accepts ``{groupId, keeperIds, loserIds}`` or the two-record
    ``{winnerId, loserId}`` form.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    group_id: str | None = Field(default=None, alias="groupId", min_length=1)
    keeper_ids: list[str] = Field(default_factory=list, alias="keeperIds")
    loser_ids: list[str] = Field(default_factory=list, alias="loserIds")
    winner_id: str | None = Field(default=None, alias="winnerId", min_length=1)
    loser_id: str | None = Field(default=None, alias="loserId", min_length=1)
    resolved_by: str | None = Field(default=None, alias="resolvedBy")

    @model_validator(mode="after")
    def normalize_legacy_shape(self) -> "MergeRequest":
        if self.winner_id is not None or self.loser_id is not None:
            if self.keeper_ids or self.loser_ids:
                raise ValueError("Use either keeperIds/loserIds or winnerId/loserId, not both.")
            if self.winner_id is None or self.loser_id is None:
                raise ValueError("winnerId and loserId are both required.")
            self.keeper_ids = [self.winner_id]
            self.loser_ids = [self.loser_id]
            return self
        if self.group_id is None:
            raise ValueError("groupId is required.")
        if not self.keeper_ids:
            raise ValueError("At least one keeper id is required.")
        return self


class KeepAllRequest(BaseModel):
    """Reviewer decision that a group is not a duplicate."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    group_id: str = Field(alias="groupId", min_length=1)
    resolved_by: str | None = Field(default=None, alias="resolvedBy")


class DuplicateMemberRead(BaseModel):
    """One record inside a duplicate group."""

    id: str
    name: str
    slug: str
    city: str | None = None
    state: str | None = None
    address: str | None = None
    status: str | None = None
    protected: bool = False
    completeness_score: int
    recommended: bool
    details: dict[str, object] = Field(default_factory=dict)


class DuplicateGroupRead(BaseModel):
    """Pending duplicate group with a recommended keeper set."""

    group_id: str
    entity_type: Literal["chef", "restaurant"]
    confidence: float
    similarity: float
    reasoning: str | None
    status: str
    members: list[DuplicateMemberRead]
    recommended_keeper_ids: list[str]


class MergedRecordRead(BaseModel):
    id: str
    name: str


class MergeResultRead(BaseModel):
    """Outcome of a reviewer-triggered merge."""

    group_id: str | None
    entity_type: Literal["chef", "restaurant"]
    kept: int
    hidden: int
    keepers: list[MergedRecordRead]
    merged: list[MergedRecordRead]
    restaurants_transferred: int = 0
    shows_inserted: int = 0


class KeepAllResultRead(BaseModel):
    group_id: str
    status: str
