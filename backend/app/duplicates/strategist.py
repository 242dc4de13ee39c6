"""Merge planning for confirmed duplicate chef pairs."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from http import client as http_client
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.duplicates.similarity import normalize_name
from app.duplicates.types import ChefProfile, ShowAppearance
from app.llm.client import CompletionClient, LLMClientError

logger = logging.getLogger(__name__)

RESULT_RANK: dict[str, int] = {"winner": 4, "finalist": 3, "contestant": 2, "judge": 1}

MERGE_SYSTEM_PROMPT = """You combine two chef records that describe the same person into one record.

Rules:
- Keep the most complete data; prefer non-null values over null.
- Prefer the longer, more informative bio.
- Keep the chef with more restaurants as the keeper.
- Deduplicate TV show appearances: the same show and season is one entry.
- Mark exactly one appearance as primary: the most prestigious result (winner > finalist > contestant > judge).

Respond with ONLY a JSON object:
{"keeperId": "<id of chef A or chef B>",
 "mergedData": {"name": str, "slug": str, "mini_bio": str|null, "photo_url": str|null,
   "instagram_handle": str|null, "james_beard_status": str|null,
   "chef_shows": [{"show_name": str, "season": str|null, "result": "winner"|"finalist"|"contestant"|"judge"|null, "is_primary": bool}]},
 "reasoning": str}"""


class MergeStrategyError(RuntimeError):
    """Raised when no valid merge decision can be produced for a pair."""


class _ShowPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    show_name: str = Field(min_length=1)
    season: str | None = None
    result: Literal["winner", "finalist", "contestant", "judge"] | None = None
    is_primary: bool = False


class _MergedDataPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    mini_bio: str | None = None
    photo_url: str | None = None
    instagram_handle: str | None = None
    james_beard_status: str | None = None
    chef_shows: list[_ShowPayload] = Field(default_factory=list)


class _MergeStrategyPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    keeperId: str = Field(min_length=1)
    mergedData: _MergedDataPayload
    reasoning: str


@dataclass(slots=True)
class ChefMergeDecision:
    """Fully resolved merge: keeper fields plus the deduplicated show union."""

    keeper_id: str
    loser_id: str
    name: str
    slug: str
    mini_bio: str | None
    photo_url: str | None
    instagram_handle: str | None
    james_beard_status: str | None
    shows: list[ShowAppearance] = field(default_factory=list)
    reasoning: str = ""

    def as_dict(self) -> dict[str, object]:
        return {
            "keeper_id": self.keeper_id,
            "loser_id": self.loser_id,
            "name": self.name,
            "slug": self.slug,
            "mini_bio": self.mini_bio,
            "photo_url": self.photo_url,
            "instagram_handle": self.instagram_handle,
            "james_beard_status": self.james_beard_status,
            "shows": [
                {
                    "show_name": show.show_name,
                    "season": show.season,
                    "result": show.result,
                    "is_primary": show.is_primary,
                }
                for show in self.shows
            ],
            "reasoning": self.reasoning,
        }


class MergeStrategist:
    """Ask the completion service how to combine a confirmed duplicate pair."""

    def __init__(self, client: CompletionClient, *, max_tokens: int = 3000) -> None:
        self._client = client
        self._max_tokens = max_tokens

    @property
    def client(self) -> CompletionClient:
        return self._client

    def decide(self, chef_a: ChefProfile, chef_b: ChefProfile) -> ChefMergeDecision:
        """Return a validated decision or raise ``MergeStrategyError``."""

        prompt = json.dumps(
            {
                "task": "Merge these two chef records.",
                "chef_a": _profile_payload(chef_a),
                "chef_b": _profile_payload(chef_b),
            },
            ensure_ascii=True,
        )
        try:
            raw = self._client.complete_json(MERGE_SYSTEM_PROMPT, prompt, max_tokens=self._max_tokens)
        except (LLMClientError, http_client.HTTPException, OSError, ValueError, TypeError) as exc:
            raise MergeStrategyError(f"Merge strategy request failed: {exc}") from exc
        try:
            validated = _MergeStrategyPayload.model_validate(raw)
        except ValidationError as exc:
            raise MergeStrategyError(f"Merge strategy failed validation: {exc}") from exc

        by_id = {chef_a.id: chef_a, chef_b.id: chef_b}
        if validated.keeperId not in by_id:
            raise MergeStrategyError(
                f"Merge strategy keeper {validated.keeperId!r} is not one of {chef_a.id!r}, {chef_b.id!r}"
            )
        keeper = by_id[validated.keeperId]
        loser = chef_b if keeper is chef_a else chef_a
        _ensure_loser_not_protected(loser)

        merged = validated.mergedData
        decision = ChefMergeDecision(
            keeper_id=keeper.id,
            loser_id=loser.id,
            name=merged.name.strip(),
            slug=merged.slug.strip(),
            mini_bio=merged.mini_bio,
            photo_url=merged.photo_url,
            instagram_handle=merged.instagram_handle,
            james_beard_status=merged.james_beard_status,
            shows=normalize_show_union(
                [
                    ShowAppearance(
                        show_name=show.show_name.strip(),
                        season=_clean_season(show.season),
                        result=show.result,
                        is_primary=show.is_primary,
                    )
                    for show in merged.chef_shows
                ]
            ),
            reasoning=validated.reasoning.strip(),
        )
        logger.info(
            "duplicates.merge_strategy keeper_id=%s loser_id=%s shows=%d",
            decision.keeper_id,
            decision.loser_id,
            len(decision.shows),
        )
        return decision


def build_rule_based_decision(keeper: ChefProfile, loser: ChefProfile, *, reasoning: str = "") -> ChefMergeDecision:
    """Apply the merge tie-break rules in code for a caller-chosen keeper."""

    def pick(keeper_value: str | None, loser_value: str | None) -> str | None:
        return keeper_value if keeper_value else loser_value

    keeper_bio = keeper.mini_bio or ""
    loser_bio = loser.mini_bio or ""
    return ChefMergeDecision(
        keeper_id=keeper.id,
        loser_id=loser.id,
        name=keeper.name,
        slug=keeper.slug,
        mini_bio=(loser.mini_bio if len(loser_bio) > len(keeper_bio) else keeper.mini_bio),
        photo_url=pick(keeper.photo_url, loser.photo_url),
        instagram_handle=pick(keeper.instagram_handle, loser.instagram_handle),
        james_beard_status=pick(keeper.james_beard_status, loser.james_beard_status),
        shows=normalize_show_union(
            [
                ShowAppearance(
                    show_name=show.show_name,
                    season=_clean_season(show.season),
                    result=show.result,
                    is_primary=False,
                )
                for show in [*keeper.shows, *loser.shows]
            ]
        ),
        reasoning=reasoning or "Rule-based merge of reviewer-selected keeper.",
    )


def show_key(show_name: str, season: str | None) -> tuple[str, str]:
    """Deduplication key for a show appearance."""

    return (normalize_name(show_name), normalize_name(season or ""))


def normalize_show_union(shows: list[ShowAppearance]) -> list[ShowAppearance]:
    """Collapse duplicate (show, season) entries and leave exactly one primary.

    When entries collide the better result wins. An explicitly flagged primary
    is kept if one exists; otherwise the most prestigious appearance is chosen.
    """

    merged: dict[tuple[str, str], ShowAppearance] = {}
    for show in shows:
        key = show_key(show.show_name, show.season)
        existing = merged.get(key)
        if existing is None:
            merged[key] = ShowAppearance(
                show_name=show.show_name,
                season=show.season,
                result=show.result,
                is_primary=show.is_primary,
            )
            continue
        if RESULT_RANK.get(show.result or "", 0) > RESULT_RANK.get(existing.result or "", 0):
            existing.result = show.result
        existing.is_primary = existing.is_primary or show.is_primary

    union = list(merged.values())
    if not union:
        return union
    flagged = [show for show in union if show.is_primary]
    candidates = flagged or union
    primary = max(candidates, key=lambda show: RESULT_RANK.get(show.result or "", 0))
    for show in union:
        show.is_primary = show is primary
    return union


def _ensure_loser_not_protected(loser: ChefProfile) -> None:
    if loser.protected:
        raise MergeStrategyError(f"Chef {loser.id} is protected and cannot be merged away automatically")


def _clean_season(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _profile_payload(profile: ChefProfile) -> dict[str, object]:
    return {
        "id": profile.id,
        "name": profile.name,
        "slug": profile.slug,
        "mini_bio": profile.mini_bio,
        "photo_url": profile.photo_url,
        "instagram_handle": profile.instagram_handle,
        "james_beard_status": profile.james_beard_status,
        "restaurant_count": profile.restaurant_count,
        "shows": [
            {"show_name": show.show_name, "season": show.season, "result": show.result}
            for show in profile.shows
        ],
    }
