"""URL slug helpers."""

from __future__ import annotations

import re

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.base import Base

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _NON_SLUG_RE.sub("-", value.lower()).strip("-")


def restaurant_slug(name: str, city: str | None = None) -> str:
    """Restaurant slugs combine name and city so same-name locations stay distinct."""

    base = slugify(name)
    if city:
        city_slug = slugify(city)
        if city_slug:
            return f"{base}-{city_slug}"
    return base


def unique_slug(db: Session, model: type[Base], base_slug: str, *, exclude_id: str | None = None) -> str:
    """Return ``base_slug`` or the first free ``base_slug-N`` for ``model``."""

    base = base_slug or "untitled"
    taken = {
        slug
        for slug, record_id in db.execute(
            select(model.slug, model.id).where(model.slug.like(f"{base}%"))  # type: ignore[attr-defined]
        )
        if record_id != exclude_id
    }
    if base not in taken:
        return base
    suffix = 2
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"
