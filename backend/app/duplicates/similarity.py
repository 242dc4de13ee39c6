"""Deterministic name similarity used to pre-filter duplicate pairs."""

from __future__ import annotations

import re

_MULTISPACE_RE = re.compile(r"\s+")


def normalize_name(value: str) -> str:
    """Lowercase, trim, and collapse inner whitespace."""

    return _MULTISPACE_RE.sub(" ", value.strip().lower())


def token_set_similarity(left: str, right: str) -> float:
    """Return word overlap (shared / distinct) in [0, 1]."""

    left_tokens = set(normalize_name(left).split())
    right_tokens = set(normalize_name(right).split())
    if not left_tokens or not right_tokens:
        return 0.0
    intersection = len(left_tokens & right_tokens)
    union = len(left_tokens | right_tokens)
    return intersection / union if union else 0.0


def name_similarity(left: str, right: str) -> float:
    """Score two chef or restaurant names.

    Equal names score 1.0 and containment scores 0.9; anything else falls back
    to word overlap. This only bounds how many pairs reach the verifier.
    """

    norm_left = normalize_name(left)
    norm_right = normalize_name(right)
    if norm_left == norm_right:
        return 1.0
    if not norm_left or not norm_right:
        return 0.0
    if norm_left in norm_right or norm_right in norm_left:
        return 0.9
    return token_set_similarity(norm_left, norm_right)
