"""Merging and filtering of multi-source candidates.

Collectors are enumerated in a fixed priority order (richer sources first), so
merging keeps the first record seen for each identity key and drops later
duplicates instead of merging them field by field.
"""
from typing import Iterable, List

from game_evaluator.core.logging import get_logger
from game_evaluator.models.domain import CandidateRecord
from game_evaluator.services.pipeline.identity import identify

logger = get_logger(__name__)

DEFAULT_QUALITY_THRESHOLD = 60.0


def merge(candidates: Iterable[CandidateRecord]) -> List[CandidateRecord]:
    """
    Fold candidates into one list keyed by identity, first seen wins.

    Args:
        candidates: Candidates in collector priority order

    Returns:
        Unique candidates, input order preserved
    """
    seen = {}
    dropped = 0

    for candidate in candidates:
        key = identify(candidate)
        if key in seen:
            dropped += 1
            continue
        seen[key] = candidate

    if dropped:
        logger.info(f"Dropped {dropped} duplicate candidates ({len(seen)} unique)")

    return list(seen.values())


def passes_quality(candidate: CandidateRecord, threshold: float = DEFAULT_QUALITY_THRESHOLD) -> bool:
    """Unrated candidates pass; rated ones need quality_signal >= threshold."""
    if candidate.quality_signal is None:
        return True
    return candidate.quality_signal >= threshold


def quality_prefilter(
    candidates: Iterable[CandidateRecord],
    threshold: float = DEFAULT_QUALITY_THRESHOLD
) -> List[CandidateRecord]:
    """Drop candidates whose critic score is known and below the threshold."""
    return [c for c in candidates if passes_quality(c, threshold)]


def select_trend_candidates(
    candidates: List[CandidateRecord],
    scored_limit: int = 15,
    total_limit: int = 20
) -> List[CandidateRecord]:
    """
    Pick the subset of candidates worth a trend lookup.

    Rated candidates are taken first, best score first, up to scored_limit;
    the remaining slots up to total_limit go to unrated candidates (likely
    unreleased titles) in input order.
    """
    scored = sorted(
        (c for c in candidates if c.quality_signal is not None),
        key=lambda c: c.quality_signal,
        reverse=True
    )
    unscored = [c for c in candidates if c.quality_signal is None]

    top_scored = scored[:min(len(scored), scored_limit)]
    remaining = max(total_limit - len(top_scored), 0)
    return top_scored + unscored[:remaining]
