"""
Heuristic free-to-play / social game classification.

An app counts as a social game when the store marks it free, its title or
description mentions at least one positive keyword, and neither mentions any
negative keyword. Matching is case-insensitive substring matching, so both
Japanese forms and literal English forms are listed in the keyword policy.
"""
from typing import Any, Iterable, Mapping, Optional

from game_evaluator.core.config import settings


def _as_text(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return str(value)


def _mentions_any(haystacks: Iterable[str], keywords: Iterable[str]) -> bool:
    lowered = [k.lower() for k in keywords if k]
    return any(keyword in text for text in haystacks for keyword in lowered)


def is_social_candidate(
    app: Optional[Mapping[str, Any]],
    positive_keywords: Optional[Iterable[str]] = None,
    negative_keywords: Optional[Iterable[str]] = None
) -> bool:
    """
    Classify a raw store listing.

    Args:
        app: Store listing with "free", "title" and "description" keys
        positive_keywords: Override for SOCIAL_POSITIVE_KEYWORDS
        negative_keywords: Override for SOCIAL_NEGATIVE_KEYWORDS

    Returns:
        True when the listing looks like a free-to-play social game
    """
    if not app:
        return False

    if positive_keywords is None:
        positive_keywords = settings.SOCIAL_POSITIVE_KEYWORDS
    if negative_keywords is None:
        negative_keywords = settings.SOCIAL_NEGATIVE_KEYWORDS

    texts = (
        _as_text(app.get("title")).lower(),
        _as_text(app.get("description")).lower(),
    )

    if _mentions_any(texts, negative_keywords):
        return False
    if not _mentions_any(texts, positive_keywords):
        return False
    return bool(app.get("free"))
