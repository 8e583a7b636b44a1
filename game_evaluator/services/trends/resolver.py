"""
Cascading trend resolution.

Providers are consulted in order and the first positive score wins; later
providers are not called. A provider that raises counts as having no data.
A candidate no provider knows about scores 0.
"""
import re
from typing import Iterable, List, Optional

from game_evaluator.core.logging import get_logger
from game_evaluator.core.metrics import trend_lookups_total
from game_evaluator.models import CandidateRecord
from game_evaluator.services.trends.providers import TrendProvider

logger = get_logger(__name__)

MAX_TREND_SCORE = 10.0

_KEYWORD_SPLIT = re.compile(r"[\s:：-]+")


def reduce_keyword(title: str, max_length: int = 30) -> str:
    """
    Keyword used for trend lookups.

    Long titles are reduced to their first word, which is usually the
    series name.

    Examples:
        >>> reduce_keyword("Elden Ring")
        'Elden Ring'
        >>> reduce_keyword("Dragon Quest III HD-2D Remake: The Journey")
        'Dragon'
    """
    title = (title or "").strip()
    if len(title) > max_length:
        words = [w for w in _KEYWORD_SPLIT.split(title) if w]
        if len(words) > 1:
            return words[0]
    return title


def clamp_trend(value: float) -> float:
    return min(max(float(value), 0.0), MAX_TREND_SCORE)


class TrendResolver:
    """
    Resolve a trend score through an ordered provider chain.

    Args:
        providers: TrendProvider instances, highest priority first
        max_keyword_length: Titles longer than this are reduced to one word
    """

    def __init__(self, providers: Iterable[TrendProvider], max_keyword_length: int = 30):
        self.providers: List[TrendProvider] = list(providers)
        self.max_keyword_length = max_keyword_length

    def keyword_for(self, candidate: CandidateRecord) -> str:
        return reduce_keyword(candidate.title, self.max_keyword_length)

    async def _lookup(self, provider: TrendProvider, keyword: str) -> Optional[float]:
        try:
            score = await provider.lookup(keyword)
        except Exception as e:
            trend_lookups_total.labels(provider=provider.name, outcome="error").inc()
            logger.warning(f"{provider.name} trend lookup failed for '{keyword}': {e}")
            return None

        if score is None or score <= 0:
            trend_lookups_total.labels(provider=provider.name, outcome="miss").inc()
            return None

        trend_lookups_total.labels(provider=provider.name, outcome="hit").inc()
        return score

    async def trend_score(self, candidate: CandidateRecord) -> float:
        """
        Trend score in [0, 10] for a candidate. Never raises.
        """
        keyword = self.keyword_for(candidate)
        if not keyword:
            return 0.0

        for provider in self.providers:
            score = await self._lookup(provider, keyword)
            if score is not None:
                score = clamp_trend(score)
                logger.info(f"Trend score for '{keyword}': {score:.2f} (from {provider.name})")
                return score

        logger.info(f"No trend data found for '{keyword}', using score 0")
        return 0.0

    async def close(self) -> None:
        for provider in self.providers:
            try:
                await provider.close()
            except Exception as e:
                logger.debug(f"Error closing {provider.name}: {e}")
