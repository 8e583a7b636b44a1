from game_evaluator.services.trends.providers import (
    TrendProvider,
    RawgPopularityProvider,
    WikipediaPageviewsProvider,
    RedditMentionsProvider,
    build_providers,
)
from game_evaluator.services.trends.resolver import TrendResolver, reduce_keyword

__all__ = [
    "TrendProvider",
    "RawgPopularityProvider",
    "WikipediaPageviewsProvider",
    "RedditMentionsProvider",
    "build_providers",
    "TrendResolver",
    "reduce_keyword",
]
