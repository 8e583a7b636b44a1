"""
Trend provider strategies.

Each provider maps a keyword to a score on the 0-10 scale, or None when it
has no data. Providers may raise; the resolver treats exceptions as no data.

Scales:
- RAWG: first search hit's "added" count / 10,000
- Wikipedia: average daily pageviews over 30 days / divisor
  (1,000 for en, 500 for ja)
- Reddit: summed post scores over 30 days / 100
"""
import re
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional
from urllib.parse import quote

import httpx

from game_evaluator.core.config import settings as default_settings
from game_evaluator.core.logging import get_logger
from game_evaluator.services.http import HttpSource

logger = get_logger(__name__)

LOOKBACK_DAYS = 30

_TITLE_SEPARATORS = re.compile(r"[\s：:－–—-]+")


def format_wikipedia_title(keyword: str) -> str:
    """
    Article path segment for a keyword.

    Examples:
        >>> format_wikipedia_title("Elden Ring: Nightreign")
        'Elden_Ring_Nightreign'
    """
    return quote(_TITLE_SEPARATORS.sub("_", keyword.strip()), safe="")


class TrendProvider(HttpSource, ABC):
    """A single trend signal source."""

    name = "provider"

    def __init__(self, settings=None, **http_kwargs):
        self.settings = settings or default_settings
        http_kwargs.setdefault("timeout", self.settings.TREND_HTTP_TIMEOUT)
        http_kwargs.setdefault("max_attempts", self.settings.MAX_RETRIES)
        super().__init__(**http_kwargs)

    @abstractmethod
    async def lookup(self, keyword: str) -> Optional[float]:
        """Score for keyword, or None when the provider has nothing."""


class RawgPopularityProvider(TrendProvider):
    """Wishlist-style popularity from RAWG search."""

    name = "rawg"

    async def lookup(self, keyword: str) -> Optional[float]:
        if not self.settings.RAWG_API_KEY:
            return None

        data = await self.get_json(
            f"{self.settings.RAWG_BASE_URL}/games",
            params={"key": self.settings.RAWG_API_KEY, "search": keyword, "page_size": 5}
        )
        results = (data or {}).get("results") or []
        if not results:
            return None

        added = results[0].get("added") or 0
        return added / 10000


class WikipediaPageviewsProvider(TrendProvider):
    """
    Average daily article views for one Wikipedia language edition.

    A missing article (404) or an empty series is no data, which lets the
    resolver move on to the next locale.
    """

    def __init__(
        self,
        locale: str = "en",
        divisor: float = 1000.0,
        settings=None,
        today: Callable[[], date] = None,
        **http_kwargs
    ):
        super().__init__(settings=settings, **http_kwargs)
        self.locale = locale
        self.divisor = divisor
        self.name = f"wikipedia_{locale}"
        self._today = today or (lambda: datetime.now(timezone.utc).date())
        self.headers = {
            "User-Agent": self.settings.TREND_USER_AGENT,
            "Api-User-Agent": self.settings.TREND_USER_AGENT,
            "Accept": "application/json",
        }

    def article_url(self, keyword: str) -> str:
        end = self._today()
        start = end - timedelta(days=LOOKBACK_DAYS)
        return (
            f"{self.settings.WIKIPEDIA_PAGEVIEWS_URL}/per-article/{self.locale}.wikipedia/"
            f"all-access/user/{format_wikipedia_title(keyword)}/daily/"
            f"{start:%Y%m%d}/{end:%Y%m%d}"
        )

    async def lookup(self, keyword: str) -> Optional[float]:
        try:
            data = await self.get_json(self.article_url(keyword), headers=self.headers)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise

        items = (data or {}).get("items") or []
        if not items:
            return None

        average_daily = sum(item.get("views") or 0 for item in items) / len(items)
        return average_daily / self.divisor


class RedditMentionsProvider(TrendProvider):
    """Summed upvotes of recent posts mentioning the keyword."""

    name = "reddit"

    def __init__(self, settings=None, now: Callable[[], datetime] = None, **http_kwargs):
        super().__init__(settings=settings, **http_kwargs)
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.headers = {"User-Agent": self.settings.TREND_USER_AGENT, "Accept": "application/json"}

    async def lookup(self, keyword: str) -> Optional[float]:
        data = await self.get_json(
            self.settings.REDDIT_SEARCH_URL,
            params={"q": keyword, "sort": "new", "limit": 100, "t": "month"},
            headers=self.headers
        )
        posts = ((data or {}).get("data") or {}).get("children") or []
        cutoff = (self._now() - timedelta(days=LOOKBACK_DAYS)).timestamp()

        total = sum(
            (post.get("data") or {}).get("score") or 0
            for post in posts
            if ((post.get("data") or {}).get("created_utc") or 0) > cutoff
        )
        return total / 100 if total else None


def build_providers(settings=None, names: Optional[List[str]] = None) -> List[TrendProvider]:
    """
    Build the provider chain in configured order.

    Known names: rawg, wikipedia_en, wikipedia_ja, reddit. Unknown names are
    logged and skipped.
    """
    settings = settings or default_settings
    names = names if names is not None else settings.TREND_PROVIDERS

    factories = {
        "rawg": lambda: RawgPopularityProvider(settings=settings),
        "wikipedia_en": lambda: WikipediaPageviewsProvider("en", 1000.0, settings=settings),
        "wikipedia_ja": lambda: WikipediaPageviewsProvider("ja", 500.0, settings=settings),
        "reddit": lambda: RedditMentionsProvider(settings=settings),
    }

    providers = []
    for name in names:
        factory = factories.get(name)
        if factory is None:
            logger.warning(f"Unknown trend provider '{name}', skipping")
            continue
        providers.append(factory())
    return providers
