"""
Source collectors, one adapter per external provider.

Collectors are listed in priority order; the deduplicator keeps the first
record seen for an identity key, so earlier collectors win.
"""
from game_evaluator.services.collectors.base import BaseCollector
from game_evaluator.services.collectors.rawg_collector import RawgCollector
from game_evaluator.services.collectors.steam_collector import SteamCollector
from game_evaluator.services.collectors.play_store_collector import PlayStoreCollector
from game_evaluator.services.collectors.scraper import ScrapedReleaseCollector, ScrapeSource

__all__ = [
    "BaseCollector",
    "RawgCollector",
    "SteamCollector",
    "PlayStoreCollector",
    "ScrapedReleaseCollector",
    "ScrapeSource",
    "build_default_collectors",
]


def build_default_collectors(settings=None):
    """Instantiate the enabled collectors in priority order."""
    from game_evaluator.core.config import settings as default_settings

    settings = settings or default_settings
    collectors = [
        RawgCollector(settings=settings),
        SteamCollector(settings=settings),
        PlayStoreCollector(settings=settings),
    ]
    if settings.ENABLE_SCRAPING:
        collectors.append(ScrapedReleaseCollector(settings=settings))
    return collectors
