"""
Scraped release-calendar collector (optional, ENABLE_SCRAPING).

Each ScrapeSource describes one HTML page with CSS selectors for the item
container and its fields. Site layouts drift, so zero matches is logged and
treated as an empty result rather than an error.

Check robots.txt and the site's terms before enabling a source.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from game_evaluator.core.logging import get_logger
from game_evaluator.models import CandidateRecord, CollectionWindow, GameType
from game_evaluator.services.collectors.base import BaseCollector, normalize_date, normalize_platforms

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScrapeSource:
    """One scrapeable release calendar page."""

    name: str
    url: str
    item_selector: str
    title_selector: str
    date_selector: Optional[str] = None
    platform_selector: Optional[str] = None
    link_selector: Optional[str] = "a"
    game_type: GameType = GameType.CONSUMER


DEFAULT_SOURCES = (
    ScrapeSource(
        name="4gamer",
        url="https://www.4gamer.net/games/000/G000000/release/",
        item_selector=".release-item",
        title_selector=".title",
        date_selector=".date",
        platform_selector=".platform",
    ),
)


def _select_text(element, selector: Optional[str]) -> str:
    if not selector:
        return ""
    found = element.select_one(selector)
    return found.get_text(strip=True) if found else ""


class ScrapedReleaseCollector(BaseCollector):
    """Release dates scraped from HTML calendars."""

    provider_name = "scraper"

    def __init__(self, settings=None, sources: Optional[Sequence[ScrapeSource]] = None, **kwargs):
        super().__init__(settings=settings, **kwargs)
        self.sources = tuple(sources) if sources is not None else DEFAULT_SOURCES
        self.headers = {"User-Agent": self.settings.SCRAPING_USER_AGENT}

    def default_delay(self) -> float:
        return self.settings.SCRAPING_DELAY

    async def _collect(self, window: CollectionWindow, records: List[CandidateRecord]) -> None:
        for index, source in enumerate(self.sources):
            if index:
                await self.delay()
            try:
                html = await self.get_text(source.url, headers=self.headers)
            except Exception as e:
                logger.error(f"Error scraping {source.name}: {e}")
                continue

            found = self.parse(source, html)
            if not found:
                logger.warning(f"No releases matched on {source.name} ({source.item_selector})")
            records.extend(found)

    def parse(self, source: ScrapeSource, html: str) -> List[CandidateRecord]:
        """Extract candidates from one page of HTML."""
        soup = BeautifulSoup(html, "html.parser")
        records = []

        for element in soup.select(source.item_selector):
            title = _select_text(element, source.title_selector)
            if not title:
                continue

            link = element.select_one(source.link_selector) if source.link_selector else None
            href = link.get("href") if link else None
            platform = _select_text(element, source.platform_selector)

            records.append(CandidateRecord(
                title=title,
                game_type=source.game_type,
                release_date=normalize_date(_select_text(element, source.date_selector)),
                platforms=normalize_platforms([platform]),
                source_url=urljoin(source.url, href) if href else None,
                provider=f"{self.provider_name}:{source.name}",
            ))

        return records
