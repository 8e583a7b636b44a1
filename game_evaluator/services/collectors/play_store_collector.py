"""
Google Play collector for free-to-play social games.

google-play-scraper is synchronous, so every call runs in the default
executor to keep the event loop free.
"""
import asyncio
import functools
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

from google_play_scraper import app as play_app
from google_play_scraper import search as play_search

from game_evaluator.core.logging import get_logger
from game_evaluator.models import CandidateRecord, CollectionWindow, EvaluationType, GameType
from game_evaluator.services.collectors.base import (
    BaseCollector,
    clean_description,
    join_names,
    normalize_date,
)
from game_evaluator.services.collectors.social_classifier import is_social_candidate

logger = get_logger(__name__)


class PlayStoreCollector(BaseCollector):
    """
    Social game releases and updates from Google Play.

    Args:
        search_fn: Replacement for google_play_scraper.search
        app_fn: Replacement for google_play_scraper.app
    """

    provider_name = "google_play"

    def __init__(
        self,
        settings=None,
        search_fn: Callable[..., List[Dict[str, Any]]] = play_search,
        app_fn: Callable[..., Dict[str, Any]] = play_app,
        **kwargs
    ):
        super().__init__(settings=settings, **kwargs)
        self._search = search_fn
        self._app = app_fn

    def default_delay(self) -> float:
        return self.settings.PLAY_STORE_REQUEST_DELAY

    async def _run_blocking(self, fn: Callable, *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    async def _collect(self, window: CollectionWindow, records: List[CandidateRecord]) -> None:
        limit = self.settings.PLAY_STORE_LIMIT
        seen = set()

        for query in self.settings.PLAY_STORE_QUERIES:
            if len(records) >= limit:
                break
            try:
                hits = await self._run_blocking(
                    self._search,
                    query,
                    lang=self.settings.PLAY_STORE_LANG,
                    country=self.settings.PLAY_STORE_COUNTRY,
                    n_hits=self.settings.PLAY_STORE_HITS_PER_QUERY,
                )
            except Exception as e:
                logger.error(f"Google Play search failed for '{query}': {e}")
                continue

            for hit in hits or []:
                if len(records) >= limit:
                    break
                app_id = (hit or {}).get("appId")
                if not app_id or app_id in seen:
                    continue
                seen.add(app_id)

                record = await self.fetch_candidate(app_id, window)
                if record is not None:
                    records.append(record)
                await self.delay(self.settings.PLAY_STORE_DETAIL_DELAY)

            await self.delay()

    async def fetch_candidate(self, app_id: str, window: CollectionWindow) -> Optional[CandidateRecord]:
        """Fetch app details and classify; None when the app does not qualify."""
        try:
            details = await self._run_blocking(
                self._app,
                app_id,
                lang=self.settings.PLAY_STORE_LANG,
                country=self.settings.PLAY_STORE_COUNTRY,
            )
        except Exception as e:
            logger.warning(f"Failed to fetch Google Play details for {app_id}: {e}")
            return None

        if not isinstance(details, dict) or not is_social_candidate(details):
            return None

        start = window.reference_date - timedelta(days=window.lookback_days)
        released = normalize_date(details.get("released"))
        updated = normalize_date(details.get("updated"))

        if _within(released, start, window.reference_date):
            return self.to_candidate(app_id, details, released, EvaluationType.NEW_RELEASE)
        if _within(updated, start, window.reference_date):
            return self.to_candidate(app_id, details, updated, EvaluationType.UPDATE)
        return None

    def to_candidate(
        self,
        app_id: str,
        details: Dict[str, Any],
        record_date: date,
        kind: EvaluationType
    ) -> CandidateRecord:
        screenshots = details.get("screenshots") or []
        developer = details.get("developer")
        genre = details.get("genre")
        installs = details.get("installs")
        return CandidateRecord(
            title=details.get("title") or app_id,
            game_type=GameType.SOCIAL,
            release_date=record_date,
            developer=developer,
            publisher=developer,
            platforms=("Android",),
            description=clean_description(details.get("description")),
            image_url=details.get("icon") or (screenshots[0] if screenshots else None),
            source_url=details.get("url") or f"https://play.google.com/store/apps/details?id={app_id}",
            provider=self.provider_name,
            provider_native_id=app_id,
            record_kind=kind,
            genres=(genre,) if genre else (),
            rating=details.get("score"),
            version=details.get("version") if kind == EvaluationType.UPDATE else None,
            installs=join_names(installs) if isinstance(installs, (list, tuple)) else installs,
        )


def _within(value: Optional[date], start: date, end: date) -> bool:
    return value is not None and start <= value <= end
