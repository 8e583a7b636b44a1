"""
RAWG release-catalog collector.

Two /games queries per run: upcoming releases (reference date to
+lookahead, most-added first) and recent releases (-lookback to reference
date, newest first).
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional

from game_evaluator.core.logging import get_logger
from game_evaluator.models import CandidateRecord, CollectionWindow, EvaluationType, GameType
from game_evaluator.services.collectors.base import (
    BaseCollector,
    clean_description,
    join_names,
    normalize_date,
    normalize_platforms,
)

logger = get_logger(__name__)


class RawgCollector(BaseCollector):
    """Consumer game releases from the RAWG API."""

    provider_name = "rawg"

    def default_delay(self) -> float:
        return self.settings.RAWG_REQUEST_DELAY

    async def _collect(self, window: CollectionWindow, records: List[CandidateRecord]) -> None:
        if not self.settings.RAWG_API_KEY:
            logger.warning("RAWG_API_KEY not set, skipping RAWG collection")
            return

        start = window.reference_date
        queries = [
            ("upcoming", start, start + timedelta(days=window.lookahead_days), "-added"),
            ("recently released", start - timedelta(days=window.lookback_days), start, "-released"),
        ]

        for index, (label, date_from, date_to, ordering) in enumerate(queries):
            if index:
                await self.delay()
            logger.info(f"Fetching {label} games from RAWG ({date_from} to {date_to})")
            games = await self.fetch_games(date_from, date_to, ordering)
            records.extend(games)
            logger.info(f"Found {len(games)} {label} games")

    async def fetch_games(self, date_from, date_to, ordering: str) -> List[CandidateRecord]:
        data = await self.get_json(
            f"{self.settings.RAWG_BASE_URL}/games",
            params={
                "key": self.settings.RAWG_API_KEY,
                "dates": f"{date_from.isoformat()},{date_to.isoformat()}",
                "platforms": self.settings.RAWG_PLATFORMS,
                "ordering": ordering,
                "page_size": self.settings.RAWG_PAGE_SIZE,
            }
        )
        results = (data or {}).get("results") or []
        return [record for record in map(self.to_candidate, results) if record is not None]

    def to_candidate(self, raw: Dict[str, Any]) -> Optional[CandidateRecord]:
        """Map one RAWG game object; games without a name are skipped."""
        title = raw.get("name")
        if not title:
            return None

        metacritic = raw.get("metacritic")
        return CandidateRecord(
            title=title,
            game_type=GameType.CONSUMER,
            release_date=normalize_date(raw.get("released")),
            developer=join_names(d.get("name") for d in raw.get("developers") or []),
            publisher=join_names(p.get("name") for p in raw.get("publishers") or []),
            platforms=normalize_platforms(
                (p.get("platform") or {}).get("name") for p in raw.get("platforms") or []
            ),
            description=clean_description(raw.get("description_raw") or raw.get("description")),
            image_url=raw.get("background_image"),
            source_url=f"https://rawg.io/games/{raw['slug']}" if raw.get("slug") else None,
            provider=self.provider_name,
            provider_native_id=str(raw["id"]) if raw.get("id") is not None else None,
            quality_signal=float(metacritic) if metacritic is not None else None,
            record_kind=EvaluationType.NEW_RELEASE,
            genres=normalize_platforms(g.get("name") for g in raw.get("genres") or []),
            rating=raw.get("rating"),
        )
