"""
Steam storefront update collector.

For each configured app id: store appdetails, then the app's news feed.
News items inside the lookback window whose title mentions an update
keyword become "update" candidates.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from game_evaluator.core.logging import get_logger
from game_evaluator.models import CandidateRecord, CollectionWindow, EvaluationType, GameType
from game_evaluator.services.collectors.base import (
    BaseCollector,
    clean_description,
    join_names,
    normalize_date,
)

logger = get_logger(__name__)

UPDATE_KEYWORDS = ("update", "patch", "hotfix", "アップデート", "パッチ")

_VERSION = re.compile(r"v?(\d+\.[\d.]+)", re.IGNORECASE)


def is_update_title(title: Optional[str]) -> bool:
    if not title:
        return False
    lowered = title.lower()
    return any(keyword in lowered for keyword in UPDATE_KEYWORDS)


def extract_version(title: Optional[str]) -> Optional[str]:
    """
    Pull a version number out of a news title.

    Examples:
        >>> extract_version("Patch v1.0.3 notes")
        '1.0.3'
        >>> extract_version("Winter Update") is None
        True
    """
    if not title:
        return None
    match = _VERSION.search(title)
    return match.group(1) if match else None


class SteamCollector(BaseCollector):
    """Recent patches and updates of popular Steam titles."""

    provider_name = "steam"

    def default_delay(self) -> float:
        return self.settings.STEAM_REQUEST_DELAY

    async def _collect(self, window: CollectionWindow, records: List[CandidateRecord]) -> None:
        app_ids = self.settings.STEAM_APP_IDS
        logger.info(f"Fetching Steam updates for {len(app_ids)} apps")

        for app_id in app_ids:
            try:
                records.extend(await self.fetch_app_updates(app_id, window))
            except Exception as e:
                logger.error(f"Error fetching updates for Steam app {app_id}: {e}")
            await self.delay()

    async def fetch_app_info(self, app_id: int) -> Optional[Dict[str, Any]]:
        data = await self.get_json(
            f"{self.settings.STEAM_STORE_URL}/appdetails",
            params={"appids": app_id, "l": "japanese"}
        )
        entry = (data or {}).get(str(app_id)) or {}
        if not entry.get("success"):
            return None
        return entry.get("data") or None

    async def fetch_app_updates(self, app_id: int, window: CollectionWindow) -> List[CandidateRecord]:
        info = await self.fetch_app_info(app_id)
        if not info:
            logger.debug(f"No store details for Steam app {app_id}")
            return []

        data = await self.get_json(
            f"{self.settings.STEAM_API_URL}/ISteamNews/GetNewsForApp/v2/",
            params={
                "appid": app_id,
                "count": self.settings.STEAM_NEWS_COUNT,
                "maxlength": 500,
                "format": "json",
            }
        )
        news_items = ((data or {}).get("appnews") or {}).get("newsitems") or []

        cutoff = datetime.combine(
            window.reference_date - timedelta(days=window.lookback_days),
            datetime.min.time(),
            tzinfo=timezone.utc
        ).timestamp()

        return [
            self.to_candidate(app_id, info, item)
            for item in news_items
            if (item.get("date") or 0) >= cutoff and is_update_title(item.get("title"))
        ]

    def to_candidate(self, app_id: int, info: Dict[str, Any], item: Dict[str, Any]) -> CandidateRecord:
        store_url = f"https://store.steampowered.com/app/{app_id}"
        return CandidateRecord(
            title=info.get("name") or item.get("title") or str(app_id),
            game_type=GameType.CONSUMER,
            release_date=normalize_date(item.get("date")),
            developer=join_names(info.get("developers")),
            publisher=join_names(info.get("publishers")),
            platforms=("PC",),
            description=clean_description(item.get("contents")),
            image_url=info.get("header_image"),
            source_url=item.get("url") or store_url,
            provider=self.provider_name,
            provider_native_id=str(app_id),
            record_kind=EvaluationType.UPDATE,
            genres=tuple(g.get("description") for g in info.get("genres") or [] if g.get("description")),
            version=extract_version(item.get("title")),
            update_title=item.get("title"),
        )
