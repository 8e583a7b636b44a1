"""
Base class for source collectors.

Provides:
- A shared collect(window) contract that never raises
- Per-provider HTTP client, retry policy and inter-call delay
- Normalization helpers for dates, platforms and descriptions

Usage:
    class MyCollector(BaseCollector):
        provider_name = "my_source"

        async def _collect(self, window, records):
            data = await self.get_json("https://example.com/releases")
            for item in data:
                records.append(CandidateRecord(title=item["name"], provider=self.provider_name))
                await self.delay()
"""
import asyncio
import re
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional, Tuple

import httpx
from bs4 import BeautifulSoup

from game_evaluator.core.config import settings as default_settings
from game_evaluator.core.logging import get_logger
from game_evaluator.core.metrics import collector_failures_total, collector_records_total
from game_evaluator.models import CandidateRecord, CollectionWindow
from game_evaluator.services.http import HttpSource

logger = get_logger(__name__)

DESCRIPTION_MAX_LENGTH = 500

_JAPANESE_DATE = re.compile(r"(\d{4})年(\d{1,2})月(\d{1,2})日")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_SLASH_DATE = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})")
_TEXT_DATE_FORMATS = ("%b %d, %Y", "%B %d, %Y", "%d %b %Y", "%d %B %Y")


def _safe_date(year: str, month: str, day: str) -> Optional[date]:
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def normalize_date(value: Any) -> Optional[date]:
    """
    Coerce the date shapes providers return into a date.

    Accepts date/datetime objects, ISO strings (with or without time),
    YYYY/MM/DD, Japanese dates (2024年12月15日), "Dec 5, 2024" and epoch
    seconds or milliseconds. Anything else yields None.

    Examples:
        >>> normalize_date("2024年12月15日")
        datetime.date(2024, 12, 15)
        >>> normalize_date(1700000000000)
        datetime.date(2023, 11, 14)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    for pattern in (_JAPANESE_DATE, _ISO_DATE, _SLASH_DATE):
        match = pattern.search(text) if pattern is _JAPANESE_DATE else pattern.match(text)
        if match:
            return _safe_date(*match.groups())

    if text.isdigit():
        return normalize_date(int(text))

    for fmt in _TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def normalize_platforms(values: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    """Platform names as a de-duplicated tuple, first occurrence order kept."""
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]

    seen = []
    for value in values:
        if value is None:
            continue
        name = str(value).strip()
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


def clean_description(text: Any) -> Optional[str]:
    """
    Strip HTML tags, decode entities, fold whitespace and cap the length.

    Text longer than 500 characters is cut to 497 characters plus "...".
    """
    if not text:
        return None

    cleaned = BeautifulSoup(str(text), "html.parser").get_text(" ")
    cleaned = " ".join(cleaned.split())
    if len(cleaned) > DESCRIPTION_MAX_LENGTH:
        cleaned = cleaned[:DESCRIPTION_MAX_LENGTH - 3] + "..."
    return cleaned or None


def join_names(values: Optional[Iterable[Any]]) -> Optional[str]:
    """Join provider name lists ("A, B"); empty lists become None."""
    if not values:
        return None
    if isinstance(values, str):
        return values or None
    names = [str(v).strip() for v in values if v is not None and str(v).strip()]
    return ", ".join(names) or None


class BaseCollector(HttpSource, ABC):
    """
    Base class for all source collectors.

    Subclasses implement _collect(window, records) and append to records as
    they go; when a subclass raises midway, collect() keeps what was
    appended so far.
    """

    provider_name = "unknown"

    def __init__(
        self,
        settings=None,
        client: Optional[httpx.AsyncClient] = None,
        request_delay: Optional[float] = None,
        sleep=asyncio.sleep,
        **http_kwargs
    ):
        self.settings = settings or default_settings
        http_kwargs.setdefault("max_attempts", self.settings.MAX_RETRIES)
        super().__init__(client=client, **http_kwargs)
        self.request_delay = self.default_delay() if request_delay is None else request_delay
        self._sleep = sleep

    def default_delay(self) -> float:
        return 1.0

    async def delay(self, seconds: Optional[float] = None) -> None:
        """Wait between provider calls."""
        seconds = self.request_delay if seconds is None else seconds
        if seconds > 0:
            await self._sleep(seconds)

    async def collect(self, window: CollectionWindow) -> List[CandidateRecord]:
        """
        Collect candidate records for the window.

        Never raises. Failures are logged and counted; records gathered
        before the failure are still returned.
        """
        records: List[CandidateRecord] = []
        try:
            await self._collect(window, records)
        except Exception as e:
            collector_failures_total.labels(provider=self.provider_name).inc()
            logger.error(
                f"{self.provider_name} collection failed after {len(records)} records: {e}",
                exc_info=True
            )
        finally:
            await self.close()

        if records:
            collector_records_total.labels(provider=self.provider_name).inc(len(records))
        logger.info(f"{self.provider_name}: collected {len(records)} candidates")
        return records

    @abstractmethod
    async def _collect(self, window: CollectionWindow, records: List[CandidateRecord]) -> None:
        """Fetch provider data and append CandidateRecords to records."""
