"""Tests for the source collectors.

Test Strategy:
1. Normalization helpers (dates, platforms, descriptions)
2. Each collector maps provider payloads to CandidateRecords over a
   mocked transport or fake scraper functions
3. collect() never raises: provider failures yield no records
4. Social classification keyword policy
"""
from datetime import date, datetime, timezone

import httpx
import pytest

from game_evaluator.models import CollectionWindow, EvaluationType, GameType
from game_evaluator.services.collectors import (
    PlayStoreCollector,
    RawgCollector,
    ScrapedReleaseCollector,
    ScrapeSource,
    SteamCollector,
)
from game_evaluator.services.collectors.base import (
    clean_description,
    normalize_date,
    normalize_platforms,
)
from game_evaluator.services.collectors.social_classifier import is_social_candidate
from game_evaluator.services.collectors.steam_collector import extract_version, is_update_title

WINDOW = CollectionWindow(reference_date=date(2024, 12, 15), lookback_days=7, lookahead_days=30)


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

class TestNormalization:

    @pytest.mark.parametrize("value,expected", [
        ("2024-12-15", date(2024, 12, 15)),
        ("2024-12-15T10:00:00Z", date(2024, 12, 15)),
        ("2024/12/05", date(2024, 12, 5)),
        ("2024年12月15日", date(2024, 12, 15)),
        ("発売日: 2025年1月9日予定", date(2025, 1, 9)),
        ("Dec 5, 2024", date(2024, 12, 5)),
        (datetime(2024, 12, 15, 23, 0), date(2024, 12, 15)),
        (1734264000, date(2024, 12, 15)),
        (1734264000000, date(2024, 12, 15)),
    ])
    def test_normalize_date(self, value, expected):
        assert normalize_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "TBA", "2024-13-45", True])
    def test_unparseable_dates(self, value):
        assert normalize_date(value) is None

    def test_normalize_platforms(self):
        assert normalize_platforms(["PC", " PC ", None, "Switch"]) == ("PC", "Switch")
        assert normalize_platforms("PC") == ("PC",)
        assert normalize_platforms(None) == ()

    def test_clean_description(self):
        assert clean_description("<p>Hello</p>\n\n<b>world</b>") == "Hello world"
        assert clean_description("") is None

        assert clean_description("Tom &amp; Jerry&#39;s &quot;Patch&quot;<br/>notes") == "Tom & Jerry's \"Patch\" notes"

        long_text = clean_description("a" * 600)
        assert len(long_text) == 500
        assert long_text.endswith("...")


# ─────────────────────────────────────────────────────────────
# RAWG
# ─────────────────────────────────────────────────────────────

RAWG_GAME = {
    "id": 3498,
    "slug": "elden-ring",
    "name": "Elden Ring",
    "released": "2024-12-20",
    "background_image": "https://media.rawg.io/elden.jpg",
    "metacritic": 95,
    "rating": 4.4,
    "developers": [{"name": "FromSoftware"}],
    "publishers": [{"name": "Bandai Namco"}],
    "platforms": [{"platform": {"name": "PC"}}, {"platform": {"name": "PlayStation 5"}}],
    "genres": [{"name": "Action"}, {"name": "RPG"}],
}


class TestRawgCollector:

    @pytest.mark.asyncio
    async def test_collects_both_queries(self, test_settings):
        orderings = []

        def handler(request):
            orderings.append(request.url.params["ordering"])
            assert request.url.params["key"] == "test-rawg-key"
            if request.url.params["ordering"] == "-added":
                assert request.url.params["dates"] == "2024-12-15,2025-01-14"
                return httpx.Response(200, json={"results": [RAWG_GAME, {"id": 1, "name": ""}]})
            assert request.url.params["dates"] == "2024-12-08,2024-12-15"
            return httpx.Response(200, json={"results": []})

        client = _client(handler)
        records = await RawgCollector(settings=test_settings, client=client).collect(WINDOW)
        await client.aclose()

        assert orderings == ["-added", "-released"]
        assert len(records) == 1
        record = records[0]
        assert record.title == "Elden Ring"
        assert record.provider == "rawg"
        assert record.provider_native_id == "3498"
        assert record.quality_signal == 95.0
        assert record.release_date == date(2024, 12, 20)
        assert record.platforms == ("PC", "PlayStation 5")
        assert record.developer == "FromSoftware"
        assert record.source_url == "https://rawg.io/games/elden-ring"
        assert record.game_type == GameType.CONSUMER

    @pytest.mark.asyncio
    async def test_server_error_yields_nothing(self, test_settings):
        client = _client(lambda request: httpx.Response(503))

        records = await RawgCollector(settings=test_settings, client=client).collect(WINDOW)
        await client.aclose()

        assert records == []

    @pytest.mark.asyncio
    async def test_missing_api_key_skips(self, test_settings):
        calls = []
        client = _client(lambda request: calls.append(request) or httpx.Response(200, json={}))
        settings = test_settings.model_copy(update={"RAWG_API_KEY": ""})

        records = await RawgCollector(settings=settings, client=client).collect(WINDOW)
        await client.aclose()

        assert records == []
        assert calls == []


# ─────────────────────────────────────────────────────────────
# Steam
# ─────────────────────────────────────────────────────────────

class TestSteamCollector:

    def test_update_title_helpers(self):
        assert is_update_title("Winter Update 2024")
        assert is_update_title("大型アップデートのお知らせ")
        assert not is_update_title("Community spotlight")
        assert extract_version("Patch v1.0.3 notes") == "1.0.3"
        assert extract_version("Winter Update") is None

    @pytest.mark.asyncio
    async def test_recent_update_news_only(self, test_settings):
        recent = int(datetime(2024, 12, 14, 12, tzinfo=timezone.utc).timestamp())
        old = int(datetime(2024, 11, 1, tzinfo=timezone.utc).timestamp())

        def handler(request):
            if request.url.path.endswith("/appdetails"):
                return httpx.Response(200, json={"730": {"success": True, "data": {
                    "name": "Counter-Strike 2",
                    "developers": ["Valve"],
                    "publishers": ["Valve"],
                    "header_image": "https://cdn.steam/730.jpg",
                    "genres": [{"description": "Action"}],
                }}})
            return httpx.Response(200, json={"appnews": {"newsitems": [
                {"title": "Patch v1.2.0 released", "date": recent, "url": "https://steam/news/1",
                 "contents": "<b>Fixes</b>"},
                {"title": "Community spotlight", "date": recent},
                {"title": "Old update", "date": old},
            ]}})

        client = _client(handler)
        records = await SteamCollector(settings=test_settings, client=client).collect(WINDOW)
        await client.aclose()

        assert len(records) == 1
        record = records[0]
        assert record.title == "Counter-Strike 2"
        assert record.record_kind == EvaluationType.UPDATE
        assert record.version == "1.2.0"
        assert record.provider_native_id == "730"
        assert record.platforms == ("PC",)
        assert record.release_date == date(2024, 12, 14)
        assert record.description == "Fixes"

    @pytest.mark.asyncio
    async def test_unknown_app_skipped(self, test_settings):
        client = _client(lambda request: httpx.Response(200, json={"730": {"success": False}}))

        records = await SteamCollector(settings=test_settings, client=client).collect(WINDOW)
        await client.aclose()

        assert records == []


# ─────────────────────────────────────────────────────────────
# Google Play
# ─────────────────────────────────────────────────────────────

PLAY_DETAILS = {
    "com.a": {
        "title": "Dragon Gacha RPG",
        "description": "ガチャで仲間を集めよう",
        "free": True,
        "released": "Dec 10, 2024",
        "updated": 1734264000,
        "developer": "Studio A",
        "genre": "Role Playing",
        "installs": "1,000,000+",
        "score": 4.3,
        "icon": "https://play/a.png",
        "version": "2.0",
    },
    "com.b": {
        "title": "Puzzle RPG Classic",
        "description": "Guild raids every week",
        "free": True,
        "released": "Jan 1, 2020",
        "updated": 1734264000,
        "developer": "Studio B",
        "version": "5.1.0",
    },
    "com.c": {
        "title": "Offline RPG",
        "description": "Single player adventure",
        "free": True,
        "released": "Dec 12, 2024",
    },
    "com.d": {
        "title": "Paid RPG",
        "description": "",
        "free": False,
        "released": "Dec 12, 2024",
    },
}


class TestPlayStoreCollector:

    @pytest.mark.asyncio
    async def test_classifies_and_windows(self, test_settings):
        def search(query, **kwargs):
            assert kwargs["lang"] == "ja"
            return [{"appId": "com.a"}, {"appId": "com.b"}, {"appId": "com.c"}, {"appId": "com.d"}, {"appId": "com.a"}]

        def app(app_id, **kwargs):
            return PLAY_DETAILS[app_id]

        collector = PlayStoreCollector(settings=test_settings, search_fn=search, app_fn=app)
        records = await collector.collect(WINDOW)

        by_id = {r.provider_native_id: r for r in records}
        assert set(by_id) == {"com.a", "com.b"}

        release = by_id["com.a"]
        assert release.record_kind == EvaluationType.NEW_RELEASE
        assert release.release_date == date(2024, 12, 10)
        assert release.game_type == GameType.SOCIAL
        assert release.platforms == ("Android",)
        assert release.installs == "1,000,000+"
        assert release.version is None

        update = by_id["com.b"]
        assert update.record_kind == EvaluationType.UPDATE
        assert update.release_date == date(2024, 12, 15)
        assert update.version == "5.1.0"

    @pytest.mark.asyncio
    async def test_search_failure_yields_nothing(self, test_settings):
        def search(query, **kwargs):
            raise ConnectionError("blocked")

        collector = PlayStoreCollector(settings=test_settings, search_fn=search, app_fn=lambda *a, **k: {})

        assert await collector.collect(WINDOW) == []


class TestSocialClassifier:
    """
    Keyword heuristic for free-to-play social games.

    The classification is approximate: these cases pin the keyword policy
    (negative wins, one positive required, must be free), not the accuracy
    of the result on real store listings.
    """

    def test_free_with_keyword(self):
        assert is_social_candidate({"title": "Gacha Quest", "free": True}, ["gacha"], [])

    def test_negative_keyword_wins(self):
        assert not is_social_candidate(
            {"title": "Gacha Quest", "description": "Fully OFFLINE", "free": True}, ["gacha"], ["offline"]
        )

    def test_requires_positive_keyword(self):
        assert not is_social_candidate({"title": "Calculator", "free": True}, ["gacha"], [])

    def test_requires_free(self):
        assert not is_social_candidate({"title": "Gacha Quest", "free": False}, ["gacha"], [])

    def test_default_policy(self):
        assert is_social_candidate({"title": "ギルドバトル", "description": "", "free": True})
        assert not is_social_candidate(None)


# ─────────────────────────────────────────────────────────────
# Scraper
# ─────────────────────────────────────────────────────────────

SOURCE = ScrapeSource(
    name="calendar",
    url="https://games.example.jp/release/",
    item_selector="li.release",
    title_selector=".title",
    date_selector=".date",
    platform_selector=".platform",
)

CALENDAR_HTML = """
<ul>
  <li class="release">
    <a href="/games/123"><span class="title">Monster Hunter Wilds</span></a>
    <span class="date">2025年2月28日</span>
    <span class="platform">PS5</span>
  </li>
  <li class="release"><span class="title"></span></li>
  <li class="release">
    <span class="title">Untitled Project</span>
    <span class="date">未定</span>
  </li>
</ul>
"""


class TestScrapedReleaseCollector:

    def test_parse(self, test_settings):
        records = ScrapedReleaseCollector(settings=test_settings, sources=[SOURCE]).parse(SOURCE, CALENDAR_HTML)

        assert [r.title for r in records] == ["Monster Hunter Wilds", "Untitled Project"]
        first, second = records
        assert first.release_date == date(2025, 2, 28)
        assert first.platforms == ("PS5",)
        assert first.source_url == "https://games.example.jp/games/123"
        assert first.provider == "scraper:calendar"
        assert first.provider_native_id is None
        assert second.release_date is None
        assert second.source_url is None

    @pytest.mark.asyncio
    async def test_collect_over_transport(self, test_settings):
        client = _client(lambda request: httpx.Response(200, text=CALENDAR_HTML))

        records = await ScrapedReleaseCollector(
            settings=test_settings, sources=[SOURCE], client=client
        ).collect(WINDOW)
        await client.aclose()

        assert len(records) == 2

    @pytest.mark.asyncio
    async def test_layout_drift_is_empty(self, test_settings):
        client = _client(lambda request: httpx.Response(200, text="<html><body>redesigned</body></html>"))

        records = await ScrapedReleaseCollector(
            settings=test_settings, sources=[SOURCE], client=client
        ).collect(WINDOW)
        await client.aclose()

        assert records == []
