"""Tests for scorebot.clients.espn_client."""

import asyncio
from datetime import date, datetime, timezone, timedelta

import aiohttp
import pytest

from scorebot.clients.espn_client import ESPNClient, parse_date, to_yyyymmdd
from scorebot.clients.sports_mappings import LeagueKey
from scorebot.errors import InvalidDate, InvalidLeague, RemoteUnavailable
from tests.helpers import FakeResponse, FakeSession, make_event


class TestParseDate:
    """Tests for parse_date() and to_yyyymmdd()."""

    def test_date_passthrough(self):
        assert parse_date(date(2026, 10, 19)) == date(2026, 10, 19)

    def test_aware_datetime_converted_to_utc_day(self):
        late_evening = datetime(2026, 10, 19, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert parse_date(late_evening) == date(2026, 10, 20)

    def test_naive_datetime_treated_as_utc(self):
        assert parse_date(datetime(2026, 10, 19, 23, 59)) == date(2026, 10, 19)

    @pytest.mark.parametrize("value", ["2026-10-19", "20261019", " 2026-10-19 "])
    def test_string_forms(self, value):
        assert parse_date(value) == date(2026, 10, 19)

    @pytest.mark.parametrize("value", ["yesterday", "2026-02-30", "", None])
    def test_invalid_raises(self, value):
        with pytest.raises(InvalidDate):
            parse_date(value)

    def test_to_yyyymmdd(self):
        assert to_yyyymmdd(date(2026, 1, 5)) == "20260105"


class TestFetchScoreboard:
    """Tests for ESPNClient.fetch_scoreboard() and fetch_events()."""

    @pytest.mark.asyncio
    async def test_builds_url_and_dates_param(self, mock_logger):
        session = FakeSession(FakeResponse(body={"events": []}))
        client = ESPNClient(logger=mock_logger, session=session)
        await client.fetch_scoreboard(LeagueKey.EPL, date(2026, 10, 25))
        url, kwargs = session.calls[0]
        assert url == "https://site.api.espn.com/apis/site/v2/sports/soccer/eng.1/scoreboard"
        assert kwargs["params"] == {"dates": "20261025"}
        assert kwargs["headers"]["Accept"] == "application/json"
        assert "timeout" not in kwargs

    @pytest.mark.asyncio
    async def test_accepts_shortcut_string(self, mock_logger):
        session = FakeSession()
        client = ESPNClient(logger=mock_logger, session=session)
        await client.fetch_scoreboard("NHL", "2026-10-19")
        assert session.calls[0][0].endswith("/hockey/nhl/scoreboard")

    @pytest.mark.asyncio
    async def test_timeout_passed_when_configured(self, mock_logger):
        session = FakeSession()
        client = ESPNClient(logger=mock_logger, timeout=7, session=session)
        await client.fetch_scoreboard(LeagueKey.NFL, date(2026, 10, 19))
        timeout = session.calls[0][1]["timeout"]
        assert isinstance(timeout, aiohttp.ClientTimeout)
        assert timeout.total == 7

    @pytest.mark.asyncio
    async def test_base_url_override(self, mock_logger):
        session = FakeSession()
        client = ESPNClient(logger=mock_logger, session=session, base_url="http://localhost:8080/sports/")
        await client.fetch_scoreboard(LeagueKey.MLB, date(2026, 10, 19))
        assert session.calls[0][0] == "http://localhost:8080/sports/baseball/mlb/scoreboard"

    @pytest.mark.asyncio
    async def test_unknown_league_raises_before_request(self, mock_logger):
        session = FakeSession()
        client = ESPNClient(logger=mock_logger, session=session)
        with pytest.raises(InvalidLeague):
            await client.fetch_scoreboard("cricket", date(2026, 10, 19))
        assert session.calls == []

    @pytest.mark.asyncio
    async def test_invalid_date_raises_before_request(self, mock_logger):
        session = FakeSession()
        client = ESPNClient(logger=mock_logger, session=session)
        with pytest.raises(InvalidDate):
            await client.fetch_scoreboard(LeagueKey.NFL, "someday")
        assert session.calls == []

    @pytest.mark.asyncio
    async def test_fetch_events_returns_event_dicts(self, mock_logger):
        events = [make_event("1"), "garbage", make_event("2")]
        client = ESPNClient(logger=mock_logger, session=FakeSession(FakeResponse(body={"events": events})))
        result = await client.fetch_events(LeagueKey.NBA, date(2026, 10, 19))
        assert [event["id"] for event in result] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_fetch_events_missing_events_key(self, mock_logger):
        client = ESPNClient(logger=mock_logger, session=FakeSession(FakeResponse(body={"leagues": []})))
        assert await client.fetch_events(LeagueKey.NBA, date(2026, 10, 19)) == []

    @pytest.mark.asyncio
    async def test_non_object_body_treated_as_empty(self, mock_logger):
        client = ESPNClient(logger=mock_logger, session=FakeSession(FakeResponse(body=[1, 2, 3])))
        assert await client.fetch_scoreboard(LeagueKey.NBA, date(2026, 10, 19)) == {}


class TestRemoteUnavailable:
    """Tests for failure normalization into RemoteUnavailable."""

    @pytest.mark.asyncio
    async def test_http_error_status(self, mock_logger):
        session = FakeSession(FakeResponse(status=503, text="Service Unavailable"))
        client = ESPNClient(logger=mock_logger, session=session)
        with pytest.raises(RemoteUnavailable) as exc_info:
            await client.fetch_scoreboard(LeagueKey.NFL, date(2026, 10, 19))
        assert exc_info.value.status == 503
        assert exc_info.value.excerpt == "Service Unavailable"
        assert str(exc_info.value) == "ESPN request failed (503) Service Unavailable"

    @pytest.mark.asyncio
    async def test_excerpt_truncated(self, mock_logger):
        session = FakeSession(FakeResponse(status=500, text="x" * 5000))
        client = ESPNClient(logger=mock_logger, session=session)
        with pytest.raises(RemoteUnavailable) as exc_info:
            await client.fetch_scoreboard(LeagueKey.NFL, date(2026, 10, 19))
        assert len(exc_info.value.excerpt) == RemoteUnavailable.EXCERPT_LENGTH

    @pytest.mark.asyncio
    async def test_transport_error(self, mock_logger):
        session = FakeSession(error=aiohttp.ClientConnectionError("connection refused"))
        client = ESPNClient(logger=mock_logger, session=session)
        with pytest.raises(RemoteUnavailable) as exc_info:
            await client.fetch_scoreboard(LeagueKey.NFL, date(2026, 10, 19))
        assert exc_info.value.status is None
        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_error(self, mock_logger):
        session = FakeSession(error=asyncio.TimeoutError())
        client = ESPNClient(logger=mock_logger, session=session)
        with pytest.raises(RemoteUnavailable) as exc_info:
            await client.fetch_scoreboard(LeagueKey.NFL, date(2026, 10, 19))
        assert exc_info.value.status is None
        assert "TimeoutError" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json(self, mock_logger):
        session = FakeSession(FakeResponse(status=200, text="<html>oops</html>"))
        client = ESPNClient(logger=mock_logger, session=session)
        with pytest.raises(RemoteUnavailable) as exc_info:
            await client.fetch_scoreboard(LeagueKey.NFL, date(2026, 10, 19))
        assert exc_info.value.status == 200
        assert "invalid JSON" in exc_info.value.excerpt

    def test_message_without_status(self):
        assert str(RemoteUnavailable(None)) == "ESPN request failed (transport error)"


class TestFetchSummary:
    """Tests for ESPNClient.fetch_summary()."""

    @pytest.mark.asyncio
    async def test_summary_url_and_params(self, mock_logger):
        session = FakeSession(FakeResponse(body={"header": {"id": "401"}}))
        client = ESPNClient(logger=mock_logger, session=session)
        data = await client.fetch_summary("nba", 401)
        url, kwargs = session.calls[0]
        assert url.endswith("/basketball/nba/summary")
        assert kwargs["params"] == {"event": "401"}
        assert data == {"header": {"id": "401"}}

    @pytest.mark.asyncio
    async def test_missing_event_id(self, mock_logger):
        client = ESPNClient(logger=mock_logger, session=FakeSession())
        with pytest.raises(ValueError):
            await client.fetch_summary(LeagueKey.NBA, "")
