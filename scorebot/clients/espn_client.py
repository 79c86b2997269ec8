#!/usr/bin/env python3
"""
ESPN scoreboard client for the MeshCore Scoreboard Bot
Fetches per-day scoreboards and single-event summaries from the (undocumented) ESPN site API
API description via https://github.com/zuplo/espn-openapi/

Endpoints:
  {base}/{sport}/{competition}/scoreboard?dates=YYYYMMDD
  {base}/{sport}/{competition}/summary?event={id}
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

import aiohttp

from ..errors import InvalidDate, RemoteUnavailable
from .sports_mappings import LeagueKey, resolve_league

DateLike = Union[date, datetime, str]


def parse_date(value: DateLike) -> date:
    """Parse a date-like value into a UTC calendar day.

    Accepts a date, an aware or naive datetime (naive is treated as UTC),
    or a string in 'YYYY-MM-DD' or 'YYYYMMDD' form.

    Raises:
        InvalidDate: If the value cannot be parsed.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip() if value is not None else ''
    for fmt in ('%Y-%m-%d', '%Y%m%d'):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise InvalidDate(value)


def to_yyyymmdd(value: DateLike) -> str:
    """Format a date-like value as the YYYYMMDD string used by the scoreboard endpoint"""
    return parse_date(value).strftime('%Y%m%d')


class ESPNClient:
    """Async client for the ESPN site API.

    One instance may be shared across interactions; it holds no per-request state.
    When no session is injected, a short-lived aiohttp session is opened per request.
    """

    BASE_URL = "https://site.api.espn.com/apis/site/v2/sports"
    USER_AGENT = "MeshCoreScoreBot/1.0 (mesh bot)"

    def __init__(self, logger: Optional[logging.Logger] = None, timeout: Optional[float] = None,
                 session: Optional[aiohttp.ClientSession] = None, base_url: Optional[str] = None):
        """Initialize the client.

        Args:
            logger: Logger to use (defaults to the bot logger).
            timeout: Total request timeout in seconds. None or 0 keeps the aiohttp default.
            session: Optional aiohttp session to reuse instead of one session per request.
            base_url: Override for the API base URL.
        """
        self.logger = logger or logging.getLogger("ScoreBot")
        self.timeout = timeout or None
        self.session = session
        self.base_url = (base_url or self.BASE_URL).rstrip('/')

    def _league_url(self, league: LeagueKey, endpoint: str) -> str:
        return f"{self.base_url}/{league.sport}/{league.competition}/{endpoint}"

    async def _get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """GET a JSON document, normalizing every failure into RemoteUnavailable"""
        request_kwargs: Dict[str, Any] = {
            'params': params,
            'headers': {
                'Accept': 'application/json',
                'User-Agent': self.USER_AGENT,
            },
        }
        if self.timeout:
            request_kwargs['timeout'] = aiohttp.ClientTimeout(total=self.timeout)

        self.logger.debug(f"Fetching ESPN data: {url} {params or ''}")
        try:
            if self.session is not None:
                return await self._request(self.session, url, request_kwargs)
            async with aiohttp.ClientSession() as session:
                return await self._request(session, url, request_kwargs)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteUnavailable(None, str(e) or e.__class__.__name__, url) from e

    async def _request(self, session, url: str, request_kwargs: Dict[str, Any]) -> Dict[str, Any]:
        async with session.get(url, **request_kwargs) as response:
            if not 200 <= response.status < 300:
                try:
                    text = await response.text()
                except (aiohttp.ClientError, UnicodeDecodeError):
                    text = ''
                self.logger.warning(f"ESPN request failed ({response.status}) for {url}")
                raise RemoteUnavailable(response.status, text, url)
            try:
                data = await response.json(content_type=None)
            except ValueError as e:
                raise RemoteUnavailable(response.status, f"invalid JSON: {e}", url) from e
        return data if isinstance(data, dict) else {}

    async def fetch_scoreboard(self, league: Union[LeagueKey, str], day: Optional[DateLike] = None) -> Dict[str, Any]:
        """Fetch the raw scoreboard document for one league and UTC day (today when omitted).

        Raises:
            InvalidLeague: Unknown league shortcut.
            InvalidDate: Unparseable day.
            RemoteUnavailable: Non-2xx status or transport failure.
        """
        league = resolve_league(league)
        dates = to_yyyymmdd(day if day is not None else datetime.now(timezone.utc))
        return await self._get_json(self._league_url(league, 'scoreboard'), {'dates': dates})

    async def fetch_events(self, league: Union[LeagueKey, str], day: DateLike) -> List[Dict[str, Any]]:
        """Fetch the list of raw events scheduled for one league and day (possibly empty)"""
        board = await self.fetch_scoreboard(league, day)
        events = board.get('events')
        if not isinstance(events, list):
            return []
        return [event for event in events if isinstance(event, dict)]

    async def fetch_summary(self, league: Union[LeagueKey, str], event_id: str) -> Dict[str, Any]:
        """Fetch the single-event summary document.

        Summary payload shapes vary more than scoreboard events, so selection
        never relies on it.
        """
        league = resolve_league(league)
        if not event_id:
            raise ValueError("Missing event id")
        return await self._get_json(self._league_url(league, 'summary'), {'event': str(event_id)})
