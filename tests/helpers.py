#!/usr/bin/env python3
"""
Test helper functions and factories for creating test data
"""

import json
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from scorebot.errors import RemoteUnavailable

NOW = datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc)


def iso(moment: datetime) -> str:
    """Format a UTC datetime the way ESPN does ('2026-10-19T17:00Z')"""
    return moment.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%MZ')


def make_event(
    event_id: str = "401",
    start: Optional[datetime] = None,
    state: Optional[str] = "pre",
    detail: Optional[str] = None,
    home: Optional[Tuple[str, str, Any]] = ("BOS", "Boston Celtics", "0"),
    away: Optional[Tuple[str, str, Any]] = ("NYK", "New York Knicks", "0"),
    venue: Optional[str] = "TD Garden",
    broadcasts: Optional[List[List[str]]] = None,
    short_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Factory function to create a raw ESPN scoreboard event.

    Args:
        event_id: ESPN event id.
        start: Start time (None leaves 'date' out).
        state: status.type.state ('pre', 'in', 'post'), None leaves it out.
        detail: status.type.detail text.
        home: (abbreviation, displayName, score) or None for no home competitor.
        away: (abbreviation, displayName, score) or None for no away competitor.
        venue: Venue fullName (None leaves the venue out).
        broadcasts: List of broadcast name lists, e.g. [["ESPN", "ABC"]].
        short_name: shortName of the event (defaults to "AWY @ HOM").

    Returns:
        Dictionary shaped like one entry of scoreboard 'events'
    """
    competitors = []
    for role, side in (('home', home), ('away', away)):
        if side is None:
            continue
        abbr, display_name, score = side
        competitors.append({
            'homeAway': role,
            'score': score,
            'team': {
                'abbreviation': abbr,
                'displayName': display_name,
                'logo': f"https://a.espncdn.com/i/teamlogos/{abbr.lower()}.png",
            },
        })

    status_type: Dict[str, Any] = {}
    if state is not None:
        status_type['state'] = state
    if detail is not None:
        status_type['detail'] = detail

    competition: Dict[str, Any] = {'competitors': competitors}
    if venue is not None:
        competition['venue'] = {'fullName': venue}
    if broadcasts is not None:
        competition['broadcasts'] = [{'market': 'national', 'names': names} for names in broadcasts]

    if short_name is None and home and away:
        short_name = f"{away[0]} @ {home[0]}"

    event: Dict[str, Any] = {
        'id': event_id,
        'name': short_name or "Event",
        'shortName': short_name,
        'status': {'type': status_type},
        'competitions': [competition],
    }
    if start is not None:
        event['date'] = iso(start)
    return event


class FakeResponse:
    """Minimal stand-in for an aiohttp response used as an async context manager"""

    def __init__(self, status: int = 200, body: Any = None, text: Optional[str] = None):
        self.status = status
        self._body = body
        self._text = text if text is not None else json.dumps(body if body is not None else {})

    async def text(self) -> str:
        return self._text

    async def json(self, content_type: Optional[str] = 'application/json') -> Any:
        return json.loads(self._text)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records GET requests and replies with a fixed FakeResponse (or raises)"""

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[BaseException] = None):
        self.response = response or FakeResponse(body={'events': []})
        self.error = error
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


class FakeClient:
    """In-memory ESPN client: per-day event lists, recorded fetches and optional failing days"""

    def __init__(self, events_by_day: Optional[Dict[date, List[Dict[str, Any]]]] = None,
                 failing_days: Optional[List[date]] = None):
        self.events_by_day = events_by_day or {}
        self.failing_days = set(failing_days or [])
        self.fetched_days: List[date] = []

    async def fetch_events(self, league, day) -> List[Dict[str, Any]]:
        self.fetched_days.append(day)
        if day in self.failing_days:
            raise RemoteUnavailable(503, "Service Unavailable", f"scoreboard?dates={day:%Y%m%d}")
        return list(self.events_by_day.get(day, []))
