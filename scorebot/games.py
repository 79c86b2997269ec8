#!/usr/bin/env python3
"""
Game normalization for ESPN scoreboard events
Maps one loosely-structured scoreboard event into a stable NormalizedGame

Every field of a raw event is optional. Each output field is resolved from an
ordered list of key paths; the first path that yields a present value wins,
otherwise the documented default is used. Normalization never raises.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

# Lifecycle states reported by ESPN in status.type.state
STATE_PRE = 'pre'
STATE_IN = 'in'
STATE_POST = 'post'
STATE_UNKNOWN = 'unknown'

UNKNOWN_VENUE = "Unknown Venue"
UNKNOWN_STATUS = "Status unknown"
UNKNOWN_MATCHUP = "Unknown matchup"
UNKNOWN_ID = "Unknown"
NO_SCORE = "-"

KeyPath = Tuple[Any, ...]

FIRST_COMPETITION: KeyPath = ('competitions', 0)

# Ordered extraction rules: first present value wins
STATE_PATHS: Sequence[KeyPath] = (
    ('status', 'type', 'state'),
    FIRST_COMPETITION + ('status', 'type', 'state'),
)
STATUS_PATHS: Sequence[KeyPath] = (
    ('status', 'type', 'detail'),
    ('status', 'type', 'description'),
    FIRST_COMPETITION + ('status', 'type', 'detail'),
    FIRST_COMPETITION + ('status', 'type', 'description'),
)
VENUE_PATHS: Sequence[KeyPath] = (
    FIRST_COMPETITION + ('venue', 'fullName'),
    FIRST_COMPETITION + ('venue', 'name'),
)
ID_PATHS: Sequence[KeyPath] = (('id',),)
NAME_PATHS: Sequence[KeyPath] = (('shortName',), ('name',))
START_PATHS: Sequence[KeyPath] = (('date',),)


@dataclass
class TeamSide:
    """One side of a matchup. abbr and logo are None when absent"""
    name: str
    abbr: Optional[str] = None
    logo: Optional[str] = None
    score: str = NO_SCORE


@dataclass
class NormalizedGame:
    """Stable, fully populated view of one scoreboard event"""
    id: str
    name: str
    start: Optional[str]
    start_time: Optional[datetime]
    status: str
    state: str
    venue: str
    home: TeamSide
    away: TeamSide
    watch: List[str] = field(default_factory=list)

    @property
    def matchup_label(self) -> str:
        if self.away.abbr and self.home.abbr:
            return f"{self.away.abbr} @ {self.home.abbr}"
        return self.name


def dig(source: Any, path: KeyPath) -> Any:
    """Follow a key path through nested dicts/lists, returning None on any miss"""
    current = source
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def _is_truthy(value: Any) -> bool:
    return bool(value)


def _is_not_none(value: Any) -> bool:
    return value is not None


def first_match(source: Any, paths: Sequence[KeyPath], default: Any = None,
                present: Callable[[Any], bool] = _is_truthy) -> Any:
    """Return the value of the first path whose value counts as present, else default"""
    for path in paths:
        value = dig(source, path)
        if present(value):
            return value
    return default


def parse_start_time(value: Any) -> Optional[datetime]:
    """Parse an ESPN ISO-8601 timestamp (e.g. '2026-10-19T17:00Z') into an aware UTC datetime.

    Returns None for anything that does not parse.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def event_start_time(event: Any) -> Optional[datetime]:
    return parse_start_time(first_match(event, START_PATHS))


def event_state(event: Any) -> str:
    return str(first_match(event, STATE_PATHS, default=STATE_UNKNOWN))


def event_id(event: Any) -> str:
    return str(first_match(event, ID_PATHS, default=UNKNOWN_ID, present=_is_not_none))


def find_competitor(event: Any, role: str) -> Dict[str, Any]:
    """Return the competitor record tagged with the given homeAway role, or an empty dict"""
    competitors = dig(event, FIRST_COMPETITION + ('competitors',))
    if not isinstance(competitors, list):
        return {}
    for competitor in competitors:
        if isinstance(competitor, dict) and competitor.get('homeAway') == role:
            return competitor
    return {}


def extract_team(competitor: Dict[str, Any], default_name: str) -> TeamSide:
    score = first_match(competitor, (('score',),), default=NO_SCORE, present=_is_not_none)
    return TeamSide(
        name=str(first_match(competitor, (('team', 'displayName'),), default=default_name)),
        abbr=first_match(competitor, (('team', 'abbreviation'),)),
        logo=first_match(competitor, (('team', 'logo'),)),
        score=str(score),
    )


def extract_watch(event: Any) -> List[str]:
    """Flatten broadcasts[].names[] of the first competition, dropping falsy entries"""
    broadcasts = dig(event, FIRST_COMPETITION + ('broadcasts',))
    if not isinstance(broadcasts, list):
        return []
    watch = []
    for broadcast in broadcasts:
        names = broadcast.get('names') if isinstance(broadcast, dict) else None
        if isinstance(names, list):
            watch.extend(str(name) for name in names if name)
    return watch


def extract_game(event: Any) -> NormalizedGame:
    """Build a NormalizedGame from one raw scoreboard event. Never raises."""
    start = first_match(event, START_PATHS)
    start = start if isinstance(start, str) else None
    return NormalizedGame(
        id=event_id(event),
        name=str(first_match(event, NAME_PATHS, default=UNKNOWN_MATCHUP)),
        start=start,
        start_time=parse_start_time(start),
        status=str(first_match(event, STATUS_PATHS, default=UNKNOWN_STATUS)),
        state=event_state(event),
        venue=str(first_match(event, VENUE_PATHS, default=UNKNOWN_VENUE)),
        home=extract_team(find_competitor(event, 'home'), 'Home'),
        away=extract_team(find_competitor(event, 'away'), 'Away'),
        watch=extract_watch(event),
    )
