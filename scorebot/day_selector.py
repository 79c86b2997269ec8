#!/usr/bin/env python3
"""
Day and game selection for league scoreboards

Given "now", chooses which calendar day's games to show and which single game
among them is the most relevant:

1. Build candidate days: yesterday, today, tomorrow (absorbs timezone skew
   between the local clock and ESPN's UTC day boundary), then day+2 .. day+N.
2. Fetch candidates one at a time, score each non-empty day
   (live=100, recent=50, non-empty=1) and keep the best. The first day wins
   ties; a day with a live game ends the search immediately, so later days
   are never fetched.
3. Within the winning day pick live > next upcoming > latest final > first.

Fetch errors are not caught here: one failed day fails the whole selection.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from .clients.espn_client import DateLike, ESPNClient, parse_date
from .clients.sports_mappings import LeagueKey, resolve_league
from .errors import GameNotFound
from .games import (
    STATE_IN, STATE_POST, STATE_PRE, NormalizedGame, event_id, event_start_time, event_state,
    extract_game,
)

RawEvent = Dict[str, Any]

DEFAULT_LOOKAHEAD_DAYS = 14
RECENT_WINDOW = timedelta(hours=18)
UPCOMING_GRACE = timedelta(minutes=5)
MAX_LIST_OPTIONS = 25

LIVE_POINTS = 100
RECENT_POINTS = 50
NON_EMPTY_POINTS = 1

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SelectionSettings:
    """Tunable constants of the selection algorithm"""
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS
    recent_window: timedelta = RECENT_WINDOW
    upcoming_grace: timedelta = UPCOMING_GRACE


@dataclass(frozen=True)
class DayScore:
    has_live: bool
    has_recent: bool
    score: int


@dataclass
class DaySelection:
    """The winning day, its time-sorted events and the main pick. Lives for one interaction."""
    league: LeagueKey
    day: date
    events: List[RawEvent] = field(default_factory=list)
    main_event: Optional[RawEvent] = None
    score: int = 0

    @property
    def day_label(self) -> str:
        return f"Games for {self.day.isoformat()}"

    @property
    def main_game(self) -> Optional[NormalizedGame]:
        if self.main_event is None:
            return None
        return extract_game(self.main_event)

    def option_events(self, limit: int = MAX_LIST_OPTIONS) -> List[RawEvent]:
        return self.events[:limit]

    def find_event(self, wanted_id: Any) -> RawEvent:
        """Look up an event of this day by its identifier.

        Raises:
            GameNotFound: If no event carries the identifier.
        """
        wanted = str(wanted_id)
        for event in self.events:
            if event_id(event) == wanted:
                return event
        raise GameNotFound(wanted)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def build_candidate_days(now: datetime, lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS) -> List[date]:
    """Ordered candidate days: yesterday, today, tomorrow, then day+2 .. day+lookahead_days"""
    today = _as_utc(now).date()
    offsets = [-1, 0, 1] + list(range(2, lookahead_days + 1))
    return [today + timedelta(days=offset) for offset in offsets]


def sort_events(events: List[RawEvent]) -> List[RawEvent]:
    """Sort by start time ascending; unparseable starts sort as the epoch (first). Stable."""
    return sorted(events, key=lambda event: event_start_time(event) or _EPOCH)


def score_day(events: List[RawEvent], now: datetime,
              settings: SelectionSettings = SelectionSettings()) -> DayScore:
    now = _as_utc(now)
    window_start = now - settings.recent_window
    has_live = any(event_state(event) == STATE_IN for event in events)
    has_recent = False
    for event in events:
        if event_state(event) == STATE_IN:
            has_recent = True
            break
        start = event_start_time(event)
        if start is not None and window_start <= start <= now:
            has_recent = True
            break
    score = ((LIVE_POINTS if has_live else 0)
             + (RECENT_POINTS if has_recent else 0)
             + (NON_EMPTY_POINTS if events else 0))
    return DayScore(has_live=has_live, has_recent=has_recent, score=score)


def pick_main_event(events: List[RawEvent], now: datetime,
                    settings: SelectionSettings = SelectionSettings()) -> Optional[RawEvent]:
    """Pick the game to feature from a time-sorted day list.

    Events without a parseable start are ignored here (they stay selectable in the list).
    Precedence: first live, first upcoming (within the grace window), last final, first timed.
    """
    now = _as_utc(now)
    timed: List[Tuple[RawEvent, datetime, str]] = []
    for event in events:
        start = event_start_time(event)
        if start is not None:
            timed.append((event, start, event_state(event)))
    timed.sort(key=lambda item: item[1])

    for event, _, state in timed:
        if state == STATE_IN:
            return event

    earliest_upcoming = now - settings.upcoming_grace
    for event, start, state in timed:
        if state == STATE_PRE and start >= earliest_upcoming:
            return event

    finished = [event for event, start, state in timed if state == STATE_POST and start <= now]
    if finished:
        return finished[-1]

    return timed[0][0] if timed else None


class DaySelector:
    """Runs the sequential, short-circuiting day search against the ESPN client"""

    def __init__(self, client: ESPNClient, logger: Optional[logging.Logger] = None,
                 settings: Optional[SelectionSettings] = None):
        self.client = client
        self.logger = logger or logging.getLogger("ScoreBot")
        self.settings = settings or SelectionSettings()

    async def select(self, league: Union[LeagueKey, str], now: Optional[datetime] = None) -> Optional[DaySelection]:
        """Choose the day to display for a league.

        Returns:
            The DaySelection, or None when no candidate day has any games.

        Raises:
            InvalidLeague: Unknown league (before any network access).
            RemoteUnavailable: Any day's fetch failed; later days are not queried.
        """
        league = resolve_league(league)
        now = _as_utc(now or utc_now())
        best: Optional[DaySelection] = None

        for day in build_candidate_days(now, self.settings.lookahead_days):
            events = await self.client.fetch_events(league, day)
            if not events:
                self.logger.debug(f"{league.name} {day}: no games")
                continue

            day_score = score_day(events, now, self.settings)
            self.logger.debug(
                f"{league.name} {day}: {len(events)} games, live={day_score.has_live}, "
                f"recent={day_score.has_recent}, score={day_score.score}"
            )

            if best is None or day_score.score > best.score:
                ordered = sort_events(events)
                best = DaySelection(
                    league=league,
                    day=day,
                    events=ordered,
                    main_event=pick_main_event(ordered, now, self.settings),
                    score=day_score.score,
                )

            if day_score.has_live:
                break

        if best is None:
            self.logger.info(f"No {league.name} games found in the next {self.settings.lookahead_days} days")
        else:
            self.logger.debug(f"{league.name}: selected {best.day} (score {best.score})")
        return best

    async def select_for_date(self, league: Union[LeagueKey, str], day: DateLike,
                              now: Optional[datetime] = None) -> Optional[DaySelection]:
        """Build the selection for one explicitly requested day (None when it has no games).

        Raises:
            InvalidLeague: Unknown league.
            InvalidDate: Unparseable day, before any network access.
        """
        league = resolve_league(league)
        day = parse_date(day)
        now = _as_utc(now or utc_now())
        events = await self.client.fetch_events(league, day)
        if not events:
            return None
        ordered = sort_events(events)
        return DaySelection(
            league=league,
            day=day,
            events=ordered,
            main_event=pick_main_event(ordered, now, self.settings),
            score=score_day(events, now, self.settings).score,
        )

    async def find_game(self, league: Union[LeagueKey, str], wanted_id: Any,
                        now: Optional[datetime] = None,
                        day: Optional[DateLike] = None) -> Tuple[DaySelection, NormalizedGame]:
        """Recompute the selection from scratch and look up a previously listed event.

        Raises:
            GameNotFound: The event is not in the recomputed day's list (or there are no games).
        """
        if day is not None:
            selection = await self.select_for_date(league, day, now)
        else:
            selection = await self.select(league, now)
        if selection is None:
            raise GameNotFound(str(wanted_id))
        return selection, extract_game(selection.find_event(wanted_id))
