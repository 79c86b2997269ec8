#!/usr/bin/env python3
"""
League scoreboard command for the MeshCore Scoreboard Bot
Shows the most relevant game of a league plus a numbered list of that day's games

Usage:
  nfl               best day's featured game and the game list
  nfl 3             details for option 3 of the list you were last sent
  nfl 401547403     details for a game by ESPN event id
  nfl 2026-10-20    games of one specific (UTC) day, dashed form only
  games nfl ...     same, with the league as an argument
"""

import re
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Tuple

import pytz

from .base_command import BaseCommand
from ..models import MeshMessage
from ..clients.espn_client import ESPNClient, parse_date
from ..clients.sports_mappings import LeagueKey, LEAGUE_SHORTCUTS, league_emoji, resolve_league
from ..day_selector import (
    DEFAULT_LOOKAHEAD_DAYS, MAX_LIST_OPTIONS, RECENT_WINDOW, UPCOMING_GRACE,
    DaySelection, DaySelector, SelectionSettings,
)
from ..errors import GameNotFound, InvalidLeague
from ..games import STATE_PRE, NormalizedGame, event_id, extract_game

DATE_ARG = re.compile(r'\d{4}-\d{1,2}-\d{1,2}', re.ASCII)
NUMBER_ARG = re.compile(r'\d+', re.ASCII)
MAX_OPTION_LABEL = 100
MAX_ISSUED_LISTS = 500
NO_WATCH = "Varies by region"


@dataclass
class IssuedList:
    """Event ids of the numbered list last sent to one user for one league"""
    event_ids: List[str]
    day: Optional[date] = None  # set when the list came from an explicit date
    issued_at: float = field(default_factory=time.time)


class LeagueCommand(BaseCommand):
    """Picks the best day and game for a league and lets users drill into listed games"""

    # Plugin metadata
    name = "league"
    keywords = ['games'] + list(LEAGUE_SHORTCUTS)
    description = "Best game for a league (nfl, nba, nhl, mlb, mls, epl, f1). Reply '<league> #' for a listed game."
    category = "sports"
    cooldown_seconds = 3
    requires_internet = True

    # Documentation
    short_description = "Featured game and game list for a league"
    usage = "<league> [#|event id|YYYY-MM-DD]"
    examples = ["nfl", "nba 3", "epl 2026-10-25", "games nhl"]
    parameters = [
        {"name": "league", "description": "League shortcut (nfl, nba, nhl, mlb, mls, epl, f1)"},
        {"name": "#", "description": "Option number from the last game list you received"},
        {"name": "date", "description": "Show games of one UTC day (YYYY-MM-DD only; plain numbers are list options or event ids)"},
    ]

    def __init__(self, bot):
        super().__init__(bot)
        section = self._derive_config_section_name()

        self.leagues = self._load_leagues(section)
        self.keywords = ['games'] + [league.shortcut for league in self.leagues]

        self.lookahead_days = self.get_config_value(section, 'lookahead_days',
                                                    fallback=DEFAULT_LOOKAHEAD_DAYS, value_type='int')
        recent_hours = self.get_config_value(section, 'recent_window_hours',
                                             fallback=RECENT_WINDOW.total_seconds() / 3600, value_type='float')
        grace_minutes = self.get_config_value(section, 'upcoming_grace_minutes',
                                              fallback=UPCOMING_GRACE.total_seconds() / 60, value_type='float')
        request_timeout = self.get_config_value(section, 'request_timeout', fallback=0, value_type='float')
        self.list_messages = max(1, self.get_config_value(section, 'list_messages', fallback=2, value_type='int'))
        self.display_timezone = self._load_timezone(section)

        self.espn_client = ESPNClient(logger=self.logger, timeout=request_timeout)
        self.selector = DaySelector(
            self.espn_client,
            logger=self.logger,
            settings=SelectionSettings(
                lookahead_days=self.lookahead_days,
                recent_window=timedelta(hours=recent_hours),
                upcoming_grace=timedelta(minutes=grace_minutes),
            ),
        )

        self._issued_lists: "OrderedDict[Tuple[str, LeagueKey], IssuedList]" = OrderedDict()

    def _load_leagues(self, section: str) -> List[LeagueKey]:
        configured = self.get_config_value(section, 'leagues', fallback=None, value_type='list')
        if not configured:
            return list(LeagueKey)
        leagues = []
        for token in configured:
            try:
                league = resolve_league(token)
            except InvalidLeague:
                self.logger.warning(f"Ignoring unknown league '{token}' in [{section}] leagues")
                continue
            if league not in leagues:
                leagues.append(league)
        return leagues

    def _load_timezone(self, section: str):
        tz_name = self.get_config_value(section, 'timezone', fallback='UTC', value_type='str')
        try:
            return pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError:
            self.logger.warning(f"Unknown timezone '{tz_name}' in [{section}], using UTC")
            return pytz.utc

    def get_help_text(self) -> str:
        shortcuts = ', '.join(league.shortcut for league in self.leagues)
        return f"Best game for a league ({shortcuts}). Reply '<league> #' for a listed game."

    def parse_arguments(self, content: str) -> Tuple[Optional[LeagueKey], List[str]]:
        """Split message text into the league and its remaining arguments.

        Returns (None, []) for a bare 'games' without a league.

        Raises:
            InvalidLeague: Unknown or disabled league.
        """
        tokens = self.strip_command_prefix(content).split()
        keyword = tokens[0].lower() if tokens else ''
        args = tokens[1:]
        if keyword == 'games':
            if not args:
                return None, []
            keyword, args = args[0], args[1:]
        league = resolve_league(keyword)
        if league not in self.leagues:
            raise InvalidLeague(keyword)
        return league, args

    async def execute(self, message: MeshMessage) -> bool:
        league, args = self.parse_arguments(message.content)
        if league is None:
            shortcuts = ', '.join(enabled.shortcut for enabled in self.leagues)
            return await self.send_response(message, f"Usage: games <league> ({shortcuts})")
        argument = args[0] if args else None

        try:
            if argument is None:
                return await self.send_best_day(message, league)
            if DATE_ARG.fullmatch(argument):
                return await self.send_best_day(message, league, day=parse_date(argument))
            if NUMBER_ARG.fullmatch(argument):
                return await self.send_game_details(message, league, argument)
        except GameNotFound as e:
            return await self.send_response(message, str(e))

        return await self.send_response(message, f"Usage: {league.shortcut} {self.usage.split(' ', 1)[1]}")

    async def send_best_day(self, message: MeshMessage, league: LeagueKey, day: Optional[date] = None) -> bool:
        """Send the featured game and the numbered game list for the selected day"""
        if day is None:
            selection = await self.selector.select(league)
        else:
            selection = await self.selector.select_for_date(league, day)

        if selection is None or selection.main_event is None:
            if day is not None:
                return await self.send_response(message, f"No {league.name} games on {day.isoformat()}.")
            return await self.send_response(message, f"No games found in the next {self.lookahead_days} days.")

        max_length = self.get_max_message_length(message)
        sent = await self.send_response(message, self.format_game(selection.main_game, selection, max_length))
        if not sent:
            return False

        options = selection.option_events(MAX_LIST_OPTIONS)
        if options:
            self.remember_list(message, league, options, day)
            header = f"Reply '{league.shortcut} #':"
            entries = [f"{i}. {self.option_label(event)}" for i, event in enumerate(options, 1)]
            for part in self.split_into_messages(header, entries, max_length, self.list_messages):
                # Per-user rate limit applies only to the first message of a reply
                await self.send_response(message, part, skip_user_rate_limit=True)
        return True

    async def send_game_details(self, message: MeshMessage, league: LeagueKey, argument: str) -> bool:
        """Resolve a follow-up pick (list number or event id) against a fresh selection"""
        wanted_id = argument
        day = None
        issued = self._issued_lists.get(self._list_key(message, league))
        number = int(argument)
        if issued and 1 <= number <= len(issued.event_ids):
            wanted_id = issued.event_ids[number - 1]
            day = issued.day

        selection, game = await self.selector.find_game(league, wanted_id, day=day)
        max_length = self.get_max_message_length(message)
        return await self.send_response(message, self.format_game(game, selection, max_length))

    def _list_key(self, message: MeshMessage, league: LeagueKey) -> Tuple[str, LeagueKey]:
        sender = message.sender_pubkey or message.sender_id or ''
        return sender, league

    def remember_list(self, message: MeshMessage, league: LeagueKey, options, day: Optional[date]) -> None:
        key = self._list_key(message, league)
        self._issued_lists.pop(key, None)
        self._issued_lists[key] = IssuedList(event_ids=[event_id(event) for event in options], day=day)
        while len(self._issued_lists) > MAX_ISSUED_LISTS:
            self._issued_lists.popitem(last=False)

    @staticmethod
    def option_label(event) -> str:
        return extract_game(event).matchup_label[:MAX_OPTION_LABEL]

    def format_start(self, game: NormalizedGame) -> Optional[str]:
        if game.start_time is None:
            return None
        local = game.start_time.astimezone(self.display_timezone)
        return local.strftime('%a %m/%d %H:%M %Z')

    def format_game(self, game: NormalizedGame, selection: DaySelection, max_length: int) -> str:
        """Render one game as a compact multi-line message, dropping the least important lines to fit"""
        emoji = league_emoji(selection.league)
        has_teams = bool(game.home.abbr and game.away.abbr)
        title = f"{game.away.name} at {game.home.name}" if has_teams else game.name

        lines = [f"{emoji} {title}"]
        start = self.format_start(game)
        if game.state == STATE_PRE and start:
            lines.append(f"Starts {start}")
        else:
            lines.append(game.status)
            if has_teams:
                lines.append(f"{game.away.abbr} {game.away.score} - {game.home.score} {game.home.abbr}")
        lines.append(selection.day_label)
        lines.append(f"TV: {', '.join(game.watch) if game.watch else NO_WATCH}")
        lines.append(game.venue)

        return self.fit_lines(lines, max_length)

    @staticmethod
    def fit_lines(lines: List[str], max_length: int) -> str:
        result = "\n".join(lines)
        while len(result) > max_length and len(lines) > 1:
            lines = lines[:-1]
            result = "\n".join(lines)
        if len(result) > max_length:
            result = result[:max_length - 3] + "..."
        return result

    @staticmethod
    def split_into_messages(header: str, entries: List[str], max_length: int, max_messages: int) -> List[str]:
        """Pack list entries into at most max_messages messages of max_length characters.

        Entries that do not fit are summarized as "+N more" at the end of the last message.
        """
        messages: List[List[str]] = [[header]]
        shown = 0
        for entry in entries:
            current = messages[-1]
            if len("\n".join(current + [entry])) <= max_length:
                current.append(entry)
            elif len(messages) < max_messages:
                messages.append([entry])
            else:
                break
            shown += 1

        remaining = len(entries) - shown
        if remaining:
            last = messages[-1]
            while len("\n".join(last + [f"+{remaining} more"])) > max_length and len(last) > 1:
                last.pop()
                remaining += 1
            last.append(f"+{remaining} more")

        return ["\n".join(lines) for lines in messages]
