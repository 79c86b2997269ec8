#!/usr/bin/env python3
"""
League mappings for the ESPN scoreboard API
Each league shortcut maps to the (sport, competition) pair used in ESPN URL paths
"""

from enum import Enum
from typing import Dict, Optional

from ..errors import InvalidLeague


class LeagueKey(Enum):
    """Supported leagues, valued by their ESPN (sport, competition) path segments"""

    NFL = ('football', 'nfl')
    NBA = ('basketball', 'nba')
    NHL = ('hockey', 'nhl')
    MLB = ('baseball', 'mlb')
    MLS = ('soccer', 'usa.1')
    EPL = ('soccer', 'eng.1')  # Premier League
    F1 = ('racing', 'f1')

    def __init__(self, sport: str, competition: str):
        self.sport = sport
        self.competition = competition

    @property
    def shortcut(self) -> str:
        return self.name.lower()


# Sport emojis stand in for per-league styling on plain-text mesh messages
SPORT_EMOJIS = {
    'football': '🏈',
    'baseball': '⚾',
    'basketball': '🏀',
    'hockey': '🏒',
    'soccer': '⚽',
    'racing': '🏎️',
}

DEFAULT_EMOJI = '🏆'

LEAGUE_SHORTCUTS: Dict[str, LeagueKey] = {league.shortcut: league for league in LeagueKey}


def league_emoji(league: LeagueKey) -> str:
    return SPORT_EMOJIS.get(league.sport, DEFAULT_EMOJI)


def resolve_league(token: Optional[str]) -> LeagueKey:
    """Resolve a league shortcut token (case-insensitive) to a LeagueKey.

    Raises:
        InvalidLeague: If the token is not a known shortcut.
    """
    if isinstance(token, LeagueKey):
        return token
    league = LEAGUE_SHORTCUTS.get((token or '').strip().lower())
    if league is None:
        raise InvalidLeague(token or '')
    return league
