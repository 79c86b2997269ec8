#!/usr/bin/env python3
"""
Error types for the scoreboard lookups
All of them carry a user-readable message; the command boundary shows str(error) to the user
"""

from typing import Optional


class ScoreboardError(Exception):
    """Base class for errors raised while building a game selection"""


class InvalidLeague(ScoreboardError):
    """Unrecognized league shortcut, rejected before any network access"""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown league: {token}")


class InvalidDate(ScoreboardError):
    """A supplied date could not be parsed into a calendar day"""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid date: {value}")


class RemoteUnavailable(ScoreboardError):
    """Non-success HTTP status or transport failure from the ESPN API.

    Attributes:
        status: HTTP status code, or None when the transport itself failed.
        excerpt: Truncated response body (or transport error text) for diagnostics.
        url: The URL that was requested.
    """

    EXCERPT_LENGTH = 120

    def __init__(self, status: Optional[int], excerpt: str = "", url: Optional[str] = None):
        self.status = status
        self.excerpt = (excerpt or "")[:self.EXCERPT_LENGTH]
        self.url = url
        if status is None:
            message = f"ESPN request failed ({self.excerpt or 'transport error'})"
        else:
            message = f"ESPN request failed ({status}) {self.excerpt}".rstrip()
        super().__init__(message)


class GameNotFound(ScoreboardError):
    """A follow-up selection references an event that is no longer in the day's list"""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__("Could not find that game.")
