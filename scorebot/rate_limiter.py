#!/usr/bin/env python3
"""
Rate limiting for the MeshCore Scoreboard Bot
Keeps scoreboard replies from flooding the mesh
"""

import asyncio
import time
from typing import Dict, List


class RateLimiter:
    """Minimum interval between replies that start a new response (global)"""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self.last_send = 0.0
        self._total_sends = 0
        self._total_throttled = 0

    def time_until_next(self) -> float:
        return max(0.0, self.seconds - (time.time() - self.last_send))

    def can_send(self) -> bool:
        can = self.time_until_next() <= 0
        if not can:
            self._total_throttled += 1
        return can

    def record_send(self) -> None:
        self.last_send = time.time()
        self._total_sends += 1

    def get_stats(self) -> dict:
        total_attempts = self._total_sends + self._total_throttled
        return {
            'total_sends': self._total_sends,
            'total_throttled': self._total_throttled,
            'throttle_rate': self._total_throttled / max(1, total_attempts),
        }


class BotTxRateLimiter(RateLimiter):
    """Spacing between any two radio transmissions; waits instead of rejecting"""

    def __init__(self, seconds: float = 1.0):
        super().__init__(seconds)

    def record_tx(self) -> None:
        self.record_send()

    async def wait_for_tx(self) -> None:
        """Sleep until the next transmission is allowed"""
        while not self.can_send():
            await asyncio.sleep(self.time_until_next() + 0.05)


class PerUserRateLimiter:
    """Minimum seconds between replies to the same user.

    Keyed by pubkey when available, else sender name. Bounded by max_entries,
    evicting the least recently used key first.
    """

    def __init__(self, seconds: float, max_entries: int = 1000):
        self.seconds = seconds
        self.max_entries = max_entries
        self._last_send: Dict[str, float] = {}
        self._order: List[str] = []

    def time_until_next(self, key: str) -> float:
        if not key:
            return 0.0
        return max(0.0, self.seconds - (time.time() - self._last_send.get(key, 0.0)))

    def can_send(self, key: str) -> bool:
        return self.time_until_next(key) <= 0

    def record_send(self, key: str) -> None:
        if not key:
            return
        if key in self._last_send:
            self._order.remove(key)
        else:
            while len(self._last_send) >= self.max_entries and self._order:
                self._last_send.pop(self._order.pop(0), None)
        self._last_send[key] = time.time()
        self._order.append(key)
