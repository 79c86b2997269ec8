#!/usr/bin/env python3
"""
Channel management for the MeshCore Scoreboard Bot
Maps MeshCore channel indexes to channel names and back
"""

import asyncio
from typing import Any, Dict, List, Optional

from meshcore import EventType

EMPTY_CHANNEL_SECRET = bytes(16)


class ChannelManager:
    """Caches the channel list of the connected node.

    Incoming channel messages only carry a channel index; replies are sent by
    index too, while config and users refer to channels by name.
    """

    def __init__(self, bot, max_channels: int = 40):
        self.bot = bot
        self.logger = bot.logger
        self.max_channels = max_channels
        self._channels_cache: Dict[int, Dict[str, Any]] = {}
        self._fetch_timeout = 5.0
        # Abort the scan when the first few indexes never answer
        self._max_consecutive_failures = 3

    async def fetch_channels(self) -> List[Dict[str, Any]]:
        """Fetch all configured channels from the node, sequentially"""
        self.logger.info(f"Fetching channels (0-{self.max_channels - 1}) from MeshCore node...")
        if not getattr(self.bot, 'connected', False) or not self.bot.meshcore:
            self.logger.warning("Device not connected, skipping channel fetch")
            return []

        self._channels_cache.clear()
        failures = 0
        for channel_idx in range(self.max_channels):
            try:
                info = await self._fetch_single_channel(channel_idx)
            except (OSError, asyncio.TimeoutError, AttributeError, ValueError) as e:
                self.logger.debug(f"Error fetching channel {channel_idx}: {e}")
                info = None

            if info is None:
                failures += 1
                if failures >= self._max_consecutive_failures and channel_idx < self._max_consecutive_failures:
                    self.logger.warning("Node is not answering channel requests, aborting channel fetch")
                    break
                continue

            failures = 0
            if info.get('channel_name'):
                self._channels_cache[channel_idx] = info
                self.logger.info(f"  Channel {channel_idx}: {info['channel_name']}")

        self.logger.info(f"Fetched {len(self._channels_cache)} channels")
        return list(self._channels_cache.values())

    async def _fetch_single_channel(self, channel_idx: int) -> Optional[Dict[str, Any]]:
        result = await asyncio.wait_for(
            self.bot.meshcore.commands.get_channel(channel_idx), timeout=self._fetch_timeout
        )
        if result is None or result.type == EventType.ERROR:
            return None
        payload = dict(result.payload or {})
        if payload.get('channel_secret') == EMPTY_CHANNEL_SECRET:
            # Unconfigured slot: the node answered, but there is nothing there
            return {'channel_idx': channel_idx, 'channel_name': ''}
        payload.setdefault('channel_idx', channel_idx)
        return payload

    def get_channel_name(self, channel_num: int) -> str:
        """Get channel name from channel number, with a ChannelN fallback"""
        info = self._channels_cache.get(channel_num)
        if info and info.get('channel_name'):
            return info['channel_name']
        self.logger.warning(f"Channel {channel_num} not found in cached channels")
        return f"Channel{channel_num}"

    def get_channel_number(self, channel_name: str) -> Optional[int]:
        """Get channel number from channel name (case-insensitive); None when unknown"""
        wanted = (channel_name or '').strip().lower()
        for num, info in self._channels_cache.items():
            if info.get('channel_name', '').lower() == wanted:
                return num
        fallback = wanted[len('channel'):] if wanted.startswith('channel') else ''
        if fallback.isdigit():
            return int(fallback)
        self.logger.warning(f"Channel name '{channel_name}' not found in cached channels")
        return None
