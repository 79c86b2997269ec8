#!/usr/bin/env python3
"""
Message handling functionality for the MeshCore Scoreboard Bot
Turns incoming MeshCore events into MeshMessages and routes them to the command manager
"""

import copy
import time
from typing import Any, Dict, Optional, Tuple

from .models import MeshMessage

UNKNOWN_PATH_LEN = 255


class MessageHandler:
    """Handles incoming DMs and channel messages and routes them to command processors"""

    def __init__(self, bot):
        self.bot = bot
        self.logger = bot.logger

    def _is_old_cached_message(self, timestamp: Any) -> bool:
        """Check if a message timestamp indicates it was queued before the bot connected.

        Unknown or implausible timestamps (device clock not synced) are processed.
        """
        connection_time = getattr(self.bot, 'connection_time', None)
        if connection_time is None or timestamp is None or timestamp == 'unknown':
            return False
        try:
            msg_time = float(timestamp)
        except (TypeError, ValueError):
            return False
        if msg_time <= 0 or msg_time > time.time() + 3600:
            return False
        # Small buffer for clock differences between radio and host
        return msg_time < (connection_time - 5)

    def _lookup_contact(self, pubkey_prefix: str) -> Optional[Dict[str, Any]]:
        contacts = getattr(self.bot.meshcore, 'contacts', None) if self.bot.meshcore else None
        if not contacts or not pubkey_prefix:
            return None
        for contact_data in contacts.values():
            if contact_data.get('public_key', '').startswith(pubkey_prefix):
                return contact_data
        return None

    @staticmethod
    def split_channel_text(text: str) -> Tuple[str, str]:
        """Split channel text in "SENDER: message" form into (sender, message)"""
        sender_id = "Channel User"
        message_content = text
        if ':' in text and not text.startswith(':'):
            sender, content = text.split(':', 1)
            if sender.strip():
                sender_id = sender.strip()
                message_content = content
        return sender_id, message_content.strip()

    async def handle_contact_message(self, event, metadata=None):
        """Handle incoming contact message (DM)"""
        try:
            # Copy payload immediately; the event may be reused by the library
            payload = copy.deepcopy(event.payload) if hasattr(event, 'payload') else None
            if payload is None:
                self.logger.warning("Contact message event has no payload")
                return

            self.logger.debug(f"Contact message payload: {payload}")
            self.logger.info(f"Received DM from {payload.get('pubkey_prefix', 'unknown')}: {payload.get('text', '')}")

            pubkey_prefix = payload.get('pubkey_prefix', '')
            contact = self._lookup_contact(pubkey_prefix)
            sender_name = pubkey_prefix
            sender_pubkey = pubkey_prefix
            if contact:
                sender_name = contact.get('name', contact.get('adv_name', pubkey_prefix))
                sender_pubkey = contact.get('public_key', pubkey_prefix)

            path_len = payload.get('path_len', UNKNOWN_PATH_LEN)
            if path_len == UNKNOWN_PATH_LEN:
                path_info = "Direct (0 hops)"
            else:
                path_info = f"Routed through {path_len} hops"

            timestamp = payload.get('sender_timestamp', 'unknown')
            message = MeshMessage(
                content=payload.get('text', '').strip(),
                sender_id=sender_name,
                sender_pubkey=sender_pubkey,
                is_dm=True,
                timestamp=timestamp,
                snr=payload.get('SNR', payload.get('snr')),
                rssi=payload.get('RSSI', payload.get('rssi')),
                hops=path_len if path_len != UNKNOWN_PATH_LEN else 0,
                path=path_info
            )

            if self._is_old_cached_message(timestamp):
                self.logger.debug(f"Skipping old cached message from {sender_name} (timestamp: {timestamp})")
                return

            await self.process_message(message)

        except Exception as e:
            self.logger.error(f"Error handling contact message: {e}")

    async def handle_channel_message(self, event, metadata=None):
        """Handle incoming channel message"""
        try:
            payload = copy.deepcopy(event.payload) if hasattr(event, 'payload') else None
            if payload is None:
                self.logger.warning("Channel message event has no payload")
                return

            self.logger.debug(f"Channel message payload: {payload}")

            channel_idx = payload.get('channel_idx', 0)
            text = payload.get('text', '')
            sender_id, message_content = self.split_channel_text(text)
            channel_name = self.bot.channel_manager.get_channel_name(channel_idx)

            self.logger.info(f"Received channel message ({channel_name}) from {sender_id}: {text}")

            path_len = payload.get('path_len', UNKNOWN_PATH_LEN)
            timestamp = payload.get('sender_timestamp', 0)
            message = MeshMessage(
                content=message_content,
                sender_id=sender_id,
                sender_pubkey=payload.get('pubkey_prefix') or None,
                channel=channel_name,
                timestamp=timestamp,
                snr=payload.get('SNR', payload.get('snr')),
                rssi=payload.get('RSSI', payload.get('rssi')),
                hops=path_len if path_len != UNKNOWN_PATH_LEN else 0,
                is_dm=False
            )

            if self._is_old_cached_message(timestamp):
                self.logger.debug(f"Skipping old cached channel message from {sender_id} (timestamp: {timestamp})")
                return

            await self.process_message(message)

        except Exception as e:
            self.logger.error(f"Error handling channel message: {e}", exc_info=True)

    async def process_message(self, message: MeshMessage):
        """Process a received message"""
        if not self.should_process_message(message):
            return

        self.logger.info(f"Processing message: {message.content}")
        await self.bot.command_manager.execute_commands(message)

    def should_process_message(self, message: MeshMessage) -> bool:
        """Check if message should be processed by the bot"""
        if not self.bot.config.getboolean('Bot', 'enabled', fallback=True):
            return False

        if self.bot.command_manager.is_user_banned(message.sender_id):
            self.logger.debug(f"Ignoring message from banned user: {message.sender_id}")
            return False

        if not message.is_dm:
            if not message.channel:
                return False
            if message.channel in self.bot.command_manager.monitor_channels:
                return True

            # A command-level channel override can open a channel that is not monitored globally
            for command_name, command in self.bot.command_manager.commands.items():
                if command.is_channel_allowed(message):
                    self.logger.debug(f"Channel {message.channel} allowed by command '{command_name}' override")
                    return True

            self.logger.debug(f"Channel {message.channel} not in monitored channels: {self.bot.command_manager.monitor_channels}")
            return False

        if not self.bot.config.getboolean('Channels', 'respond_to_dms', fallback=True):
            self.logger.debug("DMs are disabled")
            return False

        return True
