#!/usr/bin/env python3
"""
Command management functionality for the MeshCore Scoreboard Bot
Matches messages against command plugins, executes them and sends their responses
"""

import asyncio
from typing import List, Tuple, Optional

from meshcore import EventType

from .models import MeshMessage
from .plugin_loader import PluginLoader
from .commands.base_command import BaseCommand
from .config_validation import strip_optional_quotes


class CommandManager:
    """Manages all bot commands and responses using dynamic plugin loading.

    Loads commands from plugins, matches messages against them, checks
    permissions and rate limits, and executes command logic. It is the single
    place where command errors are caught and turned into a user-visible reply.
    """

    def __init__(self, bot):
        self.bot = bot
        self.logger = bot.logger

        self.banned_users = self.load_banned_users()
        self.monitor_channels = self.load_monitor_channels()
        self.command_prefix = self.load_command_prefix()

        self.plugin_loader = PluginLoader(bot)
        self.commands = self.plugin_loader.load_all_plugins()

        self.logger.info(f"CommandManager initialized with {len(self.commands)} plugins")

    async def _apply_tx_delay(self):
        """Apply transmission delay to prevent message collisions"""
        if self.bot.tx_delay_ms > 0:
            self.logger.debug(f"Applying {self.bot.tx_delay_ms}ms transmission delay")
            await asyncio.sleep(self.bot.tx_delay_ms / 1000.0)

    def get_rate_limit_key(self, message: MeshMessage) -> Optional[str]:
        """Return the key used for per-user rate limiting (pubkey when available, else sender name)."""
        return message.sender_pubkey or message.sender_id or None

    async def _check_rate_limits(
        self, skip_user_rate_limit: bool = False, rate_limit_key: Optional[str] = None
    ) -> Tuple[bool, str]:
        """Check all rate limits before sending.

        Returns:
            Tuple[bool, str]: (can_send, reason); reason is empty when not worth logging.
        """
        if not skip_user_rate_limit:
            if not self.bot.rate_limiter.can_send():
                wait_time = self.bot.rate_limiter.time_until_next()
                if wait_time > 0.1:
                    return False, f"Rate limited. Wait {wait_time:.1f} seconds"
                return False, ""
            per_user = getattr(self.bot, 'per_user_rate_limiter', None)
            if per_user and rate_limit_key and not per_user.can_send(rate_limit_key):
                wait_time = per_user.time_until_next(rate_limit_key)
                if wait_time > 0.1:
                    return False, f"Rate limited. Wait {wait_time:.1f} seconds"
                return False, ""

        await self.bot.bot_tx_rate_limiter.wait_for_tx()
        await self._apply_tx_delay()

        return True, ""

    def _record_send(self, rate_limit_key: Optional[str]) -> None:
        self.bot.rate_limiter.record_send()
        self.bot.bot_tx_rate_limiter.record_tx()
        per_user = getattr(self.bot, 'per_user_rate_limiter', None)
        if per_user and rate_limit_key:
            per_user.record_send(rate_limit_key)

    def _handle_send_result(self, result, operation_name: str, target: str,
                            rate_limit_key: Optional[str] = None) -> bool:
        """Handle result from a meshcore send operation.

        Args:
            result: Event returned by the meshcore send call.
            operation_name: "DM" or "Channel message" (for logging).
            target: Recipient name or channel name for logging.
            rate_limit_key: Optional key for per-user rate limit recording.

        Returns:
            bool: True if the radio accepted the message.
        """
        if not result:
            self.logger.error(f"{operation_name} to {target} failed - no result returned")
            return False

        if not hasattr(result, 'type'):
            self.logger.info(f"{operation_name} sent to {target} (result: {result})")
            self._record_send(rate_limit_key)
            return True

        if result.type == EventType.ERROR:
            error_payload = getattr(result, 'payload', None)
            self.logger.error(f"{operation_name} failed to {target}: {error_payload or 'Unknown error'}")
            return False

        if result.type in (EventType.MSG_SENT, EventType.OK):
            self.logger.info(f"{operation_name} sent to {target}")
            self._record_send(rate_limit_key)
            return True

        event_name = getattr(result.type, 'name', str(result.type))
        self.logger.warning(f"{operation_name} to {target}: unexpected event type {event_name}")
        return False

    def load_banned_users(self) -> List[str]:
        if not self.bot.config.has_section('Banned_Users'):
            return []
        banned = self.bot.config.get('Banned_Users', 'banned_users', fallback='')
        return [user.strip() for user in banned.split(',') if user.strip()]

    def is_user_banned(self, sender_id: Optional[str]) -> bool:
        """Check if sender is banned using prefix (starts-with) matching.

        A banned entry "Awful Username" matches "Awful Username" and "Awful Username 🏆".
        """
        if not sender_id:
            return False
        return any(sender_id.startswith(entry) for entry in self.banned_users)

    def load_monitor_channels(self) -> List[str]:
        """Load monitored channels from config.
        Values may be quoted, e.g. \"#sports,#bot\" or unquoted.
        """
        raw = self.bot.config.get('Channels', 'monitor_channels', fallback='')
        channels = strip_optional_quotes(raw)
        return [channel.strip() for channel in channels.split(',') if channel.strip()]

    def load_command_prefix(self) -> str:
        prefix = self.bot.config.get('Bot', 'command_prefix', fallback='')
        return prefix.strip() if prefix else ''

    async def send_dm(self, recipient_id: str, content: str, skip_user_rate_limit: bool = False,
                      rate_limit_key: Optional[str] = None) -> bool:
        """Send a direct message to a contact (looked up by name).

        Returns:
            bool: True if sent successfully, False otherwise.
        """
        if not self.bot.connected or not self.bot.meshcore:
            return False

        can_send, reason = await self._check_rate_limits(
            skip_user_rate_limit=skip_user_rate_limit, rate_limit_key=rate_limit_key
        )
        if not can_send:
            if reason:
                self.logger.warning(reason)
            return False

        try:
            contact = self.bot.meshcore.get_contact_by_name(recipient_id)
            if not contact:
                self.logger.error(f"Contact not found for name: {recipient_id}")
                return False

            contact_name = contact.get('name', contact.get('adv_name', recipient_id))
            self.logger.info(f"Sending DM to {contact_name}: {content}")
            result = await self.bot.meshcore.commands.send_msg(contact, content)
            return self._handle_send_result(result, "DM", contact_name, rate_limit_key=rate_limit_key)

        except Exception as e:
            self.logger.error(f"Failed to send DM: {e}")
            return False

    async def send_channel_message(self, channel: str, content: str, skip_user_rate_limit: bool = False,
                                   rate_limit_key: Optional[str] = None) -> bool:
        """Send a channel message, resolving the channel name to its index.

        Returns:
            bool: True if sent successfully, False otherwise.
        """
        if not self.bot.connected or not self.bot.meshcore:
            return False

        can_send, reason = await self._check_rate_limits(
            skip_user_rate_limit=skip_user_rate_limit, rate_limit_key=rate_limit_key
        )
        if not can_send:
            if reason:
                self.logger.warning(reason)
            return False

        try:
            channel_num = self.bot.channel_manager.get_channel_number(channel)
            if channel_num is None:
                self.logger.error(f"Channel '{channel}' not found. Cannot send message.")
                return False

            self.logger.info(f"Sending channel message to {channel} (channel {channel_num}): {content}")

            from meshcore_cli.meshcore_cli import send_chan_msg
            result = await send_chan_msg(self.bot.meshcore, channel_num, content)

            target = f"{channel} (channel {channel_num})"
            return self._handle_send_result(result, "Channel message", target, rate_limit_key=rate_limit_key)

        except Exception as e:
            self.logger.error(f"Failed to send channel message: {e}")
            return False

    async def send_response(self, message: MeshMessage, content: str, skip_user_rate_limit: bool = False) -> bool:
        """Reply to a message as a DM or on its channel, matching how it arrived"""
        try:
            rate_limit_key = self.get_rate_limit_key(message)
            if message.is_dm:
                return await self.send_dm(
                    message.sender_id, content,
                    skip_user_rate_limit=skip_user_rate_limit,
                    rate_limit_key=rate_limit_key,
                )
            return await self.send_channel_message(
                message.channel, content,
                skip_user_rate_limit=skip_user_rate_limit,
                rate_limit_key=rate_limit_key,
            )
        except Exception as e:
            self.logger.error(f"Failed to send response: {e}")
            return False

    def get_help_for_command(self, command_name: str, message: Optional[MeshMessage] = None) -> str:
        """Get help text for a specific command or keyword (compact, LoRa-friendly)"""
        if command_name.lower() in ['commands', 'list', 'all']:
            return self.get_general_help(message)

        command = self.commands.get(command_name) or self.plugin_loader.get_plugin_by_keyword(command_name)
        if command:
            usage_info = command.get_usage_info()
            help_text = command.get_help_text()
            if usage_info.get('usage'):
                help_text = f"{help_text} Usage: {usage_info['usage']}"
            return f"Help {command_name}: {help_text}"

        available_str = ', '.join(sorted(self.commands.keys()))
        return f"Unknown: {command_name}. Available: {available_str}. Try 'help' for command list."

    def get_general_help(self, message: Optional[MeshMessage] = None) -> str:
        """List commands usable in the message's context, with their keywords"""
        entries = []
        for name, command in sorted(self.commands.items()):
            if message is not None and not command.is_channel_allowed(message):
                continue
            if name == 'help':
                entries.append(name)
            else:
                entries.append(','.join(command.keywords) if command.keywords else name)
        return f"Bot Help: {' | '.join(entries)} | More: 'help <command>'"

    async def execute_commands(self, message: MeshMessage):
        """Execute the first command matching the message.

        Checks permissions and cooldowns, then runs the command. Errors raised by
        the command are logged and reported to the user as "Error: <message>".
        """
        content = message.content.strip()

        if self.command_prefix and not content.startswith(self.command_prefix):
            return

        for command_name, command in self.commands.items():
            if not command.should_execute(message):
                continue

            self.logger.info(f"Command '{command_name}' matched, executing")

            if not command.can_execute(message):
                if command.requires_dm and not message.is_dm:
                    if command.is_channel_allowed(message):
                        await self.send_response(message, f"{command_name} is only available in DMs")
                else:
                    remaining = command.get_remaining_cooldown(message.sender_id)
                    if remaining > 0:
                        await self.send_response(message, f"{command_name}: wait {remaining}s before trying again")
                return

            try:
                command.record_execution(message.sender_id)
                await command.execute(message)
            except Exception as e:
                self.logger.error(f"Error executing command '{command_name}': {e}")
                await self.send_response(message, f"Error: {e}")
            return

    def get_plugin_by_keyword(self, keyword: str) -> Optional[BaseCommand]:
        return self.plugin_loader.get_plugin_by_keyword(keyword)

    def get_plugin_by_name(self, name: str) -> Optional[BaseCommand]:
        return self.plugin_loader.get_plugin_by_name(name)
