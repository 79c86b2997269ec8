#!/usr/bin/env python3
"""
Base command class for all Scoreboard Bot commands
Provides common functionality and interface for command implementations
"""

import time
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Tuple

from ..models import MeshMessage

DM_MAX_LENGTH = 150
CHANNEL_MIN_LENGTH = 130


class BaseCommand(ABC):
    """Base class for all bot commands - Plugin Interface.

    This class defines the interface that all commands must implement. It provides
    common functionality for configuration loading, channel permission checking,
    cooldowns, and message response handling.
    """

    # Plugin metadata - to be overridden by subclasses
    name: str = ""
    keywords: List[str] = []  # All trigger words for this command (including name and aliases)
    description: str = ""
    requires_dm: bool = False
    requires_internet: bool = False
    cooldown_seconds: int = 0
    category: str = "general"

    # Documentation fields - shown by the help command
    short_description: str = ""
    usage: str = ""
    examples: List[str] = []
    parameters: List[Dict[str, str]] = []

    def __init__(self, bot):
        self.bot = bot
        self.logger = bot.logger
        self._last_execution_time = 0.0

        # Per-user cooldown tracking
        self._user_cooldowns: Dict[str, float] = {}

        # Standardized channel override: [Name_Command] channels = ...
        self.allowed_channels = self._load_allowed_channels()

        self._command_prefix = self._load_command_prefix()

    def get_config_value(self, section: str, key: str, fallback: Any = None, value_type: str = 'str') -> Any:
        """Get a typed config value, returning fallback when missing or malformed.

        Args:
            section: Config section name.
            key: Config key name.
            fallback: Default value if not found.
            value_type: Type of value ('str', 'bool', 'int', 'float', 'list').

        Returns:
            Any: Config value of appropriate type, or fallback if not found.
        """
        config = self.bot.config
        if not config.has_section(section) or not config.has_option(section, key):
            return fallback

        try:
            if value_type == 'str':
                return config.get(section, key)
            if value_type == 'bool':
                return config.getboolean(section, key, fallback=fallback)
            if value_type == 'int':
                return config.getint(section, key, fallback=fallback)
            if value_type == 'float':
                return config.getfloat(section, key, fallback=fallback)
            if value_type == 'list':
                raw_value = config.get(section, key)
                return [item.strip() for item in raw_value.split(',') if item.strip()]
        except (ValueError, TypeError) as e:
            self.logger.debug(f"Config conversion error for {section}.{key}: {e}")
            return fallback

        self.logger.warning(f"Unknown value_type '{value_type}' for {section}.{key}, returning as string")
        return config.get(section, key)

    @abstractmethod
    async def execute(self, message: MeshMessage) -> bool:
        """Execute the command with the given message.

        Args:
            message: The message that triggered the command.

        Returns:
            bool: True if execution was successful, False otherwise.
        """
        pass

    def get_help_text(self) -> str:
        return self.description or "No help available for this command."

    def get_usage_info(self) -> Dict[str, Any]:
        """Get structured usage information (description, usage syntax, examples, parameters)"""
        return {
            'description': self.description or "No description available",
            'short_description': self.short_description or "",
            'usage': self.usage or "",
            'examples': list(self.examples) if self.examples else [],
            'parameters': list(self.parameters) if self.parameters else [],
        }

    def _derive_config_section_name(self) -> str:
        """Derive config section name from command name ("league" -> "League_Command")"""
        return f"{self.name.title()}_Command"

    def is_enabled(self) -> bool:
        return self.get_config_value(self._derive_config_section_name(), 'enabled',
                                     fallback=True, value_type='bool')

    def _load_allowed_channels(self) -> Optional[List[str]]:
        """Load allowed channels from config.

        Config format: [CommandName_Command]
        channels = channel1,channel2,channel3

        Returns:
            Optional[List[str]]:
                - None: Use global monitor_channels (default behavior)
                - Empty list []: Command disabled for all channels (only DMs)
                - List of channels: Command only works in these channels
        """
        section_name = self._derive_config_section_name()
        channels_str = self.get_config_value(section_name, 'channels', fallback=None, value_type='str')

        if channels_str is None:
            return None

        if channels_str.strip() == '':
            return []

        channels = [ch.strip() for ch in channels_str.split(',') if ch.strip()]
        return channels if channels else None

    def is_channel_allowed(self, message: MeshMessage) -> bool:
        """Check if this command is allowed in the message's channel. DMs are always allowed."""
        if message.is_dm:
            return True

        if not message.channel:
            return False

        message_channel_normalized = message.channel.lower().strip()

        if self.allowed_channels is None:
            monitor_normalized = {ch.lower().strip() for ch in self.bot.command_manager.monitor_channels}
            return message_channel_normalized in monitor_normalized

        if self.allowed_channels == []:
            return False

        allowed_normalized = {ch.lower().strip() for ch in self.allowed_channels}
        return message_channel_normalized in allowed_normalized

    def can_execute(self, message: MeshMessage) -> bool:
        """Check channel permissions, DM requirements and cooldowns"""
        if not self.is_channel_allowed(message):
            return False

        if self.requires_dm and not message.is_dm:
            return False

        if self.cooldown_seconds > 0:
            can_execute, _ = self.check_cooldown(message.sender_id if message.sender_id else None)
            if not can_execute:
                return False

        return True

    def get_metadata(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'keywords': self.keywords,
            'description': self.description,
            'requires_dm': self.requires_dm,
            'requires_internet': self.requires_internet,
            'cooldown_seconds': self.cooldown_seconds,
            'category': self.category,
            'class_name': self.__class__.__name__,
            'module_name': self.__class__.__module__
        }

    async def send_response(self, message: MeshMessage, content: str, skip_user_rate_limit: bool = False) -> bool:
        """Send a reply through the command manager (rate limits, DM or channel routing).

        Args:
            message: The message to respond to.
            content: The response content.
            skip_user_rate_limit: Skip the per-user limiter (follow-up parts of one reply).

        Returns:
            bool: True if the response was sent successfully, False otherwise.
        """
        try:
            return await self.bot.command_manager.send_response(message, content, skip_user_rate_limit=skip_user_rate_limit)
        except Exception as e:
            self.logger.error(f"Failed to send response: {e}")
            return False

    def get_max_message_length(self, message: MeshMessage) -> int:
        """Maximum reply length for this message.

        Channel messages go out as "<username>: <message>", so the username and
        separator are subtracted from the radio limit; DMs get the full limit.
        """
        if message.is_dm:
            return DM_MAX_LENGTH

        username = self._get_bot_name()
        max_length = DM_MAX_LENGTH - len(str(username)) - 2
        return max(CHANNEL_MIN_LENGTH, max_length)

    def check_cooldown(self, user_id: Optional[str] = None) -> Tuple[bool, float]:
        """Check if user (or, without a user, the command globally) is on cooldown.

        Returns:
            Tuple[bool, float]: (can_execute, remaining_seconds)
        """
        if self.cooldown_seconds <= 0:
            return True, 0.0

        last_exec = self._user_cooldowns.get(user_id, 0.0) if user_id else self._last_execution_time
        remaining = self.cooldown_seconds - (time.time() - last_exec)
        if remaining > 0:
            return False, remaining
        return True, 0.0

    def record_execution(self, user_id: Optional[str] = None) -> None:
        """Record command execution for cooldown tracking"""
        current_time = time.time()

        if user_id:
            self._user_cooldowns[user_id] = current_time

            # Clean up old entries periodically to prevent memory growth
            if len(self._user_cooldowns) > 1000:
                cutoff = current_time - (self.cooldown_seconds * 2)
                self._user_cooldowns = {
                    k: v for k, v in self._user_cooldowns.items()
                    if v > cutoff
                }
        else:
            self._last_execution_time = current_time

    def get_remaining_cooldown(self, user_id: Optional[str] = None) -> int:
        _, remaining = self.check_cooldown(user_id)
        return max(0, int(remaining))

    def _load_command_prefix(self) -> str:
        prefix = self.bot.config.get('Bot', 'command_prefix', fallback='')
        return prefix.strip() if prefix else ''

    def _get_bot_name(self) -> str:
        """Get bot name from the radio (self_info) or fall back to config"""
        meshcore = getattr(self.bot, 'meshcore', None)
        self_info = getattr(meshcore, 'self_info', None) if meshcore else None
        if isinstance(self_info, dict):
            device_name = self_info.get('name') or self_info.get('adv_name')
            if device_name:
                return device_name
        return self.bot.config.get('Bot', 'bot_name', fallback='Bot')

    def strip_command_prefix(self, content: str) -> str:
        """Remove the configured command prefix (or the legacy "!") from message text"""
        content = content.strip()
        if self._command_prefix:
            if content.startswith(self._command_prefix):
                content = content[len(self._command_prefix):].strip()
        elif content.startswith('!'):
            content = content[1:].strip()
        return content

    def matches_keyword(self, message: MeshMessage) -> bool:
        """Check if the message starts with one of this command's keywords.

        When a command prefix is configured, the message must start with it.
        The keyword must be followed by a space or the end of the message.
        """
        if not self.keywords:
            return False

        content = message.content.strip()
        if self._command_prefix and not content.startswith(self._command_prefix):
            return False
        content_lower = self.strip_command_prefix(content).lower()

        for keyword in self.keywords:
            keyword_lower = keyword.lower()
            if keyword_lower == content_lower:
                return True
            if content_lower.startswith(keyword_lower):
                if len(content_lower) == len(keyword_lower) or content_lower[len(keyword_lower)] == ' ':
                    return True

        return False

    def should_execute(self, message: MeshMessage) -> bool:
        """Check if this command should execute for the given message"""
        if not self.matches_keyword(message):
            return False

        # DM-only commands are not considered in channels they are not allowed in
        if self.requires_dm and not message.is_dm:
            if not self.is_channel_allowed(message):
                return False

        return True
