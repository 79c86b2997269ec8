#!/usr/bin/env python3
"""
Pytest fixtures for scoreboard bot tests
"""

import pytest
import configparser
from unittest.mock import Mock, MagicMock, AsyncMock
from typing import Any, Optional

from scorebot.models import MeshMessage


def mock_message(
    content: str = "nfl",
    channel: Optional[str] = "general",
    is_dm: bool = False,
    sender_id: Optional[str] = "TestUser",
    sender_pubkey: Optional[str] = None,
    **kwargs: Any,
) -> MeshMessage:
    """Factory for creating MeshMessage instances in tests."""
    return MeshMessage(
        content=content,
        channel=channel if not is_dm else None,
        is_dm=is_dm,
        sender_id=sender_id,
        sender_pubkey=sender_pubkey,
        **kwargs,
    )


@pytest.fixture
def minimal_config():
    """Minimal ConfigParser for command tests (Connection, Bot, Channels)."""
    config = configparser.ConfigParser()
    config.add_section("Connection")
    config.set("Connection", "connection_type", "serial")
    config.set("Connection", "serial_port", "/dev/ttyUSB0")
    config.add_section("Bot")
    config.set("Bot", "bot_name", "TestBot")
    config.add_section("Channels")
    config.set("Channels", "monitor_channels", "general,sports")
    config.set("Channels", "respond_to_dms", "true")
    return config


@pytest.fixture
def command_mock_bot(mock_logger, minimal_config):
    """Lightweight mock bot for command tests. No radio connection."""
    bot = MagicMock()
    bot.logger = mock_logger
    bot.config = minimal_config
    bot.meshcore = None
    bot.command_manager = MagicMock()
    bot.command_manager.monitor_channels = ["general", "sports"]
    bot.command_manager.send_response = AsyncMock(return_value=True)
    return bot


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    logger = Mock()
    logger.info = Mock()
    logger.debug = Mock()
    logger.warning = Mock()
    logger.error = Mock()
    return logger
