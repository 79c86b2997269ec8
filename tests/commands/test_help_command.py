"""Tests for scorebot.commands.help_command."""

import pytest
from unittest.mock import Mock

from scorebot.commands.help_command import HelpCommand
from tests.conftest import mock_message


@pytest.fixture
def help_bot(command_mock_bot):
    command_mock_bot.command_manager.get_general_help = Mock(return_value="Bot Help: help | games,nfl")
    command_mock_bot.command_manager.get_help_for_command = Mock(return_value="Help nfl: Best game")
    return command_mock_bot


class TestHelpCommand:
    """Tests for HelpCommand.execute()."""

    @pytest.mark.asyncio
    async def test_general_help(self, help_bot):
        cmd = HelpCommand(help_bot)
        msg = mock_message("help")
        assert await cmd.execute(msg) is True
        help_bot.command_manager.get_general_help.assert_called_once_with(msg)
        help_bot.command_manager.send_response.assert_awaited_once_with(
            msg, "Bot Help: help | games,nfl", skip_user_rate_limit=False
        )

    @pytest.mark.asyncio
    async def test_help_for_command(self, help_bot):
        cmd = HelpCommand(help_bot)
        msg = mock_message("help NFL", is_dm=True)
        await cmd.execute(msg)
        help_bot.command_manager.get_help_for_command.assert_called_once_with("nfl", msg)

    @pytest.mark.asyncio
    async def test_long_help_truncated(self, help_bot):
        help_bot.command_manager.get_general_help = Mock(return_value="x" * 400)
        cmd = HelpCommand(help_bot)
        await cmd.execute(mock_message("help", is_dm=True))
        sent = help_bot.command_manager.send_response.call_args.args[1]
        assert len(sent) == 150
        assert sent.endswith("...")

    def test_keywords(self, help_bot):
        cmd = HelpCommand(help_bot)
        assert cmd.matches_keyword(mock_message("help nba")) is True
        assert cmd.matches_keyword(mock_message("helpme")) is False
