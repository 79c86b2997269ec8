#!/usr/bin/env python3
"""
Help command for the MeshCore Scoreboard Bot
Provides help information for commands and general usage
"""

from .base_command import BaseCommand
from ..models import MeshMessage


class HelpCommand(BaseCommand):
    """Lists available commands, or shows usage for one command"""

    # Plugin metadata
    name = "help"
    keywords = ['help']
    description = "Shows commands. Use 'help <command>' for details."
    category = "basic"

    # Documentation
    short_description = "Get help on available commands"
    usage = "help [command]"
    examples = ["help", "help nfl"]
    parameters = [
        {"name": "command", "description": "Command name or league shortcut (optional)"}
    ]

    async def execute(self, message: MeshMessage) -> bool:
        content = self.strip_command_prefix(message.content)
        parts = content.split(None, 1)
        if len(parts) > 1:
            response = self.bot.command_manager.get_help_for_command(parts[1].strip().lower(), message)
        else:
            response = self.bot.command_manager.get_general_help(message)

        max_length = self.get_max_message_length(message)
        if len(response) > max_length:
            response = response[:max_length - 3] + "..."
        return await self.send_response(message, response)
