#!/usr/bin/env python3
"""
MeshCore Scoreboard Bot using the meshcore-cli and meshcore.py packages
Answers league shortcuts (nfl, nba, ...) with the most relevant ESPN game
"""

import argparse
import asyncio
import signal
import sys


def main():
    parser = argparse.ArgumentParser(
        description="MeshCore Scoreboard Bot - ESPN game lookups over a MeshCore mesh"
    )
    parser.add_argument(
        "--config",
        default="config.ini",
        help="Path to configuration file (default: config.ini)",
    )
    parser.add_argument(
        "--validate-config",
        action="store_true",
        help="Validate config and exit before starting the bot (exit 1 on errors)",
    )

    args = parser.parse_args()

    if args.validate_config:
        from scorebot.config_validation import print_validation_results, validate_config
        sys.exit(1 if print_validation_results(validate_config(args.config)) else 0)

    from scorebot.core import ScoreBot
    bot = ScoreBot(config_file=args.config)

    async def run_bot():
        """Run bot; SIGINT/SIGTERM request a graceful shutdown (Unix only)"""
        if sys.platform != 'win32':
            loop = asyncio.get_running_loop()

            def signal_handler():
                print("\nShutting down...")
                bot.request_shutdown()

            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, signal_handler)

        try:
            await bot.start()
        finally:
            await bot.stop()

    try:
        asyncio.run(run_bot())
    except KeyboardInterrupt:
        print("\nShutdown complete.")
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
