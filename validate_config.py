#!/usr/bin/env python3
"""
Check a Scoreboard Bot config.ini without connecting to a node.

    python validate_config.py [--config config.ini]

Exit status is 1 when an error is reported; warnings and info lines are informational.
"""

import argparse
import sys

from scorebot.config_validation import print_validation_results, validate_config


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check a Scoreboard Bot config.ini")
    parser.add_argument("--config", default="config.ini",
                        help="Path to configuration file (default: config.ini)")
    args = parser.parse_args(argv)
    return 1 if print_validation_results(validate_config(args.config)) else 0


if __name__ == "__main__":
    sys.exit(main())
