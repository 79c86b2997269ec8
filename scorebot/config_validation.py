#!/usr/bin/env python3
"""
Configuration validation for the Scoreboard Bot config.ini.

Checks required sections, flags unknown section names (with a suggestion for
likely typos) and sanity-checks the league command settings. Can be run
standalone via validate_config.py or at bot startup with --validate-config.
"""

import configparser
import difflib
import os
import sys
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from .clients.sports_mappings import LEAGUE_SHORTCUTS

# Severity levels for validation results
SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
SEVERITY_INFO = "info"

# Canonical section names (as used in config.ini.example and code)
CANONICAL_SECTIONS = frozenset({
    "Connection",
    "Bot",
    "Channels",
    "Banned_Users",
    "Logging",
    "League_Command",
    "Help_Command",
})

# Sections required for the bot to start (accessed without has_section guards)
REQUIRED_SECTIONS = frozenset({
    "Connection",   # Serial/BLE/TCP connection params
    "Bot",          # bot_name, rate limits
    "Channels",     # monitor_channels, respond_to_dms
})

LEAGUE_SECTION = "League_Command"
INT_LEAGUE_OPTIONS = ("lookahead_days", "list_messages")
FLOAT_LEAGUE_OPTIONS = ("recent_window_hours", "upcoming_grace_minutes", "request_timeout")


def strip_optional_quotes(s: str) -> str:
    """Strip one layer of surrounding double or single quotes if present.

    Allows config values like monitor_channels to be written as
    "#sports,#bot" so the list does not look like comments.
    Unquoted values are returned unchanged.
    """
    if not isinstance(s, str):
        return s
    s = s.strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in '"\'':
        return s[1:-1]
    return s


def _suggest_section(section: str) -> Optional[str]:
    """Closest canonical section name for a likely typo (e.g. [League] -> [League_Command])"""
    candidates = sorted(CANONICAL_SECTIONS)
    lowered = {name.lower(): name for name in candidates}
    command_guess = f"{section.strip().lower()}_command"
    if command_guess in lowered:
        return lowered[command_guess]
    matches = difflib.get_close_matches(section.strip(), candidates, n=1, cutoff=0.6)
    return matches[0] if matches else None


def _check_path_writable(file_path: str, base_dir: Path, description: str) -> Optional[str]:
    """Check if a file path can be written. Returns a message if not."""
    if not file_path or not file_path.strip():
        return None
    p = Path(file_path.strip())
    resolved = p if p.is_absolute() else base_dir.resolve() / p
    check_dir = resolved.parent
    while not check_dir.exists():
        if check_dir == check_dir.parent:
            return f"{description} '{resolved}': parent directory does not exist"
        check_dir = check_dir.parent
    if not os.access(str(check_dir), os.W_OK):
        return f"{description} '{resolved}': directory {check_dir} is not writable"
    if resolved.exists() and not os.access(str(resolved), os.W_OK):
        return f"{description} '{resolved}': file exists but is not writable"
    return None


def _validate_league_section(config: configparser.ConfigParser) -> List[Tuple[str, str]]:
    results: List[Tuple[str, str]] = []
    if not config.has_section(LEAGUE_SECTION):
        results.append((
            SEVERITY_INFO,
            f"Section [{LEAGUE_SECTION}] absent; all leagues enabled with default settings.",
        ))
        return results

    leagues = strip_optional_quotes(config.get(LEAGUE_SECTION, "leagues", fallback=""))
    for token in (t.strip() for t in leagues.split(",")):
        if token and token.lower() not in LEAGUE_SHORTCUTS:
            results.append((
                SEVERITY_WARNING,
                f"[{LEAGUE_SECTION}] leagues: unknown league '{token}' "
                f"(known: {', '.join(sorted(LEAGUE_SHORTCUTS))}).",
            ))

    for option in INT_LEAGUE_OPTIONS:
        raw = config.get(LEAGUE_SECTION, option, fallback=None)
        if raw is None:
            continue
        try:
            value = int(raw)
        except ValueError:
            results.append((SEVERITY_ERROR, f"[{LEAGUE_SECTION}] {option} must be an integer, got '{raw}'."))
            continue
        if value < 1:
            results.append((SEVERITY_ERROR, f"[{LEAGUE_SECTION}] {option} must be at least 1, got {value}."))

    for option in FLOAT_LEAGUE_OPTIONS:
        raw = config.get(LEAGUE_SECTION, option, fallback=None)
        if raw is None:
            continue
        try:
            float(raw)
        except ValueError:
            results.append((SEVERITY_ERROR, f"[{LEAGUE_SECTION}] {option} must be a number, got '{raw}'."))

    return results


def validate_config(config_path: str) -> List[Tuple[str, str]]:
    """
    Validate a config file. Returns a list of (severity, message).

    Args:
        config_path: Path to config.ini (or other config file).

    Returns:
        List of (severity, message). severity is one of SEVERITY_*.
    """
    path = Path(config_path)
    if not path.exists():
        return [(SEVERITY_ERROR, f"Config file not found: {config_path}")]

    config = configparser.ConfigParser()
    try:
        config.read(config_path, encoding='utf-8')
    except configparser.Error as e:
        return [(SEVERITY_ERROR, f"Failed to parse config: {e}")]

    results: List[Tuple[str, str]] = []

    sections_present = frozenset(s.strip() for s in config.sections() if s.strip())
    for section in sorted(REQUIRED_SECTIONS - sections_present):
        results.append((
            SEVERITY_ERROR,
            f"Missing required section [{section}]; bot will not start without it.",
        ))

    if "Banned_Users" not in sections_present:
        results.append((SEVERITY_INFO, "Section [Banned_Users] absent; no users banned."))

    if config.has_section("Logging"):
        log_file = config.get("Logging", "log_file", fallback="").strip()
        if log_file:
            msg = _check_path_writable(log_file, path.resolve().parent, "Log file path")
            if msg:
                results.append((SEVERITY_INFO, msg))

    for section in config.sections():
        section_stripped = section.strip()
        if not section_stripped or section_stripped in CANONICAL_SECTIONS:
            continue
        suggestion = _suggest_section(section_stripped)
        if suggestion:
            msg = f"Unknown section [{section_stripped}]; did you mean [{suggestion}]?"
        else:
            msg = f"Unknown section [{section_stripped}] (not used by the bot)."
        results.append((SEVERITY_WARNING, msg))

    results.extend(_validate_league_section(config))
    return results


def print_validation_results(results: List[Tuple[str, str]], stream: Optional[TextIO] = None) -> bool:
    """Print (severity, message) results to stderr; return True if any is an error"""
    stream = stream if stream is not None else sys.stderr
    labels = {SEVERITY_ERROR: "Error", SEVERITY_WARNING: "Warning"}
    has_error = False
    for severity, message in results:
        print(f"{labels.get(severity, 'Info')}: {message}", file=stream)
        has_error = has_error or severity == SEVERITY_ERROR
    return has_error
