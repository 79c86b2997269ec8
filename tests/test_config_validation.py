"""Tests for scorebot.config_validation."""

import pytest

from scorebot.config_validation import (
    SEVERITY_ERROR,
    SEVERITY_INFO,
    SEVERITY_WARNING,
    _check_path_writable,
    _suggest_section,
    print_validation_results,
    strip_optional_quotes,
    validate_config,
)

import validate_config as validate_config_script

BASE_CONFIG = """[Connection]
connection_type = serial
serial_port = /dev/ttyUSB0

[Bot]
bot_name = ScoreBot

[Channels]
monitor_channels = general
respond_to_dms = true
"""


def write_config(tmp_path, extra=""):
    config = tmp_path / "config.ini"
    config.write_text(BASE_CONFIG + extra)
    return str(config)


def by_severity(results, severity):
    return [message for level, message in results if level == severity]


class TestStripOptionalQuotes:
    """Tests for strip_optional_quotes (monitor_channels and similar config values)."""

    def test_unquoted_unchanged(self):
        assert strip_optional_quotes("#sports,#bot") == "#sports,#bot"

    def test_double_quoted_stripped(self):
        assert strip_optional_quotes('"#sports,#bot"') == "#sports,#bot"

    def test_single_quoted_stripped(self):
        assert strip_optional_quotes("'#sports,#bot'") == "#sports,#bot"

    def test_mismatched_quotes_not_stripped(self):
        assert strip_optional_quotes('"#sports\'') == '"#sports\''

    def test_empty_and_whitespace(self):
        assert strip_optional_quotes("  ") == ""


class TestSuggestSection:
    """Tests for _suggest_section()."""

    def test_command_suffix_guess(self):
        assert _suggest_section("League") == "League_Command"
        assert _suggest_section("help") == "Help_Command"

    def test_close_match(self):
        assert _suggest_section("Chanels") == "Channels"

    def test_no_match(self):
        assert _suggest_section("Weather") is None


class TestValidateConfig:
    """Tests for validate_config()."""

    def test_config_file_not_found(self):
        results = validate_config("/nonexistent/path/config.ini")
        assert len(results) == 1
        assert results[0][0] == SEVERITY_ERROR
        assert "not found" in results[0][1]

    def test_parse_error(self, tmp_path):
        config = tmp_path / "config.ini"
        config.write_text("no section header here\n")
        results = validate_config(str(config))
        assert results[0][0] == SEVERITY_ERROR
        assert "Failed to parse" in results[0][1]

    def test_missing_required_sections(self, tmp_path):
        config = tmp_path / "config.ini"
        config.write_text("[Bot]\nbot_name = Test\n")
        errors = by_severity(validate_config(str(config)), SEVERITY_ERROR)
        assert any("Connection" in e for e in errors)
        assert any("Channels" in e for e in errors)

    def test_valid_minimal_config(self, tmp_path):
        results = validate_config(write_config(tmp_path))
        assert by_severity(results, SEVERITY_ERROR) == []
        infos = by_severity(results, SEVERITY_INFO)
        assert any("Banned_Users" in i for i in infos)
        assert any("League_Command" in i for i in infos)

    def test_unknown_section_suggestion(self, tmp_path):
        results = validate_config(write_config(tmp_path, "\n[League]\nleagues = nfl\n"))
        warnings = by_severity(results, SEVERITY_WARNING)
        assert any("[League]" in w and "[League_Command]" in w for w in warnings)

    def test_unknown_section_without_suggestion(self, tmp_path):
        results = validate_config(write_config(tmp_path, "\n[Weather]\nenabled = true\n"))
        warnings = by_severity(results, SEVERITY_WARNING)
        assert any("[Weather]" in w and "not used" in w for w in warnings)

    def test_league_section_checks(self, tmp_path):
        extra = """
[League_Command]
leagues = nfl, cricket
lookahead_days = 0
list_messages = two
recent_window_hours = 18
request_timeout = soon
"""
        results = validate_config(write_config(tmp_path, extra))
        warnings = by_severity(results, SEVERITY_WARNING)
        errors = by_severity(results, SEVERITY_ERROR)
        assert any("cricket" in w for w in warnings)
        assert any("lookahead_days" in e and "at least 1" in e for e in errors)
        assert any("list_messages" in e and "integer" in e for e in errors)
        assert any("request_timeout" in e for e in errors)
        assert not any("recent_window_hours" in e for e in errors)

    def test_valid_league_section(self, tmp_path):
        extra = """
[League_Command]
leagues = "nfl,nba,epl"
lookahead_days = 10
timezone = America/Chicago
"""
        results = validate_config(write_config(tmp_path, extra))
        assert by_severity(results, SEVERITY_ERROR) == []
        assert by_severity(results, SEVERITY_WARNING) == []


class TestCheckPathWritable:
    """Tests for _check_path_writable()."""

    def test_empty_path(self, tmp_path):
        assert _check_path_writable("", tmp_path, "Log file path") is None

    def test_writable_relative_path(self, tmp_path):
        assert _check_path_writable("logs/scorebot.log", tmp_path, "Log file path") is None

    def test_log_file_checked(self, tmp_path):
        results = validate_config(write_config(tmp_path, "\n[Logging]\nlog_file = scorebot.log\n"))
        assert not any("Log file path" in m for _, m in results)


class TestPrintValidationResults:
    """Tests for print_validation_results() and the standalone script."""

    def test_labels_and_error_flag(self, capsys):
        has_error = print_validation_results([
            (SEVERITY_INFO, "note"),
            (SEVERITY_WARNING, "careful"),
            (SEVERITY_ERROR, "broken"),
        ])
        assert has_error is True
        assert capsys.readouterr().err.splitlines() == ["Info: note", "Warning: careful", "Error: broken"]

    def test_no_errors(self, capsys):
        assert print_validation_results([(SEVERITY_WARNING, "careful")]) is False

    def test_script_exit_status(self, tmp_path, capsys):
        assert validate_config_script.main(["--config", write_config(tmp_path)]) == 0
        assert validate_config_script.main(["--config", str(tmp_path / "missing.ini")]) == 1
        assert "not found" in capsys.readouterr().err
