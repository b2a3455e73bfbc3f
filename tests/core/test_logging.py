"""
Tests for ronlog.core.logging.

Covers:
- JSON output with ECS field names
- Logger name carried as the ``log.logger`` field
- Module-level loggers of the changelog package
- Configuration from RonlogSettings
- Level filtering
- LogContext binding and cleanup
"""

import json

import pytest
import structlog

from ronlog.core.errors import ConfigError
from ronlog.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from ronlog.core.settings import RonlogSettings, configure_from_settings, load_settings


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    clear_context()
    structlog.reset_defaults()


def _json_lines(captured: str) -> list[dict]:
    return [json.loads(line) for line in captured.splitlines() if line.strip()]


class TestConfigureLogging:
    def test_json_output(self, capsys):
        configure_logging(level="INFO", json_format=True, service="ronlog-test")
        get_logger("ronlog.tests").info("fragment.written", entries=3)

        [record] = _json_lines(capsys.readouterr().err)
        assert record["event"] == "fragment.written"
        assert record["entries"] == 3
        assert record["log.logger"] == "ronlog.tests"
        assert record["service.name"] == "ronlog-test"
        assert record["log.level"] == "info"
        assert "@timestamp" in record

    def test_without_timestamp(self, capsys):
        configure_logging(json_format=True, add_timestamp=False)
        get_logger("x").info("event")
        [record] = _json_lines(capsys.readouterr().err)
        assert "@timestamp" not in record

    def test_level_filtering(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        logger = get_logger("ronlog.tests")
        logger.info("hidden")
        logger.warning("shown")

        events = [r["event"] for r in _json_lines(capsys.readouterr().err)]
        assert events == ["shown"]

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging(level="CHATTY")

    def test_console_output(self, capsys):
        configure_logging(json_format=False)
        get_logger("ronlog.tests").info("ronlog.saved", sections=2)
        err = capsys.readouterr().err
        assert "ronlog.saved" in err
        assert "sections" in err


class TestLogContext:
    def test_context_is_bound_and_removed(self, capsys):
        configure_logging(json_format=True)
        logger = get_logger("ronlog.tests")

        with LogContext(branch="main", encoding="rst"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = _json_lines(capsys.readouterr().err)
        assert inside["branch"] == "main"
        assert inside["encoding"] == "rst"
        assert "branch" not in outside

    def test_outer_context_survives(self, capsys):
        configure_logging(json_format=True)
        bind_context(run="r1")
        with LogContext(version="1.2.0"):
            pass
        get_logger("ronlog.tests").info("after")

        [record] = _json_lines(capsys.readouterr().err)
        assert record["run"] == "r1"
        assert "version" not in record


class TestPackageLoggers:
    def test_changelog_package_imports_and_logs(self, capsys):
        import ronlog.changelog
        from ronlog.changelog.builder import FragmentBuilder
        from ronlog.changelog.model import Commit

        assert ronlog.changelog.FragmentBuilder is FragmentBuilder
        builder = FragmentBuilder("::=")
        assert builder.add_commit(Commit(sha="a" * 40, summary="Update README")) is False

        assert "commit.skipped" in capsys.readouterr().out

    def test_logger_name_in_console_output(self, capsys):
        configure_logging(json_format=False)
        get_logger("ronlog.changelog.pipeline").info("release.completed")
        err = capsys.readouterr().err
        assert "release.completed" in err
        assert "ronlog.changelog.pipeline" in err


class TestConfigureFromSettings:
    def test_level_and_format_come_from_settings(self, capsys, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        configure_from_settings(RonlogSettings(log_level="warning", json_logs=True))
        logger = get_logger("ronlog.tests")
        logger.info("hidden")
        logger.warning("shown")

        [record] = _json_lines(capsys.readouterr().err)
        assert record["event"] == "shown"
        assert record["log.level"] == "warning"

    def test_unknown_level_rejected_at_load(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigError, match="log_level"):
            load_settings(log_level="CHATTY")
