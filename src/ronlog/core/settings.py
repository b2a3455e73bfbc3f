"""Settings for the changelog pipeline.

``RonlogSettings`` gathers every knob the harvest, render and release steps
accept. Values come, in increasing priority, from defaults, a ``.env`` file,
``RONLOG_*`` environment variables and finally a YAML file passed to
``load_settings``.

Manifesto:
    - **Pydantic validation:** A bad heading level or empty delimiter fails at load time
    - **Environment-driven:** ``RONLOG_DELIMITER=::`` works without a file
    - **Extra ignore:** Unknown keys don't cause startup failures

Examples:
    >>> from ronlog.core.settings import RonlogSettings
    >>> s = RonlogSettings(delimiter="::", encoding="md")
    >>> s.heading_level
    3

    From a YAML file::

        # ronlog.yaml
        delimiter: "::="
        encoding: rst
        keep_a_changelog: true
        links:
          issue-12: https://example.org/issues/12

    >>> settings = load_settings(Path("ronlog.yaml"))
    >>> configure_from_settings(settings)  # log_level, json_logs

Tags:
    settings, configuration, pydantic, yaml, ronlog

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError
from .logging import configure_logging

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class RonlogSettings(BaseSettings):
    """Pipeline settings.

    Fields
    ──────
    delimiter          : Separator between category and description in a commit message
    source             : Which part of the message to split (``summary`` or ``body``)
    encoding           : Fragment output format (``rst``, ``md``, ``ron``)
    heading_level      : Markup heading level for categories, 1-3
    output_dir         : Directory fragments are written to
    depth              : Harvest at most this many commits
    stop_at            : Harvest until this commit (exclusive)
    categories         : Allow-list of categories; empty means any
    fallback_category  : Category for commits outside the allow-list or without a delimiter
    keep_a_changelog   : Add the Keep a Changelog categories to the allow-list
    links              : Link name to target table for ``[name]`` placeholders
    fragment_dir       : Directory ``release`` collects RON fragments from
    ronlog_path        : Aggregate log file
    log_level          : Structlog log level
    json_logs          : JSON logs (True), console (False), auto (None)
    """

    model_config = SettingsConfigDict(
        env_prefix="RONLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Harvest ──────────────────────────────────────────────────
    delimiter: str = "::"
    source: Literal["summary", "body"] = "summary"
    depth: int | None = Field(default=None, ge=1)
    stop_at: str | None = None

    # ── Categories ───────────────────────────────────────────────
    categories: list[str] = Field(default_factory=list)
    fallback_category: str | None = None
    keep_a_changelog: bool = False
    links: dict[str, str] = Field(default_factory=dict)

    # ── Output ───────────────────────────────────────────────────
    encoding: Literal["rst", "md", "ron"] = "rst"
    heading_level: int = Field(default=3, ge=1, le=3)
    output_dir: Path = Field(
        default_factory=lambda: Path("changelog.d"),
        description="Directory fragments are written to",
    )

    # ── Release ──────────────────────────────────────────────────
    fragment_dir: Path = Field(default_factory=lambda: Path("changelog.d"))
    ronlog_path: Path = Field(default_factory=lambda: Path("CHANGELOG.ron"))

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("delimiter")
    @classmethod
    def _delimiter_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("delimiter must not be empty")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return value

    @field_validator("fallback_category")
    @classmethod
    def _strip_fallback(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @model_validator(mode="after")
    def _one_stop_condition(self) -> RonlogSettings:
        if self.depth is not None and self.stop_at is not None:
            raise ValueError("depth and stop_at are mutually exclusive")
        return self


def load_settings(path: Path | None = None, **overrides: Any) -> RonlogSettings:
    """Build settings from the environment, an optional YAML file and overrides.

    Keys in ``overrides`` win over the file, which wins over the environment.

    Raises:
        ConfigError: The file is unreadable, not a mapping, or fails validation.
    """
    values: dict[str, Any] = {}
    if path is not None:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as exc:
            raise ConfigError(f"Cannot read settings file {path}: {exc}", cause=exc).with_context(
                path=str(path)
            ) from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}", cause=exc).with_context(
                path=str(path)
            ) from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping").with_context(
                path=str(path)
            )
        values.update(data)
    values.update(overrides)

    try:
        return RonlogSettings(**values)
    except ValidationError as exc:
        err = ConfigError(f"Invalid settings: {exc}", cause=exc)
        if path is not None:
            err.with_context(path=str(path))
        raise err from exc


def configure_from_settings(settings: RonlogSettings) -> None:
    """Configure structlog from ``log_level`` and ``json_logs``.

    Front ends call this once, right after ``load_settings``::

        settings = load_settings(Path("ronlog.yaml"))
        configure_from_settings(settings)
    """
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


__all__ = ["RonlogSettings", "configure_from_settings", "load_settings"]
