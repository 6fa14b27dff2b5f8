# conftest.py
# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

from __future__ import annotations

import gettext
import locale
import logging
import sys
from typing import TYPE_CHECKING, Any

import pytest
import structlog

from catportal.config.appcontext import AppContext
from catportal.config.logging_manager import LoggingManagerSingleton
from catportal.config.settings_manager import SettingsManager, SettingsManagerSingleton
from catportal.config.translation_manager import TranslationManager, TranslationManagerSingleton

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

    from structlog.typing import EventDict


# --- Core Logging Setup Fixture ---
# This MUST run before any of the application code gets its first logger.
@pytest.fixture(autouse=True)
def structlog_base_config() -> Generator[None, None, None]:
    """
    Set up and tear down a plain structlog configuration for each test function.

    Loggers are not cached, so `capture_logs` sees every event.
    """
    structlog.reset_defaults()
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    test_handler = logging.StreamHandler(sys.stdout)
    test_handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    root_logger.addHandler(test_handler)
    root_logger.setLevel(logging.DEBUG)

    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield

    structlog.reset_defaults()
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def cleanup_singletons() -> Generator[None, None, None]:
    """Reset all application singletons to ensure clean state between tests."""
    SettingsManagerSingleton.reset()
    TranslationManagerSingleton.reset()
    LoggingManagerSingleton.reset()
    yield
    LoggingManagerSingleton.reset()
    TranslationManagerSingleton.reset()
    SettingsManagerSingleton.reset()


# --- Logging Assertion Fixtures ---
@pytest.fixture
def caplog_structlog() -> Generator[list[EventDict], None, None]:
    """Capture `structlog` events for the duration of a test."""
    with structlog.testing.capture_logs() as captured_events:
        yield captured_events


@pytest.fixture
def assert_log_contains() -> Any:
    """Provide a helper asserting that a `structlog` capture contains a specific entry."""

    def _assert(log: list[EventDict], text: str, level: str | None = None) -> None:
        matches = [
            entry
            for entry in log
            if text in entry["event"] and (level is None or entry["log_level"].lower() == level.lower())
        ]
        assert matches, f"No log entry found with text '{text}' and level '{level}'"

    return _assert


# --- Settings / Translation / Context ---
@pytest.fixture
def no_setlocale(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep `TranslationManager.configure` from changing the process locale."""
    monkeypatch.setattr(locale, "setlocale", lambda *a, **k: None)  # noqa: ARG005


@pytest.fixture
def settings(tmp_path: Path) -> SettingsManager:
    """A SettingsManager populated in memory, rooted in ``tmp_path``."""
    manager = SettingsManager()
    manager.set_setting("general", "default_language", "en")
    manager.set_setting("paths", "root", str(tmp_path / "root"))
    manager.set_setting("consortium", "name", "eduroam")
    manager.set_setting("consortium", "nomenclature_federation", "National Roaming Operator")
    manager.set_setting("consortium", "nomenclature_institution", "Identity Provider")
    return manager


class DomainTranslations(gettext.NullTranslations):
    """Fake catalogue that marks every message with the domain it came from."""

    def __init__(self, domain: str) -> None:
        super().__init__()
        self.domain = domain

    def gettext(self, message: str) -> str:
        return f"[{self.domain}] {message}"


@pytest.fixture
def domain_catalogues(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make `gettext.translation` return a `DomainTranslations` for any domain."""
    monkeypatch.setattr(gettext, "translation", lambda domain, **kwargs: DomainTranslations(domain))  # noqa: ARG005


@pytest.fixture
def translator(settings: SettingsManager, tmp_path: Path, no_setlocale: None) -> TranslationManager:
    """A TranslationManager configured for English with an empty locale directory."""
    manager = TranslationManager(settings=settings)
    manager.configure(language="en", locale_dir=tmp_path / "locales")
    return manager


@pytest.fixture
def app_context(settings: SettingsManager, translator: TranslationManager) -> AppContext:
    """A real AppContext made of the `settings` and `translator` fixtures."""
    return AppContext.create(settings_instance=settings, translator_instance=translator)
