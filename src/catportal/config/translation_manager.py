# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
translation_manager.py: TranslationManager for internationalization.

This module provides the TranslationManager class, which handles loading and
managing gettext-based translations for the portal. The portal's messages
are split over several gettext catalogues (text domains) that mirror the
segmentation of the source tree:

- ``core``        : shared domain classes
- ``devices``     : device configuration generators
- ``diagnostics`` : realm checks and diagnostics
- ``web_admin``   : administrator pages
- ``web_user``    : end-user download pages

Exactly one of them is *active* at any time. Code that emits messages from a
different catalogue pushes that catalogue, translates, and pops it again;
the push/pop discipline is tracked on the manager itself.

Typical usage:
--------------
>>> tm = TranslationManager()
>>> tm.configure(language="de")
>>> tm.push_text_domain("web_admin")
>>> print(tm.gettext("Save"))
>>> tm.pop_text_domain()
"""

from __future__ import annotations

import gettext
import locale
import os
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Final

import structlog

from catportal.__about__ import __app_name__
from catportal.exceptions import CatalogueStackError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from catportal.config.settings_manager import SettingsManager

# Global logger (will be reconfigured by LoggingManagerSingleton)
log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)

CATALOGUES: Final[tuple[str, ...]] = ("core", "devices", "diagnostics", "web_admin", "web_user")
DEFAULT_TEXT_DOMAIN: Final[str] = "web_user"


class TranslationManager:
    """
    Manage translations for the portal.

    Attributes
    ----------
    locale_dir : Path | None
        The directory where the compiled `.mo` translation files are located.
    current_language : str | None
        The current language code in use (e.g., "en", "de").
    text_domain : str
        The active gettext catalogue.
    """

    _internal_errors: list[str]

    APP_NAME: Final[str] = __app_name__.lower()
    LOCALES_DIR_NAME: Final[str] = "locales"

    def __init__(self, settings: SettingsManager | None = None) -> None:
        """
        Initialize TranslationManager attributes.

        Does NOT load translations yet.
        Call .configure() to set up translations.
        """
        self._settings = settings
        self._text_domain: str = DEFAULT_TEXT_DOMAIN
        self._domain_stack: list[str] = []
        self._catalogues: dict[str, gettext.NullTranslations] = {}
        self.locale_dir: Path | None = None
        self._current_language: str | None = None
        self._translation: gettext.NullTranslations = gettext.NullTranslations()
        self._internal_errors: list[str] = []

    @property
    def internal_errors(self) -> list[str]:
        """Return the list of internal errors."""
        return self._internal_errors

    @property
    def has_errors(self) -> bool:
        """Return True if there are any internal errors."""
        return bool(self._internal_errors)

    @property
    def current_language(self) -> str | None:
        """Return the current language code."""
        return self._current_language

    @property
    def text_domain(self) -> str:
        """Return the active gettext catalogue."""
        return self._text_domain

    @property
    def stack_depth(self) -> int:
        """Return how many catalogues are waiting to be restored."""
        return len(self._domain_stack)

    def configure(
        self,
        language: str | None = None,
        translation_domain: str | None = None,
        locale_dir: str | Path | None = None,
    ) -> None:
        """
        Configure and load translations for the TranslationManager.

        Args:
            language: Explicit language code (e.g. 'en', 'de').
            translation_domain: Catalogue to activate (defaults to ``web_user``).
            locale_dir: Path to translation .mo files (optional).

        Raises:
            OSError: If the translation file (.mo) cannot be loaded.
        """
        self._internal_errors.clear()
        self._catalogues.clear()
        self._text_domain = translation_domain or DEFAULT_TEXT_DOMAIN
        self.locale_dir = Path(locale_dir) if locale_dir else self._default_locale_dir()
        self._current_language = self._resolve_language(language)

        try:
            self._translation = self._catalogue(self._text_domain)
        except OSError as e:
            msg = f"Translation files for '{self._current_language}' failed to load from '{self.locale_dir}': {e}"
            self._internal_errors.append(msg)
            log.exception("Translation files not found. Using fallback.", locale_dir=str(self.locale_dir), exc_info=e)
            self._translation = gettext.NullTranslations()
            raise

        try:
            locale.setlocale(locale.LC_ALL, self._normalize_locale_string(self._current_language))
        except locale.Error as e:
            msg = f"Failed to set system locale for '{self._current_language}': {e}"
            self._internal_errors.append(msg)
            log.warning("Failed to set system locale.", language=self._current_language, error=str(e))

    def _catalogue(self, domain: str) -> gettext.NullTranslations:
        """Return the (cached) translations of one text domain in the current language."""
        if domain not in self._catalogues:
            self._catalogues[domain] = gettext.translation(
                domain,
                localedir=self.locale_dir,
                languages=[self._current_language or "en"],
                fallback=True,
            )
            log.debug("Loaded catalogue", domain=domain, language=self._current_language)
        return self._catalogues[domain]

    def _resolve_language(self, explicit_lang: str | None) -> str:
        """Resolve the language to use, using explicit input, settings, environment or English."""
        if explicit_lang:
            return explicit_lang

        if self._settings is not None:
            settings_lang = self._settings.get("general", "default_language")
            if settings_lang:
                return settings_lang

        env_lang = self._get_locale_from_environment_variables()
        if env_lang:
            return self._extract_two_letter_lang(env_lang)

        log.warning("Could not determine a language from settings or environment. Using English.")
        return "en"

    def _default_locale_dir(self) -> Path:
        """Return the ``locales`` directory shipped inside the package."""
        return Path(__file__).parent.parent / self.LOCALES_DIR_NAME

    @staticmethod
    def _extract_two_letter_lang(full_locale: str) -> str:
        """
        Extract the two-letter language code from a full locale string.

        Handles formats like 'en_US.UTF-8', 'en.UTF-8', 'en_US', 'en', 'C'.
        Returns 'en' for 'C' or empty strings as a default.
        """
        if not full_locale or full_locale.upper() in ("C", "POSIX"):
            return "en"
        return full_locale.split("_")[0].split(".")[0].lower()

    @staticmethod
    def _normalize_locale_string(lang_code: str) -> str:
        """
        Normalize a language code into a full locale string.

        Args:
            lang_code: The short language code like 'en', 'de', etc.

        Returns:
            A normalized locale string like 'en_US.UTF-8' or 'C' as fallback.
        """
        if not lang_code:
            return "C"

        normalized = locale.normalize(lang_code.lower())
        if "utf-8" in normalized.lower():
            return normalized
        base = normalized.split(".")[0]
        return f"{base}.UTF-8"

    @staticmethod
    def _get_locale_from_environment_variables() -> str | None:
        """Check common environment variables for locale information."""
        for var in ("LC_ALL", "LC_MESSAGES", "LANG", "LANGUAGE"):
            env_val = os.getenv(var)
            if env_val:
                return env_val
        return None

    # --- Catalogue stack ---

    def push_text_domain(self, domain: str) -> None:
        """Activate ``domain``, remembering the current catalogue for `pop_text_domain`."""
        self._domain_stack.append(self._text_domain)
        self._activate(domain)

    def pop_text_domain(self) -> str:
        """
        Restore the catalogue that was active before the last push.

        Returns the restored catalogue name.

        Raises:
            CatalogueStackError: If there is nothing to restore.
        """
        if not self._domain_stack:
            msg = "Unable to restore previous catalogue - pop_text_domain called too often?!"
            raise CatalogueStackError(msg)
        restored = self._domain_stack.pop()
        self._activate(restored)
        return restored

    @contextmanager
    def text_domain_scope(self, domain: str) -> Iterator[TranslationManager]:
        """Activate ``domain`` for the duration of a ``with`` block."""
        self.push_text_domain(domain)
        try:
            yield self
        finally:
            self.pop_text_domain()

    def _activate(self, domain: str) -> None:
        self._text_domain = domain
        self._translation = self._catalogue(domain)

    # --- Lookups ---

    def translate(self, text: str) -> str:
        """Translate a given string."""
        return self._translation.gettext(text)

    def translate_plural(self, singular: str, plural: str, count: int) -> str:
        """Translate a given string with plural forms."""
        return self.ngettext(singular, plural, count)

    def translate_context(self, context: str, text: str) -> str:
        """Translate ``text`` within a message context (pgettext)."""
        return self._translation.pgettext(context, text)

    def gettext(self, message: str) -> str:
        """Translate a single message string in the active catalogue."""
        return self._translation.gettext(message)

    def ngettext(self, singular: str, plural: str, count: int) -> str:
        """Translate a message with plural forms."""
        return self._translation.ngettext(singular, plural, count)

    def set_language(self, language: str) -> None:
        """
        Change the active language and reload translations.

        The active catalogue and the catalogue stack are kept.
        """
        self._current_language = language
        self._catalogues.clear()
        self._translation = self._catalogue(self._text_domain)


class TranslationManagerSingleton:
    """
    Singleton class for TranslationManager.

    Ensures a single instance manages application translations
    and handles its controlled initialization.
    """

    _instance: TranslationManager | None = None
    _initialization_errors: ClassVar[list[str]] = []
    _is_configured: ClassVar[bool] = False

    @classmethod
    def get_instance(cls) -> TranslationManager:
        """Return the single instance of TranslationManager, creating it on first use."""
        if cls._instance is None:
            try:
                from catportal.config.settings_manager import SettingsManagerSingleton

                cls._instance = TranslationManager(settings=SettingsManagerSingleton.get_instance())
            except Exception as e:
                cls._initialization_errors.append(f"Error creating TranslationManager instance: {e}")
                cls._instance = None
                raise
        return cls._instance

    @classmethod
    def configure_instance(
        cls,
        language: str | None = None,
        translation_domain: str | None = None,
        locale_dir: str | Path | None = None,
    ) -> None:
        """
        Configure the TranslationManager instance once during startup.

        Raises:
            OSError: If the translation file (.mo) cannot be loaded.
        """
        if cls._is_configured:
            cls._initialization_errors.append("TranslationManagerSingleton already configured. Cannot re-configure.")
            return

        instance = cls.get_instance()
        cls._initialization_errors.clear()
        try:
            instance.configure(language=language, translation_domain=translation_domain, locale_dir=locale_dir)
            cls._initialization_errors.extend(instance.internal_errors)
            cls._is_configured = True
        except Exception as e:
            cls._initialization_errors.append(f"Critical error during TranslationManager configuration: {e}")
            raise

    @classmethod
    def get_initialization_errors(cls) -> list[str]:
        """Exposes initialization errors for testing/debugging."""
        errors = list(cls._initialization_errors)
        if cls._instance:
            errors.extend(cls._instance.internal_errors)
        return list(set(errors))

    @classmethod
    def reset(cls) -> None:
        """
        Reset the singleton instance and its configuration state.

        Primarily for testing.
        """
        cls._instance = None
        cls._initialization_errors.clear()
        cls._is_configured = False
