# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
catportal Application Context Module.

The `AppContext` bundles the services every domain object needs: the
settings and the translation manager (which also carries the stack of
active gettext catalogues). It is passed explicitly to each `Entity`, so
the catalogue stack of one request is never shared with another.

Usage Example:
--------------
```python
from catportal.config.appcontext import AppContext

context = AppContext.from_singletons()
logger = context.get_module_logger(__name__)
logger.info(context.gettext("Starting..."))
root = context.settings.get("paths", "root")
```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from catportal.config.settings_manager import SettingsManagerSingleton
from catportal.config.translation_manager import TranslationManagerSingleton

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from catportal.config.settings_manager import SettingsManager
    from catportal.config.translation_manager import TranslationManager


@dataclass
class AppContext:
    """
    Shared services for domain objects.

    Attributes
    ----------
    settings : SettingsManager
        An already initialized settings manager.
    translator : TranslationManager
        An already configured translation manager.
    """

    settings: SettingsManager
    translator: TranslationManager

    def get_module_logger(self, name: str) -> BoundLogger:
        """Retrieve a `structlog` logger for a specific module."""
        return structlog.get_logger(name)

    def gettext(self, message: str) -> str:
        """Translate ``message`` in the currently active catalogue."""
        return self.translator.gettext(message)

    @classmethod
    def create(
        cls,
        settings_instance: SettingsManager,
        translator_instance: TranslationManager,
    ) -> AppContext:
        """Create an `AppContext` from pre-initialized managers."""
        return cls(settings=settings_instance, translator=translator_instance)

    @classmethod
    def from_singletons(cls) -> AppContext:
        """Create an `AppContext` from the process-wide manager singletons."""
        return cls.create(
            settings_instance=SettingsManagerSingleton.get_instance(),
            translator_instance=TranslationManagerSingleton.get_instance(),
        )
