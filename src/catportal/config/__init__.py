# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
catportal configuration package.

Components of this package:
--------------------------------
- `settings_manager.py`: loads the TOML configuration (deployment root,
  default language, consortium wording, logging sections).
- `translation_manager.py`: gettext catalogues and the stack of active
  text domains.
- `logging_manager.py` / `logging_bootstrap.py`: structlog configuration,
  including the 0..5 debug verbosity gate.
- `appcontext.py`: the `AppContext` handed to every `Entity`.

Usage:
------
1. `SettingsManagerSingleton.initialize_from_context(path)`
2. `TranslationManagerSingleton.configure_instance()`
3. `LoggingManagerSingleton.initialize_from_context(app_context=AppContext.from_singletons())`
"""
