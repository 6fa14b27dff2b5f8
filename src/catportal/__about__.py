# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

__app_name__ = "catportal"
__app_config_name__ = "config.toml"
__version__ = "0.1.0"
