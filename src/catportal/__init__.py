# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""Shared base layer of the configuration assistant portal."""

from catportal.__about__ import __version__

__all__ = ["__version__"]
