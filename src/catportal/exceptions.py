# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""Exceptions raised by the catportal base layer."""

from __future__ import annotations


class CatPortalError(Exception):
    """Base class for all catportal errors."""


# --- Settings ---
class ConfigFileNotFoundError(CatPortalError):
    """A configuration file could not be read."""


class SettingsConfigurationError(CatPortalError):
    """A configuration file could not be parsed."""


class SettingsWriteConfigurationError(CatPortalError):
    """No configuration location could be written."""


# --- Logging ---
class InvalidLogLevelError(CatPortalError):
    """The configured log level is not a known level name."""


class LogDirectoryError(CatPortalError):
    """The log directory is missing or not usable."""


class LogHandlerError(CatPortalError):
    """A logging handler failed to initialize."""


# --- Translation ---
class CatalogueStackError(CatPortalError):
    """The text-domain stack was popped more often than it was pushed."""


# --- Entity helpers ---
class UnknownPurposeError(CatPortalError, ValueError):
    """A temporary directory was requested for a purpose without a base path."""


class TemporaryDirectoryError(CatPortalError, OSError):
    """A temporary directory could not be created."""


class KeyspaceError(CatPortalError, ValueError):
    """The keyspace for a random string has fewer than two distinct characters."""
