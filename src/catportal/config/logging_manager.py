# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
The LoggingManager.

Logging for the portal, built on `structlog` on top of the standard
`logging` module.

Besides the usual log levels, the portal knows a *debug verbosity* from 0
to 5. Debug-only chatter such as object lifecycle lines is emitted with a
``debug_level`` key; `DebugLevelFilter` drops every event whose
``debug_level`` is higher than the configured verbosity, so a deployment
can turn the lifecycle noise up or down without touching log levels.

Configuration is handled via the TOML settings, which allow specifying:
- The global log level (e.g., `INFO`, `DEBUG`, `ERROR`) and the debug verbosity.
- Whether console logging is enabled.
- Whether file logging is enabled, its location, and rotation parameters
  (max size, backup count).

Example Usage:
--------------
```python
from catportal.config.appcontext import AppContext
from catportal.config.logging_manager import LoggingManagerSingleton

app_context = AppContext.from_singletons()
LoggingManagerSingleton.initialize_from_context(app_context=app_context, enable_console_logging=True)

logger = LoggingManagerSingleton.get_instance().get_logger(__name__)
logger.info("Portal started", version="0.1.0")
logger.debug("Entity constructed", debug_level=3)
```
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Final, Self

import structlog
from rich.console import Console
from structlog.stdlib import ProcessorFormatter

from catportal.__about__ import __app_name__
from catportal.exceptions import (
    InvalidLogLevelError,
    LogDirectoryError,
    LogHandlerError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, MutableMapping
    from types import TracebackType

    from structlog.typing import Processor

    from catportal.config.appcontext import AppContext


# Console for critical errors before full logging is operational
_error_console = Console(file=sys.stderr)

APP_NAME: Final[str] = __app_name__.lower()
DEFAULT_LOG_FILENAME: Final[str] = f"{APP_NAME}.log"
DEFAULT_LIMITED_LOG_FILENAME: Final[str] = f"limited_{APP_NAME}.log"
DEFAULT_MAX_BYTE: Final[int] = 1024 * 1024  # 1MB
DEFAULT_BACKUP_COUNT: Final[int] = 3

DEBUG_LEVEL_KEY: Final[str] = "debug_level"
MAX_DEBUG_LEVEL: Final[int] = 5


_LEVEL_BY_METHOD: Final[dict[str, int]] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "exception": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}


def carries_debug_level(record: logging.LogRecord) -> bool:
    """Return True if ``record`` was emitted by structlog with a ``debug_level`` key."""
    return isinstance(record.msg, dict) and DEBUG_LEVEL_KEY in record.msg


class DebugLevelFilter:
    """
    structlog processor gating events by debug verbosity or by log level.

    Events with a ``debug_level`` key are decided by the verbosity alone,
    whatever the log level. All other events must reach ``min_log_level``.
    """

    def __init__(self, max_level: int = 0, min_log_level: int = logging.NOTSET) -> None:
        self.max_level = max_level
        self.min_log_level = min_log_level

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        level = event_dict.get(DEBUG_LEVEL_KEY)
        if level is None:
            if _LEVEL_BY_METHOD.get(method_name, logging.NOTSET) < self.min_log_level:
                raise structlog.DropEvent
            return event_dict
        if level > self.max_level:
            raise structlog.DropEvent
        return event_dict


class HandlerLevelFilter(logging.Filter):
    """
    stdlib filter applying the configured level on a handler.

    Handlers themselves stay at DEBUG so that verbosity-gated events reach
    them; records from plain stdlib loggers still need ``level``.
    """

    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.level or carries_debug_level(record)


class LoggingManager:
    """
    Manage the full configuration and lifecycle of the application's logging system.

    Integrates Python's standard logging with `structlog` for structured,
    context-rich logging to console and rotating files.
    """

    _logger: structlog.stdlib.BoundLogger | None = None
    _internal_errors: list[str]
    effective_log_level: int

    _translate_func: Callable[[str], str]

    def __init__(self) -> None:
        """
        Initialize LoggingManager attributes in a lightweight manner.

        Full logging configuration is deferred until `apply_configuration()` is called.
        """
        self._internal_errors: list[str] = []

        self.cli_log_level: int | None = None
        self.enable_console_logging: bool = False
        self.log_config: dict[str, Any] = {}
        self.effective_log_level = logging.NOTSET
        self.debug_level_filter = DebugLevelFilter()
        self.translator: Any = None
        self._translate_func = lambda x: x

        self._logger = structlog.get_logger("LoggingManagerInit")

    @property
    def internal_errors(self) -> list[str]:
        """Return the list of internal errors."""
        return self._internal_errors

    @property
    def debug_level(self) -> int:
        """Return the configured debug verbosity."""
        return self.debug_level_filter.max_level

    def apply_configuration(
        self,
        *,
        cli_log_level: int | None = None,
        enable_console_logging: bool,
        log_config: dict[str, Any],
        translator: Any,
    ) -> None:
        """
        Apply the comprehensive logging configuration to the manager instance.

        Args:
            cli_log_level (int | None): The log level specified via CLI arguments.
                                        If provided, it overrides the config file
                                        level if more verbose (lower numerical value).
            enable_console_logging (bool): Flag to explicitly enable/disable console logging.
            log_config (dict[str, Any]): A dictionary containing all logging-related
                                         configuration sections from the application settings.
            translator (Any): An instance of a translation manager to translate
                              log messages where applicable.

        Raises:
            LogHandlerError: If any critical logging handler fails to initialize.
            InvalidLogLevelError: If the debug verbosity is outside 0..5.
        """
        self._internal_errors.clear()

        self.cli_log_level = cli_log_level
        self.enable_console_logging = enable_console_logging
        self.log_config = log_config
        self.translator = translator
        self._translate_func = self.translator.translate if self.translator else (lambda x: x)

        self._logger.debug(self._translate_func("Applying full logging configuration..."))

        try:
            self._setup_logging_pipeline()
            self._logger.info(self._translate_func("Full logging configuration applied successfully."))
        except (InvalidLogLevelError, LogDirectoryError, LogHandlerError) as e:
            error_msg = self._translate_func("Critical error during logging configuration:")
            self._internal_errors.append(f"{error_msg} {e}")
            self._logger.exception(error_msg, exc_info=e)
            raise

    def shutdown(self) -> None:
        """
        Shut down all active logging handlers.

        Ensuring logs are flushed and resources
        (like file handles) are properly released.
        """
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            try:
                handler.close()
                root_logger.removeHandler(handler)
            except (OSError, ValueError) as e:
                _error_console.print(
                    f"[bold red]Error[/bold red]: Failed to close log handler {handler.__class__.__name__}: {e}"
                )

        if self._logger:
            self._logger.debug(self._translate_func("All logging handlers shut down."))

    def get_logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        """
        Retrieve a configured `structlog` logger instance.

        Args:
            name (str | None): The name of the logger to retrieve. If `None`,
                               the application's main logger is returned.
        """
        return structlog.get_logger(name if name else APP_NAME)

    def debug_at(self, level: int, msg: str, **kwargs: Any) -> None:
        """Log a debug message that only appears at debug verbosity ``level`` or higher."""
        self.get_logger().debug(self._translate_func(msg), **{DEBUG_LEVEL_KEY: level}, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an info-level message with optional structured data."""
        self.get_logger().info(self._translate_func(msg), **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a warning-level message with optional structured data."""
        self.get_logger().warning(self._translate_func(msg), **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log an error-level message with optional structured data."""
        self.get_logger().error(self._translate_func(msg), **kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an error message together with the exception currently handled."""
        self.get_logger().exception(self._translate_func(msg), **kwargs)

    # --- Private Helper Methods for Configuration ---

    def _clear_existing_handlers(self, root_logger: logging.Logger) -> None:
        """Remove all existing handlers from the root logger."""
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    def _get_effective_log_level(self, logger_main_settings: dict[str, Any]) -> int:
        """
        Determine the effective log level.

        The more verbose of CLI and configuration wins. An unknown level name
        in the configuration falls back to INFO and is recorded as an error.
        """
        settings_level_str = str(logger_main_settings.get("level", "INFO")).upper()
        effective_level = getattr(logging, settings_level_str, None)

        if not isinstance(effective_level, int):
            error_msg = self._translate_func("Invalid log level in config. Falling back to INFO.")
            self._internal_errors.append(f"{error_msg} ({settings_level_str})")
            self._logger.warning(error_msg, level_from_config=settings_level_str)
            effective_level = logging.INFO

        if self.cli_log_level is not None:
            effective_level = min(effective_level, self.cli_log_level)

        self._logger.debug(
            self._translate_func("Final effective log level calculated."),
            final_level_name=logging.getLevelName(effective_level),
        )
        return effective_level

    def _get_debug_level(self, logger_main_settings: dict[str, Any]) -> int:
        """
        Read the debug verbosity from the ``logger`` section.

        Raises:
            InvalidLogLevelError: If the value is not an integer in 0..5.
        """
        level = logger_main_settings.get(DEBUG_LEVEL_KEY, 0)
        if isinstance(level, bool) or not isinstance(level, int) or not 0 <= level <= MAX_DEBUG_LEVEL:
            msg = self._translate_func("Debug level must be an integer between 0 and 5.")
            raise InvalidLogLevelError(f"{msg} Got: {level!r}")
        return level

    def _get_structlog_processors_pre_chain(self) -> list[Processor]:
        """Processors that enrich every event before it is handed to stdlib handlers."""
        return [
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

    def _resolve_log_dir(self, logger_main_settings: dict[str, Any]) -> Path:
        log_dir_str = logger_main_settings.get("log_directory")
        if not log_dir_str:
            msg = self._translate_func("Log directory not specified in settings for file handler.")
            raise LogDirectoryError(msg)
        log_dir = Path(log_dir_str)
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = self._translate_func("Log directory could not be created.")
            raise LogDirectoryError(f"{msg} {log_dir}") from e
        return log_dir

    def _apply_handler_level(self, handler: logging.Handler, effective_log_level: int) -> None:
        """Open ``handler`` for verbosity-gated debug events while keeping the configured level for the rest."""
        if self.debug_level > 0:
            handler.setLevel(logging.DEBUG)
            handler.addFilter(HandlerLevelFilter(effective_log_level))
        else:
            handler.setLevel(effective_log_level)

    def _json_formatter(self, pre_chain_processors: list[Processor]) -> ProcessorFormatter:
        return ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[*pre_chain_processors, structlog.stdlib.PositionalArgumentsFormatter()],
        )

    def _setup_console_handler(
        self,
        root_logger: logging.Logger,
        pre_chain_processors: list[Processor],
        console_handler_settings: dict[str, Any],
        effective_log_level: int,
    ) -> None:
        """Set up the console log handler if enabled in configuration."""
        if not (self.enable_console_logging or console_handler_settings.get("enabled")):
            return
        try:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(
                ProcessorFormatter(
                    processor=structlog.dev.ConsoleRenderer(colors=True),
                    foreign_pre_chain=[*pre_chain_processors, structlog.stdlib.PositionalArgumentsFormatter()],
                )
            )
            self._apply_handler_level(console_handler, effective_log_level)
            root_logger.addHandler(console_handler)
        except (OSError, ValueError) as e:
            msg = self._translate_func("Failed to set up console handler.")
            self._internal_errors.append(f"{msg} {e}")
            raise LogHandlerError(msg) from e

    def _setup_file_handler(
        self,
        root_logger: logging.Logger,
        pre_chain_processors: list[Processor],
        file_handler_settings: dict[str, Any],
        logger_main_settings: dict[str, Any],
        effective_log_level: int,
    ) -> None:
        """Set up the main JSON file log handler if enabled."""
        if not file_handler_settings.get("enabled"):
            return
        log_dir = self._resolve_log_dir(logger_main_settings)
        log_file_path = log_dir / file_handler_settings.get("file_name", DEFAULT_LOG_FILENAME)
        try:
            file_handler = logging.FileHandler(log_file_path, mode="a", encoding="utf-8")
        except OSError as e:
            msg = self._translate_func("Failed to set up main file handler.")
            self._internal_errors.append(f"{msg} {e}")
            raise LogHandlerError(msg) from e
        file_handler.setFormatter(self._json_formatter(pre_chain_processors))
        self._apply_handler_level(file_handler, effective_log_level)
        root_logger.addHandler(file_handler)

    def _setup_limited_file_handler(
        self,
        root_logger: logging.Logger,
        pre_chain_processors: list[Processor],
        limited_file_handler_settings: dict[str, Any],
        logger_main_settings: dict[str, Any],
        effective_log_level: int,
    ) -> None:
        """Set up the rotating JSON file log handler if enabled."""
        if not limited_file_handler_settings.get("enabled"):
            return
        log_dir = self._resolve_log_dir(logger_main_settings)
        file_name = limited_file_handler_settings.get("file_name", DEFAULT_LIMITED_LOG_FILENAME)
        max_bytes = limited_file_handler_settings.get("max_bytes", DEFAULT_MAX_BYTE)
        backup_count = limited_file_handler_settings.get("backup_count", DEFAULT_BACKUP_COUNT)
        try:
            rotating_handler = logging.handlers.RotatingFileHandler(
                log_dir / file_name, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
        except OSError as e:
            msg = self._translate_func("Failed to set up limited file handler.")
            self._internal_errors.append(f"{msg} {e}")
            raise LogHandlerError(msg) from e
        rotating_handler.setFormatter(self._json_formatter(pre_chain_processors))
        self._apply_handler_level(rotating_handler, effective_log_level)
        root_logger.addHandler(rotating_handler)

    def _setup_logging_pipeline(self) -> None:
        """
        Configure the core `structlog` pipeline.

        Attaches standard logging handlers based on application settings.
        """
        root_logger = logging.getLogger()
        self._clear_existing_handlers(root_logger)

        if not self.log_config:
            self._internal_errors.append(self._translate_func("Logging configuration dictionary is empty."))
            self._logger.warning(self._translate_func("No logging configuration provided."))
            return

        logger_main_settings = self.log_config.get("logger", {})
        console_handler_settings = self.log_config.get("console_handler", {})
        file_handler_settings = self.log_config.get("file_handler", {})
        limited_file_handler_settings = self.log_config.get("limited_file_handler", {})

        self.effective_log_level = self._get_effective_log_level(logger_main_settings)
        self.debug_level_filter = DebugLevelFilter(
            self._get_debug_level(logger_main_settings), min_log_level=self.effective_log_level
        )
        # The level gate lives in DebugLevelFilter and HandlerLevelFilter;
        # the root logger must let verbosity-gated debug events through.
        root_logger.setLevel(logging.DEBUG if self.debug_level > 0 else self.effective_log_level)

        structlog.configure(
            processors=[
                self.debug_level_filter,
                *self._get_structlog_processors_pre_chain(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        pre_chain = self._get_structlog_processors_pre_chain()
        self._setup_console_handler(root_logger, pre_chain, console_handler_settings, self.effective_log_level)
        self._setup_file_handler(
            root_logger, pre_chain, file_handler_settings, logger_main_settings, self.effective_log_level
        )
        self._setup_limited_file_handler(
            root_logger, pre_chain, limited_file_handler_settings, logger_main_settings, self.effective_log_level
        )

        self._logger = structlog.get_logger("LoggingManager")
        self._logger.debug(
            self._translate_func("Logging pipeline configured."),
            effective_level=logging.getLevelName(self.effective_log_level),
            verbosity=self.debug_level,
        )

    def __enter__(self) -> Self:
        """Enter the runtime context; `shutdown` runs on exit."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the runtime context, triggering a shutdown of logging resources."""
        self.shutdown()


class LoggingManagerSingleton:
    """
    Singleton class for `LoggingManager`.

    Ensures a single instance manages application logging and handles its
    controlled initialization and access.
    """

    _instance: LoggingManager | None = None
    _initialization_errors: ClassVar[list[str]] = []
    _is_configured: ClassVar[bool] = False

    @classmethod
    def get_instance(cls) -> LoggingManager:
        """
        Return the single, initialized instance of `LoggingManager`.

        Raises:
            RuntimeError: If `initialize_from_context` has not been called yet.
        """
        if cls._instance is None:
            msg = "LoggingManager has not been initialized. Call initialize_from_context first."
            raise RuntimeError(msg)
        return cls._instance

    @classmethod
    def initialize_from_context(
        cls, *, app_context: AppContext, cli_log_level: int | None = None, enable_console_logging: bool = True
    ) -> None:
        """
        Initialize the `LoggingManagerSingleton` from the application context.

        Subsequent calls are ignored once the manager is configured.

        Raises:
            LogHandlerError: If a critical logging handler cannot be set up.
            InvalidLogLevelError: If the configured debug verbosity is invalid.
        """
        if cls._is_configured:
            cls._initialization_errors.append("LoggingManagerSingleton already configured. Cannot re-configure.")
            return

        if cls._instance is None:
            cls._instance = LoggingManager()

        cls._initialization_errors.clear()

        logging_config_for_manager = {
            "logger": app_context.settings.get_section("logger"),
            "console_handler": app_context.settings.get_section("console_handler"),
            "file_handler": app_context.settings.get_section("file_handler"),
            "limited_file_handler": app_context.settings.get_section("limited_file_handler"),
        }

        try:
            cls._instance.apply_configuration(
                cli_log_level=cli_log_level,
                enable_console_logging=enable_console_logging,
                log_config=logging_config_for_manager,
                translator=app_context.translator,
            )
        except (LogHandlerError, LogDirectoryError, InvalidLogLevelError) as e:
            cls._initialization_errors.append(str(e))
            raise

        cls._initialization_errors.extend(cls._instance.internal_errors)
        cls._is_configured = True

    @classmethod
    def get_initialization_errors(cls) -> list[str]:
        """Return the unique errors collected during initialization."""
        errors = list(cls._initialization_errors)
        if cls._instance:
            errors.extend(cls._instance.internal_errors)
        return list(set(errors))

    @classmethod
    def reset(cls) -> None:
        """
        Reset the singleton instance and its configuration.

        Primarily intended for testing: shuts down handlers and clears errors.
        """
        if cls._instance:
            cls._instance.shutdown()
        cls._instance = None
        cls._initialization_errors.clear()
        cls._is_configured = False
