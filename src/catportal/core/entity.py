# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
The Entity base class.

Every domain object of the portal (federations, institutions, profiles,
device generators, ...) derives from `Entity`. It provides:

- lifecycle logging at debug verbosity 3 (construction) and 5 (destruction);
- temporary directory management below the deployment root;
- UUID-shaped identifiers and random strings;
- switching between the gettext catalogues of the source tree
  ("into the potatoes" / "out of the potatoes").

The catalogue stack lives on the translator of the `AppContext` handed to
the entity, so nested objects of one request share it while separate
contexts stay independent.
"""

from __future__ import annotations

import hashlib
import inspect
import re
import secrets
import shutil
import weakref
from abc import ABC
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Final, NamedTuple

import structlog

from catportal.config.appcontext import AppContext
from catportal.config.settings_manager import SettingsManager
from catportal.config.translation_manager import DEFAULT_TEXT_DOMAIN
from catportal.exceptions import KeyspaceError, TemporaryDirectoryError, UnknownPurposeError

if TYPE_CHECKING:
    from collections.abc import Hashable
    from contextlib import AbstractContextManager

    from structlog.stdlib import BoundLogger

    from catportal.config.translation_manager import TranslationManager


def N_(message: str) -> str:  # noqa: N802
    """Mark ``message`` for catalogue extraction without translating it."""
    return message


# Common wordings of the configurable nomenclature, kept here so they land
# in the "core" catalogue. A deployment using other words gets no translation.
NOMENCLATURE_MSGIDS: Final[tuple[str, ...]] = (
    N_("National Roaming Operator"),
    N_("identity provider"),
    N_("organisation"),
    N_("Identity Provider"),
)

# First match wins.
CATALOGUE_PATTERNS: Final[tuple[tuple[re.Pattern[str], str], ...]] = (
    (re.compile("diag"), "diagnostics"),
    (re.compile("core"), "core"),
    (re.compile("common"), "core"),
    (re.compile("devices"), "devices"),
    (re.compile("admin"), "web_admin"),
)


def catalogue_for_name(name: str) -> str:
    """Map a dotted module/class name to the gettext catalogue it belongs to."""
    for pattern, catalogue in CATALOGUE_PATTERNS:
        if pattern.search(name):
            return catalogue
    return DEFAULT_TEXT_DOMAIN


class TemporaryDirectory(NamedTuple):
    """Result of `Entity.create_temporary_directory`; ``path`` is None when creation failed."""

    base: Path
    path: Path | None
    name: str


def _log_destruction(logger: BoundLogger, class_name: str) -> None:
    # After a structlog reset only the default stdout printer is left.
    if not structlog.is_configured():
        return
    logger.debug(f"--- KILL Destructing class {class_name} .", debug_level=5)


class Entity(ABC):
    """
    An Entity in its widest sense: something that can log and switch catalogues.

    Abstract: only subclasses are instantiated.

    Attributes
    ----------
    context : AppContext
        Settings and translator shared by the objects of one request.
    logger : BoundLogger
        Logger named after the module of the concrete class.
    nomenclature_fed : ClassVar[str]
        Translated display wording for "federation".
    nomenclature_inst : ClassVar[str]
        Translated display wording for "institution".
    """

    L_OK: Final[int] = 0
    L_REMARK: Final[int] = 4
    L_WARN: Final[int] = 32
    L_ERROR: Final[int] = 256

    nomenclature_fed: ClassVar[str] = NOMENCLATURE_MSGIDS[0]
    nomenclature_inst: ClassVar[str] = NOMENCLATURE_MSGIDS[3]

    TEMPORARY_PURPOSES: ClassVar[dict[str, str]] = {
        "silverbullet": "var/silverbullet",
        "installer": "var/installer_cache",
        "logo": "web/downloads/logos",
        "test": "var/tmp",
    }

    # no 0, 1 or l: they are easily confused when read back by a human
    DEFAULT_KEYSPACE: ClassVar[str] = "23456789abcdefghijkmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

    def __init__(self, context: AppContext | None = None) -> None:
        """
        Initialise the entity.

        Logs the start of lifetime of the entity on debug verbosity 3 and
        refreshes the translated nomenclature from the consortium settings.

        Raises:
            TypeError: If instantiated directly; `Entity` is abstract.
        """
        if type(self) is Entity:
            msg = "Entity is abstract; instantiate a subclass"
            raise TypeError(msg)
        self.context = context if context is not None else AppContext.from_singletons()
        self.logger: BoundLogger = structlog.get_logger(type(self).__module__)
        self.debug(3, f"--- BEGIN constructing class {type(self).__name__} .")

        finalizer = weakref.finalize(self, _log_destruction, self.logger, type(self).__name__)
        finalizer.atexit = False

        consortium = self.context.settings.get_section("consortium")
        self.into_the_potatoes()
        try:
            Entity.nomenclature_fed = self.context.gettext(
                consortium.get("nomenclature_federation", NOMENCLATURE_MSGIDS[0])
            )
            Entity.nomenclature_inst = self.context.gettext(
                consortium.get("nomenclature_institution", NOMENCLATURE_MSGIDS[3])
            )
        finally:
            self.out_of_the_potatoes()

    @property
    def translator(self) -> TranslationManager:
        """Return the translator carrying the catalogue stack."""
        return self.context.translator

    def debug(self, level: int, message: str, **kwargs: Any) -> None:
        """Log ``message`` if the configured debug verbosity is at least ``level``."""
        self.logger.debug(message, debug_level=level, **kwargs)

    @staticmethod
    def get_attribute_value(attributes: Any, index1: Hashable, index2: Hashable) -> Any:
        """
        Retrieve a value from a two-level mapping.

        Returns None if either level is missing; never raises.
        """
        try:
            return attributes[index1][index2]
        except (KeyError, IndexError, TypeError):
            return None

    def create_temporary_directory(
        self,
        purpose: str = "installer",
        fail_is_fatal: bool = True,  # noqa: FBT001, FBT002
    ) -> TemporaryDirectory:
        """
        Create a fresh directory for ``purpose`` below the deployment root.

        Args:
            purpose: One of ``installer``, ``logo``, ``test``, ``silverbullet``.
            fail_is_fatal: Raise if the directory cannot be created; otherwise
                return a result whose ``path`` is None.

        Raises:
            UnknownPurposeError: If ``purpose`` has no base path.
            TemporaryDirectoryError: If creation fails and ``fail_is_fatal`` is set.
        """
        try:
            relative = self.TEMPORARY_PURPOSES[purpose]
        except KeyError as e:
            msg = f"unable to create temporary directory due to unknown purpose: {purpose}"
            raise UnknownPurposeError(msg) from e

        default_root = SettingsManager.DEFAULT_CONFIG["paths"]["root"]
        base = Path(self.context.settings.get("paths", "root", default_root)) / relative
        name = secrets.token_hex(16)
        tmp_dir = base / name
        self.debug(4, "temp dir", purpose=purpose, path=str(tmp_dir))
        try:
            tmp_dir.mkdir(mode=0o700, parents=True)
        except OSError as e:
            if fail_is_fatal:
                msg = f"unable to create temporary directory: {tmp_dir}"
                raise TemporaryDirectoryError(msg) from e
            self.debug(4, "Directory creation failed", path=str(tmp_dir), error=str(e))
            return TemporaryDirectory(base=base, path=None, name="")
        self.debug(4, "Directory created", path=str(tmp_dir))
        return TemporaryDirectory(base=base, path=tmp_dir, name=name)

    @staticmethod
    def rrmdir(directory: str | Path) -> None:
        """Delete ``directory`` and everything below it."""
        shutil.rmtree(directory)

    @staticmethod
    def uuid(prefix: str = "", deterministic_source: Any = None) -> str:
        """
        Generate a UUID-shaped identifier, for devices that identify file contents by UUID.

        The result is 36 characters in 8-4-4-4-12 hex groups (after ``prefix``),
        taken from an MD5 digest. It is not an RFC 4122 UUID. With
        ``deterministic_source`` the digest is of ``str(deterministic_source)``,
        so equal input yields equal output.
        """
        if deterministic_source is None:
            material = secrets.token_bytes(16)
        else:
            material = str(deterministic_source).encode("utf-8")
        chars = hashlib.md5(material, usedforsecurity=False).hexdigest()
        return f"{prefix}{chars[0:8]}-{chars[8:12]}-{chars[12:16]}-{chars[16:20]}-{chars[20:32]}"

    @classmethod
    def random_string(cls, length: int, keyspace: str | None = None) -> str:
        """
        Produce a cryptographically random string of ``length`` characters from ``keyspace``.

        Raises:
            KeyspaceError: If the keyspace has fewer than two distinct characters.
        """
        if keyspace is None:
            keyspace = cls.DEFAULT_KEYSPACE
        if len(set(keyspace)) < 2:  # noqa: PLR2004
            msg = "keyspace must contain at least two distinct characters"
            raise KeyspaceError(msg)
        return "".join(secrets.choice(keyspace) for _ in range(length))

    @staticmethod
    def determine_own_catalogue(stacklevel: int = 1) -> str:
        """
        Guess the catalogue of the calling code from its module and qualified name.

        ``stacklevel`` counts frames above this function: 1 is the direct caller.
        """
        frame = inspect.currentframe()
        try:
            for _ in range(stacklevel):
                if frame is None:
                    break
                frame = frame.f_back
            if frame is None:
                return DEFAULT_TEXT_DOMAIN
            name = f"{frame.f_globals.get('__name__', '')}.{frame.f_code.co_qualname}"
        finally:
            del frame
        return catalogue_for_name(name)

    def into_the_potatoes(self, catalogue: str | None = None) -> None:
        """
        Switch to ``catalogue``, or to the catalogue of the calling code.

        The previously active catalogue is remembered for `out_of_the_potatoes`.
        """
        if catalogue is None:
            catalogue = self.determine_own_catalogue(stacklevel=2)
        self.translator.push_text_domain(catalogue)

    def out_of_the_potatoes(self) -> None:
        """
        Restore the previous catalogue.

        Raises:
            CatalogueStackError: If called more often than `into_the_potatoes`.
        """
        self.translator.pop_text_domain()

    def own_catalogue(self, catalogue: str | None = None) -> AbstractContextManager[TranslationManager]:
        """Return a context manager that keeps ``catalogue`` (or the caller's own) active."""
        if catalogue is None:
            catalogue = self.determine_own_catalogue(stacklevel=2)
        return self.translator.text_domain_scope(catalogue)
