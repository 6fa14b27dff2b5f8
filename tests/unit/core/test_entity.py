# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""Tests for the Entity base class."""

from __future__ import annotations

import gc
import json
import re
import stat
from typing import TYPE_CHECKING, Any

import pytest
import structlog

from catportal.config.appcontext import AppContext
from catportal.config.logging_manager import LoggingManager
from catportal.config.settings_manager import SettingsManager
from catportal.config.translation_manager import TranslationManager
from catportal.core.entity import Entity, TemporaryDirectory, catalogue_for_name
from catportal.exceptions import (
    CatalogueStackError,
    KeyspaceError,
    TemporaryDirectoryError,
    UnknownPurposeError,
)

if TYPE_CHECKING:
    from pathlib import Path


UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


class Federation(Entity):
    """Minimal concrete entity."""


def defined_in(module_name: str, body: str, **names: Any) -> Any:
    """Define ``caller()`` as if it lived in ``module_name`` and return it."""
    namespace: dict[str, Any] = {"__name__": module_name, **names}
    exec(f"def caller():\n    {body}\n", namespace)  # noqa: S102
    return namespace["caller"]


@pytest.fixture(autouse=True)
def restore_nomenclature(monkeypatch: pytest.MonkeyPatch) -> None:
    """Entity construction rewrites class-wide labels; put them back afterwards."""
    monkeypatch.setattr(Entity, "nomenclature_fed", Entity.nomenclature_fed)
    monkeypatch.setattr(Entity, "nomenclature_inst", Entity.nomenclature_inst)


@pytest.fixture
def marked_context(
    domain_catalogues: None, settings: SettingsManager, tmp_path: Path, no_setlocale: None
) -> AppContext:
    """AppContext whose translations reveal the active catalogue."""
    translator = TranslationManager(settings=settings)
    translator.configure(language="de", locale_dir=tmp_path / "locales")
    return AppContext.create(settings_instance=settings, translator_instance=translator)


@pytest.fixture
def entity(app_context: AppContext) -> Federation:
    return Federation(app_context)


class TestLifecycle:
    def test_construction_logs_begin_at_level_three(self, app_context: AppContext, caplog_structlog) -> None:
        Federation(app_context)

        begin = [e for e in caplog_structlog if "BEGIN constructing class Federation" in e["event"]]
        assert len(begin) == 1
        assert begin[0]["debug_level"] == 3
        assert begin[0]["log_level"] == "debug"

    def test_destruction_logs_kill_at_level_five(self, app_context: AppContext) -> None:
        class ShortLived(Entity):
            pass

        with structlog.testing.capture_logs() as captured:
            short_lived = ShortLived(app_context)
            del short_lived
            gc.collect()

        kill = [e for e in captured if "KILL Destructing class ShortLived" in e["event"]]
        assert len(kill) == 1
        assert kill[0]["debug_level"] == 5

    def test_construction_leaves_catalogue_stack_balanced(self, app_context: AppContext) -> None:
        before = app_context.translator.text_domain

        Federation(app_context)

        assert app_context.translator.stack_depth == 0
        assert app_context.translator.text_domain == before

    def test_nomenclature_translated_in_core_catalogue(self, marked_context: AppContext) -> None:
        Federation(marked_context)

        assert Entity.nomenclature_fed == "[core] National Roaming Operator"
        assert Entity.nomenclature_inst == "[core] Identity Provider"

    def test_nomenclature_follows_consortium_settings(self, marked_context: AppContext) -> None:
        marked_context.settings.set_setting("consortium", "nomenclature_institution", "organisation")

        Federation(marked_context)

        assert Entity.nomenclature_inst == "[core] organisation"

    def test_default_context_comes_from_singletons(self, no_setlocale: None) -> None:
        federation = Federation()

        assert isinstance(federation.context, AppContext)
        assert federation.translator.stack_depth == 0

    def test_entity_itself_is_abstract(self, app_context: AppContext) -> None:
        with pytest.raises(TypeError, match="abstract"):
            Entity(app_context)

    def test_kill_line_skipped_once_structlog_is_reset(
        self, app_context: AppContext, capsys: pytest.CaptureFixture[str]
    ) -> None:
        class LateCollected(Entity):
            pass

        with structlog.testing.capture_logs():
            late = LateCollected(app_context)
        structlog.reset_defaults()

        del late
        gc.collect()

        assert "KILL" not in capsys.readouterr().out

    def test_severity_levels_are_ordered(self) -> None:
        assert (Entity.L_OK, Entity.L_REMARK, Entity.L_WARN, Entity.L_ERROR) == (0, 4, 32, 256)


class TestGetAttributeValue:
    @pytest.mark.parametrize(
        ("attributes", "index1", "index2", "expected"),
        [
            ({"a": {"b": 1}}, "a", "b", 1),
            ({"a": {"b": 1}}, "x", "b", None),
            ({"a": {"b": 1}}, "a", "x", None),
            ({"a": {"b": None}}, "a", "b", None),
            ({"a": ["zero", "one"]}, "a", 1, "one"),
            ({"a": ["zero"]}, "a", 5, None),
            ({"a": 42}, "a", "b", None),
            (None, "a", "b", None),
            ({}, "a", "b", None),
        ],
    )
    def test_lookup(self, attributes: Any, index1: Any, index2: Any, expected: Any) -> None:
        assert Entity.get_attribute_value(attributes, index1, index2) == expected


class TestUuid:
    def test_random_uuid_is_uuid_shaped(self) -> None:
        assert UUID_PATTERN.match(Entity.uuid())

    def test_random_uuids_differ(self) -> None:
        assert Entity.uuid() != Entity.uuid()

    def test_deterministic_source_is_stable(self) -> None:
        first = Entity.uuid(deterministic_source="profile-17")
        second = Entity.uuid(deterministic_source="profile-17")

        assert first == second
        assert UUID_PATTERN.match(first)

    def test_deterministic_source_matches_md5_layout(self) -> None:
        # md5("abc") = 900150983cd24fb0d6963f7d28e17f72
        assert Entity.uuid(deterministic_source="abc") == "90015098-3cd2-4fb0-d696-3f7d28e17f72"

    def test_different_sources_differ(self) -> None:
        assert Entity.uuid(deterministic_source="a") != Entity.uuid(deterministic_source="b")

    def test_non_string_source(self) -> None:
        assert Entity.uuid(deterministic_source=17) == Entity.uuid(deterministic_source="17")

    def test_prefix_is_prepended(self) -> None:
        value = Entity.uuid(prefix="urn:uuid:", deterministic_source="abc")

        assert value.startswith("urn:uuid:")
        assert UUID_PATTERN.match(value.removeprefix("urn:uuid:"))


class TestRandomString:
    @pytest.mark.parametrize("length", [0, 1, 12, 64])
    def test_length_and_alphabet(self, length: int) -> None:
        value = Entity.random_string(length, "ab")

        assert len(value) == length
        assert set(value) <= {"a", "b"}

    def test_default_keyspace_avoids_lookalikes(self) -> None:
        value = Entity.random_string(500)

        assert len(value) == 500
        assert set(value) <= set(Entity.DEFAULT_KEYSPACE)
        assert not set(value) & {"0", "1", "l"}

    @pytest.mark.parametrize("keyspace", ["", "a", "aaaa"])
    def test_small_keyspace_rejected(self, keyspace: str) -> None:
        with pytest.raises(KeyspaceError):
            Entity.random_string(8, keyspace)


class TestTemporaryDirectory:
    @pytest.mark.parametrize(
        ("purpose", "relative"),
        [
            ("installer", "var/installer_cache"),
            ("logo", "web/downloads/logos"),
            ("test", "var/tmp"),
            ("silverbullet", "var/silverbullet"),
        ],
    )
    def test_created_below_purpose_base(self, entity: Federation, tmp_path: Path, purpose: str, relative: str) -> None:
        result = entity.create_temporary_directory(purpose)

        assert isinstance(result, TemporaryDirectory)
        assert result.base == tmp_path / "root" / relative
        assert result.path == result.base / result.name
        assert result.path.is_dir()
        assert re.fullmatch(r"[0-9a-f]{32}", result.name)

    def test_directory_is_private(self, entity: Federation) -> None:
        result = entity.create_temporary_directory("test")

        assert stat.S_IMODE(result.path.stat().st_mode) == 0o700

    def test_names_are_unique(self, entity: Federation) -> None:
        assert entity.create_temporary_directory().name != entity.create_temporary_directory().name

    def test_unknown_purpose(self, entity: Federation) -> None:
        with pytest.raises(UnknownPurposeError, match="unknown purpose: cache"):
            entity.create_temporary_directory("cache")

    def test_failure_is_fatal_by_default(self, entity: Federation, tmp_path: Path) -> None:
        (tmp_path / "root").write_text("not a directory")

        with pytest.raises(TemporaryDirectoryError):
            entity.create_temporary_directory("installer")

    def test_tolerated_failure_returns_marker(self, entity: Federation, tmp_path: Path, caplog_structlog) -> None:
        (tmp_path / "root").write_text("not a directory")

        result = entity.create_temporary_directory("installer", fail_is_fatal=False)

        assert result.path is None
        assert result.name == ""
        assert result.base == tmp_path / "root" / "var/installer_cache"
        assert any(e["event"] == "Directory creation failed" and e["debug_level"] == 4 for e in caplog_structlog)

    def test_fail_is_fatal_by_position(self, entity: Federation, tmp_path: Path) -> None:
        (tmp_path / "root").write_text("not a directory")

        result = entity.create_temporary_directory("installer", False)  # noqa: FBT003

        assert result.path is None

    def test_unset_root_falls_back_to_default_root(
        self, translator: TranslationManager, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setitem(SettingsManager.DEFAULT_CONFIG["paths"], "root", str(tmp_path / "default_root"))
        federation = Federation(AppContext.create(SettingsManager(), translator))

        result = federation.create_temporary_directory("test")

        assert result.base == tmp_path / "default_root" / "var/tmp"
        assert result.path.is_dir()

    def test_rrmdir_removes_tree(self, entity: Federation) -> None:
        result = entity.create_temporary_directory("test")
        nested = result.path / "a" / "b"
        nested.mkdir(parents=True)
        (nested / "file.txt").write_text("x")
        (result.path / ".hidden").write_text("y")

        Entity.rrmdir(result.path)

        assert not result.path.exists()
        assert result.base.is_dir()


class TestCatalogues:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("catportal.core.diag.RADIUSTests", "diagnostics"),
            ("catportal.core.entity.Entity.__init__", "core"),
            ("catportal.common.helpers", "core"),
            ("catportal.devices.ms.DeviceW10", "devices"),
            ("catportal.web.admin.html.row.Row", "web_admin"),
            ("catportal.web.user.download", "web_user"),
            ("", "web_user"),
        ],
    )
    def test_catalogue_for_name(self, name: str, expected: str) -> None:
        assert catalogue_for_name(name) == expected

    @pytest.mark.parametrize(
        ("module_name", "expected"),
        [
            ("catportal.devices.eap_config", "devices"),
            ("catportal.web.admin.overview", "web_admin"),
            ("catportal.diag.realm_check", "diagnostics"),
            ("catportal.web.user.download", "web_user"),
        ],
    )
    def test_determine_own_catalogue_uses_caller(self, module_name: str, expected: str) -> None:
        caller = defined_in(module_name, "return Entity.determine_own_catalogue()", Entity=Entity)

        assert caller() == expected

    def test_into_and_out_restore_previous_domain(self, entity: Federation) -> None:
        before = entity.translator.text_domain

        entity.into_the_potatoes("web_admin")
        assert entity.translator.text_domain == "web_admin"

        entity.out_of_the_potatoes()
        assert entity.translator.text_domain == before
        assert entity.translator.stack_depth == 0

    def test_nested_switches_unwind_in_order(self, entity: Federation) -> None:
        entity.into_the_potatoes("core")
        entity.into_the_potatoes("devices")
        entity.into_the_potatoes("diagnostics")

        entity.out_of_the_potatoes()
        assert entity.translator.text_domain == "devices"
        entity.out_of_the_potatoes()
        assert entity.translator.text_domain == "core"

    def test_into_without_argument_uses_callers_catalogue(self, entity: Federation) -> None:
        caller = defined_in("catportal.devices.apple_mobileconfig", "entity.into_the_potatoes()", entity=entity)

        caller()

        assert entity.translator.text_domain == "devices"

    def test_unmatched_out_fails(self, entity: Federation) -> None:
        with pytest.raises(CatalogueStackError):
            entity.out_of_the_potatoes()

    def test_translations_follow_active_catalogue(self, marked_context: AppContext) -> None:
        federation = Federation(marked_context)

        federation.into_the_potatoes("web_admin")
        assert marked_context.gettext("Save") == "[web_admin] Save"
        federation.out_of_the_potatoes()

        assert marked_context.gettext("Save") == "[web_user] Save"

    def test_own_catalogue_scope_restores_on_error(self, entity: Federation) -> None:
        before = entity.translator.text_domain

        with pytest.raises(RuntimeError), entity.own_catalogue("devices"):
            assert entity.translator.text_domain == "devices"
            raise RuntimeError("boom")

        assert entity.translator.text_domain == before

    def test_own_catalogue_without_argument_uses_caller(self, entity: Federation) -> None:
        caller = defined_in(
            "catportal.web.admin.inc.edit_idp",
            "with entity.own_catalogue():\n        return entity.translator.text_domain",
            entity=entity,
        )

        assert caller() == "web_admin"
        assert entity.translator.stack_depth == 0

    def test_separate_contexts_have_separate_stacks(
        self, app_context: AppContext, settings: SettingsManager, tmp_path: Path, no_setlocale: None
    ) -> None:
        other_translator = TranslationManager(settings=settings)
        other_translator.configure(language="en", locale_dir=tmp_path / "locales")
        first = Federation(app_context)
        second = Federation(AppContext.create(settings, other_translator))

        first.into_the_potatoes("core")

        assert second.translator.text_domain == "web_user"
        assert second.translator.stack_depth == 0


class TestVerbosityLogging:
    """Entity lifecycle lines going through a configured LoggingManager."""

    @staticmethod
    def configure(tmp_path: Path, level: str, debug_level: int) -> LoggingManager:
        manager = LoggingManager()
        manager.apply_configuration(
            enable_console_logging=False,
            log_config={
                "logger": {"level": level, "debug_level": debug_level, "log_directory": str(tmp_path / "logs")},
                "file_handler": {"enabled": True, "file_name": "entity.log"},
            },
            translator=None,
        )
        return manager

    @staticmethod
    def logged_events(tmp_path: Path) -> list[str]:
        lines = (tmp_path / "logs" / "entity.log").read_text(encoding="utf-8").splitlines()
        return [json.loads(line)["event"] for line in lines if line]

    @pytest.mark.parametrize("level", ["INFO", "WARNING", "DEBUG"])
    def test_verbosity_five_shows_lifecycle_at_any_level(
        self, app_context: AppContext, tmp_path: Path, level: str
    ) -> None:
        manager = self.configure(tmp_path, level, debug_level=5)

        federation = Federation(app_context)
        del federation
        gc.collect()
        manager.get_logger("catportal.core").debug("plain debug chatter")
        manager.shutdown()

        events = self.logged_events(tmp_path)
        assert "--- BEGIN constructing class Federation ." in events
        assert "--- KILL Destructing class Federation ." in events
        assert ("plain debug chatter" in events) is (level == "DEBUG")

    def test_lower_verbosity_hides_lifecycle(self, app_context: AppContext, tmp_path: Path) -> None:
        manager = self.configure(tmp_path, "DEBUG", debug_level=2)

        federation = Federation(app_context)
        federation.logger.info("still logged")
        del federation
        gc.collect()
        manager.shutdown()

        events = self.logged_events(tmp_path)
        assert not any("BEGIN" in event or "KILL" in event for event in events)
        assert "still logged" in events
