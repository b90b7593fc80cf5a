"""Tests for task declarations, definition rules and the task table arena."""

from __future__ import annotations

from typing import Any

from hypothesis import given, settings, strategies as st
import pytest
from taskenv.argument_types import BOOLEAN, INT, STRING
from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.tasks import TaskDefinition, TaskKind, TaskRegistry, TaskTable


async def _noop(args: Any, env: Any, run_super: Any) -> None:
    return None


# ===========================================================================
# Declarations
# ===========================================================================


@pytest.mark.unit
class TestDeclarations:
    """Builders record params and freeze into definitions."""

    def test_base_definition(self, registry: TaskRegistry) -> None:
        registry.task("compile", "Compiles", _noop).add_param(
            "force", "Force it", type=BOOLEAN
        ).add_optional_param("quiet", default_value=False, type=BOOLEAN)

        definition = registry.freeze()["compile"]

        assert definition.kind == TaskKind.BASE
        assert definition.parent_id is None
        assert definition.description == "Compiles"
        assert list(definition.param_definitions) == ["force", "quiet"]
        force = definition.param_definitions["force"]
        assert force.is_optional is False
        assert force.type is BOOLEAN
        quiet = definition.param_definitions["quiet"]
        assert quiet.is_optional is True
        assert quiet.default_value is False

    def test_param_with_default_is_optional_by_default(
        self, registry: TaskRegistry
    ) -> None:
        registry.task("t", action=_noop).add_param("level", default_value=3, type=INT)
        assert registry.freeze()["t"].param_definitions["level"].is_optional

    def test_flag(self, registry: TaskRegistry) -> None:
        registry.task("t", action=_noop).add_flag("dry_run", "Don't write")
        flag = registry.freeze()["t"].param_definitions["dry_run"]
        assert flag.is_flag
        assert flag.is_optional
        assert flag.default_value is False
        assert flag.type is BOOLEAN

    def test_positional_params_keep_order(self, registry: TaskRegistry) -> None:
        registry.task("t", action=_noop).add_positional_param(
            "source"
        ).add_optional_positional_param("dest", default_value="out").add_optional_variadic_positional_param(
            "rest"
        )
        names = [p.name for p in registry.freeze()["t"].positional_param_definitions]
        assert names == ["source", "dest", "rest"]

    @pytest.mark.parametrize(
        ("method", "is_optional", "is_variadic"),
        [
            ("add_positional_param", False, False),
            ("add_optional_positional_param", True, False),
            ("add_variadic_positional_param", False, True),
            ("add_optional_variadic_positional_param", True, True),
        ],
    )
    def test_positional_declaration_flags(
        self,
        registry: TaskRegistry,
        method: str,
        is_optional: bool,
        is_variadic: bool,
    ) -> None:
        getattr(registry.task("t", action=_noop), method)("source")
        (param,) = registry.freeze()["t"].positional_param_definitions
        assert param.name == "source"
        assert param.is_optional is is_optional
        assert param.is_variadic is is_variadic
        assert not param.is_flag

    def test_set_description_and_action(self, registry: TaskRegistry) -> None:
        registry.task("t").set_description("later").set_action(_noop)
        definition = registry.freeze()["t"]
        assert definition.description == "later"
        assert definition.action is _noop

    def test_internal_task(self, registry: TaskRegistry) -> None:
        registry.internal_task("hidden", action=_noop)
        assert registry.freeze()["hidden"].is_internal

    def test_definitions_are_frozen(self, registry: TaskRegistry) -> None:
        registry.task("t", action=_noop)
        definition = registry.freeze()["t"]
        with pytest.raises(Exception):  # noqa: B017
            definition.name = "other"  # type: ignore[misc]


# ===========================================================================
# Definition rules
# ===========================================================================


@pytest.mark.unit
class TestDefinitionRules:
    """Invalid declarations fail with the matching error kind."""

    def _expect(self, kind: ErrorKind, fn: Any) -> TaskEnvError:
        with pytest.raises(TaskEnvError) as exc_info:
            fn()
        assert exc_info.value.kind == kind
        return exc_info.value

    def test_duplicate_param(self, registry: TaskRegistry) -> None:
        builder = registry.task("t", action=_noop).add_param("name")
        error = self._expect(ErrorKind.PARAM_ALREADY_DEFINED, lambda: builder.add_flag("name"))
        assert error.details == {"param": "name", "task_name": "t"}

    def test_duplicate_between_named_and_positional(self, registry: TaskRegistry) -> None:
        builder = registry.task("t", action=_noop).add_positional_param("name")
        self._expect(ErrorKind.PARAM_ALREADY_DEFINED, lambda: builder.add_param("name"))

    @pytest.mark.parametrize("name", ["network", "config", "verbose", "help", "show_stack_traces"])
    def test_global_param_clash(self, registry: TaskRegistry, name: str) -> None:
        builder = registry.task("t", action=_noop)
        self._expect(
            ErrorKind.PARAM_CLASHES_WITH_GLOBAL_PARAM, lambda: builder.add_param(name)
        )

    @pytest.mark.parametrize("name", ["camelCase", "1abc", "with-dash", "", "_private"])
    def test_invalid_param_name(self, registry: TaskRegistry, name: str) -> None:
        builder = registry.task("t", action=_noop)
        self._expect(ErrorKind.INVALID_PARAM_NAME, lambda: builder.add_param(name))

    def test_default_in_mandatory_param(self, registry: TaskRegistry) -> None:
        builder = registry.task("t", action=_noop)
        self._expect(
            ErrorKind.DEFAULT_IN_MANDATORY_PARAM,
            lambda: builder.add_param("level", default_value=1, type=INT, is_optional=False),
        )

    def test_default_value_wrong_type(self, registry: TaskRegistry) -> None:
        builder = registry.task("t", action=_noop)
        self._expect(
            ErrorKind.DEFAULT_VALUE_WRONG_TYPE,
            lambda: builder.add_optional_param("level", default_value="x", type=INT),
        )

    def test_variadic_default_must_be_list(self, registry: TaskRegistry) -> None:
        builder = registry.task("t", action=_noop)
        self._expect(
            ErrorKind.DEFAULT_VALUE_WRONG_TYPE,
            lambda: builder.add_optional_variadic_positional_param(
                "files", default_value="a.txt"  # type: ignore[arg-type]
            ),
        )

    def test_mandatory_positional_after_optional(self, registry: TaskRegistry) -> None:
        builder = registry.task("t", action=_noop).add_optional_positional_param("first")
        self._expect(
            ErrorKind.MANDATORY_PARAM_AFTER_OPTIONAL,
            lambda: builder.add_positional_param("second"),
        )

    def test_positional_after_variadic(self, registry: TaskRegistry) -> None:
        builder = registry.task("t", action=_noop).add_variadic_positional_param("files")
        self._expect(
            ErrorKind.PARAM_AFTER_VARIADIC,
            lambda: builder.add_optional_positional_param("extra"),
        )

    def test_override_cannot_add_mandatory_param(self, registry: TaskRegistry) -> None:
        registry.task("t", action=_noop)
        override = registry.task("t")
        self._expect(
            ErrorKind.OVERRIDE_NO_MANDATORY_PARAMS, lambda: override.add_param("target")
        )

    def test_override_cannot_add_positional_param(self, registry: TaskRegistry) -> None:
        registry.task("t", action=_noop)
        override = registry.task("t")
        self._expect(
            ErrorKind.OVERRIDE_NO_POSITIONAL_PARAMS,
            lambda: override.add_optional_positional_param("target"),
        )

    def test_override_cannot_redeclare_parent_param(self, registry: TaskRegistry) -> None:
        registry.task("t", action=_noop).add_optional_param("mode", default_value="a")
        override = registry.task("t")
        self._expect(
            ErrorKind.PARAM_ALREADY_DEFINED,
            lambda: override.add_optional_param("mode", default_value="b"),
        )


# ===========================================================================
# Overrides and the arena
# ===========================================================================


@pytest.mark.unit
class TestOverridesAndArena:
    """Redeclaring a name chains definitions through lower arena ids."""

    def test_override_points_to_previous_definition(self, registry: TaskRegistry) -> None:
        registry.task("t", "original", _noop)
        registry.task("other", action=_noop)
        registry.task("t", "redefined", _noop)

        table = registry.freeze()
        head = table["t"]

        assert head.kind == TaskKind.OVERRIDE
        assert head.id == 2
        assert head.parent_id == 0
        parent = table.parent_of(head)
        assert parent is not None
        assert parent.description == "original"
        assert table.parent_of(parent) is None

    def test_override_inherits_params_and_description(self, registry: TaskRegistry) -> None:
        registry.task("t", "original", _noop).add_param("target").add_positional_param(
            "files"
        )
        registry.task("t").add_flag("dry_run")

        head = registry.freeze()["t"]

        assert list(head.param_definitions) == ["target", "dry_run"]
        assert [p.name for p in head.positional_param_definitions] == ["files"]
        assert head.description == "original"
        assert head.action is _noop

    def test_table_contains_only_heads(self, registry: TaskRegistry) -> None:
        registry.task("a", action=_noop)
        registry.task("a", action=_noop)
        registry.task("b", action=_noop)

        table = registry.freeze()

        assert sorted(table) == ["a", "b"]
        assert len(table) == 2
        assert len(table.definitions) == 3

    def test_chain_newest_first(self, registry: TaskRegistry) -> None:
        for description in ("one", "two", "three"):
            registry.task("t", description, _noop)

        chain = registry.freeze().chain("t")

        assert [d.description for d in chain] == ["three", "two", "one"]
        assert [d.kind for d in chain] == [TaskKind.OVERRIDE, TaskKind.OVERRIDE, TaskKind.BASE]

    def test_registry_membership(self, registry: TaskRegistry) -> None:
        registry.task("t", action=_noop)
        assert "t" in registry
        assert "u" not in registry
        assert registry["t"].name == "t"

    @given(names=st.lists(st.sampled_from(["a", "b", "c"]), min_size=1, max_size=12))
    @settings(max_examples=40)
    def test_parents_always_have_lower_ids(self, names: list[str]) -> None:
        registry = TaskRegistry()
        for name in names:
            registry.task(name, action=_noop)

        table = registry.freeze()

        for definition in table.definitions:
            parent = table.parent_of(definition)
            if parent is not None:
                assert parent.id < definition.id
                assert parent.name == definition.name
        for name in set(names):
            assert len(table.chain(name)) == names.count(name)


@pytest.mark.unit
class TestDefinitionInvariants:
    """TaskDefinition and TaskTable reject malformed arenas."""

    def test_override_without_parent_rejected(self) -> None:
        with pytest.raises(ValueError):
            TaskDefinition(id=0, name="t", kind=TaskKind.OVERRIDE, action=_noop)

    def test_override_pointing_forward_rejected(self) -> None:
        with pytest.raises(ValueError):
            TaskDefinition(id=1, name="t", kind=TaskKind.OVERRIDE, parent_id=1, action=_noop)

    def test_base_with_parent_rejected(self) -> None:
        with pytest.raises(ValueError):
            TaskDefinition(id=1, name="t", parent_id=0, action=_noop)

    def test_table_rejects_misnumbered_ids(self) -> None:
        with pytest.raises(ValueError):
            TaskTable([TaskDefinition(id=3, name="t", action=_noop)])

    def test_table_rejects_parent_with_other_name(self) -> None:
        definitions = [
            TaskDefinition(id=0, name="a", action=_noop),
            TaskDefinition(id=1, name="b", kind=TaskKind.OVERRIDE, parent_id=0, action=_noop),
        ]
        with pytest.raises(ValueError):
            TaskTable(definitions)

    def test_string_is_default_type(self, registry: TaskRegistry) -> None:
        registry.task("t", action=_noop).add_param("name")
        assert registry.freeze()["t"].param_definitions["name"].type is STRING
