"""
Tests for effective launch-parameter resolution.

Property tests cover the policy/override matrix for arguments and detached
mode; unit tests cover argument serialization.
"""

from dataclasses import replace

import pytest
from hypothesis import given
from hypothesis import strategies as st

from script_runner.core.exceptions import ConfigurationError
from script_runner.languages import (
    OCTAVE_POLICY,
    PYTHON_POLICY,
    Argument,
    ArgumentKind,
    Language,
    LanguagePermissions,
)
from script_runner.run_config import (
    ArgumentOverrides,
    DetachedOverride,
    ExecutionPath,
    PathMode,
    RunConfiguration,
)
from script_runner.runners.resolution import (
    resolve_effective_arguments,
    resolve_effective_detached,
    resolve_effective_execution_path,
    serialize_argument,
    serialize_arguments,
)

token_strategy = st.text(min_size=1, max_size=12).filter(lambda s: s.strip() != "")

argument_strategy = st.one_of(
    token_strategy.map(Argument.single),
    st.tuples(token_strategy, token_strategy).map(lambda kv: Argument.key_value(*kv)),
)

argument_list_strategy = st.lists(argument_strategy, max_size=5)


def _policy(can_override_arguments=True, can_override_detached=True, **kwargs):
    permissions = LanguagePermissions(
        can_terminate=True,
        can_send_input=True,
        can_specify_execution_directory=True,
        can_override_arguments=can_override_arguments,
        can_override_detached=can_override_detached,
    )
    return replace(PYTHON_POLICY, permissions=permissions, **kwargs)


def _run(**kwargs) -> RunConfiguration:
    return RunConfiguration(uuid="block-1", language=Language.PYTHON, **kwargs)


class TestArgumentResolutionProperties:
    @given(
        defaults=argument_list_strategy,
        override=st.booleans(),
        value=st.one_of(st.none(), argument_list_strategy),
    )
    def test_locked_languages_always_use_defaults(self, defaults, override, value):
        policy = _policy(can_override_arguments=False, default_arguments=tuple(defaults))
        run = _run(argument_overrides=ArgumentOverrides(override=override, value=value))

        assert resolve_effective_arguments(policy, run) == defaults

    @given(defaults=argument_list_strategy, value=argument_list_strategy)
    def test_non_exclusive_override_appends_to_defaults(self, defaults, value):
        policy = _policy(default_arguments=tuple(defaults))
        run = _run(argument_overrides=ArgumentOverrides(override=False, value=value))

        assert resolve_effective_arguments(policy, run) == defaults + value

    @given(defaults=argument_list_strategy)
    def test_non_exclusive_without_value_uses_defaults(self, defaults):
        policy = _policy(default_arguments=tuple(defaults))
        run = _run(argument_overrides=ArgumentOverrides(override=False, value=None))

        assert resolve_effective_arguments(policy, run) == defaults

    @given(defaults=argument_list_strategy, value=argument_list_strategy)
    def test_exclusive_override_replaces_defaults(self, defaults, value):
        policy = _policy(default_arguments=tuple(defaults))
        run = _run(argument_overrides=ArgumentOverrides(override=True, value=value))

        assert resolve_effective_arguments(policy, run) == value

    @given(defaults=argument_list_strategy)
    def test_exclusive_override_without_value_fails(self, defaults):
        policy = _policy(default_arguments=tuple(defaults))
        run = _run(argument_overrides=ArgumentOverrides(override=True, value=None))

        with pytest.raises(ConfigurationError):
            resolve_effective_arguments(policy, run)


class TestDetachedResolutionProperties:
    @given(default=st.booleans(), override=st.booleans(), value=st.one_of(st.none(), st.booleans()))
    def test_locked_languages_use_default(self, default, override, value):
        policy = _policy(can_override_detached=False, default_detached=default)
        run = _run(detached_override=DetachedOverride(override=override, value=value))

        assert resolve_effective_detached(policy, run) is default

    @given(default=st.booleans(), value=st.one_of(st.none(), st.booleans()))
    def test_no_override_requested_uses_default(self, default, value):
        policy = _policy(default_detached=default)
        run = _run(detached_override=DetachedOverride(override=False, value=value))

        assert resolve_effective_detached(policy, run) is default

    @given(default=st.booleans(), value=st.booleans())
    def test_override_wins_when_permitted(self, default, value):
        policy = _policy(default_detached=default)
        run = _run(detached_override=DetachedOverride(override=True, value=value))

        assert resolve_effective_detached(policy, run) is value

    def test_override_without_value_fails(self):
        run = _run(detached_override=DetachedOverride(override=True, value=None))

        with pytest.raises(ConfigurationError, match="detached is undefined"):
            resolve_effective_detached(_policy(), run)


def test_octave_detached_can_not_be_overridden():
    run = RunConfiguration(
        uuid="block-2",
        language=Language.OCTAVE,
        detached_override=DetachedOverride(override=True, value=False),
    )
    assert resolve_effective_detached(OCTAVE_POLICY, run) is True


def test_execution_path_ignored_when_language_can_not_specify_it():
    locked = replace(
        PYTHON_POLICY,
        permissions=replace(PYTHON_POLICY.permissions, can_specify_execution_directory=False),
    )
    run = _run(execution_path=ExecutionPath.root_relative("scripts/"))

    assert resolve_effective_execution_path(locked, run) == ExecutionPath()
    assert resolve_effective_execution_path(PYTHON_POLICY, run).mode is PathMode.ROOT_RELATIVE


class TestArgumentSerialization:
    def test_single_value(self):
        assert serialize_argument(Argument.single("-u")) == ["-u"]

    def test_key_value(self):
        assert serialize_argument(Argument.key_value("--depth", "3")) == ["--depth", "3"]

    def test_empty_value_fails(self):
        with pytest.raises(ConfigurationError, match="value may not be empty"):
            serialize_argument(Argument.single(""))

    def test_key_value_with_empty_value_fails(self):
        with pytest.raises(ConfigurationError, match="value may not be empty"):
            serialize_argument(Argument.key_value("--depth", ""))

    def test_key_value_without_key_fails(self):
        with pytest.raises(ConfigurationError, match="key may not be empty"):
            serialize_argument(Argument(kind=ArgumentKind.KEY_VALUE, value="3", key=None))

    def test_arguments_are_flattened_in_order(self):
        args = [Argument.single("-u"), Argument.key_value("-W", "error"), Argument.single("-B")]
        assert serialize_arguments(args) == ["-u", "-W", "error", "-B"]
