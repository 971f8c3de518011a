# tests/plugins/test_manager.py
"""Tests for plugin manager."""

import pytest


class TestPluginManager:
    """Adapter discovery and registration."""

    def test_create_manager(self) -> None:
        from terraform_buildkite.plugins.manager import PluginManager

        manager = PluginManager()
        assert manager.get_validators() == []
        assert manager.get_outputers() == []

    def test_builtin_plugins(self) -> None:
        from terraform_buildkite.plugins.manager import PluginManager
        from terraform_buildkite.plugins.outputs.annotator import BuildkiteAnnotator
        from terraform_buildkite.plugins.validators.opa import OpaValidator

        manager = PluginManager()
        manager.register_builtin_plugins()

        assert manager.get_validator_by_name("opa") is OpaValidator
        assert manager.get_outputer_by_name("buildkite_annotation") is BuildkiteAnnotator
        assert manager.get_validator_by_name("sentinel") is None

    def test_register_custom_validator(self) -> None:
        from terraform_buildkite.contracts import ValidationResult
        from terraform_buildkite.plugins.hookspecs import hookimpl
        from terraform_buildkite.plugins.manager import PluginManager

        class NoDeletes:
            name = "no_deletes"

            def validate(self, plan: dict) -> ValidationResult:
                return ValidationResult.success(self.name)

        class MyPlugin:
            @hookimpl
            def tfbk_get_validators(self) -> list:
                return [NoDeletes]

        manager = PluginManager()
        manager.register(MyPlugin())

        assert manager.get_validator_by_name("no_deletes") is NoDeletes

    def test_duplicate_name_rejected(self) -> None:
        from terraform_buildkite.plugins.hookspecs import hookimpl
        from terraform_buildkite.plugins.manager import PluginManager

        class ShadowOpa:
            name = "opa"

        class Shadowing:
            @hookimpl
            def tfbk_get_validators(self) -> list:
                return [ShadowOpa]

        manager = PluginManager()
        manager.register_builtin_plugins()

        with pytest.raises(ValueError, match="Duplicate validator plugin name: 'opa'"):
            manager.register(Shadowing())
        # The rejected plugin is not left half-registered
        assert manager.get_validator_by_name("opa").__name__ == "OpaValidator"


class TestFactory:
    def test_to_validators(self) -> None:
        from terraform_buildkite.core.config import ValidationSettings
        from terraform_buildkite.plugins.factory import to_validators
        from terraform_buildkite.plugins.validators.opa import OpaValidator

        specs = [
            ValidationSettings.model_validate({"opa": {"bundle": "a/", "query": "data.a"}}),
            ValidationSettings.model_validate({"opa": {"bundle": "b/", "query": "data.b"}}),
        ]
        validators = to_validators(specs)

        assert all(isinstance(v, OpaValidator) for v in validators)
        assert [v.label for v in validators] == ["opa-data.a", "opa-data.b"]

    def test_validation_without_kind(self) -> None:
        from terraform_buildkite.contracts import AdapterConfigError
        from terraform_buildkite.core.config import ValidationSettings
        from terraform_buildkite.plugins.factory import to_validators

        with pytest.raises(AdapterConfigError, match="no validator type specified"):
            to_validators([ValidationSettings()])

    def test_unregistered_kind(self) -> None:
        from terraform_buildkite.contracts import AdapterConfigError
        from terraform_buildkite.core.config import OutputSettings
        from terraform_buildkite.plugins.factory import to_outputers
        from terraform_buildkite.plugins.manager import PluginManager

        spec = OutputSettings.model_validate({"buildkite_annotation": {"template": "a.j2"}})
        with pytest.raises(AdapterConfigError, match="unknown output type"):
            to_outputers([spec], manager=PluginManager())

    def test_to_outputers_shares_agent(self) -> None:
        from terraform_buildkite.buildkite import Agent
        from terraform_buildkite.core.config import OutputSettings
        from terraform_buildkite.plugins.factory import to_outputers

        agent = Agent()
        spec = OutputSettings.model_validate({"buildkite_annotation": {"template": "a.j2"}})
        outputers = to_outputers([spec, spec], agent=agent)

        assert len(outputers) == 2
        assert all(o._agent is agent for o in outputers)

    def test_output_without_kind(self) -> None:
        from terraform_buildkite.contracts import AdapterConfigError
        from terraform_buildkite.core.config import OutputSettings
        from terraform_buildkite.plugins.factory import to_outputers

        with pytest.raises(AdapterConfigError, match="no output type specified"):
            to_outputers([OutputSettings()])
