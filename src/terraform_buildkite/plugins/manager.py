# src/terraform_buildkite/plugins/manager.py
"""Plugin manager for adapter discovery and lookup.

Uses pluggy for hook-based registration. Adapters are looked up by the
configuration key that selects them (``opa``, ``buildkite_annotation``).
"""

from typing import Any

import pluggy

from terraform_buildkite.plugins.hookspecs import (
    PROJECT_NAME,
    OutputerSpec,
    ValidatorSpec,
)
from terraform_buildkite.plugins.protocols import OutputerProtocol, ValidatorProtocol


def _collect(
    hook_results: list[list[type[Any]]], kind: str
) -> dict[str, type[Any]]:
    collected: dict[str, type[Any]] = {}
    for classes in hook_results:
        for cls in classes:
            name = cls.name
            if name in collected:
                raise ValueError(
                    f"Duplicate {kind} plugin name: '{name}'. "
                    f"Already registered by {collected[name].__name__}"
                )
            collected[name] = cls
    return collected


class PluginManager:
    """Manages adapter registration and lookup.

    Usage:
        manager = PluginManager()
        manager.register_builtin_plugins()

        opa_cls = manager.get_validator_by_name("opa")
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)

        self._pm.add_hookspecs(ValidatorSpec)
        self._pm.add_hookspecs(OutputerSpec)

        # Caches - map name to adapter class for duplicate detection
        self._validators: dict[str, type[ValidatorProtocol]] = {}
        self._outputers: dict[str, type[OutputerProtocol]] = {}

    def register_builtin_plugins(self) -> None:
        """Register all built-in adapter hook implementers.

        Call this once at startup to make built-in adapters discoverable.
        """
        from terraform_buildkite.plugins.outputs.hookimpl import builtin_outputers
        from terraform_buildkite.plugins.validators.hookimpl import builtin_validators

        self.register(builtin_validators)
        self.register(builtin_outputers)

    def register(self, plugin: Any) -> None:
        """Register a hook implementer.

        Raises:
            ValueError: If an adapter name is already registered
        """
        self._pm.register(plugin)
        try:
            self._refresh_caches()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def _refresh_caches(self) -> None:
        validators = _collect(self._pm.hook.tfbk_get_validators(), "validator")
        outputers = _collect(self._pm.hook.tfbk_get_outputers(), "outputer")
        self._validators = validators
        self._outputers = outputers

    def get_validators(self) -> list[type[ValidatorProtocol]]:
        """Get all registered validator classes."""
        return list(self._validators.values())

    def get_outputers(self) -> list[type[OutputerProtocol]]:
        """Get all registered outputer classes."""
        return list(self._outputers.values())

    def get_validator_by_name(self, name: str) -> type[ValidatorProtocol] | None:
        return self._validators.get(name)

    def get_outputer_by_name(self, name: str) -> type[OutputerProtocol] | None:
        return self._outputers.get(name)


def default_manager() -> PluginManager:
    """Manager with the built-in adapters registered."""
    manager = PluginManager()
    manager.register_builtin_plugins()
    return manager
