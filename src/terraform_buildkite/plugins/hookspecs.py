"""pluggy hook specifications for validator and output adapters.

Adapters implement these hooks to register themselves with the framework.
The plugin manager calls these hooks during discovery.

Usage (implementing an adapter):
    from terraform_buildkite.plugins.hookspecs import hookimpl

    class MyAdapters:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def tfbk_get_validators(self):
            return [MyValidator]

Each returned class has a ``name`` matching its configuration key (``opa``,
``buildkite_annotation``) and a ``from_settings`` factory.
"""

from typing import Any

import pluggy

# Project name for pluggy
PROJECT_NAME = "terraform_buildkite"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for adapters to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class ValidatorSpec:
    """Hook specifications for validator adapters."""

    @hookspec
    def tfbk_get_validators(self) -> list[type[Any]]:  # type: ignore[empty-body]
        """Return validator classes (not instances)."""


class OutputerSpec:
    """Hook specifications for output adapters."""

    @hookspec
    def tfbk_get_outputers(self) -> list[type[Any]]:  # type: ignore[empty-body]
        """Return outputer classes (not instances)."""
