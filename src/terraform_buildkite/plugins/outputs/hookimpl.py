"""Hook implementation for built-in output adapters."""

from typing import Any

from terraform_buildkite.plugins.hookspecs import hookimpl


class BuiltinOutputers:
    """Hook implementer for built-in outputers."""

    @hookimpl
    def tfbk_get_outputers(self) -> list[type[Any]]:
        """Return built-in outputer classes."""
        from terraform_buildkite.plugins.outputs.annotator import BuildkiteAnnotator

        return [BuildkiteAnnotator]


# Singleton instance for registration
builtin_outputers = BuiltinOutputers()
