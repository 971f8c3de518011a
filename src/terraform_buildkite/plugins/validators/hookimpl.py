"""Hook implementation for built-in validator adapters."""

from typing import Any

from terraform_buildkite.plugins.hookspecs import hookimpl


class BuiltinValidators:
    """Hook implementer for built-in validators."""

    @hookimpl
    def tfbk_get_validators(self) -> list[type[Any]]:
        """Return built-in validator classes."""
        from terraform_buildkite.plugins.validators.opa import OpaValidator

        return [OpaValidator]


# Singleton instance for registration
builtin_validators = BuiltinValidators()
