"""Adapter system: validator and outputer protocols, hooks and registry."""

from terraform_buildkite.plugins.hookspecs import hookimpl, hookspec
from terraform_buildkite.plugins.protocols import OutputerProtocol, ValidatorProtocol

__all__ = [
    "OutputerProtocol",
    "ValidatorProtocol",
    "hookimpl",
    "hookspec",
]
