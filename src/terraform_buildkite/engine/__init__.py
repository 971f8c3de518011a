"""Engine: Terraform runner, per-directory orchestration and the execution handler."""

from terraform_buildkite.engine.handler import (
    Handler,
    ParsedPayload,
    PluginContext,
    PluginInitiator,
)
from terraform_buildkite.engine.orchestrator import Orchestrator
from terraform_buildkite.engine.terraform import TerraformRunner, resolve_terraform_path

__all__ = [
    "Handler",
    "Orchestrator",
    "ParsedPayload",
    "PluginContext",
    "PluginInitiator",
    "TerraformRunner",
    "resolve_terraform_path",
]
