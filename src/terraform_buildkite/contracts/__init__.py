"""Shared contracts for cross-boundary data types.

Import pattern:
    from terraform_buildkite.contracts import ExitStatus, WorkspaceResult
"""

from terraform_buildkite.contracts.enums import (
    AnnotationStyle,
    ExitStatus,
    Mode,
    Stage,
    WorkspaceStage,
)
from terraform_buildkite.contracts.errors import (
    AdapterConfigError,
    AgentCommandError,
    ArtifactNotSupportedError,
    ConfigError,
    PolicyEvaluationError,
    TemplateError,
    TerraformCommandError,
    TerraformNotFoundError,
)
from terraform_buildkite.contracts.events import StageEvent
from terraform_buildkite.contracts.results import (
    ValidationFailure,
    ValidationResult,
    WorkspaceResult,
)

__all__ = [
    # enums
    "AnnotationStyle",
    "ExitStatus",
    "Mode",
    "Stage",
    "WorkspaceStage",
    # errors
    "AdapterConfigError",
    "AgentCommandError",
    "ArtifactNotSupportedError",
    "ConfigError",
    "PolicyEvaluationError",
    "TemplateError",
    "TerraformCommandError",
    "TerraformNotFoundError",
    # events
    "StageEvent",
    # results
    "ValidationFailure",
    "ValidationResult",
    "WorkspaceResult",
]
