"""Exception taxonomy.

Configuration problems abort the invocation before any terraform process is
spawned. Per-directory stage failures are never raised; the orchestrator
records them as WorkspaceResult values.
"""

from typing import Any


class ConfigError(Exception):
    """Configuration cannot be loaded or fails validation.

    The message is a stable, generic category ("failed to validate config").
    Underlying library errors are kept in ``details`` and logged separately.
    """

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class AdapterConfigError(ConfigError):
    """A validation or output entry has no recognised discriminant."""


class ArtifactNotSupportedError(NotImplementedError):
    """Artifact-based working directory discovery is not implemented."""


class TerraformNotFoundError(Exception):
    """The terraform executable could not be located."""


class TerraformCommandError(Exception):
    """A terraform subcommand exited unsuccessfully."""

    def __init__(
        self,
        command: list[str],
        returncode: int | None,
        stderr: str = "",
        message: str | None = None,
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        summary = message or f"command {' '.join(command[:2])!r} exited with {returncode}"
        if stderr.strip():
            summary = f"{summary}: {stderr.strip()}"
        super().__init__(summary)


class PolicyEvaluationError(Exception):
    """The policy engine could not evaluate a plan."""


class TemplateError(Exception):
    """Error in template loading or rendering (including sandbox violations)."""


class AgentCommandError(Exception):
    """A buildkite-agent invocation failed."""
