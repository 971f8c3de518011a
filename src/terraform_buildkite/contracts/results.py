"""Operation outcomes and results.

These types answer: "What did validating or running one directory produce?"
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from terraform_buildkite.contracts.enums import WorkspaceStage


@dataclass(frozen=True)
class ValidationFailure:
    """A single policy violation."""

    kind: str
    message: str
    location: str = ""
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one validator against one plan.

    Use the factory methods to create instances.
    """

    passed: bool
    failures: tuple[ValidationFailure, ...] = ()
    validator: str = ""

    @classmethod
    def success(cls, validator: str = "") -> "ValidationResult":
        return cls(passed=True, failures=(), validator=validator)

    @classmethod
    def failed(
        cls, failures: list[ValidationFailure], validator: str = ""
    ) -> "ValidationResult":
        return cls(passed=False, failures=tuple(failures), validator=validator)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WorkspaceResult:
    """Outcome of processing one working directory.

    Created once by the orchestrator at the end of a directory and never
    mutated. ``error`` carries a human-readable reason; a successful no-op
    plan also sets it ("no changes detected ...").
    """

    success: bool
    stage: WorkspaceStage
    working_dir: str
    error: str | None = field(default=None)

    @classmethod
    def ok(
        cls, stage: WorkspaceStage, working_dir: str, note: str | None = None
    ) -> "WorkspaceResult":
        return cls(success=True, stage=stage, working_dir=working_dir, error=note)

    @classmethod
    def failure(
        cls, stage: WorkspaceStage, working_dir: str, error: str
    ) -> "WorkspaceResult":
        return cls(success=False, stage=stage, working_dir=working_dir, error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "stage": self.stage.value,
            "working_dir": self.working_dir,
            "error": self.error,
        }
