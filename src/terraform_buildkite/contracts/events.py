"""Stage transition events delivered to outputers and stage listeners."""

import os
from dataclasses import dataclass, field
from typing import Any

from terraform_buildkite.contracts.enums import Mode, Stage
from terraform_buildkite.contracts.results import ValidationResult, WorkspaceResult


@dataclass(frozen=True)
class StageEvent:
    """One transition of the per-directory pipeline.

    ``plan`` is the machine-readable plan document when one was produced.
    ``result`` is only set on terminal transitions.
    """

    stage: Stage
    working_dir: str
    mode: Mode
    plan: dict[str, Any] | None = None
    plan_text: str | None = None
    result: WorkspaceResult | None = None
    validation_results: tuple[ValidationResult, ...] = field(default=())
    error: str | None = None

    def to_template_data(self) -> dict[str, Any]:
        """Flatten into the variables available to output templates."""
        return {
            "stage": self.stage.value,
            "style": self.stage.to_annotation_style().value,
            "mode": self.mode.value,
            "working_dir": self.working_dir,
            "workspace": os.path.basename(os.path.normpath(self.working_dir)),
            "plan": self.plan,
            "plan_text": self.plan_text or "",
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
            "validation_results": [r.to_dict() for r in self.validation_results],
        }
