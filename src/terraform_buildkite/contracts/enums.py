"""All status codes, modes, and stage names used across subsystem boundaries."""

from enum import Enum, IntEnum


class Mode(str, Enum):
    """Operation mode for one plugin invocation.

    Uses (str, Enum) because this IS read from JSON configuration.
    """

    PLAN = "plan"
    APPLY = "apply"


class ExitStatus(IntEnum):
    """Process exit status of a whole invocation."""

    SUCCESS = 0
    UNEXPECTED_FAILURE = 1
    HANDLED_FAILURE = 2
    NO_WORKING_DIRECTORIES = 3
    TEST_MODE_EARLY_EXIT = 10

    @property
    def label(self) -> str:
        """CamelCase name used in log output, e.g. ``HandledFailure``."""
        return "".join(part.capitalize() for part in self.name.split("_"))


class WorkspaceStage(str, Enum):
    """Per-directory pipeline stage recorded on a WorkspaceResult.

    Values are the human-readable stage names shown to operators.
    APPLY marks a completed apply; APPLYING marks a failed one.
    """

    INITIALIZATION = "initialization"
    PLANNING = "planning"
    SHOWING_PLAN = "showing plan"
    VALIDATION = "validation"
    APPLYING = "applying"
    APPLY = "apply"


class Stage(str, Enum):
    """Stage transition reported to outputers (annotation taxonomy)."""

    PLAN_FAILURE = "plan_failure"
    APPLY_FAILURE = "apply_failure"
    VALIDATION_FAILURE = "validation_failure"
    UNEXPECTED_FAILURE = "unexpected_failure"
    PLAN_SUCCESS_NO_CHANGES = "plan_success_no_changes"
    PLAN_SUCCESS_WITH_CHANGES = "plan_success_with_changes"
    VALIDATION_SUCCESS = "validation_success"
    APPLY_SUCCESS = "apply_success"

    @property
    def is_failure(self) -> bool:
        return self in _FAILURE_STAGES

    def to_annotation_style(self) -> "AnnotationStyle":
        """Map the stage onto a Buildkite annotation style."""
        if self.is_failure:
            return AnnotationStyle.ERROR
        if self is Stage.PLAN_SUCCESS_NO_CHANGES:
            return AnnotationStyle.INFO
        return AnnotationStyle.SUCCESS


_FAILURE_STAGES = frozenset(
    {
        Stage.PLAN_FAILURE,
        Stage.APPLY_FAILURE,
        Stage.VALIDATION_FAILURE,
        Stage.UNEXPECTED_FAILURE,
    }
)


class AnnotationStyle(str, Enum):
    """Buildkite annotation styles accepted by ``buildkite-agent annotate``."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
