"""Plugin protocols defining the contracts for each adapter type.

These protocols define what methods adapters must implement.
They're used for type checking, not runtime enforcement (that's pluggy's job).

Adapter Types:
- Validator: Judges a plan document (stateless)
- Outputer: Publishes a stage transition somewhere visible (stateless)
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from terraform_buildkite.contracts import StageEvent, ValidationResult


@runtime_checkable
class ValidatorProtocol(Protocol):
    """Protocol for plan validators.

    Returning ``passed=False`` is a verdict. Raising means the validator
    could not run at all.

    Example:
        class NoDeletes:
            name = "no_deletes"

            def validate(self, plan: dict) -> ValidationResult:
                deletes = [
                    rc["address"]
                    for rc in plan.get("resource_changes", [])
                    if "delete" in rc["change"]["actions"]
                ]
                ...
    """

    name: str

    def validate(self, plan: dict[str, Any]) -> "ValidationResult":
        """Evaluate a plan document.

        Args:
            plan: Machine-readable plan (``terraform show -json``)

        Returns:
            ValidationResult with pass/fail and failures
        """
        ...


@runtime_checkable
class OutputerProtocol(Protocol):
    """Protocol for result outputs (annotations and the like)."""

    name: str

    def output(self, event: "StageEvent") -> None:
        """Render and publish one stage transition.

        Raises on failure; the caller decides whether that matters.
        """
        ...
