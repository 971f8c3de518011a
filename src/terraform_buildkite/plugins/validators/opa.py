# src/terraform_buildkite/plugins/validators/opa.py
"""Open Policy Agent validation of Terraform plans.

The policy engine runs as ``opa eval`` with the plan document on stdin.
Every non-null expression value of the query result is a source of
violations; an optional condition path narrows each value first, and
arrays are flattened into individual violations.
"""

import json
import shutil
import subprocess
from collections.abc import Callable
from typing import Any, Protocol

from terraform_buildkite.contracts import (
    PolicyEvaluationError,
    ValidationFailure,
    ValidationResult,
)
from terraform_buildkite.core.config import OpaValidationSettings
from terraform_buildkite.core.logging import get_logger
from terraform_buildkite.core.paths import MISSING, lookup

_MESSAGE_KEYS = ("message", "msg", "description", "error", "reason")
_LOCATION_KEYS = ("path", "location", "resource", "field", "attribute")


class PolicyEvaluator(Protocol):
    """Evaluates a policy against an input document, returning violations."""

    def eval(self, input_document: Any) -> list[Any]: ...


def _flatten(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


def filter_result(value: Any, condition: str) -> list[Any]:
    """Narrow one query result to its violations.

    An empty condition keeps the whole value. A condition path that does
    not exist yields no violations.
    """
    if value is None:
        return []
    if not condition:
        return _flatten(value)
    narrowed = lookup(value, condition)
    if narrowed is MISSING:
        return []
    return _flatten(narrowed)


class RegoEvaluator:
    """Runs a Rego query through the ``opa`` CLI."""

    def __init__(
        self,
        bundle: str,
        query: str,
        condition: str = "",
        *,
        opa_path: str | None = None,
        run_command: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
        logger: Any = None,
    ) -> None:
        self.bundle = bundle
        self.query = query
        self.condition = condition
        self._opa_path = opa_path
        self._run_command = run_command
        self._log = logger or get_logger(__name__)

    def _opa(self) -> str:
        if self._opa_path:
            return self._opa_path
        found = shutil.which("opa")
        if found is None:
            raise PolicyEvaluationError("opa binary not found in PATH")
        return found

    def eval(self, input_document: Any) -> list[Any]:
        """Evaluate the query against ``input_document``.

        Raises:
            PolicyEvaluationError: If opa cannot run or its output is unreadable
        """
        self._log.info(
            "starting OPA policy evaluation",
            bundle=self.bundle,
            query=self.query,
            condition=self.condition,
        )
        command = [
            self._opa(),
            "eval",
            "--format",
            "json",
            "--data",
            self.bundle,
            "--stdin-input",
            self.query,
        ]
        try:
            completed = self._run_command(
                command,
                input=json.dumps(input_document),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise PolicyEvaluationError(f"failed to run opa: {e}") from e

        if completed.returncode != 0:
            self._log.error(
                "failed to evaluate OPA query",
                query=self.query,
                stderr=completed.stderr,
            )
            raise PolicyEvaluationError(
                f"failed to evaluate OPA query {self.query}: {completed.stderr.strip()}"
            )

        try:
            output = json.loads(completed.stdout or "{}")
        except json.JSONDecodeError as e:
            raise PolicyEvaluationError(f"unreadable opa output: {e}") from e

        violations: list[Any] = []
        for result in output.get("result", []):
            for expression in result.get("expressions", []):
                value = expression.get("value")
                if value is None:
                    continue
                violations.extend(filter_result(value, self.condition))

        self._log.info("OPA policy evaluation completed", violation_count=len(violations))
        return violations


class OpaValidator:
    """Validator adapter turning OPA violations into a ValidationResult.

    Example:
        validator = OpaValidator(
            OpaValidationSettings(bundle="policies/", query="data.terraform.deny")
        )
        result = validator.validate(plan_document)
    """

    name = "opa"

    def __init__(
        self,
        settings: OpaValidationSettings,
        *,
        evaluator: PolicyEvaluator | None = None,
        label: str | None = None,
        logger: Any = None,
    ) -> None:
        self.settings = settings
        self.label = label or f"opa-{settings.query}"
        self._log = logger or get_logger(__name__)
        self._evaluator = evaluator or RegoEvaluator(
            settings.bundle, settings.query, settings.condition, logger=self._log
        )

    @classmethod
    def from_settings(cls, settings: OpaValidationSettings, **kwargs: Any) -> "OpaValidator":
        return cls(settings, logger=kwargs.get("logger"))

    def validate(self, plan: dict[str, Any]) -> ValidationResult:
        """Evaluate the policy against a plan document.

        Raises:
            PolicyEvaluationError: If the policy could not be evaluated
        """
        self._log.info("starting OPA policy validation", validator=self.label)
        violations = self._evaluator.eval(plan)
        if not violations:
            return ValidationResult.success(self.label)

        failures = [self._to_failure(v, i) for i, v in enumerate(violations)]
        self._log.info(
            "OPA policy validation completed",
            validator=self.label,
            passed=False,
            violations=len(failures),
        )
        return ValidationResult.failed(failures, self.label)

    def _to_failure(self, violation: Any, index: int) -> ValidationFailure:
        kind = self.settings.query
        if isinstance(violation, str):
            message, location, details = violation, f"violation[{index}]", None
        elif isinstance(violation, dict):
            message = _first_text(violation, _MESSAGE_KEYS) or f"Policy violation: {violation}"
            location = _extract_location(violation)
            details = violation
        else:
            message = f"Policy violation: {violation}"
            location = f"violation[{index}]"
            details = {"raw_violation": violation}

        if not message:
            message = f"Policy violation {index + 1}"
        return ValidationFailure(kind=kind, message=message, location=location, details=details)


def _first_text(data: dict[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def _extract_location(violation: dict[str, Any]) -> str:
    location = _first_text(violation, _LOCATION_KEYS)
    if location:
        return location
    resource = violation.get("resource")
    action = violation.get("action")
    if isinstance(resource, str) and isinstance(action, str):
        return f"{resource}.{action}"
    return ""
