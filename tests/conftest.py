# tests/conftest.py
"""Shared test fixtures and fakes.

External processes (terraform, opa, buildkite-agent) never run in tests;
the fakes here stand in for them.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import json
import os
import subprocess
from typing import Any

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from terraform_buildkite.contracts import ValidationResult

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


PLUGIN_KEY = "github.com/org/terraform-buildkite-plugin#v1.0.0"


def plugins_env(fragment: Any, key: str = PLUGIN_KEY) -> str:
    """BUILDKITE_PLUGINS payload holding one plugin entry."""
    return json.dumps([{key: fragment}])


class RecordingCommand:
    """Stands in for subprocess.run, returning canned results in order."""

    def __init__(self, *results: tuple[int, str, str]) -> None:
        self._results = list(results) or [(0, "", "")]
        self.calls: list[dict[str, Any]] = []

    def __call__(self, command: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.calls.append({"command": command, **kwargs})
        returncode, stdout, stderr = (
            self._results.pop(0) if len(self._results) > 1 else self._results[0]
        )
        return subprocess.CompletedProcess(command, returncode, stdout, stderr)


class FakeTerraform:
    """In-memory TerraformRunner replacement.

    ``fail`` names the step that raises (init, plan, show, show_text, apply).
    """

    def __init__(
        self,
        *,
        has_changes: bool = True,
        plan: dict[str, Any] | None = None,
        plan_text: str = "Plan: 1 to add, 0 to change, 0 to destroy.",
        fail: str | None = None,
    ) -> None:
        self.has_changes = has_changes
        self.plan_document = plan if plan is not None else {"resource_changes": []}
        self.plan_text = plan_text
        self.fail = fail
        self.calls: list[tuple[str, Any]] = []

    def _step(self, name: str, arg: Any = None) -> None:
        self.calls.append((name, arg))
        if self.fail == name:
            raise RuntimeError(f"{name} exploded")

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def init(self, *, get_plugins: bool | None = None, plugin_dir: str | None = None) -> None:
        self._step("init", {"get_plugins": get_plugins, "plugin_dir": plugin_dir})

    def plan(self, out: str) -> bool:
        self._step("plan", out)
        return self.has_changes

    def show_plan_file(self, plan_file: str) -> dict[str, Any]:
        self._step("show", plan_file)
        return self.plan_document

    def show_plan_text(self, plan_file: str) -> str:
        self._step("show_text", plan_file)
        return self.plan_text

    def apply(self, plan_file: str) -> None:
        self._step("apply", plan_file)


class FakeValidator:
    """Validator returning a canned result (or raising) and counting calls."""

    name = "fake"

    def __init__(
        self, label: str, *, passed: bool = True, error: Exception | None = None
    ) -> None:
        self.label = label
        self.passed = passed
        self.error = error
        self.calls = 0

    def validate(self, plan: dict[str, Any]) -> ValidationResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.passed:
            return ValidationResult.success(self.label)
        from terraform_buildkite.contracts import ValidationFailure

        return ValidationResult.failed(
            [ValidationFailure(kind="fake", message=f"{self.label} objects")], self.label
        )


class RecordingOutputer:
    name = "recording"

    def __init__(self, *, error: Exception | None = None) -> None:
        self.events: list[Any] = []
        self.error = error

    def output(self, event: Any) -> None:
        self.events.append(event)
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_terraform() -> FakeTerraform:
    return FakeTerraform()


@pytest.fixture
def terraform_factory() -> type[FakeTerraform]:
    return FakeTerraform


@pytest.fixture
def validator_factory() -> type[FakeValidator]:
    return FakeValidator


@pytest.fixture
def recording_outputer() -> RecordingOutputer:
    return RecordingOutputer()


@pytest.fixture
def command_factory() -> type[RecordingCommand]:
    return RecordingCommand


@pytest.fixture
def plugins_payload() -> Any:
    """Builds a BUILDKITE_PLUGINS value from a plugin configuration fragment."""
    return plugins_env


@pytest.fixture(autouse=True)
def _reset_structlog() -> Any:
    """Undo configure_logging() calls so later tests never log to a closed stream."""
    yield
    structlog.reset_defaults()
