"""Tests for the buildkite-agent wrapper."""

from pathlib import Path
from typing import Any

import pytest


class TestAgent:
    def test_annotate_arguments(self, command_factory: Any) -> None:
        from terraform_buildkite.buildkite import Agent
        from terraform_buildkite.contracts import AnnotationStyle

        command = command_factory()
        Agent(run_command=command).annotate(
            "**ok**",
            style=AnnotationStyle.SUCCESS,
            context="tf-blue",
            artifact="plan.txt",
            append=True,
        )
        assert command.calls[0]["command"] == [
            "buildkite-agent",
            "annotate",
            "**ok**",
            "--style",
            "success",
            "--context",
            "tf-blue",
            "--artifact",
            "plan.txt",
            "--append",
        ]

    def test_annotate_defaults(self, command_factory: Any) -> None:
        from terraform_buildkite.buildkite import Agent

        command = command_factory()
        Agent(run_command=command).annotate("hello")
        assert command.calls[0]["command"] == [
            "buildkite-agent",
            "annotate",
            "hello",
            "--style",
            "info",
        ]

    def test_upload_pipeline(self, command_factory: Any) -> None:
        from terraform_buildkite.buildkite import Agent

        command = command_factory((0, "uploaded", ""))
        assert Agent(run_command=command).upload_pipeline("pipeline.yml") == "uploaded"
        assert command.calls[0]["command"] == [
            "buildkite-agent",
            "pipeline",
            "upload",
            "pipeline.yml",
        ]

    def test_non_zero_exit(self, command_factory: Any) -> None:
        from terraform_buildkite.buildkite import Agent
        from terraform_buildkite.contracts import AgentCommandError

        command = command_factory((1, "", "no agent token"))
        with pytest.raises(AgentCommandError, match="no agent token"):
            Agent(run_command=command).annotate("x")

    def test_binary_missing(self) -> None:
        from terraform_buildkite.buildkite import Agent
        from terraform_buildkite.contracts import AgentCommandError

        def missing(command: list[str], **kwargs: Any) -> Any:
            raise FileNotFoundError(command[0])

        with pytest.raises(AgentCommandError):
            Agent(run_command=missing).annotate("x")

    def test_annotate_with_template(self, tmp_path: Path, command_factory: Any) -> None:
        from terraform_buildkite.buildkite import Agent
        from terraform_buildkite.contracts import AnnotationStyle

        template = tmp_path / "t.md.j2"
        template.write_text("{{ workspace }} failed")
        command = command_factory()
        Agent(run_command=command).annotate_with_template(
            str(template), {"workspace": "blue"}, style=AnnotationStyle.ERROR
        )
        assert command.calls[0]["command"][2:5] == ["blue failed", "--style", "error"]
