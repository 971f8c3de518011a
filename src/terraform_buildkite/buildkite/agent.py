"""Thin wrapper over the ``buildkite-agent`` CLI.

The command runner is injectable so tests never spawn the real agent.
"""

import subprocess
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from terraform_buildkite.contracts import AgentCommandError, AnnotationStyle
from terraform_buildkite.core.logging import get_logger
from terraform_buildkite.plugins.outputs.templates import render_template_file

# Signature-compatible with subprocess.run for the arguments we pass
CommandRunner = Callable[..., subprocess.CompletedProcess[str]]

AGENT_BINARY = "buildkite-agent"


class Agent:
    """Uploads pipelines and creates annotations through buildkite-agent.

    Usage:
        agent = Agent()
        agent.annotate("**Plan OK**", style=AnnotationStyle.SUCCESS, context="tf-blue")
    """

    def __init__(
        self,
        *,
        run_command: CommandRunner = subprocess.run,
        binary: str = AGENT_BINARY,
        logger: Any = None,
    ) -> None:
        self._run_command = run_command
        self._binary = binary
        self._log = logger or get_logger(__name__)

    def _run(self, args: Sequence[str]) -> str:
        command = [self._binary, *args]
        self._log.debug("executing command", command=command[0], args=list(args))
        try:
            completed = self._run_command(
                command,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            self._log.error("command could not be started", command=command[0], error=str(e))
            raise AgentCommandError(f"command `{self._binary}` failed: {e}") from e

        if completed.returncode != 0:
            self._log.error(
                "command execution failed",
                command=command[0],
                args=list(args),
                returncode=completed.returncode,
                stderr=completed.stderr,
            )
            raise AgentCommandError(
                f"command `{self._binary}` failed with exit code "
                f"{completed.returncode}: {completed.stderr}"
            )
        return completed.stdout

    def upload_pipeline(self, pipeline: str) -> str:
        """Upload a pipeline definition file to the running build."""
        return self._run(["pipeline", "upload", pipeline])

    def annotate(
        self,
        message: str,
        *,
        style: AnnotationStyle = AnnotationStyle.INFO,
        context: str = "",
        artifact: str = "",
        append: bool = False,
    ) -> str:
        """Create or replace (or, with ``append``, extend) a build annotation."""
        args = ["annotate", message, "--style", AnnotationStyle(style).value]
        if context:
            args.extend(["--context", context])
        if artifact:
            args.extend(["--artifact", artifact])
        if append:
            args.append("--append")
        return self._run(args)

    def annotate_with_template(
        self,
        template_path: str,
        data: Mapping[str, Any],
        *,
        style: AnnotationStyle = AnnotationStyle.INFO,
        context: str = "",
        artifact: str = "",
        append: bool = False,
    ) -> str:
        """Render a template file with ``data`` and annotate with the result.

        Raises:
            TemplateError: If the template cannot be loaded or rendered
            AgentCommandError: If buildkite-agent fails
        """
        self._log.info("rendering annotation template", template=template_path)
        message = render_template_file(template_path, **data)
        return self.annotate(
            message, style=style, context=context, artifact=artifact, append=append
        )
