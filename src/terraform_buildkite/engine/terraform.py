"""Terraform subprocess runner bound to one working directory."""

import json
import shutil
import subprocess
import sys
from collections.abc import Callable
from typing import Any, TextIO

from terraform_buildkite.contracts import TerraformCommandError, TerraformNotFoundError
from terraform_buildkite.core.logging import get_logger

CommandRunner = Callable[..., subprocess.CompletedProcess[str]]

# Exit codes of `terraform plan -detailed-exitcode`
PLAN_NO_CHANGES = 0
PLAN_HAS_CHANGES = 2


def resolve_terraform_path(configured: str | None = None) -> str:
    """Locate the terraform executable.

    An explicitly configured path wins, otherwise the first ``terraform`` on
    PATH is used.

    Raises:
        TerraformNotFoundError: If no executable can be found
    """
    if configured:
        return configured
    found = shutil.which("terraform")
    if found is None:
        raise TerraformNotFoundError("terraform executable not found in PATH")
    return found


class TerraformRunner:
    """Runs terraform subcommands inside one working directory.

    Example:
        runner = TerraformRunner("/infra/blue", "/usr/bin/terraform")
        runner.init()
        if runner.plan("plan.binary"):
            document = runner.show_plan_file("plan.binary")
    """

    def __init__(
        self,
        working_dir: str,
        exec_path: str,
        *,
        run_command: CommandRunner = subprocess.run,
        output: TextIO | None = None,
        logger: Any = None,
    ) -> None:
        self.working_dir = working_dir
        self.exec_path = exec_path
        self._run_command = run_command
        self._output = output
        self._log = logger or get_logger(__name__)

    def _execute(
        self, args: list[str], *, accept: tuple[int, ...] = (0,), echo: bool = True
    ) -> subprocess.CompletedProcess[str]:
        command = [self.exec_path, *args]
        self._log.debug("running terraform", args=args, working_dir=self.working_dir)
        try:
            completed = self._run_command(
                command,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise TerraformCommandError(command, None, message=f"could not start terraform: {e}") from e

        if echo and completed.stdout:
            stream = self._output or sys.stdout
            stream.write(completed.stdout)
            stream.flush()

        if completed.returncode not in accept:
            raise TerraformCommandError(command, completed.returncode, completed.stderr or "")
        return completed

    def init(self, *, get_plugins: bool | None = None, plugin_dir: str | None = None) -> None:
        args = ["init", "-no-color", "-input=false"]
        if get_plugins is not None:
            args.append(f"-get={'true' if get_plugins else 'false'}")
        if plugin_dir:
            args.append(f"-plugin-dir={plugin_dir}")
        self._execute(args)

    def plan(self, out: str) -> bool:
        """Write a binary plan to ``out``; return True when it has changes."""
        completed = self._execute(
            ["plan", "-no-color", "-input=false", "-detailed-exitcode", f"-out={out}"],
            accept=(PLAN_NO_CHANGES, PLAN_HAS_CHANGES),
        )
        return completed.returncode == PLAN_HAS_CHANGES

    def show_plan_file(self, plan_file: str) -> dict[str, Any]:
        """Machine-readable representation of a binary plan."""
        completed = self._execute(["show", "-json", "-no-color", plan_file], echo=False)
        try:
            document = json.loads(completed.stdout)
        except json.JSONDecodeError as e:
            raise TerraformCommandError(
                [self.exec_path, "show"], completed.returncode, message=f"invalid plan JSON: {e}"
            ) from e
        if not isinstance(document, dict):
            raise TerraformCommandError(
                [self.exec_path, "show"], completed.returncode, message="plan JSON is not an object"
            )
        return document

    def show_plan_text(self, plan_file: str) -> str:
        """Human-readable rendering of a binary plan."""
        return self._execute(["show", "-no-color", plan_file], echo=False).stdout

    def apply(self, plan_file: str) -> None:
        self._execute(["apply", "-no-color", "-input=false", "-auto-approve", plan_file])
