# src/terraform_buildkite/engine/handler.py
"""Execution handler: one plugin invocation from configuration to exit status."""

import os
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TextIO

from terraform_buildkite.buildkite import Agent, LogGroups
from terraform_buildkite.contracts import (
    ArtifactNotSupportedError,
    ConfigError,
    ExitStatus,
    StageEvent,
    TerraformNotFoundError,
    WorkspaceResult,
)
from terraform_buildkite.core.config import DEFAULT_PLUGINS_ENV, PluginSettings, load_settings
from terraform_buildkite.core.env import is_test_mode
from terraform_buildkite.core.logging import get_logger
from terraform_buildkite.core.workingdir import resolve
from terraform_buildkite.engine.orchestrator import Orchestrator, RunnerFactory
from terraform_buildkite.plugins.factory import to_outputers, to_validators
from terraform_buildkite.plugins.manager import PluginManager
from terraform_buildkite.plugins.protocols import OutputerProtocol, ValidatorProtocol

logger = get_logger(__name__)

SettingsLoader = Callable[..., PluginSettings]


@dataclass(frozen=True)
class PluginContext:
    """Identity of the running plugin."""

    name: str
    version: str


@dataclass(frozen=True)
class ParsedPayload:
    """Everything needed to run, resolved before any terraform process starts."""

    settings: PluginSettings
    validators: list[ValidatorProtocol] = field(default_factory=list)
    outputers: list[OutputerProtocol] = field(default_factory=list)
    working_directories: list[str] = field(default_factory=list)


class PluginInitiator:
    """Loads configuration and builds adapters and working directories."""

    def __init__(
        self,
        *,
        loader: SettingsLoader = load_settings,
        manager: PluginManager | None = None,
        agent: Agent | None = None,
        plugins_env: str = DEFAULT_PLUGINS_ENV,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._loader = loader
        self._manager = manager
        self._agent = agent
        self._plugins_env = plugins_env
        self._environ = environ

    def parse(self, plugin_name: str) -> ParsedPayload:
        """Resolve the whole invocation.

        Raises:
            ConfigError: Configuration or adapter problems
            ArtifactNotSupportedError: Artifact-based directory discovery
        """
        logger.info("loading and parsing plugin configuration")
        settings = self._loader(
            plugin_name, plugins_env=self._plugins_env, environ=self._environ
        )
        outputers = to_outputers(settings.outputs, agent=self._agent, manager=self._manager)
        validators = to_validators(settings.validations, manager=self._manager)
        directories = resolve(settings.working)
        logger.info("plugin configuration loaded and parsed successfully")
        return ParsedPayload(
            settings=settings,
            validators=validators,
            outputers=outputers,
            working_directories=directories,
        )


class Handler:
    """Runs every resolved working directory and maps the outcome to an exit status.

    Example:
        status = Handler().handle(PluginContext("terraform-buildkite-plugin", "1.0.0"))
        raise SystemExit(int(status))
    """

    def __init__(
        self,
        *,
        initiator: PluginInitiator | None = None,
        terraform_path: str | None = None,
        runner_factory: RunnerFactory | None = None,
        on_stage: Callable[[StageEvent], None] | None = None,
        groups: LogGroups | None = None,
        environ: Mapping[str, str] | None = None,
        stderr: TextIO | None = None,
        output: TextIO | None = None,
    ) -> None:
        self._initiator = initiator or PluginInitiator(environ=environ)
        self._terraform_path = terraform_path
        self._runner_factory = runner_factory
        self._on_stage = on_stage
        self._groups = groups or LogGroups()
        self._environ = environ
        self._stderr = stderr
        self._output = output

    def handle(self, context: PluginContext) -> ExitStatus:
        try:
            payload = self._initiator.parse(context.name)
        except (ConfigError, ArtifactNotSupportedError) as e:
            self._groups.open_current()
            logger.error("failed to initialize plugin", plugin=context.name, error=str(e))
            return ExitStatus.UNEXPECTED_FAILURE

        if is_test_mode(context.name, self._environ):
            stream = self._stderr or sys.stderr
            stream.write(
                payload.settings.model_dump_json(indent=2, exclude_none=True) + "\n"
            )
            logger.info("test mode is enabled, skipping plugin execution")
            return ExitStatus.TEST_MODE_EARLY_EXIT

        if not payload.working_directories:
            logger.warning("no working directories specified, skipping plugin execution")
            return ExitStatus.NO_WORKING_DIRECTORIES

        logger.info(
            "starting plugin execution across workspaces",
            workspaces=len(payload.working_directories),
        )
        try:
            orchestrator = Orchestrator(
                payload.settings,
                payload.validators,
                payload.outputers,
                terraform_path=self._terraform_path,
                runner_factory=self._runner_factory,
                on_stage=self._on_stage,
                output=self._output,
            )
        except TerraformNotFoundError as e:
            self._groups.open_current()
            logger.error("failed to create orchestrator", error=str(e))
            return ExitStatus.UNEXPECTED_FAILURE

        failures: list[WorkspaceResult] = []
        for working_dir in payload.working_directories:
            workspace = os.path.basename(working_dir)
            self._groups.closed(f"terraform {payload.settings.mode.value}: {workspace}")
            logger.info("running orchestrator for workspace", workspace=workspace)
            result = orchestrator.run(working_dir)
            if result.success:
                logger.info("workspace execution succeeded", workspace=workspace)
            else:
                self._groups.open_current()
                logger.warning("workspace execution failed", workspace=workspace)
                failures.append(result)

        if failures:
            logger.error("plugin execution failed in some workspaces", failures=len(failures))
            for failure in failures:
                logger.error("workspace execution failure", workspace=failure.to_dict())
            return ExitStatus.HANDLED_FAILURE

        logger.info("plugin execution completed successfully across all workspaces")
        return ExitStatus.SUCCESS
