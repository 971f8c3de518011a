# src/terraform_buildkite/engine/orchestrator.py
"""Orchestrator: runs the per-directory Terraform pipeline.

Init -> Plan -> Validate -> (Apply, apply mode only) -> Done

Stage failures never raise. Each directory produces exactly one
WorkspaceResult, and processing one directory never affects the next.
Outputers receive a StageEvent at every transition; their failures are
logged and never change the result.
"""

import os
from collections.abc import Callable, Sequence
from typing import Any, TextIO

from terraform_buildkite.contracts import (
    Mode,
    Stage,
    StageEvent,
    ValidationResult,
    WorkspaceResult,
    WorkspaceStage,
)
from terraform_buildkite.core.config import PluginSettings
from terraform_buildkite.core.logging import get_logger
from terraform_buildkite.engine.terraform import TerraformRunner, resolve_terraform_path
from terraform_buildkite.plugins.protocols import OutputerProtocol, ValidatorProtocol

PLAN_FILE_NAME = "plan.binary"

NO_CHANGES_MESSAGE = "no changes detected in the Terraform plan"

RunnerFactory = Callable[[str, str], TerraformRunner]
StageListener = Callable[[StageEvent], None]


class Orchestrator:
    """Runs init, plan, validation and apply for one directory at a time.

    The terraform executable is resolved once, at construction.

    Example:
        orchestrator = Orchestrator(settings, validators, outputers)
        result = orchestrator.run("/infra/blue")
        if not result.success:
            print(result.stage.value, result.error)

    Raises:
        TerraformNotFoundError: From the constructor, when no terraform
            executable is configured or on PATH
    """

    def __init__(
        self,
        settings: PluginSettings,
        validators: Sequence[ValidatorProtocol],
        outputers: Sequence[OutputerProtocol] = (),
        *,
        terraform_path: str | None = None,
        runner_factory: RunnerFactory | None = None,
        on_stage: StageListener | None = None,
        output: TextIO | None = None,
        logger: Any = None,
    ) -> None:
        self.settings = settings
        self._validators = list(validators)
        self._outputers = list(outputers)
        self._on_stage = on_stage
        self._output = output
        self._log = logger or get_logger(__name__)

        configured = terraform_path
        if not configured and settings.terraform is not None:
            configured = settings.terraform.exec_path
        self.exec_path = resolve_terraform_path(configured)
        self._runner_factory = runner_factory or self._default_runner
        self._log.debug("orchestrator created", terraform_exec_path=self.exec_path)

    def _default_runner(self, working_dir: str, exec_path: str) -> TerraformRunner:
        return TerraformRunner(working_dir, exec_path, output=self._output, logger=self._log)

    @property
    def has_listeners(self) -> bool:
        return bool(self._outputers) or self._on_stage is not None

    def run(self, working_dir: str) -> WorkspaceResult:
        """Process one directory according to the configured mode."""
        if self.settings.mode is Mode.APPLY:
            return self.apply(working_dir)
        return self.plan(working_dir)

    def plan(self, working_dir: str) -> WorkspaceResult:
        return self._pipeline(working_dir, Mode.PLAN)

    def apply(self, working_dir: str) -> WorkspaceResult:
        return self._pipeline(working_dir, Mode.APPLY)

    # === Pipeline ===

    def _pipeline(self, working_dir: str, mode: Mode) -> WorkspaceResult:
        log = self._log.bind(working_dir=working_dir, mode=mode.value)
        plan_file = os.path.join(working_dir, PLAN_FILE_NAME)
        runner = self._runner_factory(working_dir, self.exec_path)

        # Init
        init_options = self.settings.terraform.init_options if self.settings.terraform else None
        try:
            runner.init(
                get_plugins=init_options.get_plugins if init_options else None,
                plugin_dir=init_options.plugin_dir if init_options else None,
            )
        except Exception as e:
            log.error("terraform init failed", error=str(e))
            return self._finish(
                Stage.PLAN_FAILURE,
                mode,
                WorkspaceResult.failure(
                    WorkspaceStage.INITIALIZATION,
                    working_dir,
                    f"failed to run terraform init: {e}",
                ),
            )

        # Plan
        try:
            has_changes = runner.plan(plan_file)
        except Exception as e:
            log.error("terraform plan failed", plan_file=plan_file, error=str(e))
            return self._finish(
                Stage.PLAN_FAILURE,
                mode,
                WorkspaceResult.failure(
                    WorkspaceStage.PLANNING,
                    working_dir,
                    f"failed to run terraform plan: {e}",
                ),
            )

        if not has_changes:
            log.info("no changes detected, skipping validation and apply")
            return self._finish(
                Stage.PLAN_SUCCESS_NO_CHANGES,
                mode,
                WorkspaceResult.ok(WorkspaceStage.PLANNING, working_dir, NO_CHANGES_MESSAGE),
            )

        try:
            plan = runner.show_plan_file(plan_file)
        except Exception as e:
            log.error("failed to show terraform plan file", plan_file=plan_file, error=str(e))
            return self._finish(
                Stage.PLAN_FAILURE,
                mode,
                WorkspaceResult.failure(
                    WorkspaceStage.SHOWING_PLAN,
                    working_dir,
                    f"failed to show plan file: {e}",
                ),
            )

        plan_text = self._plan_text(runner, plan_file, log)
        self._emit(
            StageEvent(
                stage=Stage.PLAN_SUCCESS_WITH_CHANGES,
                working_dir=working_dir,
                mode=mode,
                plan=plan,
                plan_text=plan_text,
            )
        )

        # Validate
        results: list[ValidationResult] = []
        for validator in self._validators:
            label = getattr(validator, "label", validator.name)
            try:
                results.append(validator.validate(plan))
            except Exception as e:
                log.error("validator could not run", validator=label, error=str(e))
                return self._finish(
                    Stage.UNEXPECTED_FAILURE,
                    mode,
                    WorkspaceResult.failure(
                        WorkspaceStage.VALIDATION, working_dir, f"validation failed: {e}"
                    ),
                    plan=plan,
                    plan_text=plan_text,
                    validation_results=results,
                )

        failed = [r for r in results if not r.passed]
        if failed:
            for r in failed:
                for failure in r.failures:
                    log.warning(
                        "policy violation",
                        validator=r.validator,
                        kind=failure.kind,
                        message=failure.message,
                        location=failure.location,
                    )
            return self._finish(
                Stage.VALIDATION_FAILURE,
                mode,
                WorkspaceResult.failure(
                    WorkspaceStage.VALIDATION,
                    working_dir,
                    f"validation failed with {len(failed)} issues",
                ),
                plan=plan,
                plan_text=plan_text,
                validation_results=results,
            )

        if mode is Mode.PLAN:
            return self._finish(
                Stage.VALIDATION_SUCCESS,
                mode,
                WorkspaceResult.ok(WorkspaceStage.PLANNING, working_dir),
                plan=plan,
                plan_text=plan_text,
                validation_results=results,
            )

        self._emit(
            StageEvent(
                stage=Stage.VALIDATION_SUCCESS,
                working_dir=working_dir,
                mode=mode,
                plan=plan,
                plan_text=plan_text,
                validation_results=tuple(results),
            )
        )

        # Apply the reviewed plan file, never a fresh plan
        try:
            runner.apply(plan_file)
        except Exception as e:
            log.error("terraform apply failed", plan_file=plan_file, error=str(e))
            return self._finish(
                Stage.APPLY_FAILURE,
                mode,
                WorkspaceResult.failure(
                    WorkspaceStage.APPLYING,
                    working_dir,
                    f"failed to apply Terraform plan: {e}",
                ),
                plan=plan,
                plan_text=plan_text,
                validation_results=results,
            )

        return self._finish(
            Stage.APPLY_SUCCESS,
            mode,
            WorkspaceResult.ok(WorkspaceStage.APPLY, working_dir),
            plan=plan,
            plan_text=plan_text,
            validation_results=results,
        )

    # === Events ===

    def _plan_text(self, runner: TerraformRunner, plan_file: str, log: Any) -> str | None:
        if not self.has_listeners:
            return None
        try:
            return runner.show_plan_text(plan_file)
        except Exception as e:
            log.warning("failed to render plan text", plan_file=plan_file, error=str(e))
            return None

    def _finish(
        self,
        stage: Stage,
        mode: Mode,
        result: WorkspaceResult,
        *,
        plan: dict[str, Any] | None = None,
        plan_text: str | None = None,
        validation_results: Sequence[ValidationResult] = (),
    ) -> WorkspaceResult:
        self._emit(
            StageEvent(
                stage=stage,
                working_dir=result.working_dir,
                mode=mode,
                plan=plan,
                plan_text=plan_text,
                result=result,
                validation_results=tuple(validation_results),
                error=result.error,
            )
        )
        return result

    def _emit(self, event: StageEvent) -> None:
        if self._on_stage is not None:
            try:
                self._on_stage(event)
            except Exception as e:
                self._log.warning("stage listener failed", stage=event.stage.value, error=str(e))
        for outputer in self._outputers:
            try:
                outputer.output(event)
            except Exception as e:
                self._log.error(
                    "outputer failed",
                    outputer=outputer.name,
                    stage=event.stage.value,
                    working_dir=event.working_dir,
                    error=str(e),
                )
