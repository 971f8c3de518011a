# src/terraform_buildkite/core/config.py
"""
Configuration schema and loading for the Terraform Buildkite plugin.

Uses Pydantic for validation. The plugin configuration arrives as one entry
of the BUILDKITE_PLUGINS JSON array and is overlaid onto a baseline built
from Buildkite environment variables. Settings are frozen (immutable) after
construction.
"""

import json
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from terraform_buildkite.contracts import ConfigError, Mode
from terraform_buildkite.core.env import fetch_env
from terraform_buildkite.core.logging import get_logger

DEFAULT_PLUGINS_ENV = "BUILDKITE_PLUGINS"
PARALLEL_JOB_ENV = "BUILDKITE_PARALLEL_JOB"
PARALLEL_JOB_COUNT_ENV = "BUILDKITE_PARALLEL_JOB_COUNT"


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _compile_pattern(v: str, what: str) -> str:
    try:
        re.compile(v)
    except re.error as e:
        raise ValueError(f"Invalid {what} {v!r}: {e}") from e
    return v


class ParallelismSettings(BaseModel):
    """Buildkite parallel job context.

    Normally populated from BUILDKITE_PARALLEL_JOB and
    BUILDKITE_PARALLEL_JOB_COUNT rather than JSON. Both values are set
    together or not at all.
    """

    model_config = {"frozen": True}

    parallel_job: int | None = Field(
        default=None,
        ge=0,
        description="Zero-based index of this parallel job",
    )
    parallel_job_count: int | None = Field(
        default=None,
        ge=1,
        description="Total number of parallel jobs",
    )

    @model_validator(mode="after")
    def validate_job_pair(self) -> "ParallelismSettings":
        """Both-or-neither, and the index must fall inside the job count."""
        if (self.parallel_job is None) != (self.parallel_job_count is None):
            raise ValueError(
                "parallel_job and parallel_job_count must be set together"
            )
        if (
            self.parallel_job is not None
            and self.parallel_job_count is not None
            and self.parallel_job >= self.parallel_job_count
        ):
            raise ValueError(
                f"parallel_job ({self.parallel_job}) must be less than "
                f"parallel_job_count ({self.parallel_job_count})"
            )
        return self

    @property
    def is_set(self) -> bool:
        return self.parallel_job is not None and self.parallel_job_count is not None


class DirectoriesSettings(BaseModel):
    """Discovery of several working directories.

    Exactly one of parent_directory (list its subdirectories) or artifact
    (extract from a build artifact) is set.

    Example JSON:
        "directories": {
          "parent_directory": "infra/stacks",
          "name_regex": "^(blue|green)$"
        }
    """

    model_config = {"frozen": True}

    parent_directory: str | None = Field(
        default=None,
        description="Directory whose immediate subdirectories are working directories",
    )
    artifact: str | None = Field(
        default=None,
        description="Artifact containing Terraform configurations",
    )
    name_regex: str = Field(
        default="",
        description="Filter applied to subdirectory base names (search semantics)",
    )

    @field_validator("parent_directory", "artifact", mode="before")
    @classmethod
    def normalise_blank(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("parent_directory")
    @classmethod
    def validate_parent_is_directory(cls, v: str | None) -> str | None:
        if v is not None and not Path(v).is_dir():
            raise ValueError(f"parent_directory {v!r} is not a directory")
        return v

    @field_validator("artifact")
    @classmethod
    def validate_artifact_is_file(cls, v: str | None) -> str | None:
        if v is not None and not Path(v).is_file():
            raise ValueError(f"artifact {v!r} is not a file")
        return v

    @field_validator("name_regex")
    @classmethod
    def validate_name_regex(cls, v: str) -> str:
        """Validate the pattern compiles at config time."""
        return _compile_pattern(v, "name_regex")

    @model_validator(mode="after")
    def validate_exactly_one_source(self) -> "DirectoriesSettings":
        if self.parent_directory is not None and self.artifact is not None:
            raise ValueError("parent_directory and artifact are mutually exclusive")
        if self.parent_directory is None and self.artifact is None:
            raise ValueError("one of parent_directory or artifact is required")
        return self


class WorkingSettings(BaseModel):
    """Where the Terraform root modules live.

    Exactly one of directory (a single root module) or directories
    (discovery) is set. Parallelism is optional and usually comes from the
    environment.
    """

    model_config = {"frozen": True}

    directory: str | None = Field(
        default=None,
        description="Single working directory path",
    )
    directories: DirectoriesSettings | None = Field(
        default=None,
        description="Configuration for multiple working directories",
    )
    parallelism: ParallelismSettings | None = Field(
        default=None,
        description="Buildkite parallel job context",
    )

    @field_validator("directory", mode="before")
    @classmethod
    def normalise_blank(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("directory")
    @classmethod
    def validate_directory_exists(cls, v: str | None) -> str | None:
        if v is not None and not Path(v).is_dir():
            raise ValueError(f"directory {v!r} is not a directory")
        return v

    @model_validator(mode="after")
    def validate_exactly_one_target(self) -> "WorkingSettings":
        if self.directory is not None and self.directories is not None:
            raise ValueError("directory and directories are mutually exclusive")
        if self.directory is None and self.directories is None:
            raise ValueError("one of directory or directories is required")
        return self


class TerraformInitSettings(BaseModel):
    """Options for ``terraform init``."""

    model_config = {"frozen": True}

    plugin_dir: str | None = Field(
        default=None,
        description="Directory containing Terraform provider plugins",
    )
    get_plugins: bool | None = Field(
        default=None,
        description="Whether terraform init downloads modules (-get)",
    )

    @field_validator("plugin_dir")
    @classmethod
    def validate_plugin_dir(cls, v: str | None) -> str | None:
        if v is not None and not Path(v).is_dir():
            raise ValueError(f"plugin_dir {v!r} is not a directory")
        return v


class TerraformSettings(BaseModel):
    """Terraform execution options."""

    model_config = {"frozen": True}

    exec_path: str | None = Field(
        default=None,
        description="Path to the terraform executable (defaults to a PATH lookup)",
    )
    init_options: TerraformInitSettings | None = Field(
        default=None,
        description="Options for the terraform init command",
    )

    @field_validator("exec_path")
    @classmethod
    def validate_exec_path(cls, v: str | None) -> str | None:
        if v is not None and not Path(v).is_file():
            raise ValueError(f"exec_path {v!r} is not a file")
        return v


class OpaValidationSettings(BaseModel):
    """Open Policy Agent validation of the plan.

    Example JSON:
        "opa": {
          "bundle": "policies/",
          "query": "data.terraform.deny",
          "condition": "violations"
        }
    """

    model_config = {"frozen": True}

    bundle: str = Field(min_length=1, description="Policy bundle path or URL")
    query: str = Field(min_length=1, description="Rego query to evaluate")
    condition: str = Field(
        default="",
        description="Path narrowing each query result to its violations",
    )


class ValidationSettings(BaseModel):
    """One validation entry. Exactly one discriminant is populated."""

    model_config = {"frozen": True}

    DISCRIMINANTS: ClassVar[tuple[str, ...]] = ("opa",)

    opa: OpaValidationSettings | None = Field(
        default=None,
        description="OPA (Open Policy Agent) validation configuration",
    )

    @model_validator(mode="after")
    def validate_single_kind(self) -> "ValidationSettings":
        populated = [k for k in self.DISCRIMINANTS if getattr(self, k) is not None]
        if len(populated) > 1:
            raise ValueError(f"only one validation kind may be set, got {populated}")
        return self

    @property
    def kind(self) -> str | None:
        """Name of the populated discriminant, or None."""
        for name in self.DISCRIMINANTS:
            if getattr(self, name) is not None:
                return name
        return None


class ComputedVarSettings(BaseModel):
    """A template variable extracted from the render context by regex."""

    model_config = {"frozen": True, "populate_by_name": True}

    name: str = Field(min_length=1, description="Variable name used in templates")
    source: str = Field(
        alias="from",
        description="Dotted path into the render context",
    )
    regex: str = Field(
        default="",
        description="Pattern applied to the source value; group 1 wins if present",
    )

    @field_validator("regex")
    @classmethod
    def validate_regex(cls, v: str) -> str:
        return _compile_pattern(v, "regex")


class BuildkiteAnnotationSettings(BaseModel):
    """Render a template into a Buildkite annotation."""

    model_config = {"frozen": True}

    template: str = Field(min_length=1, description="Path to a Jinja2 template file")
    context: str = Field(default="", description="Annotation context label")
    vars: list[dict[str, str]] = Field(
        default_factory=list,
        description="Static template variables",
    )
    computed_vars: list[ComputedVarSettings] = Field(
        default_factory=list,
        description="Variables computed from the render context",
    )


class OutputSettings(BaseModel):
    """One output entry. Exactly one discriminant is populated."""

    model_config = {"frozen": True}

    DISCRIMINANTS: ClassVar[tuple[str, ...]] = ("buildkite_annotation",)

    buildkite_annotation: BuildkiteAnnotationSettings | None = Field(
        default=None,
        description="Buildkite annotation configuration",
    )

    @model_validator(mode="after")
    def validate_single_kind(self) -> "OutputSettings":
        populated = [k for k in self.DISCRIMINANTS if getattr(self, k) is not None]
        if len(populated) > 1:
            raise ValueError(f"only one output kind may be set, got {populated}")
        return self

    @property
    def kind(self) -> str | None:
        for name in self.DISCRIMINANTS:
            if getattr(self, name) is not None:
                return name
        return None


class PluginSettings(BaseModel):
    """Resolved configuration for one plugin invocation.

    This is the single source of truth for what the plugin does.
    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    mode: Mode = Field(description="Operation mode (plan or apply)")
    working: WorkingSettings | None = Field(
        default=None,
        description="Working directories containing Terraform configurations",
    )
    terraform: TerraformSettings | None = Field(
        default=None,
        description="Terraform execution options",
    )
    validations: list[ValidationSettings] = Field(
        default_factory=list,
        description="Ordered list of plan validations",
    )
    outputs: list[OutputSettings] = Field(
        default_factory=list,
        description="Ordered list of result outputs",
    )


# === Loading ===

logger = get_logger(__name__)


def get_plugin_name(reference: str) -> str:
    """Extract the repository name from a plugin reference.

    ``github.com/org/terraform-buildkite-plugin#v1.0.0`` becomes
    ``terraform-buildkite-plugin``. References that cannot be parsed are
    returned unchanged.
    """
    ref = reference
    if ref.startswith("github.com/") and "://" not in ref:
        ref = "https://" + ref
    try:
        parsed = urlparse(ref)
    except ValueError:
        logger.debug("failed to parse plugin reference as URL", input=reference)
        return reference
    return parsed.path.rsplit("/", 1)[-1]


def parse_plugins(raw: str) -> list[dict[str, Any]]:
    """Parse the BUILDKITE_PLUGINS payload into a list of one-key objects.

    Raises:
        ConfigError: If the payload is not a JSON array of objects
    """
    try:
        entries = json.loads(raw)
    except json.JSONDecodeError:
        logger.error("failed to unmarshal plugin configuration JSON")
        raise ConfigError("failed to parse plugin configuration") from None
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        logger.error("plugin configuration is not an array of objects")
        raise ConfigError("failed to parse plugin configuration")
    return entries


def find_plugin_config(
    entries: list[dict[str, Any]], plugin_name: str
) -> dict[str, Any]:
    """Return the first plugin fragment whose name starts with plugin_name.

    Raises:
        ConfigError: If no entry matches, or the matched value is not an object
    """
    for entry in entries:
        for key, fragment in entry.items():
            if get_plugin_name(key).startswith(plugin_name):
                logger.debug("found matching plugin configuration", matched_key=key)
                if fragment is None:
                    return {}
                if not isinstance(fragment, dict):
                    raise ConfigError("failed to parse plugin configuration")
                return fragment
    logger.error("could not find matching plugin configuration", plugin=plugin_name)
    raise ConfigError("could not initialize plugin")


def _env_int(environ: Mapping[str, str], key: str) -> int | None:
    value = environ.get(key, "")
    if not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        logger.error("environment variable is not an integer", env=key)
        raise ConfigError("failed to parse environment variables") from None


def environment_defaults(environ: Mapping[str, str]) -> dict[str, Any]:
    """Build the configuration baseline from Buildkite environment variables."""
    parallelism: dict[str, Any] = {}
    job = _env_int(environ, PARALLEL_JOB_ENV)
    count = _env_int(environ, PARALLEL_JOB_COUNT_ENV)
    if job is not None:
        parallelism["parallel_job"] = job
    if count is not None:
        parallelism["parallel_job_count"] = count
    if not parallelism:
        return {}
    return {"working": {"parallelism": parallelism}}


def deep_merge(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay ``overlay`` onto ``base`` recursively.

    Objects merge key by key; any other overlay value (including None)
    replaces the base value. Neither input is modified.
    """
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def load_settings(
    plugin_name: str,
    *,
    plugins_env: str = DEFAULT_PLUGINS_ENV,
    environ: Mapping[str, str] | None = None,
) -> PluginSettings:
    """Load, merge and validate the configuration of one plugin.

    Precedence:
    1. JSON fragment from the plugins variable - highest priority
    2. Buildkite environment variables (parallel job index/count)
    3. Defaults from the Pydantic schema - lowest priority

    Args:
        plugin_name: Prefix of the plugin repository name to look up
        plugins_env: Environment variable holding the plugins JSON array
        environ: Environment mapping (os.environ by default)

    Returns:
        Validated PluginSettings instance

    Raises:
        ConfigError: With a generic message for every failure category
    """
    env = os.environ if environ is None else environ
    logger.debug("initializing plugin configuration", plugin=plugin_name)

    entries = parse_plugins(fetch_env(plugins_env, "", env))
    fragment = find_plugin_config(entries, plugin_name)

    baseline = environment_defaults(env)
    merged = deep_merge(baseline, fragment)
    if "working" not in fragment:
        # Parallelism alone names no directories to partition.
        merged.pop("working", None)

    try:
        settings = PluginSettings.model_validate(merged)
    except ValidationError as e:
        errors = e.errors(include_url=False)
        for error in errors:
            loc = ".".join(str(x) for x in error["loc"])
            logger.error("plugin validation failed", location=loc, reason=error["msg"])
        raise ConfigError("failed to validate config", details=errors) from None

    logger.info("plugin initialized successfully", plugin=plugin_name)
    logger.debug(
        "plugin configuration details",
        plugin=settings.model_dump(mode="json", exclude_none=True),
    )
    return settings
