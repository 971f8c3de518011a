"""Environment variable helpers."""

import logging
import os
import re
from collections.abc import Mapping

from terraform_buildkite.core.logging import get_logger

logger = get_logger(__name__)

_TRUTHY = frozenset({"true", "1", "yes"})
_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|[^A-Za-z0-9]+")


def fetch_env(
    key: str, fallback: str, environ: Mapping[str, str] | None = None
) -> str:
    """Return the value of ``key``, or ``fallback`` when it is unset.

    A variable set to the empty string is returned as-is.
    """
    env = os.environ if environ is None else environ
    if key in env:
        return env[key]
    logger.debug("using fallback for unset environment variable", env=key)
    return fallback


def screaming_snake(value: str) -> str:
    """Convert ``terraform-buildkite-plugin`` to ``TERRAFORM_BUILDKITE_PLUGIN``."""
    parts = [p for p in _WORD_BOUNDARY.split(value) if p]
    return "_".join(p.upper() for p in parts)


def plugin_test_mode_variable(plugin_name: str) -> str:
    return f"BUILDKITE_PLUGIN_{screaming_snake(plugin_name)}_TEST_MODE"


def is_test_mode(plugin_name: str, environ: Mapping[str, str] | None = None) -> bool:
    """Whether the operator asked for a configuration dry run."""
    name = plugin_test_mode_variable(plugin_name)
    value = fetch_env(name, "false", environ)
    if value.strip().lower() in _TRUTHY:
        logger.debug("test mode is enabled", name=name, value=value)
        return True
    return False


def parse_log_level(
    env_var: str = "LOG_LEVEL",
    default: str = "debug",
    environ: Mapping[str, str] | None = None,
) -> int:
    """Resolve a stdlib level number from an environment variable.

    Unknown level names fall back to ``default``.
    """
    levels = logging.getLevelNamesMapping()
    raw = fetch_env(env_var, default, environ).strip().upper()
    if raw == "WARN":
        raw = "WARNING"
    if raw in levels:
        return levels[raw]
    logger.warning(
        "invalid log level, using default", value=raw, default=default
    )
    return levels[default.upper()]
