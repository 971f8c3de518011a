"""Core infrastructure: Configuration, Environment, Logging, Working directories."""

from terraform_buildkite.core.config import (
    PluginSettings,
    load_settings,
)
from terraform_buildkite.core.env import (
    fetch_env,
    is_test_mode,
    parse_log_level,
)
from terraform_buildkite.core.logging import (
    configure_logging,
    get_logger,
)
from terraform_buildkite.core.workingdir import (
    list_directories,
    partition,
    resolve,
)

__all__ = [
    "PluginSettings",
    "configure_logging",
    "fetch_env",
    "get_logger",
    "is_test_mode",
    "list_directories",
    "load_settings",
    "parse_log_level",
    "partition",
    "resolve",
]
