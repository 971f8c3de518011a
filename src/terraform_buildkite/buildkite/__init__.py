"""Buildkite integration: agent CLI wrapper and log groups."""

from terraform_buildkite.buildkite.agent import Agent
from terraform_buildkite.buildkite.groups import LogGroups

__all__ = ["Agent", "LogGroups"]
