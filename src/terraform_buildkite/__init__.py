"""Terraform Buildkite plugin: plan, validate and apply Terraform from CI."""

__version__ = "0.1.0"

PLUGIN_NAME = "terraform-buildkite-plugin"
