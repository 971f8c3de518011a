"""Validator adapters: judge a plan document before it is applied."""

from terraform_buildkite.plugins.validators.opa import (
    OpaValidator,
    PolicyEvaluator,
    RegoEvaluator,
    filter_result,
)

__all__ = ["OpaValidator", "PolicyEvaluator", "RegoEvaluator", "filter_result"]
