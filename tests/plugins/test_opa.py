# tests/plugins/test_opa.py
"""Tests for OPA policy evaluation and the OPA validator."""

import json
from typing import Any

import pytest


def _opa_output(*values: Any) -> str:
    return json.dumps({"result": [{"expressions": [{"value": v} for v in values]}]})


class TestFilterResult:
    @pytest.mark.parametrize(
        ("value", "condition", "expected"),
        [
            (["a", "b"], "", ["a", "b"]),
            ({"msg": "x"}, "", [{"msg": "x"}]),
            ({"violations": [{"msg": "x"}], "count": 1}, "violations", [{"msg": "x"}]),
            ({"violations": "single"}, "violations", ["single"]),
            ({"other": []}, "violations", []),
            ({"items": [{"v": "a"}, {"v": "b"}, {"x": 1}]}, "items.#.v", ["a", "b"]),
            ({"items": [{"v": "a"}, {"v": "b"}]}, "items.1.v", ["b"]),
            (None, "", []),
        ],
    )
    def test_filter(self, value: Any, condition: str, expected: list[Any]) -> None:
        from terraform_buildkite.plugins.validators.opa import filter_result

        assert filter_result(value, condition) == expected


class TestRegoEvaluator:
    def test_invokes_opa_eval_with_plan_on_stdin(self, command_factory: Any) -> None:
        from terraform_buildkite.plugins.validators.opa import RegoEvaluator

        command = command_factory((0, _opa_output(["no public buckets"]), ""))
        evaluator = RegoEvaluator(
            "policies/", "data.terraform.deny", opa_path="/usr/bin/opa", run_command=command
        )
        plan = {"resource_changes": [{"address": "aws_s3_bucket.logs"}]}

        assert evaluator.eval(plan) == ["no public buckets"]
        call = command.calls[0]
        assert call["command"] == [
            "/usr/bin/opa",
            "eval",
            "--format",
            "json",
            "--data",
            "policies/",
            "--stdin-input",
            "data.terraform.deny",
        ]
        assert json.loads(call["input"]) == plan

    def test_collects_every_expression(self, command_factory: Any) -> None:
        from terraform_buildkite.plugins.validators.opa import RegoEvaluator

        command = command_factory((0, _opa_output(["a"], None, "b"), ""))
        evaluator = RegoEvaluator("p/", "data.x", opa_path="opa", run_command=command)
        assert evaluator.eval({}) == ["a", "b"]

    def test_undefined_query(self, command_factory: Any) -> None:
        from terraform_buildkite.plugins.validators.opa import RegoEvaluator

        command = command_factory((0, "{}", ""))
        evaluator = RegoEvaluator("p/", "data.x", opa_path="opa", run_command=command)
        assert evaluator.eval({}) == []

    def test_condition_applied(self, command_factory: Any) -> None:
        from terraform_buildkite.plugins.validators.opa import RegoEvaluator

        value = {"violations": [{"msg": "one"}, {"msg": "two"}], "allowed": True}
        command = command_factory((0, _opa_output(value), ""))
        evaluator = RegoEvaluator("p/", "data.x", "violations", opa_path="opa", run_command=command)
        assert evaluator.eval({}) == [{"msg": "one"}, {"msg": "two"}]

    def test_opa_failure(self, command_factory: Any) -> None:
        from terraform_buildkite.contracts import PolicyEvaluationError
        from terraform_buildkite.plugins.validators.opa import RegoEvaluator

        command = command_factory((1, "", "rego_parse_error"))
        evaluator = RegoEvaluator("p/", "data.x", opa_path="opa", run_command=command)
        with pytest.raises(PolicyEvaluationError, match="rego_parse_error"):
            evaluator.eval({})

    def test_unreadable_output(self, command_factory: Any) -> None:
        from terraform_buildkite.contracts import PolicyEvaluationError
        from terraform_buildkite.plugins.validators.opa import RegoEvaluator

        command = command_factory((0, "<html>", ""))
        evaluator = RegoEvaluator("p/", "data.x", opa_path="opa", run_command=command)
        with pytest.raises(PolicyEvaluationError, match="unreadable opa output"):
            evaluator.eval({})

    def test_opa_not_installed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from terraform_buildkite.contracts import PolicyEvaluationError
        from terraform_buildkite.plugins.validators import opa

        monkeypatch.setattr(opa.shutil, "which", lambda name: None)
        with pytest.raises(PolicyEvaluationError, match="opa binary not found"):
            opa.RegoEvaluator("p/", "data.x").eval({})


class _StaticEvaluator:
    def __init__(self, violations: list[Any]) -> None:
        self.violations = violations

    def eval(self, input_document: Any) -> list[Any]:
        return self.violations


class TestOpaValidator:
    def _validator(self, violations: list[Any]) -> Any:
        from terraform_buildkite.core.config import OpaValidationSettings
        from terraform_buildkite.plugins.validators.opa import OpaValidator

        settings = OpaValidationSettings(bundle="policies/", query="data.terraform.deny")
        return OpaValidator(settings, evaluator=_StaticEvaluator(violations))

    def test_no_violations_passes(self) -> None:
        result = self._validator([]).validate({})
        assert result.passed
        assert result.validator == "opa-data.terraform.deny"

    def test_string_violation(self) -> None:
        result = self._validator(["buckets must be private"]).validate({})
        failure = result.failures[0]

        assert not result.passed
        assert failure.kind == "data.terraform.deny"
        assert failure.message == "buckets must be private"
        assert failure.location == "violation[0]"

    def test_structured_violation(self) -> None:
        violation = {"msg": "public bucket", "resource": "aws_s3_bucket.logs", "severity": "high"}
        failure = self._validator([violation]).validate({}).failures[0]

        assert failure.message == "public bucket"
        assert failure.location == "aws_s3_bucket.logs"
        assert failure.details == violation

    def test_message_key_precedence(self) -> None:
        violation = {"reason": "later", "description": "earlier", "path": "module.vpc"}
        failure = self._validator([violation]).validate({}).failures[0]

        assert failure.message == "earlier"
        assert failure.location == "module.vpc"

    def test_structured_violation_without_message(self) -> None:
        failure = self._validator([{"severity": "low"}]).validate({}).failures[0]
        assert failure.message.startswith("Policy violation: ")
        assert failure.location == ""

    def test_scalar_violation(self) -> None:
        failure = self._validator([42]).validate({}).failures[0]
        assert failure.message == "Policy violation: 42"
        assert failure.details == {"raw_violation": 42}

    def test_empty_message_gets_numbered(self) -> None:
        result = self._validator(["first", ""]).validate({})
        assert result.failures[1].message == "Policy violation 2"

    def test_one_failure_per_violation(self) -> None:
        result = self._validator(["a", "b", "c"]).validate({})
        assert [f.location for f in result.failures] == [
            "violation[0]",
            "violation[1]",
            "violation[2]",
        ]

    def test_evaluation_error_propagates(self) -> None:
        from terraform_buildkite.contracts import PolicyEvaluationError
        from terraform_buildkite.core.config import OpaValidationSettings
        from terraform_buildkite.plugins.validators.opa import OpaValidator

        class Failing:
            def eval(self, input_document: Any) -> list[Any]:
                raise PolicyEvaluationError("bundle not found")

        validator = OpaValidator(
            OpaValidationSettings(bundle="missing/", query="data.x"), evaluator=Failing()
        )
        with pytest.raises(PolicyEvaluationError):
            validator.validate({})
