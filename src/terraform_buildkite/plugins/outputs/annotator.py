# src/terraform_buildkite/plugins/outputs/annotator.py
"""Buildkite annotation outputer.

Each stage transition renders the configured template into an annotation.
Template variables, from lowest to highest precedence:

- event data (``stage``, ``style``, ``mode``, ``working_dir``, ``workspace``,
  ``plan``, ``plan_text``, ``result``, ``error``, ``validation_results``)
- static ``vars`` (also available as the ``vars`` mapping)
- ``computed_vars`` (also available as the ``computed`` mapping)

The annotation context label is itself rendered as a template, so
``terraform-{{ workspace }}`` gives each directory its own annotation.
"""

import json
import re
from typing import Any

from terraform_buildkite.buildkite.agent import Agent
from terraform_buildkite.contracts import StageEvent
from terraform_buildkite.core.config import BuildkiteAnnotationSettings, ComputedVarSettings
from terraform_buildkite.core.logging import get_logger
from terraform_buildkite.core.paths import MISSING, lookup
from terraform_buildkite.plugins.outputs.templates import AnnotationTemplate


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def compute_var(spec: ComputedVarSettings, context: dict[str, Any]) -> str:
    """Extract one computed variable from the render context.

    Missing sources and non-matching patterns produce an empty string.
    With a pattern, the first capture group is used when the pattern has
    one, otherwise the whole match.
    """
    value = lookup(context, spec.source)
    if value is MISSING:
        return ""
    text = _as_text(value)
    if not spec.regex:
        return text
    match = re.search(spec.regex, text)
    if match is None:
        return ""
    if match.re.groups:
        return match.group(1) or ""
    return match.group(0)


class BuildkiteAnnotator:
    """Outputer creating Buildkite annotations from a Jinja2 template."""

    name = "buildkite_annotation"

    def __init__(
        self,
        settings: BuildkiteAnnotationSettings,
        *,
        agent: Agent | None = None,
        logger: Any = None,
    ) -> None:
        self.settings = settings
        self._agent = agent or Agent()
        self._log = logger or get_logger(__name__)

    @classmethod
    def from_settings(
        cls, settings: BuildkiteAnnotationSettings, **kwargs: Any
    ) -> "BuildkiteAnnotator":
        return cls(settings, agent=kwargs.get("agent"), logger=kwargs.get("logger"))

    def build_context(self, event: StageEvent) -> dict[str, Any]:
        context = event.to_template_data()

        static: dict[str, str] = {}
        for entry in self.settings.vars:
            static.update(entry)
        context.update(static)
        context["vars"] = static

        computed: dict[str, str] = {}
        for spec in self.settings.computed_vars:
            computed[spec.name] = compute_var(spec, context)
            if not computed[spec.name]:
                self._log.debug("computed variable is empty", name=spec.name, source=spec.source)
        context.update(computed)
        context["computed"] = computed
        return context

    def output(self, event: StageEvent) -> None:
        """Render the template for ``event`` and publish the annotation.

        Raises:
            TemplateError: If the template or context label cannot be rendered
            AgentCommandError: If buildkite-agent fails
        """
        context = self.build_context(event)
        label = ""
        if self.settings.context:
            label = AnnotationTemplate(self.settings.context).render(**context).strip()

        self._log.info(
            "creating annotation",
            stage=event.stage.value,
            working_dir=event.working_dir,
            context=label,
        )
        self._agent.annotate_with_template(
            self.settings.template,
            context,
            style=event.stage.to_annotation_style(),
            context=label,
        )
