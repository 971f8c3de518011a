# src/terraform_buildkite/plugins/outputs/templates.py
"""Jinja2-based annotation templating."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import StrictUndefined, TemplateSyntaxError, UndefinedError
from jinja2.exceptions import SecurityError
from jinja2.sandbox import SandboxedEnvironment

from terraform_buildkite.contracts import TemplateError


class AnnotationTemplate:
    """Jinja2 template for annotation bodies.

    Uses sandboxed environment to prevent dangerous operations.

    Example:
        template = AnnotationTemplate('''
            ### {{ workspace }}: {{ stage }}
            {% if error %}`{{ error }}`{% endif %}
        ''')

        body = template.render(workspace="blue", stage="plan_failure", error="boom")
    """

    def __init__(self, template_string: str, *, source: str | None = None) -> None:
        """Initialize template.

        Args:
            template_string: Jinja2 template string
            source: File the template was read from, for error messages

        Raises:
            TemplateError: If template syntax is invalid
        """
        self._template_string = template_string
        self._source = source

        self._env = SandboxedEnvironment(
            undefined=StrictUndefined,  # Raise on undefined variables
            autoescape=False,  # Annotations are Markdown, not HTML
            keep_trailing_newline=True,
        )

        try:
            self._template = self._env.from_string(template_string)
        except TemplateSyntaxError as e:
            where = f" in {source}" if source else ""
            raise TemplateError(f"Invalid template syntax{where}: {e}") from e

    @classmethod
    def from_file(cls, path: str | Path) -> AnnotationTemplate:
        """Load a template from a file.

        Raises:
            TemplateError: If the file cannot be read or parsed
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateError(f"Cannot read template {path}: {e}") from e
        return cls(text, source=str(path))

    @property
    def source(self) -> str | None:
        return self._source

    def render(self, **variables: Any) -> str:
        """Render template with variables.

        Raises:
            TemplateError: If rendering fails (undefined variable, sandbox violation, etc.)
        """
        try:
            return self._template.render(**variables)
        except UndefinedError as e:
            raise TemplateError(f"Undefined variable: {e}") from e
        except SecurityError as e:
            raise TemplateError(f"Sandbox violation: {e}") from e
        except Exception as e:
            raise TemplateError(f"Template rendering failed: {e}") from e


def render_template_file(path: str | Path, **variables: Any) -> str:
    """Load and render a template file in one step."""
    return AnnotationTemplate.from_file(path).render(**variables)
