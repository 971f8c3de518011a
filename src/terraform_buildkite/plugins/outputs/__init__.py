"""Output adapters: publish stage transitions.

Import the annotator from ``terraform_buildkite.plugins.outputs.annotator``;
it is not re-exported here because the agent wrapper depends on the
template module in this package.
"""

from terraform_buildkite.plugins.outputs.templates import (
    AnnotationTemplate,
    render_template_file,
)

__all__ = ["AnnotationTemplate", "render_template_file"]
