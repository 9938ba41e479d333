"""TemplateRenderer: Jinja2 adapter that turns aggregated logs into an HTML body."""

import os
import logging

import jinja2

from logmailer.models import AggregatedLogEntry, RenderResult

logger = logging.getLogger(__name__)


class TemplateRenderer:
    """Renders the email body from a template compiled once at startup.

    Messages arrive already HTML-escaped, so autoescaping stays off.
    Undefined variables are strict: a template referencing something the
    renderer does not provide reports an error instead of rendering blanks.
    """

    def __init__(self, template_path: str):
        directory, name = os.path.split(os.path.abspath(template_path))
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(directory),
            autoescape=False,
            undefined=jinja2.StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Missing file or syntax error raises here and is fatal to startup
        self._template = self._env.get_template(name)
        logger.info("Compiled email template %s", template_path)

    def render(self, logs: list[AggregatedLogEntry]) -> RenderResult:
        context = [{"name": entry.label, "message": entry.escaped_message} for entry in logs]
        try:
            output = self._template.render(logs=context)
        except jinja2.TemplateError as e:
            return RenderResult(errors=[f"{type(e).__name__}: {e}"])
        return RenderResult(output=output)
