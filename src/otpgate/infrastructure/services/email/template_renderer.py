"""Sandboxed Jinja2 rendering for the built-in email templates."""

from typing import NamedTuple

from jinja2 import StrictUndefined, Template, TemplateSyntaxError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment

from otpgate.core.logging import get_logger
from otpgate.infrastructure.services.email.templates import EmailTemplate

logger = get_logger(__name__)


class RenderedMessage(NamedTuple):
    subject: str
    html_body: str
    text_body: str


class TemplateRenderer:
    """Renders ``EmailTemplate`` triples.

    The HTML body is autoescaped; subject and text body are not. Templates
    run in a sandbox and any undefined variable is an error.
    """

    def __init__(self) -> None:
        options = {
            "trim_blocks": True,
            "lstrip_blocks": True,
            "undefined": StrictUndefined,
        }
        self._html_env = SandboxedEnvironment(autoescape=True, **options)
        self._text_env = SandboxedEnvironment(autoescape=False, **options)
        self._compiled: dict[tuple[bool, str], Template] = {}

    def render(self, template_string: str, variables: dict[str, str], html: bool = True) -> str:
        """Render a single template string.

        Raises:
            TemplateSyntaxError: If template syntax is invalid.
            UndefinedError: If a referenced variable is missing.
        """
        try:
            return self._compile(template_string, html).render(**variables)
        except TemplateSyntaxError as e:
            logger.error("Template syntax error", error=str(e), line=e.lineno)
            raise
        except UndefinedError as e:
            logger.error("Undefined variable in template", error=str(e))
            raise

    def render_message(self, template: EmailTemplate, variables: dict[str, str]) -> RenderedMessage:
        """Render subject, HTML body and text body of a template."""
        return RenderedMessage(
            subject=self.render(template.subject, variables, html=False).strip(),
            html_body=self.render(template.html_body, variables, html=True),
            text_body=self.render(template.text_body, variables, html=False),
        )

    def _compile(self, template_string: str, html: bool) -> Template:
        key = (html, template_string)
        if key not in self._compiled:
            env = self._html_env if html else self._text_env
            self._compiled[key] = env.from_string(template_string)
        return self._compiled[key]
