"""
Template Engine.

Renders receiver configuration strings (summary, description, custom fields,
...) against an alert group using Jinja2.

A configuration string is either the name of a template loaded into the set
or an inline template:

    summary: summary.j2
    description: '{% include "description.j2" %}'
    priority: '{{ "Critical" if common_labels.severity == "page" else "Major" }}'
"""

import logging
import re
from pathlib import Path
from typing import Any, Iterable, Optional

from jinja2 import (
    BaseLoader,
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    Template,
    TemplateError,
)

from markupsafe import Markup

from jirabridge.errors import JirabridgeError
from jirabridge.models.alerts import AlertGroup, sorted_pairs

logger = logging.getLogger(__name__)

# Runtime failures a template can raise besides Jinja's own errors
_RUNTIME_ERRORS = (
    TemplateError,
    ArithmeticError,
    LookupError,
    TypeError,
    ValueError,
    re.error,
)


class RenderError(JirabridgeError):
    """Raised when a template fails to compile or render."""

    def __init__(self, message: str, template: str = "") -> None:
        super().__init__(message, retryable=False)
        self.template = template


def _match(value: Any, pattern: str) -> bool:
    return re.search(pattern, str(value)) is not None


def _re_replace_all(value: Any, pattern: str, replacement: str) -> str:
    return re.sub(pattern, replacement, str(value))


def _string_slice(*values: str) -> list[str]:
    return list(values)


def _safe_html(value: Any) -> Markup:
    return Markup(str(value))


class TemplateSet:
    """A parsed set of templates shared by every notification.

    Named templates come from an optional mapping and an optional template
    file or directory. Inline templates are compiled on first use and cached,
    so repeated renders never re-parse.

    Usage:
        templates = TemplateSet.from_path("templates/")
        text = templates.execute("summary.j2", group.template_context())
    """

    def __init__(
        self,
        templates: Optional[dict[str, str]] = None,
        path: str | Path | None = None,
    ) -> None:
        """Initialize the template set.

        Args:
            templates: Named template sources
            path: Template file or directory to load named templates from

        Raises:
            FileNotFoundError: If path does not exist
        """
        loaders: list[BaseLoader] = []
        if templates:
            loaders.append(DictLoader(dict(templates)))
        if path is not None:
            loaders.append(self._loader_for(Path(path)))

        self._env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=False,
            keep_trailing_newline=False,
        )
        self._env.filters["match"] = _match
        self._env.filters["re_replace_all"] = _re_replace_all
        self._env.filters["safe_html"] = _safe_html
        self._env.filters["string_slice"] = _string_slice
        self._env.tests["match"] = _match
        self._env.globals["string_slice"] = _string_slice
        self._env.globals["sorted_pairs"] = sorted_pairs

        self._names = frozenset(self._env.list_templates())
        self._inline: dict[str, Template] = {}

    @classmethod
    def from_path(cls, path: str | Path | None) -> "TemplateSet":
        """Create a template set from a template file or directory."""
        return cls(path=path)

    @staticmethod
    def _loader_for(path: Path) -> BaseLoader:
        if path.is_dir():
            return FileSystemLoader(str(path))
        if path.is_file():
            return DictLoader({path.name: path.read_text()})
        raise FileNotFoundError(f"Template path not found: {path}")

    @property
    def names(self) -> frozenset[str]:
        """Names of the loaded templates."""
        return self._names

    def compile(self, text: str) -> Template:
        """Return the compiled template for a name or inline string.

        Raises:
            RenderError: If the template does not compile
        """
        try:
            if text in self._names:
                return self._env.get_template(text)
            template = self._inline.get(text)
            if template is None:
                template = self._env.from_string(text)
                self._inline[text] = template
            return template
        except TemplateError as e:
            raise RenderError(f"template {text!r} failed to compile: {e}", template=text) from e

    def execute(self, text: str, context: dict[str, Any]) -> str:
        """Render a template name or inline template against a context.

        Args:
            text: Template name or inline template
            context: Template variables

        Returns:
            Rendered string

        Raises:
            RenderError: If compiling or rendering fails
        """
        if not text:
            return ""
        template = self.compile(text)
        try:
            return template.render(context)
        except _RUNTIME_ERRORS as e:
            raise RenderError(f"template {text!r} failed to render: {e}", template=text) from e

    def validate(self, texts: Iterable[str] = ()) -> list[RenderError]:
        """Compile every loaded template and the given inline strings.

        Args:
            texts: Additional template strings to compile

        Returns:
            Errors found, empty when everything compiles
        """
        errors: list[RenderError] = []
        for text in [*sorted(self._names), *texts]:
            if not text:
                continue
            try:
                self.compile(text)
            except RenderError as e:
                errors.append(e)
        return errors


class Renderer:
    """Per-notification render handle.

    Binds a TemplateSet to one alert group. ``render()`` never raises: the
    first failure is kept and later surfaced by ``check()``, so a batch of
    renders can be validated once. Never share a Renderer between runs.
    """

    def __init__(self, templates: TemplateSet, group: AlertGroup) -> None:
        self._templates = templates
        self._context = group.template_context()
        self._error: Optional[RenderError] = None

    @property
    def error(self) -> Optional[RenderError]:
        """First render error recorded so far."""
        return self._error

    def execute(self, text: str) -> str:
        """Render a template, raising on failure."""
        return self._templates.execute(text, self._context)

    def render(self, text: str) -> str:
        """Render a template, recording the first failure and returning ""."""
        try:
            return self.execute(text)
        except RenderError as e:
            self.record(e)
            return ""

    def record(self, error: RenderError) -> None:
        """Record an error unless an earlier one is already held."""
        if self._error is None:
            logger.debug(f"Render failed: {error}")
            self._error = error

    def check(self) -> None:
        """Raise the first recorded error, if any."""
        if self._error is not None:
            raise self._error
