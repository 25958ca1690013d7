"""Startup-compiled page templates.

The front end is three small files: the page, its stylesheet and its script.
They are compiled once with Jinja2 when the application starts so they can
be edited without touching Python code, and a broken template stops the
server from starting rather than failing on the first request.

Templates are rendered with an empty context.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
)

from distortr.core.errors import TemplateCompileError, TemplateRenderError

logger = logging.getLogger(__name__)

INDEX_TEMPLATE = "index.html"
STYLESHEET_TEMPLATE = "style.css"
SCRIPT_TEMPLATE = "main.js"

DEFAULT_TEMPLATES = (INDEX_TEMPLATE, STYLESHEET_TEMPLATE, SCRIPT_TEMPLATE)

HTML = "text/html; charset=utf-8"
CSS = "text/css; charset=utf-8"
JS = "text/javascript; charset=utf-8"

MEDIA_TYPES: Mapping[str, str] = MappingProxyType(
    {
        INDEX_TEMPLATE: HTML,
        STYLESHEET_TEMPLATE: CSS,
        SCRIPT_TEMPLATE: JS,
    }
)


class TemplateRegistry:
    """Read-only table of compiled templates keyed by file name."""

    def __init__(self, templates: Mapping[str, Template]) -> None:
        self._templates = MappingProxyType(dict(templates))

    @classmethod
    def load(
        cls,
        templates_dir: Path,
        names: Iterable[str] = DEFAULT_TEMPLATES,
    ) -> TemplateRegistry:
        """Compile every template in ``names`` from ``templates_dir``.

        Raises:
            TemplateCompileError: If any template is missing or invalid.
        """
        templates_dir = Path(templates_dir)
        env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

        compiled: dict[str, Template] = {}
        for name in names:
            try:
                compiled[name] = env.get_template(name)
            except TemplateNotFound as e:
                raise TemplateCompileError(f"Template not found: {templates_dir / name}") from e
            except TemplateSyntaxError as e:
                raise TemplateCompileError(
                    f"Invalid template {name} (line {e.lineno}): {e.message}"
                ) from e
            logger.info(f"Compiled template {name}")

        return cls(compiled)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._templates)

    def render(self, name: str) -> str:
        """Render template ``name`` with an empty context.

        Raises:
            KeyError: If no template called ``name`` was loaded.
            TemplateRenderError: If rendering fails.
        """
        template = self._templates[name]
        try:
            return template.render()
        except TemplateError as e:
            raise TemplateRenderError(f"Failed to render {name}: {e}") from e
