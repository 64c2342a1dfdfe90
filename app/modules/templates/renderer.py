"""
Renders a template's root document with pybars3 (Handlebars for Python).

Templates see a single `config` object:
    {{config.title}}                  HTML-escaped value, empty when unset
    {{{config.tracking_snippet}}}     raw value
    {{#if (eq config.theme "dark")}}...{{else}}...{{/if}}

Helpers are fixed per renderer instance and passed on every render call;
nothing is registered process-wide. Like Handlebars, helpers receive the
current context as their first argument.
"""
import logging
import re
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pybars import Compiler, PybarsError

from app.core.exceptions import TemplateError
from app.modules.templates.local_storage import ROOT_DOCUMENT

logger = logging.getLogger(__name__)

_ASSET_REF = re.compile(r"""(href|src)=["']\./(.*?)["']""")


def _eq(this, left, right) -> bool:
    return left == right


DEFAULT_HELPERS: Dict[str, Callable[..., Any]] = {"eq": _eq}


class TemplateRenderer:
    def __init__(self, helpers: Optional[Mapping[str, Callable[..., Any]]] = None):
        self._helpers = MappingProxyType(dict(DEFAULT_HELPERS if helpers is None else helpers))
        self._compiler = Compiler()
        self._compile_lock = threading.Lock()

    @property
    def helpers(self) -> Mapping[str, Callable[..., Any]]:
        return self._helpers

    def render(
        self,
        template_dir: Union[str, Path],
        config: Mapping[str, Any],
        asset_base_url: Optional[str] = None,
    ) -> str:
        """Render the root document of template_dir with the given config values.

        When asset_base_url is given, relative ./ asset references are rewritten
        to point at it (used for previews served by the API).
        """
        index_path = Path(template_dir) / ROOT_DOCUMENT
        if not index_path.is_file():
            raise TemplateError(f"Template {ROOT_DOCUMENT} not found")
        source = index_path.read_text(encoding="utf-8")

        if asset_base_url:
            base = asset_base_url.rstrip("/")
            source = _ASSET_REF.sub(lambda m: f'{m.group(1)}="{base}/{m.group(2)}"', source)

        return self.render_string(source, config)

    def render_string(self, source: str, config: Mapping[str, Any]) -> str:
        template = self.compile(source)
        try:
            output = template({"config": dict(config or {})}, helpers=dict(self._helpers))
        except PybarsError as e:
            raise TemplateError(f"Template rendering failed: {e}") from e
        return "".join(output)

    def compile(self, source: str) -> Callable[..., Any]:
        # pybars keeps parser state on the compiler
        with self._compile_lock:
            try:
                return self._compiler.compile(source)
            except PybarsError as e:
                logger.warning(f"Rejected malformed template: {e}")
                raise TemplateError(f"Invalid template: {e}") from e


template_renderer = TemplateRenderer()
