"""
URI template rendering (Jinja2).

Section URL formats use single-brace placeholders such as
"blog/{slug}" or "{parent.uri}/{slug}". Each placeholder is rewritten to a
Jinja2 expression against the entry context and rendered in a sandbox.
Full Jinja2 syntax ({{ ... }}, {% ... %}) is passed through untouched.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from jinja2 import TemplateError
from jinja2.sandbox import SandboxedEnvironment

logger = logging.getLogger(__name__)

# "{name}" or "{a.b}" not already part of "{{", "{%", "}}" or "%}"
_PLACEHOLDER_RE = re.compile(r"(?<![{%])\{(?![{%])\s*([^{}%]+?)\s*\}(?![}%])")


class UriTemplateError(ValueError):
    """A URL format could not be compiled or rendered."""


def to_jinja(url_format: str) -> str:
    """Rewrite single-brace placeholders to Jinja2 expressions on `object`."""
    return _PLACEHOLDER_RE.sub(lambda m: "{{ object.%s }}" % m.group(1), url_format)


class JinjaUriRenderer:
    def __init__(self) -> None:
        # None (e.g. the URI of a disabled parent) renders as an empty string
        self.env = SandboxedEnvironment(
            autoescape=False,
            keep_trailing_newline=False,
            finalize=lambda value: "" if value is None else value,
        )
        self._compiled: dict[str, Any] = {}

    def render_uri_template(self, url_format: str, context: Mapping[str, Any]) -> str:
        try:
            template = self._compiled.get(url_format)
            if template is None:
                template = self.env.from_string(to_jinja(url_format))
                self._compiled[url_format] = template
            return template.render(object=dict(context)).strip()
        except TemplateError as e:
            logger.warning("could not render URL format %r: %s", url_format, e)
            raise UriTemplateError(f"Invalid URL format '{url_format}': {e}") from e
