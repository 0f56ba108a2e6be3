"""EJS-style output tags for template files.

Supported tags::

    <%= name %>   value, HTML-escaped
    <%- name %>   value, inserted as is
    <%# ... %>    comment, produces nothing
    <%%           a literal ``<%``

``-%>`` drops the newline that follows the tag and ``_%>`` the spaces and tabs
after it. Any other text, including ``{{ }}`` mustaches, is left untouched.
Scriptlets (``<% code %>``, ``<%_ code %>``) cannot be executed and are
reported as errors.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping
import re


TAG = re.compile(r"<%%|<%(?P<kind>[=\-#_]?)(?P<body>.*?)(?P<trim>[-_]?)%>", re.DOTALL)
_NAME = re.compile(r"[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*")
_ESCAPES = str.maketrans({"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&#34;", "'": "&#39;"})


class TemplateError(ValueError):
    """A tag could not be filled from the render context."""


def escape_html(text: str) -> str:
    return text.translate(_ESCAPES)


@dataclass(slots=True)
class TemplateResolver:
    """Fills output tags from a read-only context.

    Values are inserted literally; a value that itself looks like a tag is
    never expanded again. ``a.b`` walks nested mappings when the context has
    no literal ``"a.b"`` key.
    """

    context: Mapping[str, Any]

    def render(self, text: str) -> str:
        if "<%" not in text:
            return text
        pieces: List[str] = []
        position = 0
        for match in TAG.finditer(text):
            start = match.start()
            if match.group(0) == "<%%":
                pieces.append(text[position:start])
                pieces.append("<%")
                position = match.end()
                continue

            kind, trim = match.group("kind"), match.group("trim")
            pieces.append(text[position:start])
            pieces.append(self._output(kind, match.group("body").strip(), match.group(0)))

            position = match.end()
            if trim == "-" and text.startswith("\r\n", position):
                position += 2
            elif trim == "-" and text.startswith("\n", position):
                position += 1
            elif trim == "_":
                while position < len(text) and text[position] in " \t":
                    position += 1
        pieces.append(text[position:])
        return "".join(pieces)

    def _output(self, kind: str, expression: str, tag: str) -> str:
        if kind == "#":
            return ""
        if kind not in ("=", "-"):
            raise TemplateError(f"Unsupported scriptlet tag {tag!r}; only output tags are rendered")
        if not _NAME.fullmatch(expression):
            raise TemplateError(f"Unsupported expression in {tag!r}; expected a variable name")
        value = self.lookup(expression)
        text = "" if value is None else str(value)
        return escape_html(text) if kind == "=" else text

    def lookup(self, key: str) -> Any:
        if key in self.context:
            return self.context[key]
        node: Any = self.context
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                raise TemplateError(f"{key} is not defined")
            node = node[part]
        return node


def render_text(text: str, context: Mapping[str, Any]) -> str:
    return TemplateResolver(context).render(text)


__all__ = ["TAG", "TemplateError", "TemplateResolver", "escape_html", "render_text"]
