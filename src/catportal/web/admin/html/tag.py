# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

from __future__ import annotations

import html
from typing import Any, Final, Self

from catportal.web.admin.html.element import INDENT, HtmlElement, Text

VOID_ELEMENTS: Final[frozenset[str]] = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)


class Tag(HtmlElement):
    """An element with a name and attributes but no children."""

    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self._attributes: dict[str, str] = {}

    def add_attribute(self, name: str, value: Any) -> Self:
        """Set attribute ``name``; a None value leaves the tag unchanged."""
        if value is not None:
            self._attributes[name] = str(value)
        return self

    def get_attribute(self, name: str) -> str | None:
        return self._attributes.get(name)

    @property
    def attributes(self) -> dict[str, str]:
        return dict(self._attributes)

    def compose_attributes(self) -> str:
        return "".join(f' {name}="{html.escape(value, quote=True)}"' for name, value in self._attributes.items())

    def compose_inner_string(self, indent: str = "") -> str:
        """Render the content between the opening and closing tag."""
        return ""

    def compose_string(self, indent: str | None = None) -> str:
        indent = self.tab if indent is None else indent
        opening = f"{indent}<{self.name}{self.compose_attributes()}>"
        if self.name in VOID_ELEMENTS:
            return f"{opening}\n"
        inner = self.compose_inner_string(indent)
        if not inner:
            return f"{opening}</{self.name}>\n"
        return f"{opening}\n{inner}{indent}</{self.name}>\n"


class CompositeTag(Tag):
    """A tag holding an ordered list of child elements."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._elements: list[HtmlElement] = []

    def add_tag(self, element: HtmlElement) -> Self:
        self._elements.append(element)
        return self

    def add_text(self, text: Any) -> Self:
        """Append ``text`` as an escaped text node."""
        return self.add_tag(Text(text))

    def get_elements(self) -> list[HtmlElement]:
        return list(self._elements)

    def compose_inner_string(self, indent: str = "") -> str:
        child_indent = INDENT + indent
        return "".join(element.compose_string(child_indent) for element in self._elements)
