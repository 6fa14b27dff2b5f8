# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

from __future__ import annotations

import html
from abc import ABC, abstractmethod
from typing import Any

INDENT = "\t"


class HtmlElement(ABC):
    """
    A node of an HTML tree.

    ``tab`` is the indentation the element is rendered with when it is the
    root of a rendering; nested elements receive their indentation from the
    parent.
    """

    def __init__(self) -> None:
        self.tab = ""

    def set_tab(self, tab: str) -> None:
        self.tab = tab

    @abstractmethod
    def compose_string(self, indent: str | None = None) -> str:
        """Render the element, one line per node, prefixed by ``indent``."""

    def __str__(self) -> str:
        return self.compose_string()


class Text(HtmlElement):
    """Escaped character data."""

    def __init__(self, text: Any = "") -> None:
        super().__init__()
        self.text = "" if text is None else str(text)

    def compose_string(self, indent: str | None = None) -> str:
        if not self.text:
            return ""
        indent = self.tab if indent is None else indent
        return f"{indent}{html.escape(self.text, quote=False)}\n"


class RawHtml(Text):
    """Markup that is already rendered and is inserted verbatim."""

    def compose_string(self, indent: str | None = None) -> str:
        if not self.text:
            return ""
        indent = self.tab if indent is None else indent
        return f"{indent}{self.text}\n"
