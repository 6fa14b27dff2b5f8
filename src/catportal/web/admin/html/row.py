# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""A table row whose cells are addressed by column key."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self

from catportal.web.admin.html.element import INDENT
from catportal.web.admin.html.tag import CompositeTag, Tag

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Mapping

    from catportal.web.admin.html.element import HtmlElement


class Row(Tag):
    """
    One ``tr`` element.

    Cells are kept in a mapping from column key to cell tag. Without an
    explicit column order the cells render in insertion order; with one,
    they render in that order and a missing column renders as an empty cell.
    """

    def __init__(self, cells: Mapping[Hashable, Any] | None = None, css_class: str = "", cell_tag: str = "td") -> None:
        super().__init__("tr")
        self.cell_tag = cell_tag
        self._cells: dict[Hashable, CompositeTag] = {}
        self._columns: list[Hashable] = []
        if cells:
            self.set_cells(cells)
        if css_class:
            self.add_attribute("class", css_class)

    def set_cells(self, cells: Mapping[Hashable, Any]) -> Self:
        """Wrap each raw value into a cell, replacing cells of the same column."""
        for key, value in cells.items():
            self._cells[key] = CompositeTag(self.cell_tag).add_text(value)
        return self

    def size(self) -> int:
        return len(self._cells)

    def get_cells(self) -> dict[Hashable, CompositeTag]:
        return dict(self._cells)

    def add_cell_attribute(self, column: Hashable, name: str, value: Any) -> Self:
        """Set an attribute on an existing cell; unknown columns are ignored."""
        if column in self._cells:
            self._cells[column].add_attribute(name, value)
        return self

    def set_columns(self, columns: Iterable[Hashable]) -> Self:
        self._columns = list(columns)
        return self

    @property
    def columns(self) -> list[Hashable]:
        return list(self._columns)

    def add_to_cell(self, column: Hashable, element: HtmlElement) -> Self:
        """Append ``element`` to the cell of ``column``, creating the cell if needed."""
        if column not in self._cells:
            self._cells[column] = CompositeTag(self.cell_tag)
        self._cells[column].add_tag(element)
        return self

    def compose_inner_string(self, indent: str = "") -> str:
        child_indent = INDENT + indent
        if self._columns:
            empty = CompositeTag(self.cell_tag)
            return "".join(self._cells.get(column, empty).compose_string(child_indent) for column in self._columns)
        return "".join(cell.compose_string(child_indent) for cell in self._cells.values())
