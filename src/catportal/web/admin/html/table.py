# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self

from catportal.web.admin.html.element import INDENT
from catportal.web.admin.html.row import Row
from catportal.web.admin.html.tag import CompositeTag

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Mapping


class Table(CompositeTag):
    """
    A ``table`` of `Row` objects sharing one column order.

    The column order is pushed into every row when the row is added or the
    order changes, so the header and the data rows always line up.
    """

    def __init__(self, columns: Iterable[Hashable] | None = None, css_class: str = "") -> None:
        super().__init__("table")
        self._columns: list[Hashable] = list(columns or [])
        self._header: Row | None = None
        self._rows: list[Row] = []
        if css_class:
            self.add_attribute("class", css_class)

    def set_columns(self, columns: Iterable[Hashable]) -> Self:
        self._columns = list(columns)
        for row in self._all_rows():
            row.set_columns(self._columns)
        return self

    def set_header(self, labels: Mapping[Hashable, Any], css_class: str = "") -> Row:
        """Create the header row from column labels (``th`` cells)."""
        self._header = Row(labels, css_class, cell_tag="th")
        if self._columns:
            self._header.set_columns(self._columns)
        return self._header

    def add_row(self, row: Row | Mapping[Hashable, Any], css_class: str = "") -> Row:
        """Append a row, building it from raw cell values if needed."""
        if not isinstance(row, Row):
            row = Row(row, css_class)
        if self._columns:
            row.set_columns(self._columns)
        self._rows.append(row)
        return row

    def get_rows(self) -> list[Row]:
        return list(self._rows)

    def size(self) -> int:
        return len(self._rows)

    def _all_rows(self) -> list[Row]:
        return ([self._header] if self._header else []) + self._rows

    def compose_inner_string(self, indent: str = "") -> str:
        child_indent = INDENT + indent
        rows = "".join(row.compose_string(child_indent) for row in self._all_rows())
        return super().compose_inner_string(indent) + rows
