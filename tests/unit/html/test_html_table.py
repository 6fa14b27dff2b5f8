# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""Tests for the Table element."""

from __future__ import annotations

from catportal.web.admin.html import CompositeTag, Row, Table


class TestTable:
    def test_empty_table(self) -> None:
        assert str(Table()) == "<table></table>\n"

    def test_css_class(self) -> None:
        assert str(Table(css_class="overview")) == '<table class="overview"></table>\n'

    def test_add_row_from_mapping(self) -> None:
        table = Table()

        row = table.add_row({"a": "x"}, "odd")

        assert isinstance(row, Row)
        assert row.get_attribute("class") == "odd"
        assert table.size() == 1
        assert table.get_rows() == [row]

    def test_rows_follow_table_columns(self) -> None:
        table = Table(columns=["b", "a"])
        table.add_row({"a": "x", "b": "y"})

        assert str(table) == "<table>\n\t<tr>\n\t\t<td>\n\t\t\ty\n\t\t</td>\n\t\t<td>\n\t\t\tx\n\t\t</td>\n\t</tr>\n</table>\n"

    def test_set_columns_propagates_to_existing_rows(self) -> None:
        table = Table()
        row = table.add_row(Row({"a": "x"}))
        table.set_header({"a": "A"})

        table.set_columns(["a", "b"])

        assert row.columns == ["a", "b"]
        assert str(table).count("<td></td>") == 1
        assert str(table).count("<th></th>") == 1

    def test_header_renders_first_with_th_cells(self) -> None:
        table = Table(columns=["name", "status"])
        table.add_row({"name": "eduroam", "status": "ok"})
        header = table.set_header({"name": "Name", "status": "Status"})

        rendered = str(table)

        assert all(cell.name == "th" for cell in header.get_cells().values())
        assert rendered.index("Name") < rendered.index("eduroam")
        assert table.size() == 1

    def test_extra_children_render_before_rows(self) -> None:
        table = Table()
        table.add_tag(CompositeTag("caption").add_text("Institutions"))
        table.add_row({"a": "x"})

        rendered = str(table)

        assert rendered.startswith("<table>\n\t<caption>\n\t\tInstitutions\n\t</caption>\n\t<tr>")

    def test_get_rows_returns_copy(self) -> None:
        table = Table()
        table.add_row({"a": "x"})

        table.get_rows().clear()

        assert table.size() == 1
