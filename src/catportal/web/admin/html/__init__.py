# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
HTML element composition for the administrator pages.

A page fragment is built as a tree of elements and rendered once with
``str(element)``. Rendering reads the tree and never changes it.

    row = Row({"name": "eduroam", "type": "IdP"})
    row.set_columns(["type", "name"])
    html = str(row)
"""

from catportal.web.admin.html.element import HtmlElement, RawHtml, Text
from catportal.web.admin.html.row import Row
from catportal.web.admin.html.table import Table
from catportal.web.admin.html.tag import CompositeTag, Tag

__all__ = ["CompositeTag", "HtmlElement", "RawHtml", "Row", "Table", "Tag", "Text"]
