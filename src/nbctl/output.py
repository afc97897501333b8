"""Output dispatcher: prints each command's result after a successful commit.

Per command, in input order:
- a structured table is rendered with the configured table style;
- otherwise, in one-line mode, the text output becomes exactly one line;
- otherwise the text output is written verbatim.
"""

from __future__ import annotations

import csv
import io
import json
from typing import TYPE_CHECKING, Sequence, TextIO

from rich.console import Console
from rich.markup import escape
from rich.table import Table as RichTable

from nbctl.models.config import TableFormat

if TYPE_CHECKING:
    from nbctl.models.command import Command, Table
    from nbctl.models.config import NbctlConfig, TableStyle


def escape_oneline(text: str) -> str:
    """Fold ``text`` into one line.

    A single trailing newline is dropped, then backslashes are doubled and
    newlines become the two characters ``\\n``.
    """
    if text.endswith("\n"):
        text = text[:-1]
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _render_list(table: Table, style: TableStyle) -> str:
    width = max((len(h) for h in table.headings), default=0)
    records = []
    for row in table.rows:
        lines = []
        for heading, cell in zip(table.headings, row):
            if style.headings:
                lines.append(f"{heading:<{width}} : {cell}")
            else:
                lines.append(cell)
        records.append("\n".join(lines) + "\n")
    return "\n".join(records)


def _render_bare(table: Table, style: TableStyle) -> str:
    records = ["".join(f"{cell}\n" for cell in row) for row in table.rows]
    return "\n".join(records)


def _render_csv(table: Table, style: TableStyle) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    if style.headings:
        writer.writerow(table.headings)
    writer.writerows(table.rows)
    return buf.getvalue()


def _render_json(table: Table, style: TableStyle) -> str:
    doc: dict[str, object] = {"data": table.rows}
    if style.headings:
        doc = {"headings": table.headings, **doc}
    return json.dumps(doc) + "\n"


def _render_rich(table: Table, style: TableStyle) -> str:
    rich_table = RichTable(
        show_header=style.headings,
        header_style="bold",
        box=None,
        pad_edge=False,
    )
    for heading in table.headings:
        rich_table.add_column(escape(heading))
    for row in table.rows:
        rich_table.add_row(*(escape(cell) for cell in row))
    buf = io.StringIO()
    console = Console(file=buf, width=max(80, _natural_width(table)), color_system=None)
    console.print(rich_table)
    return buf.getvalue()


def _natural_width(table: Table) -> int:
    widths = [len(h) for h in table.headings]
    for row in table.rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]
    return sum(widths) + 2 * len(widths)


_RENDERERS = {
    TableFormat.LIST: _render_list,
    TableFormat.BARE: _render_bare,
    TableFormat.CSV: _render_csv,
    TableFormat.JSON: _render_json,
    TableFormat.TABLE: _render_rich,
}


def render_table(table: Table, style: TableStyle) -> str:
    """Render ``table`` as text according to ``style``."""
    return _RENDERERS[style.format](table, style)


def dispatch_output(
    commands: Sequence[Command], config: NbctlConfig, stream: TextIO
) -> None:
    """Write the results of ``commands`` to ``stream`` in input order."""
    for command in commands:
        if command.table is not None:
            stream.write(render_table(command.table, config.table_style))
        elif config.oneline:
            stream.write(escape_oneline(command.output.getvalue()) + "\n")
        else:
            stream.write(command.output.getvalue())
    stream.flush()
