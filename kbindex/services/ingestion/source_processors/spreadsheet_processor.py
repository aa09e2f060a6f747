"""Source processor for Excel workbooks via openpyxl.

Each worksheet is rendered as a header line followed by its rows in CSV
form::

    --- Sheet: Prices ---
    item,price
    apple,1.2

Only ``.xlsx`` can be read; legacy ``.xls`` workbooks are rejected up front
with an :class:`~kbindex.utils.errors.ExtractionError` asking for a
``.xlsx`` copy.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path

from openpyxl import load_workbook

from kbindex.interfaces.text_extractor import ITextExtractor
from kbindex.utils.errors import ExtractionError


class SpreadsheetExtractor(ITextExtractor):
    """Renders every worksheet of an ``.xlsx`` workbook as CSV text.

    ``.xls`` stays registered; such files are rejected with a message asking
    for an ``.xlsx`` copy.
    """

    extensions = ("xlsx", "xls")

    def extract(self, path: Path) -> str:
        name = Path(path).name
        if Path(path).suffix.lower() == ".xls":
            raise ExtractionError(
                f"Legacy Excel workbook {name} cannot be read; save it as .xlsx",
                technical_message=f"{name}: openpyxl reads Office Open XML workbooks only",
            )

        try:
            workbook = load_workbook(str(path), read_only=True, data_only=True)
        except Exception as exc:  # noqa: BLE001 -- zip, XML and format errors
            raise ExtractionError(
                f"Could not open workbook {name}",
                technical_message=str(exc),
            ) from exc

        parts: list[str] = []
        try:
            for sheet in workbook.worksheets:
                buffer = io.StringIO()
                writer = csv.writer(buffer, lineterminator="\n")
                for row in sheet.iter_rows(values_only=True):
                    writer.writerow(["" if value is None else value for value in row])
                rows = buffer.getvalue().rstrip("\n")
                parts.append(f"\n--- Sheet: {sheet.title} ---\n{rows}\n")
        finally:
            workbook.close()
        return "".join(parts)
