from __future__ import annotations

import io
import logging
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Union

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from codprofit.domain.errors import ValidationError

log = logging.getLogger(__name__)

Source = Union[str, Path, bytes, BinaryIO]


class ExcelService:
    """Spreadsheet adapter: rows in, keyed by column letter; template workbooks out."""

    @staticmethod
    def _open(source: Source):
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)
        try:
            return load_workbook(source, data_only=True, read_only=True)
        except (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
            raise ValidationError(f"Cannot read workbook: {e}") from e

    def parse_workbook(self, source: Source) -> list[dict[str, Any]]:
        """First sheet as a list of ``{"A": value, "B": value, ...}`` rows, empty rows dropped."""
        wb = self._open(source)
        try:
            ws = wb.worksheets[0]
            rows: list[dict[str, Any]] = []
            for values in ws.iter_rows(values_only=True):
                row = {}
                for idx, v in enumerate(values, start=1):
                    if v is None or (isinstance(v, str) and not v.strip()):
                        continue
                    row[get_column_letter(idx)] = v
                if row:
                    rows.append(row)
        finally:
            wb.close()
        log.info("workbook_parsed rows=%s", len(rows))
        return rows

    def build_workbook(self, header: Iterable[str], rows: Iterable[Iterable[Any]] = (), title: str = "Sheet1") -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = title
        header = list(header)
        ws.append(header)
        for c in ws[1]:
            c.font = Font(bold=True)
        for r in rows:
            ws.append([v.isoformat() if isinstance(v, (date, datetime)) else v for v in r])
        for idx, name in enumerate(header, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = max(12, len(str(name)) + 4)
        ws.freeze_panes = "A2"

        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()

    def build_template(self, fields: Iterable[str], title: str = "Template") -> bytes:
        return self.build_workbook(fields, title=title)

    def template_mapping(self, fields: Iterable[str]) -> dict[str, str]:
        """Column mapping matching a template built from the same field list."""
        return {f: get_column_letter(i) for i, f in enumerate(fields, start=1)}
