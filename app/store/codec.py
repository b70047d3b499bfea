"""Tabular codecs: rows of named fields to and from xlsx / csv."""

import csv
import logging
from abc import ABC, abstractmethod
from io import BytesIO, StringIO
from pathlib import PurePath
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from app.core.exceptions import UploadError

logger = logging.getLogger(__name__)

# Key under which a CSV row's surplus cells are collected
EXTRA_COLUMNS_KEY = "__extra__"

Row = dict[str, Any]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _headers(rows: list[Row]) -> list[str]:
    """Union of row keys in order of first appearance."""
    headers: list[str] = []
    seen: set[str] = set()
    for row in rows:
        for key in row:
            if key not in seen and key != EXTRA_COLUMNS_KEY:
                seen.add(key)
                headers.append(key)
    return headers


class TabularCodec(ABC):
    """Converts between file content and rows keyed by column header."""

    extension: str
    media_type: str

    @abstractmethod
    def parse(self, content: bytes | str) -> list[Row]:
        """Parse file content into rows. Blank rows are skipped."""

    @abstractmethod
    def encode(self, rows: list[Row]) -> bytes:
        """Encode rows, using the union of their keys as the header."""


class ExcelCodec(TabularCodec):
    """xlsx workbooks via openpyxl."""

    extension = ".xlsx"
    media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    def parse(self, content: bytes | str, sheet_name: str | None = None) -> list[Row]:
        if isinstance(content, str):
            raise UploadError("Excel content must be binary")
        try:
            workbook = load_workbook(filename=BytesIO(content), read_only=True, data_only=True)
        except Exception as e:
            raise UploadError(f"Failed to parse Excel file: {str(e)}")

        try:
            if sheet_name is not None:
                if sheet_name not in workbook.sheetnames:
                    raise UploadError(f'Excel file must contain a "{sheet_name}" sheet')
                sheet = workbook[sheet_name]
            else:
                sheet = workbook.active
            if sheet is None:
                raise UploadError("Excel file has no active sheet")

            raw_rows = list(sheet.iter_rows(values_only=True))
        finally:
            workbook.close()

        if not raw_rows:
            return []

        headers = [str(h).strip() if h is not None else "" for h in raw_rows[0]]
        logger.debug(f"[EXCEL PARSE] Detected headers: {headers}")

        data = []
        skipped_empty_rows = 0
        for row in raw_rows[1:]:
            row_dict = {}
            for i, value in enumerate(row):
                if i < len(headers) and headers[i]:
                    row_dict[headers[i]] = value
            if any(not _is_blank(v) for v in row_dict.values()):
                data.append(row_dict)
            else:
                skipped_empty_rows += 1

        logger.info(f"[EXCEL PARSE] Summary: {len(data)} data rows extracted, {skipped_empty_rows} empty rows skipped")
        return data

    def encode(self, rows: list[Row], sheet_name: str = "Sheet1") -> bytes:
        return self.encode_sheets({sheet_name: rows})

    def encode_sheets(self, sheets: dict[str, list[Row]]) -> bytes:
        """Encode several named sheets into one workbook, in the given order."""
        sheets = sheets or {"Sheet1": []}
        wb = Workbook()
        wb.remove(wb.active)

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        thin_border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin"),
        )
        center_align = Alignment(horizontal="center", vertical="center")

        for sheet_name, rows in sheets.items():
            ws = wb.create_sheet(title=sheet_name[:31])
            headers = _headers(rows)

            for col_idx, header in enumerate(headers, start=1):
                cell = ws.cell(row=1, column=col_idx, value=header)
                cell.font = header_font
                cell.fill = header_fill
                cell.border = thin_border
                cell.alignment = center_align
                ws.column_dimensions[get_column_letter(col_idx)].width = max(12, min(40, len(header) + 4))

            for row_idx, row in enumerate(rows, start=2):
                for col_idx, header in enumerate(headers, start=1):
                    value = row.get(header)
                    ws.cell(row=row_idx, column=col_idx, value="" if value is None else value).border = thin_border

        output = BytesIO()
        wb.save(output)
        return output.getvalue()


class CsvCodec(TabularCodec):
    """Comma separated text with a header row."""

    extension = ".csv"
    media_type = "text/csv"

    def parse(self, content: bytes | str) -> list[Row]:
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise UploadError(f"CSV file must be UTF-8 encoded: {str(e)}")

        reader = csv.reader(StringIO(content.strip()))
        try:
            lines = list(reader)
        except csv.Error as e:
            raise UploadError(f"Failed to parse CSV file: {str(e)}")

        if not lines:
            return []

        headers = [h.strip().strip('"') for h in lines[0]]
        data = []
        for cells in lines[1:]:
            if all(_is_blank(c) for c in cells):
                continue
            row: Row = {}
            for i, header in enumerate(headers):
                row[header] = cells[i].strip() if i < len(cells) else None
            if len(cells) > len(headers):
                row[EXTRA_COLUMNS_KEY] = [c.strip() for c in cells[len(headers):]]
            data.append(row)

        logger.info(f"[CSV PARSE] {len(data)} data rows extracted")
        return data

    def encode(self, rows: list[Row]) -> bytes:
        headers = _headers(rows)
        output = StringIO()
        writer = csv.DictWriter(output, fieldnames=headers, extrasaction="ignore", lineterminator="\n")
        writer.writeheader()
        for row in rows:
            writer.writerow({h: "" if row.get(h) is None else row.get(h) for h in headers})
        return output.getvalue().encode("utf-8")


CODECS: dict[str, TabularCodec] = {
    ExcelCodec.extension: ExcelCodec(),
    CsvCodec.extension: CsvCodec(),
}


def codec_for_filename(filename: str) -> TabularCodec:
    """Pick a codec by file extension."""
    suffix = PurePath(filename).suffix.lower()
    codec = CODECS.get(suffix)
    if codec is None:
        raise UploadError(
            f"Unsupported file type '{suffix or filename}'. Allowed: {', '.join(sorted(CODECS))}"
        )
    return codec
