"""Balance statistics exports (CSV, JSON, XLSX, PDF) built with the standard library."""

from __future__ import annotations

import csv
import io
import json
import textwrap
import zipfile
from dataclasses import dataclass
from datetime import date, datetime, timezone
from html import escape as xml_escape
from typing import Any, Callable


BALANCE_REPORT_HEADERS = [
    "codigo",
    "nombre",
    "grupo",
    "vac_anuales",
    "vac_rest_ano_anterior",
    "vac_consumidos",
    "vac_restantes",
    "asuntos_anuales",
    "asuntos_consumidos",
    "asuntos_restantes",
    "error",
]

_SPREADSHEET_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
_RELATIONSHIPS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
_OFFICE_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
_XML_HEADER = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    mimetype: str
    extension: str


def balance_report_rows(entries: list[dict[str, Any]]) -> list[list[Any]]:
    rows: list[list[Any]] = []
    for entry in entries:
        balance = entry.get("balance") or {}
        rows.append(
            [
                entry["employee_code"],
                entry["employee_name"],
                entry.get("group") or "-",
                balance.get("vacation_entitled"),
                balance.get("vacation_carry_over"),
                balance.get("vacation_consumed"),
                balance.get("vacation_remaining"),
                balance.get("personal_days_entitled"),
                balance.get("personal_days_consumed"),
                balance.get("personal_days_remaining"),
                (entry.get("error") or {}).get("msg"),
            ]
        )
    return rows


def to_csv_bytes(headers: list[str], rows: list[list[Any]]) -> bytes:
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow(headers)
    writer.writerows([_stringify(value) for value in row] for row in rows)
    return out.getvalue().encode("utf-8")


def to_json_bytes(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, indent=2, default=_stringify).encode("utf-8")


def _xlsx_sheet(headers: list[str], rows: list[list[Any]]) -> str:
    xml_rows: list[str] = []
    for row_number, values in enumerate([headers, *rows], start=1):
        cells = []
        for column_number, value in enumerate(values, start=1):
            reference = f"{_column_letters(column_number)}{row_number}"
            if isinstance(value, int) and not isinstance(value, bool):
                cells.append(f'<c r="{reference}"><v>{value}</v></c>')
            else:
                text = xml_escape(_truncate(_stringify(value), 32767))
                cells.append(f'<c r="{reference}" t="inlineStr"><is><t>{text}</t></is></c>')
        xml_rows.append(f'<row r="{row_number}">{"".join(cells)}</row>')
    return f'{_XML_HEADER}<worksheet xmlns="{_SPREADSHEET_NS}"><sheetData>{"".join(xml_rows)}</sheetData></worksheet>'


def to_xlsx_bytes(headers: list[str], rows: list[list[Any]], sheet_name: str = "Saldos") -> bytes:
    sheet_label = xml_escape(_truncate(sheet_name, 31))
    parts = {
        "[Content_Types].xml": (
            f"{_XML_HEADER}"
            '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
            '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
            '<Default Extension="xml" ContentType="application/xml"/>'
            '<Override PartName="/xl/workbook.xml" '
            'ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"/>'
            '<Override PartName="/xl/worksheets/sheet1.xml" '
            'ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/>'
            "</Types>"
        ),
        "_rels/.rels": (
            f'{_XML_HEADER}<Relationships xmlns="{_RELATIONSHIPS_NS}">'
            f'<Relationship Id="rId1" Type="{_OFFICE_REL}/officeDocument" Target="xl/workbook.xml"/>'
            "</Relationships>"
        ),
        "xl/workbook.xml": (
            f'{_XML_HEADER}<workbook xmlns="{_SPREADSHEET_NS}" xmlns:r="{_OFFICE_REL}">'
            f'<sheets><sheet name="{sheet_label}" sheetId="1" r:id="rId1"/></sheets></workbook>'
        ),
        "xl/_rels/workbook.xml.rels": (
            f'{_XML_HEADER}<Relationships xmlns="{_RELATIONSHIPS_NS}">'
            f'<Relationship Id="rId1" Type="{_OFFICE_REL}/worksheet" Target="worksheets/sheet1.xml"/>'
            "</Relationships>"
        ),
        "xl/worksheets/sheet1.xml": _xlsx_sheet(headers, rows),
    }

    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, xml in parts.items():
            archive.writestr(name, xml)
    return out.getvalue()


def _pdf_pages(lines: list[str], per_page: int) -> list[list[str]]:
    pages = [lines[index : index + per_page] for index in range(0, len(lines), per_page)]
    return pages or [["Sin datos"]]


def to_pdf_bytes(title: str, headers: list[str], rows: list[list[Any]]) -> bytes:
    header_line = " | ".join(headers)
    lines = [title, "", header_line, "-" * min(150, len(header_line))]
    for row in rows:
        lines.extend(textwrap.wrap(" | ".join(_stringify(value) for value in row), width=130) or [""])

    # Landscape A4, Helvetica 8pt.
    width, height, line_height = 842, 595, 11
    pages = _pdf_pages(lines, max(1, (height - 80) // line_height))

    objects: list[bytes] = [b"", b"", b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"]
    catalog_ref, pages_ref, font_ref = 1, 2, 3
    page_refs: list[int] = []
    for page_lines in pages:
        commands = [b"BT", b"/F1 8 Tf", f"40 {height - 40} Td".encode("latin-1"), f"{line_height} TL".encode("latin-1")]
        for line in page_lines:
            commands.append(f"({_pdf_escape(_truncate(line, 160))}) Tj T*".encode("latin-1", "replace"))
        commands.append(b"ET")
        stream = b"\n".join(commands)
        objects.append(f"<< /Length {len(stream)} >>\nstream\n".encode("latin-1") + stream + b"\nendstream")
        contents_ref = len(objects)
        objects.append(
            (
                f"<< /Type /Page /Parent {pages_ref} 0 R /MediaBox [0 0 {width} {height}] "
                f"/Contents {contents_ref} 0 R /Resources << /Font << /F1 {font_ref} 0 R >> >> >>"
            ).encode("latin-1")
        )
        page_refs.append(len(objects))

    kids = " ".join(f"{ref} 0 R" for ref in page_refs)
    objects[pages_ref - 1] = f"<< /Type /Pages /Kids [{kids}] /Count {len(page_refs)} >>".encode("latin-1")
    objects[catalog_ref - 1] = f"<< /Type /Catalog /Pages {pages_ref} 0 R >>".encode("latin-1")

    pdf = bytearray(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(pdf))
        pdf += f"{number} 0 obj\n".encode("latin-1") + body + b"\nendobj\n"

    xref_offset = len(pdf)
    pdf += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("latin-1")
    pdf += "".join(f"{offset:010d} 00000 n \n" for offset in offsets).encode("latin-1")
    pdf += (
        f"trailer\n<< /Size {len(objects) + 1} /Root {catalog_ref} 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")
    return bytes(pdf)


def export_balances(output_format: str, year: int, entries: list[dict[str, Any]]) -> ExportFile:
    rows = balance_report_rows(entries)
    builders: dict[str, Callable[[], ExportFile]] = {
        "csv": lambda: ExportFile(to_csv_bytes(BALANCE_REPORT_HEADERS, rows), "text/csv; charset=utf-8", "csv"),
        "json": lambda: ExportFile(
            to_json_bytes({"year": year, "generated_at": datetime.now(timezone.utc), "entries": entries}),
            "application/json",
            "json",
        ),
        "xlsx": lambda: ExportFile(
            to_xlsx_bytes(BALANCE_REPORT_HEADERS, rows, sheet_name=f"Saldos {year}"),
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "xlsx",
        ),
        "pdf": lambda: ExportFile(
            to_pdf_bytes(f"Saldos de vacaciones y asuntos propios {year}", BALANCE_REPORT_HEADERS, rows),
            "application/pdf",
            "pdf",
        ),
    }
    builder = builders.get(output_format)
    if builder is None:
        raise ValueError(f"Unsupported export format: {output_format}")
    return builder()


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _truncate(value: str, max_len: int) -> str:
    if len(value) <= max_len:
        return value
    return value[: max_len - 3] + "..."


def _column_letters(index: int) -> str:
    letters: list[str] = []
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
