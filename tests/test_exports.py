from __future__ import annotations

import csv
import io
import json
import zipfile

import pytest

from vacaciones.report_export import BALANCE_REPORT_HEADERS, balance_report_rows, export_balances, to_xlsx_bytes


def _entries() -> list[dict]:
    return [
        {
            "employee_code": "E001",
            "employee_name": "Ana Garcia",
            "group": "General",
            "balance": {
                "vacation_entitled": 22,
                "vacation_carry_over": 2,
                "vacation_consumed": 14,
                "vacation_remaining": 10,
                "personal_days_entitled": 3,
                "personal_days_consumed": 0,
                "personal_days_remaining": 3,
            },
        },
        {
            "employee_code": "E003",
            "employee_name": "Carla Ruiz",
            "group": "Sin convenio",
            "balance": None,
            "error": {"msg": "Sin regla", "code": "ENTITLEMENT_NOT_CONFIGURED"},
        },
    ]


def test_report_rows_flatten_balances_and_errors():
    rows = balance_report_rows(_entries())

    assert rows[0] == ["E001", "Ana Garcia", "General", 22, 2, 14, 10, 3, 0, 3, None]
    assert rows[1][:3] == ["E003", "Carla Ruiz", "Sin convenio"]
    assert rows[1][-1] == "Sin regla"
    assert len(rows[1]) == len(BALANCE_REPORT_HEADERS)


def test_xlsx_workbook_contains_numeric_and_text_cells():
    content = to_xlsx_bytes(["codigo", "dias"], [["E001", 22]], sheet_name="Saldos 2024")

    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        sheet = archive.read("xl/worksheets/sheet1.xml").decode("utf-8")
        workbook = archive.read("xl/workbook.xml").decode("utf-8")

    assert '<c r="B2"><v>22</v></c>' in sheet
    assert "<t>E001</t>" in sheet
    assert 'name="Saldos 2024"' in workbook


def test_unknown_format_is_rejected():
    with pytest.raises(ValueError):
        export_balances("ods", 2024, _entries())


def test_csv_export_endpoint(client, login):
    login("manager@example.com")

    response = client.get("/admin/balances/export?year=2024&format=csv")

    assert response.status_code == 200
    assert response.headers["Content-Disposition"] == "attachment; filename=saldos_2024.csv"
    rows = list(csv.reader(io.StringIO(response.data.decode("utf-8"))))
    assert rows[0] == BALANCE_REPORT_HEADERS
    assert [row[0] for row in rows[1:]] == ["E001", "E002"]
    assert rows[1][6] == "22"


def test_json_export_endpoint(client, login):
    login("admin@example.com")

    response = client.get("/admin/balances/export?year=2024&format=json")

    payload = json.loads(response.data)
    assert payload["year"] == 2024
    assert [entry["employee_code"] for entry in payload["entries"]] == ["E001", "E002"]


@pytest.mark.parametrize(("output_format", "magic"), [("xlsx", b"PK"), ("pdf", b"%PDF")])
def test_binary_export_endpoints(client, login, output_format, magic):
    login("admin@example.com")

    response = client.get(f"/admin/balances/export?year=2024&format={output_format}")

    assert response.status_code == 200
    assert response.data.startswith(magic)


def test_export_rejects_unknown_format(client, login):
    login("admin@example.com")

    response = client.get("/admin/balances/export?year=2024&format=ods")

    assert response.status_code == 400
    assert response.get_json()["errors"][0]["details"]["allowed"] == ["csv", "json", "xlsx", "pdf"]


def test_employees_cannot_export(client, login):
    login("employee@example.com")

    assert client.get("/admin/balances/export?year=2024&format=csv").status_code == 403
