import csv
import io

from fastapi.testclient import TestClient

from conftest import GSTIN_A, b2b_invoice, b2b_payload, ledger_bill
from gstr2a_recon.core.export import CSV_HEADERS
from gstr2a_recon.main import app

client = TestClient(app)
HEADERS = {"X-Tenant-ID": "tenant-r"}


def seed_run(tenant_headers=HEADERS):
    response = client.post("/reconciliation/run", json={
        "period": "082025",
        "b2b": b2b_payload((GSTIN_A, [b2b_invoice("INV1"), b2b_invoice("INV2"), b2b_invoice("INV3")])),
        "ledger": [ledger_bill("INV1"), ledger_bill("INV2", taxable=900), ledger_bill("INV4")],
    }, headers=tenant_headers)
    assert response.status_code == 200
    return response.json()


def test_report_returns_stored_run():
    run_data = seed_run()

    response = client.get("/reports/reconciliation", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["summary"] == run_data["summary"]
    assert len(data["results"]) == 4
    assert data["supplier_summary"][0]["counterparty_tax_id"] == GSTIN_A
    assert data["supplier_summary"][0]["risk_level"] == "HIGH"


def test_report_filters_by_status():
    seed_run()

    response = client.get("/reports/reconciliation", params={"status": "Mismatched"}, headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert [r["document_number"] for r in data["results"]] == ["INV2"]
    # Counts always describe the whole run
    assert data["summary"]["total"] == 4


def test_reports_are_kept_per_tenant():
    seed_run()

    response = client.get("/reports/reconciliation", headers={"X-Tenant-ID": "someone-else"})

    assert response.status_code == 404
    assert response.json()["detail"] == "No reconciliation results found for this session."


def test_csv_download():
    seed_run()

    response = client.get("/reports/reconciliation/csv", headers=HEADERS)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == "attachment; filename=GSTR2A_Comparison_082025.csv"
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == CSV_HEADERS
    assert [row[0] for row in rows[1:]] == ["INV1", "INV2", "INV3", "INV4"]
    assert rows[2][8] == "Mismatched"
    assert rows[2][9] == "Taxable Value mismatch: Authority(1000.00) vs Ledger(900.00)"


def test_csv_download_refuses_empty_run():
    client.post("/reconciliation/run", json={"period": "082025", "b2b": {"b2b": []}, "ledger": []}, headers=HEADERS)

    response = client.get("/reports/reconciliation/csv", headers=HEADERS)

    assert response.status_code == 404
    assert response.json()["detail"] == "No comparison data to save"


def test_pdf_download():
    seed_run()

    response = client.get("/reports/reconciliation/pdf", headers=HEADERS)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "GSTR2A_Comparison_082025.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_pdf_without_run_is_not_found():
    response = client.get("/reports/reconciliation/pdf", headers=HEADERS)

    assert response.status_code == 404
