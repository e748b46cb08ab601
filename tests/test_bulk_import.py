import io

import pandas as pd
from fastapi.testclient import TestClient

from orderflow.main import app
from orderflow.models import Notification, Order
from orderflow.repositories.counter_repo import CounterRepository
from orderflow.services.bulk_service import sheet_row_to_payload

client = TestClient(app)

SHEET_ROWS = [
    {
        "Customer Name": "North Campus", "Contact Person Name": "A. Rao", "Contact No": "9000000001",
        "Order Type": "B2C", "Payment Terms": "Credit", "Credit Days": "30", "Dispatch From": "Patna",
        "Product Type": "Chair", "Quantity": "2", "Unit Price": "100", "GST": "18",
        "Serial Nos": "S1, S2", "Same Address": "Yes", "SO Date": "05/02/2024",
    },
    {
        "Customer Name": "South Campus", "Contact Person Name": "B. Iyer", "Contact No": "9000000002",
        "Order Type": "B2B", "Payment Terms": "100% Advance", "Dispatch From": "Morinda",
        "Product Type": "Table", "Quantity": "1", "Unit Price": "50", "GST": "including",
        "Freight Charges": "20",
    },
]


def sheet_bytes(rows, fmt="xlsx"):
    df = pd.DataFrame(rows)
    buffer = io.BytesIO()
    if fmt == "csv":
        df.to_csv(buffer, index=False)
    else:
        df.to_excel(buffer, index=False, sheet_name="Orders", engine="openpyxl")
    return buffer.getvalue()


def test_sheet_row_maps_to_single_product_payload():
    payload = sheet_row_to_payload(SHEET_ROWS[0])
    assert payload["customername"] == "North Campus"
    assert payload["paymentTerms"] == "Credit"
    assert payload["products"] == [{
        "productType": "Chair", "qty": "2", "unitPrice": "100", "gst": "18", "serialNos": "S1, S2",
    }]


def test_json_import_allocates_sequential_ids(admin_headers, order_payload, db):
    client.post("/api/orders", json=order_payload(), headers=admin_headers)
    body = [order_payload(customername=f"School {i}") for i in range(3)]
    r = client.post("/api/bulk-orders", json=body, headers=admin_headers)
    assert r.status_code == 201, r.json()
    data = r.json()["data"]
    assert data["count"] == 3
    assert data["orderIds"] == ["PMTO2", "PMTO3", "PMTO4"]
    assert db.query(Order).count() == 4
    assert db.query(Notification).count() == 4
    assert CounterRepository().current(db) == 4


def test_failed_import_leaves_counter_unchanged(admin_headers, order_payload, db):
    client.post("/api/orders", json=order_payload(), headers=admin_headers)
    body = [order_payload(), order_payload(orderType="B2G"), order_payload()]
    r = client.post("/api/bulk-orders", json=body, headers=admin_headers)
    assert r.status_code == 400
    error = r.json()
    assert error["error_code"] == "BULK_IMPORT_FAILED"
    assert error["error"].startswith("Row 2:")
    assert "Row 2: gemOrderNumber is required for B2G orders" in error["details"]
    assert db.query(Order).count() == 1
    assert CounterRepository().current(db) == 1


def test_import_rejects_unknown_assignee(admin_headers, order_payload, db):
    body = [order_payload(), order_payload(assignedTo=4242)]
    r = client.post("/api/bulk-orders", json=body, headers=admin_headers)
    assert r.status_code == 400
    assert "Row 2: assignedTo: user not found" in r.json()["details"]
    assert db.query(Order).count() == 0
    assert CounterRepository().current(db) == 0


def test_xlsx_import(admin_headers, db):
    files = {"file": ("orders.xlsx", sheet_bytes(SHEET_ROWS),
                      "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")}
    r = client.post("/api/bulk-orders", files=files, headers=admin_headers)
    assert r.status_code == 201, r.json()
    assert r.json()["data"]["orderIds"] == ["PMTO1", "PMTO2"]

    first = db.query(Order).filter(Order.order_id == "PMTO1").one()
    assert float(first.total) == 236
    assert first.credit_days == 30
    assert first.same_address is True
    assert first.so_date.day == 5 and first.so_date.month == 2
    assert first.products[0].serial_nos == ["S1", "S2"]
    assert first.fulfilling_status == "Fulfilled"

    second = db.query(Order).filter(Order.order_id == "PMTO2").one()
    assert float(second.total) == 70
    assert second.fulfilling_status == "Not Fulfilled"


def test_csv_import_reports_sheet_line(admin_headers, db):
    rows = SHEET_ROWS + [dict(SHEET_ROWS[0], **{"Product Type": "IFPD"})]
    files = {"file": ("orders.csv", sheet_bytes(rows, fmt="csv"), "text/csv")}
    r = client.post("/api/bulk-orders", files=files, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"].startswith("Row 4:")
    assert db.query(Order).count() == 0
    assert CounterRepository().current(db) == 0


def test_empty_upload_rejected(admin_headers):
    files = {"file": ("orders.xlsx", b"", "application/octet-stream")}
    r = client.post("/api/bulk-orders", files=files, headers=admin_headers)
    assert r.status_code == 400

    r = client.post("/api/bulk-orders", json=[], headers=admin_headers)
    assert r.status_code == 400


def test_unsupported_extension_rejected(admin_headers):
    files = {"file": ("orders.txt", b"hello", "text/plain")}
    r = client.post("/api/bulk-orders", files=files, headers=admin_headers)
    assert r.status_code == 400
