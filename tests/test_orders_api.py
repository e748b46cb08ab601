import io
import json
from datetime import timedelta

from fastapi.testclient import TestClient
from openpyxl import load_workbook

from orderflow.core.security import create_access_token
from orderflow.main import app
from orderflow.models import Notification, Order
from orderflow.services.bulk_service import EXPORT_COLUMNS

client = TestClient(app)


def create_order(headers, payload):
    r = client.post("/api/orders", json=payload, headers=headers)
    assert r.status_code == 201, r.json()
    return r.json()["data"]


def test_requires_authentication():
    r = client.get("/api/orders")
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_expired_token_is_rejected(admin):
    token = create_access_token({"sub": admin.id}, expires_delta=timedelta(minutes=-1))
    r = client.get("/api/orders", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_create_order_computes_total_and_id(admin_headers, order_payload, db):
    data = create_order(admin_headers, order_payload())
    assert data["orderId"] == "PMTO1"
    assert data["total"] == 306
    assert data["paymentDue"] == 206
    assert data["customername"] == "Acme Schools"
    assert data["sostatus"] == "Pending for Approval"
    assert data["fulfillingStatus"] == "Not Fulfilled"
    assert data["createdBy"]["username"] == "admin"
    assert [p["productType"] for p in data["products"]] == ["Chair", "Table"]

    second = create_order(admin_headers, order_payload())
    assert second["orderId"] == "PMTO2"

    messages = [n.message for n in db.query(Notification).all()]
    assert "New sales order created by admin for Acme Schools (Order ID: PMTO1)" in messages


def test_create_validation_errors(admin_headers, order_payload):
    r = client.post("/api/orders", json=order_payload(orderType="B2G"), headers=admin_headers)
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error_code"] == "VALIDATION_ERROR"
    assert "gemOrderNumber is required for B2G orders" in body["details"]

    r = client.post("/api/orders", json=order_payload(products=[]), headers=admin_headers)
    assert r.status_code == 400
    assert "At least one product is required" in r.json()["details"]


def test_create_rejects_unknown_assignee(admin_headers, order_payload, db):
    r = client.post("/api/orders", json=order_payload(assignedTo=9999), headers=admin_headers)
    assert r.status_code == 400
    body = r.json()
    assert body["error_code"] == "VALIDATION_ERROR"
    assert "assignedTo: user not found" in body["details"]
    assert db.query(Order).count() == 0


def test_create_with_existing_assignee(admin_headers, order_payload, make_user):
    member = make_user("field-rep")
    data = create_order(admin_headers, order_payload(assignedTo=member.id))
    assert data["assignedTo"]["username"] == "field-rep"


def test_create_rejects_ifpd_without_brand(admin_headers, order_payload):
    payload = order_payload(products=[
        {"productType": "IFPD", "qty": 1, "unitPrice": 1000, "gst": "18", "modelNos": "M-75"},
    ])
    r = client.post("/api/orders", json=payload, headers=admin_headers)
    assert r.status_code == 400
    assert "Product 1: brand is required for IFPD products" in r.json()["details"]


def test_create_multipart_with_po_file(admin_headers, order_payload):
    payload = order_payload()
    form = {key: value for key, value in payload.items() if key != "products"}
    form["products"] = json.dumps(payload["products"])
    files = {"poFile": ("po.pdf", b"%PDF-1.4 test", "application/pdf")}
    r = client.post("/api/orders", data=form, files=files, headers=admin_headers)
    assert r.status_code == 201, r.json()
    data = r.json()["data"]
    assert data["total"] == 306
    assert data["poFilePath"].startswith("/Uploads/")
    assert data["poFilePath"].endswith("po.pdf")


def test_edit_ignores_unknown_fields_and_bad_dates(admin_headers, order_payload):
    order = create_order(admin_headers, order_payload())
    r = client.put(f"/api/orders/{order['id']}", json={
        "city": "Ranchi",
        "orderId": "HACKED",
        "dispatchDate": "not a date",
        "invoiceDate": "2024-03-15",
    }, headers=admin_headers)
    assert r.status_code == 200, r.json()
    data = r.json()["data"]
    assert data["city"] == "Ranchi"
    assert data["orderId"] == order["orderId"]
    assert data["dispatchDate"] is None
    assert data["invoiceDate"].startswith("2024-03-15")


def test_edit_rejects_ifpd_without_brand(admin_headers, order_payload):
    order = create_order(admin_headers, order_payload())
    r = client.put(f"/api/orders/{order['id']}", json={
        "products": [{"productType": "IFPD", "modelNos": ["M-75"]}],
    }, headers=admin_headers)
    assert r.status_code == 400
    assert "Product 1: brand is required for IFPD products" in r.json()["details"]


def test_edit_merges_products_with_stored_lines(admin_headers, order_payload):
    order = create_order(admin_headers, order_payload())
    r = client.put(f"/api/orders/{order['id']}", json={
        "products": [{"qty": 5}],
    }, headers=admin_headers)
    assert r.status_code == 200
    products = r.json()["data"]["products"]
    assert len(products) == 1
    assert products[0]["productType"] == "Chair"
    assert products[0]["qty"] == 5
    assert products[0]["unitPrice"] == 100


def test_edit_without_total_keeps_stored_money_fields(admin_headers, order_payload):
    order = create_order(admin_headers, order_payload())
    r = client.put(f"/api/orders/{order['id']}", json={
        "products": [{"qty": 10}], "paymentCollected": "300",
    }, headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["products"][0]["qty"] == 10
    assert data["total"] == 306
    assert data["paymentDue"] == 206

    r = client.put(f"/api/orders/{order['id']}", json={"total": "1200", "paymentDue": "900"}, headers=admin_headers)
    assert r.json()["data"]["total"] == 1200
    assert r.json()["data"]["paymentDue"] == 900


def test_edit_unknown_order_is_404(admin_headers):
    r = client.put("/api/orders/999", json={"city": "Delhi"}, headers=admin_headers)
    assert r.status_code == 404


def test_fulfilled_marks_complete_and_stamps_date(admin_headers, order_payload):
    order = create_order(admin_headers, order_payload())
    r = client.put(f"/api/orders/{order['id']}", json={"fulfillingStatus": "Fulfilled"}, headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["fulfillingStatus"] == "Fulfilled"
    assert data["completionStatus"] == "Complete"
    assert data["fulfillmentDate"] is not None


def test_supplied_fulfillment_date_is_kept(admin_headers, order_payload):
    order = create_order(admin_headers, order_payload())
    r = client.put(f"/api/orders/{order['id']}", json={
        "fulfillingStatus": "Fulfilled",
        "fulfillmentDate": "2024-01-10",
    }, headers=admin_headers)
    assert r.json()["data"]["fulfillmentDate"].startswith("2024-01-10")


def test_delivered_stamps_receipt_date(admin_headers, order_payload):
    order = create_order(admin_headers, order_payload())
    r = client.put(f"/api/orders/{order['id']}", json={"dispatchStatus": "Delivered"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["receiptDate"] is not None


def test_backward_transition_is_accepted(admin_headers, order_payload):
    order = create_order(admin_headers, order_payload())
    client.put(f"/api/orders/{order['id']}", json={"sostatus": "Approved"}, headers=admin_headers)
    r = client.put(f"/api/orders/{order['id']}", json={"sostatus": "Pending for Approval"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["sostatus"] == "Pending for Approval"


def test_invalid_status_value_rejected(admin_headers, order_payload):
    order = create_order(admin_headers, order_payload())
    r = client.put(f"/api/orders/{order['id']}", json={"dispatchStatus": "Lost"}, headers=admin_headers)
    assert r.status_code == 400


def test_second_delete_is_404(admin_headers, order_payload, db):
    order = create_order(admin_headers, order_payload())
    r = client.delete(f"/api/orders/{order['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["success"] is True
    r = client.delete(f"/api/orders/{order['id']}", headers=admin_headers)
    assert r.status_code == 404
    assert db.query(Order).count() == 0


def test_sales_can_only_delete_own_orders(make_user, headers_for, order_payload):
    owner = make_user("owner")
    other = make_user("other")
    order = create_order(headers_for(owner), order_payload())
    r = client.delete(f"/api/orders/{order['id']}", headers=headers_for(other))
    assert r.status_code == 403
    r = client.delete(f"/api/orders/{order['id']}", headers=headers_for(owner))
    assert r.status_code == 200


def test_sales_scope_includes_team(make_user, headers_for, order_payload, admin_headers):
    leader = make_user("leader")
    member = make_user("member", leader=leader)
    outsider = make_user("outsider")
    create_order(headers_for(leader), order_payload(customername="Leader Co"))
    create_order(headers_for(member), order_payload(customername="Member Co"))
    create_order(headers_for(outsider), order_payload(customername="Outsider Co"))

    def names(headers):
        r = client.get("/api/orders", headers=headers)
        assert r.status_code == 200
        return [o["customername"] for o in r.json()["data"]]

    assert names(headers_for(leader)) == ["Member Co", "Leader Co"]
    assert names(headers_for(member)) == ["Member Co"]
    assert names(headers_for(outsider)) == ["Outsider Co"]
    assert len(names(admin_headers)) == 3


def test_empty_export_is_header_only(admin_headers):
    r = client.get("/api/export", headers=admin_headers)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    assert "orders_" in r.headers["content-disposition"]
    sheet = load_workbook(io.BytesIO(r.content))["Orders"]
    assert sheet.max_row == 1
    assert [cell.value for cell in sheet[1]] == EXPORT_COLUMNS


def test_export_one_row_per_product(admin_headers, order_payload):
    create_order(admin_headers, order_payload())
    r = client.get("/api/export", headers=admin_headers)
    sheet = load_workbook(io.BytesIO(r.content))["Orders"]
    rows = [dict(zip(EXPORT_COLUMNS, [c.value for c in row])) for row in sheet.iter_rows(min_row=2)]
    assert len(rows) == 2
    assert rows[0]["Order ID"] == rows[1]["Order ID"] == "PMTO1"
    assert rows[0]["Total"] == 306
    assert rows[1]["Total"] in (None, "")
    assert rows[0]["Product Type"] == "Chair"
    assert rows[1]["Product Type"] == "Table"
    assert len(rows[0]["SO Date"]) == 10


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
