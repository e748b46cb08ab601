import random

import pytest
from fastapi.testclient import TestClient

from orderflow.main import app
from orderflow.models import Order
from orderflow.services.projections import PROJECTIONS, ProjectionService

client = TestClient(app)

DEPOTS = {"Patna", "Bareilly", "Ranchi", "Lucknow", "Delhi", "Jaipur", "Rajasthan"}

# Same conditions written as plain Python; None must behave like "any other value" for != and not-in
EXPECTED = {
    "production": lambda o: (
        o.sostatus == "Approved"
        and o.dispatch_from not in DEPOTS
        and o.fulfilling_status != "Fulfilled"
    ),
    "finished_goods": lambda o: o.fulfilling_status == "Fulfilled" and o.dispatch_status != "Delivered",
    "installation": lambda o: (
        o.dispatch_status == "Delivered"
        and o.installation_status in ("Pending", "In Progress", "Hold", "Site Not Ready")
    ),
    "accounts": lambda o: o.installation_status == "Completed" and o.payment_received != "Received",
    "verification": lambda o: (
        o.payment_terms in ("100% Advance", "Partial Advance")
        and o.sostatus not in ("Accounts Approved", "Approved")
    ),
    "billing": lambda o: o.sostatus == "Approved" and o.bill_status != "Billing Complete",
    "production_approval": lambda o: (
        o.sostatus == "Accounts Approved"
        or (o.sostatus == "Pending for Approval" and o.payment_terms == "Credit")
    ),
}

STAGE_PATHS = {
    "production": "/api/production-orders",
    "finished_goods": "/api/finished-goods",
    "installation": "/api/installation-orders",
    "accounts": "/api/accounts-orders",
    "verification": "/api/get-verification-orders",
    "billing": "/api/get-bill-orders",
    "production_approval": "/api/production-approval-orders",
}


@pytest.fixture
def seeded_orders(db, admin):
    rng = random.Random(7)
    choices = {
        "sostatus": ["Pending for Approval", "Accounts Approved", "Approved"],
        "dispatch_from": [None, "Morinda", "Patna", "Delhi"],
        "fulfilling_status": [None, "Fulfilled", "Not Fulfilled", "Partial Dispatch"],
        "dispatch_status": [None, "Not Dispatched", "Dispatched", "Delivered"],
        "installation_status": [None, "Pending", "In Progress", "Completed", "Failed", "Hold"],
        "payment_received": [None, "Received", "Not Received"],
        "payment_terms": [None, "100% Advance", "Partial Advance", "Credit"],
        "bill_status": [None, "Pending", "Billing Complete"],
    }
    orders = []
    for index in range(300):
        values = {field: rng.choice(options) for field, options in choices.items()}
        orders.append(Order(order_id=f"T{index}", customer_name=f"Customer {index}",
                            created_by_id=admin.id, **values))
    db.add_all(orders)
    db.commit()
    return orders


def test_every_projection_has_an_expected_predicate():
    assert set(PROJECTIONS) == set(EXPECTED) == set(STAGE_PATHS)


def test_projections_match_predicates(db, admin, seeded_orders):
    service = ProjectionService(db)
    for name, predicate in EXPECTED.items():
        expected = {o.order_id for o in seeded_orders if predicate(o)}
        actual = {o.order_id for o in service.list_stage(admin, name)}
        assert actual == expected, name


def test_null_status_counts_as_not_equal(db, admin):
    db.add(Order(order_id="N1", sostatus="Approved", dispatch_from=None,
                 fulfilling_status=None, bill_status=None, created_by_id=admin.id))
    db.commit()
    service = ProjectionService(db)
    assert [o.order_id for o in service.list_stage(admin, "production")] == ["N1"]
    assert [o.order_id for o in service.list_stage(admin, "billing")] == ["N1"]


def test_stage_routes(admin_headers, seeded_orders):
    for name, path in STAGE_PATHS.items():
        r = client.get(path, headers=admin_headers)
        assert r.status_code == 200, path
        returned = {o["orderId"] for o in r.json()["data"]}
        assert returned == {o.order_id for o in seeded_orders if EXPECTED[name](o)}, path


def test_stage_routes_are_role_scoped(make_user, headers_for, db, admin):
    seller = make_user("seller")
    db.add_all([
        Order(order_id="MINE", sostatus="Approved", created_by_id=seller.id),
        Order(order_id="THEIRS", sostatus="Approved", created_by_id=admin.id),
    ])
    db.commit()
    r = client.get("/api/get-bill-orders", headers=headers_for(seller))
    assert [o["orderId"] for o in r.json()["data"]] == ["MINE"]
