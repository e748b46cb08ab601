from decimal import Decimal

import pytest

from orderflow.core.exceptions import ValidationError
from orderflow.schemas.order import OrderCreate, ProductIn, normalize_gst, split_list
from orderflow.services.order_rules import (
    compute_total, compute_payment_due, default_fulfilling_status, default_warranty,
    merge_products, parse_payload, prepare_order,
)


def test_total_example():
    products = [
        {"qty": 2, "unit_price": 100, "gst": "18"},
        {"qty": 1, "unit_price": 50, "gst": "including"},
    ]
    assert compute_total(products, freight=20) == Decimal("306.00")


def test_total_rounds_to_cents():
    products = [{"qty": 3, "unit_price": "33.333", "gst": "0"}]
    assert compute_total(products) == Decimal("100.00")


def test_payment_due_is_total_minus_collected():
    assert compute_payment_due(Decimal("306"), "100") == Decimal("206.00")
    assert compute_payment_due(Decimal("306"), None) == Decimal("306.00")


def test_gst_and_list_normalization():
    assert normalize_gst("18%") == "18"
    assert normalize_gst(" Including ") == "including"
    assert normalize_gst(12.5) == "12.5"
    assert split_list("A1, A2 ,,A3") == ["A1", "A2", "A3"]
    with pytest.raises(ValueError):
        normalize_gst("abc")


def test_default_warranty_rules():
    assert default_warranty("B2G", "IFPD", "Promark") == "As Per Tender"
    assert default_warranty("B2C", "IFPD", "Promark") == "3 Years"
    assert default_warranty("B2C", "Chair", "") == "1 Year"


def test_default_fulfilling_status():
    assert default_fulfilling_status("Demo", "Morinda") == "Fulfilled"
    assert default_fulfilling_status("B2C", "Patna") == "Fulfilled"
    assert default_fulfilling_status("B2C", "Morinda") == "Not Fulfilled"


def test_prepare_order_derives_money_and_defaults(order_payload):
    prepared = prepare_order(parse_payload(OrderCreate, order_payload()))
    assert prepared.values["total"] == Decimal("306.00")
    assert prepared.values["payment_due"] == Decimal("206.00")
    assert prepared.values["fulfilling_status"] == "Not Fulfilled"
    assert prepared.values["so_date"] is not None
    assert prepared.products[0]["size"] == "N/A"
    assert prepared.products[0]["warranty"] == "1 Year"


def test_prepare_order_keeps_supplied_total(order_payload):
    prepared = prepare_order(parse_payload(OrderCreate, order_payload(total="500", paymentCollected="200")))
    assert prepared.values["total"] == Decimal("500")
    assert prepared.values["payment_due"] == Decimal("300.00")


def test_conditional_requirements(order_payload):
    payload = order_payload(orderType="B2G", paymentTerms=None)
    with pytest.raises(ValidationError) as exc:
        prepare_order(parse_payload(OrderCreate, payload))
    messages = exc.value.messages
    assert "gemOrderNumber is required for B2G orders" in messages
    assert "paymentTerms is required for non-Demo orders" in messages


def test_demo_requires_demo_date_but_not_payment_terms(order_payload):
    with pytest.raises(ValidationError) as exc:
        prepare_order(parse_payload(OrderCreate, order_payload(orderType="Demo", paymentTerms=None)))
    assert exc.value.messages == ["demoDate is required for Demo orders"]

    prepared = prepare_order(parse_payload(
        OrderCreate, order_payload(orderType="Demo", paymentTerms=None, demoDate="2024-05-01")))
    assert prepared.values["fulfilling_status"] == "Fulfilled"


def test_unknown_dispatch_location_rejected(order_payload):
    with pytest.raises(ValidationError) as exc:
        prepare_order(parse_payload(OrderCreate, order_payload(dispatchFrom="Mumbai")))
    assert "dispatchFrom 'Mumbai' is not a valid dispatch location" in exc.value.messages


def test_ifpd_needs_brand_and_model_numbers(order_payload):
    payload = order_payload(products=[{"productType": "IFPD", "qty": 1, "unitPrice": 1000, "gst": "18"}])
    with pytest.raises(ValidationError) as exc:
        prepare_order(parse_payload(OrderCreate, payload))
    assert "Product 1: brand is required for IFPD products" in exc.value.messages
    assert "Product 1: modelNos are required for IFPD products" in exc.value.messages


def test_bad_enum_value_is_a_validation_error(order_payload):
    with pytest.raises(ValidationError):
        parse_payload(OrderCreate, order_payload(paymentMethod="Barter"))


def test_merge_products_fills_from_stored_line():
    class Stored:
        product_type = "Chair"
        size = "Large"
        spec = "Oak"
        qty = 4
        unit_price = Decimal("120")
        gst = "12"
        brand = "Acme"
        warranty = "2 Years"
        serial_nos = ["S1"]
        model_nos = []
        product_code = []

    merged = merge_products([{"qty": 5}, {"productType": "Desk"}], [Stored()])
    assert merged[0]["product_type"] == "Chair"
    assert merged[0]["qty"] == 5
    assert merged[0]["gst"] == "12"
    assert merged[1] == {
        "product_type": "Desk", "size": "N/A", "spec": "N/A", "qty": 1, "unit_price": 0,
        "gst": "18", "brand": "", "warranty": "1 Year",
        "serial_nos": [], "model_nos": [], "product_code": [],
    }


def test_merge_products_rejects_empty_list():
    with pytest.raises(ValidationError):
        merge_products([], [])


def test_product_qty_parsed_from_text():
    assert ProductIn.model_validate({"qty": "3"}).qty == 3
