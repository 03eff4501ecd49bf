"""
Tests for the Velocity order XML formatter.
"""

import xml.etree.ElementTree as ET
from datetime import date

import pytest

from core.config import Settings
from integrations.base import OrderLineItem, OrderPayload, ShippingAddress
from integrations.velocity_xml import (
    VELOCITY_NAMESPACE,
    build_order_element,
    format_order_xml,
    format_velocity_date,
    item_number,
    order_filename,
)

SYNC_DATE = date(2026, 3, 7)


def _order(**overrides) -> OrderPayload:
    fields = dict(
        id="1001",
        order_number="1001",
        email="buyer@example.com",
        phone=None,
        note="Ring twice",
        created_at="2026-03-06T10:00:00Z",
        total_price="19.99",
        currency="USD",
        shipping_address=ShippingAddress(
            first_name="Ada",
            last_name="Lovelace",
            company="Analytical Engines",
            address1="12 Babbage Way",
            address2="Unit 3",
            city="Springfield",
            province="Illinois",
            province_code="IL",
            zip="62701",
            country="United States",
            country_code="US",
            phone="555-0100",
        ),
        line_items=[OrderLineItem(quantity=2, sku="WID-1", product_id="111")],
    )
    fields.update(overrides)
    return OrderPayload(**fields)


def _parse(order: OrderPayload) -> ET.Element:
    return ET.fromstring(format_order_xml(order, order_date=SYNC_DATE, settings=Settings()))


class TestDocumentShape:
    def test_root_is_namespaced_orders(self):
        root = _parse(_order())
        assert root.tag == f"{{{VELOCITY_NAMESPACE}}}Orders"
        assert [child.tag for child in root] == ["Header", "Settings", "Order"]

    def test_xml_declaration_and_encoding(self):
        document = format_order_xml(_order(), order_date=SYNC_DATE, settings=Settings())
        assert document.startswith(b"<?xml version='1.0' encoding='UTF-8'?>")
        assert b"<ns0:Orders" in document

    def test_header_uses_configured_partner(self):
        settings = Settings(velocity_partner_id="PARTNER", velocity_sender_id="SENDER", velocity_receiver_id="WH")
        root = ET.fromstring(format_order_xml(_order(), order_date=SYNC_DATE, settings=settings))
        assert root.findtext("Header/PartnerId") == "PARTNER"
        assert root.findtext("Header/SenderId") == "SENDER"
        assert root.findtext("Header/ReceiverId") == "WH"

    def test_fixed_settings_block(self):
        root = _parse(_order())
        assert root.findtext("Settings/InventorySelectMethod") == "1"
        assert root.findtext("Settings/AllowBackorder") == "1"
        assert root.findtext("Settings/ReleaseOrders") == "0"
        assert root.findtext("Settings/ShipToIdLookupUDF") == ""


class TestOrderElement:
    def test_ship_to_fields(self):
        root = _parse(_order())
        assert root.findtext("Order/ShipToCompany") == "Analytical Engines"
        assert root.findtext("Order/ShipToAddrLine1") == "12 Babbage Way"
        assert root.findtext("Order/ShipToAddrLine2") == "Unit 3"
        assert root.findtext("Order/ShipToCity") == "Springfield"
        assert root.findtext("Order/ShipToState") == "IL"
        assert root.findtext("Order/ShipToPostalCode") == "62701"
        assert root.findtext("Order/ShipToCountry") == "US"
        assert root.findtext("Order/ShipToPhone") == "555-0100"
        assert root.findtext("Order/ShipToName") == ""

    def test_missing_address_renders_empty_fields(self):
        root = _parse(_order(shipping_address=None))
        assert root.find("Order/ShipToCity") is not None
        assert root.findtext("Order/ShipToCity") == ""
        assert root.findtext("Order/ShipToCountry") == ""

    def test_dates_use_sync_date(self):
        root = _parse(_order())
        assert root.findtext("Order/OrderDate") == "03/07/2026"
        assert root.findtext("Order/RequestShipDate") == "03/07/2026"
        assert root.findtext("Order/ExpirationDate") == ""

    def test_customer_po_is_order_number(self):
        root = _parse(_order(order_number="2042"))
        assert root.findtext("Order/CustomerPoNbr") == "2042"
        assert root.findtext("Order/CustNbr") == "ACME"

    def test_note_is_quoted(self):
        root = _parse(_order())
        assert root.findtext("Order/OrderUDFs/OrderUDF/Name") == "NOTE"
        assert root.findtext("Order/OrderUDFs/OrderUDF/Value") == '"Ring twice"'

    def test_missing_note_uses_default(self):
        root = _parse(_order(note=None))
        assert root.findtext("Order/OrderUDFs/OrderUDF/Value") == '"Shopify Order"'

    def test_one_line_item_per_input_line(self):
        order = _order(
            line_items=[
                OrderLineItem(quantity=2, sku="WID-1"),
                OrderLineItem(quantity=5, product_id="222"),
                OrderLineItem(quantity=1),
            ]
        )
        lines = _parse(order).findall("Order/LineItems/LineItem")
        assert [line.findtext("ItemNbr") for line in lines] == ["WID-1", "222", "UNKNOWN"]
        assert [line.findtext("QtyOrdered") for line in lines] == ["2", "5", "1"]
        assert all(line.find("LineItemUDFs") is not None for line in lines)

    def test_special_characters_are_escaped(self):
        order = _order(note='Fragile <glass> & "china"')
        document = format_order_xml(order, order_date=SYNC_DATE, settings=Settings())
        assert b"&lt;glass&gt; &amp;" in document
        root = ET.fromstring(document)
        assert root.findtext("Order/OrderUDFs/OrderUDF/Value") == '"Fragile <glass> & "china""'

    def test_build_order_element_defaults_to_today(self):
        root = build_order_element(_order(), settings=Settings())
        assert root.findtext("Order/OrderDate") == format_velocity_date(date.today())


@pytest.mark.parametrize(
    "item, expected",
    [
        (OrderLineItem(quantity=1, sku="ABC", product_id="9"), "ABC"),
        (OrderLineItem(quantity=1, sku="", product_id="9"), "9"),
        (OrderLineItem(quantity=1), "UNKNOWN"),
    ],
)
def test_item_number_fallbacks(item, expected):
    assert item_number(item) == expected


def test_order_filename():
    assert order_filename(_order(order_number="1001")) == "order_1001.xml"
