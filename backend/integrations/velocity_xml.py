"""
Order Management Velocity XML

Serializes a normalized order into the fixed document the warehouse system
picks up from the FTP ``in`` directory. Element names, order and nesting are
the receiver's contract:

    ns0:Orders
      Header      PartnerId, SenderId, ReceiverId
      Settings    lookup UDFs, InventorySelectMethod, AllowBackorder, ReleaseOrders
      Order       ship-to fields, dates, CustomerPoNbr,
                  OrderUDFs/OrderUDF (NOTE), LineItems/LineItem*
"""

import xml.etree.ElementTree as ET
from datetime import date

from core.config import Settings, get_settings
from integrations.base import OrderLineItem, OrderPayload

VELOCITY_NAMESPACE = "http://www.internationaldatasystems.com/velocity/order"
DEFAULT_NOTE = "Shopify Order"
UNKNOWN_ITEM_NUMBER = "UNKNOWN"

# Fixed Settings block values
_SETTINGS_BLOCK = (
    ("ShipToIdLookupUDF", ""),
    ("ItemNbrLookupUDF", ""),
    ("InventorySelectMethod", "1"),
    ("AllowBackorder", "1"),
    ("ReleaseOrders", "0"),
)


def format_velocity_date(value: date) -> str:
    return value.strftime("%m/%d/%Y")


def item_number(item: OrderLineItem) -> str:
    """SKU, else product id, else a fixed placeholder."""
    if item.sku:
        return item.sku
    if item.product_id:
        return str(item.product_id)
    return UNKNOWN_ITEM_NUMBER


def _text(parent: ET.Element, tag: str, value: object = "") -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = "" if value is None else str(value)
    return element


def build_order_element(
    order: OrderPayload,
    *,
    order_date: date | None = None,
    settings: Settings | None = None,
) -> ET.Element:
    settings = settings or get_settings()
    today = format_velocity_date(order_date or date.today())
    address = order.shipping_address

    def ship_to(attr: str) -> str:
        return (getattr(address, attr, None) or "") if address else ""

    root = ET.Element("ns0:Orders", {"xmlns:ns0": VELOCITY_NAMESPACE})

    header = ET.SubElement(root, "Header")
    _text(header, "PartnerId", settings.velocity_partner_id)
    _text(header, "SenderId", settings.velocity_sender_id)
    _text(header, "ReceiverId", settings.velocity_receiver_id)

    settings_el = ET.SubElement(root, "Settings")
    for tag, value in _SETTINGS_BLOCK:
        _text(settings_el, tag, value)

    order_el = ET.SubElement(root, "Order")
    for tag, value in (
        ("CustNbr", settings.velocity_customer_number),
        ("ShipToId", "-1"),
        ("ShipToIdLookupValue", ""),
        ("ShipToName", ""),
        ("ShipToCompany", ship_to("company")),
        ("ShipToAddrLine1", ship_to("address1")),
        ("ShipToAddrLine2", ship_to("address2")),
        ("ShipToCity", ship_to("city")),
        ("ShipToState", ship_to("province_code")),
        ("ShipToPostalCode", ship_to("zip")),
        ("ShipToCountry", ship_to("country_code")),
        ("ShipToPhone", ship_to("phone")),
        ("OrderPriorityId", "2"),
        ("OrderDate", today),
        ("RequestShipDate", today),
        ("ExpirationDate", ""),
        ("PaymentTermId", "-1"),
        ("ShipMethodId", ""),
        ("FOBId", "-1"),
        ("CustomerPoNbr", order.order_number),
    ):
        _text(order_el, tag, value)

    udfs = ET.SubElement(order_el, "OrderUDFs")
    udf = ET.SubElement(udfs, "OrderUDF")
    _text(udf, "Name", "NOTE")
    _text(udf, "Value", f'"{order.note or DEFAULT_NOTE}"')

    line_items = ET.SubElement(order_el, "LineItems")
    for item in order.line_items:
        line = ET.SubElement(line_items, "LineItem")
        _text(line, "ItemNbr", item_number(item))
        _text(line, "QtyOrdered", item.quantity)
        ET.SubElement(line, "LineItemUDFs")

    return root


def format_order_xml(
    order: OrderPayload,
    *,
    order_date: date | None = None,
    settings: Settings | None = None,
) -> bytes:
    """Render the Velocity order document as UTF-8 bytes with an XML declaration."""
    root = build_order_element(order, order_date=order_date, settings=settings)
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="UTF-8", xml_declaration=True)


def order_filename(order: OrderPayload) -> str:
    return f"order_{order.order_number}.xml"
