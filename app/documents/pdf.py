from __future__ import annotations

from io import BytesIO
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas

CENT = Decimal("0.01")


def money(value: Any) -> Decimal:
    """Shopify sends prices as strings ("19.90"); blanks and junk count as 0."""
    try:
        return Decimal(str(value if value not in (None, "") else "0")).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return Decimal("0.00")


def _qty(value: Any) -> int:
    try:
        return int(value or 1)
    except (TypeError, ValueError):
        return 1


def _fmt_date(value: Any) -> str:
    if not value:
        return datetime.now(timezone.utc).date().isoformat()
    s = str(value)
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return s[:10]


def _truncate(text: str, n: int) -> str:
    return text if len(text) <= n else text[: n - 3] + "..."


def invoice_lines(order: Dict[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for item in order.get("line_items") or []:
        qty = _qty(item.get("quantity"))
        price = money(item.get("price"))
        out.append(
            {
                "title": item.get("title") or item.get("name") or "Product",
                "sku": item.get("sku") or "",
                "quantity": qty,
                "price": price,
                "total": (price * qty).quantize(CENT),
            }
        )
    return out


def invoice_totals(order: Dict[str, Any]) -> Dict[str, Decimal]:
    """
    Subtotal/tax/total come from the order as Shopify computed them
    (discounts included); shipping from total_shipping_price_set.
    """
    shipping = (((order.get("total_shipping_price_set") or {}).get("shop_money")) or {}).get("amount")
    return {
        "subtotal": money(order.get("subtotal_price")),
        "tax": money(order.get("total_tax")),
        "shipping": money(shipping),
        "total": money(order.get("total_price")),
    }


def packing_summary(order: Dict[str, Any], net_weight: float, gross_weight: float) -> Dict[str, Any]:
    if net_weight is None or gross_weight is None or net_weight <= 0 or gross_weight <= 0:
        raise ValueError("Please enter both Net and Gross weight.")
    if gross_weight < net_weight:
        raise ValueError("Gross weight cannot be less than net weight.")

    lines = []
    total_units = 0
    total_grams = 0
    for item in order.get("line_items") or []:
        qty = _qty(item.get("quantity"))
        grams = int(item.get("grams") or 0)
        total_units += qty
        total_grams += grams * qty
        lines.append(
            {
                "title": item.get("title") or item.get("name") or "Product",
                "sku": item.get("sku") or "",
                "quantity": qty,
                "weight_kg": round(grams * qty / 1000.0, 3),
            }
        )
    return {
        "lines": lines,
        "total_units": total_units,
        "items_weight_kg": round(total_grams / 1000.0, 3),
        "net_weight_kg": round(float(net_weight), 3),
        "gross_weight_kg": round(float(gross_weight), 3),
    }


def _address_lines(addr: Optional[Dict[str, Any]]) -> List[str]:
    addr = addr or {}
    lines = []
    name = addr.get("name") or " ".join(x for x in [addr.get("first_name"), addr.get("last_name")] if x)
    if name:
        lines.append(name)
    if addr.get("address1"):
        lines.append(addr["address1"])
    if addr.get("address2"):
        lines.append(addr["address2"])
    city = ", ".join(x for x in [addr.get("city"), addr.get("province")] if x)
    if city:
        lines.append(f"{city} {addr.get('zip') or ''}".strip())
    if addr.get("country"):
        lines.append(addr["country"])
    return lines


class _Doc:
    """Small cursor over a reportlab canvas."""

    def __init__(self, title: str):
        self.buf = BytesIO()
        self.c = canvas.Canvas(self.buf, pagesize=A4)
        self.c.setTitle(title)
        self.W, self.H = A4
        self.margin = 2 * cm
        self.x = self.margin
        self.y = self.H - self.margin

    def new_page(self):
        self.c.showPage()
        self.y = self.H - self.margin

    def ensure(self, space: float):
        if self.y < self.margin + space:
            self.new_page()

    def heading(self, text: str, size: int = 16):
        self.c.setFont("Helvetica-Bold", size)
        self.c.drawString(self.x, self.y, text)
        self.y -= size + 6

    def line(self, text: str, *, bold: bool = False, size: int = 10, indent: float = 0):
        self.ensure(14)
        self.c.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        self.c.drawString(self.x + indent, self.y, text)
        self.y -= size + 4

    def kv(self, label: str, value: str):
        self.ensure(14)
        self.c.setFont("Helvetica-Bold", 10)
        self.c.drawString(self.x, self.y, f"{label}:")
        self.c.setFont("Helvetica", 10)
        self.c.drawString(self.x + 110, self.y, value or "-")
        self.y -= 14

    def row(self, cols: List[tuple], *, bold: bool = False):
        """cols: (x offset, text, align) with align in l/r"""
        self.ensure(14)
        self.c.setFont("Helvetica-Bold" if bold else "Helvetica", 10)
        for off, text, align in cols:
            if align == "r":
                self.c.drawRightString(self.x + off, self.y, text)
            else:
                self.c.drawString(self.x + off, self.y, text)
        self.y -= 14

    def rule(self):
        self.c.line(self.x, self.y + 8, self.W - self.margin, self.y + 8)
        self.y -= 4

    def gap(self, h: float = 10):
        self.y -= h

    def finish(self) -> bytes:
        self.c.save()
        return self.buf.getvalue()


def _shop_header(d: _Doc, shop: Dict[str, Any]):
    d.heading(shop.get("name") or "Your Store", size=14)
    for ln in _address_lines(shop):
        d.line(ln)
    d.gap()


def build_invoice_pdf(*, order: Dict[str, Any], shop: Dict[str, Any]) -> bytes:
    number = str(order.get("order_number") or order.get("id") or "-")
    currency = order.get("currency") or shop.get("currency") or "USD"
    d = _Doc(f"Invoice {number}")

    _shop_header(d, shop)
    d.heading("COMMERCIAL INVOICE", size=18)
    d.kv("Invoice #", number)
    d.kv("Date", _fmt_date(order.get("created_at")))
    d.kv("Currency", currency)
    d.gap()

    d.line("SHIP TO:", bold=True)
    ship = _address_lines(order.get("shipping_address"))
    if not ship and order.get("customer"):
        cust = order["customer"]
        ship = [" ".join(x for x in [cust.get("first_name"), cust.get("last_name")] if x)]
    for ln in ship or ["-"]:
        d.line(ln)
    d.gap()

    d.row([(0, "Item", "l"), (250, "Qty", "r"), (340, "Price", "r"), (440, "Total", "r")], bold=True)
    d.rule()
    lines = invoice_lines(order)
    for ln in lines:
        d.row(
            [
                (0, _truncate(ln["title"], 40), "l"),
                (250, str(ln["quantity"]), "r"),
                (340, f"{ln['price']:.2f}", "r"),
                (440, f"{ln['total']:.2f}", "r"),
            ]
        )
    if not lines:
        d.line("No items found")
    d.gap()

    totals = invoice_totals(order)
    d.rule()
    d.row([(340, "Subtotal:", "r"), (440, f"{totals['subtotal']:.2f}", "r")])
    d.row([(340, "Shipping:", "r"), (440, f"{totals['shipping']:.2f}", "r")])
    d.row([(340, "Tax:", "r"), (440, f"{totals['tax']:.2f}", "r")])
    d.row([(340, "Total:", "r"), (440, f"{totals['total']:.2f} {currency}", "r")], bold=True)

    return d.finish()


def build_packing_list_pdf(
    *,
    order: Dict[str, Any],
    shop: Dict[str, Any],
    net_weight: float,
    gross_weight: float,
) -> bytes:
    summary = packing_summary(order, net_weight, gross_weight)
    number = str(order.get("order_number") or order.get("id") or "-")
    d = _Doc(f"Packing list {number}")

    _shop_header(d, shop)
    d.heading("PACKING LIST", size=18)
    d.kv("Order #", number)
    d.kv("Date", _fmt_date(order.get("created_at")))
    d.gap()

    d.line("CONSIGNEE:", bold=True)
    for ln in _address_lines(order.get("shipping_address")) or ["-"]:
        d.line(ln)
    d.gap()

    d.row([(0, "Item", "l"), (260, "SKU", "l"), (400, "Qty", "r"), (470, "Weight (kg)", "r")], bold=True)
    d.rule()
    for ln in summary["lines"]:
        d.row(
            [
                (0, _truncate(ln["title"], 40), "l"),
                (260, _truncate(ln["sku"], 20), "l"),
                (400, str(ln["quantity"]), "r"),
                (470, f"{ln['weight_kg']:.3f}", "r"),
            ]
        )
    d.gap()
    d.rule()
    d.kv("Total units", str(summary["total_units"]))
    d.kv("Items weight", f"{summary['items_weight_kg']:.3f} kg")
    d.kv("Net weight", f"{summary['net_weight_kg']:.3f} kg")
    d.kv("Gross weight", f"{summary['gross_weight_kg']:.3f} kg")

    return d.finish()


def build_certificate_pdf(
    *,
    product: Dict[str, Any],
    shop: Dict[str, Any],
    country_of_origin: Optional[str] = None,
) -> bytes:
    pid = str(product.get("id") or "-")
    d = _Doc(f"Certificate of origin {pid}")

    d.heading("CERTIFICATE OF ORIGIN", size=18)
    d.kv("Certificate No", f"COO-{pid}")
    d.kv("Date", datetime.now(timezone.utc).date().isoformat())
    d.gap()

    d.line("EXPORTER", bold=True, size=12)
    _shop_header(d, shop)

    d.line("PRODUCT INFORMATION", bold=True, size=12)
    d.kv("Product Name", str(product.get("name") or "-"))
    d.kv("Product ID", pid)
    d.kv("Vendor", str(product.get("vendor") or "-"))
    d.kv("Product Type", str(product.get("type") or "-"))
    d.gap()

    d.line("DECLARATION OF ORIGIN", bold=True, size=12)
    d.line("I hereby certify that the goods described above originated in:")
    d.kv("Country of Origin", country_of_origin or "[TO BE SPECIFIED]")
    d.gap(24)

    d.line("Authorized Signature: ________________________")
    d.gap(6)
    d.line("Name: ________________________")
    d.gap(6)
    d.line("Title: ________________________")

    return d.finish()
