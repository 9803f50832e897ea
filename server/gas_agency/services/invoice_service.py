"""Invoice totals and PDF rendering for delivered bookings."""

import io
from dataclasses import dataclass
from datetime import datetime

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

BRAND_COLOR = HexColor("#B45309")
TEXT_COLOR = HexColor("#1F2937")
MUTED_COLOR = HexColor("#6B7280")

W, H = A4
MARGIN = 50


@dataclass
class InvoiceTotals:
    invoice_number: str
    quantity: int
    unit_price: int
    subtotal: float
    gst: float
    total: float


def invoice_number_for(booking_id) -> str:
    """``INV-`` followed by the last eight characters of the booking id, upper-cased."""
    return f"INV-{str(booking_id)[-8:].upper()}"


def compute_invoice_totals(booking, unit_price: int, gst_rate: float) -> InvoiceTotals:
    subtotal = float(unit_price * booking.quantity)
    gst = round(subtotal * gst_rate, 2)
    return InvoiceTotals(
        invoice_number=invoice_number_for(booking.id),
        quantity=booking.quantity,
        unit_price=unit_price,
        subtotal=subtotal,
        gst=gst,
        total=round(subtotal + gst, 2),
    )


def render_invoice_pdf(booking, totals: InvoiceTotals, gst_rate: float) -> bytes:
    """
    Draw a single-page A4 invoice.

    Args:
        booking: Booking being invoiced
        totals: Amounts from ``compute_invoice_totals``
        gst_rate: Rate printed next to the GST line

    Returns:
        bytes: PDF document
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"Invoice {totals.invoice_number}")
    c.setAuthor("Gas Agency")

    y = H - MARGIN
    c.setFillColor(BRAND_COLOR)
    c.setFont("Helvetica-Bold", 22)
    c.drawString(MARGIN, y - 10, "GAS AGENCY")
    c.setFont("Helvetica-Bold", 16)
    c.drawRightString(W - MARGIN, y - 10, "TAX INVOICE")

    y -= 40
    c.setFillColor(MUTED_COLOR)
    c.setFont("Helvetica", 10)
    issued = (booking.delivered_at or datetime.utcnow()).strftime("%d %b %Y")
    c.drawRightString(W - MARGIN, y, f"Invoice no: {totals.invoice_number}")
    c.drawRightString(W - MARGIN, y - 14, f"Date: {issued}")
    c.drawRightString(W - MARGIN, y - 28, f"Booking: {booking.id}")

    c.setFillColor(TEXT_COLOR)
    c.setFont("Helvetica-Bold", 11)
    c.drawString(MARGIN, y, "Bill to")
    c.setFont("Helvetica", 10)
    lines = [
        booking.receiver_name or booking.user_name or "",
        booking.receiver_phone or booking.user_phone or "",
        booking.user_email or "",
        booking.user_address or "",
    ]
    for offset, line in enumerate(line for line in lines if line):
        c.drawString(MARGIN, y - 14 * (offset + 1), line[:90])

    y -= 110
    c.setStrokeColor(MUTED_COLOR)
    c.line(MARGIN, y, W - MARGIN, y)
    c.setFont("Helvetica-Bold", 10)
    y -= 16
    c.drawString(MARGIN, y, "Description")
    c.drawRightString(W - MARGIN - 200, y, "Qty")
    c.drawRightString(W - MARGIN - 100, y, "Rate")
    c.drawRightString(W - MARGIN, y, "Amount")
    y -= 8
    c.line(MARGIN, y, W - MARGIN, y)

    c.setFont("Helvetica", 10)
    y -= 18
    c.drawString(MARGIN, y, "LPG cylinder (14.2 kg)")
    c.drawRightString(W - MARGIN - 200, y, str(totals.quantity))
    c.drawRightString(W - MARGIN - 100, y, f"{totals.unit_price:,.2f}")
    c.drawRightString(W - MARGIN, y, f"{totals.subtotal:,.2f}")

    y -= 30
    c.line(W - MARGIN - 250, y + 12, W - MARGIN, y + 12)
    rows = [
        ("Subtotal", totals.subtotal),
        (f"GST ({gst_rate * 100:.0f}%)", totals.gst),
        ("Total", totals.total),
    ]
    for label, amount in rows:
        c.setFont("Helvetica-Bold" if label == "Total" else "Helvetica", 10)
        c.drawRightString(W - MARGIN - 100, y, label)
        c.drawRightString(W - MARGIN, y, f"Rs. {amount:,.2f}")
        y -= 16

    c.setFillColor(MUTED_COLOR)
    c.setFont("Helvetica-Oblique", 9)
    c.drawString(MARGIN, MARGIN, "This is a computer generated invoice and does not require a signature.")

    c.showPage()
    c.save()
    return buffer.getvalue()
