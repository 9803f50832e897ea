"""Unit tests for invoice totals and rendering."""

from datetime import datetime
from types import SimpleNamespace
from uuid import UUID

from gas_agency.services.invoice_service import compute_invoice_totals, invoice_number_for, render_invoice_pdf

BOOKING_ID = UUID("5f0c2a8e-1b3d-4c5e-9f7a-0123abcd89ef")


def _booking(quantity=2):
    return SimpleNamespace(
        id=BOOKING_ID,
        quantity=quantity,
        delivered_at=datetime(2026, 10, 1, 11, 30),
        receiver_name=None,
        receiver_phone=None,
        user_name="Asha Rao",
        user_phone="9876543210",
        user_email="asha@example.com",
        user_address="12 MG Road, Bengaluru",
    )


def test_invoice_number_uses_booking_id_tail():
    assert invoice_number_for(BOOKING_ID) == "INV-ABCD89EF"


def test_totals_include_gst():
    totals = compute_invoice_totals(_booking(quantity=2), 1100, 0.05)

    assert totals.subtotal == 2200.0
    assert totals.gst == 110.0
    assert totals.total == 2310.0
    assert totals.unit_price == 1100


def test_totals_round_to_paise():
    totals = compute_invoice_totals(_booking(quantity=1), 999, 0.18)
    assert totals.gst == 179.82
    assert totals.total == 1178.82


def test_render_pdf():
    booking = _booking()
    pdf = render_invoice_pdf(booking, compute_invoice_totals(booking, 1100, 0.05), 0.05)
    assert pdf.startswith(b"%PDF")
