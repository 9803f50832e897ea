"""Outbound email notifications.

Every public ``send_*`` method returns ``True`` when the message was handed
to the SMTP server and ``False`` otherwise. Delivery problems are logged and
counted, never raised: a failed email must not fail the request that
triggered it.
"""

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from datetime import date
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Sequence

from ..core.config import Settings, settings as default_settings
from ..core.observability import metrics_collector

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    filename: str
    content: bytes
    mime_subtype: str = "pdf"


def _status_label(status) -> str:
    value = getattr(status, "value", status)
    return str(value).replace("_", " ").lower()


def _short_id(booking_id) -> str:
    return str(booking_id).replace("-", "")[-8:].upper()


class NotificationService:
    """Compose and send transactional email over SMTP."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def _link(self, path: str) -> str:
        return f"{self.config.app_base_url.rstrip('/')}/{path.lstrip('/')}"

    def _build_message(
        self,
        to: str,
        subject: str,
        text: str,
        attachments: Sequence[Attachment] = (),
    ) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = self.config.email_from
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(text, "plain", "utf-8"))
        for attachment in attachments:
            part = MIMEApplication(attachment.content, _subtype=attachment.mime_subtype)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            msg.attach(part)
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30) as server:
            if self.config.smtp_use_tls:
                server.starttls()
            if self.config.smtp_user and self.config.smtp_password:
                server.login(self.config.smtp_user, self.config.smtp_password)
            server.send_message(msg)

    async def send_email(
        self,
        to: Optional[str],
        subject: str,
        text: str,
        attachments: Sequence[Attachment] = (),
        template: str = "generic",
    ) -> bool:
        """
        Send one email.

        Args:
            to: Recipient address; nothing is sent when empty
            subject: Subject line
            text: Plain-text body
            attachments: Files to attach
            template: Short name used in logs and metrics

        Returns:
            bool: True if the SMTP server accepted the message
        """
        if not to:
            logger.debug("Email skipped - no recipient", extra={"template": template})
            return False

        if not self.config.email_enabled:
            logger.info(
                "Email delivery disabled - message not sent",
                extra={"template": template, "recipient": to, "subject": subject},
            )
            metrics_collector.record_email(template, "skipped")
            return False

        msg = self._build_message(to, subject, text, attachments)
        try:
            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Failed to send email",
                extra={"template": template, "recipient": to, "error": str(e)},
                exc_info=True,
            )
            metrics_collector.record_email(template, "failed")
            return False

        logger.info("Email sent", extra={"template": template, "recipient": to})
        metrics_collector.record_email(template, "sent")
        return True

    # Account email

    async def send_verification_email(self, email: str, name: str, token: str) -> bool:
        link = self._link(f"verify-email?token={token}")
        text = (
            f"Hello {name},\n\n"
            "Welcome to the gas agency portal. Please confirm your email address "
            f"by opening the link below within 24 hours:\n\n{link}\n\n"
            "If you did not create an account, ignore this email."
        )
        return await self.send_email(email, "Verify your email address", text, template="verify_email")

    async def send_password_reset_email(self, email: str, name: str, token: str) -> bool:
        link = self._link(f"reset-password?token={token}")
        text = (
            f"Hello {name},\n\n"
            f"Use the link below to reset your password. It expires in one hour.\n\n{link}\n\n"
            "If you did not ask for a reset, you can ignore this email."
        )
        return await self.send_email(email, "Reset your password", text, template="password_reset")

    # Booking email

    async def send_booking_requested(self, booking) -> bool:
        text = (
            f"Hello {booking.user_name},\n\n"
            f"We received your booking #{_short_id(booking.id)} for {booking.quantity} cylinder(s), "
            f"paid by {getattr(booking.payment_method, 'value', booking.payment_method)}.\n"
            "You will be notified once it is approved."
        )
        return await self.send_email(
            booking.user_email, "Booking request received", text, template="booking_requested"
        )

    async def send_booking_status(self, booking, reason: Optional[str] = None) -> bool:
        label = _status_label(booking.status)
        text = f"Hello {booking.user_name},\n\nYour booking #{_short_id(booking.id)} is now {label}."
        if reason:
            text += f"\nReason: {reason}"
        return await self.send_email(
            booking.user_email, f"Booking {label}", text, template="booking_status"
        )

    async def send_delivery_assigned(self, booking, partner, scheduled_date: Optional[date]) -> bool:
        when = scheduled_date.isoformat() if scheduled_date else "soon"
        text = (
            f"Hello {booking.user_name},\n\n"
            f"Your booking #{_short_id(booking.id)} has been assigned to {partner.name} "
            f"({partner.phone}) for delivery on {when}."
        )
        return await self.send_email(
            booking.user_email, "Delivery scheduled", text, template="delivery_assigned"
        )

    async def send_out_for_delivery(self, booking, partner) -> bool:
        text = (
            f"Hello {booking.user_name},\n\n"
            f"Your booking #{_short_id(booking.id)} is out for delivery with {partner.name} "
            f"({partner.phone})."
        )
        return await self.send_email(
            booking.user_email, "Out for delivery", text, template="out_for_delivery"
        )

    async def send_delivery_status(self, booking, status, notes: Optional[str] = None) -> bool:
        label = _status_label(status)
        text = (
            f"Hello {booking.user_name},\n\n"
            f"{notes or f'Your delivery status has been updated to {label}.'}\n"
            f"Booking #{_short_id(booking.id)}"
        )
        return await self.send_email(
            booking.user_email, f"Delivery {label}", text, template="delivery_status"
        )

    async def send_delivery_completed(self, booking) -> bool:
        delivered = booking.delivered_at.strftime("%d %b %Y %H:%M") if booking.delivered_at else "today"
        text = (
            f"Hello {booking.user_name},\n\n"
            f"Your booking #{_short_id(booking.id)} was delivered on {delivered}. Thank you!"
        )
        return await self.send_email(
            booking.user_email, "Delivery completed", text, template="delivery_completed"
        )

    async def send_invoice(self, booking, invoice_number: str, pdf: bytes) -> bool:
        text = (
            f"Hello {booking.user_name},\n\n"
            f"Please find attached invoice {invoice_number} for booking #{_short_id(booking.id)}."
        )
        return await self.send_email(
            booking.user_email,
            f"Invoice {invoice_number}",
            text,
            attachments=[Attachment(filename=f"{invoice_number}.pdf", content=pdf)],
            template="invoice",
        )

    # Payment email

    async def send_payment_confirmed(self, booking, payment) -> bool:
        text = (
            f"Hello {booking.user_name},\n\n"
            f"We confirmed your UPI payment of Rs. {payment.amount} for booking #{_short_id(booking.id)}."
        )
        if payment.upi_txn_id:
            text += f"\nTransaction id: {payment.upi_txn_id}"
        return await self.send_email(
            booking.user_email, "Payment confirmed", text, template="payment_confirmed"
        )

    async def send_payment_rejected(self, booking, reason: str) -> bool:
        text = (
            f"Hello {booking.user_name},\n\n"
            f"We could not verify the UPI payment for booking #{_short_id(booking.id)}.\n"
            f"Reason: {reason}\n\nYou can retry the payment from your bookings page."
        )
        return await self.send_email(
            booking.user_email, "Payment issue", text, template="payment_rejected"
        )

    # Support email

    async def send_contact_received(self, ticket, user) -> bool:
        admin_text = (
            f"New support request from {user.name} <{user.email}>\n\n"
            f"Subject: {ticket.subject}\nCategory: {ticket.category or '-'}\n"
            f"Priority: {ticket.priority or '-'}\n\n{ticket.message}"
        )
        await self.send_email(
            self.config.admin_email, f"[Support] {ticket.subject}", admin_text, template="contact_admin"
        )
        ack_text = (
            f"Hello {user.name},\n\nWe received your message \"{ticket.subject}\" "
            "and will get back to you shortly."
        )
        return await self.send_email(user.email, "We received your message", ack_text, template="contact_ack")

    async def send_contact_reply(self, ticket, user, body: str) -> bool:
        text = f"Hello {user.name},\n\nRe: {ticket.subject}\n\n{body}"
        return await self.send_email(user.email, f"Re: {ticket.subject}", text, template="contact_reply")


notification_service = NotificationService()


def get_notification_service() -> NotificationService:
    """FastAPI dependency returning the shared notifier."""
    return notification_service
