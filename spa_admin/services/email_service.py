# Booking confirmation emails
import logging
from html import escape
from typing import Dict

import resend

from spa_admin.errors import NotificationError

logger = logging.getLogger(__name__)


class EmailService:
    """
    Centralized email service using Resend
    """

    def __init__(self, api_key=None, from_email=None, frontend_url=None, testing=False):
        """Initialize Resend with API key"""
        self.api_key = api_key
        self.from_email = from_email or "onboarding@resend.dev"
        self.frontend_url = frontend_url or "http://localhost:3000"
        self.disabled = testing or not api_key

        if testing:
            logger.info("EmailService running in TEST MODE, nothing will be sent")
        elif not api_key:
            logger.warning("RESEND_API_KEY not set, booking emails are disabled")
        else:
            resend.api_key = api_key

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config.get("RESEND_API_KEY"),
            from_email=config.get("RESEND_FROM_EMAIL"),
            frontend_url=config.get("FRONTEND_URL"),
            testing=bool(config.get("TESTING")),
        )

    def send_booking_confirmation(self, payload: Dict) -> Dict:
        """
        Send the confirmation for a freshly created booking.

        Args:
            payload: booking / customer / items / totals as built by the
                booking assembler

        Returns:
            Dict with 'success' boolean and 'email_id' or 'skipped'
        """
        to_email = payload["customer"]["email"]
        if self.disabled:
            return {"success": True, "skipped": True}

        params = {
            "from": self.from_email,
            "to": [to_email],
            "subject": f"Your booking #{payload['booking']['id']} is confirmed",
            "html": render_booking_html(payload),
        }
        try:
            email_response = resend.Emails.send(params)
        except Exception as e:
            raise NotificationError(f"Resend rejected the email: {e}") from e

        return {"success": True, "email_id": email_response.get("id")}


def render_booking_html(payload: Dict) -> str:
    booking = payload["booking"]
    customer = payload["customer"]
    totals = payload["totals"]

    rows = "".join(
        f"""
                <tr>
                    <td style="padding: 6px 12px;">{escape(str(item['service_name']))}</td>
                    <td style="padding: 6px 12px; text-align: center;">{item['quantity']}</td>
                    <td style="padding: 6px 12px; text-align: right;">{item['unit_price']:.2f} {escape(str(item['currency']))}</td>
                    <td style="padding: 6px 12px; text-align: right;">{item['item_total']:.2f} {escape(str(item['currency']))}</td>
                </tr>"""
        for item in payload["items"]
    )
    notes = (
        f"<p><strong>Notes:</strong> {escape(booking['notes'])}</p>"
        if booking.get("notes")
        else ""
    )

    return f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: 'Segoe UI', Arial, sans-serif; color: #2d2d2d;">
            <h2>Hello {escape(customer.get('name') or 'there')},</h2>
            <p>Your booking at <strong>{escape(str(booking.get('branch_name') or ''))}</strong>
               on <strong>{escape(str(booking['date']))}</strong> is confirmed.</p>
            <table cellpadding="0" cellspacing="0" style="border-collapse: collapse;">
                <tr>
                    <th style="padding: 6px 12px; text-align: left;">Service</th>
                    <th style="padding: 6px 12px;">Qty</th>
                    <th style="padding: 6px 12px; text-align: right;">Unit price</th>
                    <th style="padding: 6px 12px; text-align: right;">Total</th>
                </tr>{rows}
            </table>
            <p><strong>Grand total:</strong> {totals['grand_total']:.2f} {escape(str(totals.get('currency') or ''))}</p>
            {notes}
            <p>Booking reference: #{booking['id']}</p>
        </body>
        </html>
    """
