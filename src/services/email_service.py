"""Email service using Resend for transactional emails."""

import html
import logging
from typing import Any

import resend

from src.core.config import get_settings
from src.core.i18n import Locale
from src.services.currency_format import format_cents

logger = logging.getLogger(__name__)

_ORDER_COPY: dict[Locale, dict[str, str]] = {
    "en": {
        "subject": "Your order confirmation #{order_ref}",
        "heading": "Thanks for your order!",
        "greeting": "Hi {name},",
        "intro": "Your payment was received and your purchase is ready.",
        "item": "Item",
        "qty": "Qty",
        "price": "Price",
        "subtotal": "Subtotal",
        "tax": "Tax",
        "total": "Total",
        "cta": "View your order",
    },
    "es": {
        "subject": "Confirmación de tu pedido #{order_ref}",
        "heading": "¡Gracias por tu compra!",
        "greeting": "Hola {name},",
        "intro": "Recibimos tu pago y tu compra está lista.",
        "item": "Artículo",
        "qty": "Cant.",
        "price": "Precio",
        "subtotal": "Subtotal",
        "tax": "Impuestos",
        "total": "Total",
        "cta": "Ver tu pedido",
    },
}


class EmailService:
    """Service for sending transactional emails via Resend."""

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.from_email = settings.email_from_address
        self.frontend_url = settings.frontend_url

    def render_order_confirmation(
        self,
        order: dict[str, Any],
        customer_name: str,
        locale: Locale = "en",
    ) -> dict[str, str]:
        """Render subject, HTML and text bodies of an order confirmation.

        Args:
            order: Order row with embedded ``order_items``.
            customer_name: Name used in the greeting.
            locale: Language of the email and money formatting.

        Returns:
            dict: ``subject``, ``html`` and ``text``.
        """
        copy = _ORDER_COPY[locale]
        currency = order.get("currency") or "USD"
        order_ref = str(order["id"])[:8].upper()
        order_url = f"{self.frontend_url}/orders/{order['id']}"

        def money(cents: int) -> str:
            return format_cents(cents, locale, currency)

        rows_html = []
        rows_text = []
        for item in order.get("order_items") or []:
            line_total = money(item["price"] * item["quantity"])
            rows_html.append(
                f'<tr><td style="padding: 8px 0;">{html.escape(item["item_title"])}</td>'
                f'<td style="padding: 8px 0; text-align: center;">{item["quantity"]}</td>'
                f'<td style="padding: 8px 0; text-align: right;">{line_total}</td></tr>'
            )
            rows_text.append(f"- {item['item_title']} x{item['quantity']}: {line_total}")

        greeting = copy["greeting"].format(name=customer_name)

        html_content = f"""
<!DOCTYPE html>
<html lang="{locale}">
<head>
    <meta charset="utf-8">
    <title>{copy["heading"]}</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #4f46e5; font-size: 24px;">{copy["heading"]}</h1>
    <p>{html.escape(greeting)}</p>
    <p>{copy["intro"]}</p>

    <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">
        <thead>
            <tr style="border-bottom: 1px solid #e5e7eb;">
                <th style="text-align: left;">{copy["item"]}</th>
                <th style="text-align: center;">{copy["qty"]}</th>
                <th style="text-align: right;">{copy["price"]}</th>
            </tr>
        </thead>
        <tbody>
            {"".join(rows_html)}
        </tbody>
    </table>

    <p style="text-align: right; margin: 4px 0;">{copy["subtotal"]}: {money(order["subtotal"])}</p>
    <p style="text-align: right; margin: 4px 0;">{copy["tax"]}: {money(order["tax"])}</p>
    <p style="text-align: right; margin: 4px 0; font-weight: 600;">{copy["total"]}: {money(order["total"])}</p>

    <div style="text-align: center; margin: 30px 0;">
        <a href="{order_url}" style="background: #4f46e5; color: white; padding: 12px 28px; text-decoration: none; border-radius: 8px; font-weight: 600;">
            {copy["cta"]}
        </a>
    </div>
</body>
</html>
"""

        text_lines = [
            copy["heading"],
            "",
            greeting,
            copy["intro"],
            "",
            *rows_text,
            "",
            f"{copy['subtotal']}: {money(order['subtotal'])}",
            f"{copy['tax']}: {money(order['tax'])}",
            f"{copy['total']}: {money(order['total'])}",
            "",
            f"{copy['cta']}: {order_url}",
        ]

        return {
            "subject": copy["subject"].format(order_ref=order_ref),
            "html": html_content,
            "text": "\n".join(text_lines),
        }

    async def send_order_confirmation(
        self,
        to_email: str,
        order: dict[str, Any],
        customer_name: str | None = None,
        locale: Locale = "en",
    ) -> dict[str, Any]:
        """Send an order confirmation email.

        Delivery failures are logged and reported in the result, never raised.

        Args:
            to_email: Recipient email address.
            order: Order row with embedded ``order_items``.
            customer_name: Name used in the greeting (optional).
            locale: Language of the email.

        Returns:
            dict: ``success`` plus ``email_id`` or ``error``.
        """
        content = self.render_order_confirmation(order, customer_name or to_email, locale)

        try:
            response = resend.Emails.send({
                "from": self.from_email,
                "to": [to_email],
                "subject": content["subject"],
                "html": content["html"],
                "text": content["text"],
            })

            logger.info("Order confirmation for %s sent to %s, id: %s", order["id"], to_email, response.get("id"))
            return {"success": True, "email_id": response.get("id")}

        except Exception as e:
            logger.error("Failed to send order confirmation to %s: %s", to_email, str(e))
            return {"success": False, "error": str(e)}
