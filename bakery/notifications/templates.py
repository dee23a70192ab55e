from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import tzinfo
from decimal import Decimal
from typing import Literal

from bakery.domain.errors import ValidationError
from bakery.notifications.payloads import NotificationPayload

TemplateName = Literal["order_confirmation", "admin_order_alert", "admin_reminder"]
TEMPLATE_NAMES: tuple[str, ...] = ("order_confirmation", "admin_order_alert", "admin_reminder")

SUBJECTS: dict[str, str] = {
    "order_confirmation": "Your Sugar Mama Cookie Co Order Confirmation (#{order_number})",
    "admin_order_alert": "New Order Received ({order_number})",
    "admin_reminder": "Order #{order_number} requires attention",
}

DEFAULT_TEMPLATES: dict[str, str] = {
    "order_confirmation": """
<html>
  <body>
    <h1>Thank you for your order, {{customer_name}}!</h1>
    <p>We're excited to prepare your delicious treats. Your order has been confirmed.</p>
    <p><strong>Order Number:</strong> #{{ORDER_NUMBER}}</p>
    <p><strong>Order Date:</strong> {{order_date}}</p>
    <p><strong>Order Total:</strong> {{order_total}}</p>
    <p><strong>Phone:</strong> {{customer_phone}}</p>
    <h2>Order Summary:</h2>
    {{order_items_table}}
    <p>We'll notify you again once your order is out for delivery or ready for pickup.</p>
  </body>
</html>
""".strip(),
    "admin_order_alert": """
<html>
  <body>
    <h1>New Order Received! ({{ORDER_NUMBER}})</h1>
    <ul>
      <li><strong>Order Number:</strong> {{ORDER_NUMBER}}</li>
      <li><strong>Customer:</strong> {{customer_name}} ({{customer_email}})</li>
      <li><strong>Phone:</strong> {{customer_phone}}</li>
      <li><strong>Order Date:</strong> {{order_date}}</li>
      <li><strong>Order Total:</strong> {{order_total}}</li>
      <li><strong>Notes:</strong> {{order_notes}}</li>
    </ul>
    <h2>Items Ordered:</h2>
    {{order_items_table}}
    <p>Please log in to the admin panel to view the full order details and process it.</p>
  </body>
</html>
""".strip(),
    "admin_reminder": """
<html>
  <body>
    <h1>Order Requires Attention</h1>
    <p><strong>Order:</strong> #{{order_id}}</p>
    <p><strong>Customer:</strong> {{customer_name}} ({{customer_email}})</p>
    <p><strong>Date:</strong> {{order_date}}</p>
    <p><strong>Total:</strong> {{order_total}}</p>
    <p>This order has not been acknowledged. Please review and update its status.</p>
    {{order_items_table}}
  </body>
</html>
""".strip(),
}


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def ensure_template_name(name: str) -> str:
    if name not in TEMPLATE_NAMES:
        raise ValidationError(f"unknown email template: {name}")
    return name


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    return f"{symbol}{amount:,.2f}"


def items_table(payload: NotificationPayload, symbol: str = "$") -> str:
    if not payload.items:
        return "<p>No items in this order.</p>"
    rows = "".join(
        "<tr>"
        f"<td>{html.escape(item.product_name)}</td>"
        f"<td>{item.quantity}</td>"
        f"<td>{format_currency(item.unit_price, symbol)}</td>"
        f"<td>{format_currency(item.total_price, symbol)}</td>"
        "</tr>"
        for item in payload.items
    )
    return (
        '<table class="items-table">'
        "<thead><tr><th>Item</th><th>Quantity</th><th>Price</th><th>Total</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
    )


def render(
    template_name: str,
    template_html: str,
    payload: NotificationPayload,
    tz: tzinfo,
    currency_symbol: str = "$",
) -> RenderedEmail:
    order_date = payload.created_at.astimezone(tz).strftime("%d %B %Y")
    tokens = {
        "{{customer_name}}": html.escape(payload.customer_name or "Valued Customer"),
        "{{customer_email}}": html.escape(payload.customer_email),
        "{{customer_phone}}": html.escape(payload.customer_phone or "N/A"),
        "{{ORDER_NUMBER}}": html.escape(payload.order_number),
        "{{order_id}}": html.escape(payload.order_number),
        "{{order_date}}": order_date,
        "{{order_total}}": format_currency(payload.total_amount, currency_symbol),
        "{{order_notes}}": html.escape(payload.notes or "N/A"),
        "{{order_items_table}}": items_table(payload, currency_symbol),
    }
    body = template_html
    for token, value in tokens.items():
        body = body.replace(token, value)
    subject = SUBJECTS[template_name].format(order_number=payload.order_number)
    return RenderedEmail(subject=subject, html=body)
