"""Order confirmation email and image cleanup. Both are best-effort side effects."""
import html
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

from integrations.mail import EmailJSClient, SendGridClient

from .media import ImageHost
from .schemas import Order

logger = logging.getLogger(__name__)

STORE_NAME = "PinkAura"


def build_order_email_params(order: Order) -> Dict[str, Any]:
    """Template parameters for the EmailJS order template ({{#orders}} and {{cost.*}})."""
    orders = []
    for item in order.items:
        name = item.product_name + (f" ({item.color})" if item.color else "")
        orders.append({
            "name": name or f"#{item.product_id}",
            "units": str(item.quantity),
            "price": f"{item.line_total:.2f}",
        })

    address = order.address
    if order.landmark:
        address += f", Landmark: {order.landmark}"
    address += f", {order.pincode}"

    return {
        "order_id": str(order.id),
        "user_email": order.email,
        "customer_name": order.customer_name,
        "customer_address": address,
        "customer_phone": order.phone,
        "orders": orders,
        "cost": {
            "shipping": f"{order.shipping:.2f}",
            "tax": "0.00",
            "total": f"{order.total:.2f}",
        },
    }


def render_order_email(order: Order) -> Dict[str, str]:
    """Subject, HTML and plain-text bodies for the order confirmation."""
    params = build_order_email_params(order)

    text_lines = [
        f"Hi {order.customer_name},",
        "",
        f"Thank you for your order #{order.id}. We will confirm it once your payment is verified.",
        "",
    ]
    for line in params["orders"]:
        text_lines.append(f"- {line['name']} x{line['units']}: ₹{line['price']}")
    text_lines += [
        "",
        f"Subtotal: ₹{order.subtotal:.2f}",
        f"Shipping: {'FREE' if not order.shipping else f'₹{order.shipping:.2f}'}",
        f"Total: ₹{order.total:.2f}",
        "",
        f"Shipping to: {params['customer_address']}",
    ]

    rows = "".join(
        f"<tr><td>{html.escape(line['name'])}</td><td>{line['units']}</td><td>₹{line['price']}</td></tr>"
        for line in params["orders"]
    )
    body = (
        f"<p>Hi {html.escape(order.customer_name)},</p>"
        f"<p>Thank you for your order <strong>#{order.id}</strong>. "
        f"We will confirm it once your payment is verified.</p>"
        f"<table><tr><th>Item</th><th>Qty</th><th>Price</th></tr>{rows}</table>"
        f"<p>Subtotal: ₹{order.subtotal:.2f}<br>"
        f"Shipping: {'FREE' if not order.shipping else f'₹{order.shipping:.2f}'}<br>"
        f"<strong>Total: ₹{order.total:.2f}</strong></p>"
        f"<p>Shipping to: {html.escape(params['customer_address'])}</p>"
    )

    return {
        "subject": f"[{STORE_NAME}] Order #{order.id} received",
        "html": body,
        "text": "\n".join(text_lines),
    }


class Mailer(ABC):
    name = "abstract"

    @abstractmethod
    def send_order_confirmation(self, order: Order) -> None:
        ...

    def close(self) -> None:
        pass


class SendGridMailer(Mailer):
    name = "sendgrid"

    def __init__(self, client: SendGridClient, owner_email: Optional[str] = None) -> None:
        self.client = client
        self.owner_email = owner_email

    def send_order_confirmation(self, order: Order) -> None:
        message = render_order_email(order)
        self.client.send_email(order.email, message["subject"], message["html"], message["text"])
        if self.owner_email:
            self.client.send_email(
                self.owner_email,
                f"[{STORE_NAME}] New order #{order.id} from {order.customer_name}",
                message["html"],
                message["text"],
            )

    def close(self) -> None:
        self.client.close()


class EmailJSMailer(Mailer):
    name = "emailjs"

    def __init__(self, client: EmailJSClient) -> None:
        self.client = client

    def send_order_confirmation(self, order: Order) -> None:
        self.client.send(build_order_email_params(order))

    def close(self) -> None:
        self.client.close()


class LogMailer(Mailer):
    """Used when no email provider is configured."""

    name = "log"

    def send_order_confirmation(self, order: Order) -> None:
        logger.info(f"✉️ No email provider configured; skipping confirmation for order #{order.id} ({order.email})")


def send_order_confirmation(mailer: Mailer, order: Order) -> None:
    """Background task: never raises."""
    try:
        mailer.send_order_confirmation(order)
        logger.info(f"✅ [EMAIL] Confirmation for order #{order.id} sent via {mailer.name}")
    except Exception as e:
        logger.error(f"❌ [EMAIL] Order #{order.id} confirmation failed ({mailer.name}): {type(e).__name__}: {e}")


def delete_images(image_host: ImageHost, public_ids: Iterable[str]) -> None:
    """Background task: never raises."""
    for public_id in public_ids:
        try:
            image_host.delete(public_id)
        except Exception as e:
            logger.warning(f"⚠️ Failed to delete image {public_id}: {type(e).__name__}: {e}")
