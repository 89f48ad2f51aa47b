from storefront.notifications import (
    LogMailer,
    SendGridMailer,
    build_order_email_params,
    delete_images,
    render_order_email,
    send_order_confirmation,
)
from storefront.schemas import Order, OrderItem


def sample_order():
    return Order(
        id=12,
        customer_name="Asha <Rao>",
        email="asha@example.com",
        phone="9876543210",
        address="12 MG Road",
        landmark="Metro",
        pincode="560001",
        subtotal=500,
        shipping=60,
        total=560,
        items=[OrderItem(
            product_id=1,
            product_name="Rose Ring",
            variant_label="Gold",
            variant_number=1,
            color="Gold",
            price=500,
            quantity=1,
            line_total=500,
        )],
    )


def test_build_order_email_params():
    params = build_order_email_params(sample_order())
    assert params["order_id"] == "12"
    assert params["user_email"] == "asha@example.com"
    assert params["customer_address"] == "12 MG Road, Landmark: Metro, 560001"
    assert params["orders"] == [{"name": "Rose Ring (Gold)", "units": "1", "price": "500.00"}]
    assert params["cost"] == {"shipping": "60.00", "tax": "0.00", "total": "560.00"}


def test_render_order_email_escapes_html():
    message = render_order_email(sample_order())
    assert message["subject"] == "[PinkAura] Order #12 received"
    assert "Asha &lt;Rao&gt;" in message["html"]
    assert "Total: ₹560.00" in message["text"]


def test_sendgrid_mailer_copies_owner():
    class FakeClient:
        def __init__(self):
            self.sent = []

        def send_email(self, to, subject, html, text=None):
            self.sent.append((to, subject))
            return 202

    client = FakeClient()
    SendGridMailer(client, owner_email="owner@example.com").send_order_confirmation(sample_order())
    assert [to for to, _ in client.sent] == ["asha@example.com", "owner@example.com"]


def test_side_effects_never_raise():
    class BrokenMailer(LogMailer):
        def send_order_confirmation(self, order):
            raise ConnectionError("no route to host")

    class BrokenHost:
        def __init__(self):
            self.attempts = []

        def delete(self, public_id):
            self.attempts.append(public_id)
            raise ConnectionError("timeout")

    send_order_confirmation(BrokenMailer(), sample_order())

    host = BrokenHost()
    delete_images(host, ["a", "b"])
    assert host.attempts == ["a", "b"]
