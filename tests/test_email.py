import asyncio

from orderflow.utils import email_utils
from orderflow.utils.email_utils import EmailConfig, EmailMessage, EmailService

DATA = {
    "order_id": "PMTO9",
    "customer_name": "Acme <Schools>",
    "products": [{"product_type": "Chair", "qty": 2, "unit_price": "100.00", "brand": "", "size": "N/A", "spec": "N/A"}],
    "total": "236.00",
    "event_date": "01 Jun 2024",
    "transporter": "Blue Dart",
    "docket_no": "BD-1",
}


def service(**overrides):
    config = dict(smtp_server="smtp.example.com", smtp_port=587, username="mailer", password="secret")
    config.update(overrides)
    return EmailService(EmailConfig(**config))


def test_render_dispatch_template():
    rendered = service().render_template("order_dispatched", DATA)
    assert rendered["subject"] == "Order PMTO9 dispatched"
    assert "Blue Dart" in rendered["html_content"]
    assert "Acme &lt;Schools&gt;" in rendered["html_content"]
    assert "Chair x 2 @ 100.00" in rendered["text_content"]


def test_unconfigured_smtp_skips_send():
    message = EmailMessage(recipient="buyer@example.com", template_name="order_received", template_data=DATA)
    assert asyncio.run(service(smtp_server=None).send_email_async(message)) is False


def test_send_failures_are_swallowed(monkeypatch):
    async def broken_send(*args, **kwargs):
        raise ConnectionRefusedError("smtp down")

    monkeypatch.setattr(email_utils.aiosmtplib, "send", broken_send)
    message = EmailMessage(recipient="buyer@example.com", template_name="order_delivered", template_data=DATA)
    assert asyncio.run(service().send_all_safely([message])) == 0
