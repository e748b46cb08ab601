"""
Customer email for order milestones.
Rendering uses jinja2; delivery goes through SMTP with aiosmtplib.
Sending is best-effort: ``send_safely`` logs every failure and never raises.
"""

import logging
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional

import aiosmtplib
from jinja2 import Environment, BaseLoader, select_autoescape
from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass
class EmailConfig:
    """Email configuration settings."""
    smtp_server: Optional[str]
    smtp_port: int
    username: Optional[str]
    password: Optional[str]
    sender: Optional[str] = None
    use_tls: bool = True
    timeout: int = 30

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_server and self.username)


class EmailTemplate(BaseModel):
    """Email template model."""
    name: str
    subject: str
    html_content: str
    text_content: Optional[str] = None


class EmailMessage(BaseModel):
    """A rendered-on-send message for one recipient."""
    recipient: str
    template_name: str
    template_data: Dict[str, Any] = {}
    subject: Optional[str] = None
    html_content: Optional[str] = None
    text_content: Optional[str] = None


_PRODUCT_TABLE = """
<table border="1" cellpadding="6" cellspacing="0" style="border-collapse: collapse;">
  <tr><th>Product</th><th>Qty</th><th>Unit Price</th><th>Brand</th><th>Size</th><th>Spec</th></tr>
  {% for p in products %}
  <tr><td>{{ p.product_type }}</td><td>{{ p.qty }}</td><td>{{ p.unit_price }}</td>
      <td>{{ p.brand or '-' }}</td><td>{{ p.size or 'N/A' }}</td><td>{{ p.spec or 'N/A' }}</td></tr>
  {% endfor %}
</table>
<p><strong>Total:</strong> &#8377;{{ total }}</p>
"""

_PRODUCT_LINES = """{% for p in products %}- {{ p.product_type }} x {{ p.qty }} @ {{ p.unit_price }}
{% endfor %}Total: {{ total }}"""


class EmailService:
    """Renders the order templates and delivers them over SMTP."""

    def __init__(self, config: EmailConfig):
        self.config = config
        self.template_env = Environment(loader=BaseLoader(), autoescape=select_autoescape(default=True))
        self.templates = self._load_default_templates()

    def _load_default_templates(self) -> Dict[str, EmailTemplate]:
        return {
            "order_received": EmailTemplate(
                name="order_received",
                subject="Order {{ order_id }} received",
                html_content=(
                    "<p>Dear {{ customer_name }},</p>"
                    "<p>We have received your order <strong>{{ order_id }}</strong>. "
                    "It will be processed once approved.</p>" + _PRODUCT_TABLE
                ),
                text_content="Dear {{ customer_name }},\n\nWe have received your order {{ order_id }}.\n\n" + _PRODUCT_LINES,
            ),
            "order_confirmation": EmailTemplate(
                name="order_confirmation",
                subject="Order {{ order_id }} confirmed",
                html_content=(
                    "<p>Dear {{ customer_name }},</p>"
                    "<p>Your order <strong>{{ order_id }}</strong> has been approved and moved to fulfilment.</p>"
                    + _PRODUCT_TABLE
                ),
                text_content="Dear {{ customer_name }},\n\nYour order {{ order_id }} has been approved.\n\n" + _PRODUCT_LINES,
            ),
            "order_dispatched": EmailTemplate(
                name="order_dispatched",
                subject="Order {{ order_id }} dispatched",
                html_content=(
                    "<p>Dear {{ customer_name }},</p>"
                    "<p>Your order <strong>{{ order_id }}</strong> was dispatched on {{ event_date }}.</p>"
                    "<p>Transporter: {{ transporter or 'N/A' }}<br>Docket No: {{ docket_no or 'N/A' }}</p>"
                    + _PRODUCT_TABLE
                ),
                text_content=(
                    "Dear {{ customer_name }},\n\nYour order {{ order_id }} was dispatched on {{ event_date }}.\n"
                    "Transporter: {{ transporter or 'N/A' }}\nDocket No: {{ docket_no or 'N/A' }}\n\n" + _PRODUCT_LINES
                ),
            ),
            "order_delivered": EmailTemplate(
                name="order_delivered",
                subject="Order {{ order_id }} delivered",
                html_content=(
                    "<p>Dear {{ customer_name }},</p>"
                    "<p>Your order <strong>{{ order_id }}</strong> was delivered on {{ event_date }}.</p>"
                    "<p>Transporter: {{ transporter or 'N/A' }}<br>Docket No: {{ docket_no or 'N/A' }}</p>"
                    + _PRODUCT_TABLE
                ),
                text_content=(
                    "Dear {{ customer_name }},\n\nYour order {{ order_id }} was delivered on {{ event_date }}.\n\n"
                    + _PRODUCT_LINES
                ),
            ),
        }

    def get_template(self, name: str) -> Optional[EmailTemplate]:
        """Get email template by name."""
        return self.templates.get(name)

    def render_template(self, template_name: str, data: Dict[str, Any]) -> Dict[str, str]:
        """Render email template with data."""
        template = self.get_template(template_name)
        if not template:
            raise ValueError(f"Template '{template_name}' not found")

        render = lambda source: self.template_env.from_string(source).render(**data)  # noqa: E731
        return {
            "subject": render(template.subject),
            "html_content": render(template.html_content),
            "text_content": render(template.text_content) if template.text_content else "",
        }

    def build_mime(self, message: EmailMessage) -> MIMEMultipart:
        rendered = self.render_template(message.template_name, message.template_data)
        message.subject = rendered["subject"]
        message.html_content = rendered["html_content"]
        message.text_content = rendered["text_content"]

        msg = MIMEMultipart('alternative')
        msg['From'] = self.config.sender or self.config.username
        msg['To'] = message.recipient
        msg['Subject'] = message.subject
        if message.text_content:
            msg.attach(MIMEText(message.text_content, 'plain'))
        msg.attach(MIMEText(message.html_content, 'html'))
        return msg

    async def send_email_async(self, message: EmailMessage) -> bool:
        """Send one email. Raises on transport errors."""
        if not self.config.enabled:
            logger.info(f"SMTP not configured; skipping '{message.template_name}' email to {message.recipient}")
            return False

        msg = self.build_mime(message)
        await aiosmtplib.send(
            msg,
            hostname=self.config.smtp_server,
            port=self.config.smtp_port,
            start_tls=self.config.use_tls,
            username=self.config.username,
            password=self.config.password,
            timeout=self.config.timeout,
        )
        logger.info(f"Email '{message.template_name}' sent to {message.recipient}")
        return True

    async def send_safely(self, message: EmailMessage) -> bool:
        """Best-effort send: failures are logged and swallowed."""
        try:
            return await self.send_email_async(message)
        except Exception as e:
            logger.error(f"Failed to send '{message.template_name}' email to {message.recipient}: {e}")
            return False

    async def send_all_safely(self, messages: List[EmailMessage]) -> int:
        sent = 0
        for message in messages:
            if await self.send_safely(message):
                sent += 1
        return sent
