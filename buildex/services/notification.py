"""
Email notifications.
Renders named HTML templates and delivers them over SMTP with aiosmtplib.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from buildex.config import Settings
from typing import Any, Callable, Dict, Optional, Protocol, Tuple
from decimal import Decimal, InvalidOperation
from datetime import date
import html
import json
import logging

import aiosmtplib

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """Anything that can deliver a templated message to a recipient."""

    async def send(self, recipient: str, template_name: str, data: Dict[str, Any]) -> bool:
        ...


def _format_amount(value: Any) -> str:
    """Format an amount with Indian digit grouping, e.g. 4500000 -> 45,00,000."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return str(value)

    whole, _, fraction = f"{amount:.2f}".partition(".")
    sign = ""
    if whole.startswith("-"):
        sign, whole = "-", whole[1:]

    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])

    if fraction == "00":
        return f"{sign}{whole}"
    return f"{sign}{whole}.{fraction}"


def _layout(heading: str, body: str) -> str:
    return f"""
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; max-width: 600px; margin: 0 auto;">
        <h1 style="color: #9E7C2F;">BuildEx</h1>
        <h2>{heading}</h2>
        {body}
        <p>Thank you for choosing BuildEx!</p>
    </body>
    </html>
    """


def _e(data: Dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    return html.escape(str(value)) if value is not None else default


def _payment_confirmation_user(data: Dict[str, Any]) -> Tuple[str, str]:
    body = f"""
        <p>Dear {_e(data, "user_name")},</p>
        <p>Your payment has been successfully processed.</p>
        <p><strong>Property:</strong> {_e(data, "property_name")}</p>
        <p><strong>Amount:</strong> &#8377;{_format_amount(data.get("amount"))}</p>
        <p><strong>Payment Type:</strong> {_e(data, "payment_type")}</p>
        <p><strong>Transaction ID:</strong> {_e(data, "transaction_id")}</p>
        <p><strong>Date:</strong> {_e(data, "date", date.today().isoformat())}</p>
    """
    return f"Payment Confirmed - {data.get('property_name')}", _layout("Payment Successful!", body)


def _payment_notification_owner(data: Dict[str, Any]) -> Tuple[str, str]:
    body = f"""
        <p>Dear {_e(data, "builder_name")},</p>
        <p>You have received a new payment for your property.</p>
        <p><strong>Property:</strong> {_e(data, "property_name")}</p>
        <p><strong>Amount:</strong> &#8377;{_format_amount(data.get("amount"))}</p>
        <p><strong>Buyer:</strong> {_e(data, "user_name")}</p>
        <p><strong>Payment Type:</strong> {_e(data, "payment_type")}</p>
        <p><strong>Date:</strong> {_e(data, "date", date.today().isoformat())}</p>
    """
    return f"New Payment Received - {data.get('property_name')}", _layout("New Payment Received!", body)


def _rent_reminder(data: Dict[str, Any]) -> Tuple[str, str]:
    body = f"""
        <p>Dear {_e(data, "user_name")},</p>
        <p>This is a friendly reminder that your rent payment is due soon.</p>
        <p><strong>Property:</strong> {_e(data, "property_name")}</p>
        <p><strong>Amount Due:</strong> &#8377;{_format_amount(data.get("amount"))}</p>
        <p><strong>Due Date:</strong> {_e(data, "due_date")}</p>
        <p>Please make your payment before the due date.</p>
    """
    return f"Rent Payment Reminder - {data.get('property_name')}", _layout("Rent Payment Reminder", body)


def _rent_overdue(data: Dict[str, Any]) -> Tuple[str, str]:
    body = f"""
        <p>Dear {_e(data, "user_name")},</p>
        <p><strong>Property:</strong> {_e(data, "property_name")}</p>
        <p><strong>Amount Due:</strong> &#8377;{_format_amount(data.get("amount"))}</p>
        <p><strong>Due Date:</strong> {_e(data, "due_date")}</p>
        <p><strong>Days Overdue:</strong> {_e(data, "days_overdue")}</p>
        <p><strong>Please make the payment immediately to avoid service suspension.</strong></p>
    """
    return f"Rent Overdue - {data.get('property_name')}", _layout("Rent Payment Overdue", body)


def _registration_otp(data: Dict[str, Any]) -> Tuple[str, str]:
    body = f"""
        <p>Hello {_e(data, "user_name")},</p>
        <p>Your verification code is:</p>
        <p style="font-size: 28px; letter-spacing: 6px;"><strong>{_e(data, "otp")}</strong></p>
        <p>The code expires in {_e(data, "expires_in_minutes", "10")} minutes.</p>
    """
    return "Your BuildEx verification code", _layout("Verify your email", body)


def _enquiry_notification(data: Dict[str, Any]) -> Tuple[str, str]:
    body = f"""
        <p><strong>Property:</strong> {_e(data, "property_name")}</p>
        <p><strong>From:</strong> {_e(data, "user_name")}</p>
        <p><strong>Email:</strong> {_e(data, "user_email")}</p>
        <p><strong>Phone:</strong> {_e(data, "user_phone")}</p>
        <p><strong>Message:</strong> {_e(data, "message")}</p>
    """
    return f"New Enquiry - {data.get('property_name')}", _layout("New Property Enquiry", body)


def _welcome(data: Dict[str, Any]) -> Tuple[str, str]:
    body = """
        <p>Thank you for joining BuildEx - your premium real estate platform.</p>
        <ul>
            <li>Browse premium properties</li>
            <li>Buy or rent with secure payments</li>
            <li>Connect directly with builders</li>
        </ul>
    """
    return (
        f"Welcome to BuildEx, {data.get('user_name')}!",
        _layout(f"Hello {_e(data, 'user_name')}!", body),
    )


TEMPLATES: Dict[str, Callable[[Dict[str, Any]], Tuple[str, str]]] = {
    "payment_confirmation_user": _payment_confirmation_user,
    "payment_notification_owner": _payment_notification_owner,
    "rent_reminder": _rent_reminder,
    "rent_overdue": _rent_overdue,
    "registration_otp": _registration_otp,
    "enquiry_notification": _enquiry_notification,
    "welcome": _welcome,
}


def render_template(template_name: str, data: Dict[str, Any]) -> Tuple[str, str]:
    """
    Render a named template.

    Returns:
        (subject, html) tuple

    Raises:
        KeyError: If the template does not exist
    """
    return TEMPLATES[template_name](data)


class EmailNotificationDispatcher:
    """
    SMTP dispatcher. Without SMTP credentials messages are logged instead of sent.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        sender: str,
        use_tls: bool = True
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailNotificationDispatcher":
        return cls(
            host=settings.email_host,
            port=settings.email_port,
            username=settings.email_user,
            password=settings.email_password,
            sender=settings.email_from,
            use_tls=settings.email_use_tls,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.username and self.password)

    async def send(self, recipient: str, template_name: str, data: Dict[str, Any]) -> bool:
        """
        Render and send a templated email.

        Args:
            recipient: Destination address
            template_name: Key of TEMPLATES
            data: Template variables

        Returns:
            True if the message was sent (or logged in mock mode), False otherwise
        """
        if template_name not in TEMPLATES:
            logger.error(f"Unknown email template: {template_name}")
            return False

        if not self.is_configured:
            logger.info(
                f"[EMAIL LOG] To: {recipient}, Template: {template_name}, "
                f"Data: {json.dumps(data, default=str)}"
            )
            return True

        subject, html_content = render_template(template_name, data)

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = recipient
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Email send error ({template_name} to {recipient}): {e}")
            return False

        logger.info(f"Email sent: {template_name} to {recipient}")
        return True
