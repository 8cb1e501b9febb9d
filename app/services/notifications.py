"""Email delivery (Mailgun preferred, SendGrid fallback) and the transactional sends built on it."""
import logging
from datetime import date

import httpx

from app.config import get_settings
from app.services import email_templates

logger = logging.getLogger(__name__)

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"


def send_email(to_email: str, subject: str, html_content: str, text_content: str | None = None) -> bool:
    """Send email via Mailgun (preferred) or SendGrid. Returns True if a provider accepted it."""
    settings = get_settings()
    if settings.mailgun_api_key and settings.mailgun_domain:
        logger.info("Sending email via Mailgun to=%s subject=%s", to_email, subject)
        return _send_email_mailgun(to_email, subject, html_content, text_content=text_content, settings=settings)
    if settings.sendgrid_api_key:
        logger.info("Sending email via SendGrid to=%s subject=%s", to_email, subject)
        return _send_email_sendgrid(to_email, subject, html_content, text_content=text_content, settings=settings)
    logger.warning(
        "Email NOT SENT to=%s subject=%s: set MAILGUN_API_KEY and MAILGUN_DOMAIN (or SENDGRID_API_KEY)",
        to_email,
        subject,
    )
    return False


def _send_email_mailgun(to_email: str, subject: str, html_content: str, text_content: str | None = None, settings=None) -> bool:
    if settings is None:
        settings = get_settings()
    base = (settings.mailgun_base_url or MAILGUN_US_BASE).strip().rstrip("/")
    domain = (settings.mailgun_domain or "").strip().lower()
    from_addr = (settings.mailgun_from_email or "").strip()
    from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
    if domain and from_domain != domain:
        # Mailgun drops mail whose sender domain differs from the sending domain
        from_addr = f"noreply@{domain}"
    data = {
        "from": f"{settings.mailgun_from_name} <{from_addr}>",
        "to": to_email,
        "subject": subject,
        "text": text_content or "",
        "html": html_content or "",
    }
    try:
        with httpx.Client(timeout=10.0) as client:
            r = client.post(f"{base}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
            if 200 <= r.status_code < 300:
                return True
            if r.status_code == 401 and base == MAILGUN_US_BASE:
                logger.info("Mailgun 401 on US endpoint, retrying EU endpoint")
                r = client.post(f"{MAILGUN_EU_BASE}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
                if 200 <= r.status_code < 300:
                    return True
            logger.error("Mailgun send failed: status=%s to=%s body=%s", r.status_code, to_email, r.text[:500])
            return False
    except httpx.HTTPError as e:
        logger.error("Mailgun request error to=%s: %s", to_email, e)
        return False


def _send_email_sendgrid(to_email: str, subject: str, html_content: str, text_content: str | None = None, settings=None) -> bool:
    if settings is None:
        settings = get_settings()
    from sendgrid import SendGridAPIClient
    from sendgrid.helpers.mail import Mail

    message = Mail(
        from_email=(settings.sendgrid_from_email, settings.sendgrid_from_name),
        to_emails=to_email,
        subject=subject,
        html_content=html_content,
        plain_text_content=text_content or "",
    )
    try:
        SendGridAPIClient(settings.sendgrid_api_key).send(message)
        return True
    except Exception as e:  # sendgrid surfaces python_http_client errors of several types
        logger.error("SendGrid send failed to=%s: %s", to_email, e)
        return False


def _send(to_email: str, template: tuple[str, str, str]) -> bool:
    subject, html, text = template
    return send_email(to_email, subject, html, text_content=text)


def send_booking_confirmation(
    to_email: str,
    name: str | None,
    workspace_name: str,
    booking_date: date,
    start_time: str,
    end_time: str,
    confirmation_code: str,
    total_price: float,
    nft_discount_applied: bool = False,
) -> bool:
    return _send(
        to_email,
        email_templates.booking_confirmation(
            name, workspace_name, booking_date, start_time, end_time, confirmation_code, total_price, nft_discount_applied
        ),
    )


def send_contact_notification(name: str, email: str, topic: str, message: str, submission_id: int) -> bool:
    """Alert the admin inbox about a new contact form submission."""
    return _send(
        get_settings().admin_email,
        email_templates.contact_notification(name, email, topic, message, submission_id),
    )


def send_credit_allocation(
    to_email: str,
    name: str | None,
    plan_name: str,
    meeting_room_hours: float,
    printing_credits: float,
    guest_passes: float,
    cycle_end: date,
) -> bool:
    return _send(
        to_email,
        email_templates.credit_allocation(name, plan_name, meeting_room_hours, printing_credits, guest_passes, cycle_end),
    )


def send_newsletter_welcome(to_email: str) -> bool:
    return _send(to_email, email_templates.newsletter_welcome(to_email))


def send_order_ready(to_email: str, name: str | None, order_id: int, items: list[dict]) -> bool:
    return _send(to_email, email_templates.order_ready(name, order_id, items))


def send_payment_receipt(
    to_email: str,
    name: str | None,
    description: str,
    amount: float,
    payment_reference: str | None = None,
    refunded: bool = False,
) -> bool:
    return _send(to_email, email_templates.payment_receipt(name, description, amount, payment_reference, refunded))


def send_payment_failed(to_email: str, name: str | None, description: str, amount: float) -> bool:
    return _send(to_email, email_templates.payment_failed(name, description, amount))


def send_password_reset(to_email: str, name: str | None, token: str) -> bool:
    minutes = get_settings().password_reset_expire_minutes
    return _send(to_email, email_templates.password_reset(name, token, minutes))


def send_membership_welcome(to_email: str, name: str | None, plan_name: str, price: float) -> bool:
    return _send(to_email, email_templates.membership_welcome(name, plan_name, price))
