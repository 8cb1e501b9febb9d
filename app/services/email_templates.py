"""Transactional email templates. Each builder returns (subject, html, text)."""
from datetime import date
from html import escape

from app.config import get_settings

BRAND_COLOR = "#1f6f5c"


def _layout(title: str, body_html: str) -> str:
    settings = get_settings()
    return f"""<!DOCTYPE html>
<html>
<body style="margin:0;padding:0;background:#f5f5f0;font-family:Arial,Helvetica,sans-serif;color:#222;">
  <table width="100%" cellpadding="0" cellspacing="0" style="padding:24px 0;">
    <tr><td align="center">
      <table width="600" cellpadding="0" cellspacing="0" style="background:#fff;border-radius:8px;overflow:hidden;">
        <tr><td style="background:{BRAND_COLOR};color:#fff;padding:20px 32px;font-size:20px;font-weight:bold;">
          {escape(settings.app_name)}
        </td></tr>
        <tr><td style="padding:32px;">
          <h1 style="font-size:22px;margin:0 0 16px;">{escape(title)}</h1>
          {body_html}
        </td></tr>
        <tr><td style="padding:16px 32px;font-size:12px;color:#777;border-top:1px solid #eee;">
          {escape(settings.app_name)} &middot; <a href="{escape(settings.app_url)}" style="color:#777;">{escape(settings.app_url)}</a>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>"""


def _rows(pairs: list[tuple[str, str]]) -> str:
    cells = "".join(
        f'<tr><td style="padding:6px 12px 6px 0;color:#555;">{escape(k)}</td>'
        f'<td style="padding:6px 0;font-weight:bold;">{escape(v)}</td></tr>'
        for k, v in pairs
    )
    return f'<table cellpadding="0" cellspacing="0" style="margin:16px 0;">{cells}</table>'


def _text_rows(pairs: list[tuple[str, str]]) -> str:
    return "\n".join(f"{k}: {v}" for k, v in pairs)


def _money(amount: float) -> str:
    return f"${amount:.2f}"


def _greeting(name: str | None) -> str:
    return (name or "").strip() or "there"


def booking_confirmation(
    name: str | None,
    workspace_name: str,
    booking_date: date,
    start_time: str,
    end_time: str,
    confirmation_code: str,
    total_price: float,
    nft_discount_applied: bool = False,
) -> tuple[str, str, str]:
    subject = f"Booking confirmed - {confirmation_code}"
    pairs = [
        ("Workspace", workspace_name),
        ("Date", booking_date.isoformat()),
        ("Time", f"{start_time} - {end_time}"),
        ("Confirmation code", confirmation_code),
        ("Total", _money(total_price)),
    ]
    extra = "<p>Your NFT holder discount was applied.</p>" if nft_discount_applied else ""
    html = _layout(
        "Your booking is confirmed",
        f"<p>Hi {escape(_greeting(name))},</p><p>We look forward to seeing you.</p>{_rows(pairs)}{extra}"
        "<p>Check in up to 15 minutes before your start time.</p>",
    )
    text = (
        f"Hi {_greeting(name)},\n\nYour booking is confirmed.\n\n{_text_rows(pairs)}\n\n"
        "Check in up to 15 minutes before your start time."
    )
    return subject, html, text


def contact_notification(name: str, email: str, topic: str, message: str, submission_id: int) -> tuple[str, str, str]:
    subject = f"New contact submission ({topic}) from {name}"
    pairs = [("Name", name), ("Email", email), ("Topic", topic), ("Submission", f"#{submission_id}")]
    html = _layout(
        "New contact form submission",
        f"{_rows(pairs)}<p style=\"white-space:pre-wrap;border-left:3px solid #ddd;padding-left:12px;\">{escape(message)}</p>",
    )
    text = f"New contact form submission\n\n{_text_rows(pairs)}\n\n{message}"
    return subject, html, text


def credit_allocation(
    name: str | None,
    plan_name: str,
    meeting_room_hours: float,
    printing_credits: float,
    guest_passes: float,
    cycle_end: date,
) -> tuple[str, str, str]:
    subject = f"Your {plan_name} credits are ready"
    pairs = [
        ("Meeting room hours", f"{meeting_room_hours:g}"),
        ("Printing credits", f"{printing_credits:g}"),
        ("Guest passes", f"{guest_passes:g}"),
        ("Valid until", cycle_end.isoformat()),
    ]
    html = _layout(
        "New credits allocated",
        f"<p>Hi {escape(_greeting(name))},</p><p>Your {escape(plan_name)} credits for this billing cycle:</p>{_rows(pairs)}",
    )
    text = f"Hi {_greeting(name)},\n\nYour {plan_name} credits for this billing cycle:\n\n{_text_rows(pairs)}"
    return subject, html, text


def newsletter_welcome(email: str) -> tuple[str, str, str]:
    settings = get_settings()
    subject = f"Welcome to the {settings.app_name} newsletter"
    unsubscribe = f"{settings.app_url}/newsletter/unsubscribe?email={email}"
    html = _layout(
        "Thanks for subscribing",
        "<p>You'll hear about community events, new workspaces and cafe specials.</p>"
        f'<p style="font-size:12px;"><a href="{escape(unsubscribe)}">Unsubscribe</a></p>',
    )
    text = (
        "Thanks for subscribing. You'll hear about community events, new workspaces and cafe specials.\n\n"
        f"Unsubscribe: {unsubscribe}"
    )
    return subject, html, text


def order_ready(name: str | None, order_id: int, items: list[dict]) -> tuple[str, str, str]:
    subject = f"Order #{order_id} is ready for pickup"
    lines = [f"{i.get('quantity', 1)} x {i.get('title', 'Item')}" for i in items]
    items_html = "".join(f"<li>{escape(line)}</li>" for line in lines)
    html = _layout(
        "Your order is ready",
        f"<p>Hi {escape(_greeting(name))},</p><p>Pick up order #{order_id} at the cafe counter.</p><ul>{items_html}</ul>",
    )
    text = f"Hi {_greeting(name)},\n\nPick up order #{order_id} at the cafe counter.\n\n" + "\n".join(lines)
    return subject, html, text


def payment_receipt(
    name: str | None,
    description: str,
    amount: float,
    payment_reference: str | None,
    refunded: bool = False,
) -> tuple[str, str, str]:
    label = "Refund" if refunded else "Payment"
    subject = f"{label} receipt - {_money(amount)}"
    pairs = [("Description", description), ("Amount", _money(amount))]
    if payment_reference:
        pairs.append(("Reference", payment_reference))
    html = _layout(
        f"{label} receipt",
        f"<p>Hi {escape(_greeting(name))},</p>{_rows(pairs)}<p>Thank you.</p>",
    )
    text = f"Hi {_greeting(name)},\n\n{label} receipt\n\n{_text_rows(pairs)}"
    return subject, html, text


def payment_failed(name: str | None, description: str, amount: float) -> tuple[str, str, str]:
    settings = get_settings()
    subject = "Payment failed"
    pairs = [("Description", description), ("Amount", _money(amount))]
    html = _layout(
        "We couldn't process your payment",
        f"<p>Hi {escape(_greeting(name))},</p>{_rows(pairs)}"
        f'<p>Please update your payment method in <a href="{escape(settings.app_url)}/dashboard">your dashboard</a>.</p>',
    )
    text = f"Hi {_greeting(name)},\n\nWe couldn't process your payment.\n\n{_text_rows(pairs)}"
    return subject, html, text


def password_reset(name: str | None, token: str, expires_minutes: int) -> tuple[str, str, str]:
    settings = get_settings()
    link = f"{settings.app_url}/reset-password?token={token}"
    subject = "Reset your password"
    html = _layout(
        "Reset your password",
        f"<p>Hi {escape(_greeting(name))},</p>"
        f'<p><a href="{escape(link)}" style="background:{BRAND_COLOR};color:#fff;padding:10px 18px;border-radius:4px;text-decoration:none;">Reset password</a></p>'
        f"<p>This link expires in {expires_minutes} minutes. If you did not ask for it, ignore this email.</p>",
    )
    text = (
        f"Hi {_greeting(name)},\n\nReset your password: {link}\n\n"
        f"This link expires in {expires_minutes} minutes. If you did not ask for it, ignore this email."
    )
    return subject, html, text


def membership_welcome(name: str | None, plan_name: str, price: float) -> tuple[str, str, str]:
    subject = f"Welcome to {plan_name}"
    html = _layout(
        f"Welcome to {plan_name}",
        f"<p>Hi {escape(_greeting(name))},</p><p>Your membership is active at {_money(price)} per billing period.</p>",
    )
    text = f"Hi {_greeting(name)},\n\nYour {plan_name} membership is active at {_money(price)} per billing period."
    return subject, html, text
