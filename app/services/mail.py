import logging
from html import escape

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


async def send_mail(email: str, subject: str, text: str, html: str | None = None) -> bool:
    """Send one message through the HTTP mail API. Returns False instead of raising."""
    if not settings.MAIL_API_URL:
        logger.warning("MAIL_API_URL is not set, skipping mail to %s", email)
        return False

    payload = {"from": settings.MAIL_FROM, "to": email, "subject": subject, "text": text}
    if html:
        payload["html"] = html

    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            resp = await client.post(
                settings.MAIL_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {settings.MAIL_API_KEY}"},
            )
        if resp.status_code < 400:
            return True
        logger.error("Mail API error for %s: HTTP %s %s", email, resp.status_code, resp.text[:200])
        return False
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error("Mail request to %s failed: %s", email, e)
        return False


async def send_booking_confirmation(booking) -> bool:
    """Confirmation mail for a new appointment."""
    when = booking.booking_datetime.strftime("%d %b %Y, %H:%M")
    text = (
        f"Hello {booking.name},\n\n"
        f"Thanks for booking with HaoChapChap. Your appointment is on {when}.\n"
        f"Phone: {booking.phone}\n"
    )
    if booking.message:
        text += f"Your message: {booking.message}\n"
    text += "\nIf we need to contact you, we will use the email or phone provided.\nSee you soon!\nHaoChapChap Team"

    html = (
        f"<h2>Hello {escape(booking.name)},</h2>"
        f"<p>Thanks for booking with <strong>HaoChapChap</strong>. Here are the details of your appointment:</p>"
        f"<ul><li><strong>Phone:</strong> {escape(booking.phone)}</li><li><strong>Date &amp; Time:</strong> {when}</li></ul>"
    )
    if booking.message:
        html += f"<p><strong>Your message:</strong><br/>{escape(booking.message)}</p>"

    return await send_mail(booking.email, "Your Appointment Confirmation - HaoChapChap", text, html)
