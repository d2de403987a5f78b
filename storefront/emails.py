"""Transactional e-mail: inline HTML templates and SMTP delivery.

Every ``send_*`` function returns ``(success, error)`` so callers can decide
whether a delivery failure matters to them; order placement ignores it,
resending a confirmation does not.
"""
import logging
import smtplib
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from html import escape
from typing import Optional, Tuple

from .config import settings

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Email service not configured"

STATUS_MESSAGES = {
    "pending": "Your order is pending and will be reviewed soon.",
    "processing": "Your order is being processed and prepared for shipment.",
    "shipped": "Your order has been shipped and is on its way to you.",
    "delivered": "Your order has been successfully delivered.",
    "cancelled": "Your order has been cancelled.",
}

_STYLE = """
  body { background: #fff; margin: 0; padding: 0; font-family: Arial, sans-serif; color: #000; }
  .container { max-width: 600px; margin: 32px auto; border: 1px solid #e3e8f0; border-radius: 10px; overflow: hidden; }
  .header { padding: 28px 24px 12px 24px; text-align: center; border-bottom: 1px solid #e3e8f0; }
  .title { font-size: 22px; font-weight: 700; margin-bottom: 6px; }
  .section { padding: 20px 24px 10px 24px; border-bottom: 1px solid #e3e8f0; }
  .section-title { font-size: 16px; font-weight: 600; margin-bottom: 10px; }
  .info-table { width: 100%; }
  .info-table td { padding: 5px 0; font-size: 15px; }
  .button a { display: inline-block; background: #181818; color: #fff; text-decoration: none; padding: 12px 28px; border-radius: 5px; }
  .footer { text-align: center; font-size: 14px; background: #fafafa; padding: 18px 0 10px 0; }
"""


def website_url() -> str:
    url = settings.APP_URL.rstrip("/")
    return url if url.startswith("http") else f"https://{url}"


def order_link(order_id=None) -> str:
    return f"{website_url()}/orders/{order_id}" if order_id else f"{website_url()}/orders"


def estimated_delivery(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).strftime("%Y-%m-%d")


def _page(title: str, subtitle: str, body: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{escape(title)} - {escape(settings.STORE_NAME)}</title><style>{_STYLE}</style></head>
<body>
  <div class="container">
    <div class="header">
      <div class="title">{escape(title)}</div>
      <div class="subtitle">{escape(subtitle)}</div>
    </div>
    {body}
    <div class="footer">
      <div>{footer}</div>
      <div style="margin-top: 8px;">&copy; {datetime.now().year} {escape(settings.STORE_NAME)}. All rights reserved.</div>
    </div>
  </div>
</body>
</html>"""


def _rows(pairs) -> str:
    return "".join(f"<tr><td><strong>{escape(k)}:</strong></td><td>{escape(str(v))}</td></tr>" for k, v in pairs)


def render_order_confirmation(data: dict) -> str:
    items = "".join(
        f"<tr><td>{escape(i['product_name'])}"
        f"{' (' + escape(i['color_name']) + ')' if i.get('color_name') else ''}</td>"
        f"<td>x{i['quantity']}</td><td>{i['price']:.2f}</td></tr>"
        for i in data["items"]
    )
    body = f"""
    <div class="section button" style="text-align: center;"><a href="{order_link(data['order_id'])}">View Order Details</a></div>
    <div class="section">
      <div class="section-title">Order Summary</div>
      <table class="info-table">{_rows([
        ("Status", data.get("status") or "N/A"),
        ("Order Date", data.get("order_date") or "N/A"),
        ("Order Number", data.get("order_number") or "N/A"),
        ("Estimated Delivery", data.get("estimated_delivery") or estimated_delivery()),
      ])}</table>
    </div>
    <div class="section">
      <div class="section-title">Items</div>
      <table class="info-table">{items}</table>
    </div>
    <div class="section">
      <div class="section-title">Shipping Info</div>
      <table class="info-table">{_rows([
        ("Name", data.get("customer_name") or "N/A"),
        ("Address", data.get("shipping_address") or "N/A"),
        ("Phone", data.get("shipping_phone") or "N/A"),
        ("Total Cost", f"{data['total']:.2f}"),
      ])}</table>
    </div>
    <div class="section">
      <div class="section-title">Important Notes</div>
      <ul>
        <li>Please ensure your phone number is correct for delivery coordination.</li>
        <li>Payment will be collected in cash upon delivery.</li>
        <li>You will receive a call from our delivery team before arrival.</li>
      </ul>
    </div>"""
    return _page("Order Confirmed", f"Thank you for shopping with {settings.STORE_NAME}!", body,
                 "Need help? Reply to this email.")


def render_status_update(order_number: str, status: str, tracking_number: Optional[str] = None, order_id=None) -> str:
    rows = [("Order Number", order_number), ("Status", status.upper())]
    if tracking_number:
        rows.append(("Tracking Number", tracking_number))
    rows.append(("Date", datetime.now(timezone.utc).strftime("%Y-%m-%d")))
    body = f"""
    <div class="section button" style="text-align: center;"><a href="{order_link(order_id)}">View Order Details</a></div>
    <div class="section">
      <div class="section-title">Order Information</div>
      <table class="info-table">{_rows(rows)}</table>
    </div>
    <div class="section">
      <div class="section-title">Status Details</div>
      <p>{escape(STATUS_MESSAGES.get(status, "Your order status has been updated."))}</p>
    </div>"""
    return _page("Order Status Update", "Your order status has been updated", body,
                 "Need help? Reply to this email.")


def render_contact(name: str, email: str, subject: str, message: str, category: Optional[str] = None) -> str:
    rows = [("Name", name), ("Email", email)]
    if category:
        rows.append(("Category", category))
    rows += [("Subject", subject), ("Date", datetime.now(timezone.utc).strftime("%Y-%m-%d"))]
    body = f"""
    <div class="section">
      <div class="section-title">Contact Information</div>
      <table class="info-table">{_rows(rows)}</table>
    </div>
    <div class="section">
      <div class="section-title">Message</div>
      <div>{escape(message).replace(chr(10), "<br/>")}</div>
    </div>"""
    return _page("New Contact Form Submission", f"Someone has reached out to {settings.STORE_NAME}", body,
                 f"Reply directly to this email to respond to {escape(name)}")


def send_email(to: str, subject: str, html: str, reply_to: Optional[str] = None,
               sender: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    if not settings.EMAIL_USER or not settings.EMAIL_PASS:
        logger.error("Email configuration missing: EMAIL_USER or EMAIL_PASS not set")
        return False, NOT_CONFIGURED

    msg = EmailMessage()
    msg["From"] = sender or settings.EMAIL_USER
    msg["To"] = to
    msg["Subject"] = subject
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content("This message requires an HTML capable mail client.")
    msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=30) as smtp:
            smtp.starttls()
            smtp.login(settings.EMAIL_USER, settings.EMAIL_PASS)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Email sending to %s failed: %s", to, e)
        return False, str(e)

    logger.info("Email '%s' sent to %s", subject, to)
    return True, None


def send_order_confirmation(data: dict) -> Tuple[bool, Optional[str]]:
    return send_email(data["customer_email"], f"Order Confirmation - {data['order_number']}",
                      render_order_confirmation(data))


def send_status_update(email: str, order_number: str, status: str,
                       tracking_number: Optional[str] = None, order_id=None) -> Tuple[bool, Optional[str]]:
    return send_email(email, f"Order Status Update - {order_number}",
                      render_status_update(order_number, status, tracking_number, order_id))


def send_contact(name: str, email: str, subject: str, message: str,
                 category: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    support = settings.SUPPORT_EMAIL
    if not support:
        return False, NOT_CONFIGURED
    return send_email(support, f"[Contact] {subject}", render_contact(name, email, subject, message, category),
                      reply_to=email, sender=support)
