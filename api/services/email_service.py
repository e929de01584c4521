"""
Payrexx Checkout -- Email Service

Sends the customer notice when Payrexx reports an order's payment as
cancelled, declined or charged back and the order gets cancelled.

SMTP is configured via environment variables (see config.py).
"""

import email.message
import html
import logging
import smtplib

import config

logger = logging.getLogger("payrexx.email")


def _build_email_message(
  to_address,
  subject,
  body_html,
  body_plain_text,
):
  """Build a multipart email message with both HTML and plain-text bodies."""
  msg = email.message.EmailMessage()
  msg["From"] = f"{config.SMTP_FROM_NAME} <{config.SMTP_FROM_ADDRESS}>"
  msg["To"] = to_address
  msg["Subject"] = subject
  msg.set_content(body_plain_text)
  msg.add_alternative(body_html, subtype="html")
  return msg


def _send_email(msg):
  """Send an email via SMTP. Logs on failure but doesn't raise."""
  try:
    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT) as smtp_connection:
      smtp_connection.send_message(msg)
    logger.info("Email sent to %s: %s", msg["To"], msg["Subject"])
    return True
  except (smtplib.SMTPException, OSError) as smtp_error:
    logger.error("Failed to send email to %s: %s", msg["To"], smtp_error)
    return False


def send_order_cancelled_email(customer_email, custom_order_number, order_total, currency_code):
  """
  Tell the customer their order was cancelled because the payment did not
  go through. Returns True when the message was handed to the SMTP server.
  """
  if not customer_email:
    logger.info("Order %s has no customer email; cancellation notice not sent", custom_order_number)
    return False

  order_details_url = config.ORDER_DETAILS_URL_TEMPLATE.format(order_id=custom_order_number)
  subject = f"{config.STORE_NAME}: order #{custom_order_number} has been cancelled"

  body_html = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">

<h2 style="color: #1a5276;">Your order has been cancelled</h2>

<p>Hi there,</p>

<p>We could not complete the payment for your order
<strong>#{html.escape(str(custom_order_number))}</strong>
({html.escape(str(order_total))} {html.escape(currency_code)}), so the order has been cancelled.
No further payment will be taken for it.</p>

<p>You can review the order here:
<a href="{html.escape(order_details_url)}">{html.escape(order_details_url)}</a></p>

<p style="font-size: 12px; color: #aaa;">
  This email was sent by {html.escape(config.STORE_NAME)}. If you believe this is a mistake,
  please reply to this message.
</p>

</body>
</html>"""

  body_plain_text = f"""Your order has been cancelled
=============================

Hi there,

We could not complete the payment for your order #{custom_order_number}
({order_total} {currency_code}), so the order has been cancelled.
No further payment will be taken for it.

Review the order: {order_details_url}

---

This email was sent by {config.STORE_NAME}. If you believe this is a
mistake, please reply to this message.
"""

  msg = _build_email_message(customer_email, subject, body_html, body_plain_text)
  return _send_email(msg)
