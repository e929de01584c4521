"""
Payrexx Checkout -- Checkout Redirect

Decides where to send the payer after an order has been placed:

  order already has a gateway  -> fetch it; pending -> its payment link,
                                  anything else -> the order details page;
                                  not retrievable -> treated as no gateway
  no gateway yet               -> create one; only when it has a payment
                                  link is its id stored on the order
                                  (PayrexxInvoiceId), -> its payment link

Any failure sends the payer to the order details page. Error text from
Payrexx is logged by the manager, never shown to the payer.
"""

import logging

import config
from services.payrexx_reconciliation import order_total_in_minor_units
from services.payrexx_requests import CreateGatewayRequest
from services.payrexx_responses import InvoiceStatus

logger = logging.getLogger("payrexx.checkout")


def _billing_additional_fields(order):
  """Prefill the payer's contact form on the payment page from the billing address."""
  return [
    ("forename", order.get("billing_first_name")),
    ("surname", order.get("billing_last_name")),
    ("phone", order.get("billing_phone")),
    ("email", order.get("billing_email") or order.get("customer_email")),
    ("street", order.get("billing_address1")),
    ("place", order.get("billing_city")),
    ("country", order.get("billing_country_code")),
    ("postcode", order.get("billing_zip_postal_code")),
  ]


def build_create_gateway_request(order):
  custom_order_number = order["custom_order_number"]
  return CreateGatewayRequest(
    total_amount=order_total_in_minor_units(order["order_total"]),
    currency_code=order.get("currency_code") or config.PRIMARY_STORE_CURRENCY_CODE,
    purpose=f"{config.STORE_NAME}. Order #{custom_order_number}",
    success_redirect_url=config.CHECKOUT_COMPLETED_URL_TEMPLATE.format(order_id=custom_order_number),
    failed_redirect_url=config.ORDER_DETAILS_URL_TEMPLATE.format(order_id=custom_order_number),
    reference_id=custom_order_number,
    skip_result_page=True,
    additional_fields=_billing_additional_fields(order),
  )


async def get_payment_redirect_url(payrexx_manager, order_service, order):
  """
  Return the URL the payer should be redirected to for this order.

  Never raises for Payrexx failures; those land on the order details page.
  """
  custom_order_number = order["custom_order_number"]
  failure_url = config.ORDER_DETAILS_URL_TEMPLATE.format(order_id=custom_order_number)
  actor = f"customer:{order.get('customer_id')}"

  invoice_id = order_service.get_order_attribute(order, config.PAYREXX_INVOICE_ID_ATTRIBUTE)
  if invoice_id:
    gateway, _ = await payrexx_manager.get_gateway(invoice_id, actor=actor)
    if gateway is not None:
      return _existing_gateway_redirect_url(gateway, custom_order_number, failure_url)

  gateway, error_message = await payrexx_manager.create_gateway(build_create_gateway_request(order), actor=actor)
  if error_message or gateway is None or not gateway.id or not gateway.payment_link:
    return failure_url

  order_service.save_order_attribute(order, config.PAYREXX_INVOICE_ID_ATTRIBUTE, gateway.id)
  logger.info("Order %s: created Payrexx gateway %s", custom_order_number, gateway.id)

  return gateway.payment_link


def _existing_gateway_redirect_url(gateway, custom_order_number, failure_url):
  if gateway.status != InvoiceStatus.PENDING or not gateway.payment_link:
    logger.info(
      "Order %s: gateway %s is %s, not redirecting to payment",
      custom_order_number, gateway.id, gateway.status,
    )
    return failure_url
  return gateway.payment_link
