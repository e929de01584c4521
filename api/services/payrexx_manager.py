"""
Payrexx Checkout -- Payrexx Manager

Orchestrates every call to Payrexx and the handling of Payrexx webhooks.

Each public operation runs through the same wrapper:

  guard     -- instance name and secret key must be set, else fail fast
               without touching the network
  execute   -- send the request through PayrexxHttpClient
  classify  -- a missing envelope or status != success is a failure

Operations never raise. They return (result, error_message); callers must
check error_message, because a successful call can still carry no payload.
Failures are logged with the "Payments.Payrexx error:" prefix and the actor
(customer, webhook sender) the call was made for.

Webhooks (POST from Payrexx, unauthenticated):
  1. parse the body into a Transaction
  2. the transaction must carry an invoice
  3. find the order by the invoice's reference id (custom order number)
  4. the order's stored invoice id must equal the webhook's invoice id
  5. record the raw body as a private order note
  6. re-fetch the gateway from Payrexx; its status, not the webhook's,
     drives the order transition (see payrexx_reconciliation)
"""

import datetime
import logging

from pydantic import ValidationError

import config
from services.payrexx_http_client import PayrexxHttpClient
from services.payrexx_reconciliation import apply_invoice_status_to_order
from services.payrexx_requests import (
  CaptureTransactionRequest,
  DeleteInvoiceRequest,
  GetGatewayRequest,
  GetPaymentProvidersRequest,
  GetTransactionRequest,
  SignatureRequest,
)
from services.payrexx_responses import (
  Gateway,
  Invoice,
  PaymentProvider,
  ResponseData,
  ResponseStatus,
  Transaction,
  Webhook,
)

logger = logging.getLogger("payrexx.manager")


class PayrexxError(Exception):
  """A classified Payrexx failure: not configured, bad response, or bad webhook."""


class PayrexxManager:
  """Payrexx operations with uniform guard / log / classify handling."""

  def __init__(
    self,
    instance_name,
    secret_key,
    http_client=None,
    order_service=None,
    timeout_seconds=None,
  ):
    self.instance_name = instance_name or ""
    self.secret_key = secret_key or ""
    self.http_client = http_client or PayrexxHttpClient(
      self.instance_name,
      self.secret_key,
      timeout_seconds=timeout_seconds,
    )
    self.order_service = order_service

  # -----------------------------------------------------------------------
  # Wrapper
  # -----------------------------------------------------------------------

  def is_configured(self):
    """Instance name and secret key are both required to call Payrexx."""
    return bool(self.instance_name) and bool(self.secret_key)

  async def _handle_function(self, function, actor=None):
    """
    Run an async function under the guard; convert any failure into a
    logged error message.

    Returns (result, None) on success, (None, error_message) on failure.
    """
    try:
      if not self.is_configured():
        raise PayrexxError("Payrexx is not configured (instance name and secret key are required)")

      return await function(), None

    except Exception as exception:
      error_message = f"{config.PAYREXX_SYSTEM_NAME} error: \n{exception}"
      logger.error(
        "%s (actor=%s)",
        error_message, actor or "system",
        exc_info=not isinstance(exception, PayrexxError),
      )
      return None, error_message

  async def _request(self, request, response_data_type=ResponseData, all_records=False):
    """Send a request and unwrap its payload; raise PayrexxError on a failed envelope."""
    response = await self.http_client.send(request, response_data_type)
    if response is None:
      raise PayrexxError("No response from service")

    if response.status != ResponseStatus.SUCCESS:
      status_name = response.status.value if response.status else "unknown"
      raise PayrexxError(f"Request status - {status_name}. \n{response.error_message or ''}")

    if all_records:
      return response.data_collection
    return response.data

  async def _handle_request(self, build_request, response_data_type=ResponseData, actor=None, all_records=False):
    """build_request is called under the guard, so bad arguments become error messages too."""
    return await self._handle_function(
      lambda: self._request(build_request(), response_data_type, all_records=all_records),
      actor=actor,
    )

  # -----------------------------------------------------------------------
  # Outbound operations
  # -----------------------------------------------------------------------

  async def check_credentials(self, actor=None):
    """
    Check whether the configured instance name and secret key are accepted.

    Valid means Payrexx answered success with a payload; its contents are
    not inspected. Returns (is_valid, error_message).
    """
    response_data, error_message = await self._handle_request(SignatureRequest, actor=actor)
    return response_data is not None, error_message

  async def create_gateway(self, request, actor=None):
    """Create a hosted payment page. Returns (Gateway, error_message)."""
    return await self._handle_request(lambda: request, Gateway, actor=actor)

  async def get_gateway(self, gateway_id, actor=None):
    return await self._handle_request(lambda: GetGatewayRequest(id=gateway_id), Gateway, actor=actor)

  async def capture_transaction(self, transaction_id, amount, actor=None):
    """Charge a pre-authorized / reserved transaction for amount (in cents)."""
    return await self._handle_request(
      lambda: CaptureTransactionRequest(id=transaction_id, total_amount=amount),
      Transaction,
      actor=actor,
    )

  async def create_invoice(self, request, actor=None):
    return await self._handle_request(lambda: request, Invoice, actor=actor)

  async def delete_invoice(self, invoice_id, actor=None):
    return await self._handle_request(lambda: DeleteInvoiceRequest(id=invoice_id), Invoice, actor=actor)

  async def get_transaction(self, transaction_id, actor=None):
    return await self._handle_request(lambda: GetTransactionRequest(id=transaction_id), Transaction, actor=actor)

  async def get_payment_providers(self, actor=None):
    """All payment service providers available on the instance. Returns (list, error_message)."""
    return await self._handle_request(
      GetPaymentProvidersRequest,
      PaymentProvider,
      actor=actor,
      all_records=True,
    )

  # -----------------------------------------------------------------------
  # Webhooks
  # -----------------------------------------------------------------------

  def parse_webhook_transaction(self, raw_body):
    """Parse a webhook body into its Transaction; raise PayrexxError if it is not one."""
    try:
      webhook = Webhook.model_validate_json(raw_body)
    except ValidationError as parse_error:
      raise PayrexxError(f"Webhook error: \n{parse_error}") from parse_error

    if webhook.transaction is None:
      raise PayrexxError("Webhook body carries no transaction")
    return webhook.transaction

  async def _process_webhook_transaction(self, raw_body_text):
    if self.order_service is None:
      raise PayrexxError("No order service available to reconcile the webhook")

    transaction = self.parse_webhook_transaction(raw_body_text)

    webhook_invoice = transaction.invoice
    if webhook_invoice is None:
      raise PayrexxError(f"Webhook transaction {transaction.id} carries no invoice")

    reference_id = webhook_invoice.reference_id
    if not reference_id:
      raise PayrexxError(f"Webhook transaction {transaction.id} carries no reference id")

    order = self.order_service.get_order_by_custom_order_number(reference_id)
    if order is None:
      raise PayrexxError(f"No order found for reference id '{reference_id}'")

    # The id of the gateway we created for this order
    invoice_id = webhook_invoice.invoice_id or webhook_invoice.id
    stored_invoice_id = self.order_service.get_order_attribute(order, config.PAYREXX_INVOICE_ID_ATTRIBUTE)
    if not invoice_id or stored_invoice_id != invoice_id:
      raise PayrexxError(
        f"Webhook invoice id '{invoice_id}' does not match invoice id "
        f"'{stored_invoice_id}' stored on order {reference_id}"
      )

    received_at_utc = datetime.datetime.now(datetime.timezone.utc)
    self.order_service.add_order_note(
      order,
      f"Payrexx webhook received at {received_at_utc.isoformat()}:\n{raw_body_text}",
      created_on_utc=received_at_utc,
      display_to_customer=False,
    )

    # Only the status Payrexx reports when asked directly is trusted
    gateway = await self._request(GetGatewayRequest(id=invoice_id), Gateway)
    if gateway is None:
      raise PayrexxError(f"Payrexx returned no gateway for id '{invoice_id}'")

    logger.info(
      "Payrexx webhook for order %s: transaction %s reported %s, gateway %s is %s",
      reference_id, transaction.id,
      transaction.status.value if transaction.status else None,
      gateway.id, gateway.status.value if gateway.status else None,
    )

    return apply_invoice_status_to_order(self.order_service, order, gateway)

  async def handle_webhook_transaction(self, raw_body, actor=None):
    """
    Reconcile a Payrexx webhook with the local order.

    Returns (applied_transition, error_message). The transition is None when
    nothing changed. Errors are logged here; the HTTP caller answers 200
    either way.
    """
    if isinstance(raw_body, bytes):
      raw_body = raw_body.decode("utf-8", errors="replace")

    return await self._handle_function(
      lambda: self._process_webhook_transaction(raw_body),
      actor=actor or "payrexx-webhook",
    )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_payrexx_manager_singleton = None


def get_payrexx_manager():
  """Get the Payrexx manager singleton, wired to the configured shop database."""
  global _payrexx_manager_singleton
  if _payrexx_manager_singleton is None:
    from services.order_service import MySqlOrderService
    _payrexx_manager_singleton = PayrexxManager(
      instance_name=config.PAYREXX_INSTANCE_NAME,
      secret_key=config.PAYREXX_SECRET_KEY,
      order_service=MySqlOrderService(),
      timeout_seconds=config.PAYREXX_REQUEST_TIMEOUT_SECONDS,
    )
  return _payrexx_manager_singleton


async def close_payrexx_manager():
  """Close the singleton's pooled HTTP connection, if the singleton was ever built."""
  if _payrexx_manager_singleton is not None:
    await _payrexx_manager_singleton.http_client.aclose()
