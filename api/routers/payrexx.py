"""
Payrexx Checkout -- Payrexx Router

  POST /api/v1/payrexx/webhook                  -- Payrexx transaction webhook
  GET  /api/v1/payrexx/checkout/{order_number}  -- redirect payer to payment page
  GET  /api/v1/payrexx/credentials/check        -- verify instance name / secret key

Webhook security:
  - Payrexx webhooks are not signed; the body is only a hint
  - The invoice id in the body must match the one stored on the order
  - The order transition uses the gateway status fetched back from Payrexx
  - Reconciliation is idempotent through the shop's can_* guards

The webhook endpoint answers 200 no matter what happened locally; failures
are logged by the manager. Payrexx gets nothing to retry or escalate on.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse

from services import checkout_service
from services.payrexx_manager import get_payrexx_manager

logger = logging.getLogger("payrexx.webhooks")

router = APIRouter(prefix="/api/v1/payrexx", tags=["payrexx"])


def _error_response(http_status_code, error_code, error_message):
  """Build a standard error envelope."""
  return JSONResponse(
    status_code=http_status_code,
    content={
      "ok": False,
      "data": None,
      "error": {"code": error_code, "message": error_message},
    },
  )


def _success_response(data, http_status_code=200):
  """Build a standard success envelope."""
  return JSONResponse(
    status_code=http_status_code,
    content={"ok": True, "data": data, "error": None},
  )


# =========================================================================
# POST /api/v1/payrexx/webhook
# =========================================================================

@router.post("/webhook")
async def receive_payrexx_webhook(request: Request):
  """
  Receive a Payrexx transaction webhook and reconcile the order it names.

  Always returns 200 OK.
  """
  raw_body = await request.body()
  client_host = request.client.host if request.client else "unknown"

  payrexx_manager = get_payrexx_manager()
  applied_transition, error_message = await payrexx_manager.handle_webhook_transaction(
    raw_body,
    actor=f"payrexx-webhook@{client_host}",
  )

  if error_message is None:
    logger.info("Payrexx webhook processed: transition=%s", applied_transition)

  return JSONResponse(status_code=200, content={"status": "ok"})


# =========================================================================
# GET /api/v1/payrexx/checkout/{order_number}
# =========================================================================

@router.get("/checkout/{order_number}")
async def redirect_to_payment_page(order_number: str):
  """Send the payer to the Payrexx payment page for the order, or to the order page on failure."""
  payrexx_manager = get_payrexx_manager()
  order_service = payrexx_manager.order_service

  order = order_service.get_order_by_custom_order_number(order_number)
  if order is None:
    return _error_response(404, "ORDER_NOT_FOUND", f"Order '{order_number}' not found")

  redirect_url = await checkout_service.get_payment_redirect_url(payrexx_manager, order_service, order)
  return RedirectResponse(url=redirect_url, status_code=302)


# =========================================================================
# GET /api/v1/payrexx/credentials/check
# =========================================================================

@router.get("/credentials/check")
async def check_payrexx_credentials():
  """Ask Payrexx whether the configured instance name and secret key are valid."""
  payrexx_manager = get_payrexx_manager()
  is_valid, error_message = await payrexx_manager.check_credentials(actor="admin")

  if error_message:
    result = "error"
  elif is_valid:
    result = "valid"
  else:
    result = "invalid"

  return _success_response({
    "credentials": result,
    "instance_name": payrexx_manager.instance_name,
    "message": error_message,
  })
