"""
Payrexx Checkout -- Order Reconciliation

Maps the authoritative Payrexx invoice status onto a local order transition.

  waiting              -> order back to pending, shop re-checks its status
  confirmed            -> mark paid            (amount must match)
  authorized/reserved  -> mark authorized      (amount must match)
  refunded             -> full offline refund
  partially-refunded   -> partial offline refund of the invoice amount
  cancelled/declined/
  chargeback           -> cancel order, notify customer
  error / unknown      -> nothing

Every mutation is preceded by the shop's matching can_* check. When the
shop says no (already paid, already cancelled, ...) the transition is
skipped silently; that is the normal outcome of a repeated webhook.
"""

import decimal
import logging

from services.order_service_interface import OrderStatus
from services.payrexx_responses import InvoiceStatus

logger = logging.getLogger("payrexx.reconciliation")

_CENTS = decimal.Decimal("0.01")
_MINOR_UNITS_PER_MAJOR = 100


def order_total_in_minor_units(order_total):
  """
  Order total in cents: round(total, 2) * 100.

  Rounding is banker's rounding (ROUND_HALF_EVEN), so 10.005 -> 1000 and
  10.015 -> 1002. Floats go through str() first to avoid binary artifacts.
  """
  if not isinstance(order_total, decimal.Decimal):
    order_total = decimal.Decimal(str(order_total))
  rounded_total = order_total.quantize(_CENTS, rounding=decimal.ROUND_HALF_EVEN)
  return int(rounded_total * _MINOR_UNITS_PER_MAJOR)


def invoice_amount_matches_order(invoice, order):
  if invoice.total_amount is None:
    return False
  return invoice.total_amount == order_total_in_minor_units(order["order_total"])


def invoice_amount_in_major_units(invoice):
  """Invoice amount converted from cents, or zero when Payrexx sent none."""
  if invoice.total_amount is None:
    return decimal.Decimal("0")
  return invoice.total_amount / _MINOR_UNITS_PER_MAJOR


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def _apply_pending(order_service, order, invoice):
  order["order_status"] = OrderStatus.PENDING
  order_service.update_order(order)
  order_service.check_order_status(order)
  return "pending"


def _apply_confirmed(order_service, order, invoice):
  if not invoice_amount_matches_order(invoice, order):
    logger.warning(
      "Invoice %s amount %s does not match order %s total %s; not marking paid",
      invoice.id, invoice.total_amount, order["custom_order_number"], order["order_total"],
    )
    return None
  if not order_service.can_mark_order_as_paid(order):
    return None
  order["capture_transaction_id"] = invoice.id
  order_service.update_order(order)
  order_service.mark_order_as_paid(order)
  return "paid"


def _apply_authorized(order_service, order, invoice):
  if not invoice_amount_matches_order(invoice, order):
    logger.warning(
      "Invoice %s amount %s does not match order %s total %s; not marking authorized",
      invoice.id, invoice.total_amount, order["custom_order_number"], order["order_total"],
    )
    return None
  if not order_service.can_mark_order_as_authorized(order):
    return None
  order["authorization_transaction_id"] = invoice.id
  order_service.update_order(order)
  order_service.mark_order_as_authorized(order)
  return "authorized"


def _apply_refunded(order_service, order, invoice):
  if not order_service.can_refund_offline(order):
    return None
  order_service.refund_offline(order)
  return "refunded"


def _apply_partially_refunded(order_service, order, invoice):
  amount_to_refund = invoice_amount_in_major_units(invoice)
  if not order_service.can_partially_refund_offline(order, amount_to_refund):
    return None
  order_service.partially_refund_offline(order, amount_to_refund)
  return "partially_refunded"


def _apply_cancelled(order_service, order, invoice):
  if not order_service.can_cancel_order(order):
    return None
  order_service.cancel_order(order, notify_customer=True)
  return "cancelled"


_TRANSITIONS = {
  InvoiceStatus.PENDING: _apply_pending,
  InvoiceStatus.CONFIRMED: _apply_confirmed,
  InvoiceStatus.AUTHORIZED: _apply_authorized,
  InvoiceStatus.RESERVED: _apply_authorized,
  InvoiceStatus.REFUNDED: _apply_refunded,
  InvoiceStatus.PARTIALLY_REFUNDED: _apply_partially_refunded,
  InvoiceStatus.CANCELLED: _apply_cancelled,
  InvoiceStatus.DECLINED: _apply_cancelled,
  InvoiceStatus.CHARGEBACK: _apply_cancelled,
}


def apply_invoice_status_to_order(order_service, order, invoice):
  """
  Apply the transition for invoice.status to the order.

  Returns the name of the transition applied, or None when nothing changed
  (error/unknown status, amount mismatch, or the shop refused it).
  """
  transition = _TRANSITIONS.get(invoice.status)
  if transition is None:
    logger.info(
      "Order %s: invoice %s status %s needs no action",
      order["custom_order_number"], invoice.id, invoice.status,
    )
    return None

  applied = transition(order_service, order, invoice)
  if applied is None:
    logger.info(
      "Order %s: %s transition skipped for invoice %s",
      order["custom_order_number"], invoice.status.value, invoice.id,
    )
  else:
    logger.info(
      "Order %s: applied %s for invoice %s",
      order["custom_order_number"], applied, invoice.id,
    )
  return applied
