"""
Payrexx Checkout -- MySQL Order Service

OrderServiceInterface implementation on the shop's own tables (see
database.py). Orders are returned as dict rows.

Transition rules (the can_* guards):
  mark paid        -- not cancelled, payment not already paid/refunded/voided
  mark authorized  -- not cancelled, payment still pending
  refund offline   -- payment paid, order total not zero
  partial refund   -- payment paid or partially refunded, amount within
                      what has not been refunded yet
  cancel           -- not already cancelled

Every state change also writes an order note in the same transaction.
"""

import datetime
import decimal
import logging

from services.order_service_interface import OrderServiceInterface, OrderStatus, PaymentStatus

logger = logging.getLogger("payrexx.orders")

_ORDER_COLUMNS = """
  id, custom_order_number, order_total, refunded_amount, currency_code,
  order_status, payment_status,
  capture_transaction_id, authorization_transaction_id,
  customer_id, customer_email,
  billing_first_name, billing_last_name, billing_email, billing_phone,
  billing_address1, billing_city, billing_zip_postal_code, billing_country_code
"""

_INSERT_NOTE = """
  INSERT INTO order_notes (order_id, note, display_to_customer, created_on_utc)
  VALUES (%s, %s, %s, %s)
"""


def _get_database():
  """Lazy import to allow unit testing without live DB."""
  import database
  return database


def _utc_now():
  return datetime.datetime.now(datetime.timezone.utc)


def _note_statement(order, note, created_on_utc=None, display_to_customer=False):
  return (
    _INSERT_NOTE,
    (order["id"], note, 1 if display_to_customer else 0, created_on_utc or _utc_now()),
  )


class MySqlOrderService(OrderServiceInterface):
  """Order collaborator backed by the shop's MySQL schema."""

  # -----------------------------------------------------------------------
  # Lookup and attributes
  # -----------------------------------------------------------------------

  def get_order_by_custom_order_number(self, custom_order_number):
    if not custom_order_number:
      return None
    db = _get_database()
    return db.execute_query_returning_one_row(
      f"SELECT {_ORDER_COLUMNS} FROM orders WHERE custom_order_number = %s AND deleted = 0",
      (custom_order_number,),
    )

  def get_order_attribute(self, order, key):
    db = _get_database()
    row = db.execute_query_returning_one_row(
      "SELECT attribute_value FROM order_attributes WHERE order_id = %s AND attribute_key = %s",
      (order["id"], key),
    )
    return row["attribute_value"] if row else None

  def save_order_attribute(self, order, key, value):
    db = _get_database()
    db.execute_insert_or_update(
      """
      INSERT INTO order_attributes (order_id, attribute_key, attribute_value)
      VALUES (%s, %s, %s)
      ON DUPLICATE KEY UPDATE attribute_value = VALUES(attribute_value)
      """,
      (order["id"], key, value),
    )

  def add_order_note(self, order, note, created_on_utc, display_to_customer=False):
    db = _get_database()
    query, params = _note_statement(order, note, created_on_utc, display_to_customer)
    db.execute_insert_or_update(query, params)

  def update_order(self, order):
    db = _get_database()
    db.execute_insert_or_update(
      """
      UPDATE orders
      SET order_status = %s,
          capture_transaction_id = %s,
          authorization_transaction_id = %s
      WHERE id = %s
      """,
      (
        order["order_status"],
        order.get("capture_transaction_id"),
        order.get("authorization_transaction_id"),
        order["id"],
      ),
    )

  def check_order_status(self, order):
    """A pending order whose payment is authorized or paid moves on to processing."""
    if order["order_status"] != OrderStatus.PENDING:
      return
    if order["payment_status"] not in (PaymentStatus.AUTHORIZED, PaymentStatus.PAID):
      return
    self._set_statuses(
      order,
      order_status=OrderStatus.PROCESSING,
      note=f"Order status has been changed to {OrderStatus.PROCESSING}",
    )

  # -----------------------------------------------------------------------
  # Guarded transitions
  # -----------------------------------------------------------------------

  def can_mark_order_as_paid(self, order):
    if order["order_status"] == OrderStatus.CANCELLED:
      return False
    return order["payment_status"] not in (
      PaymentStatus.PAID,
      PaymentStatus.REFUNDED,
      PaymentStatus.VOIDED,
    )

  def mark_order_as_paid(self, order):
    self._set_statuses(order, payment_status=PaymentStatus.PAID, note="Order has been marked as paid")
    self.check_order_status(order)

  def can_mark_order_as_authorized(self, order):
    if order["order_status"] == OrderStatus.CANCELLED:
      return False
    return order["payment_status"] == PaymentStatus.PENDING

  def mark_order_as_authorized(self, order):
    self._set_statuses(order, payment_status=PaymentStatus.AUTHORIZED, note="Order has been marked as authorized")
    self.check_order_status(order)

  def can_refund_offline(self, order):
    if decimal.Decimal(order["order_total"]) == 0:
      return False
    return order["payment_status"] == PaymentStatus.PAID

  def refund_offline(self, order):
    self._set_statuses(
      order,
      payment_status=PaymentStatus.REFUNDED,
      refunded_amount=decimal.Decimal(order["order_total"]),
      note=f"Order has been marked as refunded. Amount = {order['order_total']}",
    )

  def can_partially_refund_offline(self, order, amount_to_refund):
    if amount_to_refund <= 0:
      return False
    refundable_amount = decimal.Decimal(order["order_total"]) - decimal.Decimal(order["refunded_amount"] or 0)
    if amount_to_refund > refundable_amount:
      return False
    return order["payment_status"] in (PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED)

  def partially_refund_offline(self, order, amount_to_refund):
    refunded_amount = decimal.Decimal(order["refunded_amount"] or 0) + amount_to_refund
    if refunded_amount >= decimal.Decimal(order["order_total"]):
      payment_status = PaymentStatus.REFUNDED
    else:
      payment_status = PaymentStatus.PARTIALLY_REFUNDED
    self._set_statuses(
      order,
      payment_status=payment_status,
      refunded_amount=refunded_amount,
      note=f"Order has been marked as partially refunded. Amount = {amount_to_refund}",
    )

  def can_cancel_order(self, order):
    return order["order_status"] != OrderStatus.CANCELLED

  def cancel_order(self, order, notify_customer):
    self._set_statuses(order, order_status=OrderStatus.CANCELLED, note="Order has been cancelled")
    if notify_customer:
      from services import email_service
      email_service.send_order_cancelled_email(
        order.get("customer_email") or order.get("billing_email"),
        order["custom_order_number"],
        order["order_total"],
        order.get("currency_code") or "",
      )

  # -----------------------------------------------------------------------
  # Helpers
  # -----------------------------------------------------------------------

  def _set_statuses(self, order, note, order_status=None, payment_status=None, refunded_amount=None):
    """Write status changes and their note in one transaction, then mirror them on the dict."""
    changes = {
      "order_status": order_status,
      "payment_status": payment_status,
      "refunded_amount": refunded_amount,
    }
    changes = {field: value for field, value in changes.items() if value is not None}
    updated = {**order, **changes}

    db = _get_database()
    db.execute_multiple_statements_in_transaction([
      (
        """
        UPDATE orders
        SET order_status = %s, payment_status = %s, refunded_amount = %s
        WHERE id = %s
        """,
        (updated["order_status"], updated["payment_status"], updated.get("refunded_amount") or 0, order["id"]),
      ),
      _note_statement(order, note),
    ])
    order.update(changes)
    logger.info("Order %s: %s", order["custom_order_number"], note)
