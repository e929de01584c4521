"""
Shared fixtures: an in-memory shop order service and webhook/response bodies.
"""

import decimal
import json

import pytest

from services.order_service_interface import OrderServiceInterface, OrderStatus, PaymentStatus


class InMemoryOrderService(OrderServiceInterface):
  """Order service over plain dicts, with the same guard rules as the MySQL one."""

  def __init__(self):
    self.orders = {}
    self.attributes = {}
    self.notes = []
    self.calls = []

  def add_order(self, custom_order_number="1001", order_total="19.99", **fields):
    order = {
      "id": len(self.orders) + 1,
      "custom_order_number": custom_order_number,
      "order_total": decimal.Decimal(order_total),
      "refunded_amount": decimal.Decimal("0"),
      "currency_code": "CHF",
      "order_status": OrderStatus.PENDING,
      "payment_status": PaymentStatus.PENDING,
      "capture_transaction_id": None,
      "authorization_transaction_id": None,
      "customer_id": 42,
      "customer_email": "buyer@example.com",
    }
    order.update(fields)
    self.orders[custom_order_number] = order
    return order

  # -- Lookup and attributes --

  def get_order_by_custom_order_number(self, custom_order_number):
    return self.orders.get(custom_order_number)

  def get_order_attribute(self, order, key):
    return self.attributes.get((order["id"], key))

  def save_order_attribute(self, order, key, value):
    self.calls.append(("save_order_attribute", key, value))
    self.attributes[(order["id"], key)] = value

  def add_order_note(self, order, note, created_on_utc, display_to_customer=False):
    self.notes.append({
      "order_id": order["id"],
      "note": note,
      "created_on_utc": created_on_utc,
      "display_to_customer": display_to_customer,
    })

  def update_order(self, order):
    self.calls.append(("update_order", order["order_status"]))

  def check_order_status(self, order):
    self.calls.append(("check_order_status",))

  # -- Guarded transitions --

  def can_mark_order_as_paid(self, order):
    if order["order_status"] == OrderStatus.CANCELLED:
      return False
    return order["payment_status"] not in (PaymentStatus.PAID, PaymentStatus.REFUNDED, PaymentStatus.VOIDED)

  def mark_order_as_paid(self, order):
    self.calls.append(("mark_order_as_paid",))
    order["payment_status"] = PaymentStatus.PAID

  def can_mark_order_as_authorized(self, order):
    if order["order_status"] == OrderStatus.CANCELLED:
      return False
    return order["payment_status"] == PaymentStatus.PENDING

  def mark_order_as_authorized(self, order):
    self.calls.append(("mark_order_as_authorized",))
    order["payment_status"] = PaymentStatus.AUTHORIZED

  def can_refund_offline(self, order):
    return order["order_total"] != 0 and order["payment_status"] == PaymentStatus.PAID

  def refund_offline(self, order):
    self.calls.append(("refund_offline",))
    order["payment_status"] = PaymentStatus.REFUNDED
    order["refunded_amount"] = order["order_total"]

  def can_partially_refund_offline(self, order, amount_to_refund):
    if amount_to_refund <= 0:
      return False
    if amount_to_refund > order["order_total"] - order["refunded_amount"]:
      return False
    return order["payment_status"] in (PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED)

  def partially_refund_offline(self, order, amount_to_refund):
    self.calls.append(("partially_refund_offline", amount_to_refund))
    order["payment_status"] = PaymentStatus.PARTIALLY_REFUNDED
    order["refunded_amount"] += amount_to_refund

  def can_cancel_order(self, order):
    return order["order_status"] != OrderStatus.CANCELLED

  def cancel_order(self, order, notify_customer):
    self.calls.append(("cancel_order", notify_customer))
    order["order_status"] = OrderStatus.CANCELLED


@pytest.fixture
def order_service():
  return InMemoryOrderService()


def make_webhook_body(
  reference_id="1001",
  payment_request_id=7,
  invoice_status="confirmed",
  transaction_status="confirmed",
  amount=1999,
):
  return json.dumps({
    "transaction": {
      "id": 55,
      "uuid": "abc123",
      "status": transaction_status,
      "time": "2024-03-01 12:00:00",
      "lang": "en",
      "psp": "Payrexx Direct",
      "pspId": 36,
      "payrexx_fee": 0,
      "metadata": None,
      "invoice": {
        "referenceId": reference_id,
        "paymentRequestId": payment_request_id,
        "amount": amount,
        "currency": "CHF",
        "status": invoice_status,
      },
      "contact": {"id": 9, "firstname": "Ada", "lastname": "Lovelace", "email": "ada@example.com"},
    }
  })


def make_gateway_envelope(gateway_id=7, status="confirmed", amount=1999, link="https://shop.payrexx.com/?payment=abc"):
  return {
    "status": "success",
    "data": [{
      "id": gateway_id,
      "status": status,
      "hash": "abc",
      "referenceId": "1001",
      "link": link,
      "amount": amount,
      "currency": "CHF",
      "preAuthorization": 0,
      "reservation": 0,
      "createdAt": 1709294400,
    }],
  }


@pytest.fixture
def webhook_body_factory():
  return make_webhook_body


@pytest.fixture
def gateway_envelope_factory():
  return make_gateway_envelope
