"""
Payrexx Checkout -- Order Service Interface

The narrow contract this integration needs from the host shop. The Payrexx
logic (checkout redirect, webhook reconciliation) only talks to this
interface; the shop's own order domain lives behind it.

Orders are plain dicts (database rows) with at least:
  id, custom_order_number, order_total, order_status, payment_status,
  capture_transaction_id, authorization_transaction_id

The can_* methods are the authority on which transitions are allowed.
Reconciliation always asks them first and does nothing when they say no,
which is what makes duplicate webhook deliveries harmless.
"""

from abc import ABC, abstractmethod


class OrderStatus:
  PENDING = "pending"
  PROCESSING = "processing"
  COMPLETE = "complete"
  CANCELLED = "cancelled"


class PaymentStatus:
  PENDING = "pending"
  AUTHORIZED = "authorized"
  PAID = "paid"
  PARTIALLY_REFUNDED = "partially_refunded"
  REFUNDED = "refunded"
  VOIDED = "voided"


class OrderServiceInterface(ABC):
  """Abstract base for the host shop's order service."""

  # -- Lookup and attributes --

  @abstractmethod
  def get_order_by_custom_order_number(self, custom_order_number):
    """Return the order whose human-facing number matches, or None."""
    ...

  @abstractmethod
  def get_order_attribute(self, order, key):
    """Return the string attribute stored on the order under key, or None."""
    ...

  @abstractmethod
  def save_order_attribute(self, order, key, value):
    ...

  @abstractmethod
  def add_order_note(self, order, note, created_on_utc, display_to_customer=False):
    ...

  @abstractmethod
  def update_order(self, order):
    """Persist direct field changes (transaction ids, order status)."""
    ...

  @abstractmethod
  def check_order_status(self, order):
    """Re-run the shop's own order status rules after a change."""
    ...

  # -- Guarded transitions --

  @abstractmethod
  def can_mark_order_as_paid(self, order):
    ...

  @abstractmethod
  def mark_order_as_paid(self, order):
    ...

  @abstractmethod
  def can_mark_order_as_authorized(self, order):
    ...

  @abstractmethod
  def mark_order_as_authorized(self, order):
    ...

  @abstractmethod
  def can_refund_offline(self, order):
    ...

  @abstractmethod
  def refund_offline(self, order):
    ...

  @abstractmethod
  def can_partially_refund_offline(self, order, amount_to_refund):
    ...

  @abstractmethod
  def partially_refund_offline(self, order, amount_to_refund):
    ...

  @abstractmethod
  def can_cancel_order(self, order):
    ...

  @abstractmethod
  def cancel_order(self, order, notify_customer):
    ...
