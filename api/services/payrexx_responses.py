"""
Payrexx Checkout -- Response Model

Every Payrexx response is the same envelope:

  {
    "status": "success" | "error",
    "message": "...",          # error text, when status is error
    "data": [ {...} ]          # zero or one payload records
  }

The payload types are parsed leniently (unknown keys ignored) because
Payrexx adds fields over time; only enumerations we reconcile on are strict,
and those fail closed.
"""

import datetime
import decimal
import enum
import logging
from typing import Annotated, Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from services.payrexx_requests import PaymentServiceProvider, WireBool

logger = logging.getLogger("payrexx.responses")


class ResponseStatus(str, enum.Enum):
  SUCCESS = "success"
  ERROR = "error"


class InvoiceStatus(str, enum.Enum):
  """Payrexx invoice / gateway / transaction status, wire-coded."""

  PENDING = "waiting"
  CONFIRMED = "confirmed"
  AUTHORIZED = "authorized"
  RESERVED = "reserved"
  REFUNDED = "refunded"
  PARTIALLY_REFUNDED = "partially-refunded"
  CANCELLED = "cancelled"
  DECLINED = "declined"
  CHARGEBACK = "chargeback"
  ERROR = "error"


def _parse_invoice_status(value):
  """Unknown status codes fail closed: they become ERROR, never a transition."""
  if value is None or isinstance(value, InvoiceStatus):
    return value
  try:
    return InvoiceStatus(str(value).strip().lower())
  except ValueError:
    logger.warning("Unknown Payrexx status %r treated as error", value)
    return InvoiceStatus.ERROR


def _parse_response_status(value):
  if value is None or isinstance(value, ResponseStatus):
    return value
  try:
    return ResponseStatus(str(value).strip().lower())
  except ValueError:
    return None


def _parse_optional_provider(value):
  if value is None or isinstance(value, PaymentServiceProvider):
    return value
  try:
    return PaymentServiceProvider(str(value))
  except ValueError:
    return None


def _parse_provider_list(value):
  if value is None:
    return []
  if not isinstance(value, list):
    value = [value]
  providers = [_parse_optional_provider(item) for item in value]
  return [provider for provider in providers if provider is not None]


def _parse_unix_timestamp(value):
  if value is None or value == "":
    return None
  if isinstance(value, datetime.datetime):
    return value
  return datetime.datetime.fromtimestamp(int(value), tz=datetime.timezone.utc)


def _as_list(value):
  """Payrexx sends a bare object or null where a one-element list is documented."""
  if value is None:
    return []
  if isinstance(value, list):
    return value
  return [value]


def _as_optional_str(value):
  """Payrexx ids arrive as JSON numbers or strings; we always handle them as strings."""
  if value is None or isinstance(value, str):
    return value
  return str(value)


WireId = Annotated[Optional[str], BeforeValidator(_as_optional_str)]
WireList = BeforeValidator(_as_list)
WireInvoiceStatus = Annotated[Optional[InvoiceStatus], BeforeValidator(_parse_invoice_status)]
WireProvider = Annotated[Optional[PaymentServiceProvider], BeforeValidator(_parse_optional_provider)]
WireProviderList = Annotated[List[PaymentServiceProvider], BeforeValidator(_parse_provider_list)]
UnixDateTime = Annotated[Optional[datetime.datetime], BeforeValidator(_parse_unix_timestamp)]


class ResponseData(BaseModel):
  """Base for payload records. Also the payload type of requests whose data we ignore."""

  model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Invoice(ResponseData):
  """A Payrexx invoice or gateway: one payment request for one order."""

  id: WireId = None
  status: WireInvoiceStatus = None
  hash: Optional[str] = None
  reference_id: WireId = Field(default=None, alias="referenceId")
  payment_link: Optional[str] = Field(default=None, alias="link")
  authorized: WireBool = Field(default=False, alias="preAuthorization")
  reserved: WireBool = Field(default=False, alias="reservation")
  name: Optional[str] = None
  api_used: WireBool = Field(default=False, alias="api")
  payment_service_providers: WireProviderList = Field(default_factory=list, alias="psp")
  purpose: Optional[str] = None
  # in minor currency units (cents)
  total_amount: Optional[decimal.Decimal] = Field(default=None, alias="amount")
  vat_rate: Optional[decimal.Decimal] = Field(default=None, alias="vatRate")
  currency_code: Optional[str] = Field(default=None, alias="currency")
  sku: Optional[str] = None
  is_subscription: WireBool = Field(default=False, alias="subscriptionState")
  subscription_interval: Optional[str] = Field(default=None, alias="subscriptionInterval")
  subscription_period: Optional[str] = Field(default=None, alias="subscriptionPeriod")
  created_at: UnixDateTime = Field(default=None, alias="createdAt")
  product_names: WireId = Field(default=None, alias="number")
  product_details: Optional[List[Any]] = Field(default=None, alias="products")
  is_test_invoice: WireBool = Field(default=False, alias="test")
  # id of the gateway / invoice created through the API
  invoice_id: WireId = Field(default=None, alias="paymentRequestId")
  additional_fields: Optional[Any] = Field(default=None, alias="fields")


# Payrexx returns the same record for gateways and invoices
Gateway = Invoice


class Contact(ResponseData):
  id: WireId = None
  title: Optional[str] = None
  first_name: Optional[str] = Field(default=None, alias="firstname")
  last_name: Optional[str] = Field(default=None, alias="lastname")
  email: Optional[str] = None
  country_code: Optional[str] = Field(default=None, alias="countryISO")
  country_name: Optional[str] = Field(default=None, alias="country")
  delivery_country_code: Optional[str] = Field(default=None, alias="delivery_countryISO")
  delivery_country_name: Optional[str] = Field(default=None, alias="delivery_country")


class Metadata(ResponseData):
  paypal_billing_agreement_id: Optional[str] = Field(default=None, alias="paypalBillingAgreementId")


class Transaction(ResponseData):
  """A single payment attempt; the payload of webhook notifications."""

  id: WireId = None
  uuid: Optional[str] = None
  created_at: WireId = Field(default=None, alias="time")
  status: WireInvoiceStatus = None
  language_code: Optional[str] = Field(default=None, alias="lang")
  payment_service_provider_name: Optional[str] = Field(default=None, alias="psp")
  payment_service_provider: WireProvider = Field(default=None, alias="pspId")
  service_fee: Optional[decimal.Decimal] = Field(default=None, alias="payrexx_fee")
  payment_method_names: Optional[Any] = Field(default=None, alias="payment")
  metadata: Annotated[List[Metadata], WireList] = Field(default_factory=list)
  invoice: Optional[Invoice] = None
  contact: Optional[Contact] = None


class PaymentProvider(ResponseData):
  payment_service_provider: WireProvider = Field(default=None, alias="id")
  name: Optional[str] = None
  payment_methods: Annotated[List[str], WireList] = Field(default_factory=list, alias="paymentMethods")
  active_payment_methods: Annotated[List[str], WireList] = Field(default_factory=list, alias="activePaymentMethods")


class Webhook(BaseModel):
  """Body of a Payrexx webhook POST."""

  transaction: Optional[Transaction] = None


ResponseDataT = TypeVar("ResponseDataT", bound=ResponseData)


class PayrexxResponse(BaseModel, Generic[ResponseDataT]):
  """The response envelope, parameterized by its payload record type."""

  model_config = ConfigDict(populate_by_name=True, extra="ignore")

  status: Annotated[Optional[ResponseStatus], BeforeValidator(_parse_response_status)] = None
  error_message: Optional[str] = Field(default=None, alias="message")
  data_collection: Annotated[List[ResponseDataT], WireList] = Field(default_factory=list, alias="data")

  @property
  def data(self):
    """The current payload: the first record, or None."""
    return self.data_collection[0] if self.data_collection else None
