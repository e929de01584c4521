"""
Payrexx Checkout -- Request Model

One request descriptor per Payrexx REST operation. Each descriptor declares
its path, HTTP method and wire fields; building one never touches the network.

  GET    SignatureCheck/        -- SignatureRequest
  POST   Gateway/               -- CreateGatewayRequest
  GET    Gateway/{id}/          -- GetGatewayRequest
  POST   Invoice/               -- CreateInvoiceRequest
  DELETE Invoice/{id}/          -- DeleteInvoiceRequest
  GET    Transaction/{id}/      -- GetTransactionRequest
  POST   Transaction/{id}       -- CaptureTransactionRequest
  GET    PaymentProvider/       -- GetPaymentProvidersRequest

Wire rules (form encoding, see payrexx_signing):
  - None values are omitted
  - booleans are "1" / "0"
  - enums are their wire code
  - lists are a single comma-joined value, never repeated keys
"""

import decimal
import enum
from typing import Annotated, ClassVar, List, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


# ---------------------------------------------------------------------------
# Wire enumerations
# ---------------------------------------------------------------------------

class PaymentServiceProvider(str, enum.Enum):
  """Payment service providers, wire-coded by their Payrexx numeric id."""

  PAYREXX_DIRECT = "36"
  POSTFINANCE_E_COMMERCE = "2"
  PAYPAL = "3"
  PAYMILL = "4"
  STRIPE = "5"
  OGONE_BASIC = "6"
  GIROPAY = "7"
  OGONE_ALIAS_GATEWAY = "8"
  CONCARDIS_PAY_ENGINE = "9"
  CONCARDIS_BASIC = "10"
  COINBASE = "11"
  POSTFINANCE_ALIAS_GATEWAY = "12"
  BRAINTREE = "13"
  SOFORT = "14"
  INVOICE = "15"
  BILLPAY = "16"
  TWINT = "17"
  SAFERPAY = "18"
  DATATRANS = "20"
  CCAVENUE = "21"
  VIVEUM_BASIC = "22"
  REKA_CHECK = "23"
  SWISSBILLING = "24"
  PAYONE = "25"
  PAYREXX_PAYMENTS_BY_STRIPE = "26"
  VORKASSE = "27"
  RAZORPAY = "28"
  CONCARDIS_PAYENGINE_NEW = "29"
  WIRPAY = "30"
  MOLLIE = "31"
  SKRILL = "32"
  VR_PAY = "33"


class PaymentMethodName(str, enum.Enum):
  """Payment means shown on the payment page."""

  VISA = "visa"
  MASTERCARD = "mastercard"
  AMERICAN_EXPRESS = "american_express"
  DISCOVER = "discover"
  JCB = "jcb"
  DINERS_CLUB = "diners_club"
  MAESTRO = "maestro"
  PAYPAL = "paypal"
  AIRPLUS = "airplus"
  BANCONTACT = "bancontact"
  CB = "cb"
  POSTFINANCE_CARD = "postfinance_card"
  POSTFINANCE_EFINANCE = "postfinance_efinance"


# ---------------------------------------------------------------------------
# Boolean wire codec
# ---------------------------------------------------------------------------

_TRUE_WIRE_VALUES = frozenset({"true", "yes", "y", "1"})
_FALSE_WIRE_VALUES = frozenset({"false", "no", "n", "0"})


def bool_to_wire(value):
  """Encode a boolean the way Payrexx expects it: "1" or "0"."""
  return "1" if value else "0"


def parse_wire_bool(value):
  """
  Decode a Payrexx boolean.

  Accepts true/yes/y/1 and false/no/n/0 (case-insensitive, trimmed).
  A missing value is false. Anything else is handed back unchanged so
  pydantic's own bool decoder gets the final say.
  """
  if value is None:
    return False
  normalized = str(value).strip().lower()
  if normalized in _TRUE_WIRE_VALUES:
    return True
  if normalized in _FALSE_WIRE_VALUES:
    return False
  return value


WireBool = Annotated[bool, BeforeValidator(parse_wire_bool)]


def _id_as_str(value):
  # Payrexx hands ids back as JSON numbers
  if isinstance(value, int) and not isinstance(value, bool):
    return str(value)
  return value


RequestId = Annotated[str, BeforeValidator(_id_as_str)]


def to_wire_value(value):
  """Render one field value as its form-encoding string."""
  if isinstance(value, bool):
    return bool_to_wire(value)
  if isinstance(value, enum.Enum):
    return value.value
  if isinstance(value, (list, tuple)):
    return ",".join(to_wire_value(item) for item in value)
  return str(value)


# ---------------------------------------------------------------------------
# Request base
# ---------------------------------------------------------------------------

class PayrexxRequest(BaseModel):
  """Base for all request descriptors."""

  model_config = ConfigDict(populate_by_name=True)

  path_template: ClassVar[str] = ""
  method: ClassVar[str] = "GET"

  @property
  def path(self):
    return self.path_template.format(id=getattr(self, "id", ""))

  def to_form_fields(self):
    """Ordered (wire_name, wire_value) pairs; None values are left out."""
    values = self.model_dump(by_alias=True, exclude_none=True)
    return [(wire_name, to_wire_value(value)) for wire_name, value in values.items()]


class _AdditionalFieldsMixin(BaseModel):
  """
  Free-form contact fields that prefill the payer's form on the payment page.
  They are not part of the object's field set and go after it on the wire.
  """

  additional_fields: List[Tuple[str, Optional[str]]] = Field(default_factory=list, exclude=True)

  def to_form_fields(self):
    form_fields = super().to_form_fields()
    for name, value in self.additional_fields:
      if value is not None:
        form_fields.append((f"fields[{name}][value]", value))
      else:
        form_fields.append((f"fields[{name}]", ""))
    return form_fields


# ---------------------------------------------------------------------------
# Concrete requests
# ---------------------------------------------------------------------------

class SignatureRequest(PayrexxRequest):
  """Check that the instance name and secret key produce a valid signature."""

  path_template: ClassVar[str] = "SignatureCheck/"
  method: ClassVar[str] = "GET"


class CreateGatewayRequest(_AdditionalFieldsMixin, PayrexxRequest):
  """Create a hosted payment page (gateway)."""

  path_template: ClassVar[str] = "Gateway/"
  method: ClassVar[str] = "POST"

  total_amount: Optional[int] = Field(default=None, alias="amount")
  vat_rate: Optional[decimal.Decimal] = Field(default=None, alias="vatRate")
  currency_code: Optional[str] = Field(default=None, alias="currency")
  sku: Optional[str] = Field(default=None, alias="sku")
  purpose: Optional[str] = Field(default=None, alias="purpose")
  success_redirect_url: Optional[str] = Field(default=None, alias="successRedirectUrl")
  failed_redirect_url: Optional[str] = Field(default=None, alias="failedRedirectUrl")
  # None enables every provider / payment mean configured on the instance
  payment_service_providers: Optional[List[PaymentServiceProvider]] = Field(default=None, alias="psp")
  payment_methods: Optional[List[PaymentMethodName]] = Field(default=None, alias="pm")
  authorized: bool = Field(default=False, alias="preAuthorization")
  reserved: bool = Field(default=False, alias="reservation")
  reference_id: Optional[str] = Field(default=None, alias="referenceId")
  skip_result_page: bool = Field(default=False, alias="skipResultPage")


class GetGatewayRequest(PayrexxRequest):
  path_template: ClassVar[str] = "Gateway/{id}/"
  method: ClassVar[str] = "GET"

  id: RequestId = Field(exclude=True)


class CreateInvoiceRequest(_AdditionalFieldsMixin, PayrexxRequest):
  """Create a payment request (invoice) with its own payment page."""

  path_template: ClassVar[str] = "Invoice/"
  method: ClassVar[str] = "POST"

  title: Optional[str] = Field(default=None, alias="title")
  description: Optional[str] = Field(default=None, alias="description")
  payment_service_provider: Optional[PaymentServiceProvider] = Field(default=None, alias="psp")
  reference_id: Optional[str] = Field(default=None, alias="referenceId")
  purpose: Optional[str] = Field(default=None, alias="purpose")
  total_amount: int = Field(alias="amount")
  vat_rate: Optional[decimal.Decimal] = Field(default=None, alias="vatRate")
  currency_code: Optional[str] = Field(default=None, alias="currency")
  sku: Optional[str] = Field(default=None, alias="sku")
  authorized: bool = Field(default=False, alias="preAuthorization")
  reserved: bool = Field(default=False, alias="reservation")
  name: Optional[str] = Field(default=None, alias="name")
  hide_additional_fields: bool = Field(default=False, alias="hideFields")


class DeleteInvoiceRequest(PayrexxRequest):
  path_template: ClassVar[str] = "Invoice/{id}/"
  method: ClassVar[str] = "DELETE"

  id: RequestId = Field(exclude=True)


class GetTransactionRequest(PayrexxRequest):
  path_template: ClassVar[str] = "Transaction/{id}/"
  method: ClassVar[str] = "GET"

  id: RequestId = Field(exclude=True)


class CaptureTransactionRequest(PayrexxRequest):
  """Charge a pre-authorized or reserved transaction."""

  path_template: ClassVar[str] = "Transaction/{id}"
  method: ClassVar[str] = "POST"

  id: RequestId = Field(exclude=True)
  total_amount: Optional[int] = Field(default=None, alias="amount")


class GetPaymentProvidersRequest(PayrexxRequest):
  path_template: ClassVar[str] = "PaymentProvider/"
  method: ClassVar[str] = "GET"


# The closed set of operations this client speaks
PAYREXX_REQUEST_TYPES = (
  SignatureRequest,
  CreateGatewayRequest,
  GetGatewayRequest,
  CreateInvoiceRequest,
  DeleteInvoiceRequest,
  GetTransactionRequest,
  CaptureTransactionRequest,
  GetPaymentProvidersRequest,
)
