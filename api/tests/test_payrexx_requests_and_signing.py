"""
Unit tests for the Payrexx request model and request signing.

Tests cover:
  1. Form field rendering (aliases, None omission, booleans, enums, lists)
  2. Additional contact fields
  3. Request paths and methods
  4. Boolean wire decoding
  5. HMAC-SHA256 signature against published vectors
  6. Canonical encoding: %20 for spaces, reserved characters, UTF-8
  7. Signed body assembly

These tests are PURE LOGIC tests -- no network, no database.

Run with: python -m pytest tests/test_payrexx_requests_and_signing.py -v
"""

import base64
import decimal
from urllib.parse import quote

import pytest
from pydantic import ValidationError

from services.payrexx_requests import (
  PAYREXX_REQUEST_TYPES,
  CaptureTransactionRequest,
  CreateGatewayRequest,
  CreateInvoiceRequest,
  DeleteInvoiceRequest,
  GetGatewayRequest,
  GetPaymentProvidersRequest,
  GetTransactionRequest,
  PaymentMethodName,
  PaymentServiceProvider,
  SignatureRequest,
  bool_to_wire,
  parse_wire_bool,
)
from services.payrexx_signing import (
  FORM_CONTENT_TYPE,
  create_signature,
  encode_form_fields,
  sign_form_fields,
  sign_request,
)


# ===================================================================
# 1. Form field rendering
# ===================================================================

class TestRequestFormFields:

  def test_create_gateway_renders_wire_names_in_declaration_order(self):
    request = CreateGatewayRequest(
      total_amount=1999,
      currency_code="CHF",
      purpose="Shop. Order #1001",
      reference_id="1001",
    )
    assert request.to_form_fields() == [
      ("amount", "1999"),
      ("currency", "CHF"),
      ("purpose", "Shop. Order #1001"),
      ("preAuthorization", "0"),
      ("reservation", "0"),
      ("referenceId", "1001"),
      ("skipResultPage", "0"),
    ]

  def test_none_values_are_omitted(self):
    request = CreateGatewayRequest(total_amount=100)
    wire_names = [name for name, _ in request.to_form_fields()]
    assert "currency" not in wire_names
    assert "sku" not in wire_names
    assert "psp" not in wire_names

  def test_booleans_encode_as_one_and_zero(self):
    request = CreateGatewayRequest(total_amount=100, authorized=True, reserved=False, skip_result_page=True)
    fields = dict(request.to_form_fields())
    assert fields["preAuthorization"] == "1"
    assert fields["reservation"] == "0"
    assert fields["skipResultPage"] == "1"

  def test_lists_are_one_comma_joined_value(self):
    request = CreateGatewayRequest(
      total_amount=100,
      payment_service_providers=[PaymentServiceProvider.PAYREXX_DIRECT, PaymentServiceProvider.TWINT],
      payment_methods=[PaymentMethodName.VISA, PaymentMethodName.MASTERCARD],
    )
    fields = request.to_form_fields()
    assert ("psp", "36,17") in fields
    assert ("pm", "visa,mastercard") in fields
    assert [name for name, _ in fields].count("psp") == 1

  def test_decimal_vat_rate_renders_as_plain_number(self):
    request = CreateGatewayRequest(total_amount=100, vat_rate=decimal.Decimal("7.7"))
    assert ("vatRate", "7.7") in request.to_form_fields()

  def test_wire_names_accepted_on_construction(self):
    request = CreateGatewayRequest(amount=500, currency="EUR", referenceId="A-1")
    assert request.total_amount == 500
    assert request.currency_code == "EUR"
    assert request.reference_id == "A-1"

  def test_create_invoice_requires_amount(self):
    with pytest.raises(ValidationError):
      CreateInvoiceRequest(title="Invoice without amount")

  def test_create_invoice_single_provider(self):
    request = CreateInvoiceRequest(
      title="Order 1001",
      total_amount=2500,
      payment_service_provider=PaymentServiceProvider.PAYPAL,
      hide_additional_fields=True,
    )
    fields = dict(request.to_form_fields())
    assert fields["psp"] == "3"
    assert fields["amount"] == "2500"
    assert fields["hideFields"] == "1"

  def test_path_id_is_not_a_form_field(self):
    assert GetGatewayRequest(id="7").to_form_fields() == []
    assert CaptureTransactionRequest(id="55", total_amount=500).to_form_fields() == [("amount", "500")]

  def test_signature_request_has_no_fields(self):
    assert SignatureRequest().to_form_fields() == []


# ===================================================================
# 2. Additional contact fields
# ===================================================================

class TestAdditionalFields:

  def test_additional_fields_follow_object_fields(self):
    request = CreateGatewayRequest(
      total_amount=100,
      additional_fields=[("forename", "Ada"), ("surname", "Lovelace")],
    )
    fields = request.to_form_fields()
    assert fields[-2:] == [
      ("fields[forename][value]", "Ada"),
      ("fields[surname][value]", "Lovelace"),
    ]

  def test_additional_field_without_value(self):
    request = CreateGatewayRequest(total_amount=100, additional_fields=[("company", None)])
    assert request.to_form_fields()[-1] == ("fields[company]", "")

  def test_additional_fields_on_invoice(self):
    request = CreateInvoiceRequest(total_amount=100, additional_fields=[("email", "ada@example.com")])
    assert request.to_form_fields()[-1] == ("fields[email][value]", "ada@example.com")

  def test_additional_fields_are_not_serialized_as_object_field(self):
    request = CreateGatewayRequest(total_amount=100, additional_fields=[("forename", "Ada")])
    wire_names = [name for name, _ in request.to_form_fields()]
    assert "additional_fields" not in wire_names


# ===================================================================
# 3. Paths and methods
# ===================================================================

class TestRequestPathsAndMethods:

  def test_closed_request_set(self):
    assert len(PAYREXX_REQUEST_TYPES) == 8

  @pytest.mark.parametrize("request_object, expected_method, expected_path", [
    (SignatureRequest(), "GET", "SignatureCheck/"),
    (CreateGatewayRequest(total_amount=1), "POST", "Gateway/"),
    (GetGatewayRequest(id="7"), "GET", "Gateway/7/"),
    (CreateInvoiceRequest(total_amount=1), "POST", "Invoice/"),
    (DeleteInvoiceRequest(id="9"), "DELETE", "Invoice/9/"),
    (GetTransactionRequest(id="55"), "GET", "Transaction/55/"),
    (CaptureTransactionRequest(id="55"), "POST", "Transaction/55"),
    (GetPaymentProvidersRequest(), "GET", "PaymentProvider/"),
  ])
  def test_method_and_path(self, request_object, expected_method, expected_path):
    assert request_object.method == expected_method
    assert request_object.path == expected_path


# ===================================================================
# 4. Boolean wire decoding
# ===================================================================

class TestWireBool:

  @pytest.mark.parametrize("wire_value", ["true", "TRUE", " yes ", "y", "1", 1, True])
  def test_truthy_values(self, wire_value):
    assert parse_wire_bool(wire_value) is True

  @pytest.mark.parametrize("wire_value", ["false", "No", "n", "0", 0, False])
  def test_falsy_values(self, wire_value):
    assert parse_wire_bool(wire_value) is False

  def test_missing_value_is_false(self):
    assert parse_wire_bool(None) is False

  def test_unrecognized_value_is_passed_through(self):
    assert parse_wire_bool("maybe") == "maybe"

  def test_encode_then_decode(self):
    assert parse_wire_bool(bool_to_wire(True)) is True
    assert parse_wire_bool(bool_to_wire(False)) is False


# ===================================================================
# 5. Signature vectors
# ===================================================================

class TestCreateSignature:

  def test_rfc4231_case_2(self):
    signature = create_signature("Jefe", "what do ya want for nothing?")
    assert base64.b64decode(signature).hex() == (
      "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"
    )

  def test_quick_brown_fox(self):
    signature = create_signature("key", "The quick brown fox jumps over the lazy dog")
    assert base64.b64decode(signature).hex() == (
      "f7bc83f430538424b13298e6aa6fb143ef4d59a14946175997479dbc2d1a3cd8"
    )

  def test_signature_is_base64_of_32_bytes(self):
    signature = create_signature("secret", "amount=100")
    assert len(base64.b64decode(signature)) == 32

  def test_different_secret_different_signature(self):
    assert create_signature("secret-a", "amount=100") != create_signature("secret-b", "amount=100")


# ===================================================================
# 6. Canonical encoding
# ===================================================================

class TestEncodeFormFields:

  def test_space_is_percent_20_never_plus(self):
    encoded = encode_form_fields([("purpose", "Shop Order 1001")])
    assert encoded == "purpose=Shop%20Order%201001"
    assert "+" not in encoded

  def test_reserved_characters_are_escaped(self):
    encoded = encode_form_fields([("successRedirectUrl", "https://shop.example.com/a?b=c&d=#e")])
    assert encoded == "successRedirectUrl=https%3A%2F%2Fshop.example.com%2Fa%3Fb%3Dc%26d%3D%23e"

  def test_unreserved_characters_are_kept(self):
    assert encode_form_fields([("sku", "A-1_b.c~d")]) == "sku=A-1_b.c~d"

  def test_non_ascii_is_utf8_percent_encoded(self):
    assert encode_form_fields([("forename", "Müller")]) == "forename=M%C3%BCller"

  def test_bracketed_field_names_are_escaped(self):
    assert encode_form_fields([("fields[email][value]", "a@b.ch")]) == (
      "fields%5Bemail%5D%5Bvalue%5D=a%40b.ch"
    )

  def test_order_is_preserved(self):
    assert encode_form_fields([("b", "2"), ("a", "1")]) == "b=2&a=1"

  def test_empty_field_list(self):
    assert encode_form_fields([]) == ""


# ===================================================================
# 7. Signed body assembly
# ===================================================================

class TestSignFormFields:

  def test_signature_covers_exactly_the_canonical_body(self):
    signed = sign_form_fields("secret", [("amount", "1999"), ("purpose", "Order 1001")])
    assert signed.canonical_body == "amount=1999&purpose=Order%201001"
    assert signed.signature == create_signature("secret", signed.canonical_body)

  def test_body_is_canonical_body_plus_encoded_signature(self):
    signed = sign_form_fields("secret", [("amount", "1999")])
    assert signed.body == f"{signed.canonical_body}&ApiSignature={quote(signed.signature, safe='')}"

  def test_body_starts_with_canonical_body(self):
    signed = sign_form_fields("secret", [("amount", "1999"), ("currency", "CHF")])
    assert signed.body.startswith(signed.canonical_body + "&")
    assert signed.body.count("ApiSignature=") == 1

  def test_signing_is_deterministic(self):
    first = sign_form_fields("secret", [("purpose", "a b c")])
    second = sign_form_fields("secret", [("purpose", "a b c")])
    assert first == second

  def test_empty_request_still_signed(self):
    signed = sign_request("secret", SignatureRequest())
    assert signed.canonical_body == ""
    assert signed.signature == create_signature("secret", "")
    assert signed.body == f"ApiSignature={quote(signed.signature, safe='')}"

  def test_body_bytes_are_latin1_encoded_ascii(self):
    signed = sign_form_fields("secret", [("forename", "Müller")])
    assert signed.body_bytes() == signed.body.encode("ascii")

  def test_content_type_declares_charset(self):
    assert FORM_CONTENT_TYPE == "application/x-www-form-urlencoded; charset=iso-8859-1"

  def test_sign_request_uses_request_fields(self):
    request = CaptureTransactionRequest(id="55", total_amount=500)
    signed = sign_request("secret", request)
    assert signed.canonical_body == "amount=500"
