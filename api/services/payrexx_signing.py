"""
Payrexx Checkout -- Request Signing

Payrexx authenticates every API call with an HMAC over the form-encoded
request parameters:

  signature = base64( HMAC-SHA256( secret_key, canonical_body ) )

The canonical body is encoded exactly once. The same string is signed and
then transmitted, with ApiSignature appended after it, so the remote side
re-derives the identical bytes when it strips the signature off.

Encoding is RFC 3986 percent-encoding (UTF-8 octets), with spaces as %20.
Form encoders that emit "+" for a space produce a body Payrexx rejects.
"""

import base64
import hashlib
import hmac
from dataclasses import dataclass
from urllib.parse import quote, urlencode

import config

FORM_BODY_CHARSET = "iso-8859-1"
FORM_CONTENT_TYPE = f"application/x-www-form-urlencoded; charset={FORM_BODY_CHARSET}"


@dataclass(frozen=True)
class SignedPayload:
  """A canonical body, its signature, and the body actually sent on the wire."""

  canonical_body: str
  signature: str
  body: str

  def body_bytes(self):
    return self.body.encode(FORM_BODY_CHARSET)


def encode_form_fields(form_fields):
  """Percent-encode (name, value) pairs in order; spaces become %20, never '+'."""
  return urlencode(list(form_fields), quote_via=quote)


def create_signature(secret_key, message):
  """Base64 of the HMAC-SHA256 of message, keyed by the API secret key (both UTF-8)."""
  digest = hmac.new(
    secret_key.encode("utf-8"),
    message.encode("utf-8"),
    hashlib.sha256,
  ).digest()
  return base64.b64encode(digest).decode("ascii")


def sign_form_fields(secret_key, form_fields):
  """
  Encode the request parameters once, sign that exact string, and append
  the signature parameter to it.
  """
  canonical_body = encode_form_fields(form_fields)
  signature = create_signature(secret_key, canonical_body)
  signature_parameter = encode_form_fields([(config.PAYREXX_SIGNATURE_PARAMETER, signature)])
  body = f"{canonical_body}&{signature_parameter}" if canonical_body else signature_parameter
  return SignedPayload(canonical_body=canonical_body, signature=signature, body=body)


def sign_request(secret_key, request):
  """Sign a request descriptor's form fields."""
  return sign_form_fields(secret_key, request.to_form_fields())
