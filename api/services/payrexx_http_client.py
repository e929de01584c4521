"""
Payrexx Checkout -- Payrexx HTTP Client

Owns the outbound channel to the Payrexx REST API (httpx, async).

  - One long-lived httpx.AsyncClient per client instance, created lazily and
    reused across requests (connection pooling).
  - Fixed timeout (default 10s), User-Agent and Accept headers.
  - Every request goes to {path}?instance={instance}; GET requests repeat
    the signed parameters in the query string as well.
  - The signed form body is always attached, whatever the method.

This class does not decide whether a call succeeded. It returns the decoded
envelope; transport errors and undecodable bodies propagate to the caller.
"""

import logging
from urllib.parse import quote

import httpx

import config
from services.payrexx_responses import PayrexxResponse, ResponseData
from services.payrexx_signing import FORM_CONTENT_TYPE, sign_request

logger = logging.getLogger("payrexx.http")


class PayrexxHttpClient:
  """Signed-request client for the Payrexx REST API."""

  def __init__(
    self,
    instance_name,
    secret_key,
    timeout_seconds=None,
    base_url=None,
    transport=None,
  ):
    self.instance_name = instance_name or ""
    self.secret_key = secret_key or ""
    self.timeout_seconds = timeout_seconds or 10
    self.base_url = base_url or config.PAYREXX_API_BASE_URL
    self._transport = transport
    self._http_client = None

  # -----------------------------------------------------------------------
  # Connection
  # -----------------------------------------------------------------------

  def _get_http_client(self):
    """Get or create the pooled httpx client (lazy init)."""
    if self._http_client is None:
      self._http_client = httpx.AsyncClient(
        base_url=self.base_url,
        timeout=self.timeout_seconds,
        headers={
          "User-Agent": config.USER_AGENT,
          "Accept": "application/json",
        },
        transport=self._transport,
      )
    return self._http_client

  async def aclose(self):
    if self._http_client is not None:
      await self._http_client.aclose()
      self._http_client = None

  # -----------------------------------------------------------------------
  # Requests
  # -----------------------------------------------------------------------

  def build_url(self, request, signed_payload):
    """Relative URL: path, instance parameter, and for GET the signed parameters."""
    url = f"{request.path}?{config.PAYREXX_INSTANCE_PARAMETER}={quote(self.instance_name, safe='')}"
    if request.method == "GET":
      url = f"{url}&{signed_payload.body}"
    return url

  async def send(self, request, response_data_type=ResponseData):
    """
    Sign and send a request descriptor; return the decoded envelope.

    Raises httpx.HTTPError on transport failures (including timeouts) and
    pydantic.ValidationError when the body is not a Payrexx envelope.
    """
    signed_payload = sign_request(self.secret_key, request)
    url = self.build_url(request, signed_payload)

    http_response = await self._get_http_client().request(
      request.method,
      url,
      content=signed_payload.body_bytes(),
      headers={"Content-Type": FORM_CONTENT_TYPE},
    )

    logger.debug(
      "Payrexx %s %s -> HTTP %s",
      request.method, request.path, http_response.status_code,
    )

    return PayrexxResponse[response_data_type].model_validate_json(http_response.content)
