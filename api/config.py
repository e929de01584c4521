"""
Payrexx Checkout -- Configuration

All configuration values with sensible defaults.
Override via environment variables or the service's .env / systemd unit.
"""

import os

# --- Payrexx REST API ---
# SECURITY: No hardcoded defaults -- must be set via environment variable or systemd unit
PAYREXX_INSTANCE_NAME = os.environ.get("PAYREXX_INSTANCE_NAME", "")
PAYREXX_SECRET_KEY = os.environ.get("PAYREXX_SECRET_KEY", "")
PAYREXX_REQUEST_TIMEOUT_SECONDS = int(os.environ.get("PAYREXX_REQUEST_TIMEOUT_SECONDS", "10"))
PAYREXX_API_BASE_URL = os.environ.get("PAYREXX_API_BASE_URL", "https://api.payrexx.com/v1.0/")

PAYREXX_SYSTEM_NAME = "Payments.Payrexx"
PAYREXX_SIGNATURE_PARAMETER = "ApiSignature"
PAYREXX_INSTANCE_PARAMETER = "instance"

# Order attribute holding the id of the gateway created for the order
PAYREXX_INVOICE_ID_ATTRIBUTE = "PayrexxInvoiceId"

# --- API Settings ---
API_VERSION = "1.0.0"
API_HOST = os.environ.get("PAYREXX_CHECKOUT_API_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("PAYREXX_CHECKOUT_API_PORT", "8190"))

USER_AGENT = f"payrexx-checkout/{API_VERSION}"

# --- Public URL (redirect targets handed to Payrexx) ---
PUBLIC_BASE_URL = os.environ.get("PAYREXX_CHECKOUT_PUBLIC_URL", "https://shop.example.com")
CHECKOUT_COMPLETED_URL_TEMPLATE = f"{PUBLIC_BASE_URL}/checkout/completed/{{order_id}}"
ORDER_DETAILS_URL_TEMPLATE = f"{PUBLIC_BASE_URL}/orderdetails/{{order_id}}"

# --- Store ---
STORE_NAME = os.environ.get("PAYREXX_CHECKOUT_STORE_NAME", "Shop")
PRIMARY_STORE_CURRENCY_CODE = os.environ.get("PAYREXX_CHECKOUT_CURRENCY_CODE", "CHF")

# --- MySQL Database (host shop schema) ---
MYSQL_HOST = os.environ.get("PAYREXX_CHECKOUT_DB_HOST", "127.0.0.1")
MYSQL_PORT = int(os.environ.get("PAYREXX_CHECKOUT_DB_PORT", "3306"))
MYSQL_USER = os.environ.get("PAYREXX_CHECKOUT_DB_USER", "shop")
# SECURITY: No hardcoded default -- must be set via environment variable or systemd unit
MYSQL_PASSWORD = os.environ.get("PAYREXX_CHECKOUT_DB_PASSWORD", "")
MYSQL_DATABASE = os.environ.get("PAYREXX_CHECKOUT_DB_NAME", "shop")
MYSQL_POOL_SIZE = int(os.environ.get("PAYREXX_CHECKOUT_DB_POOL_SIZE", "5"))

# --- Email (SMTP) ---
SMTP_HOST = os.environ.get("PAYREXX_CHECKOUT_SMTP_HOST", "localhost")
SMTP_PORT = int(os.environ.get("PAYREXX_CHECKOUT_SMTP_PORT", "25"))
SMTP_FROM_ADDRESS = os.environ.get("PAYREXX_CHECKOUT_SMTP_FROM", "orders@shop.example.com")
SMTP_FROM_NAME = STORE_NAME
