"""
Payrexx Checkout API

Payrexx payment pages and webhook reconciliation for the shop.
Port 8190.

Endpoints:
  /api/health                               -- health check
  /api/v1/status                            -- API status and capabilities
  /api/v1/payrexx/webhook                   -- Payrexx transaction webhook
  /api/v1/payrexx/checkout/{order_number}   -- redirect payer to payment page
  /api/v1/payrexx/credentials/check         -- verify Payrexx credentials
  /api/docs                                 -- Swagger UI documentation

Run with:
    uvicorn app:app --host 127.0.0.1 --port 8190
"""

import datetime
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import config
from routers import payrexx
from services.payrexx_manager import close_payrexx_manager

# --- Logging ---
logging.basicConfig(
  level=logging.INFO,
  format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger("payrexx.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
  yield
  await close_payrexx_manager()


# --- FastAPI app ---
app = FastAPI(
  title="Payrexx Checkout API",
  description="Hosted Payrexx payment pages and webhook reconciliation of shop orders.",
  version=config.API_VERSION,
  docs_url="/api/docs",
  redoc_url="/api/redoc",
  openapi_url="/api/openapi.json",
  lifespan=lifespan,
)

# --- Register routers ---
app.include_router(payrexx.router)


# --- Health and status ---

class HealthResponse(BaseModel):
  status: str
  service: str
  version: str
  timestamp: str
  database: str
  payrexx_configured: bool


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
  """Health check endpoint for monitoring and load balancers."""
  db_status = "unknown"
  try:
    import database
    row = database.execute_query_returning_one_row("SELECT 1 AS alive")
    if row and row.get("alive") == 1:
      db_status = "connected"
    else:
      db_status = "error"
  except Exception as db_error:
    db_status = f"error: {db_error}"

  return HealthResponse(
    status="healthy",
    service="payrexx-checkout-api",
    version=config.API_VERSION,
    timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    database=db_status,
    payrexx_configured=bool(config.PAYREXX_INSTANCE_NAME and config.PAYREXX_SECRET_KEY),
  )


@app.get("/api/v1/status")
async def api_status():
  """API status and capabilities."""
  return JSONResponse(
    content={
      "ok": True,
      "data": {
        "status": "operational",
        "version": config.API_VERSION,
        "capabilities": [
          "health-check",
          "payrexx-webhook",
          "payrexx-checkout-redirect",
          "payrexx-credentials-check",
        ],
        "endpoints": {
          "health": "/api/health",
          "payrexx_webhook": "/api/v1/payrexx/webhook",
          "payrexx_checkout": "/api/v1/payrexx/checkout/{order_number}",
          "payrexx_credentials_check": "/api/v1/payrexx/credentials/check",
          "docs": "/api/docs",
        },
      },
      "error": None,
    }
  )


if __name__ == "__main__":
  import uvicorn
  logger.info("Starting Payrexx Checkout API on %s:%d", config.API_HOST, config.API_PORT)
  uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
