# paybridge/main.py

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse

from .config import settings
from .errors import PaymentError, ValidationError
from .logging_config import get_logger
from .middleware import cors_middleware, request_id_middleware
from .routers import health, pay

logger = get_logger(__name__)

# ---------------------------------------------
# APP INIT
# ---------------------------------------------
app = FastAPI(
    title="BEpusdt Payment Bridge",
    version=settings.APP_VERSION,
)

# ---------------------------------------------
# MIDDLEWARE (last registered runs first)
# ---------------------------------------------
app.middleware("http")(cors_middleware)
app.middleware("http")(request_id_middleware)

# ---------------------------------------------
# ERROR ENVELOPE
# ---------------------------------------------
@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    logger.info("payment_error", error_type=type(exc).__name__, error=exc.message, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("request_invalid", errors=str(exc.errors()))
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"success": False, "error": ValidationError.default_message},
    )

# ---------------------------------------------
# ROUTERS
# ---------------------------------------------

# Health
app.include_router(health.router, prefix="/health", tags=["Health"])

# Payments
app.include_router(pay.router, prefix="/api/pay", tags=["Payments"])

# ---------------------------------------------
# ROOT ENDPOINT
# ---------------------------------------------
@app.get("/", response_class=HTMLResponse)
def root():
    return "Payment Gateway Running"
