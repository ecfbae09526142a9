from fastapi import FastAPI, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool
import time
from typing import List
from wa_dashboard.config import get_settings
from wa_dashboard.database.message_store import MessageStore, get_message_store
from wa_dashboard.routes import check_human, conversations, messages
from wa_dashboard.utils.logger import get_logger
from wa_dashboard.utils.exceptions import BaseAPIException
from wa_dashboard.utils.responses import error_response
from wa_dashboard.services.webhook_handler import verify_webhook, handle_webhook

VERSION = "1.0.0"

# Initialize settings and logger
settings = get_settings()
logger = get_logger(__name__)

# Create FastAPI application
app = FastAPI(
    title="WhatsApp Cloud Dashboard API",
    description="Webhook relay, conversation view and human-activity gate for the WhatsApp Cloud API",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==============================================================
# WhatsApp Webhook Endpoints
# ==============================================================
@app.get("/webhook")
async def webhook_verify(request: Request):
    return await verify_webhook(request)

@app.post("/webhook")
async def webhook_receive(request: Request, store: MessageStore = Depends(get_message_store)):
    body = await request.body()
    return await run_in_threadpool(handle_webhook, store, body)

# ==============================================================
# Middleware
# ==============================================================
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response

# ==============================================================
# Exception Handlers
# ==============================================================
@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions."""
    logger.warning(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.detail, exc.details)
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response("Validation error", jsonable_encoder(exc.errors()))
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unexpected error: {str(exc)}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            "Internal server error",
            str(exc) if settings.app_env == "development" else None
        )
    )

# ==============================================================
# Routers
# ==============================================================
app.include_router(messages.router)
app.include_router(conversations.router)
app.include_router(check_human.router)

# ==============================================================
# Health Check Endpoints
# ==============================================================
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "success": True,
        "message": "WhatsApp Cloud Dashboard API",
        "version": VERSION,
        "docs": "/docs"
    }

@app.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "success": True,
        "status": "healthy",
        "environment": settings.app_env
    }

@app.get("/health/db")
def db_health_check(store: MessageStore = Depends(get_message_store)):
    """API + Database health check."""
    try:
        store.ping()
        return {
            "success": True,
            "status": "healthy",
            "database": "connected",
            "environment": settings.app_env
        }
    except BaseAPIException as e:
        logger.error(f"Health check failed: {e.detail}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "success": False,
                "status": "unhealthy",
                "database": "disconnected",
                "error": e.detail
            }
        )

# ==============================================================
# Startup / Shutdown Events
# ==============================================================
REQUIRED_SETTINGS = (
    "whatsapp_phone_number_id",
    "whatsapp_access_token",
    "whatsapp_business_account_id",
    "webhook_verify_token",
    "supabase_url",
    "supabase_service_role_key",
)


def missing_configuration(app_settings) -> List[str]:
    """Environment variable names of the credentials that are not set."""
    return [name.upper() for name in REQUIRED_SETTINGS if not getattr(app_settings, name)]


@app.on_event("startup")
async def startup_event():
    """Run on app startup."""
    logger.info(f"Starting WhatsApp Cloud Dashboard API v{VERSION} - Environment: {settings.app_env}")
    missing = missing_configuration(get_settings())
    if missing:
        logger.warning(f"Missing configuration, dependent endpoints will fail: {', '.join(missing)}")

@app.on_event("shutdown")
async def shutdown_event():
    """Run on app shutdown."""
    logger.info("Shutting down WhatsApp Cloud Dashboard API")

# ==============================================================
# Entry Point
# ==============================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "wa_dashboard.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "development"
    )
