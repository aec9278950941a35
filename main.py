"""Account Service - user registration, activation and session API."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.database import init_db
from app.error_handlers import error_response, register_error_handlers
from app.routers import auth_router, password_router, users_router
from app.services.files import get_file_service
from app.services.session import get_session_manager

# Logging
logger = logging.getLogger("account_service")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

ONE_YEAR_IN_SECONDS = 365 * 24 * 60 * 60


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the store and upload folders, and run the token sweep while serving."""
    for warning in get_settings().validate():
        logger.warning(warning)
    init_db()
    get_file_service().create_folders()
    session_manager = get_session_manager()
    session_manager.schedule_cleanup()
    try:
        yield
    finally:
        session_manager.stop_cleanup()


app = FastAPI(title="Account Service", version="0.1.0", lifespan=lifespan)
register_error_handlers(app)


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    # Room for oversized images to reach the size rule and get its 400.
    MAX_BODY_SIZE = get_settings().MAX_IMAGE_SIZE_BYTES * 4

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return error_response(request, 413, "Request body too large")
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = ("/api/1.0/users", "/api/1.0/auth", "/api/1.0/logout", "/api/1.0/password-reset")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        # Log account-changing operations
        path = request.url.path
        method = request.method
        if method in ("POST", "PUT", "DELETE") and path.startswith(self.AUDIT_PATHS):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)


class CachedStaticFiles(StaticFiles):
    """Static files served with a long-lived Cache-Control header."""

    def __init__(self, *args, max_age: int = ONE_YEAR_IN_SECONDS, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.max_age = max_age

    def file_response(self, *args, **kwargs) -> Response:
        response = super().file_response(*args, **kwargs)
        response.headers["Cache-Control"] = f"public, max-age={self.max_age}"
        return response


# Profile images
app.mount("/images", CachedStaticFiles(directory=get_settings().profile_folder, check_dir=False), name="images")

# API routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(password_router)


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "account-service", "version": "0.1.0"}
