import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, RATE_LIMIT_ENABLED, SECURITY_HEADERS_ENABLED
from .database import Base, engine, get_db
from .domain.bookings import admin_router as admin_bookings_router
from .domain.bookings import router as bookings_router
from .domain.bookings import worker_router as worker_bookings_router
from .domain.catalog import router as catalog_router
from .errors import BookingError, ValidationError
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Another worker may have won the race
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    if RATE_LIMIT_ENABLED:
        try:
            from .rate_limiter import get_redis_client

            get_redis_client()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed - rate limited routes will return 503: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Pestbook API", version="1.0.0", lifespan=lifespan)


def error_response(status_code: int, code: str, detail, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "code": code, "detail": detail},
        headers=headers,
    )


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Each error kind keeps its own status and code so clients can react differently"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings share the ValidationError signal"""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
    ]
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return error_response(ValidationError.status_code, ValidationError.code, errors)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,  # session cookie
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(catalog_router)
app.include_router(bookings_router)
app.include_router(admin_bookings_router)
app.include_router(worker_bookings_router)


@app.get("/")
def root():
    return {"message": "Pestbook API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/db")
def db_health_check(db: Session = Depends(get_db)):
    """Check database connectivity for monitoring"""
    try:
        start_time = time.time()
        db.execute(text("SELECT 1"))
        response_time = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "database": {
                "connected": True,
                "dialect": db.get_bind().dialect.name,
                "response_time_ms": round(response_time, 2),
            },
        }
    except Exception as e:
        logger.error(f"❌ Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": {"connected": False, "error": str(e)}},
        )
