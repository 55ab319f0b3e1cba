"""
FastAPI application entry point.
Main application setup and configuration.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
import logging

from buildex.config import settings
from buildex.database import test_database_connection, create_tables, close_db_connection
from buildex.routers import (
    auth_router,
    properties_router,
    payments_router,
    enquiries_router,
    rent_requests_router
)
from buildex.services.error_handler import ErrorHandlerService
from buildex.services.otp import MemoryOtpStore, RedisOtpStore
from buildex.utils.exceptions import APIException

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    db_connected = await test_database_connection()
    if not db_connected:
        logger.error("Failed to connect to database on startup")
    elif settings.auto_create_tables:
        await create_tables()

    if settings.redis_url:
        app.state.otp_store = RedisOtpStore(settings.redis_url)
        logger.info("Registration OTPs stored in Redis")
    else:
        app.state.otp_store = MemoryOtpStore()
        logger.warning("REDIS_URL not set; registration OTPs are kept in process memory")

    yield

    logger.info("Shutting down application")
    if isinstance(app.state.otp_store, RedisOtpStore):
        await app.state.otp_store.close()
    await close_db_connection()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Property marketplace API for builders, buyers and tenants.

    ## Features

    * **Listings**: Builders publish properties for sale or rent
    * **Checkout**: Gateway-backed purchase and rent payments with signature verification
    * **Rent Subscriptions**: Monthly due dates tracked per tenant and property
    * **Registration**: Email OTP verified sign-up
    * **Authentication**: JWT-based authentication with role-based access control

    ## Authentication

    Use the `/api/v1/auth/login` endpoint to obtain a JWT token,
    then include it in the Authorization header as `Bearer <token>`.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Authentication",
            "description": "Login, tokens and OTP registration"
        },
        {
            "name": "Properties",
            "description": "Property listings and browsing"
        },
        {
            "name": "Payments",
            "description": "Checkout, gateway callbacks and payment history"
        },
        {
            "name": "Enquiries",
            "description": "Buyer, tenant and site-visit enquiries to builders"
        },
        {
            "name": "Rent Requests",
            "description": "Requests to rent a listing and the builder decision"
        },
        {
            "name": "Health",
            "description": "System health endpoints"
        }
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix=settings.api_v1_prefix)
app.include_router(properties_router, prefix=settings.api_v1_prefix)
app.include_router(payments_router, prefix=settings.api_v1_prefix)
app.include_router(enquiries_router, prefix=settings.api_v1_prefix)
app.include_router(rent_requests_router, prefix=settings.api_v1_prefix)


# Global exception handlers using ErrorHandlerService
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Handle custom API exceptions with structured error responses."""
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors with detailed field information."""
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    return ErrorHandlerService.handle_database_error(exc, request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions (including unknown routes) with structured error responses."""
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with secure error responses."""
    return ErrorHandlerService.handle_unexpected_error(exc, request)


@app.get("/", tags=["Health"])
async def root():
    """Basic API information."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "healthy",
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json"
        },
        "api_prefix": settings.api_v1_prefix
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint with database connectivity test.
    Used by Docker health checks and load balancers.
    """
    if not await test_database_connection():
        raise HTTPException(
            status_code=503,
            detail="Database connection failed"
        )

    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected",
        "payment_gateway": "configured" if settings.razorpay_key_id and settings.razorpay_key_secret else "not configured",
        "email": "smtp" if settings.smtp_configured else "log only"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "buildex.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
