"""
RetailOps FastAPI Main Application
Entry point for the RetailOps REST API
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import logging

from retailops.core.config import settings
from retailops.core.database import SessionLocal, check_db_connection, init_db
from retailops.core.exceptions import (
    RetailOpsException, InvalidStateTransition, StateConflict, Forbidden,
    ReferenceNotFound, InsufficientStock, ValidationError
)
from retailops.core.logging import setup_logging, setup_uvicorn_logging
from retailops.api.v1.api_router import api_router
from retailops.services.bootstrap import bootstrap

setup_logging()
logger = logging.getLogger(__name__)
api_logger = logging.getLogger("retailops.api")

# Status code per error type; subclasses inherit their parent's code
ERROR_STATUS = {
    InvalidStateTransition: 409,
    StateConflict: 409,
    Forbidden: 403,
    ReferenceNotFound: 404,
    InsufficientStock: 422,
    ValidationError: 400,
}

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## RetailOps API

    Inventory and order management for retail and wholesale operations.

    ### Key Features:
    - **Inventory Ledger**: append-only movements with per-warehouse balances
    - **Purchase Orders**: Pending -> Approved -> Received
    - **Sales Orders**: back office, online storefront and point of sale
    - **Assemblies**: bill-of-materials validation and completion
    - **Product Requests**: approved transfers between warehouses
    - **Reporting**: daily movement summaries, reconciliation, sales and stock reports
    """,
    docs_url=settings.DOCS_URL,
    redoc_url=settings.REDOC_URL,
    openapi_url=settings.OPENAPI_URL,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add trusted host middleware for production
if not settings.DEBUG:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS
    )


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers

    Returns system status and database connectivity
    """
    try:
        db_status = check_db_connection()

        return {
            "status": "healthy" if db_status else "degraded",
            "version": settings.APP_VERSION,
            "database": "connected" if db_status else "disconnected",
            "debug": settings.DEBUG
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


# System information endpoint
@app.get("/info", tags=["System"])
async def system_info():
    """
    System information endpoint

    Returns application configuration and build information
    """
    return {
        "application": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "api_version": "v1",
        "docs_url": settings.DOCS_URL,
        "sales_stock_trigger": settings.SALES_STOCK_TRIGGER,
        "features": [
            "Inventory Ledger",
            "Purchase Orders",
            "Sales Orders & Point of Sale",
            "Online Storefront Orders",
            "Assemblies (Bill of Materials)",
            "Product Requests & Transfers",
            "Reporting"
        ],
    }


# Application startup event
@app.on_event("startup")
async def startup_event():
    """
    Application startup tasks

    Verify the database, create tables and seed reference data
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    setup_uvicorn_logging()

    if not check_db_connection():
        logger.error("Failed to connect to database on startup")
        raise RuntimeError("Database connection failed")

    logger.info("Database connection established")
    init_db()

    if settings.RUN_BOOTSTRAP_ON_STARTUP:
        db = SessionLocal()
        try:
            bootstrap(db)
        finally:
            db.close()

    logger.info("Application startup completed successfully")


# Application shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """
    Application shutdown tasks
    """
    logger.info("Shutting down application")


def status_for(exc: RetailOpsException) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400


@app.exception_handler(RetailOpsException)
async def retailops_exception_handler(request: Request, exc: RetailOpsException):
    """
    Map business errors to structured JSON responses

    Returns:
        JSON error response with error code, message, detail and retryable flag
    """
    status_code = status_for(exc)
    api_logger.warning(f"{request.method} {request.url.path} -> {status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Global exception handler for unhandled errors

    Args:
        request: FastAPI request object
        exc: Exception that occurred

    Returns:
        JSON error response
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": str(exc) if settings.DEBUG else "An unexpected error occurred",
            "detail": {},
            "retryable": False,
        }
    )


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "retailops.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
