from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError
from contextlib import asynccontextmanager
import logging

# Import configuration and logging
from core.config import settings
from core.logging_config import setup_logging
from core.database import initialize_db, db_manager
# Import exceptions and handlers
from core.exceptions import (
    APIException,
    api_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    sqlalchemy_exception_handler,
    general_exception_handler
)
from routes import discounts_router, offers_router, loyalty_router, health_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup event
    setup_logging(settings.LOG_LEVEL, job_level=settings.TIER_JOB_LOG_LEVEL or None)
    logger.info(f"Starting offers engine ({settings.ENVIRONMENT})")

    initialize_db(settings.SQLALCHEMY_DATABASE_URI, settings.is_local)

    # Local runs have no migration step, so the tables are created here
    if settings.is_local:
        await db_manager.create_all()
        logger.info("Database tables ensured")

    yield
    # Shutdown event
    await db_manager.dispose()
    logger.info("Database connections closed")


app = FastAPI(
    title="Offers & Rewards API",
    description="Coupon, membership and loyalty point discounts for the restaurant point of sale.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all routers with API versioning v1
app.include_router(discounts_router, prefix="/v1")
app.include_router(offers_router, prefix="/v1")
app.include_router(loyalty_router, prefix="/v1")
app.include_router(health_router, prefix="/v1")


@app.get("/")
async def read_root():
    return {
        "service": "Offers & Rewards API",
        "status": "Running",
        "version": "1.0.0",
    }


# Register exception handlers
app.add_exception_handler(APIException, api_exception_handler)
app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)
