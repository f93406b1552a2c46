# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError

from stockledger.routers import (
    product_router,
    movement_router,
    stock_summary_router,
    sale_router,
)

from stockledger.core import config
from stockledger.core.db import init_models
from stockledger.core.exceptions import AppException
from stockledger.core.logging import setup_logging
from stockledger.middleware.request_logging import request_logging_middleware
from stockledger.core.error_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    integrity_error_handler,
    unhandled_exception_handler,
)

APP_NAME = "Stock Ledger – Inventory API"

# ------------------------------------------------------------------------------
# LOGGING
# ------------------------------------------------------------------------------
setup_logging()
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# LIFESPAN
# ------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application")

    # DB init ONLY in development; other environments run migrations
    if config.APP_ENV == "development":
        await init_models()
        logger.info("Database models initialized (development)")
    else:
        logger.info("init_models() skipped (%s)", config.APP_ENV)

    yield

    logger.info("Shutting down application")

# ------------------------------------------------------------------------------
# APP INIT
# ------------------------------------------------------------------------------
app = FastAPI(
    title=APP_NAME,
    description="Multi-location inventory ledger: stock, movements and sales",
    version=config.APP_VERSION,
    docs_url="/docs" if not config.IS_PRODUCTION else None,
    redoc_url=None,
    lifespan=lifespan,
)

# ------------------------------------------------------------------------------
# EXCEPTION HANDLERS
# ------------------------------------------------------------------------------
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(IntegrityError, integrity_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# ------------------------------------------------------------------------------
# MIDDLEWARE
# ------------------------------------------------------------------------------
app.middleware("http")(request_logging_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------------------
# HEALTH CHECK
# ------------------------------------------------------------------------------
@app.get("/", tags=["Health"])
async def health_check():
    return {
        "status": "ok",
        "service": "stockledger-api",
        "environment": config.APP_ENV,
        "version": config.APP_VERSION,
    }

# ------------------------------------------------------------------------------
# ROUTERS
# ------------------------------------------------------------------------------
app.include_router(product_router)
app.include_router(movement_router)
app.include_router(stock_summary_router)
app.include_router(sale_router)
