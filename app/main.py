"""
Contract Tracker Backend: FastAPI application entry point.

This module initializes the FastAPI application that tracks service
contracts (pool and garden maintenance clients) and their expiration
dates. It configures logging and CORS, opens the contract store on
startup, translates domain errors into HTTP responses and registers the
contract and interaction routes.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import CORS_ORIGINS, LOG_LEVEL
from app.core.exceptions import InteractionError, PersistenceError, RecordNotFoundError, ValidationError
from app.core.logging_config import configure_logging
from app.db.client import close_mongo, init_store
from app.routes import contracts_routes, interactions_routes
from app.services.interaction_service import PERSISTENCE_FAILURE_MESSAGE

configure_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# Application initialization
# ------------------------------------------------------------------------------

app = FastAPI(
    title="Contract Tracker",
    description="API to track service contracts and alert on upcoming expirations",
    version="0.1.0"
)

# ------------------------------------------------------------------------------
# Middleware configuration
# ------------------------------------------------------------------------------

# CORS middleware: allows cross-origin requests from the configured origins.
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------------------------------------------------------------
# Application startup / shutdown events
# ------------------------------------------------------------------------------

@app.on_event("startup")
async def startup_store():
    """
    Initialize the contract store on application startup.

    This ensures that the database connection and indexes are ready before
    handling requests.
    """
    await init_store()


@app.on_event("shutdown")
async def shutdown_store():
    """Release the MongoDB connection."""
    close_mongo()

# ------------------------------------------------------------------------------
# Domain error translation
# ------------------------------------------------------------------------------

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.to_dict()})


@app.exception_handler(RecordNotFoundError)
async def not_found_handler(request: Request, exc: RecordNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Contract not found"})


@app.exception_handler(InteractionError)
async def interaction_error_handler(request: Request, exc: InteractionError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("Request %s %s failed in the store: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": PERSISTENCE_FAILURE_MESSAGE})

# ------------------------------------------------------------------------------
# API routes registration
# ------------------------------------------------------------------------------

@app.get("/")
async def root():
    return {"status": "ok"}


app.include_router(contracts_routes.router, prefix="/contracts", tags=["Contracts"])
app.include_router(interactions_routes.router, prefix="/interactions", tags=["Interactions"])
