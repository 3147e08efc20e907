"""
FastAPI service for the job board.

Exposes the scoring calculations, manual score edits, board priorities,
credit balances and the credit-gated AI operations. Domain errors are mapped
to HTTP statuses in one exception handler; every error body says whether the
user was charged.

Run with:
    uvicorn board_service.app:app --host 0.0.0.0 --port 8000
"""

import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.common.error_handling import (
    BoardError,
    ConcurrentModification,
    ExternalCallFailed,
    InsufficientCredits,
    NotFoundError,
    OperationCancelled,
    PersistenceFailed,
    PlanLimitExceeded,
    ValidationError,
)
from src.common.logger import set_global_debug_mode, setup_logging
from version import __version__

from .config import settings, validate_config_on_startup
from .models import HealthResponse
from .routes import credits_router, operations_router, postings_router, scoring_router

# Configure logging
setup_logging(level=settings.log_level, format=settings.log_format)
set_global_debug_mode(settings.debug_mode)
logger = logging.getLogger(__name__)

validate_config_on_startup()

# Client closed request (nginx convention)
STATUS_CLIENT_CLOSED_REQUEST = 499

ERROR_STATUS_CODES = {
    ValidationError: 400,
    InsufficientCredits: 402,
    PlanLimitExceeded: 403,
    NotFoundError: 404,
    ConcurrentModification: 409,
    OperationCancelled: STATUS_CLIENT_CLOSED_REQUEST,
    PersistenceFailed: 500,
    ExternalCallFailed: 502,
}


def status_code_for(error: BoardError) -> int:
    """Most specific mapped status for an error, 500 when unmapped."""
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


app = FastAPI(title="Job Board Service", version=__version__)

if settings.cors_origins_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(scoring_router)
app.include_router(postings_router)
app.include_router(credits_router)
app.include_router(operations_router)


@app.exception_handler(BoardError)
async def board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
    status_code = status_code_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(f"{request.method} {request.url.path} -> {status_code} {exc.error_type}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint for container orchestration."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.utcnow(),
    )
