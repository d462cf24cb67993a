"""FastAPI application for the pool.

The application is only a dispatch layer: pool state lives in the Pool
instance supplied by ``get_pool``.
"""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cpamm import __version__
from cpamm.api.endpoints import router
from cpamm.api.schemas import ErrorResponse
from cpamm.errors import (
    AlreadyInitialized,
    InvalidWithdrawalState,
    NotInitialized,
    PoolError,
    Unauthorized,
    UnknownAsset,
    UnknownWithdrawal,
)

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("CPAMM_HOST", "127.0.0.1")
PORT = int(os.environ.get("CPAMM_PORT", "8000"))
DEBUG = os.environ.get("CPAMM_DEBUG", "false").lower() in ("true", "1", "yes")

_NOT_FOUND = (UnknownAsset, UnknownWithdrawal)
_CONFLICT = (AlreadyInitialized, NotInitialized, InvalidWithdrawalState)

app = FastAPI(
    title="cpamm",
    description="Two-asset constant-product liquidity pool",
    version=__version__,
)


def status_for(error: PoolError) -> int:
    """HTTP status code for a pool error."""
    if isinstance(error, Unauthorized):
        return 403
    if isinstance(error, _NOT_FOUND):
        return 404
    if isinstance(error, _CONFLICT):
        return 409
    return 400


@app.exception_handler(PoolError)
async def pool_error_handler(request: Request, exc: PoolError) -> JSONResponse:
    """Serialize pool errors as {"error": code, "detail": message}."""
    logger.warning("pool_operation_rejected", path=request.url.path, error=exc.code, detail=str(exc))
    body = ErrorResponse(error=exc.code, detail=str(exc))
    return JSONResponse(status_code=status_for(exc), content=body.model_dump())


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def configure_logging() -> None:
    """Render structlog events to the console at INFO (DEBUG when CPAMM_DEBUG is set)."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if DEBUG else logging.INFO),
    )


def run() -> None:
    """Run the pool API server.

    Configuration via environment variables:
    - CPAMM_HOST: Host to bind to (default: 127.0.0.1)
    - CPAMM_PORT: Port to bind to (default: 8000)
    - CPAMM_DEBUG: Enable debug logging and reload mode (default: false)
    - CPAMM_POOL_ACCOUNT: Account id of the served pool (default: pool.cpamm)
    """
    configure_logging()
    uvicorn.run(
        "cpamm.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
