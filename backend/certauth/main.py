"""Main FastAPI application."""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from certauth.config import settings
from certauth.dependencies.services import challenge_store, lockout_tracker, reset_token_store
from certauth.errors import AppError, DependencyError, RateLimitedError
from certauth.rate_limiter import limiter
from certauth.schemas.common import ErrorResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


async def _run_sweep(name: str, sweep: Callable[[], int], interval_seconds: int) -> None:
    """Background loop evicting expired entries from one ephemeral store."""
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                removed = await asyncio.to_thread(sweep)
            except Exception:
                # Best-effort: the next tick tries again
                logger.exception(f"{name} sweep failed")
                continue
            if removed:
                logger.info(f"{name} sweep evicted {removed} entries")
    except asyncio.CancelledError:
        logger.info(f"{name} sweep stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the lockout, challenge and reset-token sweeps; stop them on shutdown."""
    tasks = [
        asyncio.create_task(
            _run_sweep("lockout", lockout_tracker.sweep, settings.lockout_sweep_interval_minutes * 60)
        ),
        asyncio.create_task(
            _run_sweep("challenge", challenge_store.sweep, settings.challenge_sweep_interval_seconds)
        ),
        asyncio.create_task(
            _run_sweep(
                "reset-token", reset_token_store.sweep, settings.reset_token_sweep_interval_minutes * 60
            )
        ),
    ]

    yield

    for task in tasks:
        task.cancel()
    for task in tasks:
        with contextlib.suppress(asyncio.CancelledError):
            await task


# Create FastAPI app
app = FastAPI(
    title="University NFT Certificate Auth API",
    description="Accounts, password and passkey login, and two-factor authentication",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiter to app state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render service errors as {"detail", "code", ...}."""
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    elif exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation failures are 400s listing each field problem."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body")
        errors.append(f"{field}: {error['msg']}" if field else error["msg"])
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "code": "VALIDATION_ERROR", "errors": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(f"Database error on {request.method} {request.url.path}")
    error = DependencyError("A storage error occurred. Please try again.")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers
from certauth.routers import admin, auth, passkey, two_factor  # noqa: E402

error_responses = {code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 429)}

app.include_router(auth.router, prefix="/api", responses=error_responses)
app.include_router(two_factor.router, prefix="/api", responses=error_responses)
app.include_router(passkey.router, prefix="/api", responses=error_responses)
app.include_router(admin.router, prefix="/api", responses=error_responses)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, reload=True)
