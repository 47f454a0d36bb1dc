"""
FastAPI Application Entry Point

Delivery CEP Lookup - Hybrid Architecture
Supports both simulated providers (development) and real APIs (production).

Endpoints:
    - GET /api/cep/{cep}: Resolve a CEP to a canonical address
    - GET /health: System health check
    - GET /: Service information

Version: 1.0.0
"""

from contextlib import asynccontextmanager
from datetime import datetime
from http import HTTPStatus
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cep_lookup.core.config import get_logger, get_settings, setup_logging
from cep_lookup.schemas import (
    AddressResponse,
    ErrorResponse,
    HealthResponse,
    ProviderInfo,
)
from cep_lookup.services.cep import (
    AddressCache,
    CepResolver,
    KeyValidationError,
    OutcomeStatus,
    get_address_cache,
    get_cep_resolver,
    normalize_cep,
    reset_cep_resolver,
)

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = get_logger(__name__)

NOT_FOUND_DETAIL = "CEP not found by any provider. Please check and try again."


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    resolver = get_cep_resolver()
    for provider in resolver.providers:
        logger.info(f"✅ CEP Provider: {provider.name} ({provider.timeout_ms}ms)")

    cache = get_address_cache()
    if cache.enabled:
        logger.info(f"✅ Address cache: ttl={cache.ttl_seconds}s, max={cache.max_entries}")
    else:
        logger.info("⚠️ Address cache disabled")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await resolver.aclose()
    reset_cep_resolver()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "CEP (Brazilian postal code) lookup for delivery checkout. "
        "Queries ViaCEP, BrasilAPI and Postmon in order with per-provider timeouts."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"📮 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    resolver: CepResolver = Depends(get_cep_resolver),
    cache: AddressCache = Depends(get_address_cache),
) -> HealthResponse:
    """Report configured providers and cache state."""
    return HealthResponse(
        status="operational",
        environment=settings.env_mode.value,
        providers=[
            ProviderInfo(name=p.name, timeout_ms=p.timeout_ms)
            for p in resolver.providers
        ],
        cache_entries=len(cache),
        timestamp=datetime.now(),
    )


# =============================================================================
# CEP ENDPOINTS
# =============================================================================

@app.get(
    "/api/cep/{cep}",
    response_model=AddressResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["CEP"],
    summary="Resolve CEP",
)
async def lookup_cep(
    cep: str,
    numero: Optional[str] = Query(None, max_length=20, description="Street number"),
    complemento: Optional[str] = Query(None, max_length=100, description="Address complement"),
    resolver: CepResolver = Depends(get_cep_resolver),
    cache: AddressCache = Depends(get_address_cache),
) -> AddressResponse:
    """
    Resolve a CEP to its street, neighborhood, city and state.

    Accepts the CEP with or without formatting (01001-000 or 01001000).
    Providers are tried in order (ViaCEP, BrasilAPI, Postmon); the first
    answer wins. Whatever the underlying failure, an unresolved CEP
    returns the same 404 message.
    """
    try:
        key = normalize_cep(cep)
    except KeyValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    record = cache.get(key)
    if record is not None:
        logger.debug(f"CEP {key}: served from cache")
    else:
        outcome = await resolver.resolve(key)

        if outcome.status == OutcomeStatus.INVALID_KEY:
            raise HTTPException(status_code=400, detail=outcome.error_message)

        if not outcome.ok:
            raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)

        record = outcome.record
        cache.set(key, record)

    return AddressResponse.from_record(record, numero=numero, complemento=complemento)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors (including unknown routes) with the standard ErrorResponse body."""
    error = ErrorResponse(
        error=HTTPStatus(exc.status_code).phrase,
        detail=str(exc.detail),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error.model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render rejected query/path parameters with the standard ErrorResponse body."""
    problems = [
        f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}"
        for e in exc.errors()
    ]
    error = ErrorResponse(
        error=HTTPStatus.UNPROCESSABLE_ENTITY.phrase,
        detail="; ".join(problems),
    )
    return JSONResponse(status_code=422, content=error.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cep_lookup.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
