"""Main FastAPI application for the RunPlan backend."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from runplan.api.routes.generate_plan import router as generate_plan_router
from runplan.core.config import settings
from runplan.core.logging import configure_logging
from runplan.core.middleware import RequestIDMiddleware
from runplan.observability.client import init_opik
from runplan.observability.tracing import trace
from runplan.services.registry import build_registry

configure_logging(log_level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(generate_plan_router)


@app.on_event("startup")
async def startup_services() -> None:
    """Build clients and verifiers once, before the first request is served."""
    init_opik()
    app.state.services = build_registry(settings)
    if settings.database_auto_create:
        from runplan.db import Base
        from runplan.db.deps import get_engine

        Base.metadata.create_all(bind=get_engine())
        logger.info("Database tables ensured.")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
