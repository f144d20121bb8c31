"""zigbridge FastAPI Application Entry Point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zigbridge import __version__
from zigbridge.api import router as api_router
from zigbridge.core.config import settings
from zigbridge.core.deps import build_services
from zigbridge.core.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    configure_logging(settings.log_level)
    logger.info("Starting zigbridge", environment=settings.environment, port=settings.port)

    services = build_services(settings)
    await services.start()
    app.state.services = services
    logger.info(
        "Gateway services started",
        devices=len(services.registry.devices()),
        mqtt=settings.mqtt_enabled,
    )

    yield

    logger.info("Shutting down zigbridge")
    await services.stop()
    app.state.services = None


fastapi_app = FastAPI(
    title="zigbridge API",
    description="Zigbee device feedback tracking and callback relay",
    version=__version__,
    lifespan=lifespan,
)

fastapi_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

fastapi_app.include_router(api_router, prefix=settings.api_prefix)


@fastapi_app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    errors = [
        {
            "loc": error.get("loc"),
            "msg": str(error.get("msg")),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    logger.error("Validation error", path=str(request.url.path), errors=errors)
    return JSONResponse(status_code=422, content={"detail": errors})


if settings.metrics_enabled:
    from zigbridge.core.metrics import expose_metrics, setup_metrics

    expose_metrics(fastapi_app, setup_metrics(fastapi_app))


@fastapi_app.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy", "version": __version__}


app = fastapi_app


def run() -> None:
    import uvicorn

    uvicorn.run("zigbridge.main:app", host="0.0.0.0", port=settings.port)
