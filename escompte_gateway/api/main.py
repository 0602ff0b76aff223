"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from escompte_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware
from escompte_gateway.api.v1 import configuration, dashboard, escomptes, logs, refinancements
from escompte_gateway.config import settings
from escompte_gateway.infrastructure.database.models import Base
from escompte_gateway.infrastructure.database.session import engine
from escompte_gateway.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)

    app = FastAPI(
        title="Escompte Gateway",
        description="Escompte and refinancement tracking against the bank authorization ceiling",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(escomptes.router, prefix="/api", tags=["escomptes"])
    app.include_router(refinancements.router, prefix="/api", tags=["refinancements"])
    app.include_router(configuration.router, prefix="/api", tags=["configuration"])
    app.include_router(dashboard.router, prefix="/api", tags=["dashboard"])
    app.include_router(logs.router, prefix="/api", tags=["logs"])

    return app


app = create_app()
