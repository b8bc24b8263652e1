"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from tradeline.api.middleware import MetricsMiddleware, RequestIDMiddleware
from tradeline.api.v1 import attention, issues, notifications, orders, payments, relationships
from tradeline.config import settings
from tradeline.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Tradeline",
        description="Buyer-supplier trading relationships with derived settlement, health and attention",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(relationships.router, prefix="/v1", tags=["relationships"])
    app.include_router(orders.router, prefix="/v1", tags=["orders"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(issues.router, prefix="/v1", tags=["issues"])
    app.include_router(attention.router, prefix="/v1", tags=["attention"])
    app.include_router(notifications.router, prefix="/v1", tags=["notifications"])

    return app


app = create_app()
