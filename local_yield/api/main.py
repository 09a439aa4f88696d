"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from local_yield.api.middleware import RequestIDMiddleware, MetricsMiddleware
from local_yield.api.v1 import bookings, credits, discovery, orders, reports
from local_yield.domain.exceptions import DomainException
from local_yield.infrastructure.observability.logging import setup_logging
from local_yield.config import settings

# Setup structured logging
setup_logging(settings.log_level)


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Business-rule violations become {"detail": {"code", "message"}} with the exception's status"""
    logging.warning(
        f"{exc.code}: {exc.message}",
        extra={"request_id": getattr(request.state, "request_id", "unknown"), "path": request.url.path},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"code": exc.code, "message": exc.message}},
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Local Yield Core",
        description="Marketplace orders, care bookings, store credit and ZIP radius discovery",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(orders.router, prefix="/v1", tags=["orders"])
    app.include_router(bookings.router, prefix="/v1", tags=["bookings"])
    app.include_router(credits.router, prefix="/v1", tags=["credits"])
    app.include_router(reports.router, prefix="/v1", tags=["reports"])
    app.include_router(discovery.router, prefix="/v1", tags=["discovery"])

    return app


app = create_app()
