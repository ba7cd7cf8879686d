"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from pinjaman_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from pinjaman_gateway.api.v1 import actions, state, summary
from pinjaman_gateway.infrastructure.database.models import Base
from pinjaman_gateway.infrastructure.database.session import engine
from pinjaman_gateway.infrastructure.observability.logging import setup_logging
from pinjaman_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Single-table schema, created on first start
    Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Pinjaman Gateway",
        description="Loan book state store, reducer actions and financial reports",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
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
    app.include_router(state.router, prefix="/api", tags=["state"])
    app.include_router(actions.router, prefix="/v1", tags=["actions"])
    app.include_router(summary.router, prefix="/v1", tags=["reports"])

    return app


app = create_app()
