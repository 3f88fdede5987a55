"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from meinha_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from meinha_ledger.api.v1 import debts, rules, score
from meinha_ledger.infrastructure.observability.logging import setup_logging
from meinha_ledger.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Meinha Ledger",
        description="Debt chains with partial payments and reputation scoring",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added = first executed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(debts.router, prefix="/v1", tags=["debts"])
    app.include_router(score.router, prefix="/v1", tags=["score"])
    app.include_router(rules.router, prefix="/v1", tags=["score-rules"])

    return app


app = create_app()
