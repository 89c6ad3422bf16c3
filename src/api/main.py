"""
Takeoff Search FastAPI Application
==================================

REST API over the construction document search stack.

Endpoints:
    GET  /api/health                       - Health check
    POST /api/search                       - Ranked excerpts (or a takeoff with synthesize=true)
    POST /api/takeoff                      - Search, then synthesize a material takeoff
    GET  /api/results/{drawing_number}     - Best excerpt from one drawing for a query
    POST /api/verify/member/{designation}  - Vision-verified member lookup (cached)
    POST /api/verify/sheet/{sheet}         - Vision spot-checked sheet inventory (cached)

Usage:
    uvicorn src.api.main:app --reload --port 8000

    Or with CLI:
    python -m src.api.main
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from ..orchestrator.logging_config import setup_logging_from_config
from ..orchestrator.services import Services, build_services
from .models import HealthResponse
from .search_routes import router as search_router, get_services

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build services once per app unless they were injected."""
    owned = False
    if getattr(app.state, "services", None) is None:
        settings = get_settings()
        setup_logging_from_config(settings.logging)
        logger.info("Starting Takeoff Search API...")
        app.state.services = build_services(settings)
        owned = True
        logger.info("Services initialized")

    yield

    if owned:
        app.state.services.close()
        app.state.services = None
        logger.info("Shutting down Takeoff Search API...")


def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(
        title="Takeoff Search API",
        description="Construction document search, material takeoff and verification",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS_ORIGINS: comma-separated extra origins for deployed frontends
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    extra = os.getenv("CORS_ORIGINS", "")
    if extra:
        origins.extend(o.strip() for o in extra.split(",") if o.strip())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(search_router)

    @app.get("/api/health", response_model=HealthResponse)
    def health_check(request: Request):
        """Component status. Degraded when the store fell back to memory."""
        services = get_services(request)
        store = services.store.backend
        return HealthResponse(
            status="healthy" if store == "redis" else "degraded",
            version=API_VERSION,
            store=store,
            reranker="configured" if services.engine.reranker is not None else "not_configured",
            vision="configured" if services.lookups is not None else "not_configured",
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
    )
