from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request

from hypermedia.config.settings import settings
from hypermedia.models.health import Health
from hypermedia.routers import resources
from hypermedia.sample import build_sample_graph
from hypermedia.services.graph import InMemoryResourceGraph

logger = logging.getLogger(__name__)

port = int(os.environ.get("FASTAPIPORT", 8000))


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_app(graph: Optional[InMemoryResourceGraph] = None) -> FastAPI:
    """Build the API around a graph snapshot; the demo graph is used when none is given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        if getattr(app.state, "graph", None) is None:
            app.state.graph = build_sample_graph()
            logger.info("Serving demo graph with %d entities", len(app.state.graph))
        yield

    app = FastAPI(
        title="Hypermedia API",
        description="Renders interconnected resources as HAL or JSON:API documents.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.graph = graph

    # -------------------------------------------------------------------------
    # Health endpoints
    # -------------------------------------------------------------------------
    @app.get("/health", response_model=Health)
    def get_health(request: Request):
        graph = request.app.state.graph
        return Health(
            status=200,
            status_message="OK",
            timestamp=datetime.now(timezone.utc).isoformat(),
            entities=len(graph) if graph is not None else 0,
        )

    # -------------------------------------------------------------------------
    # Root
    # -------------------------------------------------------------------------
    @app.get("/")
    def root(request: Request):
        graph = request.app.state.graph
        collections = []
        if graph is not None:
            collections = [f"/{t.collection_name}" for t in graph.schema.types.values()]
        return {
            "message": "Welcome to the Hypermedia API. See /docs for OpenAPI UI.",
            "collections": collections,
        }

    # -------------------------------------------------------------------------
    # Routers to hypermedia resources
    # -------------------------------------------------------------------------
    app.include_router(router=resources.router)

    return app


app = create_app()

# -----------------------------------------------------------------------------
# Entrypoint for `python -m hypermedia.main`
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("hypermedia.main:app", host="0.0.0.0", port=port, reload=True)
