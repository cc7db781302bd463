"""FastAPI endpoints under /api/context.

  POST /api/context/snapshot   load a raw host context (+ optional stores) and process it
  POST /api/context/process    re-acquire from the configured host and process
  GET  /api/context/summary    engine overview
  POST /api/context/query      ranked excerpts for a query
  POST /api/context/route      context bundle for one consumer

The app keeps one ContextEngine and one optional story store on app.state.
"""

import os
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from .acquire import HttpSessionSource, StaticSessionSource
from .config import get_config
from .engine import ContextEngine
from .errors import AcquisitionError
from .models import AgentContextBundle, ConsumerProfile, RelevanceHit
from .prompts import PromptError, render_consumer_prompt
from .relevance import ALL_SOURCES
from .stores import InMemoryStore

router = APIRouter(prefix="/context")


# ── Request bodies ───────────────────────────────────────


class SnapshotBody(BaseModel):
    context: dict[str, Any]
    stores: dict[str, Any] | None = None


class QueryBody(BaseModel):
    text: str
    max_results: int | None = None
    min_score: int | None = None
    sources: list[str] = Field(default_factory=lambda: sorted(ALL_SOURCES))


class RouteBody(BaseModel):
    consumer_id: str
    profile: ConsumerProfile
    phase: str | None = None
    user_input: str = ""


class RouteResponse(BaseModel):
    bundle: AgentContextBundle
    prompt: str


# ── Endpoints ────────────────────────────────────────────


def _engine(request: Request) -> ContextEngine:
    return request.app.state.engine


@router.post("/snapshot")
async def load_snapshot(request: Request, body: SnapshotBody):
    """Replace the engine with one over the posted host context and process it."""
    store = InMemoryStore(body.stores) if body.stores is not None else None
    engine = ContextEngine(StaticSessionSource(body.context), request.app.state.config)
    engine.process(store)
    request.app.state.engine = engine
    request.app.state.store = store
    return engine.summary()


@router.post("/process")
async def process(request: Request):
    """Re-acquire from the host and rebuild. 502 if the host is unreachable."""
    engine = _engine(request)
    try:
        engine.acquire()
    except AcquisitionError as e:
        raise HTTPException(502, str(e))
    engine.process(request.app.state.store)
    return engine.summary()


@router.get("/summary")
async def summary(request: Request):
    return _engine(request).summary()


@router.post("/query")
async def query(request: Request, body: QueryBody) -> list[RelevanceHit]:
    engine = _engine(request)
    if engine.get_raw() is None:
        raise HTTPException(409, "No snapshot loaded")
    return engine.query(
        body.text,
        max_results=body.max_results,
        min_score=body.min_score,
        sources=body.sources,
    )


@router.post("/route")
async def route(request: Request, body: RouteBody) -> RouteResponse:
    engine = _engine(request)
    if engine.get_processed() is None:
        raise HTTPException(409, "Context has not been processed")
    bundle = engine.route_for_consumer(
        body.consumer_id, body.profile, body.phase, request.app.state.store,
    )
    try:
        prompt = render_consumer_prompt(body.profile, bundle, body.user_input)
    except PromptError as e:
        raise HTTPException(422, str(e))
    return RouteResponse(bundle=bundle, prompt=prompt)


def create_app(engine: ContextEngine | None = None, config: dict[str, Any] | None = None) -> FastAPI:
    """Build the app. Without an engine, one is created over $COUNCIL_HOST_URL
    (or an empty static context when no host is configured)."""
    config = config if config is not None else get_config()
    if engine is None:
        host_url = config["host_url"] or os.getenv("COUNCIL_HOST_URL", "")
        if host_url:
            source = HttpSessionSource(host_url, timeout=config["host_timeout"])
        else:
            source = StaticSessionSource({})
        engine = ContextEngine(source, config)

    app = FastAPI(title="Council Context")
    app.state.config = config
    app.state.engine = engine
    app.state.store = None
    app.include_router(router, prefix="/api")
    return app
