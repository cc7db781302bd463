"""FastMCP server exposing context retrieval as MCP tools.

Tools:
  - query_context(text, max_results)            : ranked excerpts for a query
  - route_context(consumer_id, name, needs, phase) : prompt-ready context for a consumer
  - context_summary()                           : what the engine currently holds

The engine is replaced via set_engine() for tests, or built from a snapshot
JSON file when run as __main__.

Usage:
    uv run python -m council_context.mcp_server path/to/context.json
"""

import json
import sys
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .acquire import StaticSessionSource
from .engine import ContextEngine
from .models import ConsumerProfile

mcp = FastMCP("council-context")

_engine: ContextEngine = ContextEngine(StaticSessionSource({}))


def set_engine(engine: ContextEngine) -> None:
    """Replace the active engine (used in tests)."""
    global _engine
    _engine = engine


def get_engine() -> ContextEngine:
    return _engine


@mcp.tool()
def query_context(text: str, max_results: int = 10) -> list[dict]:
    """Return the snapshot excerpts most relevant to text, best first."""
    return [hit.model_dump() for hit in _engine.query(text, max_results=max_results)]


@mcp.tool()
def route_context(
    consumer_id: str, name: str, context_needs: list[str], phase: str = ""
) -> str:
    """Return the formatted context bundle for a consumer with the given needs."""
    profile = ConsumerProfile(name=name, context_needs=context_needs)
    bundle = _engine.route_for_consumer(consumer_id, profile, phase or None)
    return bundle.formatted


@mcp.tool()
def context_summary() -> dict:
    """Describe the currently loaded snapshot and index."""
    return _engine.summary()


if __name__ == "__main__":
    if len(sys.argv) > 1:
        raw = json.loads(Path(sys.argv[1]).read_text())
        engine = ContextEngine(StaticSessionSource(raw))
        engine.process()
        set_engine(engine)
    mcp.run()
