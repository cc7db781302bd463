"""Council Context dev launcher.

Loads a host context from a JSON file (or $COUNCIL_HOST_URL), processes it,
and then either prints ranked excerpts for --query, prints a consumer
bundle for --needs, or serves the HTTP API.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "13015"))


def main():
    parser = argparse.ArgumentParser(description="Council Context dev launcher")
    parser.add_argument("--context", type=Path, default=None,
                        help="Host context JSON file (default: fetch from $COUNCIL_HOST_URL)")
    parser.add_argument("--stores", type=Path, default=None,
                        help="Story store JSON file")
    parser.add_argument("--config", type=Path, default=None,
                        help="Config JSON file (default: $COUNCIL_CONFIG)")
    parser.add_argument("--query", default=None,
                        help="Print ranked excerpts for this query and exit")
    parser.add_argument("--needs", default=None,
                        help="Comma-separated context needs; print the routed bundle and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    from council_context import (
        AcquisitionError,
        ContextEngine,
        HttpSessionSource,
        InMemoryStore,
        StaticSessionSource,
    )
    from council_context.api import create_app
    from council_context.config import get_config
    from council_context.models import ConsumerProfile

    config = get_config(args.config)
    if args.context:
        source = StaticSessionSource(json.loads(args.context.read_text()))
    elif config["host_url"]:
        source = HttpSessionSource(config["host_url"], timeout=config["host_timeout"])
    else:
        parser.error("--context or COUNCIL_HOST_URL is required")

    store = InMemoryStore(json.loads(args.stores.read_text())) if args.stores else None
    engine = ContextEngine(source, config)
    try:
        engine.process(store)
    except AcquisitionError as e:
        print(f"Cannot acquire context: {e}", file=sys.stderr)
        sys.exit(1)

    if args.query is not None:
        for hit in engine.query(args.query):
            print(f"[{hit.score:>3}] {hit.source}:{hit.label}  {hit.content[:120]}")
        return

    if args.needs is not None:
        needs = [n.strip() for n in args.needs.split(",") if n.strip()]
        profile = ConsumerProfile(name="cli", context_needs=needs)
        print(engine.route_for_consumer("cli", profile, stores=store).formatted)
        return

    app = create_app(engine, config)
    app.state.store = store
    print(f"Serving context API on http://{HOST}:{PORT}/api/context ...")
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
