"""CLI entrypoint for geo_lookup."""

from __future__ import annotations

import argparse
import asyncio
import sys

from geo_lookup.logging_config import setup_logging


def main() -> None:
    setup_logging()

    parser = argparse.ArgumentParser(prog="geo-lookup")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--reload", action="store_true")
    sub.add_parser("ping", help="Check the MongoDB connection")
    sub.add_parser("indexes", help="Create lookup indexes on the collections")

    args = parser.parse_args()

    if args.command == "serve":
        _serve(args.reload)
    elif args.command == "ping":
        sys.exit(asyncio.run(_ping()))
    elif args.command == "indexes":
        asyncio.run(_indexes())


def _serve(reload: bool) -> None:
    import uvicorn

    from geo_lookup.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "geo_lookup.api:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


async def _ping() -> int:
    from geo_lookup.db import open_store
    from geo_lookup.errors import StoreUnavailableError

    try:
        async with open_store() as store:
            print(f"Pinged MongoDB successfully, database {store.name!r} is reachable.")
    except StoreUnavailableError as e:
        print(f"MongoDB connection error: {e}", file=sys.stderr)
        return 1
    return 0


async def _indexes() -> None:
    from geo_lookup.db import open_store

    async with open_store() as store:
        created = await store.ensure_indexes()
    for collection, names in created.items():
        print(f"{collection}: {', '.join(names)}")


if __name__ == "__main__":
    main()
