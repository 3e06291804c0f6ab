"""Command line entry point: run the service or manage its schema."""

import argparse
import asyncio
import sys

from mare_website.config import get_settings
from mare_website.exceptions import SchemaError


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "mare_website.main:app",
        host=args.host,
        port=args.port,
        # Logging is configured by the application lifespan
        log_config=None,
    )
    return 0


def init_db(args: argparse.Namespace) -> int:
    from mare_website.database import async_engine, ensure_schema
    from mare_website.logging import configure_logging

    shipper = configure_logging(get_settings())

    async def run() -> None:
        try:
            await ensure_schema()
        finally:
            await async_engine.dispose()

    try:
        asyncio.run(run())
    except SchemaError as exc:
        print(f"Schema initialization failed: {exc}", file=sys.stderr)
        return 1
    finally:
        if shipper is not None:
            shipper.shutdown()

    print("Schema is ready.")
    return 0


def show_schema(args: argparse.Namespace) -> int:
    from mare_website.database import schema_ddl

    print(schema_ddl(args.dialect))
    return 0


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(prog="mare-website", description="Mare record service")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Interface to bind (default: {settings.host})",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to listen on (default: {settings.port})",
    )
    serve_parser.set_defaults(handler=serve)

    init_parser = subparsers.add_parser("init-db", help="Create the mares table if missing")
    init_parser.set_defaults(handler=init_db)

    schema_parser = subparsers.add_parser("schema", help="Print the mares table DDL")
    schema_parser.add_argument(
        "--dialect",
        choices=["postgresql", "sqlite"],
        default="postgresql",
        help="SQL dialect to render (default: postgresql)",
    )
    schema_parser.set_defaults(handler=show_schema)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
