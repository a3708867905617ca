"""CLI entry point for LegIndex.

Commands:
  serve    Run the HTTP server (search, event intake, index administration)
  rebuild  Rebuild the bill index from the bill store and print the report
  clear    Delete and recreate the bill index
"""

from __future__ import annotations

import argparse
import asyncio
import socket
import sys
from pathlib import Path

from legindex.config.settings import Settings
from legindex.models.rebuild import RebuildReport


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="legindex",
        description="LegIndex: bill search index synchronization",
    )
    parser.add_argument("--config", "-c", type=str, default=None, help="Path to YAML configuration file")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument("--version", action="version", version=f"LegIndex {_get_version()}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", type=str, default=None, help="Server bind address (overrides config)")
    serve.add_argument("--port", "-p", type=int, default=None, help="Server port (overrides config)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    subparsers.add_parser("rebuild", help="Rebuild the bill index from the bill store")
    subparsers.add_parser("clear", help="Delete and recreate the bill index")

    args = parser.parse_args(argv)
    settings = _load_settings(args.config)
    if args.log_level:
        settings.observability.log_level = args.log_level

    from legindex.observability.logging import setup_logging

    setup_logging(settings.observability)

    if args.command == "serve":
        _serve(settings, host=args.host, port=args.port, reload=args.reload)
    elif args.command == "rebuild":
        report = asyncio.run(_rebuild(settings))
        print(report.model_dump_json(indent=2))
    elif args.command == "clear":
        asyncio.run(_clear(settings))
        print(f"Cleared index '{settings.index.index_name}'")


def _load_settings(config: str | None) -> Settings:
    if config is None:
        return Settings()
    config_path = Path(config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        sys.exit(1)
    return Settings.from_yaml(config_path)


def _serve(settings: Settings, host: str | None, port: int | None, reload: bool) -> None:
    if host:
        settings.server.host = host
    if port:
        settings.server.port = port

    _check_port(settings.server.host, settings.server.port)

    import uvicorn

    from legindex.api.app import create_app

    if reload:
        # Reload mode re-imports the app, so settings come from the environment.
        uvicorn.run(
            "legindex.api.app:create_app",
            factory=True,
            host=settings.server.host,
            port=settings.server.port,
            reload=True,
        )
        return

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        workers=1,
        log_config=None,
    )


async def _rebuild(settings: Settings) -> RebuildReport:
    from legindex.core.engine import BillIndexEngine

    engine = BillIndexEngine(settings)
    await engine.initialize()
    try:
        return await engine.rebuild_index()
    finally:
        await engine.shutdown()


async def _clear(settings: Settings) -> None:
    from legindex.core.engine import BillIndexEngine

    engine = BillIndexEngine(settings)
    await engine.initialize()
    try:
        await engine.clear_index()
    finally:
        await engine.shutdown()


def _check_port(host: str, port: int) -> None:
    """Exit with a message if the port is already taken."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host if host != "0.0.0.0" else "127.0.0.1", port))
    except OSError:
        print(f"Error: Port {port} is already in use. Run 'lsof -i :{port}' to find the process.", file=sys.stderr)
        sys.exit(1)
    finally:
        sock.close()


def _get_version() -> str:
    """Get the package version."""
    try:
        from legindex import __version__

        return __version__
    except ImportError:
        return "unknown"


if __name__ == "__main__":
    main()
