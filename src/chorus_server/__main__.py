"""CLI entry point for chorus-server.

This module provides the command-line interface for starting chorus-server.
It can be invoked as `chorus-server` (via the script entry point) or
`python -m chorus_server`.
"""

import argparse
import sys

import uvicorn

from chorus_server import __version__, create_app
from chorus_server.config import ChorusServerSettings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chorus-server",
        description="Headless FastAPI server orchestrating conversations and tool calls "
        "across GigaChat, OpenRouter and Ollama",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"chorus-server {__version__}",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via CHORUS_HOST)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: 8000, can be set via CHORUS_PORT)",
    )

    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via CHORUS_OLLAMA_HOST)",
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Base directory for all data (default: ., can be set via CHORUS_DATA_DIR)",
    )

    parser.add_argument(
        "--mcp-server",
        dest="mcp_server_urls",
        action="append",
        default=None,
        help="MCP tool server URL; repeat for several servers (can be set via CHORUS_MCP_SERVER_URLS)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via CHORUS_LOG_LEVEL)",
    )

    return parser


def settings_from_args(args: argparse.Namespace) -> ChorusServerSettings:
    """Build settings, CLI args override environment variables."""
    settings_kwargs = {}
    for name in ("host", "port", "ollama_host", "data_dir", "mcp_server_urls", "log_level"):
        value = getattr(args, name)
        if value is not None:
            settings_kwargs[name] = value
    return ChorusServerSettings(**settings_kwargs)


def main() -> None:
    """Main entry point for the chorus-server CLI.

    Parses command-line arguments and starts the uvicorn server with the
    FastAPI application.
    """
    args = build_parser().parse_args()
    settings = settings_from_args(args)

    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    sys.exit(main())
