# Copyright (c) Nex-AGI. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""HTTP server command.

Flags override the SPRINTBOARD_* environment variables, which may come from
a ``.env`` file in the working directory.
"""

from __future__ import annotations

import argparse
import logging
import sys
from zoneinfo import ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel

from sprintboard.tracking.orm import SQLDatabaseEngine
from sprintboard.transports.http import HTTPConfig, TrackerServer

LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]


class ServerArgs(BaseModel):
    """Validated arguments for HTTP server command."""

    host: str
    port: int
    database_url: str
    log_level: str
    cors_origins: list[str]
    timezone: str = "UTC"


def setup_parser(parser: argparse.ArgumentParser) -> None:
    """Configure arguments for HTTP Server command.

    Args:
        parser: ArgumentParser instance
    """
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind to (default: $SPRINTBOARD_HOST or 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: $SPRINTBOARD_PORT or 8000)",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Async SQLAlchemy database URL (default: $SPRINTBOARD_DATABASE_URL or sqlite+aiosqlite:///sprintboard.db)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=LOG_LEVELS,
        help="Log level (default: $SPRINTBOARD_LOG_LEVEL or info)",
    )
    parser.add_argument(
        "--timezone",
        type=str,
        default=None,
        help="IANA time zone for deadline days (default: $SPRINTBOARD_TIMEZONE or UTC)",
    )
    parser.add_argument(
        "--cors-origins",
        type=str,
        nargs="+",
        default=["*"],
        help="Allowed CORS origins (default: *)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output (sets log level to debug)",
    )


def resolve_config(args: argparse.Namespace) -> HTTPConfig:
    """Merge command line flags over environment defaults."""
    defaults = HTTPConfig()
    log_level = "debug" if args.verbose else (args.log_level or defaults.log_level)

    server_args = ServerArgs(
        host=args.host or defaults.host,
        port=args.port if args.port is not None else defaults.port,
        database_url=args.database_url or defaults.database_url,
        log_level=log_level,
        cors_origins=args.cors_origins,
        timezone=args.timezone or defaults.timezone,
    )
    return HTTPConfig(
        host=server_args.host,
        port=server_args.port,
        database_url=server_args.database_url,
        log_level=server_args.log_level,
        cors_origins=server_args.cors_origins,
        timezone=server_args.timezone,
    )


def main(args: argparse.Namespace) -> int:
    """Execute HTTP Server command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 = success, non-0 = error)
    """
    # Load environment variables from .env file
    load_dotenv()

    config = resolve_config(args)

    # Configure Python logging
    numeric_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,  # Override any existing configuration
    )

    try:
        config.zone
    except (ZoneInfoNotFoundError, ValueError) as e:
        print(f"Unknown time zone {config.timezone!r}: {e}", file=sys.stderr)
        return 1

    try:
        engine = SQLDatabaseEngine.from_url(config.database_url)
    except ValueError as e:
        print(f"Invalid database URL: {e}", file=sys.stderr)
        return 1

    server = TrackerServer(engine=engine, config=config)

    print("=" * 60)
    print("Sprintboard HTTP Server Starting")
    print("=" * 60)
    print(f"Database:     {engine.url}")
    print(f"Host:         {server.host}")
    print(f"Port:         {server.port}")
    print(f"Log Level:    {config.log_level}")
    print(f"CORS Origins: {config.cors_origins}")
    print(f"Time Zone:    {config.timezone}")
    print(f"Health:       {server.health_url}")
    print("=" * 60)

    # Start server (blocking)
    try:
        server.run()
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        return 0
    except Exception as e:
        print(f"\nError starting server: {e}", file=sys.stderr)
        return 1

    return 0
