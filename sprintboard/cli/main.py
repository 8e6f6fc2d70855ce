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

"""Sprintboard CLI - Main dispatcher."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from sprintboard.cli.commands import http


def create_parser() -> argparse.ArgumentParser:
    """Create the main CLI parser with subcommands.

    Returns:
        Configured ArgumentParser with all subcommands
    """
    parser = argparse.ArgumentParser(
        prog="sprintboard",
        description="Sprintboard task tracking CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=False,
    )

    # Serve command group: Server transport operations
    serve_parser = subparsers.add_parser(
        "serve",
        help="Start the tracking server",
    )
    serve_subparsers = serve_parser.add_subparsers(
        dest="transport",
        required=True,
        help="Transport type",
    )

    serve_http = serve_subparsers.add_parser(
        "http",
        help="Start the HTTP API server",
    )
    http.setup_parser(serve_http)
    serve_http.set_defaults(func=http.main)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI main entry point.

    Args:
        argv: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 = success, 1 = error, 130 = interrupted)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # If no command provided, show help
    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
