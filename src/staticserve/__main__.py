"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    # Serve the current directory on localhost:8080
    python -m staticserve

    # Serve ./public under /static with caching, ETags and compression
    python -m staticserve --root ./public --router /static \\
        --cache 3600 --etag --zip gzip,br

    # Any response header, e.g. for a CDN in front
    python -m staticserve --header "Access-Control-Allow-Origin: *"

    # JSON access logs on all interfaces
    python -m staticserve --host 0.0.0.0 --log-format json

Options fall back to the environment (STATIC_*, HTTP_*; see
staticserve.config), then to the dataclass defaults.

=============================================================================
"""

import argparse
import sys
from dataclasses import replace
from typing import Optional, Sequence, Tuple

from .config import (
    ServerConfig,
    StaticConfig,
    parse_cache_option,
    parse_header_option,
    parse_zip_option,
    split_list,
)
from .server import StaticServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserve",
        description="Serve static files with caching, ranges and compression",
    )

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument("--root", help="Directory to serve (default: .)")
    parser.add_argument("--router", help="URL prefix to serve under (default: none)")
    parser.add_argument("--index", help="Index file for directory paths (default: index.html)")
    parser.add_argument("--methods", help="Comma-separated allowed methods (default: GET,HEAD)")
    parser.add_argument(
        "--cache",
        help="Cache policy: false, true (7200s) or a number of seconds",
    )
    parser.add_argument(
        "--etag",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Send ETag headers and honour If-None-Match (--no-etag to disable)",
    )
    parser.add_argument(
        "--zip",
        help="Compression: false, true (deflate,gzip) or a list like gzip,br",
    )
    parser.add_argument("--charset", help="Charset for text types (default: utf-8)")
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Extra response header for files (repeatable)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVER
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument("--host", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument("--workers", "-w", type=int, help="Worker threads (default: 16)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-format", choices=["text", "json"], help="Access log format")

    parser.add_argument("--version", "-v", action="version", version="staticserve 1.0.0")
    return parser


def build_configs(args: argparse.Namespace) -> Tuple[StaticConfig, ServerConfig]:
    """
    Merge CLI arguments over environment-derived configuration.

    Raises:
        ValueError: If an option value cannot be parsed.
    """
    static_config = StaticConfig.from_env()
    static_overrides = {}
    if args.root is not None:
        static_overrides["root"] = args.root
    if args.router is not None:
        static_overrides["router"] = args.router
    if args.index is not None:
        static_overrides["index"] = args.index
    if args.methods is not None:
        static_overrides["methods"] = split_list(args.methods)
    if args.cache is not None:
        static_overrides["cache"] = parse_cache_option(args.cache)
    if args.etag is not None:
        static_overrides["etag"] = args.etag
    if args.zip is not None:
        static_overrides["zip"] = parse_zip_option(args.zip)
    if args.charset is not None:
        static_overrides["charset"] = args.charset
    if args.header:
        static_overrides["headers"] = parse_header_option(args.header)
    if static_overrides:
        static_config = replace(static_config, **static_overrides)

    server_config = ServerConfig.from_env()
    if args.host is not None:
        server_config.host = args.host
    if args.port is not None:
        server_config.port = args.port
    if args.workers is not None:
        server_config.max_workers = args.workers
    if args.log_level is not None:
        server_config.log_level = args.log_level
    if args.log_format is not None:
        server_config.log_format = args.log_format

    return static_config, server_config


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        static_config, server_config = build_configs(args)
        server = StaticServer(server_config)
        server.mount(static_config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
