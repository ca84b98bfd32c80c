"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Defaults (localhost:8080, built-in quotes, auth on)
    python -m quoted

    # Config file and port
    python -m quoted --config config.json --port 3000

    # Local poking around without an Authorization header
    python -m quoted --no-auth --log-level DEBUG

Flags override environment variables (QUOTED_*), which override defaults.
A config file that fails to decode stops the process with exit status 2.

=============================================================================
"""

from dataclasses import replace
import argparse
import sys

from . import __version__
from .config import AppConfig, ConfigError, ServerConfig
from .server import Server


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quoted",
        description="Example service: routing, pipelines and interop calls",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m quoted                          # Run with defaults
  python -m quoted --port 3000              # Custom port
  python -m quoted --config config.json     # Load app config
  python -m quoted --no-auth                # Skip the Authorization check
        """,
    )

    parser.add_argument("--config", "-c", help="Path to the app config JSON file")
    parser.add_argument("--host", "-H", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument("--workers", "-w", type=int, help="Max interop worker threads (default: 8)")
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    parser.add_argument("--no-auth", action="store_true", help="Disable the auth step")
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")

    return parser


def load_configs(args: argparse.Namespace) -> tuple:
    """
    Resolve (AppConfig, ServerConfig) from flags and environment.

    Raises:
        ConfigError: If the app config file cannot be decoded.
        ValueError: If the server config is invalid.
    """
    server_config = ServerConfig.from_env()

    if args.host:
        server_config.host = args.host
    if args.port is not None:
        server_config.port = args.port
    if args.workers:
        server_config.max_workers = args.workers
        server_config.min_workers = min(server_config.min_workers, args.workers)
    if args.log_level:
        server_config.log_level = args.log_level
    if args.config:
        server_config.config_path = args.config

    server_config.validate()

    if server_config.config_path:
        app_config = AppConfig.load(server_config.config_path)
    else:
        app_config = AppConfig()

    if args.no_auth:
        app_config = replace(app_config, auth=replace(app_config.auth, enabled=False))

    return app_config, server_config


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        app_config, server_config = load_configs(args)
    except ConfigError as e:
        print(f"quoted: invalid configuration: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"quoted: {e}", file=sys.stderr)
        return 2

    Server(app_config, server_config).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
