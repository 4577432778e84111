import argparse
import os
import sys
from typing import List, Optional

import uvicorn

from .logger import PACKAGE_LOGGER, configure_logging


def find_app_string(file_path: str = "app.py", app_name: str = "app") -> str:
    """
    Formats the file path to Uvicorn convention: 'module:app_object'.

    Args:
        file_path: Path to the file containing the HttpKit instance.
        app_name: Name of the application object inside the file.
    """
    module_name = os.path.splitext(os.path.basename(file_path))[0]
    return f"{module_name}:{app_name}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpkit",
        description="httpkit command line interface for running ASGI applications.",
        epilog="Example: python -m httpkit dev --app-file main.py",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    dev_parser = subparsers.add_parser(
        "dev",
        help="Run the application in development mode with auto-reload (Uvicorn).",
        description="Binds to 127.0.0.1 (localhost) and enables auto-reload.",
    )
    dev_parser.add_argument(
        "--no-reload",
        dest="reload",
        action="store_false",
        help="Disable auto-reload on code changes.",
    )

    run_parser = subparsers.add_parser(
        "run",
        help="Run the application in production mode.",
        description="Binds to 0.0.0.0 (public) and disables auto-reload.",
    )

    for sub in (dev_parser, run_parser):
        sub.add_argument(
            "--app-file",
            type=str,
            default="app.py",
            help="Path to the file containing the HttpKit instance (e.g., main.py).",
        )
        sub.add_argument(
            "--app-name",
            type=str,
            default="app",
            help="Name of the application object inside the file.",
        )
        sub.add_argument("--port", type=int, default=8000, help="The port to listen on.")
        sub.add_argument("--json-logs", action="store_true", help="Write log records as JSON lines.")
        sub.add_argument("--log-file", type=str, default=None, help="Also write logs to this rotating file.")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the httpkit CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    app_file_path = os.path.abspath(args.app_file)
    app_dir = os.path.dirname(app_file_path)

    # The reload subprocess inherits sys.path, so the app module stays importable
    if app_dir not in sys.path:
        sys.path.insert(0, app_dir)

    app_string = find_app_string(args.app_file, args.app_name)

    reload_dirs: Optional[List[str]]
    if args.command == "dev":
        host = "127.0.0.1"
        reload = args.reload
        reload_dirs = [app_dir] if reload else None
        log_level = "info"
    else:
        host = "0.0.0.0"
        reload = False
        reload_dirs = None
        log_level = "warning"

    print(f"httpkit: Running in {args.command.upper()} mode")
    print(f"Host: http://{host}:{args.port}")
    print(f"App: {app_string}")

    # uvicorn's own loggers share the httpkit handlers (log_config=None below)
    configure_logging(
        level=log_level,
        json_logs=args.json_logs,
        log_file=args.log_file,
        environment="development" if args.command == "dev" else "production",
        loggers=(PACKAGE_LOGGER, "uvicorn"),
    )

    try:
        uvicorn.run(
            app_string,
            host=host,
            port=args.port,
            reload=reload,
            reload_dirs=reload_dirs,
            log_level=log_level,
            log_config=None,
        )
    except Exception as e:
        print(f"\nFATAL ERROR: The server failed to start or find the application '{args.app_file}'.")
        print(f"Ensure that the file defines '{args.app_name} = HttpKit(handler)'.")
        print(f"Error details: {e}")
        sys.exit(1)
