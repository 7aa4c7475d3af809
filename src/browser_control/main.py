"""
Browser Control CLI Entry Point

Usage:
    browser-control serve --port 3456
    browser-control run-flow login --profile work --headed
    browser-control profiles
    browser-control flows
    browser-control actions
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import uvicorn

from browser_control.config import ServiceConfig, configure_logging
from browser_control.errors import ControlPlaneError, NotFoundError
from browser_control.flows import FlowRunner, FlowStore
from browser_control.profiles import ProfileStore
from browser_control.server import create_app
from browser_control.tools import get_action_schemas
from browser_control.tui import (
    get_console,
    print_actions,
    print_error,
    print_flow_result,
    print_flows,
    print_profiles,
)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="browser-control",
        description="Control plane for named, concurrent headless browser sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    browser-control serve
    browser-control serve --host 0.0.0.0 --port 8080 --verbose
    browser-control run-flow checkout --profile shop --start-url https://shop.example.com
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging with timestamps",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP control plane")
    serve.add_argument("--host", default=None, help="Bind address (default: BROWSER_CONTROL_HOST or 127.0.0.1)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: BROWSER_CONTROL_PORT or 3456)")
    serve.add_argument("--headed", action="store_true", help="Show browser windows by default")

    run_flow = subparsers.add_parser("run-flow", help="Run a saved flow once")
    run_flow.add_argument("name", help="Flow name (file stem in the flows directory)")
    run_flow.add_argument("--profile", default=None, help="Auth profile to load")
    run_flow.add_argument("--start-url", default=None, help="Override the flow's Start URL header")
    run_flow.add_argument("--headed", action="store_true", help="Show the browser window")

    subparsers.add_parser("profiles", help="List saved auth profiles")
    subparsers.add_parser("flows", help="List saved flows")
    subparsers.add_parser("actions", help="List script actions")

    return parser.parse_args(argv)


def serve(config: ServiceConfig, host: Optional[str], port: Optional[int]) -> int:
    """Run the HTTP server until POST /exit or an interrupt."""
    server: Optional[uvicorn.Server] = None

    def request_exit() -> None:
        if server is not None:
            server.should_exit = True

    app = create_app(config, on_exit=request_exit)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=host or config.host,
            port=port or config.port,
            log_level="warning",
        )
    )

    console = get_console()
    console.print_block(
        f"Listening on http://{server.config.host}:{server.config.port}\n"
        f"Data directory: {config.home.resolve()}\n"
        f"Headless: {config.browser.headless}",
        "info",
        title="[BROWSER CONTROL]",
    )
    server.run()
    return 0


async def run_flow(config: ServiceConfig, args: argparse.Namespace) -> int:
    """Run one flow and print its result. Exit code 1 if it failed."""
    profile_store = ProfileStore(config.profiles_dir)
    runner = FlowRunner(config, FlowStore(config.flows_dir), profile_store)
    result = await runner.run(
        args.name,
        profile=args.profile,
        start_url=args.start_url,
    )
    print_flow_result(result)
    return 0 if result.passed else 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else None, verbose=args.verbose)

    config = ServiceConfig.from_env()
    if getattr(args, "headed", False):
        config.browser.headless = False

    try:
        if args.command == "serve":
            return serve(config, args.host, args.port)
        if args.command == "run-flow":
            return asyncio.run(run_flow(config, args))
        if args.command == "profiles":
            print_profiles(ProfileStore(config.profiles_dir).list())
        elif args.command == "flows":
            print_flows(FlowStore(config.flows_dir).list())
        elif args.command == "actions":
            print_actions(get_action_schemas())
        return 0
    except NotFoundError as e:
        print_error(
            e.message,
            error_type=type(e).__name__,
            suggestion="List saved flows with: browser-control flows",
        )
        return 2
    except ControlPlaneError as e:
        print_error(e.message, error_type=type(e).__name__)
        return 2
    except KeyboardInterrupt:
        get_console().print("\n[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
