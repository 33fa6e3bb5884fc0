"""Command line entry point: HTTP server, kitchen display and console composer."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path

from kitchen_screen import config
from kitchen_screen.runtime import KitchenRuntime, build_runtime

logger = logging.getLogger("kitchen_screen")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: int = logging.INFO, to_stderr: bool = True) -> None:
    """Install the stderr and debug-file handlers on the root logger."""
    handlers: list[logging.Handler] = []
    if to_stderr:
        handlers.append(logging.StreamHandler(sys.stderr))
    try:
        log_path = Path(config.DEBUG_LOG_PATH)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    except OSError:
        # Logging must never interfere with app flow.
        pass
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def attach_printer(runtime: KitchenRuntime) -> None:
    if not config.PRINTER_ENABLED:
        return
    from kitchen_screen.printer import TicketPrinter, check_printer_dependencies

    ok, message = check_printer_dependencies()
    logger.info("printer status: %s", message)
    if ok:
        runtime.channel.subscribe(TicketPrinter(), name="ticket-printer")


def run_server(args: argparse.Namespace) -> None:
    import uvicorn

    from kitchen_screen.web import create_app

    runtime = build_runtime()
    attach_printer(runtime)
    uvicorn.run(create_app(runtime), host=args.host, port=args.port, log_level="info")


def run_screen(args: argparse.Namespace) -> None:
    from kitchen_screen.screen_app import KitchenScreenApp, remote_source

    KitchenScreenApp(remote_source(args.url)).run()


def run_composer(args: argparse.Namespace) -> None:
    import uvicorn

    from kitchen_screen.composer_app import ComposerApp
    from kitchen_screen.session import CompositionService
    from kitchen_screen.web import create_app

    runtime = build_runtime()
    attach_printer(runtime)
    server = uvicorn.Server(uvicorn.Config(create_app(runtime), host=args.host, port=args.port, log_level="warning"))
    thread = threading.Thread(target=server.run, name="http-server", daemon=True)
    thread.start()
    logger.info("composer serving orders on %s:%s", args.host, args.port)

    # The local terminal is trusted; remote users still go through the access predicate.
    local_service = CompositionService(runtime.registry, lambda _user_id: True)
    try:
        ComposerApp(local_service, user_id=args.user).run()
    finally:
        server.should_exit = True
        thread.join(timeout=5)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kitchen-screen", description="Kitchen order screen")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP/WebSocket server")
    serve.add_argument("--host", default=config.HOST)
    serve.add_argument("--port", type=int, default=config.PORT)
    serve.set_defaults(func=run_server)

    screen = sub.add_parser("screen", help="Run the read-only kitchen display")
    screen.add_argument("--url", default=f"http://127.0.0.1:{config.PORT}")
    screen.set_defaults(func=run_screen)

    composer = sub.add_parser("composer", help="Compose orders in this terminal and serve them")
    composer.add_argument("--host", default=config.HOST)
    composer.add_argument("--port", type=int, default=config.PORT)
    composer.add_argument("--user", default="console")
    composer.set_defaults(func=run_composer)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    # Textual owns the terminal, so the TUIs only log to the debug file.
    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        to_stderr=args.command == "serve",
    )
    args.func(args)


if __name__ == "__main__":
    main()
