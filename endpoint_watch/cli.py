"""Command-line entry point: manage endpoints and run monitoring."""
import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, TypeVar

from rich.console import Console
from rich.table import Table

from .config import Settings, get_database_url
from .database import close_db, create_engine, create_session_factory, init_db
from .errors import ConfigError, StoreError
from .services.prober import Prober
from .services.session import MonitoringSession
from .services.store import EndpointStore

console = Console()
logger = logging.getLogger(__name__)

T = TypeVar("T")


def format_timestamp(checked_at: Optional[int]) -> str:
    if checked_at is None:
        return "never"
    return datetime.fromtimestamp(checked_at).strftime("%Y-%m-%d %H:%M:%S")


async def with_store(config: Settings, action: Callable[[EndpointStore], Awaitable[T]]) -> T:
    """Open the database, make sure the schema exists, run an action."""
    engine = create_engine(get_database_url(config))
    try:
        await init_db(engine)
        return await action(EndpointStore(create_session_factory(engine)))
    finally:
        await close_db(engine)


def cmd_add(args: argparse.Namespace, config: Settings) -> int:
    try:
        interval = int(args.interval)
    except ValueError:
        console.print("Interval must be a positive number")
        return 1
    try:
        asyncio.run(with_store(config, lambda store: store.add_endpoint(args.url, interval)))
    except ConfigError:
        console.print("Interval must be a positive number" if interval <= 0 else "URL must not be empty")
        return 1
    console.print("Endpoint added")
    return 0


def cmd_list(args: argparse.Namespace, config: Settings) -> int:
    states = asyncio.run(with_store(config, lambda store: store.endpoint_states()))
    table = Table(show_lines=False)
    for header in ("URL", "Interval (seconds)", "Last Checked", "Status"):
        table.add_column(header)
    for state in states:
        table.add_row(
            state.url,
            ", ".join(str(i) for i in state.intervals),
            format_timestamp(state.last_checked),
            str(state.last_status) if state.last_status is not None else state.state,
        )
    console.print(table)
    return 0


def cmd_remove(args: argparse.Namespace, config: Settings) -> int:
    removed = asyncio.run(with_store(config, lambda store: store.remove_endpoint(args.url)))
    if not removed:
        console.print(f"No endpoint matches {args.url}")
        return 1
    console.print("Endpoint removed")
    return 0


def cmd_history(args: argparse.Namespace, config: Settings) -> int:
    rows = asyncio.run(with_store(config, lambda store: store.history(args.url, limit=args.limit)))
    table = Table(title=args.url)
    table.add_column("Checked")
    table.add_column("Status")
    for row in rows:
        table.add_row(format_timestamp(row.checked_at), str(row.status))
    console.print(table)
    return 0


async def run_monitoring(config: Settings) -> None:
    """Run a monitoring session until SIGINT/SIGTERM."""
    async def monitor(store: EndpointStore) -> None:
        session = MonitoringSession(
            store,
            Prober(timeout=config.probe_timeout_seconds, verify=config.probe_verify_tls),
        )
        task = asyncio.current_task()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, task.cancel)
        with contextlib.suppress(asyncio.CancelledError):
            await session.run()

    await with_store(config, monitor)


def cmd_start(args: argparse.Namespace, config: Settings) -> int:
    console.print("Starting monitoring, press Ctrl+C to stop")
    asyncio.run(run_monitoring(config))
    return 0


def cmd_serve(args: argparse.Namespace, config: Settings) -> int:
    import uvicorn

    from .main import create_app

    uvicorn.run(create_app(config), host=config.web_host, port=config.web_port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="endpoint-watch", description="Monitor HTTP endpoints")
    sub = parser.add_subparsers(dest="command")

    add = sub.add_parser("add", help="Add an endpoint to monitor")
    add.add_argument("url")
    add.add_argument("interval", help="Probe interval in seconds")
    add.set_defaults(handler=cmd_add)

    sub.add_parser("list", help="List all monitored endpoints").set_defaults(handler=cmd_list)

    remove = sub.add_parser("remove", help="Remove an endpoint from the list of monitored endpoints")
    remove.add_argument("url")
    remove.set_defaults(handler=cmd_remove)

    history = sub.add_parser("history", help="Show recorded results for a URL")
    history.add_argument("url")
    history.add_argument("--limit", type=int, default=20)
    history.set_defaults(handler=cmd_history)

    sub.add_parser("start", help="Start monitoring endpoints").set_defaults(handler=cmd_start)
    sub.add_parser("serve", help="Start the API server").set_defaults(handler=cmd_serve)
    return parser


def main(argv: Optional[List[str]] = None, config: Optional[Settings] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 1

    config = config or Settings()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return args.handler(args, config)
    except StoreError as e:
        console.print(f"[red]{e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
