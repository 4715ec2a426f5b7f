"""mehtrics.cli

Command line interface entry point for mehtrics.

Design constraints:
- argparse-based.
- Lazy imports: do not import httpx/sqlite-backed modules at parse time.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mehtrics.core.config import Config
    from mehtrics.runtime import Runtime

EPILOG = "Writes made offline are replayed in order once the tracker is reachable."


@dataclass(frozen=True)
class CliContext:
    repo_root: Path


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mehtrics",
        description="Sync core for the meh-trics tracker: offline queues and domain events.",
        epilog=EPILOG,
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit.",
    )

    sub = parser.add_subparsers(dest="command")

    p_queue = sub.add_parser("queue", help="Inspect and drain offline mutation queues")
    queue_sub = p_queue.add_subparsers(dest="queue_command")

    p_status = queue_sub.add_parser("status", help="Pending and dead-lettered counts per queue")
    p_status.add_argument("--json", action="store_true", help="Emit JSON.")

    p_sync = queue_sub.add_parser("sync", help="Replay queued mutations if the remote is reachable")
    p_sync.add_argument("--queue", default=None, help="Only this queue (storage namespace).")

    p_dead = queue_sub.add_parser("dead-letters", help="List mutations the queue gave up on")
    p_dead.add_argument("--queue", default=None, help="Only this queue (storage namespace).")
    p_dead.add_argument(
        "--requeue",
        action="store_true",
        help="Move dead letters back to the tail of their queue.",
    )

    p_events = sub.add_parser("events", help="Event catalogue")
    events_sub = p_events.add_subparsers(dest="events_command")
    events_sub.add_parser("types", help="List event types and their payload fields")

    p_api = sub.add_parser("api", help="Start the sync status API")
    p_api.add_argument("--host", default=None)
    p_api.add_argument("--port", type=int, default=None)

    return parser


def _print_version() -> None:
    from mehtrics import __version__

    print(f"mehtrics v{__version__}")


def _load_config(ctx: CliContext) -> Config:
    from mehtrics.core.config import Config

    repo_root = ctx.repo_root
    cfg_path = repo_root / "config" / "user.yaml"
    return Config.from_yaml(cfg_path) if cfg_path.exists() else Config.from_repo_defaults(repo_root)


def _build_runtime(ctx: CliContext) -> Runtime:
    from mehtrics.core.log import configure_logging
    from mehtrics.runtime import Runtime

    config = _load_config(ctx)
    configure_logging(config.logging)
    return Runtime.build(config, online=False)


def _selected(runtime: Runtime, name: str | None) -> list:
    if name is None:
        return list(runtime.queues.values())
    return [runtime.queue(name)]


def _cmd_queue_status(ctx: CliContext, args: argparse.Namespace) -> int:
    async def run() -> list[dict]:
        runtime = _build_runtime(ctx)
        try:
            await runtime.refresh()
            return [asdict(s) for s in runtime.status()]
        finally:
            await runtime.aclose()

    rows = asyncio.run(run())
    if args.json:
        print(json.dumps(rows, indent=2, sort_keys=True))
        return 0

    print("mehtrics queues")
    for row in rows:
        state = "available" if row["available"] else "unavailable"
        line = f"- {row['name']}: pending={row['pending']} dead={row['dead_letters']} ({state})"
        if row["last_error"]:
            line += f" last_error={row['last_error']}"
        print(line)
    return 0


def _cmd_queue_sync(ctx: CliContext, args: argparse.Namespace) -> int:
    from mehtrics.core.exceptions import MehtricsError

    async def run() -> int:
        runtime = _build_runtime(ctx)
        try:
            wrappers = _selected(runtime, args.queue)
            if not await runtime.network.probe(runtime.remote):
                print(f"remote unreachable: {runtime.config.remote.base_url}", file=sys.stderr)
                return 1

            rc = 0
            for wrapper in wrappers:
                await wrapper.queue.refresh_pending()
                result = await wrapper.sync()
                print(
                    f"- {wrapper.name}: replayed={result.replayed} "
                    f"dead_lettered={result.dead_lettered} pending={wrapper.pending}"
                )
                if result.stopped_at is not None:
                    rc = 1
            return rc
        finally:
            await runtime.aclose()

    try:
        return asyncio.run(run())
    except MehtricsError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


def _cmd_queue_dead_letters(ctx: CliContext, args: argparse.Namespace) -> int:
    from mehtrics.core.exceptions import MehtricsError

    async def run() -> int:
        runtime = _build_runtime(ctx)
        try:
            for wrapper in _selected(runtime, args.queue):
                if args.requeue:
                    moved = await wrapper.requeue_dead_letters()
                    print(f"- {wrapper.name}: requeued {moved}")
                    continue
                items = await wrapper.dead_letters()
                print(f"{wrapper.name} ({len(items)})")
                for item in items:
                    print(f"  #{item.key} {item.kind} attempts={item.attempts} error={item.last_error}")
            return 0
        finally:
            await runtime.aclose()

    try:
        return asyncio.run(run())
    except MehtricsError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


def _cmd_events_types(ctx: CliContext, args: argparse.Namespace) -> int:
    from mehtrics.core.events import EventType, payload_model_for

    for event_type in EventType:
        fields = ", ".join(payload_model_for(event_type).model_fields)
        print(f"{event_type.value}: {fields}")
    return 0


def _cmd_api(ctx: CliContext, args: argparse.Namespace) -> int:
    config = _load_config(ctx)

    host = args.host or config.api.host
    port = args.port or config.api.port

    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, reload=False)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        _print_version()
        return 0

    if not args.command:
        parser.print_help()
        return 2

    ctx = CliContext(repo_root=_repo_root_from_cwd())

    key = str(args.command)
    if key == "queue":
        key = f"queue {args.queue_command}"
    elif key == "events":
        key = f"events {args.events_command}"

    dispatch: dict[str, Callable[[CliContext, argparse.Namespace], int]] = {
        "queue status": _cmd_queue_status,
        "queue sync": _cmd_queue_sync,
        "queue dead-letters": _cmd_queue_dead_letters,
        "events types": _cmd_events_types,
        "api": _cmd_api,
    }

    fn = dispatch.get(key)
    if fn is None:
        parser.print_help()
        return 2

    return int(fn(ctx, args))


if __name__ == "__main__":
    raise SystemExit(main())
