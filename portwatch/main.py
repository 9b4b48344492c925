#!/usr/bin/env python3
# portwatch - Daemon entrypoint
from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Sequence

from portwatch.cli import parse_args, resolve_config
from portwatch.collector.sockets import make_source
from portwatch.models import BackendError, ConfigError, WatchConfig

logger = logging.getLogger("portwatch")

EXIT_OK = 0
EXIT_ERROR = 1


def setup_logging(config: WatchConfig, debug: bool = False) -> None:
    """Diagnostics go to stderr; with -v, one event line per command goes to stdout."""
    level = logging.DEBUG if debug else logging.INFO if config.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    events = logging.getLogger("portwatch.events")
    events.handlers.clear()
    events.propagate = False
    handler = logging.StreamHandler(sys.stdout)
    name = config.name.replace("%", "%%")
    handler.setFormatter(logging.Formatter(f"{name}: [%(asctime)s] %(message)s", "%Y-%m-%d %H:%M:%S"))
    events.addHandler(handler)
    events.setLevel(logging.INFO if config.verbose else logging.WARNING)


def _fail(prog: str, message: str) -> int:
    for line in message.splitlines():
        print(f"{prog}: error: {line}", file=sys.stderr)
    return EXIT_ERROR


def main(argv: Sequence[str] | None = None) -> None:
    sys.exit(run(argv))


def run(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings, config = resolve_config(args)
    except ConfigError as e:
        return _fail("portwatch", str(e))
    setup_logging(config, bool((settings.get("logging") or {}).get("debug")))

    source = make_source(config)
    try:
        source.check_available()
    except BackendError as e:
        return _fail(config.name, str(e))

    from portwatch.daemon import Daemon
    from portwatch.reporter.activity import ActivityLogger

    activity = ActivityLogger(config.activity_file) if config.activity_enabled else None
    daemon = Daemon(config, source=source, activity=activity)
    try:
        asyncio.run(_serve(daemon, activity, once=args.once))
    except BackendError as e:
        return _fail(config.name, str(e))
    except OSError as e:
        if activity is None:
            raise
        return _fail(config.name, f"cannot open activity journal {config.activity_file}: {e}")
    except KeyboardInterrupt:
        pass
    return EXIT_OK


async def _serve(daemon, activity, once: bool = False) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, daemon.shutdown)
        except NotImplementedError:
            pass
    if activity:
        await activity.start()
    try:
        if once:
            await daemon.run_round()
        else:
            await daemon.run()
    finally:
        if activity:
            await activity.stop()


if __name__ == "__main__":
    main()
