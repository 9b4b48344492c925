# portwatch - CLI: argument parsing, help and version text
from __future__ import annotations

import argparse
import sys
from typing import Any, NoReturn, Sequence

from portwatch import __author__, __license__, __url__, __version__
from portwatch.config import apply_overrides, build_watch_config, load_config, validate_config
from portwatch.models import Backend, ConfigError, Granularity, WatchConfig

EXIT_USAGE = 1

DESCRIPTION = """\
Watch the TCP ports this host listens on and run a command whenever one
appears (-a) or disappears (-d). An optional trigger (-t) runs once per
polling round after at least one add/del command succeeded.

Placeholders in -a/-d: %p is the port, %n the address (endpoint granularity).
"""

EPILOG = """\
examples:
  portwatch -a 'logger up %n:%p' -d 'logger down %n:%p'
  portwatch -g port -p 22,631 -a 'echo ADD %p' -d 'echo DEL %p' -t 'systemctl reload haproxy' -v
"""


class ArgumentParser(argparse.ArgumentParser):
    """argparse exits 2 on bad input; portwatch reports every usage error with 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def _interval(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1: {value!r}")
    return n


def version_text(prog: str = "portwatch") -> str:
    lines = [f"{prog} {__version__}", f"Author: {__author__}", f"License: {__license__}"]
    if __url__:
        lines.append(f"URL: {__url__}")
    return "\n".join(lines)


def build_parser() -> ArgumentParser:
    ap = ArgumentParser(
        prog="portwatch",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("-a", dest="add", metavar="CMD", help="Command to run for each new listening port (required)")
    ap.add_argument("-d", dest="delete", metavar="CMD", help="Command to run for each closed listening port (required)")
    ap.add_argument("-p", dest="ignore_ports", metavar="PORTS", help="Comma-separated ports to ignore, e.g. 22,631")
    ap.add_argument("-t", dest="trigger", metavar="CMD", help="Command to run once per round after a successful add/del")
    ap.add_argument(
        "-w",
        dest="backend",
        choices=[b.value for b in Backend],
        help="How listening sockets are listed (default: netstat)",
    )
    ap.add_argument(
        "-g",
        dest="granularity",
        choices=[g.value for g in Granularity],
        help="Track address:port endpoints or bare ports (default: endpoint)",
    )
    ap.add_argument("-i", dest="interval", type=_interval, metavar="SEC", help="Poll interval in seconds (default: 1)")
    ap.add_argument("-v", dest="verbose", action="store_true", default=None, help="Print one line per command run")
    ap.add_argument("-c", "--config", help="YAML config file (default: $PORTWATCH_CONFIG)")
    ap.add_argument(
        "--exit-on-error",
        dest="exit_on_error",
        action="store_true",
        default=None,
        help="Exit when listing sockets fails after startup instead of retrying next round",
    )
    ap.add_argument("--activity-log", metavar="PATH", help="Append a JSONL record of every round and command to PATH")
    ap.add_argument("--once", action="store_true", help="Run the initial round only, then exit")
    ap.add_argument("--debug", action="store_true", default=None, help="Debug diagnostics on stderr")
    ap.add_argument("--version", action="version", version=version_text())
    return ap


def _overrides(args: argparse.Namespace) -> dict[str, dict[str, Any]]:
    return {
        "watch": {
            "interval_sec": args.interval,
            "backend": args.backend,
            "granularity": args.granularity,
            "ignore_ports": args.ignore_ports,
            "exit_on_backend_error": args.exit_on_error,
        },
        "actions": {
            "add": args.add,
            "del": args.delete,
            "trigger": args.trigger,
        },
        "logging": {
            "verbose": args.verbose,
            "debug": args.debug,
        },
        "activity": {
            "enabled": True if args.activity_log else None,
            "file": args.activity_log,
        },
    }


def resolve_config(args: argparse.Namespace) -> tuple[dict[str, Any], WatchConfig]:
    """Merge defaults, the config file and flags; raise ConfigError listing every problem."""
    config = apply_overrides(load_config(args.config), _overrides(args))
    errs = validate_config(config)
    if errs:
        raise ConfigError("\n".join(errs))
    return config, build_watch_config(config)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
