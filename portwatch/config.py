# portwatch - Configuration loader (defaults, YAML file, validation)
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from portwatch.ignore import parse_ignore_ports
from portwatch.models import Backend, ConfigError, Granularity, WatchConfig

CONFIG_ENV = "PORTWATCH_CONFIG"


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Return the default config deep-merged with the YAML file, if any.

    The path comes from the argument or $PORTWATCH_CONFIG. A path that was
    given but cannot be read or parsed raises ConfigError.
    """
    path = path or os.environ.get(CONFIG_ENV)
    if not path:
        return _default_config()
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return _deep_merge(_default_config(), data)


def _default_config() -> dict[str, Any]:
    return {
        "agent": {
            "name": "portwatch",
        },
        "watch": {
            "interval_sec": 1,
            "backend": Backend.NETSTAT.value,
            "granularity": Granularity.ENDPOINT.value,
            "ignore_ports": "",
            "exit_on_backend_error": False,
        },
        "actions": {
            "add": "",
            "del": "",
            "trigger": "",
            "timeout_sec": None,
        },
        "logging": {
            "verbose": False,
            "debug": False,
        },
        "activity": {
            "enabled": False,
            "file": "/var/log/portwatch/activity.jsonl",
        },
    }


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def get_default_config() -> dict[str, Any]:
    """Return the default configuration dict (no file merge)."""
    return _default_config()


def apply_overrides(config: dict[str, Any], overrides: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Merge command-line values over the loaded config; None means "not given"."""
    pruned = {
        section: {k: v for k, v in values.items() if v is not None}
        for section, values in overrides.items()
    }
    return _deep_merge(config, pruned)


def _check_action(errs: list[str], flag: str, key: str, value: Any, required: bool) -> None:
    if value in (None, ""):
        if required:
            errs.append(f"missing required action {flag} (actions.{key})")
        return
    if not isinstance(value, str):
        errs.append(f"actions.{key} must be a string")
    elif value.startswith("-"):
        errs.append(f"action {flag} must not start with '-': {value!r}")


def validate_config(config: dict[str, Any]) -> list[str]:
    """Validate config; return list of error messages (empty if valid)."""
    errs: list[str] = []
    actions = config.get("actions") or {}
    _check_action(errs, "-a", "add", actions.get("add"), required=True)
    _check_action(errs, "-d", "del", actions.get("del"), required=True)
    _check_action(errs, "-t", "trigger", actions.get("trigger"), required=False)
    timeout = actions.get("timeout_sec")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
        errs.append("actions.timeout_sec must be a positive number")

    watch = config.get("watch") or {}
    interval = watch.get("interval_sec")
    if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
        errs.append(f"interval must be an integer >= 1, got {interval!r}")
    backends = [b.value for b in Backend]
    if watch.get("backend") not in backends:
        errs.append(f"invalid backend {watch.get('backend')!r} (choose from {', '.join(backends)})")
    granularities = [g.value for g in Granularity]
    if watch.get("granularity") not in granularities:
        errs.append(f"invalid granularity {watch.get('granularity')!r} (choose from {', '.join(granularities)})")
    try:
        parse_ignore_ports(watch.get("ignore_ports"))
    except ConfigError as e:
        errs.append(str(e))

    activity = config.get("activity") or {}
    if activity.get("enabled") and not activity.get("file"):
        errs.append("activity.enabled is true but activity.file is empty")
    return errs


def build_watch_config(config: dict[str, Any]) -> WatchConfig:
    """Freeze a validated config dict into the WatchConfig shared by every component."""
    errs = validate_config(config)
    if errs:
        raise ConfigError("; ".join(errs))
    watch = config["watch"]
    actions = config["actions"]
    activity = config.get("activity") or {}
    return WatchConfig(
        add_action=actions["add"],
        del_action=actions["del"],
        trigger_action=actions.get("trigger") or None,
        ignore_ports=parse_ignore_ports(watch.get("ignore_ports")),
        granularity=Granularity(watch["granularity"]),
        backend=Backend(watch["backend"]),
        interval_sec=watch["interval_sec"],
        verbose=bool((config.get("logging") or {}).get("verbose")),
        name=(config.get("agent") or {}).get("name") or "portwatch",
        exit_on_backend_error=bool(watch.get("exit_on_backend_error")),
        command_timeout_sec=actions.get("timeout_sec"),
        activity_enabled=bool(activity.get("enabled")),
        activity_file=activity.get("file") or "",
    )
