"""
beaconvrf.logging
-----------------

Structured logging with:
- JSON or concise colored text formats
- Context-local fields via `contextvars` (trace_id, request_id, component, round)
- Safe JSON serialization (bytes → hex, dataclasses → dicts)
- ``trace_scope`` to tag every line of one fulfillment with a shared trace id

Usage
-----
    from beaconvrf import logging as vlog

    vlog.configure(json=False, level="INFO")  # once at process start
    log = vlog.get_logger(__name__)

    with vlog.trace_scope():
        vlog.bind(component="fulfiller", request_id=7)
        log.info("fulfilling", extra={"round": 1234})

The coordinator fulfills each request inside a `trace_scope`, so every line
logged during one fulfillment (verifier, dispatcher, consumer) shares a trace id.
"""

from __future__ import annotations

import datetime as _dt
import io
import json
import logging
import os
import sys
import threading
import traceback
import types
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

# ----------------------------
# Context
# ----------------------------

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_LOG_CONTEXT", default={})

DEFAULT_CONTEXT_KEYS = (
    "trace_id",
    "component",
    "request_id",
    "round",
    "chain_id",
)

ENV_FORMAT = "BEACONVRF_LOG_FORMAT"
ENV_LEVEL = "BEACONVRF_LOG_LEVEL"


def context() -> Dict[str, Any]:
    """Return a *copy* of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Merge fields into the active context."""
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None, **fields: Any) -> Iterator[str]:
    """
    Ensure a trace_id (plus any extra ``fields``) is bound for the duration of
    the scope. Restores prior context on exit. Yields the trace id.
    """
    prev = dict(_LOG_CONTEXT.get())
    tid = trace_id or prev.get("trace_id") or short_uuid()
    try:
        bind(trace_id=tid, **fields)
        yield tid
    finally:
        _LOG_CONTEXT.set(prev)


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


# ----------------------------
# JSON & Text formatters
# ----------------------------

_RESERVED = frozenset(
    (
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "asctime",
    )
)

_LEVEL_TO_INT = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}

ANSI = types.SimpleNamespace(
    RESET="\x1b[0m",
    BOLD="\x1b[1m",
    FG=types.SimpleNamespace(
        RED="\x1b[31m",
        GREEN="\x1b[32m",
        YELLOW="\x1b[33m",
        MAGENTA="\x1b[35m",
        CYAN="\x1b[36m",
        GREY="\x1b[90m",
        WHITE="\x1b[37m",
    ),
)

_LEVEL_COLOR = {
    logging.DEBUG: ANSI.FG.GREY,
    logging.INFO: ANSI.FG.GREEN,
    logging.WARNING: ANSI.FG.YELLOW,
    logging.ERROR: ANSI.FG.RED,
    logging.CRITICAL: ANSI.BOLD + ANSI.FG.MAGENTA,
}


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _supports_color(stream: Any) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty()) and os.environ.get("NO_COLOR") is None


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Path):
        return str(v)
    if is_dataclass(v) and not isinstance(v, type):
        return {k: _coerce_value(x) for k, x in asdict(v).items()}
    return str(v)


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _coerce_value(v)
        for k, v in record.__dict__.items()
        if not k.startswith("_") and k not in _RESERVED
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": os.getpid(),
            "tid": threading.get_ident(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """
    Human-friendly one-liner:
      2025-01-05T12:34:56.789+00:00 | INFO  | beaconvrf.coordinator.engine | trace_id=ab12 | request fulfilled
    With colors when supported.
    """

    def __init__(self, stream: Any):
        super().__init__()
        self._color = _supports_color(stream)

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ctx_str = " ".join(f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None)
        extras = " ".join(f"{k}={v}" for k, v in _extras(record).items() if k not in ctx)

        ts, lvl, name = _utcnow_iso(), f"{record.levelname:<5}", record.name
        if self._color:
            lvl = f"{_LEVEL_COLOR.get(record.levelno, ANSI.FG.WHITE)}{lvl}{ANSI.RESET}"
            name = f"{ANSI.FG.CYAN}{name}{ANSI.RESET}"
            ts = f"{ANSI.FG.GREY}{ts}{ANSI.RESET}"
            if ctx_str:
                ctx_str = f"{ANSI.FG.GREY}{ctx_str}{ANSI.RESET}"

        line = f"{ts} | {lvl} | {name}"
        if ctx_str:
            line += f" | {ctx_str}"
        if extras:
            line += f" {extras}"
        line += f" | {record.getMessage()}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ----------------------------
# Public setup API
# ----------------------------


def configure(
    *,
    json: Optional[bool] = None,
    level: Optional[str | int] = None,
    stream: io.TextIOBase = sys.stderr,
) -> None:
    """
    Install a single console handler on the root logger.

    ``json=None`` picks the format from BEACONVRF_LOG_FORMAT, falling back to
    JSON when ``stream`` is not a terminal. ``level=None`` reads
    BEACONVRF_LOG_LEVEL (default INFO). Calling it again replaces the handler.
    """
    chosen_json = _decide_json(json, stream)
    lvl = _coerce_level(level if level is not None else os.environ.get(ENV_LEVEL, "INFO"))

    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(stream)
    console.setLevel(lvl)
    console.setFormatter(JSONFormatter() if chosen_json else TextFormatter(stream))
    root.addHandler(console)

    # relay polling and the ASGI server are chatty at INFO
    for noisy in ("urllib3", "httpx", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(max(lvl, logging.WARNING))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "beaconvrf")


def with_fields(logger: logging.Logger, **fields: Any) -> "ContextAdapter":
    """Return a logger adapter that injects constant fields on each call."""
    return ContextAdapter(logger, extra={k: _coerce_value(v) for k, v in fields.items()})


class ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its constant fields with call-site ``extra``."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = kwargs.get("extra") or {}
        kwargs["extra"] = {**self.extra, **extra} if isinstance(extra, dict) else dict(self.extra)
        return msg, kwargs


# ----------------------------
# Internals
# ----------------------------


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return _LEVEL_TO_INT.get(str(level).upper(), logging.INFO)


def _decide_json(json_flag: Optional[bool], stream: Any) -> bool:
    if json_flag is not None:
        return json_flag
    env = os.environ.get(ENV_FORMAT, "").strip().lower()
    if env in ("json", "text"):
        return env == "json"
    # services (non-tty) get JSON, interactive terminals get text
    return not _supports_color(stream)


__all__ = [
    "configure",
    "get_logger",
    "with_fields",
    "ContextAdapter",
    "JSONFormatter",
    "TextFormatter",
    "bind",
    "clear_context",
    "context",
    "trace_scope",
    "short_uuid",
]
