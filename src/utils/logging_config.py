"""Unified logging configuration for the axis-tester entrypoints.

Provides consistent logging for the batch generator CLI and tests:
    - Console and file handlers (file optionally size-rotated)
    - JSON output mode for log ingestion
    - Contextual fields (app, jogs, seed) attached to every record
    - Warning capture (Python warnings → logging)
    - Uncaught exception logging

Public API:
    setup_logging(**cfg.logging, context={"app": "axis-tester"})
    push_context(jogs=64)
    pop_context(keys=["jogs"])
    install_excepthook()

Format examples:
    Human: 2026-10-19T13:45:12.345Z | INFO     | app=axis-tester jogs=64 | Wrote xtest0064.ngc
    JSON: {"t":"2026-10-19T13:45:12.345+00:00","lvl":"INFO","jogs":64,"msg":"..."}

Context uses contextvars, so batch worker threads each carry their own
fields.  Idempotent: repeated setup_logging() calls don't duplicate
handlers.
"""

import contextvars
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


_context_var = contextvars.ContextVar('logging_context', default={})

_configured = False
_installed_handlers: List[logging.Handler] = []

_LEVEL_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}
_RESET = '\033[0m'


class ContextFormatter(logging.Formatter):
    """Render records with the current context fields attached.

    Parameters
    ----------
    fmt_mode : str
        ``"human"`` for pipe-separated lines, ``"json"`` for one JSON
        object per line.
    use_color : bool
        Color the level name (only when stderr is a terminal).
    tz : str
        ``"UTC"`` or ``"local"`` timestamps.
    """

    def __init__(
        self,
        fmt_mode: str = "human",
        use_color: bool = True,
        tz: str = "UTC"
    ):
        super().__init__()
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()
        self.tz = tz

    def format(self, record: logging.LogRecord) -> str:
        fields = get_context()
        when = datetime.fromtimestamp(
            record.created, tz=timezone.utc if self.tz == "UTC" else None
        )
        if self.fmt_mode == "json":
            return self._json_line(record, when, fields)
        return self._human_line(record, when, fields)

    def _json_line(
        self,
        record: logging.LogRecord,
        when: datetime,
        fields: Dict[str, Any]
    ) -> str:
        payload: Dict[str, Any] = {
            't': when.isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': os.getpid(),
            **fields,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            payload['exc'] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)

    def _human_line(
        self,
        record: logging.LogRecord,
        when: datetime,
        fields: Dict[str, Any]
    ) -> str:
        stamp = when.strftime('%Y-%m-%dT%H:%M:%S.') + f"{when.microsecond // 1000:03d}Z"
        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{_LEVEL_COLORS.get(record.levelname, '')}{level}{_RESET}"

        columns = [stamp, level]
        if fields:
            columns.append(' '.join(f"{k}={v}" for k, v in fields.items()))
        columns.append(record.getMessage())

        line = ' | '.join(columns)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    rotate: Optional[Dict[str, Any]] = None,
    tz: str = "UTC",
    capture_warnings: bool = True,
    context: Optional[Dict[str, Any]] = None,
) -> List[logging.Handler]:
    """Configure root logger (idempotent).

    Parameters
    ----------
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"
    log_file : str, optional
        Log file path; None for no file logging
    json : bool
        Use JSON lines for both console and file output, default False
    color : bool
        Use ANSI colors in console output, default True
    to_stderr : bool
        Log to stderr (console), default True
    rotate : dict, optional
        Size rotation for the file handler:
        ``{"max_bytes": 5_000_000, "backup_count": 3}``
    tz : str
        Timezone for timestamps, "UTC" (default) or "local"
    capture_warnings : bool
        Capture Python warnings to logging, default True
    context : dict, optional
        Initial contextual fields (e.g., {"app": "axis-tester"})

    Returns
    -------
    list[logging.Handler]
        Handlers installed on the root logger.

    Raises
    ------
    ValueError
        If *log_level* is not a known level name.
    """
    global _configured

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level!r}")

    root = logging.getLogger()

    # Repeated calls replace only what we installed last time
    if _configured:
        for handler in _installed_handlers:
            root.removeHandler(handler)
            handler.close()
        _installed_handlers.clear()

    root.setLevel(level)

    fmt_mode = "json" if json else "human"
    if to_stderr:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            ContextFormatter(fmt_mode, use_color=color and not json, tz=tz)
        )
        root.addHandler(console_handler)
        _installed_handlers.append(console_handler)

    if log_file:
        file_handler = _create_file_handler(log_file, rotate, json, tz)
        root.addHandler(file_handler)
        _installed_handlers.append(file_handler)

    if context:
        push_context(**context)

    if capture_warnings:
        logging.captureWarnings(True)

    _configured = True
    return list(_installed_handlers)


def _create_file_handler(
    log_file: str,
    rotate: Optional[Dict[str, Any]],
    json_format: bool,
    tz: str
) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    if rotate:
        handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=rotate.get('max_bytes', 5_000_000),
            backupCount=rotate.get('backup_count', 3)
        )
    else:
        handler = logging.FileHandler(log_path)

    fmt_mode = "json" if json_format else "human"
    handler.setFormatter(ContextFormatter(fmt_mode, use_color=False, tz=tz))
    return handler


def push_context(**kwargs) -> None:
    """Add contextual fields to all subsequent log records.

    Context is local to the current thread/task (contextvars), so a
    batch worker labelling its records with ``jogs=64`` does not leak
    that field into another worker's output.

    Examples
    --------
    >>> push_context(app="axis-tester")
    >>> push_context(jogs=64)
    >>> logger.info("Wrote program")  # → "... | app=axis-tester jogs=64 | ..."
    """
    current = _context_var.get({})
    _context_var.set({**current, **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove contextual fields; all of them when *keys* is None."""
    if keys is None:
        _context_var.set({})
        return
    current = dict(_context_var.get({}))
    for key in keys:
        current.pop(key, None)
    _context_var.set(current)


def get_context() -> Dict[str, Any]:
    """Return a copy of the contextual fields visible from here."""
    return dict(_context_var.get({}))


def install_excepthook() -> None:
    """Log uncaught exceptions (except Ctrl+C) before the process exits."""
    def log_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logging.getLogger(__name__).critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = log_exception


def shutdown() -> None:
    """Flush and close all handlers; call at the end of main()."""
    logging.shutdown()
