"""
Logging setup.

Application modules keep using ``logging.getLogger(__name__)``; their
records, and anything logged through ``structlog.stdlib.get_logger``, are
rendered by one structlog ``ProcessorFormatter`` on a single stdout
handler.  ``LOG_JSON`` picks ``JSONRenderer`` over ``ConsoleRenderer``.

Values under sensitive keys (``password``, ``token``, ``authorization``
...) are masked at any depth before rendering.  Per-request fields bound
with ``structlog.contextvars`` (the request id) are merged into every line.
"""
import logging
import re
import sys

import structlog

from newsdesk.config import settings

SENSITIVE_KEY_RE = re.compile(
    r"(password|secret|token|authorization|api[-_]?key|cookie|set-cookie|jwt)", re.IGNORECASE
)
REDACTED = "[REDACTED]"


def redact(value, _seen=None):
    """Return a copy of *value* with sensitive keys masked at any depth."""
    if _seen is None:
        _seen = set()
    if isinstance(value, (dict, list, tuple)):
        if id(value) in _seen:
            return value
        _seen.add(id(value))
    if isinstance(value, dict):
        return {
            key: REDACTED if isinstance(key, str) and SENSITIVE_KEY_RE.search(key) else redact(item, _seen)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(item, _seen) for item in value)
    return value


def redact_sensitive(_logger, _method_name, event_dict):
    """structlog processor applying ``redact`` to every user field."""
    for key in list(event_dict):
        # structlog's own bookkeeping (_record, _from_structlog)
        if key.startswith("_"):
            continue
        if SENSITIVE_KEY_RE.search(key):
            event_dict[key] = REDACTED
        else:
            event_dict[key] = redact(event_dict[key])
    return event_dict


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]


def build_formatter(json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    """Formatter for stdlib handlers; renders both stdlib and structlog records."""
    if json_output:
        render = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        render = [structlog.dev.ConsoleRenderer(colors=False)]
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            *_shared_processors(),
            # fields passed through ``extra=``
            structlog.stdlib.ExtraAdder(),
            redact_sensitive,
        ],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render],
    )


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Install one stdout handler on the root logger. Safe to call repeatedly."""
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    use_json = settings.LOG_JSON if json_output is None else json_output

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            redact_sensitive,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(use_json))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_newsdesk", False):
            root.removeHandler(existing)
    handler._newsdesk = True
    root.addHandler(handler)
    root.setLevel(log_level)

    # SQL echo is controlled by DEBUG on the engine, not by the app log level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
