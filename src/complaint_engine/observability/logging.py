"""Log output for the complaint engine: JSON lines or plain text."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from complaint_engine.observability.context import get_current_request_id
from complaint_engine.observability.tracing import get_current_span_id, get_current_trace_id

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s] %(message)s"

# Libraries whose INFO output drowns out pipeline logs
QUIET_LOGGERS = ("asyncpg", "uvicorn.access")


class StructuredLogFormatter(logging.Formatter):
    """
    Render each record as one JSON object.

    Every line carries the service name and, when available, the id of the
    HTTP request being handled and the active trace/span ids, so a single
    complaint can be followed from webhook to database write.
    """

    def __init__(self, service_name: str | None = None) -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if self.service_name:
            payload["service"] = self.service_name

        correlation = {
            "request_id": get_current_request_id(),
            "trace_id": get_current_trace_id(),
            "span_id": get_current_span_id(),
        }
        payload.update({key: value for key, value in correlation.items() if value})

        if record.exc_info and record.exc_info[0] is not None:
            payload["error"] = {
                "type": record.exc_info[0].__name__,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(payload, default=str, ensure_ascii=False)


class RequestContextFilter(logging.Filter):
    """Copy correlation ids onto the record for plain-text formats."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_current_request_id() or "-"
        record.trace_id = get_current_trace_id() or ""
        record.span_id = get_current_span_id() or ""
        return True


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    module_levels: dict[str, str] | None = None,
    service_name: str | None = None,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Root log level name.
        json_format: Emit JSON lines instead of plain text.
        module_levels: Overrides per logger name, e.g. {"asyncpg": "DEBUG"}.
        service_name: Included in every JSON line.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    if json_format:
        handler.setFormatter(StructuredLogFormatter(service_name=service_name))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name, name_level in (module_levels or {}).items():
        logging.getLogger(name).setLevel(name_level.upper())

    logging.getLogger(__name__).debug(
        "Logging configured (level=%s, json=%s)", level, json_format
    )
