from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

operation_id_ctx_var: ContextVar[str | None] = ContextVar("operation_id", default=None)

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}
_MAX_TEXT = 5000
_MAX_ITEMS = 100


class OperationIdFilter(logging.Filter):
    """Attach the current cart operation id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.operation_id = operation_id_ctx_var.get() or "-"
        return True


@contextmanager
def operation_scope(name: str) -> Iterator[str]:
    """Tag every record logged inside the block with one operation id.

    Nested scopes keep the outer id so a delegated operation (add -> update)
    logs under the operation the user triggered.
    """
    current = operation_id_ctx_var.get()
    if current is not None:
        yield current
        return
    operation_id = f"{name}-{uuid.uuid4().hex[:8]}"
    token = operation_id_ctx_var.set(operation_id)
    try:
        yield operation_id
    finally:
        operation_id_ctx_var.reset(token)


def _to_json_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        items = list(value.items())[:_MAX_ITEMS]
        return {str(key): _to_json_value(item) for key, item in items}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_json_value(item) for item in list(value)[:_MAX_ITEMS]]
    text = value if isinstance(value, str) else repr(value)
    return text[:_MAX_TEXT]


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, event and extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "operation_id": getattr(record, "operation_id", "-"),
        }
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key in payload or key.startswith("_"):
                continue
            payload[key] = _to_json_value(value)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(json_logs: bool = False) -> None:
    """Configure the root logger with an operation-id aware formatter."""
    handler = logging.StreamHandler()
    handler.addFilter(OperationIdFilter())
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s [%(operation_id)s] %(message)s")
        )

    logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)
