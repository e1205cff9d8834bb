"""
PDC Observability

Structured logging and audit trail for the asset state-access layer.

    ┌──────────────────────────────────────────────────────────┐
    │                    Contract / Accessors                   │
    │   logger.info("msg", name=x)   audit.log(action, ...)     │
    └────────────────────────────┬─────────────────────────────┘
                                 │
    ┌────────────────────────────▼─────────────────────────────┐
    │              AssetLogger / AuditLogger                    │
    │   tx_id propagation, layer tagging, hash-chained audit    │
    └────────────────────────────┬─────────────────────────────┘
                                 │
    ┌────────────────────────────▼─────────────────────────────┐
    │          StructuredHandler (json) / text formatter         │
    └──────────────────────────────────────────────────────────┘

Private field values and transient payloads are never passed to a logger;
only names, keys, partition names and digests are.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import hashlib
import json
import logging
import sys
import threading
import time
import traceback
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

tx_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("tx_id", default="")

ROOT_LOGGER_NAME = "pdc"


class Layer(Enum):
    """Components of the state-access layer, for log categorization."""
    COMMITMENT = "commitment"
    RECORDS = "records"
    CONTRACT = "contract"
    LEDGER = "ledger"
    CONFIG = "config"
    CLI = "cli"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    tx_id: str = ""
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def _event_from_record(record: logging.LogRecord) -> LogEvent:
    event = LogEvent(
        timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        level=record.levelname.lower(),
        logger=record.name,
        message=record.getMessage(),
        tx_id=tx_id_var.get(),
        layer=getattr(record, "layer", ""),
        operation=getattr(record, "operation", ""),
        duration_ms=getattr(record, "duration_ms", None),
        error_code=getattr(record, "error_code", ""),
        context=getattr(record, "context", {}),
    )
    if record.exc_info:
        event.exception = "".join(traceback.format_exception(*record.exc_info))
    return event


class StructuredHandler(logging.Handler):
    """Logging handler that writes one JSON object per line."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(_event_from_record(record).to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class TextFormatter(logging.Formatter):
    """Human-readable single-line format with the structured context appended."""

    def format(self, record: logging.LogRecord) -> str:
        event = _event_from_record(record)
        head = f"{event.timestamp} {event.level.upper():<8} [{event.layer or '-'}]"
        if event.tx_id:
            head += f" tx={event.tx_id}"
        line = f"{head} {event.message}"
        if event.context:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(event.context.items()))
        if event.exception:
            line += "\n" + event.exception.rstrip()
        return line


def configure_logging(level: str = "info", fmt: str = "json", stream: Any = None) -> logging.Logger:
    """Install a single handler on the ``pdc`` logger hierarchy."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level.upper()))
    for h in list(root.handlers):
        if getattr(h, "_pdc_handler", False):
            root.removeHandler(h)

    if fmt == "json":
        handler: logging.Handler = StructuredHandler(stream)
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(TextFormatter())
    handler._pdc_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root


class AssetLogger:
    """
    Structured logger for PDC components.

    Every event carries the current transaction id and the component layer.
    """

    def __init__(self, name: str, layer: Layer):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{layer.value}.{name}")

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        error_code: str = "",
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.INFO if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=round(duration_ms, 3),
            error_code=error_code,
            **context,
        )


def get_logger(name: str, layer: Layer) -> AssetLogger:
    return AssetLogger(name, layer)


def generate_tx_id() -> str:
    return uuid.uuid4().hex


def get_tx_id() -> str:
    return tx_id_var.get()


@contextmanager
def transaction_scope(tx_id: str) -> Iterator[str]:
    """Bind ``tx_id`` to every log event emitted inside the block."""
    token = tx_id_var.set(tx_id)
    try:
        yield tx_id
    finally:
        tx_id_var.reset(token)


T = TypeVar("T")


def timed_operation(
    logger: AssetLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging an operation, including its error code."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            error_code = ""
            try:
                return func(*args, **kwargs)
            except Exception as e:
                success = False
                error_code = getattr(e, "code", type(e).__name__)
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success, error_code=error_code)
        return wrapper
    return decorator


# =============================================================================
# AUDIT TRAIL
# =============================================================================

@dataclass
class AuditEvent:
    """One invocation of a transaction entry point."""
    event_id: str
    timestamp: str
    tx_id: str
    org_id: str
    action: str
    resource_name: str
    outcome: str  # success, failure
    error_code: str = ""
    previous_hash: str = ""
    event_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def compute_hash(self) -> str:
        d = self.to_dict()
        d.pop("event_hash")
        data = json.dumps(d, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(data.encode("utf-8")).hexdigest()


class AuditLogger:
    """
    Tamper-evident audit trail of transaction invocations.

    Each event's hash covers the previous event's hash.
    """

    GENESIS = "genesis"

    def __init__(self, logger: Optional[AssetLogger] = None):
        self._logger = logger or get_logger("audit", Layer.CONTRACT)
        self._events: List[AuditEvent] = []
        self._last_hash = self.GENESIS
        self._lock = threading.Lock()

    def log(
        self,
        action: str,
        resource_name: str,
        org_id: str,
        outcome: str,
        error_code: str = "",
    ) -> AuditEvent:
        with self._lock:
            event = AuditEvent(
                event_id=uuid.uuid4().hex,
                timestamp=datetime.now(timezone.utc).isoformat(),
                tx_id=get_tx_id(),
                org_id=org_id,
                action=action,
                resource_name=resource_name,
                outcome=outcome,
                error_code=error_code,
                previous_hash=self._last_hash,
            )
            event.event_hash = event.compute_hash()
            self._last_hash = event.event_hash
            self._events.append(event)

        self._logger.info(
            f"AUDIT: {action} on {resource_name or '-'} -> {outcome}",
            operation="audit",
            org_id=org_id,
            error_code=error_code,
            event_hash=event.event_hash,
        )
        return event

    def verify_chain(self) -> Tuple[bool, Optional[int]]:
        """Return ``(True, None)`` or ``(False, index_of_first_bad_event)``."""
        with self._lock:
            previous = self.GENESIS
            for i, event in enumerate(self._events):
                if event.previous_hash != previous or event.compute_hash() != event.event_hash:
                    return False, i
                previous = event.event_hash
        return True, None

    def events(self, action: Optional[str] = None) -> List[AuditEvent]:
        with self._lock:
            return [e for e in self._events if action is None or e.action == action]

    def export(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [e.to_dict() for e in self._events]
