"""
Monitoring sinks.

The clustering core reports lifecycle progress as `(job, status, context)`
events. Emitters are fire-and-forget; their return value is ignored.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

logger = logging.getLogger("tripmemories.monitoring")


class MonitoringEmitter(Protocol):
    def emit(self, job: str, status: str, context: Mapping[str, Any]) -> None: ...


class NullEmitter:
    def emit(self, job: str, status: str, context: Mapping[str, Any]) -> None:
        return None


class LoggingEmitter:
    """Write events to the `tripmemories.monitoring` logger (warnings at WARNING level)."""

    def emit(self, job: str, status: str, context: Mapping[str, Any]) -> None:
        level = logging.WARNING if status == "warning" else logging.INFO
        details = " ".join(f"{k}={v}" for k, v in sorted(context.items()))
        logger.log(level, "%s %s %s", job, status, details)


def emit_safely(emitter: MonitoringEmitter, job: str, status: str, context: Mapping[str, Any]) -> None:
    """Forward one event; a failing sink is logged and never interrupts clustering."""
    try:
        emitter.emit(job, status, dict(context))
    except Exception as e:
        logger.warning("Monitoring emitter failed for %s %s: %s", job, status, str(e))
