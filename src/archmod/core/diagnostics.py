"""Runtime diagnostics envelopes.

Operations publish `operation.start` / `operation.end` envelopes on the global
EventBus when `diagnostics.enabled` resolves true. Publishing never affects the
outcome of the operation being reported.
"""

from __future__ import annotations

import contextlib
from datetime import UTC, datetime
from typing import Any

from archmod.core.config import ConfigResolver
from archmod.core.errors import ConfigError
from archmod.core.events import get_event_bus
from archmod.core.logging import get_logger

_logger = get_logger(__name__)

COMPONENT = "archmod"


def build_envelope(
    *,
    event: str,
    component: str,
    operation: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Build the canonical diagnostics envelope.

    Schema:
        {
          "event": "<string>",
          "component": "<string>",
          "operation": "<string>",
          "timestamp": "<iso8601 utc>",
          "data": { ... }
        }

    Timestamp is emitted in UTC with a trailing 'Z'.
    """
    ts = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return {
        "event": event,
        "component": component,
        "operation": operation,
        "timestamp": ts,
        "data": data,
    }


def is_diagnostics_enabled(resolver: ConfigResolver) -> bool:
    try:
        return resolver.resolve_bool("diagnostics.enabled")
    except ConfigError as e:
        _logger.warning(f"Invalid diagnostics.enabled value; treating as disabled. {e.message}")
        return False


def emit(resolver: ConfigResolver, event: str, *, operation: str, data: dict[str, Any]) -> None:
    """Publish one envelope if diagnostics are enabled."""
    if not is_diagnostics_enabled(resolver):
        return
    with contextlib.suppress(Exception):
        envelope = build_envelope(
            event=event, component=COMPONENT, operation=operation, data=data
        )
        get_event_bus().publish(event, envelope)
