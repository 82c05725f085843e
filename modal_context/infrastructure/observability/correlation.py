"""Request correlation ids carried in a ContextVar.

The HTTP middleware stores one id per request; correlation_id_processor
copies it into every structlog event emitted while that request is
being served, including events from the coordinator and the adapters.

Distributed transaction ids are separate: they are bound with
structlog.contextvars for the duration of one distributed run.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4

# Empty string means "no request in scope"
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """Generate a new correlation ID (UUID4)."""
    return str(uuid4())


def get_correlation_id() -> str:
    """Get the correlation ID of the current context ("" if none)."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Store the correlation ID for the current context."""
    _correlation_id.set(correlation_id)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding correlation_id when one is in scope.

    An explicit correlation_id passed to the log call wins.
    """
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict
