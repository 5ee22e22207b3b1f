"""
Diagnostic Event Hook
=====================

Optional structured notifications from the pipeline stages. Callers that want
progress or telemetry pass ``on_event``; the core works identically without it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional


@dataclass(frozen=True)
class DiagnosticEvent:
    """Notification emitted at a well-defined pipeline point."""
    stage: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


EventHook = Callable[[DiagnosticEvent], None]


def emit(on_event: Optional[EventHook],
         stage: str,
         message: str,
         logger: Optional[logging.Logger] = None,
         **data: Any) -> None:
    """
    Deliver an event to the hook, if any.

    Hook failures are logged and do not propagate into the computation.
    """
    if on_event is None:
        return

    try:
        on_event(DiagnosticEvent(stage=stage, message=message, data=data))
    except Exception:
        (logger or logging.getLogger(__name__)).exception(f"Diagnostic hook failed for stage '{stage}'")
