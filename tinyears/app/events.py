from __future__ import annotations

"""Tiny pub/sub event bus for session notifications.

Events emitted by `GameSession`:
- "phase_changed": {"phase": str}
- "question": {"note": str, "instrument": str, "round": int}
- "first_encounter": {"note": str, "instrument": str}
- "answered": {"correct": bool, "correct_note": str, "answer": str, "instrument": str}
- "promoted": {"note": str}
- "demoted": {"note": str}
- "summary": SummaryPayload
"""

import sys
from typing import Any, Callable, Dict, List


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception as e:
                # best effort; keep going
                print(f"WARNING: handler for '{event}' failed: {e}", file=sys.stderr)
