from __future__ import annotations

"""Minimal tracing helpers (Explain Mode).

Enable with the --explain CLI flag to emit terse, readable lines when the
curriculum or session phase changes.
"""

import json
from typing import Any, Dict

_ENABLED = False


def enable(flag: bool = True) -> None:
    global _ENABLED
    _ENABLED = bool(flag)


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _ENABLED:
        return
    try:
        # keep it short; one line JSON
        print(f"[EXPLAIN] {event} :: {json.dumps(payload or {}, separators=(',', ':'), default=str)}")
    except (TypeError, ValueError):
        print(f"[EXPLAIN] {event}")
