"""Priority assignment and the persisted priority state."""

from selector.priority.engine import (
    REASON_NOT_RECENTLY_EXECUTED,
    REASON_PRIORITY_WINDOW,
    REASON_RECENT_FAILURE,
    PrioritizationResult,
    is_stale,
    prioritize,
    stable_priority_sort,
)
from selector.priority.state import load_state, parse_state, save_state

__all__ = [
    "REASON_NOT_RECENTLY_EXECUTED",
    "REASON_PRIORITY_WINDOW",
    "REASON_RECENT_FAILURE",
    "PrioritizationResult",
    "is_stale",
    "load_state",
    "parse_state",
    "prioritize",
    "save_state",
    "stable_priority_sort",
]
