"""Message reconciliation: store, optimistic overlay and merge."""

from .matching import find_match, is_same_logical_message, make_temp_id
from .overlay import OptimisticOverlay
from .reconciler import merge
from .store import MessageStore

__all__ = [
    "MessageStore",
    "OptimisticOverlay",
    "find_match",
    "is_same_logical_message",
    "make_temp_id",
    "merge",
]
