"""Pure merge of confirmed history with the optimistic overlay."""

from datetime import timedelta

from ..config import DEFAULT_POLICY
from ..models import Message, is_temp_id
from .matching import is_same_logical_message


def merge(
    store_messages: list[Message],
    overlay_messages: list[Message],
    window: timedelta = DEFAULT_POLICY.store_match_window,
) -> list[Message]:
    """Combine store and overlay into one deduplicated, time-ordered list.

    Store entries win on id collisions. Overlay entries with a server id are
    kept unless the id is already present. Temp-id entries are additionally
    dropped when any confirmed entry matches them heuristically.

    The sort is stable, so on equal timestamps store entries precede overlay
    entries and both keep their input order. Inputs are never mutated.
    """
    by_id: dict[str, Message] = {}
    for msg in store_messages:
        by_id.setdefault(msg.id, msg)

    confirmed_overlay = [m for m in overlay_messages if not is_temp_id(m.id)]
    pending_overlay = [m for m in overlay_messages if is_temp_id(m.id)]

    for msg in confirmed_overlay:
        by_id.setdefault(msg.id, msg)

    confirmed = [m for m in by_id.values() if not is_temp_id(m.id)]
    for msg in pending_overlay:
        if msg.id in by_id:
            continue
        if any(is_same_logical_message(msg, c, window) for c in confirmed):
            continue
        by_id[msg.id] = msg

    # Re-establish store-then-overlay order before the stable sort
    ordered: list[Message] = []
    emitted: set[str] = set()
    for msg in [*store_messages, *overlay_messages]:
        if msg.id in emitted or by_id.get(msg.id) is not msg:
            continue
        emitted.add(msg.id)
        ordered.append(msg)
    return sorted(ordered, key=lambda m: m.timestamp)
