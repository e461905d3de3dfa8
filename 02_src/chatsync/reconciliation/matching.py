"""Duplicate-matching policy for optimistic messages.

A pending message carries no server id, so the only way to recognise its
confirmed counterpart is by what it says, who said it and when. Everything
that depends on that heuristic goes through :func:`is_same_logical_message`;
an idempotency key echoed back by the backend would replace it here.
"""

import time
import uuid
from datetime import timedelta

from ..config import TEMP_ID_PREFIX
from ..models import Message, is_temp_id


def make_temp_id() -> str:
    """Generate a temporary id for a message that is not yet confirmed."""
    # Millisecond prefix keeps ids roughly sortable; the suffix keeps
    # rapid consecutive sends distinct.
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def is_same_logical_message(
    pending: Message, confirmed: Message, window: timedelta
) -> bool:
    """True if ``confirmed`` is the server copy of the optimistic ``pending``.

    Only a temp-id entry can be matched heuristically; two entries with
    server ids are distinct unless their ids are equal.
    """
    if not is_temp_id(pending.id) or is_temp_id(confirmed.id):
        return False
    if pending.sender_id != confirmed.sender_id:
        return False
    if pending.content != confirmed.content:
        return False
    return abs(confirmed.timestamp - pending.timestamp) <= window


def find_match(
    pending: Message, candidates: list[Message], window: timedelta
) -> Message | None:
    """Return the first confirmed candidate matching ``pending``, if any."""
    for candidate in candidates:
        if candidate.id == pending.id:
            return candidate
        if is_same_logical_message(pending, candidate, window):
            return candidate
    return None
