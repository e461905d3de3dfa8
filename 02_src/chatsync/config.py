"""Project-level configuration, path helpers and reconciliation policy."""

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "chatsync.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# Prefix marking a client-generated (not yet confirmed) message id
TEMP_ID_PREFIX = "temp-"

# Duplicate-matching tolerances, in seconds
STORE_MATCH_WINDOW = 10.0
REALTIME_MATCH_WINDOW = 15.0
STALE_PENDING_CUTOFF = 30.0


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@dataclass(frozen=True)
class ReconciliationPolicy:
    """Tolerances used when matching optimistic messages to confirmed ones."""

    store_match_window: timedelta = timedelta(seconds=STORE_MATCH_WINDOW)
    realtime_match_window: timedelta = timedelta(seconds=REALTIME_MATCH_WINDOW)
    stale_cutoff: timedelta = timedelta(seconds=STALE_PENDING_CUTOFF)

    @classmethod
    def from_env(cls) -> "ReconciliationPolicy":
        """Build a policy from CHATSYNC_* environment variables."""

        def seconds(name: str, default: float) -> timedelta:
            raw = os.getenv(name)
            if not raw:
                return timedelta(seconds=default)
            try:
                value = float(raw)
            except ValueError:
                raise ValueError(f"{name} must be a number of seconds, got {raw!r}")
            if value < 0:
                raise ValueError(f"{name} must not be negative")
            return timedelta(seconds=value)

        return cls(
            store_match_window=seconds(
                "CHATSYNC_STORE_MATCH_WINDOW", STORE_MATCH_WINDOW
            ),
            realtime_match_window=seconds(
                "CHATSYNC_REALTIME_MATCH_WINDOW", REALTIME_MATCH_WINDOW
            ),
            stale_cutoff=seconds("CHATSYNC_STALE_CUTOFF", STALE_PENDING_CUTOFF),
        )


DEFAULT_POLICY = ReconciliationPolicy()
