"""Log, alert and saved-query storage.

Backends live in `memory`, `jsonl` and `sqlite`; import them from there.
"""

from __future__ import annotations

from .base import (
    AlertRepository,
    LogStore,
    SavedQueryRepository,
    StoreError,
    record_from_dict,
    record_to_dict,
)

__all__ = [
    "AlertRepository",
    "LogStore",
    "SavedQueryRepository",
    "StoreError",
    "record_from_dict",
    "record_to_dict",
]
