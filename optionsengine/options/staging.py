"""In-memory overlay of option values pending a commit."""

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Origin(str, Enum):
    """Where a staged value came from."""

    STORED = "stored"
    SEED = "seed"
    EXPLICIT = "explicit"


@dataclass
class StagedValue:
    key: str
    value: Any
    origin: Origin = Origin.EXPLICIT
    dirty: bool = False


class StagingBuffer:
    """
    Authoritative in-memory values for one record.

    Holds the overlay (what callers read) separately from the snapshot (what
    was last read from or written to the backend). Values are deep-copied on
    the way in and out so callers can't mutate the overlay by accident.
    """

    def __init__(self) -> None:
        self._values: dict[str, StagedValue] = {}
        self._snapshot: Optional[dict[str, Any]] = None

    def load(self, record: Optional[Mapping[str, Any]]) -> None:
        """Replace the overlay and snapshot with a backend record (None when missing)."""
        self._snapshot = copy.deepcopy(dict(record)) if record is not None else None
        self._values = {
            key: StagedValue(key, copy.deepcopy(value), Origin.STORED, False)
            for key, value in (record or {}).items()
        }

    def seed(self, key: str, value: Any) -> bool:
        """Seed a default; returns False when the key already has a value."""
        if key in self._values:
            return False
        self._values[key] = StagedValue(key, copy.deepcopy(value), Origin.SEED, False)
        return True

    def stage(self, key: str, value: Any) -> None:
        self._values[key] = StagedValue(key, copy.deepcopy(value), Origin.EXPLICIT, True)

    def get(self, key: str, default: Any = None) -> Any:
        staged = self._values.get(key)
        return default if staged is None else copy.deepcopy(staged.value)

    def entry(self, key: str) -> Optional[StagedValue]:
        return self._values.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def remove(self, key: str) -> bool:
        return self._values.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._values)

    def as_dict(self) -> dict[str, Any]:
        return {key: copy.deepcopy(staged.value) for key, staged in self._values.items()}

    def dirty_keys(self) -> list[str]:
        return [key for key, staged in self._values.items() if staged.dirty]

    def pending_keys(self) -> list[str]:
        """Keys whose overlay value the backend doesn't hold yet: dirty or seeded."""
        return [
            key
            for key, staged in self._values.items()
            if staged.dirty or staged.origin is Origin.SEED
        ]

    def snapshot(self) -> Optional[dict[str, Any]]:
        """Last record read from or written to the backend, None if it didn't exist."""
        return copy.deepcopy(self._snapshot)

    def mark_persisted(self, record: Mapping[str, Any]) -> None:
        """The backend now holds exactly ``record``."""
        self.load(record)

    def refresh(self, record: Optional[Mapping[str, Any]]) -> None:
        """
        Reconcile with a fresh backend read.

        Backend values override keys that aren't dirty; stored keys that
        vanished from the backend are dropped; seeds and dirty keys survive.
        """
        fresh = dict(record or {})
        merged: dict[str, StagedValue] = {}
        for key, staged in self._values.items():
            if staged.dirty:
                merged[key] = staged
            elif key in fresh:
                merged[key] = StagedValue(key, copy.deepcopy(fresh[key]), Origin.STORED, False)
            elif staged.origin is Origin.SEED:
                merged[key] = staged
        for key, value in fresh.items():
            if key not in merged:
                merged[key] = StagedValue(key, copy.deepcopy(value), Origin.STORED, False)
        self._values = merged
        self._snapshot = copy.deepcopy(fresh) if record is not None else None
