"""
Parameter store for the development session.

Holds the authoritative, ordered descriptor set. Readers take the current
snapshot reference without locking; writers build a complete new snapshot and
swap it in under a short lock, so no reader ever observes a partial update.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from wavedev.core.errors import ParameterNotFound, ParameterOutOfRange
from wavedev.params.models import ParameterDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplaceSummary:
    """Outcome of a value-preserving replacement."""

    count: int
    added: int
    removed: int
    previous_count: int

    @property
    def delta(self) -> int:
        return self.count - self.previous_count

    def describe(self) -> str:
        """Human-readable delta, e.g. ' (+2 new, 1 removed)'."""
        parts = []
        if self.added:
            parts.append(f"+{self.added} new")
        if self.removed:
            parts.append(f"{self.removed} removed")
        return f" ({', '.join(parts)})" if parts else ""


def merge_preserving_values(
    previous: Iterable[ParameterDescriptor],
    incoming: Iterable[ParameterDescriptor],
) -> tuple[ParameterDescriptor, ...]:
    """Build the replacement set for a hot-reload.

    Metadata always comes from the incoming set. A parameter whose id existed
    before keeps its current value; a new id starts at its declared default.
    Ids absent from the incoming set are dropped.
    """
    old_values = {p.id: p.value for p in previous}
    merged = []
    for param in incoming:
        value = old_values.get(param.id, param.default)
        merged.append(param.with_value(value))
    return tuple(merged)


class ParameterStore:
    """Concurrently readable table of current parameter metadata and values."""

    def __init__(self, parameters: Optional[Iterable[ParameterDescriptor]] = None):
        # Initial values are the declared defaults
        initial = tuple(p.with_value(p.default) for p in (parameters or ()))
        self._snapshot: tuple[ParameterDescriptor, ...] = initial
        self._write_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._snapshot)

    def snapshot(self) -> tuple[ParameterDescriptor, ...]:
        """Return the current immutable snapshot."""
        return self._snapshot

    def all(self) -> list[ParameterDescriptor]:
        return list(self._snapshot)

    def get(self, param_id: str) -> Optional[ParameterDescriptor]:
        for param in self._snapshot:
            if param.id == param_id:
                return param
        return None

    def ids(self) -> list[str]:
        return [p.id for p in self._snapshot]

    def set_value(self, param_id: str, value: float) -> ParameterDescriptor:
        """Set one parameter's current value.

        Raises ParameterNotFound or ParameterOutOfRange.
        """
        with self._write_lock:
            current = self._snapshot
            for index, param in enumerate(current):
                if param.id == param_id:
                    break
            else:
                raise ParameterNotFound(param_id)

            if not param.accepts(value):
                raise ParameterOutOfRange(param_id, value)

            updated = param.with_value(value)
            self._snapshot = current[:index] + (updated,) + current[index + 1:]
            return updated

    def replace(self, incoming: Iterable[ParameterDescriptor]) -> ReplaceSummary:
        """Atomically swap in a freshly extracted descriptor set.

        Current values are carried forward for matching ids (see
        merge_preserving_values).
        """
        incoming = list(incoming)
        with self._write_lock:
            previous = self._snapshot
            merged = merge_preserving_values(previous, incoming)

            old_ids = {p.id for p in previous}
            new_ids = {p.id for p in merged}

            self._snapshot = merged

        summary = ReplaceSummary(
            count=len(merged),
            added=len(new_ids - old_ids),
            removed=len(old_ids - new_ids),
            previous_count=len(previous),
        )
        logger.debug("Replaced parameter set: %s", summary)
        return summary
