from __future__ import annotations

"""Fixed-capacity history buffers backed by ``numpy`` record arrays."""

from typing import Any, Dict, Iterable, List, Sequence, Tuple

import numpy as np


class RingBuffer:
    """Bounded FIFO of fixed-layout records.

    Records live in a preallocated structured array; once ``capacity``
    entries are stored the oldest one is overwritten.

    Parameters
    ----------
    capacity:
        Maximum number of records retained. Must be ``>=1``.
    dtype:
        Structured ``numpy`` dtype, e.g. ``[("year", np.int32), ("t", np.float64)]``.
    """

    def __init__(self, capacity: int, dtype: Sequence[Tuple[str, Any]]) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = int(capacity)
        self._data = np.zeros(self.capacity, dtype=np.dtype(list(dtype)))
        self._start = 0
        self._size = 0

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(self._data.dtype.names or ())

    def __len__(self) -> int:
        return self._size

    def append(self, *values: Any) -> None:
        """Store one record, evicting the oldest when full."""
        if len(values) != len(self.field_names):
            raise ValueError(
                f"expected {len(self.field_names)} values, got {len(values)}"
            )
        if self._size < self.capacity:
            idx = (self._start + self._size) % self.capacity
            self._size += 1
        else:
            idx = self._start
            self._start = (self._start + 1) % self.capacity
        self._data[idx] = tuple(values)

    def extend(self, records: Iterable[Sequence[Any]]) -> None:
        for rec in records:
            self.append(*rec)

    def clear(self) -> None:
        self._start = 0
        self._size = 0

    def ordered(self) -> np.ndarray:
        """Return a copy of the stored records, oldest first."""
        idx = (self._start + np.arange(self._size)) % self.capacity
        return self._data[idx].copy()

    def column(self, name: str) -> np.ndarray:
        return self.ordered()[name]

    def to_records(self) -> List[Dict[str, Any]]:
        """Return the records as plain dictionaries of Python scalars."""
        names = self.field_names
        return [
            {name: rec[name].item() for name in names}
            for rec in self.ordered()
        ]
