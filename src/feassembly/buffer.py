"""Growable triplet storage shared by the sparse matrix assemblers.

The buffer holds three parallel arrays (row DOF, column DOF, value) and a
1-based write cursor `buffer_pointer`:

  - `buffer_pointer == 0`: never sized; `assemble` is not allowed.
  - `1 <= buffer_pointer <= buffer_length + 1`: the first
    `buffer_pointer - 1` slots hold live contributions, the rest is garbage
    until overwritten.

Once sized, the arrays are never shrunk. When a contribution does not fit,
the arrays grow by `incoming_size * growth_factor` slots and keep their
content.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .config import growth_factor
from .errors import ConfigurationError

_LOGGER = logging.getLogger(__name__)

_INDEX_DTYPE = np.int64


def as_dofnums(dofnums: ArrayLike) -> NDArray[np.int64]:
    """Return DOF numbers as a flat int64 array.

    Row vectors such as `[[1, 7, 5]]` are accepted and flattened.
    """
    return np.asarray(dofnums, dtype=_INDEX_DTYPE).ravel()


def require_castable(values: NDArray[Any], dtype: np.dtype, who: str) -> None:
    """Raise `TypeError` unless `values` fit `dtype` without changing kind.

    Float values into an integer buffer, or complex into a real one, would
    be truncated silently by the assignment.
    """
    if not np.can_cast(values.dtype, dtype, casting="same_kind"):
        _LOGGER.error("%s: cannot store %s values as %s", who, values.dtype, dtype)
        raise TypeError(
            f"{who}: {values.dtype} values do not fit the {dtype} assembler; "
            "construct it with a zero of a wider type"
        )


def _extended(a: NDArray[Any], old_length: int, new_length: int) -> NDArray[Any]:
    out = np.empty(new_length, dtype=a.dtype)
    out[:old_length] = a[:old_length]
    return out


class TripletBuffer:
    """Arena of (row, column, value) triplets with a bump cursor.

    Args:
        dtype: Value dtype of the assembled matrix.

    Attributes:
        rowbuffer (NDArray[np.int64]): Row DOF numbers (1-based).
        colbuffer (NDArray[np.int64]): Column DOF numbers (1-based).
        matbuffer (NDArray[Any]): Values.
        buffer_length (int): Number of allocated slots.
        buffer_pointer (int): 1-based index of the next free slot, 0 if never sized.
        force_init (bool): Fill newly allocated slots with (1, 1, 0).
    """

    rowbuffer: NDArray[np.int64]
    colbuffer: NDArray[np.int64]
    matbuffer: NDArray[Any]

    def __init__(self, dtype: Any = np.float64) -> None:
        self.dtype = np.dtype(dtype)
        self.rowbuffer = np.zeros(1, dtype=_INDEX_DTYPE)
        self.colbuffer = np.zeros(1, dtype=_INDEX_DTYPE)
        self.matbuffer = np.zeros(1, dtype=self.dtype)
        self.buffer_length = 0
        self.buffer_pointer = 0
        self.force_init = False

    @property
    def started(self) -> bool:
        """Return True once the buffer has been sized."""
        return self.buffer_pointer >= 1

    @property
    def ntriplets(self) -> int:
        """Number of live triplets."""
        return max(self.buffer_pointer - 1, 0)

    def reserve(self, capacity: int, *, force_init: bool = False) -> bool:
        """Size the arrays to `capacity` slots if the buffer was never started.

        Once started, the call leaves the arrays and the cursor alone so that
        repeated start/assemble/finalize cycles do not reallocate.

        Args:
            capacity: Requested number of slots.
            force_init: Fill the arrays with (1, 1, 0) instead of leaving
                them uninitialized.

        Returns:
            True if the arrays were (re)allocated.

        Raises:
            ConfigurationError: If `capacity` is negative.
        """
        capacity = int(capacity)
        if capacity < 0:
            _LOGGER.error("reserve: negative capacity %d", capacity)
            raise ConfigurationError(f"capacity must be >= 0; got {capacity}")

        self.force_init = bool(force_init)
        if self.started:
            _LOGGER.debug(
                "reserve(%d) ignored: buffer already started (length=%d, pointer=%d)",
                capacity,
                self.buffer_length,
                self.buffer_pointer,
            )
            if self.force_init:
                self._fill_init(self.buffer_pointer - 1)
            return False

        self.rowbuffer = np.empty(capacity, dtype=_INDEX_DTYPE)
        self.colbuffer = np.empty(capacity, dtype=_INDEX_DTYPE)
        self.matbuffer = np.empty(capacity, dtype=self.dtype)
        self.buffer_length = capacity
        self.buffer_pointer = 1
        if self.force_init:
            self._fill_init(0)
        _LOGGER.debug(
            "reserve: allocated %d triplet slots (dtype=%s)", capacity, self.dtype
        )
        return True

    def _fill_init(self, begin: int) -> None:
        self.rowbuffer[begin:] = 1
        self.colbuffer[begin:] = 1
        self.matbuffer[begin:] = 0

    def require_started(self, who: str) -> None:
        """Raise `ConfigurationError` if the buffer was never sized."""
        if not self.started:
            _LOGGER.error("%s: called before start(); buffers were never sized", who)
            raise ConfigurationError(f"{who}: start() must be called before assembling")

    def grow(self, incoming: int) -> None:
        """Extend the arrays by `incoming * growth_factor` slots, keeping content."""
        new_length = self.buffer_length + incoming * growth_factor()
        old_length = self.buffer_length
        self.rowbuffer = _extended(self.rowbuffer, old_length, new_length)
        self.colbuffer = _extended(self.colbuffer, old_length, new_length)
        self.matbuffer = _extended(self.matbuffer, old_length, new_length)
        if self.force_init:
            self._fill_init(old_length)
        self.buffer_length = new_length
        _LOGGER.info(
            "Triplet buffer grown %d -> %d slots (incoming=%d, pointer=%d)",
            old_length,
            new_length,
            incoming,
            self.buffer_pointer,
        )

    def append(
        self,
        rows: NDArray[np.int64],
        cols: NDArray[np.int64],
        vals: NDArray[Any],
        incoming: Optional[int] = None,
    ) -> None:
        """Write `len(rows)` triplets at the cursor, growing first if needed.

        Args:
            rows: Row DOF numbers.
            cols: Column DOF numbers.
            vals: Values.
            incoming: Size of the element contribution before invalid DOFs
                were dropped (e.g. `mat.size`). Room for it is checked and
                growth is sized by it; defaults to `len(rows)`.
        """
        n = int(rows.shape[0])
        size = n if incoming is None else max(int(incoming), n)
        p = self.buffer_pointer - 1
        if p + size > self.buffer_length:
            self.grow(size)
        if n == 0:
            return
        self.rowbuffer[p : p + n] = rows
        self.colbuffer[p : p + n] = cols
        self.matbuffer[p : p + n] = vals
        self.buffer_pointer += n

    def live(self) -> Tuple[NDArray[np.int64], NDArray[np.int64], NDArray[Any]]:
        """Return views of the live triplets."""
        n = self.ntriplets
        return self.rowbuffer[:n], self.colbuffer[:n], self.matbuffer[:n]

    def absorb(self, other: TripletBuffer) -> None:
        """Append the live triplets of `other`; `other` is left untouched."""
        rows, cols, vals = other.live()
        self.append(rows.copy(), cols.copy(), vals.astype(self.dtype, copy=True))

    def mark_tail_ignorable(self) -> None:
        """Zero the slots from the cursor to the end (ignorable indices)."""
        p = max(self.buffer_pointer - 1, 0)
        self.rowbuffer[p:] = 0
        self.colbuffer[p:] = 0
        self.matbuffer[p:] = 0

    def compact(self, nrows: int, ncols: int) -> int:
        """Drop live triplets outside `1..nrows` x `1..ncols`, in place.

        Returns:
            The number of triplets kept; the cursor is moved past them.
        """
        if not self.started:
            return 0
        rows, cols, vals = self.live()
        keep = (rows > 0) & (cols > 0) & (rows <= nrows) & (cols <= ncols)
        k = int(np.count_nonzero(keep))
        if k != rows.shape[0]:
            # Boolean indexing copies, so the in-place write is safe.
            self.rowbuffer[:k] = rows[keep]
            self.colbuffer[:k] = cols[keep]
            self.matbuffer[:k] = vals[keep]
        self.buffer_pointer = k + 1
        return k

    def reset(self) -> None:
        """Rewind the cursor to the first slot; storage is kept."""
        if self.started:
            self.buffer_pointer = 1
