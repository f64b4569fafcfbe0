"""Shared capability of the assemblers.

Every assembler follows the same life cycle:

    start(...)      size storage (first call only) and declare DOF spaces
    assemble(...)   once per element contribution
    finalize()      harvest the global matrix or vector and rewind

The capability is expressed as `typing.Protocol` classes so that a driver can
be written against any variant. The triplet-based variants (general,
symmetric, diagonal, HRZ) share their buffer plumbing through
`TripletAssembler`; each variant only decides which entries of an element
matrix become triplets.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar, runtime_checkable

import numpy as np
import scipy.sparse as sp
from numpy.typing import ArrayLike, NDArray

from .buffer import TripletBuffer
from .errors import DimensionMismatch
from .sparse_builder import finalize_triplets

_LOGGER = logging.getLogger(__name__)

_TA = TypeVar("_TA", bound="TripletAssembler")


@runtime_checkable
class SysmatAssembler(Protocol):
    """Anything that assembles element matrices into a global matrix."""

    def start(
        self,
        elem_mat_nrows: int,
        elem_mat_ncols: int,
        elem_mat_nmatrices: int,
        ndofs_row: int,
        ndofs_col: int,
    ) -> Any: ...

    def assemble(
        self, mat: ArrayLike, dofnums_row: ArrayLike, dofnums_col: Any
    ) -> Any: ...

    def finalize(self) -> Any: ...


@runtime_checkable
class SysvecAssembler(Protocol):
    """Anything that assembles element vectors into a global vector."""

    def start(self, ndofs: int) -> Any: ...

    def assemble(self, vec: ArrayLike, dofnums: ArrayLike) -> Any: ...

    def finalize(self) -> NDArray[Any]: ...


class TripletAssembler:
    """Buffer plumbing common to the sparse (triplet) assemblers.

    Args:
        z: A value of the matrix entry type; only its dtype is used. Use a
            floating-point or complex zero: element values of a wider kind
            are rejected rather than truncated.
        nomatrixresult: When True, `finalize` returns a zero matrix and keeps
            the accumulated triplets, so the matrix can be built later by
            clearing the flag and calling `finalize` again.

    Attributes:
        nomatrixresult (bool): See above; may be changed at any time.
        ndofs_row (int): Size of the row DOF space.
        ndofs_col (int): Size of the column DOF space.
    """

    _symmetric = False

    def __init__(self, z: Any = 0.0, nomatrixresult: bool = False) -> None:
        self._buffer = TripletBuffer(np.asarray(z).dtype)
        self.nomatrixresult = bool(nomatrixresult)
        self.ndofs_row = 0
        self.ndofs_col = 0

    @property
    def buffer(self) -> TripletBuffer:
        """The triplet storage owned by this assembler."""
        return self._buffer

    @property
    def buffer_length(self) -> int:
        return self._buffer.buffer_length

    @property
    def buffer_pointer(self) -> int:
        return self._buffer.buffer_pointer

    @property
    def ntriplets(self) -> int:
        return self._buffer.ntriplets

    @property
    def dtype(self) -> np.dtype:
        return self._buffer.dtype

    def _start(
        self, capacity: int, ndofs_row: int, ndofs_col: int, force_init: bool
    ) -> None:
        self._buffer.reserve(capacity, force_init=force_init)
        self.ndofs_row = int(ndofs_row)
        self.ndofs_col = int(ndofs_col)
        _LOGGER.debug(
            "%s.start: ndofs=(%d, %d), buffer_length=%d, pointer=%d",
            type(self).__name__,
            self.ndofs_row,
            self.ndofs_col,
            self._buffer.buffer_length,
            self._buffer.buffer_pointer,
        )

    def reserve(self: _TA, capacity: int) -> _TA:
        """Size the buffers to `capacity` entries unless already started."""
        self._buffer.reserve(capacity)
        return self

    def _check_square(self, mat: NDArray[Any], ndofnums: int) -> None:
        if mat.shape != (ndofnums, ndofnums):
            _LOGGER.error(
                "%s.assemble: matrix shape %s is not (%d, %d)",
                type(self).__name__,
                mat.shape,
                ndofnums,
                ndofnums,
            )
            raise DimensionMismatch(
                f"expected a square ({ndofnums}, {ndofnums}) matrix; got {mat.shape}"
            )

    def merge(self: _TA, other: _TA) -> _TA:
        """Append the live triplets of another assembler of the same spaces.

        Used to combine per-worker assemblers before a single `finalize`;
        `other` keeps its own triplets.

        Raises:
            ConfigurationError: If this assembler was never started.
            DimensionMismatch: If the variants or the DOF spaces differ.
        """
        self._buffer.require_started(f"{type(self).__name__}.merge")
        if type(other) is not type(self) or (other.ndofs_row, other.ndofs_col) != (
            self.ndofs_row,
            self.ndofs_col,
        ):
            _LOGGER.error(
                "merge: cannot merge %s(%d, %d) into %s(%d, %d)",
                type(other).__name__,
                other.ndofs_row,
                other.ndofs_col,
                type(self).__name__,
                self.ndofs_row,
                self.ndofs_col,
            )
            raise DimensionMismatch(
                "cannot merge assemblers of different kinds or DOF spaces"
            )
        self._buffer.absorb(other.buffer)
        return self

    def finalize(self) -> sp.csr_matrix:
        """Make the sparse matrix.

        Returns:
            sp.csr_matrix: `ndofs_row x ndofs_col` matrix; DOF `d` is at index
            `d - 1`. A zero matrix when `nomatrixresult` is set.
        """
        return finalize_triplets(
            self._buffer,
            self.ndofs_row,
            self.ndofs_col,
            nomatrixresult=self.nomatrixresult,
            symmetric=self._symmetric,
        )

    def makematrix(self) -> sp.csr_matrix:
        """Alias of `finalize`."""
        return self.finalize()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(ndofs=({self.ndofs_row}, {self.ndofs_col}), "
            f"ntriplets={self.ntriplets}, buffer_length={self.buffer_length})"
        )


class SingleSpaceAssembler(TripletAssembler):
    """Triplet assembler whose rows and columns share one DOF space."""

    @property
    def ndofs(self) -> int:
        return self.ndofs_row

    def _capacity(self, elem_mat_dim: int, elem_mat_nmatrices: int) -> int:
        return elem_mat_nmatrices * elem_mat_dim**2

    def start(
        self: _TA,
        elem_mat_dim: int,
        ignore1: Any = None,
        elem_mat_nmatrices: int = 1,
        ndofs: int = 0,
        ignore2: Any = None,
        *,
        force_init: bool = False,
    ) -> _TA:
        """Start the assembly of a square global matrix.

        On the first call the buffers are sized for the expected number of
        element matrices of dimension `elem_mat_dim`; later calls leave the
        buffers and the cursor untouched and only refresh `ndofs`.

        Args:
            elem_mat_dim: Number of rows (= columns) of a typical element matrix.
            ignore1: Number of columns; ignored (equal to `elem_mat_dim`).
            elem_mat_nmatrices: Expected number of element matrices.
            ndofs: Total number of DOFs.
            ignore2: Column DOF count; ignored (equal to `ndofs`).
            force_init: Fill the buffers with (1, 1, 0) rather than leaving
                them uninitialized.

        Returns:
            The assembler (for chaining).
        """
        self._start(
            self._capacity(elem_mat_dim, elem_mat_nmatrices), ndofs, ndofs, force_init
        )
        return self
