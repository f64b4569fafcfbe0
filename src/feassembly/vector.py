"""Assembler of a dense global vector (loads, residuals, lumped masses)."""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .buffer import as_dofnums, require_castable
from .errors import ConfigurationError, DimensionMismatch

_LOGGER = logging.getLogger(__name__)


class SysvecAssembler:
    """Accumulate element vectors into one dense global vector.

    Args:
        z: A value of the vector entry type; only its dtype is used.

    Attributes:
        F_buffer (Optional[NDArray[Any]]): The running sum, None until `start`.
        ndofs (int): Length of the global vector.
    """

    F_buffer: Optional[NDArray[Any]]

    def __init__(self, z: Any = 0.0) -> None:
        self.dtype = np.asarray(z).dtype
        self.F_buffer = None
        self.ndofs = 0

    def start(self, ndofs: int) -> SysvecAssembler:
        """Allocate (or reuse) a zero-filled buffer of length `ndofs`."""
        self.ndofs = int(ndofs)
        if self.F_buffer is None or self.F_buffer.shape[0] != self.ndofs:
            self.F_buffer = np.zeros(self.ndofs, dtype=self.dtype)
        else:
            self.F_buffer[:] = 0
        _LOGGER.debug("SysvecAssembler.start: ndofs=%d", self.ndofs)
        return self

    def _require_started(self, who: str) -> NDArray[Any]:
        if self.F_buffer is None:
            _LOGGER.error("%s: called before start()", who)
            raise ConfigurationError(f"{who}: start() must be called first")
        return self.F_buffer

    def assemble(self, vec: ArrayLike, dofnums: ArrayLike) -> SysvecAssembler:
        """Add `vec[i]` to the global entry `dofnums[i]`.

        Entries whose DOF number is non-positive or larger than `ndofs` are
        dropped. Repeated DOF numbers within one element accumulate.

        Raises:
            ConfigurationError: If `start` was never called.
            DimensionMismatch: If `vec` and `dofnums` differ in length.
            TypeError: If the values of `vec` do not fit the buffer dtype.
        """
        F = self._require_started("SysvecAssembler.assemble")
        vec = np.asarray(vec).ravel()
        dofs = as_dofnums(dofnums)
        if vec.shape[0] != dofs.shape[0]:
            _LOGGER.error(
                "SysvecAssembler.assemble: vector length %d != DOF count %d",
                vec.shape[0],
                dofs.shape[0],
            )
            raise DimensionMismatch(
                f"vector length {vec.shape[0]} != number of DOFs {dofs.shape[0]}"
            )
        require_castable(vec, self.dtype, "SysvecAssembler.assemble")
        valid = (dofs > 0) & (dofs <= self.ndofs)
        np.add.at(F, dofs[valid] - 1, vec[valid])
        return self

    def merge(self, other: SysvecAssembler) -> SysvecAssembler:
        """Add the running sum of another vector assembler of the same length."""
        F = self._require_started("SysvecAssembler.merge")
        G = other._require_started("SysvecAssembler.merge")
        if G.shape != F.shape:
            _LOGGER.error(
                "SysvecAssembler.merge: lengths differ %d vs %d",
                F.shape[0],
                G.shape[0],
            )
            raise DimensionMismatch("cannot merge vectors of different lengths")
        F += G
        return self

    def finalize(self) -> NDArray[Any]:
        """Return a copy of the global vector; DOF `d` is at index `d - 1`."""
        return self._require_started("SysvecAssembler.finalize").copy()

    def makevector(self) -> NDArray[Any]:
        """Alias of `finalize`."""
        return self.finalize()
