"""Assemblers of diagonal (lumped) sparse global matrices.

Two lumping strategies are provided:

  - `SysmatAssemblerSparseDiag` keeps the diagonal of each element matrix and
    discards the off-diagonal coupling.
  - `SysmatAssemblerSparseHRZLumpingSymm` scales the diagonal so that the
    element keeps its total mass (Hinton, Rock & Zienkiewicz, "A note on mass
    lumping and related processes in the finite element method", Earthquake
    Engineering & Structural Dynamics 4(3), 245-249, 1976).

HRZ lumping is only meaningful for homogeneous mass matrices, e.g. all
translational DOFs; mixing translations and rotations in one element matrix
gives a wrong lumped mass.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np
from numpy.typing import ArrayLike

from .base import SingleSpaceAssembler
from .buffer import as_dofnums, require_castable
from .errors import LumpingError

_LOGGER = logging.getLogger(__name__)


class SysmatAssemblerSparseDiag(SingleSpaceAssembler):
    """Accumulate the diagonals of square element matrices.

    Off-diagonal entries of the element matrices are ignored.
    """

    def _capacity(self, elem_mat_dim: int, elem_mat_nmatrices: int) -> int:
        return elem_mat_nmatrices * elem_mat_dim + 1

    def assemble(
        self,
        mat: ArrayLike,
        dofnums: ArrayLike,
        ignore: Optional[Any] = None,
    ) -> SysmatAssemblerSparseDiag:
        """Assemble the diagonal of a square element matrix.

        Raises:
            ConfigurationError: If `start` was never called.
            DimensionMismatch: If `mat` is not square of size `len(dofnums)`.
            TypeError: If the values of `mat` do not fit the assembler dtype.
        """
        self._buffer.require_started("SysmatAssemblerSparseDiag.assemble")
        mat = np.asarray(mat)
        dofs = as_dofnums(dofnums)
        self._check_square(mat, dofs.shape[0])
        require_castable(mat, self.dtype, "SysmatAssemblerSparseDiag.assemble")

        valid = (dofs > 0) & (dofs <= self.ndofs_row)
        d = dofs[valid]
        self._buffer.append(
            d, d, np.diagonal(mat)[valid], incoming=dofs.shape[0]
        )
        return self


class SysmatAssemblerSparseHRZLumpingSymm(SingleSpaceAssembler):
    """Accumulate HRZ-lumped diagonals of square symmetric element matrices."""

    def assemble(
        self,
        mat: ArrayLike,
        dofnums: ArrayLike,
        ignore: Optional[Any] = None,
    ) -> SysmatAssemblerSparseHRZLumpingSymm:
        """Assemble the HRZ-lumped diagonal of a square element matrix.

        Each diagonal entry is multiplied by `sum(mat) / trace(mat)`, so the
        lumped element carries the same total as the consistent one.

        Raises:
            ConfigurationError: If `start` was never called.
            DimensionMismatch: If `mat` is not square of size `len(dofnums)`.
            TypeError: If the values of `mat` do not fit the assembler dtype.
            LumpingError: If the diagonal of `mat` sums to zero.
        """
        self._buffer.require_started("SysmatAssemblerSparseHRZLumpingSymm.assemble")
        mat = np.asarray(mat)
        dofs = as_dofnums(dofnums)
        self._check_square(mat, dofs.shape[0])
        if dofs.shape[0] == 0:
            return self

        diag = np.diagonal(mat)
        em2 = mat.sum()  # total mass times the number of space dimensions
        dem2 = diag.sum()  # same, diagonal only
        if dem2 == 0:
            _LOGGER.error("HRZ lumping: element diagonal sums to zero (total=%r)", em2)
            raise LumpingError(
                "HRZ lumping needs an element diagonal with non-zero sum"
            )
        lumped = diag * (em2 / dem2)
        require_castable(
            lumped, self.dtype, "SysmatAssemblerSparseHRZLumpingSymm.assemble"
        )

        valid = (dofs > 0) & (dofs <= self.ndofs_row)
        d = dofs[valid]
        self._buffer.append(d, d, lumped[valid], incoming=dofs.shape[0])
        return self
