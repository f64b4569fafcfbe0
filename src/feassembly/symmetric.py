"""Assembler of a symmetric sparse global matrix.

Only the lower triangle (local `i >= j`) of every element matrix is stored,
which halves both the buffer traffic and the number of triplets to sort.
`finalize` mirrors the triangle and halves the diagonal that the mirroring
counted twice.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np
from numpy.typing import ArrayLike

from .base import SingleSpaceAssembler
from .buffer import as_dofnums, require_castable

_LOGGER = logging.getLogger(__name__)


class SysmatAssemblerSparseSymm(SingleSpaceAssembler):
    """Accumulate square symmetric element matrices into a symmetric matrix.

    The element matrices are trusted to be symmetric; their strict upper
    triangle is never read.
    """

    _symmetric = True

    def assemble(
        self,
        mat: ArrayLike,
        dofnums: ArrayLike,
        ignore: Optional[Any] = None,
    ) -> SysmatAssemblerSparseSymm:
        """Assemble the lower triangle of a square symmetric element matrix.

        Args:
            mat: Square matrix of size `len(dofnums)`.
            dofnums: DOF numbers of both rows and columns.
            ignore: Column DOF numbers; ignored (assumed equal to `dofnums`).

        Raises:
            ConfigurationError: If `start` was never called.
            DimensionMismatch: If `mat` is not square of size `len(dofnums)`.
            TypeError: If the values of `mat` do not fit the assembler dtype.
        """
        self._buffer.require_started("SysmatAssemblerSparseSymm.assemble")
        mat = np.asarray(mat)
        dofs = as_dofnums(dofnums)
        self._check_square(mat, dofs.shape[0])
        require_castable(mat, self.dtype, "SysmatAssemblerSparseSymm.assemble")

        valid = (dofs > 0) & (dofs <= self.ndofs_row)
        d = dofs[valid]
        sub = mat[np.ix_(valid, valid)]
        # (j, i) pairs with i >= j, column by column.
        j, i = np.triu_indices(d.shape[0])
        self._buffer.append(d[i], d[j], sub[i, j], incoming=mat.size)
        return self
