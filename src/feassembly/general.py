"""Assembler of a general (rectangular) sparse global matrix.

Row and column DOF numbers may refer to different global spaces, which makes
this assembler suitable for coupling blocks (e.g. free x prescribed DOFs) as
well as for ordinary square stiffness matrices.

Example:
    >>> a = SysmatAssemblerSparse(0.0)
    >>> a.start(3, 4, 2, 7, 7)
    >>> a.assemble(m1, [1, 7, 5], [5, 2, 1, 4])
    >>> a.assemble(m2, [2, 3, 1, 7, 5], [6, 7, 3, 4])
    >>> A = a.finalize()
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import ArrayLike

from .base import TripletAssembler
from .buffer import as_dofnums, require_castable
from .errors import DimensionMismatch

_LOGGER = logging.getLogger(__name__)


class SysmatAssemblerSparse(TripletAssembler):
    """Accumulate rectangular element matrices into a sparse global matrix."""

    def start(
        self,
        elem_mat_nrows: int,
        elem_mat_ncols: int,
        elem_mat_nmatrices: int,
        ndofs_row: int,
        ndofs_col: int,
        *,
        force_init: bool = False,
    ) -> SysmatAssemblerSparse:
        """Start the assembly of a global matrix.

        On the first call the buffers are sized for
        `elem_mat_nmatrices * elem_mat_nrows * elem_mat_ncols` entries. Later
        calls leave the buffers and the cursor untouched, so an assembler can
        be reused across an outer loop without reallocating; only the sizes
        of the DOF spaces are refreshed.

        Args:
            elem_mat_nrows: Number of rows of a typical element matrix.
            elem_mat_ncols: Number of columns of a typical element matrix.
            elem_mat_nmatrices: Expected number of element matrices.
            ndofs_row: Number of DOFs in the row direction.
            ndofs_col: Number of DOFs in the column direction.
            force_init: Fill the buffers with (1, 1, 0) rather than leaving
                them uninitialized.

        Returns:
            The assembler (for chaining).
        """
        self._start(
            elem_mat_nmatrices * elem_mat_nrows * elem_mat_ncols,
            ndofs_row,
            ndofs_col,
            force_init,
        )
        return self

    def assemble(
        self,
        mat: ArrayLike,
        dofnums_row: ArrayLike,
        dofnums_col: ArrayLike,
    ) -> SysmatAssemblerSparse:
        """Assemble a rectangular element matrix.

        Entry `mat[i, j]` goes to global position
        `(dofnums_row[i], dofnums_col[j])`. Rows and columns whose DOF number
        is non-positive or beyond the declared DOF space are dropped.

        Raises:
            ConfigurationError: If `start` was never called.
            DimensionMismatch: If `mat.shape != (len(dofnums_row), len(dofnums_col))`.
            TypeError: If the values of `mat` would lose their kind (e.g.
                float into an integer assembler).
        """
        self._buffer.require_started("SysmatAssemblerSparse.assemble")
        mat = np.asarray(mat)
        rdofs = as_dofnums(dofnums_row)
        cdofs = as_dofnums(dofnums_col)
        if mat.shape != (rdofs.shape[0], cdofs.shape[0]):
            _LOGGER.error(
                "assemble: matrix shape %s does not match DOF arrays (%d, %d)",
                mat.shape,
                rdofs.shape[0],
                cdofs.shape[0],
            )
            raise DimensionMismatch(
                f"matrix shape {mat.shape} != ({rdofs.shape[0]}, {cdofs.shape[0]})"
            )
        require_castable(mat, self.dtype, "SysmatAssemblerSparse.assemble")

        rmask = (rdofs > 0) & (rdofs <= self.ndofs_row)
        cmask = (cdofs > 0) & (cdofs <= self.ndofs_col)
        r = rdofs[rmask]
        c = cdofs[cmask]
        # Column by column, like the serialized (Fortran-order) element matrix.
        block = mat[np.ix_(rmask, cmask)]
        self._buffer.append(
            np.tile(r, c.shape[0]),
            np.repeat(c, r.shape[0]),
            block.ravel(order="F"),
            incoming=mat.size,
        )
        return self
