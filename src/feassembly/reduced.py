"""Assembler of a dense reduced-basis system matrix.

Each element matrix is projected through the rows of a fixed transformation
matrix `t` (full DOF space x reduced space) selected by the element DOF
numbers:

    m += t_local^T @ mat @ t_local

The projection runs on the active array backend (see `feassembly.config`);
the accumulator lives on CPU.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .buffer import as_dofnums
from .config import backend_name, to_cpu, xp
from .errors import ConfigurationError, DimensionMismatch

_LOGGER = logging.getLogger(__name__)


class SysmatAssemblerReduced:
    """Accumulate element matrices projected onto a reduced basis.

    Args:
        t: Transformation matrix, shape (ndofs, nreduced). It is read, never
            modified.
        z: A value of the matrix entry type; only its dtype is used.
        nomatrixresult: Accepted for interface compatibility; the dense
            result is always produced.

    Attributes:
        m (NDArray[Any]): The reduced accumulator, shape (nreduced, nreduced).
        ndofs_row (int): Full DOF count (rows of `t`).
        ndofs_col (int): Full DOF count (rows of `t`).
        red_ndofs_row (int): Reduced DOF count (columns of `t`).
        red_ndofs_col (int): Reduced DOF count (columns of `t`).
    """

    m: NDArray[Any]
    t: NDArray[Any]

    def __init__(
        self, t: ArrayLike, z: Any = 0.0, nomatrixresult: bool = False
    ) -> None:
        self.t = np.asarray(t)
        if self.t.ndim != 2:
            _LOGGER.error(
                "SysmatAssemblerReduced: transform must be 2-D; got %s", self.t.shape
            )
            raise DimensionMismatch(f"transform must be 2-D; got shape {self.t.shape}")
        self.ndofs_row = self.ndofs_col = int(self.t.shape[0])
        self.red_ndofs_row = self.red_ndofs_col = int(self.t.shape[1])
        self.m = np.zeros(
            (self.red_ndofs_row, self.red_ndofs_col), dtype=np.asarray(z).dtype
        )
        self.nomatrixresult = bool(nomatrixresult)
        self._started = False

    def start(
        self,
        elem_mat_nrows: int,
        elem_mat_ncols: int,
        elem_mat_nmatrices: int,
        ndofs_row: int,
        ndofs_col: int,
    ) -> SysmatAssemblerReduced:
        """Zero the accumulator; required before every fresh assembly.

        The element-size arguments are accepted for interface compatibility
        with the sparse assemblers; the declared DOF counts must match the
        rows of the transformation matrix.

        Raises:
            DimensionMismatch: If `ndofs_row`/`ndofs_col` disagree with `t`.
        """
        if (int(ndofs_row), int(ndofs_col)) != (self.ndofs_row, self.ndofs_col):
            _LOGGER.error(
                "SysmatAssemblerReduced.start: ndofs (%d, %d) != transform rows %d",
                ndofs_row,
                ndofs_col,
                self.ndofs_row,
            )
            raise DimensionMismatch(
                f"declared ndofs ({ndofs_row}, {ndofs_col}) do not match the "
                f"transformation matrix with {self.ndofs_row} rows"
            )
        self.m[...] = 0
        self._started = True
        _LOGGER.debug(
            "SysmatAssemblerReduced.start: %d -> %d DOFs (backend=%s)",
            self.ndofs_row,
            self.red_ndofs_row,
            backend_name(),
        )
        return self

    def assemble(
        self,
        mat: ArrayLike,
        dofnums_row: ArrayLike,
        dofnums_col: ArrayLike,
    ) -> SysmatAssemblerReduced:
        """Project a square element matrix and add it to the accumulator.

        Rows and columns with a non-positive or out-of-range DOF number are
        zeroed (on a copy of `mat`) and pointed at DOF 1, so they contribute
        nothing to the projection.

        Raises:
            ConfigurationError: If `start` was never called.
            DimensionMismatch: If `mat` is not square of the DOF array size,
                or the row and column DOF numbers differ.
        """
        if not self._started:
            _LOGGER.error("SysmatAssemblerReduced.assemble: called before start()")
            raise ConfigurationError(
                "SysmatAssemblerReduced.assemble: start() must be called first"
            )
        rdofs = as_dofnums(dofnums_row)
        cdofs = as_dofnums(dofnums_col)
        mat = np.asarray(mat)
        R = rdofs.shape[0]
        if mat.shape != (R, R):
            _LOGGER.error(
                "SysmatAssemblerReduced.assemble: matrix %s is not (%d, %d)",
                mat.shape,
                R,
                R,
            )
            raise DimensionMismatch(
                f"expected a square ({R}, {R}) matrix; got {mat.shape}"
            )
        if not np.array_equal(rdofs, cdofs):
            _LOGGER.error(
                "SysmatAssemblerReduced.assemble: row and column DOF numbers differ"
            )
            raise DimensionMismatch(
                "the DOF numbers must be the same for rows and columns"
            )

        inactive = (rdofs < 1) | (rdofs > self.ndofs_row)
        if inactive.any():
            mat = np.array(mat, dtype=np.result_type(mat, self.m.dtype))
            mat[inactive, :] = 0
            mat[:, inactive] = 0
            rdofs = np.where(inactive, 1, rdofs)

        lt = xp.asarray(self.t[rdofs - 1, :])
        projected = lt.T @ xp.asarray(mat) @ lt
        self.m += to_cpu(projected)
        return self

    def merge(self, other: SysmatAssemblerReduced) -> SysmatAssemblerReduced:
        """Add the accumulator of another assembler with the same reduced size."""
        if other.m.shape != self.m.shape:
            _LOGGER.error(
                "SysmatAssemblerReduced.merge: shapes differ %s vs %s",
                self.m.shape,
                other.m.shape,
            )
            raise DimensionMismatch(
                "cannot merge reduced accumulators of different sizes"
            )
        self.m += other.m
        return self

    def finalize(self) -> NDArray[Any]:
        """Return a copy of the dense reduced matrix."""
        return self.m.copy()

    def makematrix(self) -> NDArray[Any]:
        """Alias of `finalize`."""
        return self.finalize()
