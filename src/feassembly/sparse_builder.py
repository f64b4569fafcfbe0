"""Turn a triplet buffer into a SciPy CSR matrix.

Duplicate (row, column) pairs are summed by the COO -> CSR conversion, which
is how contributions of neighbouring elements to the same global entry are
superposed. DOF numbers in the buffer are 1-based; the matrix is 0-based.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
import scipy.sparse as sp

from .buffer import TripletBuffer

_LOGGER = logging.getLogger(__name__)


def zero_matrix(nrows: int, ncols: int, dtype: Any = np.float64) -> sp.csr_matrix:
    """Return an all-zero CSR matrix of the given shape."""
    return sp.csr_matrix((nrows, ncols), dtype=dtype)


def build_sparse(buffer: TripletBuffer, nrows: int, ncols: int) -> sp.csr_matrix:
    """Compact `buffer` and build the CSR matrix from its live triplets.

    Triplets with non-positive (ignorable) or out-of-range DOF numbers are
    discarded first. The cursor is left after the compacted triplets.

    Args:
        buffer: Triplet storage of an assembler.
        nrows: Number of rows of the result (row DOF space size).
        ncols: Number of columns of the result (column DOF space size).

    Returns:
        sp.csr_matrix: `nrows x ncols` matrix with duplicates summed.
    """
    kept = buffer.compact(nrows, ncols)
    rows, cols, vals = buffer.live()
    S = sp.coo_matrix(
        (vals, (rows - 1, cols - 1)), shape=(nrows, ncols), dtype=buffer.dtype
    ).tocsr()
    _LOGGER.debug(
        "build_sparse: %d triplets -> %dx%d CSR, nnz=%d", kept, nrows, ncols, S.nnz
    )
    return S


def symmetrize_lower(L: sp.spmatrix) -> sp.csr_matrix:
    """Rebuild a full symmetric matrix from its stored lower triangle.

    `L + L^T` holds every diagonal entry twice, so the diagonal is halved.
    """
    S = (L + L.transpose()).tocsr()
    S = S - sp.diags(S.diagonal() / 2, format="csr", dtype=S.dtype)
    return S


def finalize_triplets(
    buffer: TripletBuffer,
    nrows: int,
    ncols: int,
    *,
    nomatrixresult: bool,
    symmetric: bool = False,
) -> sp.csr_matrix:
    """Harvest the buffer of a triplet assembler.

    With `nomatrixresult` set, the tail of the buffer (from the cursor on) is
    filled with ignorable zero indices and a zero matrix is returned; the
    live triplets and the cursor stay as they are so that the true matrix
    can be built by a later call. Otherwise the matrix is built and the
    cursor rewinds to 1, ready for the next assembly cycle.

    Args:
        buffer: Triplet storage of an assembler.
        nrows: Row DOF space size.
        ncols: Column DOF space size.
        nomatrixresult: Skip the construction of the matrix.
        symmetric: The buffer holds a lower triangle to be mirrored.

    Returns:
        sp.csr_matrix: The assembled (or zero) matrix.
    """
    if nomatrixresult:
        buffer.mark_tail_ignorable()
        _LOGGER.debug(
            "finalize: nomatrixresult set; %d triplets retained in buffer",
            buffer.ntriplets,
        )
        return zero_matrix(nrows, ncols, dtype=buffer.dtype)

    S = build_sparse(buffer, nrows, ncols)
    if symmetric:
        S = symmetrize_lower(S)
    buffer.reset()
    return S
