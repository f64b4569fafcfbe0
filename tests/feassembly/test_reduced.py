from __future__ import annotations
import numpy as np
import pytest
from numpy.testing import assert_allclose

from feassembly import (
    ConfigurationError,
    DimensionMismatch,
    SysmatAssembler,
    SysmatAssemblerReduced,
    SysmatAssemblerSparse,
)


@pytest.fixture
def selection():
    """4x2 transform picking DOFs 1 and 3."""
    t = np.zeros((4, 2))
    t[0, 0] = 1.0
    t[2, 1] = 1.0
    return t


def test_satisfies_protocol(selection):
    assert isinstance(SysmatAssemblerReduced(selection), SysmatAssembler)


def test_selection_scenario(fea_cpu, selection):
    a = SysmatAssemblerReduced(selection, 0.0)
    a.start(2, 2, 1, 4, 4)
    a.assemble(np.array([[2.0, 0.0], [0.0, 3.0]]), [1, 3], [1, 3])
    M = a.finalize()
    assert isinstance(M, np.ndarray)
    assert_allclose(M, [[2.0, 0.0], [0.0, 3.0]])
    assert (a.red_ndofs_row, a.red_ndofs_col) == (2, 2)


def test_matches_projection_of_full_matrix(fea_cpu, random_symmetric, quad_mesh):
    """Element-wise projection equals T^T K T of the assembled matrix."""
    nnodes, conn = quad_mesh
    t = np.random.default_rng(11).random((nnodes, 3))
    red = SysmatAssemblerReduced(t).start(4, 4, len(conn), nnodes, nnodes)
    full = SysmatAssemblerSparse().start(4, 4, len(conn), nnodes, nnodes)
    for nodes in conn:
        m = random_symmetric(4)
        red.assemble(m, nodes, nodes)
        full.assemble(m, nodes, nodes)
    K = full.finalize().toarray()
    assert_allclose(red.makematrix(), t.T @ K @ t, rtol=1e-12)


def test_inactive_dofs_contribute_nothing(fea_cpu, selection):
    mat = np.array([[2.0, 7.0, 7.0], [7.0, 3.0, 7.0], [7.0, 7.0, 7.0]])
    a = SysmatAssemblerReduced(selection).start(3, 3, 1, 4, 4)
    a.assemble(mat, [1, 3, 0], [1, 3, 0])
    assert_allclose(a.finalize(), [[2.0, 7.0], [7.0, 3.0]])

    a.start(3, 3, 1, 4, 4)
    a.assemble(mat, [1, 9, 3], [1, 9, 3])
    assert_allclose(a.finalize(), [[2.0, 7.0], [7.0, 7.0]])


def test_inputs_are_not_modified(fea_cpu, selection):
    t0 = selection.copy()
    mat = np.ones((2, 2))
    dofs = np.array([0, 3])
    a = SysmatAssemblerReduced(selection).start(2, 2, 1, 4, 4)
    a.assemble(mat, dofs, dofs)
    assert_allclose(selection, t0)
    assert_allclose(mat, np.ones((2, 2)))
    assert list(dofs) == [0, 3]


def test_start_resets_accumulator(fea_cpu, selection):
    a = SysmatAssemblerReduced(selection).start(1, 1, 1, 4, 4)
    a.assemble([[1.0]], [1], [1])
    a.start(1, 1, 1, 4, 4)
    assert_allclose(a.finalize(), np.zeros((2, 2)))


def test_finalize_is_a_copy(fea_cpu, selection):
    a = SysmatAssemblerReduced(selection).start(1, 1, 1, 4, 4)
    a.assemble([[1.0]], [1], [1])
    M = a.finalize()
    M[:] = 0.0
    assert a.finalize()[0, 0] == 1.0


def test_row_and_column_dofs_must_match(fea_cpu, selection):
    a = SysmatAssemblerReduced(selection).start(2, 2, 1, 4, 4)
    with pytest.raises(DimensionMismatch):
        a.assemble(np.eye(2), [1, 3], [3, 1])


def test_non_square_raises(fea_cpu, selection):
    a = SysmatAssemblerReduced(selection).start(2, 2, 1, 4, 4)
    with pytest.raises(DimensionMismatch):
        a.assemble(np.ones((2, 3)), [1, 3], [1, 3])


def test_start_checks_full_dof_count(selection):
    with pytest.raises(DimensionMismatch):
        SysmatAssemblerReduced(selection).start(2, 2, 1, 5, 5)


def test_transform_must_be_two_dimensional():
    with pytest.raises(DimensionMismatch):
        SysmatAssemblerReduced(np.ones(4))


def test_assemble_before_start_raises(selection):
    with pytest.raises(ConfigurationError):
        SysmatAssemblerReduced(selection).assemble(np.eye(1), [1], [1])


def test_merge_partial_accumulators(fea_cpu, selection):
    a = SysmatAssemblerReduced(selection).start(1, 1, 1, 4, 4)
    b = SysmatAssemblerReduced(selection).start(1, 1, 1, 4, 4)
    a.assemble([[1.0]], [1], [1])
    b.assemble([[2.0]], [3], [3])
    assert_allclose(a.merge(b).finalize(), [[1.0, 0.0], [0.0, 2.0]])
    with pytest.raises(DimensionMismatch):
        a.merge(SysmatAssemblerReduced(np.ones((4, 3))))


@pytest.mark.gpu
def test_projection_on_gpu_matches_cpu(fea_gpu, random_symmetric):
    t = np.random.default_rng(5).random((6, 2))
    m = random_symmetric(3)
    a = SysmatAssemblerReduced(t).start(3, 3, 1, 6, 6)
    a.assemble(m, [2, 4, 6], [2, 4, 6])
    lt = t[[1, 3, 5], :]
    M = a.finalize()
    assert isinstance(M, np.ndarray)
    assert_allclose(M, lt.T @ m @ lt, rtol=1e-12)
