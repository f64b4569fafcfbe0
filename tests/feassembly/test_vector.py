from __future__ import annotations
import numpy as np
import pytest
from numpy.testing import assert_allclose

from feassembly import (
    ConfigurationError,
    DimensionMismatch,
    SysvecAssembler,
    SysvecAssemblerProtocol,
)


def test_satisfies_protocol():
    assert isinstance(SysvecAssembler(), SysvecAssemblerProtocol)


def test_accumulates_and_drops():
    a = SysvecAssembler(0.0).start(4)
    a.assemble([1.0, 2.0, 3.0], [1, 0, 4])
    a.assemble([10.0, 20.0], [4, 7])
    assert_allclose(a.finalize(), [1.0, 0.0, 0.0, 13.0])


def test_repeated_dofs_accumulate_within_one_element():
    a = SysvecAssembler().start(2)
    a.assemble([1.0, 1.0, 1.0], [2, 2, 1])
    assert_allclose(a.makevector(), [1.0, 2.0])


def test_finalize_returns_independent_copy():
    a = SysvecAssembler().start(3)
    a.assemble([1.0], [2])
    F = a.finalize()
    F[:] = -1.0
    assert_allclose(a.finalize(), [0.0, 1.0, 0.0])
    a.assemble([1.0], [2])
    assert_allclose(F, [-1.0, -1.0, -1.0])


def test_restart_zeroes_buffer():
    a = SysvecAssembler().start(2)
    a.assemble([5.0, 6.0], [1, 2])
    a.start(2)
    assert_allclose(a.finalize(), [0.0, 0.0])
    a.start(3)
    assert a.finalize().shape == (3,)


def test_length_mismatch_raises():
    a = SysvecAssembler().start(3)
    with pytest.raises(DimensionMismatch):
        a.assemble([1.0, 2.0], [1])


def test_use_before_start_raises():
    a = SysvecAssembler()
    with pytest.raises(ConfigurationError):
        a.assemble([1.0], [1])
    with pytest.raises(ConfigurationError):
        a.finalize()


def test_merge():
    a = SysvecAssembler().start(2)
    b = SysvecAssembler().start(2)
    a.assemble([1.0], [1])
    b.assemble([2.0, 3.0], [1, 2])
    assert_allclose(a.merge(b).finalize(), [3.0, 3.0])
    with pytest.raises(DimensionMismatch):
        a.merge(SysvecAssembler().start(5))


def test_complex_entries():
    a = SysvecAssembler(0j).start(1)
    a.assemble([1 + 1j, 2 - 1j], [1, 1])
    assert a.finalize()[0] == 3 + 0j


def test_integer_vector_rejects_float_values():
    a = SysvecAssembler(0).start(2)
    with pytest.raises(TypeError):
        a.assemble([0.5, 1.5], [1, 2])
    a.assemble([1, 2], [1, 2])
    assert list(a.finalize()) == [1, 2]
