from __future__ import annotations
from typing import Callable

import numpy as np
import pytest


def _gpu_available() -> bool:
    try:
        import cupy

        return cupy.cuda.runtime.getDeviceCount() > 0
    except Exception:
        return False


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Auto-skip tests marked 'gpu' when no CUDA device is present."""
    if _gpu_available():
        return
    skip_marker = pytest.mark.skip(reason="GPU not available for CuPy.")
    for item in items:
        if "gpu" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture()
def fea_cpu():
    import feassembly as fea

    with fea.use("cpu"):
        yield fea


@pytest.fixture()
def fea_gpu():
    if not _gpu_available():
        pytest.skip("No CUDA device available for CuPy.")
    import feassembly as fea

    with fea.use("gpu", strict=True):
        yield fea


@pytest.fixture()
def growth_factor_one():
    """Make every buffer growth as small as possible, then restore."""
    from feassembly.config import growth_factor, set_growth_factor

    prev = growth_factor()
    set_growth_factor(1)
    yield
    set_growth_factor(prev)


@pytest.fixture()
def random_symmetric() -> Callable[[int], np.ndarray]:
    """Factory of reproducible random symmetric positive definite matrices."""
    gen = np.random.default_rng(20240521)

    def _make(n: int) -> np.ndarray:
        a = gen.random((n, n))
        return a.T @ a + n * np.eye(n)

    return _make


@pytest.fixture()
def quad_mesh():
    """A 3x2 grid of Q4 elements: 12 nodes, 1-based connectivity."""
    nx, ny = 3, 2
    conn = []
    for j in range(ny):
        for i in range(nx):
            f = j * (nx + 1) + i + 1
            conn.append([f, f + 1, f + nx + 2, f + nx + 1])
    return (nx + 1) * (ny + 1), np.array(conn, dtype=int)
