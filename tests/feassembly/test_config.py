from __future__ import annotations
import importlib
import logging

import numpy as np
import pytest

from feassembly import config
from feassembly.errors import ConfigurationError
from feassembly.config import (
    ArrayBackend,
    backend_name,
    configure,
    growth_factor,
    int_env,
    is_gpu,
    select_backend,
    set_growth_factor,
    set_log_level,
    to_cpu,
    use,
    xp,
)


def test_int_env(monkeypatch):
    monkeypatch.setenv("TINT", "42")
    assert int_env("TINT", 0) == 42
    monkeypatch.setenv("TINT", "  ")
    assert int_env("TINT", 7) == 7
    monkeypatch.delenv("TINT")
    assert int_env("TINT", 3) == 3


def test_cpu_backend_passes_arrays_through():
    with use("cpu") as backend:
        assert isinstance(backend, ArrayBackend)
        assert backend_name() == "numpy"
        assert is_gpu() is False
        assert xp.asarray([1.0, 2.0]).sum() == 3.0
        a = np.arange(3.0)
        assert to_cpu(a) is a


def test_use_restores_backend():
    prev = config.backend
    with use("cpu"):
        pass
    assert config.backend is prev


def test_use_restores_backend_on_error():
    prev = config.backend
    with pytest.raises(RuntimeError):
        with use("cpu"):
            raise RuntimeError("boom")
    assert config.backend is prev


def test_configure_returns_config():
    prev = config.backend
    try:
        assert configure("cpu") is config
        assert backend_name() == "numpy"
    finally:
        config._backend = prev


def test_unknown_device_rejected():
    with pytest.raises(ConfigurationError):
        select_backend("tpu")


def test_gpu_request_falls_back_without_strict(monkeypatch):
    cfg_module = importlib.import_module("feassembly.config")

    def _no_gpu():
        raise ConfigurationError("no device")

    monkeypatch.setattr(cfg_module, "_cupy_backend", _no_gpu)
    assert select_backend("gpu").name == "numpy"
    assert select_backend("auto").name == "numpy"
    with pytest.raises(ConfigurationError):
        select_backend("gpu", strict=True)


def test_growth_factor_setter(growth_factor_one):
    assert growth_factor() == 1
    set_growth_factor(5)
    assert growth_factor() == 5


@pytest.mark.parametrize("bad", [0, -3])
def test_growth_factor_must_be_positive(bad):
    prev = growth_factor()
    with pytest.raises(ValueError):
        set_growth_factor(bad)
    assert growth_factor() == prev


def test_set_log_level_accepts_names_and_ints():
    pkg = logging.getLogger("feassembly")
    prev = pkg.level
    try:
        set_log_level("debug")
        assert pkg.level == logging.DEBUG
        set_log_level(logging.ERROR)
        assert pkg.level == logging.ERROR
        set_log_level("not-a-level")
        assert pkg.level == logging.WARNING
    finally:
        pkg.setLevel(prev)
