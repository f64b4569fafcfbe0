"""Package-wide settings for feassembly.

Three things live here:
  - the level of the ``feassembly`` logger (``FEASSEMBLY_LOGLEVEL``),
  - the array module used by the reduced-basis projection, NumPy on CPU or
    CuPy on GPU (``FEASSEMBLY_GPU``), reachable through the `xp` proxy,
  - the growth factor of the triplet buffers (``FEASSEMBLY_GROWTH_FACTOR``).

Sparse matrices and the triplet buffers themselves always stay on CPU.
"""

from __future__ import annotations

from dataclasses import dataclass
import contextlib
import logging
import os
from typing import Any, ContextManager, Iterator

from .errors import ConfigurationError

_LOGGER = logging.getLogger(__name__)
_PACKAGE_LOGGER = logging.getLogger("feassembly")

_DEVICES = ("cpu", "gpu", "auto")
DEFAULT_GROWTH_FACTOR = 1000


def _parse_log_level(val: str | int | None, default: int = logging.WARNING) -> int:
    """Turn a level name or number into a `logging` constant.

    Unknown names fall back to `default`.
    """
    if val is None:
        return default
    if isinstance(val, int):
        return val
    lvl = logging.getLevelName(str(val).strip().upper())
    return lvl if isinstance(lvl, int) else default


def set_log_level(level: str | int = "WARNING") -> None:
    """Set the level of the ``feassembly`` logger and all its children."""
    _PACKAGE_LOGGER.setLevel(_parse_log_level(level))


set_log_level(os.getenv("FEASSEMBLY_LOGLEVEL", "WARNING"))


def int_env(varname: str, default: int) -> int:
    """Read an integer from the environment, `default` if unset or blank."""
    raw = os.getenv(varname, "").strip()
    return int(raw) if raw else default


def _device_env() -> str:
    """Map ``FEASSEMBLY_GPU`` onto 'gpu', 'cpu' or 'auto'."""
    raw = os.getenv("FEASSEMBLY_GPU", "").strip().lower()
    if raw in {"1", "true", "yes", "on", "gpu"}:
        return "gpu"
    if raw in {"0", "false", "no", "off", "cpu"}:
        return "cpu"
    return "auto"


@dataclass(frozen=True)
class ArrayBackend:
    """The array module used for dense element algebra.

    Attributes:
        name (str): 'numpy' or 'cupy'.
        xp (Any): The module itself.
    """

    name: str
    xp: Any

    @property
    def is_gpu(self) -> bool:
        return self.name == "cupy"

    def to_cpu(self, a: Any) -> Any:
        """Bring a result back to host memory; NumPy arrays pass through."""
        if self.is_gpu and isinstance(a, self.xp.ndarray):
            return self.xp.asnumpy(a)
        return a


def _numpy_backend() -> ArrayBackend:
    import numpy

    return ArrayBackend("numpy", numpy)


def _cupy_backend() -> ArrayBackend:
    """Return the CuPy backend.

    Raises:
        ImportError: If CuPy is not installed.
        ConfigurationError: If CuPy sees no CUDA device.
    """
    import cupy

    ndev = cupy.cuda.runtime.getDeviceCount()
    if ndev < 1:
        raise ConfigurationError("CuPy is installed but sees no CUDA device")
    _LOGGER.debug("CuPy sees %d CUDA device(s)", ndev)
    return ArrayBackend("cupy", cupy)


def select_backend(device: str = "auto", *, strict: bool = False) -> ArrayBackend:
    """Pick the array backend for `device`.

    Args:
        device: 'cpu', 'gpu' or 'auto' (GPU when usable, else CPU).
        strict: With device='gpu', propagate the GPU failure instead of
            falling back to NumPy.

    Raises:
        ConfigurationError: If `device` is not one of the accepted names.
    """
    if device not in _DEVICES:
        _LOGGER.error("select_backend: unknown device %r", device)
        raise ConfigurationError(f"device must be one of {_DEVICES}; got {device!r}")
    if device == "cpu":
        return _numpy_backend()
    try:
        backend = _cupy_backend()
    except Exception as err:
        if device == "gpu":
            _LOGGER.error("GPU backend unavailable: %r", err)
            if strict:
                raise
            _LOGGER.warning("Falling back to the NumPy backend.")
        else:
            _LOGGER.info("No usable GPU (%r); using NumPy.", err)
        return _numpy_backend()
    _LOGGER.info("Using the CuPy backend")
    return backend


class Config:
    """Holder of the active backend and the buffer growth factor.

    Both start from the environment and can be changed at run time.
    """

    def __init__(self) -> None:
        self._growth_factor = DEFAULT_GROWTH_FACTOR
        self.set_growth_factor(
            int_env("FEASSEMBLY_GROWTH_FACTOR", DEFAULT_GROWTH_FACTOR)
        )
        self._backend = select_backend(_device_env())
        _LOGGER.debug(
            "Config: backend=%s growth_factor=%d",
            self._backend.name,
            self._growth_factor,
        )

    @property
    def backend(self) -> ArrayBackend:
        return self._backend

    def configure(self, device: str = "auto", *, strict: bool = False) -> Config:
        """Switch the active backend; returns self for chaining."""
        self._backend = select_backend(device, strict=strict)
        return self

    @contextlib.contextmanager
    def use(self, device: str, *, strict: bool = False) -> Iterator[ArrayBackend]:
        """Run a block on another backend, then restore the current one."""
        saved = self._backend
        try:
            yield self.configure(device, strict=strict).backend
        finally:
            self._backend = saved

    @property
    def growth_factor(self) -> int:
        """Multiplier of the contribution size when a triplet buffer grows."""
        return self._growth_factor

    def set_growth_factor(self, factor: int) -> None:
        """Change the growth factor.

        Raises:
            ValueError: If `factor` is smaller than 1.
        """
        factor = int(factor)
        if factor < 1:
            _LOGGER.error("set_growth_factor: factor must be >= 1; got %d", factor)
            raise ValueError(f"growth factor must be >= 1; got {factor}")
        self._growth_factor = factor

    @property
    def is_gpu(self) -> bool:
        return self._backend.is_gpu

    @property
    def backend_name(self) -> str:
        return self._backend.name

    @property
    def xp(self) -> Any:
        return self._backend.xp

    def to_cpu(self, a: Any) -> Any:
        return self._backend.to_cpu(a)


class _XPProxy:
    """Stand-in for the array module that always follows the active backend."""

    def __init__(self, cfg: Config) -> None:
        self._cfg = cfg

    def __getattr__(self, name: str) -> Any:
        return getattr(self._cfg.xp, name)


config = Config()
xp = _XPProxy(config)


def to_cpu(a: Any) -> Any:
    return config.to_cpu(a)


def is_gpu() -> bool:
    return config.is_gpu


def backend_name() -> str:
    return config.backend_name


def growth_factor() -> int:
    return config.growth_factor


def set_growth_factor(factor: int) -> None:
    config.set_growth_factor(factor)


def configure(device: str = "auto", *, strict: bool = False) -> Config:
    """Switch the active backend (module-level)."""
    return config.configure(device, strict=strict)


def use(device: str, *, strict: bool = False) -> ContextManager[ArrayBackend]:
    """Temporarily switch the active backend (module-level)."""
    return config.use(device, strict=strict)
