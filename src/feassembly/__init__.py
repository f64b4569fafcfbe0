"""The feassembly package assembles finite-element system matrices and vectors.

This package offers:
  - Sparse assembly of element matrices from (row, column, value) triplets,
    with duplicate entries summed.
  - Symmetric, diagonal and HRZ-lumped variants.
  - Projection of element matrices onto a reduced basis.
  - Dense assembly of element vectors.

DOF numbers are 1-based; a non-positive or out-of-range DOF number drops the
corresponding row/column, which is how constrained DOFs are eliminated.

Submodules:
  - base: Assembler protocols and shared triplet plumbing.
  - buffer: TripletBuffer storage with amortized growth.
  - sparse_builder: Triplet compaction and CSR construction.
  - general, symmetric, diagonal, reduced, vector: The assemblers.
  - config: Logging, backend (NumPy/CuPy) and growth-factor configuration.
  - errors: Exception classes.

Classes:
  SysmatAssemblerSparse, SysmatAssemblerSparseSymm, SysmatAssemblerSparseDiag,
  SysmatAssemblerSparseHRZLumpingSymm, SysmatAssemblerReduced, SysvecAssembler
"""

from .config import (
    config,
    configure,
    use,
    is_gpu,
    backend_name,
    xp,
    to_cpu,
    growth_factor,
    set_growth_factor,
    set_log_level,
)

from feassembly.base import SysmatAssembler
from feassembly.base import SysvecAssembler as SysvecAssemblerProtocol
from feassembly.buffer import TripletBuffer
from feassembly.diagonal import (
    SysmatAssemblerSparseDiag,
    SysmatAssemblerSparseHRZLumpingSymm,
)
from feassembly.errors import (
    AssemblyError,
    ConfigurationError,
    DimensionMismatch,
    LumpingError,
)
from feassembly.general import SysmatAssemblerSparse
from feassembly.reduced import SysmatAssemblerReduced
from feassembly.symmetric import SysmatAssemblerSparseSymm
from feassembly.vector import SysvecAssembler

__all__ = [
    # Assemblers
    "SysmatAssemblerSparse",
    "SysmatAssemblerSparseSymm",
    "SysmatAssemblerSparseDiag",
    "SysmatAssemblerSparseHRZLumpingSymm",
    "SysmatAssemblerReduced",
    "SysvecAssembler",
    # Protocols and storage
    "SysmatAssembler",
    "SysvecAssemblerProtocol",
    "TripletBuffer",
    # Errors
    "AssemblyError",
    "ConfigurationError",
    "DimensionMismatch",
    "LumpingError",
    # Configuration and backend
    "config",
    "configure",
    "use",
    "is_gpu",
    "backend_name",
    "xp",
    "to_cpu",
    "growth_factor",
    "set_growth_factor",
    "set_log_level",
]
