"""Exceptions raised by the feassembly assemblers.

Contributions whose DOF numbers are non-positive or out of range are not
errors: they are dropped silently, which is how constrained DOFs are kept out
of the global system.
"""


class AssemblyError(Exception):
    """Base class of all assembly failures."""


class ConfigurationError(AssemblyError, RuntimeError):
    """Raised when an assembler is used before its storage has been sized."""


class DimensionMismatch(AssemblyError, ValueError):
    """Raised when a local contribution does not agree with its DOF arrays."""


class LumpingError(AssemblyError, ArithmeticError):
    """Raised when HRZ lumping meets an element whose diagonal sums to zero."""
