"""Error taxonomy for decompositions and packed storage.

Precondition violations and guarded-storage violations are raised
immediately. Numerical non-convergence is never raised automatically; it is
reported through result flags (see ``EigenDecomposition.good``) and only
becomes a ``ConvergenceError`` when a caller asks for it.
"""

from __future__ import annotations

from typing import Any


class DecompositionError(Exception):
    """Base class for all errors raised by decomp_lab."""


class DimensionMismatchError(DecompositionError, ValueError):
    """Operand size does not match the size a decomposition expects."""

    def __init__(self, what: str, expected: Any, actual: Any) -> None:
        self.what = what
        self.expected = expected
        self.actual = actual
        super().__init__(f"{what}: expected {expected}, got {actual}")


class EigenIndexError(DecompositionError, IndexError):
    """Index into eigenvalues/eigenvectors outside ``[0, bound)``."""

    def __init__(self, index: int, bound: int) -> None:
        self.index = index
        self.bound = bound
        super().__init__(f"Eigen index {index} out of range [0, {bound})")


class IndexOutOfRangeError(DecompositionError, IndexError):
    """Matrix cell index outside the matrix shape."""

    def __init__(self, i: int, j: int, rows: int, cols: int) -> None:
        self.i = i
        self.j = j
        self.shape = (rows, cols)
        super().__init__(f"Index ({i}, {j}) out of range for {rows}x{cols} matrix")


class FixedConstantError(DecompositionError):
    """Attempted change of a structurally fixed cell."""

    def __init__(self, attempted: Any, existing: Any) -> None:
        self.attempted = attempted
        self.existing = existing
        super().__init__(
            f"Attempted change of a fixed constant: tried to set {attempted!r}, "
            f"value is fixed at {existing!r}"
        )


class TransformUnavailableError(DecompositionError):
    """The orthogonal/unitary factor Q was not retained."""


class SolveError(DecompositionError):
    """Cannot solve because the underlying factorization failed."""


class ConvergenceError(DecompositionError):
    """Iterative solver did not compute every requested eigenpair."""


class KernelError(DecompositionError):
    """A numerical kernel was invoked with invalid arguments."""

    def __init__(self, routine: str, info: int, detail: str = "") -> None:
        self.routine = routine
        self.info = info
        msg = f"{routine} reported invalid argument {-info}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


__all__ = [
    "ConvergenceError",
    "DecompositionError",
    "DimensionMismatchError",
    "EigenIndexError",
    "FixedConstantError",
    "IndexOutOfRangeError",
    "KernelError",
    "SolveError",
    "TransformUnavailableError",
]
