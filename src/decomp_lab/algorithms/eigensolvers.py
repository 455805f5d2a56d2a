"""Eigen-solver strategies for the real symmetric tridiagonal problem.

This module provides pluggable solvers that turn a TridiagonalDecomposition
into an EigenDecomposition of T (eigenvectors still in the tridiagonal
basis). Strategies are swapped via dependency injection into
``EigenDecomposition.from_matrix``.

Key Strategies:
- FullQRStrategy: implicit QL with Wilkinson shifts, optional vectors
- RootFreeStrategy: square-root free rational QL, eigenvalues only
- PositiveDefiniteStrategy: high relative accuracy for positive definite T
- IndexRangeStrategy: bisection + inverse iteration for a slice of indices
- ValueRangeStrategy: bisection + inverse iteration for an interval

Partial convergence differs by strategy: the QL variants keep the converged
prefix, the positive definite solver keeps nothing, and the bisection
variants keep values and vectors and mark them inaccurate.

References:
- Parlett, B.N.: "The Symmetric Eigenvalue Problem" (1998), Ch. 8
- Demmel & Kahan: "Accurate singular values of bidiagonal matrices" (1990)
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import scipy.linalg

from decomp_lab.algorithms.eigen import EigenDecomposition
from decomp_lab.algorithms.kernels import pteqr, tql2, tqlrat
from decomp_lab.data.fields import get_tolerance
from decomp_lab.errors import EigenIndexError, KernelError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from decomp_lab.algorithms.tridiagonal import TridiagonalDecomposition
    from decomp_lab.data.packed import PackedMatrix

_logger = logging.getLogger(__name__)


class EigenSolverKind(Enum):
    """Available tridiagonal eigen-solvers."""

    FULL_QR = "full_qr"
    ROOT_FREE = "root_free"
    POSITIVE_DEFINITE = "positive_definite"
    INDEX_RANGE = "index_range"
    VALUE_RANGE = "value_range"


class EigenSolverStrategy(ABC):
    """Abstract base class for tridiagonal eigen-solvers.

    All strategy implementations must:
    1. Implement decompose()
    2. Return eigenvalues ascending in the norm type, with orthonormal
       eigenvector columns when vectors are computed
    """

    kind: ClassVar[EigenSolverKind]

    def __init__(self, compute_vectors: bool = True) -> None:
        self._compute_vectors = compute_vectors

    @property
    def compute_eigenvectors(self) -> bool:
        """Whether this strategy produces eigenvectors."""
        return self._compute_vectors

    @abstractmethod
    def decompose(self, tridiagonal: TridiagonalDecomposition) -> EigenDecomposition:
        """Solve the eigenproblem of the tridiagonal matrix T.

        Args:
            tridiagonal: Reduction whose ``diagonal``/``off_diagonal`` define T.

        Returns:
            EigenDecomposition of T; vectors are not back-transformed.
        """

    def __call__(
        self,
        a: PackedMatrix | ArrayLike,
        *,
        half_bandwidth: int | None = None,
    ) -> EigenDecomposition:
        """Run reduction, this solver and the back-transform on ``a``."""
        return EigenDecomposition.from_matrix(
            a,
            self.compute_eigenvectors,
            strategy=self,
            half_bandwidth=half_bandwidth,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(compute_vectors={self.compute_eigenvectors})"


def _working_copies(
    tridiagonal: TridiagonalDecomposition,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    d = np.array(tridiagonal.diagonal, dtype=np.float64)
    e = np.array(tridiagonal.off_diagonal, dtype=np.float64)
    return d, e


def _result(
    tridiagonal: TridiagonalDecomposition,
    values: NDArray[Any],
    vectors: NDArray[Any] | None,
    *,
    computed_all: bool = True,
    accurate: bool = True,
) -> EigenDecomposition:
    n = tridiagonal.rows
    norm_dtype = tridiagonal.traits.norm_dtype
    if vectors is None:
        vectors = np.zeros((n, 0), dtype=norm_dtype)
    return EigenDecomposition(
        n=n,
        eigenvalues=np.asarray(values, dtype=norm_dtype),
        eigenvectors=np.asarray(vectors, dtype=norm_dtype),
        computed_all=computed_all,
        accurate=accurate,
    )


# =============================================================================
# QL ITERATION
# =============================================================================


class FullQRStrategy(EigenSolverStrategy):
    """Implicit QL iteration with Wilkinson shifts.

    On a stall the converged prefix (sorted) is returned and the result
    reports ``fail()``.

    Args:
        compute_vectors: Accumulate eigenvectors.
        max_iterations: QL sweeps per eigenvalue; defaults to the field's
            ``max_ql_iterations`` tolerance.
    """

    kind = EigenSolverKind.FULL_QR

    def __init__(self, compute_vectors: bool = True, max_iterations: int | None = None) -> None:
        super().__init__(compute_vectors)
        self.max_iterations = max_iterations

    def decompose(self, tridiagonal: TridiagonalDecomposition) -> EigenDecomposition:
        n = tridiagonal.rows
        d, e = _working_copies(tridiagonal)
        z = np.eye(n) if self._compute_vectors else None
        max_iterations = self.max_iterations
        if max_iterations is None:
            max_iterations = int(get_tolerance(tridiagonal.field, "max_ql_iterations"))

        info = tql2(d, e, z, max_iterations=max_iterations, eps=tridiagonal.traits.eps)
        if info < n:
            _logger.warning("QL iteration stalled: %d of %d eigenvalues converged", info, n)
        return _result(
            tridiagonal,
            d[:info],
            z[:, :info] if z is not None else None,
            computed_all=info == n,
        )


class RootFreeStrategy(EigenSolverStrategy):
    """Square-root free rational QL iteration.

    Eigenvalues only; ``compute_eigenvectors`` is always False. On a stall
    the eigenvalues are truncated to the converged prefix.
    """

    kind = EigenSolverKind.ROOT_FREE

    def __init__(self, max_iterations: int | None = None) -> None:
        super().__init__(compute_vectors=False)
        self.max_iterations = max_iterations

    def decompose(self, tridiagonal: TridiagonalDecomposition) -> EigenDecomposition:
        n = tridiagonal.rows
        d, e = _working_copies(tridiagonal)
        max_iterations = self.max_iterations
        if max_iterations is None:
            max_iterations = int(get_tolerance(tridiagonal.field, "max_ql_iterations"))

        info = tqlrat(d, e, max_iterations=max_iterations, eps=tridiagonal.traits.eps)
        if info < n:
            _logger.warning("rational QL stalled: %d of %d eigenvalues converged", info, n)
        return _result(tridiagonal, d[:info], None, computed_all=info == n)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class PositiveDefiniteStrategy(EigenSolverStrategy):
    """Eigenpairs of a positive definite T via its bidiagonal factor.

    Any failure (T not positive definite, SVD non-convergence) yields a
    result with zero eigenpairs.
    """

    kind = EigenSolverKind.POSITIVE_DEFINITE

    def decompose(self, tridiagonal: TridiagonalDecomposition) -> EigenDecomposition:
        n = tridiagonal.rows
        d, e = _working_copies(tridiagonal)
        w, z, info = pteqr(d, e, compute_vectors=self._compute_vectors)
        if info != n:
            _logger.warning(
                "positive definite tridiagonal solver failed at position %d of %d", info, n
            )
            return _result(tridiagonal, np.zeros(0), None, computed_all=False)
        return _result(tridiagonal, w, z)


# =============================================================================
# BISECTION AND INVERSE ITERATION
# =============================================================================


class _BisectionStrategy(EigenSolverStrategy):
    """Values by bisection (``?stebz``), then vectors by inverse iteration (``?stein``).

    Both LAPACK routines are called directly so that their ``info`` codes
    become result flags. Bisection failure to converge (info 1 or 3) and
    inverse iteration failure keep what was computed and clear
    ``accurate``; missing eigenvalues (info 2, 3 or 4) clear ``computed_all``.
    """

    def __init__(self, compute_vectors: bool = True, tolerance: float = 0.0) -> None:
        super().__init__(compute_vectors)
        self.tolerance = tolerance

    def _solve(
        self,
        tridiagonal: TridiagonalDecomposition,
        select: int,
        bounds: tuple[float, float] = (0.0, 1.0),
        indices: tuple[int, int] = (0, 0),
    ) -> tuple[NDArray[np.float64], NDArray[np.float64] | None, bool, bool]:
        """Run bisection (and inverse iteration); returns (w, z, computed_all, accurate).

        ``select`` is 1 for a value interval ``bounds`` and 2 for the
        0-based inclusive ``indices``.
        """
        d, e = _working_copies(tridiagonal)
        if d.shape[0] == 1:
            keep = select == 2 or bounds[0] < d[0] <= bounds[1]
            w = d if keep else np.zeros(0)
            z = np.ones((1, w.shape[0])) if self._compute_vectors else None
            return w, z, True, True

        stebz, stein = scipy.linalg.get_lapack_funcs(("stebz", "stein"), (d, e))
        m, w, iblock, isplit, info = stebz(
            d, e, select, bounds[0], bounds[1], indices[0] + 1, indices[1] + 1,
            float(self.tolerance), "B",
        )
        if info < 0:
            raise KernelError("stebz", info)
        accurate = info not in (1, 3)
        computed_all = info in (0, 1)
        if info:
            _logger.warning("bisection returned info=%d with %d eigenvalues", info, m)
        w = w[:m]
        if not self._compute_vectors or m == 0:
            return np.sort(w), None, computed_all, accurate

        z, info = stein(d, e, w, iblock, isplit)
        if info < 0:
            raise KernelError("stein", info)
        if info > 0:
            _logger.warning("inverse iteration failed for %d eigenvectors", info)
            accurate = False
        order = np.argsort(w)
        return w[order], z[:, order], computed_all, accurate


class IndexRangeStrategy(_BisectionStrategy):
    """Eigenpairs for a slice of eigenvalue indices (0 = smallest).

    A negative step returns the selection in descending order and a step
    greater than one thins it. Indices must lie in ``[0, n)``.

    Args:
        compute_vectors: Compute eigenvectors by inverse iteration.
        indices: Slice of indices into the ascending spectrum.
        tolerance: Absolute bisection tolerance (0 selects a default).

    Example:
        >>> strategy = IndexRangeStrategy(indices=slice(0, 2))
        >>> strategy(np.diag([3.0, 1.0, 2.0])).eigenvalues
        array([1., 2.])
    """

    kind = EigenSolverKind.INDEX_RANGE

    def __init__(
        self,
        compute_vectors: bool = True,
        indices: slice = slice(None),
        tolerance: float = 0.0,
    ) -> None:
        super().__init__(compute_vectors, tolerance)
        self.indices = indices

    def _resolve(self, n: int) -> list[int]:
        step = self.indices.step or 1
        if step > 0:
            start = 0 if self.indices.start is None else self.indices.start
            stop = n if self.indices.stop is None else self.indices.stop
        else:
            start = n - 1 if self.indices.start is None else self.indices.start
            stop = -1 if self.indices.stop is None else self.indices.stop
        selected = list(range(start, stop, step))
        for index in selected:
            if not 0 <= index < n:
                raise EigenIndexError(index, n)
        return selected

    def decompose(self, tridiagonal: TridiagonalDecomposition) -> EigenDecomposition:
        selected = self._resolve(tridiagonal.rows)
        if not selected:
            return _result(tridiagonal, np.zeros(0), None)

        low, high = min(selected), max(selected)
        w, z, solved_all, accurate = self._solve(tridiagonal, 2, indices=(low, high))
        available = [i for i in selected if i - low < w.shape[0]]
        computed_all = solved_all and len(available) == len(selected)
        if len(available) < len(selected):
            _logger.warning(
                "bisection found %d of %d requested eigenvalues", len(available), len(selected)
            )

        positions = [i - low for i in available]
        return _result(
            tridiagonal,
            w[positions],
            z[:, positions] if z is not None else None,
            computed_all=computed_all,
            accurate=accurate,
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(compute_vectors={self.compute_eigenvectors}, "
            f"indices={self.indices!r})"
        )


class ValueRangeStrategy(_BisectionStrategy):
    """Eigenpairs whose eigenvalues lie in the half-open interval ``(low, high]``.

    Infinite bounds are clamped to the Gershgorin interval of T. An empty
    interval (``low >= high``) gives an empty, successful result.
    """

    kind = EigenSolverKind.VALUE_RANGE

    def __init__(
        self,
        compute_vectors: bool = True,
        low: float = -math.inf,
        high: float = math.inf,
        tolerance: float = 0.0,
    ) -> None:
        super().__init__(compute_vectors, tolerance)
        self.low = low
        self.high = high

    def decompose(self, tridiagonal: TridiagonalDecomposition) -> EigenDecomposition:
        n = tridiagonal.rows
        if n == 0 or self.low >= self.high:
            return _result(tridiagonal, np.zeros(0), None)

        d = np.asarray(tridiagonal.diagonal, dtype=np.float64)
        radius = np.zeros(n)
        if n > 1:
            off = np.abs(np.asarray(tridiagonal.off_diagonal, dtype=np.float64))
            radius[:-1] += off
            radius[1:] += off
        lower = float(np.min(d - radius))
        upper = float(np.max(d + radius))
        margin = max(upper - lower, 1.0)
        low = max(self.low, lower - margin)
        high = min(self.high, upper + margin)
        if low >= high:
            return _result(tridiagonal, np.zeros(0), None)

        w, z, computed_all, accurate = self._solve(tridiagonal, 1, bounds=(low, high))
        return _result(tridiagonal, w, z, computed_all=computed_all, accurate=accurate)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(compute_vectors={self.compute_eigenvectors}, "
            f"low={self.low}, high={self.high})"
        )


def create_strategy(
    kind: EigenSolverKind | str = EigenSolverKind.FULL_QR, **kwargs: Any
) -> EigenSolverStrategy:
    """Factory function to create eigen-solver strategies.

    Args:
        kind: Strategy kind ('full_qr', 'root_free', 'positive_definite',
            'index_range', 'value_range').
        **kwargs: Strategy-specific parameters.

    Returns:
        EigenSolverStrategy instance.

    Example:
        >>> strategy = create_strategy("value_range", low=0.0, high=10.0)
        >>> strategy = create_strategy(EigenSolverKind.FULL_QR, compute_vectors=False)
    """
    strategies: dict[EigenSolverKind, type[EigenSolverStrategy]] = {
        EigenSolverKind.FULL_QR: FullQRStrategy,
        EigenSolverKind.ROOT_FREE: RootFreeStrategy,
        EigenSolverKind.POSITIVE_DEFINITE: PositiveDefiniteStrategy,
        EigenSolverKind.INDEX_RANGE: IndexRangeStrategy,
        EigenSolverKind.VALUE_RANGE: ValueRangeStrategy,
    }

    if isinstance(kind, str):
        try:
            kind = EigenSolverKind(kind.lower().replace("-", "_"))
        except ValueError:
            msg = f"Unknown strategy: {kind}. Available: {[k.value for k in strategies]}"
            raise ValueError(msg) from None

    return strategies[kind](**kwargs)


__all__ = [
    "EigenSolverKind",
    "EigenSolverStrategy",
    "FullQRStrategy",
    "IndexRangeStrategy",
    "PositiveDefiniteStrategy",
    "RootFreeStrategy",
    "ValueRangeStrategy",
    "create_strategy",
]
