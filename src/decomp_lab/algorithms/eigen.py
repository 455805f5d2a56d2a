"""Eigen-decomposition of symmetric/Hermitian matrices.

The pipeline is: tridiagonal reduction (dense or band, picked from the input
type), a solver strategy on the real tridiagonal problem, then the
back-transform of eigenvectors through the reduction's ``Q``.

Convergence is reported through status flags rather than exceptions:

- good(): every eigenvalue (and vector, if requested) computed accurately
- inaccurate(): everything computed but with reduced accuracy
- fail(): some eigenpairs missing

Example:
    >>> result = eigen_decompose(np.array([[2.0, 1.0], [1.0, 2.0]]))
    >>> result.eigenvalues
    array([1., 3.])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import numpy as np

from decomp_lab.algorithms.tridiagonal import TridiagonalDecomposition, reduce_to_tridiagonal
from decomp_lab.errors import ConvergenceError, EigenIndexError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from decomp_lab.algorithms.eigensolvers import EigenSolverStrategy
    from decomp_lab.data.packed import PackedMatrix

_logger = logging.getLogger(__name__)


def _frozen(a: NDArray[Any]) -> NDArray[Any]:
    a = np.array(a, copy=True)
    a.flags.writeable = False
    return a


@dataclass(frozen=True, slots=True)
class EigenDecomposition:
    """Eigenvalues and eigenvectors of an n x n symmetric/Hermitian matrix."""

    n: int
    """Dimension of the decomposed matrix."""

    eigenvalues: NDArray[np.floating]
    """Ascending eigenvalues in the norm type (length <= n)."""

    eigenvectors: NDArray[Any] = field(repr=False)
    """n x k matrix whose columns match ``eigenvalues`` (k == 0 if not requested)."""

    computed_all: bool = True
    """All requested eigenpairs were computed."""

    accurate: bool = True
    """The computed pairs carry full accuracy."""

    def __post_init__(self) -> None:
        vectors = np.asarray(self.eigenvectors)
        if vectors.size == 0:
            vectors = np.zeros((self.n, 0), dtype=vectors.dtype)
        object.__setattr__(self, "eigenvalues", _frozen(self.eigenvalues))
        object.__setattr__(self, "eigenvectors", _frozen(vectors))

    @classmethod
    def empty(cls, n: int = 0, dtype: Any = np.float64) -> EigenDecomposition:
        """Result with no eigenpairs (the state before any computation)."""
        return cls(
            n=n,
            eigenvalues=np.zeros(0, dtype=dtype),
            eigenvectors=np.zeros((n, 0), dtype=dtype),
            computed_all=n == 0,
        )

    @property
    def rows(self) -> int:
        return self.n

    @property
    def cols(self) -> int:
        return self.n

    @property
    def num_eigenvalues(self) -> int:
        return int(self.eigenvalues.shape[0])

    @property
    def num_eigenvectors(self) -> int:
        return int(self.eigenvectors.shape[1])

    def eigenvalue(self, i: int) -> float:
        """The i-th smallest computed eigenvalue.

        Raises:
            EigenIndexError: If ``i`` is outside ``[0, num_eigenvalues)``.
        """
        if not 0 <= i < self.num_eigenvalues:
            raise EigenIndexError(i, self.num_eigenvalues)
        return self.eigenvalues[i]

    def eigenvector(self, i: int) -> NDArray[Any]:
        """Eigenvector paired with ``eigenvalue(i)``.

        Raises:
            EigenIndexError: If ``i`` is outside ``[0, num_eigenvectors)``.
        """
        if not 0 <= i < self.num_eigenvectors:
            raise EigenIndexError(i, self.num_eigenvectors)
        return self.eigenvectors[:, i]

    def good(self) -> bool:
        return self.computed_all and self.accurate

    def inaccurate(self) -> bool:
        return self.computed_all and not self.accurate

    def fail(self) -> bool:
        return not self.computed_all

    def raise_for_status(self) -> EigenDecomposition:
        """Raise ConvergenceError if some eigenpairs are missing.

        Returns ``self`` so calls can be chained.
        """
        if self.fail():
            msg = (
                f"Eigen-decomposition incomplete: {self.num_eigenvalues} of "
                f"{self.n} eigenvalues computed"
            )
            raise ConvergenceError(msg)
        return self

    @classmethod
    def from_tridiagonal_result(
        cls,
        result: EigenDecomposition,
        reduction: TridiagonalDecomposition,
    ) -> EigenDecomposition:
        """Lift a result of the tridiagonal problem to the original matrix.

        Eigenvectors (if present) are back-transformed with
        ``reduction.transform``; values and status flags carry over.
        """
        if result.num_eigenvectors == 0:
            vectors = np.zeros((result.n, 0), dtype=reduction.traits.dtype)
        else:
            vectors = reduction.transform(result.eigenvectors)
        return replace(result, eigenvectors=vectors)

    @classmethod
    def from_matrix(
        cls,
        a: PackedMatrix | ArrayLike,
        compute_vectors: bool = True,
        *,
        strategy: EigenSolverStrategy | None = None,
        half_bandwidth: int | None = None,
    ) -> EigenDecomposition:
        """Decompose a symmetric/Hermitian matrix.

        Args:
            a: Packed symmetric/Hermitian/band matrix or a square ndarray
                (only its upper triangle is referenced).
            compute_vectors: Whether eigenvectors are wanted.
            strategy: Solver for the tridiagonal problem; defaults to
                ``FullQRStrategy(compute_vectors)``.
            half_bandwidth: Treat an ndarray input as a band matrix.

        Returns:
            EigenDecomposition; check ``good()``/``fail()`` for status.
        """
        from decomp_lab.algorithms.eigensolvers import FullQRStrategy

        if strategy is None:
            strategy = FullQRStrategy(compute_vectors=compute_vectors)
        keep = compute_vectors and strategy.compute_eigenvectors
        reduction = reduce_to_tridiagonal(a, keep, half_bandwidth=half_bandwidth)
        result = strategy.decompose(reduction)
        if not keep and result.num_eigenvectors:
            result = replace(result, eigenvectors=np.zeros((result.n, 0)))
        decomposition = cls.from_tridiagonal_result(result, reduction)
        _logger.debug(
            "eigen-decomposition: n=%d computed=%d good=%s",
            decomposition.n,
            decomposition.num_eigenvalues,
            decomposition.good(),
        )
        return decomposition


def eigen_decompose(
    a: PackedMatrix | ArrayLike,
    compute_vectors: bool = True,
    *,
    strategy: EigenSolverStrategy | None = None,
    half_bandwidth: int | None = None,
) -> EigenDecomposition:
    """Functional form of ``EigenDecomposition.from_matrix``."""
    return EigenDecomposition.from_matrix(
        a, compute_vectors, strategy=strategy, half_bandwidth=half_bandwidth
    )


__all__ = [
    "EigenDecomposition",
    "eigen_decompose",
]
