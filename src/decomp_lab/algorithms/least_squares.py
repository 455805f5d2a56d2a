"""Linear least-squares solvers.

Three interchangeable solvers for ``min ||A x - b||_2`` sharing the
``solve`` / ``residual`` / ``residual_norm`` triad:

- CholeskyLeastSquares: normal equations ``A^H A x = A^H b``; fastest,
  squares the condition number, requires full column rank
- QRLeastSquares: pivoted QR plus a complete orthogonal decomposition;
  rank revealing, minimum-norm solution
- SVDLeastSquares: singular value decomposition; most robust

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), §5.3-5.5
- Lawson & Hanson: "Solving Least Squares Problems" (1974)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import scipy.linalg

from decomp_lab.algorithms.qr import QRDecomposition
from decomp_lab.data.fields import FieldTraits, ScalarField, field_of, get_traits
from decomp_lab.errors import DimensionMismatchError, SolveError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

_logger = logging.getLogger(__name__)


class LeastSquaresKind(Enum):
    """Available least-squares solvers."""

    CHOLESKY = "cholesky"
    QR = "qr"
    SVD = "svd"


class LeastSquaresSolver(ABC):
    """Abstract base class for least-squares solvers.

    Subclasses implement ``_factor``, ``solve`` and ``rank``; the residual
    helpers are shared.
    """

    kind: ClassVar[LeastSquaresKind]

    def __init__(self, a: ArrayLike) -> None:
        self.factor(a)

    def factor(self, a: ArrayLike) -> None:
        """Factor ``a`` (copied), replacing any previous state."""
        a = np.asarray(a)
        if a.ndim != 2:
            msg = f"Expected a matrix, got shape {a.shape}"
            raise ValueError(msg)
        self._traits: FieldTraits = get_traits(field_of(a))
        self._a: NDArray[Any] = np.array(a, dtype=self._traits.dtype)
        self._factor()

    @abstractmethod
    def _factor(self) -> None:
        """Decompose ``self._a``."""

    @abstractmethod
    def solve(self, b: ArrayLike) -> NDArray[Any]:
        """Least-squares solution ``x`` of ``A x = b``.

        Raises:
            DimensionMismatchError: If ``b`` does not have ``rows`` entries.
        """

    @property
    @abstractmethod
    def rank(self) -> int:
        """Numerical rank used by the solver."""

    @property
    def rows(self) -> int:
        return int(self._a.shape[0])

    @property
    def cols(self) -> int:
        return int(self._a.shape[1])

    @property
    def field(self) -> ScalarField:
        return self._traits.field

    def residual(self, b: ArrayLike) -> NDArray[Any]:
        """``b - A @ solve(b)``."""
        b = self._rhs(b)
        return b - self._a @ self.solve(b)

    def residual_norm(self, b: ArrayLike) -> float:
        """2-norm of ``residual(b)``."""
        return float(np.linalg.norm(self.residual(b)))

    def _rhs(self, b: ArrayLike) -> NDArray[Any]:
        b = np.asarray(b)
        if b.ndim not in (1, 2) or b.shape[0] != self.rows:
            raise DimensionMismatchError("right-hand side rows", self.rows, b.shape[0] if b.ndim else 0)
        return b.astype(np.result_type(b.dtype, self._traits.dtype))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rows={self.rows}, cols={self.cols}, rank={self.rank})"


class CholeskyLeastSquares(LeastSquaresSolver):
    """Normal-equations solver.

    Factorization failure (``A^H A`` not positive definite) is recorded
    rather than raised; ``solve`` then raises SolveError.
    """

    kind = LeastSquaresKind.CHOLESKY

    def _factor(self) -> None:
        gram = self._traits.adjoint(self._a) @ self._a
        if self._traits.is_complex:
            np.fill_diagonal(gram, gram.diagonal().real)
        try:
            self._cholesky: tuple[NDArray[Any], bool] | None = scipy.linalg.cho_factor(
                gram, lower=False
            )
        except np.linalg.LinAlgError as exc:
            _logger.warning("Cholesky factorization of A^H A failed: %s", exc)
            self._cholesky = None

    def good(self) -> bool:
        return self._cholesky is not None

    def fail(self) -> bool:
        return self._cholesky is None

    @property
    def rank(self) -> int:
        return self.cols if self.good() else 0

    def solve(self, b: ArrayLike) -> NDArray[Any]:
        b = self._rhs(b)
        if self._cholesky is None:
            msg = "Cannot solve: Cholesky factorization of A^H A failed"
            raise SolveError(msg)
        return scipy.linalg.cho_solve(self._cholesky, self._traits.adjoint(self._a) @ b)


class QRLeastSquares(LeastSquaresSolver):
    """Complete orthogonal decomposition solver.

    Args:
        a: m x n coefficient matrix.
        tolerance: Trailing diagonal entries of R with magnitude below this
            (and exact zeros) are treated as zero when determining the rank.
    """

    kind = LeastSquaresKind.QR

    def __init__(self, a: ArrayLike, tolerance: float = 0.0) -> None:
        self.tolerance = tolerance
        super().__init__(a)

    def _factor(self) -> None:
        self._qr = QRDecomposition(self._a, pivoting=True)
        magnitudes = np.abs(self._qr.r_diagonal())
        rank = magnitudes.shape[0]
        while rank > 0 and (magnitudes[rank - 1] < self.tolerance or magnitudes[rank - 1] == 0):
            rank -= 1
        self._rank = rank

        # R[:rank, :] = L Z^H with L lower triangular, Z orthonormal columns
        if rank:
            rz = QRDecomposition(self._traits.adjoint(self._qr.r()[:rank, :]))
            self._z = rz.q()
            self._l = self._traits.adjoint(rz.r())
        else:
            self._z = np.zeros((self.cols, 0), dtype=self._traits.dtype)
            self._l = np.zeros((0, 0), dtype=self._traits.dtype)
        _logger.debug("QR least squares: %dx%d rank=%d", self.rows, self.cols, rank)

    @property
    def rank(self) -> int:
        return self._rank

    @property
    def decomposition(self) -> QRDecomposition:
        return self._qr

    def solve(self, b: ArrayLike) -> NDArray[Any]:
        b = self._rhs(b)
        c = self._qr.qtx(b)[: self._rank]
        y = scipy.linalg.solve_triangular(self._l, c, lower=True) if self._rank else c
        return self._qr.px(self._z @ y)

    def residual_norm(self, b: ArrayLike) -> float:
        """Norm of the trailing ``m - rank`` components of ``Q^H b``."""
        b = self._rhs(b)
        return float(np.linalg.norm(self._qr.qtx(b)[self._rank :]))


class SVDLeastSquares(LeastSquaresSolver):
    """Singular value decomposition solver.

    Args:
        a: m x n coefficient matrix.
        tolerance: Singular values at or below this are treated as zero.
    """

    kind = LeastSquaresKind.SVD

    def __init__(self, a: ArrayLike, tolerance: float = 0.0) -> None:
        self.tolerance = tolerance
        super().__init__(a)

    def _factor(self) -> None:
        self._u, self._s, self._vh = scipy.linalg.svd(self._a, full_matrices=False)
        self._rank = int(np.count_nonzero(self._s > self.tolerance))
        _logger.debug("SVD least squares: %dx%d rank=%d", self.rows, self.cols, self._rank)

    @property
    def rank(self) -> int:
        return self._rank

    @property
    def singular_values(self) -> NDArray[np.floating]:
        """Singular values in descending order (norm type)."""
        return self._s.copy()

    def solve(self, b: ArrayLike) -> NDArray[Any]:
        b = self._rhs(b)
        r = self._rank
        c = self._traits.adjoint(self._u[:, :r]) @ b
        scale = self._s[:r] if c.ndim == 1 else self._s[:r, np.newaxis]
        return self._traits.adjoint(self._vh[:r, :]) @ (c / scale)


def create_solver(
    kind: LeastSquaresKind | str, a: ArrayLike, **kwargs: Any
) -> LeastSquaresSolver:
    """Factory function to create least-squares solvers.

    Args:
        kind: Solver kind ('cholesky', 'qr', 'svd').
        a: Coefficient matrix.
        **kwargs: Solver-specific parameters (``tolerance`` for qr/svd).

    Example:
        >>> solver = create_solver("svd", np.eye(3), tolerance=1e-12)
    """
    solvers: dict[LeastSquaresKind, type[LeastSquaresSolver]] = {
        LeastSquaresKind.CHOLESKY: CholeskyLeastSquares,
        LeastSquaresKind.QR: QRLeastSquares,
        LeastSquaresKind.SVD: SVDLeastSquares,
    }

    if isinstance(kind, str):
        try:
            kind = LeastSquaresKind(kind.lower())
        except ValueError:
            msg = f"Unknown solver: {kind}. Available: {[k.value for k in solvers]}"
            raise ValueError(msg) from None

    return solvers[kind](a, **kwargs)


__all__ = [
    "CholeskyLeastSquares",
    "LeastSquaresKind",
    "LeastSquaresSolver",
    "QRLeastSquares",
    "SVDLeastSquares",
    "create_solver",
]
