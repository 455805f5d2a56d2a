"""QR decomposition with optional column pivoting.

Factors ``A P = Q R`` where ``Q`` is a product of Householder reflectors
``H_0 ... H_{k-1}`` (``k = min(m, n)``), ``R`` is upper trapezoidal and
``P`` is a column permutation (identity without pivoting).

The factored matrix uses the LAPACK xGEQRF/xGEQP3 layout: R on and above
the diagonal, the reflector vectors (implicit unit leading entry) below it,
and the scalar factors in ``tau``.

Pivoting follows Businger & Golub: at each step the free column with the
largest remaining norm is moved forward. Columns marked as initial are
frozen at the front in their original order.

References:
- Businger & Golub: "Linear least squares solutions by Householder
  transformations", Numer. Math. 7 (1965)
- Golub & Van Loan: "Matrix Computations" (4th ed.), §5.2, §5.4.1
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np
import scipy.linalg

from decomp_lab.algorithms.kernels import apply_householder_left, householder
from decomp_lab.data.fields import FieldTraits, field_of, get_dtype, get_traits
from decomp_lab.errors import DimensionMismatchError, KernelError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from numpy.typing import ArrayLike, NDArray

_logger = logging.getLogger(__name__)


class QRCalculator:
    """In-place Householder QR kernel.

    Example:
        >>> a = np.asfortranarray(np.random.default_rng(0).standard_normal((5, 3)))
        >>> tau = np.zeros(3)
        >>> QRCalculator().compute_qr(a, tau)
        True
    """

    __slots__ = ()

    def compute_qr(
        self,
        a: NDArray[Any],
        tau: NDArray[Any],
        pivots: NDArray[np.integer] | None = None,
    ) -> bool:
        """Factor ``a`` in place.

        Args:
            a: m x n matrix of a supported field; overwritten with R and the
                reflectors.
            tau: Vector of length ``min(m, n)`` and the dtype of ``a``;
                overwritten with the reflector scalars.
            pivots: Optional int vector of length n. Non-zero entries mark
                columns frozen at the front; on return ``pivots[j]`` is the
                original index of column ``j`` of ``A P``.

        Returns:
            True on success; False if the kernel rejected its arguments
            (contents of ``a``/``tau``/``pivots`` are then undefined).
        """
        try:
            self._check(a, tau, pivots)
            self._factor(a, tau, pivots)
        except KernelError as exc:
            _logger.warning("QR factorization failed: %s", exc)
            return False
        return True

    @staticmethod
    def _check(a: NDArray[Any], tau: NDArray[Any], pivots: NDArray[np.integer] | None) -> None:
        if a.ndim != 2:
            raise KernelError("geqp3", -1, f"expected a matrix, got shape {a.shape}")
        if a.dtype != np.dtype(get_dtype(field_of(a))):
            raise KernelError("geqp3", -1, f"unsupported dtype {a.dtype}")
        m, n = a.shape
        if tau.shape != (min(m, n),) or tau.dtype != a.dtype:
            raise KernelError("geqp3", -2, f"tau must have shape ({min(m, n)},) and dtype {a.dtype}")
        if pivots is not None and pivots.shape != (n,):
            raise KernelError("geqp3", -3, f"pivots must have length {n}")
        if not np.all(np.isfinite(a)):
            raise KernelError("geqp3", -1, "matrix contains non-finite entries")

    @staticmethod
    def _factor(a: NDArray[Any], tau: NDArray[Any], pivots: NDArray[np.integer] | None) -> None:
        m, n = a.shape
        k = min(m, n)
        conjugate = get_traits(field_of(a)).conjugate

        order = np.arange(n)
        frozen = 0
        if pivots is not None:
            initial = np.flatnonzero(pivots != 0)
            order = np.concatenate([initial, np.flatnonzero(pivots == 0)])
            a[:, :] = a[:, order]
            frozen = initial.shape[0]

        for j in range(k):
            if pivots is not None and j >= frozen:
                norms = np.linalg.norm(a[j:, j:], axis=0)
                p = j + int(np.argmax(norms))
                if p != j:
                    a[:, [j, p]] = a[:, [p, j]]
                    order[[j, p]] = order[[p, j]]

            v, t, beta = householder(a[j:, j])
            apply_householder_left(a[j:, j + 1 :], v, conjugate(t))
            a[j, j] = beta
            a[j + 1 :, j] = v[1:]
            tau[j] = t

        if pivots is not None:
            pivots[:] = order


class QRDecomposition:
    """QR decomposition ``A P = Q R`` of an m x n matrix.

    Args:
        a: Matrix to factor (copied); None leaves an empty 0 x 0 decomposition.
        pivoting: Use column pivoting.
        initial_columns: Columns frozen at the front (implies pivoting).

    Example:
        >>> qr = QRDecomposition(np.array([[3.0, 1.0], [4.0, 2.0]]))
        >>> np.allclose(qr.q() @ qr.r(), [[3.0, 1.0], [4.0, 2.0]])
        True
    """

    __slots__ = ("_qr", "_tau", "_pivots", "_traits")

    def __init__(
        self,
        a: ArrayLike | None = None,
        pivoting: bool = False,
        *,
        initial_columns: Iterable[int] = (),
    ) -> None:
        self._traits: FieldTraits = get_traits("float64")
        self._qr: NDArray[Any] = np.zeros((0, 0))
        self._tau: NDArray[Any] = np.zeros(0)
        self._pivots: NDArray[np.intp] | None = None
        if a is not None:
            self.factor(a, pivoting, initial_columns=initial_columns)

    def factor(
        self,
        a: ArrayLike,
        pivoting: bool = False,
        *,
        initial_columns: Iterable[int] = (),
    ) -> None:
        """Factor ``a``, replacing any previous decomposition.

        Raises:
            ValueError: If ``a`` is not a finite matrix.
            IndexError: If an initial column is outside the matrix.
        """
        a = np.asarray(a)
        if a.ndim != 2:
            msg = f"Expected a matrix, got shape {a.shape}"
            raise ValueError(msg)
        traits = get_traits(field_of(a))
        work = np.array(a, dtype=traits.dtype, order="F")
        m, n = work.shape
        tau = np.zeros(min(m, n), dtype=traits.dtype)

        initial = list(initial_columns)
        pivots = None
        if pivoting or initial:
            pivots = np.zeros(n, dtype=np.intp)
            for column in initial:
                if not 0 <= column < n:
                    msg = f"Initial column {column} out of range for {n} columns"
                    raise IndexError(msg)
                pivots[column] = 1

        if not QRCalculator().compute_qr(work, tau, pivots):
            msg = "QR factorization failed: matrix must be finite"
            raise ValueError(msg)

        self._traits = traits
        self._qr = work
        self._tau = tau
        self._pivots = pivots
        _logger.debug("QR factorization: %dx%d pivoting=%s", m, n, pivots is not None)

    @property
    def rows(self) -> int:
        return int(self._qr.shape[0])

    @property
    def cols(self) -> int:
        return int(self._qr.shape[1])

    @property
    def tau(self) -> NDArray[Any]:
        view = self._tau.view()
        view.flags.writeable = False
        return view

    @property
    def pivots(self) -> NDArray[np.intp]:
        """Original index of each column of ``A P`` (identity without pivoting)."""
        if self._pivots is None:
            return np.arange(self.cols)
        return self._pivots.copy()

    @property
    def pivoted(self) -> bool:
        return self._pivots is not None

    # -------------------------------------------------------------------------
    # Explicit factors
    # -------------------------------------------------------------------------

    def p(self) -> NDArray[Any]:
        """Permutation matrix P such that ``A P = Q R``."""
        n = self.cols
        perm = np.zeros((n, n), dtype=self._traits.dtype)
        perm[self.pivots, np.arange(n)] = 1
        return perm

    def r(self) -> NDArray[Any]:
        """The min(m, n) x n upper trapezoidal factor R."""
        k = min(self.rows, self.cols)
        return np.triu(self._qr[:k, :])

    def r_diagonal(self) -> NDArray[Any]:
        return np.diagonal(self._qr).copy()

    def q(self, complete: bool = False) -> NDArray[Any]:
        """The orthogonal/unitary factor.

        Args:
            complete: Return the full m x m matrix instead of the first
                min(m, n) columns.
        """
        m = self.rows
        cols = m if complete else min(m, self.cols)
        return self._apply_q(np.eye(m, cols, dtype=self._traits.dtype), adjoint=False)

    # -------------------------------------------------------------------------
    # Products with the factors
    # -------------------------------------------------------------------------

    def px(self, x: ArrayLike) -> NDArray[Any]:
        """P @ x."""
        x = self._operand(x, self.cols, "Px operand")
        y = np.empty_like(x)
        y[self.pivots] = x
        return y

    def ptx(self, x: ArrayLike) -> NDArray[Any]:
        """P^T @ x."""
        x = self._operand(x, self.cols, "PTx operand")
        return x[self.pivots].copy()

    def rx(self, x: ArrayLike) -> NDArray[Any]:
        """R @ x."""
        x = self._operand(x, self.cols, "Rx operand")
        return self.r() @ x

    def rtx(self, x: ArrayLike) -> NDArray[Any]:
        """R^H @ x."""
        x = self._operand(x, min(self.rows, self.cols), "RTx operand")
        return self._traits.adjoint(self.r()) @ x

    def rinvx(self, x: ArrayLike) -> NDArray[Any]:
        """Solve ``R y = x`` (R must be square, i.e. rows >= cols)."""
        self._require_square_r()
        x = self._operand(x, self.cols, "Rinvx operand")
        return scipy.linalg.solve_triangular(self.r(), x, lower=False)

    def rtinvx(self, x: ArrayLike) -> NDArray[Any]:
        """Solve ``R^H y = x`` (R must be square, i.e. rows >= cols)."""
        self._require_square_r()
        x = self._operand(x, self.cols, "RTinvx operand")
        return scipy.linalg.solve_triangular(self.r(), x, trans="C", lower=False)

    def qx(self, x: ArrayLike) -> NDArray[Any]:
        """Q @ x with the complete m x m Q."""
        x = self._operand(x, self.rows, "Qx operand")
        return self._apply_q(x, adjoint=False)

    def qtx(self, x: ArrayLike) -> NDArray[Any]:
        """Q^H @ x with the complete m x m Q."""
        x = self._operand(x, self.rows, "QTx operand")
        return self._apply_q(x, adjoint=True)

    def _apply_q(self, x: NDArray[Any], *, adjoint: bool) -> NDArray[Any]:
        k = min(self.rows, self.cols)
        steps = range(k) if adjoint else range(k - 1, -1, -1)
        for j in steps:
            v = self._qr[j:, j].copy()
            v[0] = 1
            tau = self._traits.conjugate(self._tau[j]) if adjoint else self._tau[j]
            apply_householder_left(x[j:], v, tau)
        return x

    def _operand(self, x: ArrayLike, length: int, what: str) -> NDArray[Any]:
        x = np.array(x, dtype=np.result_type(np.asarray(x).dtype, self._traits.dtype))
        if x.ndim not in (1, 2) or x.shape[0] != length:
            raise DimensionMismatchError(what, length, x.shape[0] if x.ndim else 0)
        return x

    def _require_square_r(self) -> None:
        if self.rows < self.cols:
            msg = f"R is {self.rows}x{self.cols} and has no inverse"
            raise ValueError(msg)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(rows={self.rows}, cols={self.cols}, "
            f"pivoting={self.pivoted})"
        )


class QRDecompositionServer:
    """Builds QR decompositions with configurable pivoting.

    Example:
        >>> server = QRDecompositionServer()
        >>> server.set_initial_index(2)
        >>> qr = server(np.eye(3))
        >>> int(qr.pivots[0])
        2
    """

    __slots__ = ("_pivoting", "_initial")

    def __init__(self) -> None:
        self._pivoting = True
        self._initial: list[int] = []

    @property
    def pivoting(self) -> bool:
        return self._pivoting

    def set_pivoting(self, pivoting: bool) -> None:
        """Turn column pivoting on or off."""
        self._pivoting = pivoting

    def set_initial_index(self, i: int) -> None:
        """Move column ``i`` to the front of the decomposition (enables pivoting)."""
        if i < 0:
            msg = f"Column index must be non-negative, got {i}"
            raise IndexError(msg)
        if i not in self._initial:
            self._initial.append(i)
        self._pivoting = True

    def set_free_index(self, i: int) -> None:
        """Let column ``i`` be pivoted freely again."""
        if i in self._initial:
            self._initial.remove(i)

    def __call__(self, a: ArrayLike) -> QRDecomposition:
        if not self._pivoting:
            return QRDecomposition(a, pivoting=False)
        return QRDecomposition(a, pivoting=True, initial_columns=self._initial)


__all__ = [
    "QRCalculator",
    "QRDecomposition",
    "QRDecompositionServer",
]
