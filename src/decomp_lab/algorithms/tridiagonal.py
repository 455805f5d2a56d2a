"""Tridiagonal reduction of symmetric/Hermitian matrices.

Computes ``A = Q T Q^H`` where ``T`` is real symmetric tridiagonal (even for
complex Hermitian ``A``) and ``Q`` is orthogonal/unitary. The eigenvalues of
``A`` and ``T`` coincide, and eigenvectors of ``T`` map back to ``A`` through
``transform``.

Two reductions share the TridiagonalDecomposition result:

- DenseTridiagonalDecomposition: Householder reflectors (xSYTRD/xHETRD)
- BandTridiagonalDecomposition: plane rotations with bulge chasing
  (xSBTRD/xHBTRD), touching only a window around the band

``Q`` is only kept when ``keep_transform`` is true; it is stored explicitly.

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), §8.3.1
- Schwarz, H.R.: "Tridiagonalization of a symmetric band matrix",
  Numer. Math. 12 (1968)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np

from decomp_lab.algorithms.kernels import (
    apply_householder_left,
    apply_householder_right,
    givens,
    householder,
    rotate_cols,
    rotate_rows,
)
from decomp_lab.data.fields import FieldTraits, ScalarField, field_of, get_traits
from decomp_lab.data.packed import (
    HermitianBandMatrix,
    HermitianMatrix,
    PackedMatrix,
    SymmetricBandMatrix,
    SymmetricMatrix,
)
from decomp_lab.errors import DimensionMismatchError, TransformUnavailableError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

_logger = logging.getLogger(__name__)


class TridiagonalDecomposition:
    """Real symmetric tridiagonal matrix plus optional back-transform.

    Can be built directly from a diagonal and off-diagonal, which is useful
    for solving a tridiagonal eigenproblem without a parent matrix; such a
    decomposition has no ``Q`` and cannot transform vectors.

    Args:
        diagonal: Diagonal of T (length n).
        off_diagonal: Sub/super-diagonal of T (length n-1).
        q: Optional n x n orthogonal/unitary factor.
        field: Field of the original matrix (defaults to the field of ``q``,
            else the real field of ``diagonal``).
    """

    __slots__ = ("_diagonal", "_off_diagonal", "_q", "_traits")

    def __init__(
        self,
        diagonal: ArrayLike,
        off_diagonal: ArrayLike,
        q: NDArray[Any] | None = None,
        *,
        field: ScalarField | str | None = None,
    ) -> None:
        if field is None:
            field = field_of(q) if q is not None else field_of(np.asarray(diagonal))
        self._traits: FieldTraits = get_traits(field)
        self._q = None
        self.set(diagonal, off_diagonal)
        if q is not None:
            n = self.rows
            if q.shape != (n, n):
                raise DimensionMismatchError("Q shape", (n, n), q.shape)
            self._q = q

    def set(self, diagonal: ArrayLike, off_diagonal: ArrayLike) -> None:
        """Set the tridiagonal matrix directly."""
        d = np.array(diagonal, dtype=self._traits.norm_dtype).reshape(-1)
        e = np.array(off_diagonal, dtype=self._traits.norm_dtype).reshape(-1)
        if e.shape[0] + 1 != d.shape[0] and not (d.shape[0] == 0 and e.shape[0] == 0):
            raise DimensionMismatchError(
                "off-diagonal length", max(d.shape[0] - 1, 0), e.shape[0]
            )
        if self._q is not None and self._q.shape[0] != d.shape[0]:
            raise DimensionMismatchError("diagonal length", self._q.shape[0], d.shape[0])
        d.flags.writeable = False
        e.flags.writeable = False
        self._diagonal = d
        self._off_diagonal = e

    @property
    def diagonal(self) -> NDArray[np.floating]:
        return self._diagonal

    @property
    def off_diagonal(self) -> NDArray[np.floating]:
        return self._off_diagonal

    @property
    def rows(self) -> int:
        return int(self._diagonal.shape[0])

    @property
    def cols(self) -> int:
        return self.rows

    @property
    def field(self) -> ScalarField:
        return self._traits.field

    @property
    def traits(self) -> FieldTraits:
        return self._traits

    @property
    def has_transform(self) -> bool:
        return self._q is not None

    @property
    def q(self) -> NDArray[Any]:
        """The accumulated orthogonal/unitary factor (read-only view)."""
        if self._q is None:
            raise TransformUnavailableError(
                "Q was not retained; construct with keep_transform=True"
            )
        view = self._q.view()
        view.flags.writeable = False
        return view

    def to_dense(self) -> NDArray[np.floating]:
        """The tridiagonal matrix T as a full ndarray."""
        t = np.diag(self._diagonal)
        if self.rows > 1:
            t += np.diag(self._off_diagonal, 1) + np.diag(self._off_diagonal, -1)
        return t

    def transform(self, x: ArrayLike) -> NDArray[Any]:
        """Map a vector or matrix from tridiagonal space back to A's basis.

        Computes ``Q @ x``. ``x`` is in the norm type; the result is in the
        field of the original matrix.

        Raises:
            TransformUnavailableError: If Q was not retained.
            DimensionMismatchError: If ``x`` has the wrong number of rows.
        """
        x = np.asarray(x)
        if self._q is None:
            raise TransformUnavailableError(
                "Q was not retained; construct with keep_transform=True"
            )
        if x.ndim not in (1, 2) or x.shape[0] != self.rows:
            raise DimensionMismatchError("transform operand rows", self.rows, x.shape[0] if x.ndim else x.shape)
        return self._q @ x.astype(self._traits.dtype)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(n={self.rows}, field={self.field.value}, "
            f"has_transform={self.has_transform})"
        )


def _realify(
    a: NDArray[Any], q: NDArray[Any] | None, traits: FieldTraits
) -> tuple[NDArray[Any], NDArray[Any]]:
    """Extract real (d, e) from a Hermitian tridiagonal ``a``.

    A diagonal unitary scaling ``D`` makes the off-diagonal real and
    non-negative; it is absorbed into ``q`` (``q <- q D``).
    """
    n = a.shape[0]
    d = traits.real_part(np.diagonal(a)).astype(traits.norm_dtype)
    sub = np.diagonal(a, -1).copy()
    if not traits.is_complex:
        return d, sub.astype(traits.norm_dtype)

    e = np.abs(sub).astype(traits.norm_dtype)
    if q is not None and n > 1:
        phase = np.ones(n, dtype=traits.dtype)
        for k in range(n - 1):
            phase[k + 1] = phase[k] * (sub[k] / e[k]) if e[k] != 0 else phase[k]
        q *= phase[np.newaxis, :]
    return d, e


def _hermitian_full(a: Any, traits: FieldTraits) -> NDArray[Any]:
    """Full Hermitian ndarray from a packed matrix or the upper triangle of ``a``."""
    if isinstance(a, PackedMatrix):
        return a.to_dense().astype(traits.dtype)
    arr = np.asarray(a)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise DimensionMismatchError("symmetric/Hermitian matrix shape", "n x n", arr.shape)
    arr = arr.astype(traits.dtype)
    upper = np.triu(arr, 1)
    full = upper + traits.adjoint(upper)
    full[np.diag_indices_from(full)] = arr.diagonal()
    return full


class DenseTridiagonalDecomposition(TridiagonalDecomposition):
    """Householder tridiagonal reduction of a dense symmetric/Hermitian matrix.

    Args:
        a: SymmetricMatrix, HermitianMatrix, or square ndarray (only the upper
            triangle is referenced).
        keep_transform: Retain Q so eigenvectors can be back-transformed.

    Example:
        >>> decomp = DenseTridiagonalDecomposition(np.array([[2.0, 1.0], [1.0, 2.0]]))
        >>> decomp.diagonal, decomp.off_diagonal
        (array([2., 2.]), array([1.]))
    """

    __slots__ = ()

    def __init__(
        self,
        a: SymmetricMatrix | HermitianMatrix | ArrayLike,
        keep_transform: bool = True,
    ) -> None:
        traits = get_traits(field_of(a if isinstance(a, PackedMatrix) else np.asarray(a)))
        work = _hermitian_full(a, traits)
        n = work.shape[0]
        q = np.eye(n, dtype=traits.dtype) if keep_transform else None

        for k in range(n - 1):
            v, tau, beta = householder(work[k + 1 :, k])
            if tau != 0:
                block = work[k + 1 :, k + 1 :]
                # H^H B H for the trailing block
                apply_householder_left(block, v, traits.conjugate(tau))
                apply_householder_right(block, v, tau)
                if q is not None:
                    apply_householder_right(q[:, k + 1 :], v, tau)
            work[k + 1, k] = beta
            work[k, k + 1] = beta
            work[k + 2 :, k] = 0
            work[k, k + 2 :] = 0

        d, e = _realify(work, q, traits)
        _logger.debug("dense tridiagonal reduction: n=%d field=%s", n, traits.field.value)
        super().__init__(d, e, q, field=traits.field)


class BandTridiagonalDecomposition(TridiagonalDecomposition):
    """Tridiagonal reduction of a symmetric/Hermitian band matrix.

    Each element outside the tridiagonal band is annihilated by a rotation
    in the plane of its row and the row above; the resulting fill-in one
    band-width further down is chased off the end of the matrix. Only a
    window of width ``2*kd + 2`` is touched by each rotation.

    Args:
        a: SymmetricBandMatrix, HermitianBandMatrix, or square ndarray together
            with ``half_bandwidth``.
        keep_transform: Retain Q so eigenvectors can be back-transformed.
        half_bandwidth: Number of super-diagonals (required for ndarray input).
    """

    __slots__ = ()

    def __init__(
        self,
        a: SymmetricBandMatrix | HermitianBandMatrix | ArrayLike,
        keep_transform: bool = True,
        *,
        half_bandwidth: int | None = None,
    ) -> None:
        if isinstance(a, (SymmetricBandMatrix, HermitianBandMatrix)):
            kd = a.half_bandwidth
            traits = get_traits(a.field)
        else:
            if half_bandwidth is None:
                msg = "half_bandwidth is required for a dense band matrix"
                raise ValueError(msg)
            kd = half_bandwidth
            traits = get_traits(field_of(np.asarray(a)))
        if kd < 0:
            msg = f"Bandwidth must be non-negative, got {kd}"
            raise ValueError(msg)

        work = _hermitian_full(a, traits)
        n = work.shape[0]
        if not isinstance(a, PackedMatrix) and n:
            i, j = np.indices(work.shape)
            work[np.abs(i - j) > kd] = 0
        q = np.eye(n, dtype=traits.dtype) if keep_transform else None

        rotations = 0
        if kd > 1:
            for j in range(n - 2):
                for r in range(min(kd, n - 1 - j), 1, -1):
                    # annihilate (j + r, j), then chase the bulge
                    row, col = j + r, j
                    while row < n:
                        self._rotate(work, q, row - 1, col, kd)
                        rotations += 1
                        col = row - 1
                        row = row + kd
        _logger.debug(
            "band tridiagonal reduction: n=%d kd=%d rotations=%d", n, kd, rotations
        )

        d, e = _realify(work, q, traits)
        super().__init__(d, e, q, field=traits.field)

    @staticmethod
    def _rotate(
        work: NDArray[Any], q: NDArray[Any] | None, p: int, col: int, kd: int
    ) -> None:
        """Zero ``work[p + 1, col]`` with a rotation in plane (p, p + 1)."""
        n = work.shape[0]
        c, s = givens(work[p, col], work[p + 1, col])
        window = slice(max(0, p - kd), min(n, p + kd + 2))
        rotate_rows(work, p, p + 1, c, s, window)
        rotate_cols(work, p, p + 1, c, s, window)
        work[p + 1, col] = 0
        work[col, p + 1] = 0
        if q is not None:
            rotate_cols(q, p, p + 1, c, s, slice(None))


def reduce_to_tridiagonal(
    a: PackedMatrix | ArrayLike,
    keep_transform: bool = True,
    *,
    half_bandwidth: int | None = None,
) -> TridiagonalDecomposition:
    """Pick the reduction matching the shape of ``a``.

    Band matrix types (or an ndarray with ``half_bandwidth``) use the band
    reduction; everything else the dense Householder reduction.
    """
    if isinstance(a, (SymmetricBandMatrix, HermitianBandMatrix)) or half_bandwidth is not None:
        return BandTridiagonalDecomposition(
            a, keep_transform, half_bandwidth=half_bandwidth
        )
    return DenseTridiagonalDecomposition(a, keep_transform)


__all__ = [
    "BandTridiagonalDecomposition",
    "DenseTridiagonalDecomposition",
    "TridiagonalDecomposition",
    "reduce_to_tridiagonal",
]
