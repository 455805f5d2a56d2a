"""Packed matrix shapes with guarded element access.

Storage conventions (LAPACK compatible):

- Packed triangles are column-major: upper cell (i, j), i <= j, lives at
  ``j*(j+1)//2 + i``; lower cell (i, j), i >= j, lives at
  ``i*(i+1)//2 + j``.
- Band matrices keep the upper band in a (kd+1, n) array with
  ``ab[kd + i - j, j] = A[i, j]`` for ``max(0, j-kd) <= i <= j``.

Every write goes through a proxy from ``decomp_lab.data.proxies`` so that
structural constants cannot be changed and mirrored cells are stored in
their canonical slot. The ``to_*`` conversion functions are pure: they
allocate a new packed matrix and never modify their input.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import numpy as np

from decomp_lab.data.fields import (
    FieldTraits,
    ScalarField,
    field_of,
    get_dtype,
    get_traits,
)
from decomp_lab.data.proxies import (
    CellRef,
    ConjugateRef,
    NegateRef,
    ReadOnlyConjugateRef,
    ReadOnlyRef,
    SlotRef,
)
from decomp_lab.errors import DimensionMismatchError, IndexOutOfRangeError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


class PackedMatrix(ABC):
    """Square matrix stored in a compact layout."""

    __slots__ = ("_n", "_data", "_traits")

    def __init__(self, n: int, field: ScalarField | str = ScalarField.FLOAT64) -> None:
        if n < 0:
            msg = f"Matrix order must be non-negative, got {n}"
            raise ValueError(msg)
        self._n = n
        self._traits: FieldTraits = get_traits(field)
        self._data = np.zeros(self._storage_size(), dtype=self._traits.dtype)

    @abstractmethod
    def _storage_size(self) -> int | tuple[int, int]:
        """Shape of the storage buffer."""

    @abstractmethod
    def ref(self, i: int, j: int) -> CellRef:
        """Return a guarded reference to cell (i, j)."""

    @property
    def rows(self) -> int:
        return self._n

    @property
    def cols(self) -> int:
        return self._n

    @property
    def shape(self) -> tuple[int, int]:
        return (self._n, self._n)

    @property
    def field(self) -> ScalarField:
        return self._traits.field

    @property
    def traits(self) -> FieldTraits:
        return self._traits

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def data(self) -> NDArray[Any]:
        """Read-only view of the packed storage."""
        view = self._data.view()
        view.flags.writeable = False
        return view

    def get(self, i: int, j: int) -> Any:
        return self.ref(i, j).get()

    def set(self, i: int, j: int, value: Any) -> None:
        self.ref(i, j).set(value)

    def __getitem__(self, key: tuple[int, int]) -> Any:
        i, j = key
        return self.get(i, j)

    def __setitem__(self, key: tuple[int, int], value: Any) -> None:
        i, j = key
        self.set(i, j, value)

    def to_dense(self) -> NDArray[Any]:
        """Expand to a full ndarray."""
        out = np.zeros(self.shape, dtype=self.dtype)
        for j in range(self._n):
            for i in range(self._n):
                out[i, j] = self.get(i, j)
        return out

    def copy(self) -> PackedMatrix:
        other = object.__new__(self.__class__)
        for cls in type(self).__mro__:
            for name in getattr(cls, "__slots__", ()):
                if hasattr(self, name):
                    setattr(other, name, getattr(self, name))
        other._data = self._data.copy()
        return other

    def _check_bounds(self, i: int, j: int) -> None:
        if not (0 <= i < self._n and 0 <= j < self._n):
            raise IndexOutOfRangeError(i, j, self._n, self._n)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(n={self._n}, field={self.field.value})"


def _upper_index(i: int, j: int) -> int:
    return j * (j + 1) // 2 + i


def _lower_index(i: int, j: int) -> int:
    return i * (i + 1) // 2 + j


class SymmetricMatrix(PackedMatrix):
    """Symmetric matrix; (i, j) and (j, i) share one slot."""

    __slots__ = ()

    def _storage_size(self) -> int:
        return self._n * (self._n + 1) // 2

    def ref(self, i: int, j: int) -> CellRef:
        self._check_bounds(i, j)
        if i > j:
            i, j = j, i
        return SlotRef(self._data, _upper_index(i, j))

    def to_dense(self) -> NDArray[Any]:
        iu = np.triu_indices(self._n)
        out = np.zeros(self.shape, dtype=self.dtype)
        out[iu[0], iu[1]] = [self._data[_upper_index(i, j)] for i, j in zip(*iu, strict=True)]
        return out + np.triu(out, 1).T


class HermitianMatrix(PackedMatrix):
    """Hermitian matrix; writes below the diagonal store the conjugate above."""

    __slots__ = ()

    def _storage_size(self) -> int:
        return self._n * (self._n + 1) // 2

    def ref(self, i: int, j: int) -> CellRef:
        self._check_bounds(i, j)
        if i > j:
            return ConjugateRef(self._data, _upper_index(j, i), mirrored=True)
        return ConjugateRef(self._data, _upper_index(i, j))

    def to_dense(self) -> NDArray[Any]:
        iu = np.triu_indices(self._n)
        out = np.zeros(self.shape, dtype=self.dtype)
        out[iu[0], iu[1]] = [self._data[_upper_index(i, j)] for i, j in zip(*iu, strict=True)]
        return out + self._traits.adjoint(np.triu(out, 1))


class SkewMatrix(PackedMatrix):
    """Skew-symmetric matrix; the diagonal is a structural zero."""

    __slots__ = ()

    def _storage_size(self) -> int:
        return self._n * (self._n - 1) // 2 if self._n > 0 else 0

    def ref(self, i: int, j: int) -> CellRef:
        self._check_bounds(i, j)
        if i == j:
            return ReadOnlyRef(self._traits.dtype(0))
        if i > j:
            return NegateRef(self._data, _upper_index(j, i) - i, mirrored=True)
        return NegateRef(self._data, _upper_index(i, j) - j)


class UpperTriangularMatrix(PackedMatrix):
    """Upper triangular matrix; cells below the diagonal are fixed zeros."""

    __slots__ = ()

    def _storage_size(self) -> int:
        return self._n * (self._n + 1) // 2

    def ref(self, i: int, j: int) -> CellRef:
        self._check_bounds(i, j)
        if i > j:
            return ReadOnlyRef(self._traits.dtype(0))
        return SlotRef(self._data, _upper_index(i, j))


class LowerTriangularMatrix(PackedMatrix):
    """Lower triangular matrix; cells above the diagonal are fixed zeros."""

    __slots__ = ()

    def _storage_size(self) -> int:
        return self._n * (self._n + 1) // 2

    def ref(self, i: int, j: int) -> CellRef:
        self._check_bounds(i, j)
        if i < j:
            return ReadOnlyRef(self._traits.dtype(0))
        return SlotRef(self._data, _lower_index(i, j))


class _BandMatrix(PackedMatrix):
    __slots__ = ("_kd",)

    def __init__(
        self,
        n: int,
        half_bandwidth: int,
        field: ScalarField | str = ScalarField.FLOAT64,
    ) -> None:
        if half_bandwidth < 0:
            msg = f"Bandwidth must be non-negative, got {half_bandwidth}"
            raise ValueError(msg)
        self._kd = half_bandwidth
        super().__init__(n, field)

    @property
    def half_bandwidth(self) -> int:
        return self._kd

    @property
    def bandwidth(self) -> int:
        """Total bandwidth ``2*kd + 1``."""
        return 2 * self._kd + 1

    def _storage_size(self) -> tuple[int, int]:
        return (self._kd + 1, self._n)

    def band_view(self) -> NDArray[Any]:
        """Read-only view of the (kd+1, n) upper band storage."""
        return self.data

    def to_dense(self) -> NDArray[Any]:
        out = np.zeros(self.shape, dtype=self.dtype)
        for j in range(self._n):
            for i in range(max(0, j - self._kd), j + 1):
                out[i, j] = self._data[self._kd + i - j, j]
        return out + self._mirror(np.triu(out, 1))

    def _mirror(self, strict_upper: np.ndarray) -> np.ndarray:
        return strict_upper.T

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(n={self._n}, half_bandwidth={self._kd}, "
            f"field={self.field.value})"
        )


class SymmetricBandMatrix(_BandMatrix):
    """Symmetric band matrix; out-of-band cells are fixed zeros."""

    __slots__ = ()

    def ref(self, i: int, j: int) -> CellRef:
        self._check_bounds(i, j)
        if i > j:
            i, j = j, i
        if j - i > self._kd:
            return ReadOnlyRef(self._traits.dtype(0))
        return SlotRef(self._data, (self._kd + i - j, j))


class HermitianBandMatrix(_BandMatrix):
    """Hermitian band matrix.

    Cells below the diagonal are conjugate mirrors and cells outside the band
    are fixed zeros, so every cell goes through ReadOnlyConjugateRef.
    """

    __slots__ = ()

    def ref(self, i: int, j: int) -> CellRef:
        self._check_bounds(i, j)
        mirrored = i > j
        if mirrored:
            i, j = j, i
        if j - i > self._kd:
            return ReadOnlyConjugateRef(None, constant=self._traits.dtype(0))
        return ReadOnlyConjugateRef(self._data, (self._kd + i - j, j), mirrored=mirrored)

    def _mirror(self, strict_upper: np.ndarray) -> np.ndarray:
        return self._traits.adjoint(strict_upper)


# =============================================================================
# CONVERSIONS FROM FULL MATRICES
# =============================================================================


def _square(a: ArrayLike, what: str) -> np.ndarray:
    arr = np.asarray(a)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise DimensionMismatchError(f"{what} requires a square matrix", "n x n", arr.shape)
    return arr


def _fill_upper(target: PackedMatrix, source: np.ndarray, kd: int | None = None) -> None:
    n = source.shape[0]
    for j in range(n):
        start = 0 if kd is None else max(0, j - kd)
        for i in range(start, j + 1):
            target.set(i, j, source[i, j])


def to_symmetric(a: ArrayLike, field: ScalarField | str | None = None) -> SymmetricMatrix:
    """Symmetric part ``(A + Aᵀ)/2`` of a square matrix, packed."""
    arr = _square(a, "to_symmetric")
    field = field if field is not None else field_of(arr)
    arr = arr.astype(get_dtype(field))
    out = SymmetricMatrix(arr.shape[0], field)
    _fill_upper(out, (arr + arr.T) / 2)
    return out


def to_hermitian(a: ArrayLike, field: ScalarField | str | None = None) -> HermitianMatrix:
    """Hermitian part ``(A + Aᴴ)/2`` of a square matrix, packed."""
    arr = _square(a, "to_hermitian")
    field = field if field is not None else field_of(arr)
    arr = arr.astype(get_dtype(field))
    out = HermitianMatrix(arr.shape[0], field)
    _fill_upper(out, (arr + out.traits.adjoint(arr)) / 2)
    return out


def to_skew(a: ArrayLike, field: ScalarField | str | None = None) -> SkewMatrix:
    """Skew-symmetric part ``(A - Aᵀ)/2`` of a square matrix, packed."""
    arr = _square(a, "to_skew")
    field = field if field is not None else field_of(arr)
    arr = arr.astype(get_dtype(field))
    skew = (arr - arr.T) / 2
    out = SkewMatrix(arr.shape[0], field)
    n = arr.shape[0]
    for j in range(n):
        for i in range(j):
            out.set(i, j, skew[i, j])
    return out


def to_upper_triangular(
    a: ArrayLike, field: ScalarField | str | None = None
) -> UpperTriangularMatrix:
    """Upper triangle of a square matrix; the rest is discarded."""
    arr = _square(a, "to_upper_triangular")
    field = field if field is not None else field_of(arr)
    arr = arr.astype(get_dtype(field))
    out = UpperTriangularMatrix(arr.shape[0], field)
    _fill_upper(out, arr)
    return out


def to_lower_triangular(
    a: ArrayLike, field: ScalarField | str | None = None
) -> LowerTriangularMatrix:
    """Lower triangle of a square matrix; the rest is discarded."""
    arr = _square(a, "to_lower_triangular")
    field = field if field is not None else field_of(arr)
    arr = arr.astype(get_dtype(field))
    out = LowerTriangularMatrix(arr.shape[0], field)
    n = arr.shape[0]
    for j in range(n):
        for i in range(j, n):
            out.set(i, j, arr[i, j])
    return out


def to_symmetric_band(
    a: ArrayLike,
    half_bandwidth: int,
    field: ScalarField | str | None = None,
) -> SymmetricBandMatrix:
    """Band of the symmetric part of a square matrix."""
    arr = _square(a, "to_symmetric_band")
    field = field if field is not None else field_of(arr)
    arr = arr.astype(get_dtype(field))
    out = SymmetricBandMatrix(arr.shape[0], half_bandwidth, field)
    _fill_upper(out, (arr + arr.T) / 2, kd=half_bandwidth)
    return out


def to_hermitian_band(
    a: ArrayLike,
    half_bandwidth: int,
    field: ScalarField | str | None = None,
) -> HermitianBandMatrix:
    """Band of the Hermitian part of a square matrix."""
    arr = _square(a, "to_hermitian_band")
    field = field if field is not None else field_of(arr)
    arr = arr.astype(get_dtype(field))
    out = HermitianBandMatrix(arr.shape[0], half_bandwidth, field)
    _fill_upper(out, (arr + out.traits.adjoint(arr)) / 2, kd=half_bandwidth)
    return out


__all__ = [
    "HermitianBandMatrix",
    "HermitianMatrix",
    "LowerTriangularMatrix",
    "PackedMatrix",
    "SkewMatrix",
    "SymmetricBandMatrix",
    "SymmetricMatrix",
    "UpperTriangularMatrix",
    "to_hermitian",
    "to_hermitian_band",
    "to_lower_triangular",
    "to_skew",
    "to_symmetric",
    "to_symmetric_band",
    "to_upper_triangular",
]
