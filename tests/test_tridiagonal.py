"""Tests for tridiagonal reduction."""

import numpy as np
import pytest

from decomp_lab.algorithms.matrices import create_band_matrix, create_spectrum_matrix
from decomp_lab.algorithms.tridiagonal import (
    BandTridiagonalDecomposition,
    DenseTridiagonalDecomposition,
    TridiagonalDecomposition,
    reduce_to_tridiagonal,
)
from decomp_lab.data.fields import ScalarField, get_tolerance
from decomp_lab.data.packed import to_hermitian, to_hermitian_band, to_symmetric_band
from decomp_lab.errors import DimensionMismatchError, TransformUnavailableError

ALL_FIELDS = list(ScalarField)


def _check_reduction(a: np.ndarray, decomp: TridiagonalDecomposition, field: ScalarField) -> None:
    tol = get_tolerance(field, "reconstruction_tol")
    q = decomp.q.astype(np.complex128)
    t = decomp.to_dense()
    scale = max(np.linalg.norm(a), 1.0)
    np.testing.assert_allclose(q @ t @ q.conj().T, a, atol=tol * scale * 10)
    np.testing.assert_allclose(q.conj().T @ q, np.eye(a.shape[0]), atol=tol * 10)


class TestTridiagonalDecomposition:
    """Tests for the direct constructor."""

    def test_set_from_vectors(self) -> None:
        """Diagonal and off-diagonal define T."""
        decomp = TridiagonalDecomposition([1.0, 2.0, 3.0], [0.5, 0.25])
        assert decomp.rows == decomp.cols == 3
        assert not decomp.has_transform
        np.testing.assert_array_equal(
            decomp.to_dense(),
            [[1.0, 0.5, 0.0], [0.5, 2.0, 0.25], [0.0, 0.25, 3.0]],
        )

    def test_length_mismatch_raises(self) -> None:
        """Off-diagonal must have one entry fewer than the diagonal."""
        with pytest.raises(DimensionMismatchError):
            TridiagonalDecomposition([1.0, 2.0], [1.0, 2.0])

    def test_empty(self) -> None:
        """A 0x0 problem is valid."""
        decomp = TridiagonalDecomposition([], [])
        assert decomp.rows == 0

    def test_transform_without_q_raises(self) -> None:
        """No Q means no back-transform."""
        decomp = TridiagonalDecomposition([1.0, 2.0], [1.0])
        with pytest.raises(TransformUnavailableError):
            decomp.transform(np.ones(2))

    def test_arrays_are_read_only(self) -> None:
        """Callers cannot modify the stored tridiagonal."""
        decomp = TridiagonalDecomposition([1.0, 2.0], [1.0])
        with pytest.raises(ValueError):
            decomp.diagonal[0] = 5.0


class TestDenseTridiagonalDecomposition:
    """Tests for Householder reduction."""

    @pytest.mark.parametrize("field", ALL_FIELDS)
    def test_reconstruction(self, field: ScalarField) -> None:
        """Q T Q^H reproduces A and Q is orthonormal."""
        a = create_spectrum_matrix(np.linspace(-3.0, 5.0, 7), field, seed=3)
        decomp = DenseTridiagonalDecomposition(a)
        assert decomp.field == field
        assert decomp.diagonal.dtype == np.dtype(decomp.traits.norm_dtype)
        _check_reduction(a.astype(np.complex128), decomp, field)

    def test_already_tridiagonal_unchanged_spectrum(self) -> None:
        """The [[2, 1], [1, 2]] matrix is its own tridiagonal form."""
        decomp = DenseTridiagonalDecomposition(np.array([[2.0, 1.0], [1.0, 2.0]]))
        np.testing.assert_allclose(decomp.diagonal, [2.0, 2.0])
        np.testing.assert_allclose(np.abs(decomp.off_diagonal), [1.0])

    def test_upper_triangle_referenced(self) -> None:
        """Only the upper triangle of an ndarray is used."""
        a = np.array([[1.0, 2.0], [99.0, 3.0]])
        decomp = DenseTridiagonalDecomposition(a)
        np.testing.assert_allclose(np.abs(decomp.off_diagonal), [2.0])

    def test_packed_hermitian_input(self) -> None:
        """Packed Hermitian matrices are accepted."""
        a = create_spectrum_matrix([1.0, 2.0, 4.0, 8.0], "complex128", seed=1)
        decomp = DenseTridiagonalDecomposition(to_hermitian(a))
        _check_reduction(a, decomp, ScalarField.COMPLEX128)

    def test_transform(self) -> None:
        """transform(x) equals Q @ x and checks its operand."""
        a = create_spectrum_matrix([1.0, 2.0, 3.0], seed=5)
        decomp = DenseTridiagonalDecomposition(a)
        x = np.array([1.0, -1.0, 2.0])
        np.testing.assert_allclose(decomp.transform(x), decomp.q @ x)
        with pytest.raises(DimensionMismatchError):
            decomp.transform(np.ones(4))

    def test_without_transform(self) -> None:
        """keep_transform=False drops Q but keeps T."""
        a = create_spectrum_matrix([1.0, 2.0, 3.0], seed=5)
        decomp = DenseTridiagonalDecomposition(a, keep_transform=False)
        assert not decomp.has_transform
        np.testing.assert_allclose(
            np.linalg.eigvalsh(decomp.to_dense()), [1.0, 2.0, 3.0], atol=1e-12
        )
        with pytest.raises(TransformUnavailableError):
            _ = decomp.q


class TestBandTridiagonalDecomposition:
    """Tests for band reduction with bulge chasing."""

    @pytest.mark.parametrize("field", ALL_FIELDS)
    @pytest.mark.parametrize("kd", [0, 1, 2, 3])
    def test_reconstruction(self, field: ScalarField, kd: int) -> None:
        """Q T Q^H reproduces the band matrix."""
        a = create_band_matrix(9, kd, field, seed=11)
        decomp = BandTridiagonalDecomposition(a, half_bandwidth=kd)
        _check_reduction(a.astype(np.complex128), decomp, field)

    def test_zero_bandwidth_keeps_identity(self) -> None:
        """A diagonal matrix needs no rotations."""
        a = np.diag([3.0, 1.0, 2.0])
        decomp = BandTridiagonalDecomposition(a, half_bandwidth=0)
        np.testing.assert_array_equal(decomp.q, np.eye(3))
        np.testing.assert_array_equal(decomp.diagonal, [3.0, 1.0, 2.0])

    def test_packed_band_inputs(self) -> None:
        """Symmetric and Hermitian band types carry their own bandwidth."""
        real = create_band_matrix(6, 2, seed=4)
        decomp = BandTridiagonalDecomposition(to_symmetric_band(real, 2))
        _check_reduction(real, decomp, ScalarField.FLOAT64)

        cplx = create_band_matrix(6, 2, "complex128", seed=4)
        decomp = BandTridiagonalDecomposition(to_hermitian_band(cplx, 2))
        _check_reduction(cplx, decomp, ScalarField.COMPLEX128)

    def test_spectrum_preserved(self) -> None:
        """Band and dense reductions give the same eigenvalues."""
        a = create_band_matrix(10, 3, seed=8)
        band = BandTridiagonalDecomposition(a, keep_transform=False, half_bandwidth=3)
        dense = DenseTridiagonalDecomposition(a, keep_transform=False)
        np.testing.assert_allclose(
            np.linalg.eigvalsh(band.to_dense()),
            np.linalg.eigvalsh(dense.to_dense()),
            atol=1e-10,
        )

    def test_ndarray_requires_bandwidth(self) -> None:
        """A plain ndarray needs half_bandwidth."""
        with pytest.raises(ValueError, match="half_bandwidth"):
            BandTridiagonalDecomposition(np.eye(3))


class TestReduceToTridiagonal:
    """Tests for reduction dispatch."""

    def test_dispatch(self) -> None:
        """Band inputs use the band reduction."""
        a = create_band_matrix(5, 1, seed=2)
        assert isinstance(reduce_to_tridiagonal(a), DenseTridiagonalDecomposition)
        assert isinstance(
            reduce_to_tridiagonal(a, half_bandwidth=1), BandTridiagonalDecomposition
        )
        assert isinstance(
            reduce_to_tridiagonal(to_symmetric_band(a, 1)), BandTridiagonalDecomposition
        )
