"""Tests for tridiagonal eigen-solver strategies."""

import logging

import numpy as np
import pytest
import scipy.linalg

from decomp_lab.algorithms.eigensolvers import (
    EigenSolverKind,
    EigenSolverStrategy,
    FullQRStrategy,
    IndexRangeStrategy,
    PositiveDefiniteStrategy,
    RootFreeStrategy,
    ValueRangeStrategy,
    create_strategy,
)
from decomp_lab.algorithms.tridiagonal import TridiagonalDecomposition
from decomp_lab.errors import EigenIndexError, KernelError


@pytest.fixture
def tridiagonal() -> TridiagonalDecomposition:
    """Positive definite 6x6 tridiagonal matrix with distinct eigenvalues."""
    return TridiagonalDecomposition(
        [4.0, 5.0, 6.0, 7.0, 8.0, 9.0],
        [1.0, -0.5, 0.75, 1.0, -1.25],
    )


@pytest.fixture
def stalling() -> TridiagonalDecomposition:
    """Block diag(5, [[2,1,0],[1,2,1],[0,1,2]]): only 5 converges without sweeps."""
    return TridiagonalDecomposition([5.0, 2.0, 2.0, 2.0], [0.0, 1.0, 1.0])


def _reference(t: TridiagonalDecomposition) -> np.ndarray:
    return np.linalg.eigvalsh(t.to_dense())


def _check_pairs(t: TridiagonalDecomposition, values: np.ndarray, vectors: np.ndarray) -> None:
    dense = t.to_dense()
    np.testing.assert_allclose(dense @ vectors, vectors * values, atol=1e-10)
    np.testing.assert_allclose(vectors.T @ vectors, np.eye(vectors.shape[1]), atol=1e-10)


class TestFullQRStrategy:
    """Tests for implicit QL iteration."""

    def test_all_pairs(self, tridiagonal) -> None:
        """Every eigenpair is computed, ascending."""
        result = FullQRStrategy().decompose(tridiagonal)
        assert result.good()
        np.testing.assert_allclose(result.eigenvalues, _reference(tridiagonal), atol=1e-12)
        _check_pairs(tridiagonal, result.eigenvalues, result.eigenvectors)

    def test_values_only(self, tridiagonal) -> None:
        """No vectors when not requested."""
        result = FullQRStrategy(compute_vectors=False).decompose(tridiagonal)
        assert result.num_eigenvectors == 0
        assert result.num_eigenvalues == 6

    def test_partial_convergence(self, stalling, caplog) -> None:
        """A stall keeps the converged prefix and reports fail()."""
        with caplog.at_level(logging.WARNING):
            result = FullQRStrategy(max_iterations=0).decompose(stalling)
        assert result.fail()
        np.testing.assert_allclose(result.eigenvalues, [5.0])
        assert result.num_eigenvectors == 1
        np.testing.assert_allclose(np.abs(result.eigenvector(0)), [1.0, 0.0, 0.0, 0.0])
        assert "stalled" in caplog.text


class TestRootFreeStrategy:
    """Tests for rational QL iteration."""

    def test_never_computes_vectors(self, tridiagonal) -> None:
        """Values only, even though the base default would compute vectors."""
        strategy = RootFreeStrategy()
        assert not strategy.compute_eigenvectors
        result = strategy.decompose(tridiagonal)
        assert result.good()
        assert result.num_eigenvectors == 0
        np.testing.assert_allclose(result.eigenvalues, _reference(tridiagonal), atol=1e-10)

    def test_partial_convergence(self, stalling) -> None:
        """A stall truncates eigenvalues to the converged prefix."""
        result = RootFreeStrategy(max_iterations=0).decompose(stalling)
        assert result.fail()
        np.testing.assert_allclose(result.eigenvalues, [5.0])


class TestPositiveDefiniteStrategy:
    """Tests for the positive definite solver."""

    def test_all_pairs(self, tridiagonal) -> None:
        """Eigenpairs match the reference."""
        result = PositiveDefiniteStrategy().decompose(tridiagonal)
        assert result.good()
        np.testing.assert_allclose(result.eigenvalues, _reference(tridiagonal), rtol=1e-12)
        _check_pairs(tridiagonal, result.eigenvalues, result.eigenvectors)

    def test_indefinite_returns_nothing(self) -> None:
        """Failure leaves zero eigenpairs."""
        indefinite = TridiagonalDecomposition([1.0, -2.0, 3.0], [0.5, 0.5])
        result = PositiveDefiniteStrategy().decompose(indefinite)
        assert result.fail()
        assert result.num_eigenvalues == 0
        assert result.num_eigenvectors == 0


class TestIndexRangeStrategy:
    """Tests for bisection by index."""

    def test_slice(self, tridiagonal) -> None:
        """A contiguous slice of the spectrum."""
        result = IndexRangeStrategy(indices=slice(1, 4)).decompose(tridiagonal)
        assert result.good()
        np.testing.assert_allclose(result.eigenvalues, _reference(tridiagonal)[1:4], atol=1e-10)
        _check_pairs(tridiagonal, result.eigenvalues, result.eigenvectors)

    def test_step_thins_and_reverses(self, tridiagonal) -> None:
        """Steps thin the selection; negative steps reverse it."""
        reference = _reference(tridiagonal)
        thinned = IndexRangeStrategy(compute_vectors=False, indices=slice(0, 6, 2))
        np.testing.assert_allclose(
            thinned.decompose(tridiagonal).eigenvalues, reference[0:6:2], atol=1e-10
        )
        reversed_ = IndexRangeStrategy(compute_vectors=False, indices=slice(None, None, -1))
        np.testing.assert_allclose(
            reversed_.decompose(tridiagonal).eigenvalues, reference[::-1], atol=1e-10
        )

    def test_index_beyond_n_raises(self, tridiagonal) -> None:
        """Indices must lie within [0, n)."""
        with pytest.raises(EigenIndexError) as excinfo:
            IndexRangeStrategy(indices=slice(0, 7)).decompose(tridiagonal)
        assert excinfo.value.bound == 6


class TestValueRangeStrategy:
    """Tests for bisection by value."""

    def test_interval(self, tridiagonal) -> None:
        """Eigenvalues in (low, high]."""
        reference = _reference(tridiagonal)
        low, high = 5.0, 8.0
        result = ValueRangeStrategy(low=low, high=high).decompose(tridiagonal)
        expected = reference[(reference > low) & (reference <= high)]
        assert result.good()
        np.testing.assert_allclose(result.eigenvalues, expected, atol=1e-10)
        _check_pairs(tridiagonal, result.eigenvalues, result.eigenvectors)

    def test_unbounded(self, tridiagonal) -> None:
        """Default bounds select the whole spectrum."""
        result = ValueRangeStrategy(compute_vectors=False).decompose(tridiagonal)
        np.testing.assert_allclose(result.eigenvalues, _reference(tridiagonal), atol=1e-10)

    def test_empty_interval(self, tridiagonal) -> None:
        """low >= high gives an empty, successful result."""
        result = ValueRangeStrategy(low=3.0, high=3.0).decompose(tridiagonal)
        assert result.good()
        assert result.num_eigenvalues == 0


@pytest.fixture
def lapack_info(monkeypatch):
    """Override the info codes returned by ?stebz and ?stein."""
    real = scipy.linalg.get_lapack_funcs

    def install(stebz_info: int = 0, stein_info: int = 0) -> None:
        def fake(names, arrays=()):
            stebz, stein = real(names, arrays)

            def patched_stebz(*args):
                m, w, iblock, isplit, info = stebz(*args)
                return m, w, iblock, isplit, stebz_info or info

            def patched_stein(*args):
                v, info = stein(*args)
                return v, stein_info or info

            return patched_stebz, patched_stein

        monkeypatch.setattr(scipy.linalg, "get_lapack_funcs", fake)

    return install


class TestBisectionStatus:
    """LAPACK status codes become result flags, never exceptions."""

    def test_unconverged_bisection_is_inaccurate(self, tridiagonal, lapack_info) -> None:
        """stebz info=1 keeps values and vectors but clears accurate."""
        lapack_info(stebz_info=1)
        result = IndexRangeStrategy(indices=slice(0, 3)).decompose(tridiagonal)
        assert result.inaccurate()
        assert result.num_eigenvalues == 3
        assert result.num_eigenvectors == 3

    def test_missing_eigenvalues_fail(self, tridiagonal, lapack_info) -> None:
        """stebz info=4 reports fail() for both bisection strategies."""
        lapack_info(stebz_info=4)
        by_index = IndexRangeStrategy(compute_vectors=False).decompose(tridiagonal)
        by_value = ValueRangeStrategy(compute_vectors=False).decompose(tridiagonal)
        assert by_index.fail()
        assert by_value.fail()

    def test_failure_through_pipeline(self, lapack_info) -> None:
        """The full pipeline returns a failed result instead of raising."""
        lapack_info(stebz_info=4)
        result = IndexRangeStrategy(compute_vectors=False)(np.diag([1.0, 2.0]))
        assert result.fail()

    def test_inverse_iteration_failure_keeps_vectors(self, tridiagonal, lapack_info) -> None:
        """stein info>0 keeps the vectors and clears accurate."""
        lapack_info(stein_info=2)
        result = ValueRangeStrategy().decompose(tridiagonal)
        assert result.inaccurate()
        assert result.num_eigenvectors == result.num_eigenvalues == 6
        np.testing.assert_allclose(result.eigenvalues, _reference(tridiagonal), atol=1e-10)

    def test_invalid_argument_raises(self, tridiagonal, lapack_info) -> None:
        """Negative info is a calling error and raises KernelError."""
        lapack_info(stebz_info=-3)
        with pytest.raises(KernelError):
            IndexRangeStrategy().decompose(tridiagonal)

    def test_one_by_one(self) -> None:
        """A 1x1 problem is solved without LAPACK."""
        t = TridiagonalDecomposition([2.5], [])
        result = IndexRangeStrategy().decompose(t)
        assert result.good()
        np.testing.assert_allclose(result.eigenvalues, [2.5])
        np.testing.assert_allclose(result.eigenvectors, [[1.0]])
        assert ValueRangeStrategy(low=3.0).decompose(t).num_eigenvalues == 0


class TestCreateStrategy:
    """Tests for the strategy factory."""

    @pytest.mark.parametrize(
        "kind,expected",
        [
            ("full_qr", FullQRStrategy),
            ("root_free", RootFreeStrategy),
            ("positive-definite", PositiveDefiniteStrategy),
            (EigenSolverKind.INDEX_RANGE, IndexRangeStrategy),
            (EigenSolverKind.VALUE_RANGE, ValueRangeStrategy),
        ],
    )
    def test_creates(self, kind: EigenSolverKind | str, expected: type) -> None:
        """Kinds map to strategy classes."""
        strategy = create_strategy(kind)
        assert isinstance(strategy, expected)
        assert isinstance(strategy, EigenSolverStrategy)

    def test_kwargs_forwarded(self) -> None:
        """Keyword arguments reach the constructor."""
        strategy = create_strategy("full_qr", compute_vectors=False)
        assert not strategy.compute_eigenvectors

    def test_unknown_raises(self) -> None:
        """Unknown kinds raise ValueError."""
        with pytest.raises(ValueError, match="Unknown strategy"):
            create_strategy("jacobi")
