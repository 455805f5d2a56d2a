"""Tests for elementary numerical kernels."""

import numpy as np
import pytest

from decomp_lab.algorithms.kernels import (
    apply_householder_left,
    apply_householder_right,
    givens,
    householder,
    pteqr,
    rotate_cols,
    rotate_rows,
    tql2,
    tqlrat,
)
from decomp_lab.errors import KernelError


def _tridiagonal(d: np.ndarray, e: np.ndarray) -> np.ndarray:
    return np.diag(d) + np.diag(e, 1) + np.diag(e, -1)


@pytest.fixture
def tridiagonal_problem() -> tuple[np.ndarray, np.ndarray]:
    """Random 8x8 symmetric tridiagonal matrix (d, e)."""
    rng = np.random.default_rng(7)
    return rng.standard_normal(8), rng.standard_normal(7)


class TestHouseholder:
    """Tests for reflector generation and application."""

    @pytest.mark.parametrize("dtype", [np.float64, np.complex128])
    def test_annihilates_trailing_entries(self, dtype: type) -> None:
        """H^H x = [beta, 0, ..., 0] with |beta| = ||x||."""
        rng = np.random.default_rng(0)
        x = rng.standard_normal(5).astype(dtype)
        if np.issubdtype(dtype, np.complexfloating):
            x += 1j * rng.standard_normal(5)
        v, tau, beta = householder(x)
        assert v[0] == 1
        h = np.eye(5) - tau * np.outer(v, v.conj())
        y = h.conj().T @ x
        np.testing.assert_allclose(y[1:], 0, atol=1e-12)
        assert y[0] == pytest.approx(beta)
        assert abs(beta) == pytest.approx(np.linalg.norm(x))
        np.testing.assert_allclose(h.conj().T @ h, np.eye(5), atol=1e-12)

    def test_identity_when_already_reduced(self) -> None:
        """A vector with a real head and zero tail needs no reflection."""
        v, tau, beta = householder(np.array([3.0, 0.0, 0.0]))
        assert tau == 0
        assert beta == 3.0

    def test_apply_left_and_right(self) -> None:
        """In-place application matches the explicit reflector."""
        rng = np.random.default_rng(1)
        v, tau, _ = householder(rng.standard_normal(4))
        h = np.eye(4) - tau * np.outer(v, v)
        c = rng.standard_normal((4, 3))
        expected_left = h @ c
        apply_householder_left(c, v, tau)
        np.testing.assert_allclose(c, expected_left)

        d = rng.standard_normal((2, 4))
        expected_right = d @ h
        apply_householder_right(d, v, tau)
        np.testing.assert_allclose(d, expected_right)

    def test_empty_vector_raises(self) -> None:
        """Reflectors need at least one entry."""
        with pytest.raises(KernelError):
            householder(np.zeros(0))


class TestGivens:
    """Tests for plane rotations."""

    @pytest.mark.parametrize("x,y", [(3.0, 4.0), (0.0, 2.0), (1 + 1j, 2 - 1j), (2.0, 0.0)])
    def test_zeroes_second_component(self, x: complex, y: complex) -> None:
        """G [x, y] = [r, 0] with unitary G."""
        c, s = givens(x, y)
        g = np.array([[c, s], [-np.conj(s), c]])
        out = g @ np.array([x, y])
        assert abs(out[1]) < 1e-14
        np.testing.assert_allclose(g @ g.conj().T, np.eye(2), atol=1e-14)

    def test_rotations_form_similarity(self) -> None:
        """rotate_rows then rotate_cols computes G A G^H."""
        rng = np.random.default_rng(2)
        a = rng.standard_normal((4, 4))
        c, s = givens(a[1, 0], a[2, 0])
        g = np.eye(4)
        g[1:3, 1:3] = [[c, s], [-s, c]]
        expected = g @ a @ g.T
        rotate_rows(a, 1, 2, c, s, slice(None))
        rotate_cols(a, 1, 2, c, s, slice(None))
        np.testing.assert_allclose(a, expected, atol=1e-14)


class TestTql2:
    """Tests for implicit QL iteration."""

    def test_eigenvalues_and_vectors(self, tridiagonal_problem) -> None:
        """Values match numpy and vectors satisfy T z = lambda z."""
        d, e = tridiagonal_problem
        t = _tridiagonal(d, e)
        w, z = d.copy(), np.eye(8)
        info = tql2(w, e.copy(), z)
        assert info == 8
        np.testing.assert_allclose(w, np.linalg.eigvalsh(t), atol=1e-12)
        np.testing.assert_allclose(t @ z, z * w, atol=1e-12)
        np.testing.assert_allclose(z.T @ z, np.eye(8), atol=1e-12)

    def test_stall_returns_converged_prefix(self) -> None:
        """With no sweeps allowed only the decoupled leading value converges."""
        d = np.array([5.0, 2.0, 2.0, 2.0])
        e = np.array([0.0, 1.0, 1.0])
        info = tql2(d, e, max_iterations=0)
        assert info == 1
        assert d[0] == 5.0

    def test_bad_lengths_raise(self) -> None:
        """Off-diagonal must have n-1 entries."""
        with pytest.raises(KernelError, match="tql2"):
            tql2(np.zeros(3), np.zeros(3))


class TestTqlrat:
    """Tests for rational QL iteration."""

    def test_eigenvalues(self, tridiagonal_problem) -> None:
        """Values match numpy in ascending order."""
        d, e = tridiagonal_problem
        w = d.copy()
        info = tqlrat(w, e.copy())
        assert info == 8
        np.testing.assert_allclose(w, np.linalg.eigvalsh(_tridiagonal(d, e)), atol=1e-10)

    def test_stall(self) -> None:
        """A stall reports the converged prefix."""
        d = np.array([5.0, 2.0, 2.0, 2.0])
        info = tqlrat(d, np.array([0.0, 1.0, 1.0]), max_iterations=0)
        assert info == 1
        assert d[0] == 5.0


class TestPteqr:
    """Tests for the positive definite tridiagonal solver."""

    def test_positive_definite(self) -> None:
        """Eigenpairs of a diagonally dominant tridiagonal matrix."""
        d = np.array([4.0, 5.0, 6.0, 7.0])
        e = np.array([1.0, -1.0, 0.5])
        t = _tridiagonal(d, e)
        w, z, info = pteqr(d, e)
        assert info == 4
        np.testing.assert_allclose(w, np.linalg.eigvalsh(t), rtol=1e-12)
        np.testing.assert_allclose(t @ z, z * w, atol=1e-12)

    def test_values_only(self) -> None:
        """No vectors are returned when not requested."""
        w, z, info = pteqr(np.array([2.0, 2.0]), np.array([1.0]), compute_vectors=False)
        assert info == 2
        assert z is None
        np.testing.assert_allclose(w, [1.0, 3.0])

    def test_indefinite_fails(self) -> None:
        """A non-positive pivot returns no eigenvalues."""
        w, z, info = pteqr(np.array([1.0, -1.0]), np.array([0.5]))
        assert info < 2
        assert w.shape == (0,)
        assert z is None
