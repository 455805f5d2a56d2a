"""Matrix generation utilities for decomposition experiments.

This module provides functions for creating symmetric/Hermitian matrices
with a prescribed spectrum, random band matrices and overdetermined
least-squares problems, all reproducible through a seed.

Key Features:
- Reproducible matrix generation with seed control
- Any supported scalar field (real or complex)
- Known ground truth (eigenvalues, solution) for verification

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), Section 8.1
- Stewart, G.W.: "The efficient generation of random orthogonal matrices
  with an application to condition estimators", SIAM J. Numer. Anal. (1980)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from decomp_lab.data.fields import ScalarField, get_spec

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


DEFAULT_SEED: int = 42
"""Default random seed for reproducible experiments."""


def _standard_normal(
    rng: np.random.Generator, shape: tuple[int, ...], field: ScalarField | str
) -> NDArray[Any]:
    if get_spec(field).is_complex:
        return rng.standard_normal(shape) + 1j * rng.standard_normal(shape)
    return rng.standard_normal(shape)


def create_random_unitary(
    n: int,
    field: ScalarField | str = ScalarField.FLOAT64,
    *,
    seed: int | None = None,
) -> NDArray[Any]:
    """Create a random orthogonal (real fields) or unitary (complex) matrix.

    The Q factor of a Gaussian matrix, with column phases fixed so the
    distribution is uniform (Haar).
    """
    rng = np.random.default_rng(seed)
    q, r = np.linalg.qr(_standard_normal(rng, (n, n), field))
    diag = np.diagonal(r)
    phases = np.where(diag == 0, 1, diag / np.where(diag == 0, 1, np.abs(diag)))
    return (q * phases).astype(get_spec(field).dtype)


def create_spectrum_matrix(
    eigenvalues: ArrayLike,
    field: ScalarField | str = ScalarField.FLOAT64,
    *,
    seed: int | None = None,
) -> NDArray[Any]:
    """Create a symmetric/Hermitian matrix with the given eigenvalues.

    Mathematical Construction:
        A = Q @ diag(λ) @ Q^H  where Q is random orthogonal/unitary

    Args:
        eigenvalues: Desired (real) eigenvalues.
        field: Scalar field of the result.
        seed: Random seed for reproducibility.

    Returns:
        n×n symmetric (real field) or Hermitian (complex field) matrix.

    Example:
        >>> A = create_spectrum_matrix([1.0, 2.0, 3.0], seed=42)
        >>> np.allclose(np.linalg.eigvalsh(A), [1.0, 2.0, 3.0])
        True
    """
    eigenvalues = np.asarray(eigenvalues, dtype=np.float64)
    q = create_random_unitary(eigenvalues.shape[0], field, seed=seed).astype(np.complex128)
    a = (q * eigenvalues) @ q.conj().T
    a = (a + a.conj().T) / 2
    if not get_spec(field).is_complex:
        a = a.real
    return a.astype(get_spec(field).dtype)


def create_linear_spectrum_matrix(
    n: int,
    condition_number: float,
    field: ScalarField | str = ScalarField.FLOAT64,
    *,
    seed: int | None = None,
) -> NDArray[Any]:
    """Create positive definite matrix with linearly spaced eigenvalues.

    Eigenvalue distribution: [1.0, ..., κ] (linearly spaced)

    Args:
        n: Matrix dimension.
        condition_number: Desired condition number κ = λ_max / λ_min.
        field: Scalar field of the result.
        seed: Random seed for reproducibility.

    Example:
        >>> A = create_linear_spectrum_matrix(100, condition_number=100, seed=42)
        >>> eigenvalues = np.linalg.eigvalsh(A)
        >>> print(f"κ = {eigenvalues[-1]/eigenvalues[0]:.2f}")
        κ = 100.00
    """
    return create_spectrum_matrix(np.linspace(1.0, condition_number, n), field, seed=seed)


def create_geometric_spectrum_matrix(
    n: int,
    condition_number: float,
    field: ScalarField | str = ScalarField.FLOAT64,
    *,
    seed: int | None = None,
) -> NDArray[Any]:
    """Create positive definite matrix with geometrically spaced eigenvalues.

    Eigenvalue distribution: λ_i = κ^((i-1)/(n-1))
    """
    return create_spectrum_matrix(np.geomspace(1.0, condition_number, n), field, seed=seed)


def create_band_matrix(
    n: int,
    half_bandwidth: int,
    field: ScalarField | str = ScalarField.FLOAT64,
    *,
    seed: int | None = None,
) -> NDArray[Any]:
    """Create a random symmetric/Hermitian band matrix as a full ndarray.

    Entries within ``half_bandwidth`` of the diagonal are Gaussian, the
    diagonal is real, everything else is zero.
    """
    if half_bandwidth < 0:
        msg = f"Bandwidth must be non-negative, got {half_bandwidth}"
        raise ValueError(msg)
    rng = np.random.default_rng(seed)
    a = np.triu(_standard_normal(rng, (n, n), field), 1)
    i, j = np.indices((n, n))
    a[j - i > half_bandwidth] = 0
    a = a + a.conj().T
    a[np.diag_indices(n)] = rng.standard_normal(n)
    return a.astype(get_spec(field).dtype)


@dataclass(frozen=True, slots=True)
class LeastSquaresProblem:
    """Overdetermined problem ``min ||A x - b||`` with known solution."""

    a: NDArray[Any]
    """m×n coefficient matrix of full column rank."""

    b: NDArray[Any]
    """Right-hand side ``A @ x_true + noise``."""

    x_true: NDArray[Any]
    """Solution used to build ``b``."""

    condition_number: float
    """Prescribed κ(A) = σ_max / σ_min."""

    seed: int
    """Random seed used for generation."""


def create_least_squares_problem(
    rows: int,
    cols: int,
    field: ScalarField | str = ScalarField.FLOAT64,
    *,
    condition_number: float = 10.0,
    noise: float = 1e-3,
    seed: int = DEFAULT_SEED,
) -> LeastSquaresProblem:
    """Create a least-squares problem with controlled conditioning.

    Mathematical Construction:
        A = U @ diag(σ) @ V^H  with σ geometrically spaced in [1, κ]
        b = A @ x_true + noise * r

    Args:
        rows: Number of equations (``rows >= cols``).
        cols: Number of unknowns.
        field: Scalar field of the problem.
        condition_number: Desired κ(A).
        noise: Scale of the residual added to ``b``.
        seed: Random seed (default: 42 for reproducibility).

    Example:
        >>> problem = create_least_squares_problem(20, 5)
        >>> problem.a.shape, problem.b.shape
        ((20, 5), (20,))
    """
    if rows < cols:
        msg = f"Expected rows >= cols, got {rows}x{cols}"
        raise ValueError(msg)

    rng = np.random.default_rng(seed)
    dtype = get_spec(field).dtype
    u, _ = np.linalg.qr(_standard_normal(rng, (rows, cols), field))
    v = create_random_unitary(cols, field, seed=seed + 1)
    sigma = np.geomspace(condition_number, 1.0, cols)
    a = (u * sigma) @ v.conj().T

    x_true = _standard_normal(rng, (cols,), field)
    b = a @ x_true + noise * _standard_normal(rng, (rows,), field)

    return LeastSquaresProblem(
        a=a.astype(dtype),
        b=b.astype(dtype),
        x_true=x_true.astype(dtype),
        condition_number=condition_number,
        seed=seed,
    )


__all__ = [
    "DEFAULT_SEED",
    "LeastSquaresProblem",
    "create_band_matrix",
    "create_geometric_spectrum_matrix",
    "create_least_squares_problem",
    "create_linear_spectrum_matrix",
    "create_random_unitary",
    "create_spectrum_matrix",
]
