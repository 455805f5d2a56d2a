"""Numerical algorithms module.

This module contains implementations of:
- Elementary kernels (Householder, Givens, QL iterations)
- Tridiagonal reduction of dense and band symmetric/Hermitian matrices
- Eigen-solver strategies and the eigen-decomposition pipeline
- QR decomposition with optional column pivoting
- Least-squares solvers (Cholesky, QR, SVD)
- Matrix generation utilities with controlled spectra
"""

from decomp_lab.algorithms.eigen import EigenDecomposition, eigen_decompose
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
from decomp_lab.algorithms.least_squares import (
    CholeskyLeastSquares,
    LeastSquaresKind,
    LeastSquaresSolver,
    QRLeastSquares,
    SVDLeastSquares,
    create_solver,
)
from decomp_lab.algorithms.matrices import (
    DEFAULT_SEED,
    LeastSquaresProblem,
    create_band_matrix,
    create_geometric_spectrum_matrix,
    create_least_squares_problem,
    create_linear_spectrum_matrix,
    create_random_unitary,
    create_spectrum_matrix,
)
from decomp_lab.algorithms.qr import QRCalculator, QRDecomposition, QRDecompositionServer
from decomp_lab.algorithms.tridiagonal import (
    BandTridiagonalDecomposition,
    DenseTridiagonalDecomposition,
    TridiagonalDecomposition,
    reduce_to_tridiagonal,
)

__all__ = [
    # Eigen-decomposition
    "EigenDecomposition",
    "eigen_decompose",
    # Solver strategies
    "EigenSolverKind",
    "EigenSolverStrategy",
    "FullQRStrategy",
    "IndexRangeStrategy",
    "PositiveDefiniteStrategy",
    "RootFreeStrategy",
    "ValueRangeStrategy",
    "create_strategy",
    # Least squares
    "CholeskyLeastSquares",
    "LeastSquaresKind",
    "LeastSquaresSolver",
    "QRLeastSquares",
    "SVDLeastSquares",
    "create_solver",
    # Matrix generation
    "DEFAULT_SEED",
    "LeastSquaresProblem",
    "create_band_matrix",
    "create_geometric_spectrum_matrix",
    "create_least_squares_problem",
    "create_linear_spectrum_matrix",
    "create_random_unitary",
    "create_spectrum_matrix",
    # QR
    "QRCalculator",
    "QRDecomposition",
    "QRDecompositionServer",
    # Tridiagonal reduction
    "BandTridiagonalDecomposition",
    "DenseTridiagonalDecomposition",
    "TridiagonalDecomposition",
    "reduce_to_tridiagonal",
]
