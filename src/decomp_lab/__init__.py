"""Decomp Lab: symmetric/Hermitian eigen-decomposition, QR and least squares."""

__version__ = "0.1.0"

from decomp_lab.algorithms.eigen import EigenDecomposition, eigen_decompose
from decomp_lab.algorithms.least_squares import create_solver
from decomp_lab.algorithms.qr import QRDecomposition
from decomp_lab.data.fields import ScalarField, get_dtype, get_eps, get_norm_dtype

__all__ = [
    "__version__",
    "EigenDecomposition",
    "QRDecomposition",
    "ScalarField",
    "create_solver",
    "eigen_decompose",
    "get_dtype",
    "get_eps",
    "get_norm_dtype",
]
