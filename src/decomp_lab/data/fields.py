"""
Scalar Field Definitions - Single Source of Truth

This module defines the scalar fields supported by the decompositions, their
associated norm types (the real type used for eigenvalues, singular values
and tolerances) and the handful of field-specific operations that differ
between real and complex arithmetic.

Algorithm bodies are written once and receive a ``FieldTraits`` object for
the operations that depend on the field (conjugation, real part, norm type).

References:
    - IEEE 754-2019 Standard for Floating-Point Arithmetic
    - Anderson et al.: "LAPACK Users' Guide" (3rd ed.), Section 2.2
    - Golub & Van Loan: "Matrix Computations" (4th ed.), Section 8.3
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
from numpy.typing import DTypeLike


class ScalarField(Enum):
    """Supported scalar fields."""

    FLOAT32 = "float32"
    FLOAT64 = "float64"
    COMPLEX64 = "complex64"  # single precision real and imaginary parts
    COMPLEX128 = "complex128"  # double precision real and imaginary parts


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Specification for a scalar field."""

    field: ScalarField
    dtype: Any
    norm_dtype: Any
    bits: int
    machine_epsilon: float
    is_complex: bool
    lapack_prefix: str  # s, d, c, z

    @property
    def bytes(self) -> int:
        """Number of bytes for one scalar of this field."""
        return self.bits // 8

    @property
    def norm_field(self) -> ScalarField:
        """Real field with the same precision."""
        return ScalarField(np.dtype(self.norm_dtype).name)


# =============================================================================
# FIELD SPECIFICATIONS
# =============================================================================
# Machine epsilon: 2^(-mantissa_bits) of the norm type.

_FIELD_SPECS: dict[ScalarField, FieldSpec] = {
    ScalarField.FLOAT32: FieldSpec(
        field=ScalarField.FLOAT32,
        dtype=np.float32,
        norm_dtype=np.float32,
        bits=32,
        machine_epsilon=1.19e-7,  # 2^(-23)
        is_complex=False,
        lapack_prefix="s",
    ),
    ScalarField.FLOAT64: FieldSpec(
        field=ScalarField.FLOAT64,
        dtype=np.float64,
        norm_dtype=np.float64,
        bits=64,
        machine_epsilon=2.22e-16,  # 2^(-52)
        is_complex=False,
        lapack_prefix="d",
    ),
    ScalarField.COMPLEX64: FieldSpec(
        field=ScalarField.COMPLEX64,
        dtype=np.complex64,
        norm_dtype=np.float32,
        bits=64,
        machine_epsilon=1.19e-7,
        is_complex=True,
        lapack_prefix="c",
    ),
    ScalarField.COMPLEX128: FieldSpec(
        field=ScalarField.COMPLEX128,
        dtype=np.complex128,
        norm_dtype=np.float64,
        bits=128,
        machine_epsilon=2.22e-16,
        is_complex=True,
        lapack_prefix="z",
    ),
}


# =============================================================================
# TOLERANCES
# =============================================================================
# Reconstruction/orthonormality tolerances are relative to ||A|| and scale
# with sqrt(n) * eps in practice; the values below cover n <= 200.
# max_ql_iterations: sweeps allowed per eigenvalue (LAPACK MAXIT = 30).

_TOLERANCES: dict[ScalarField, dict[str, float | int]] = {
    ScalarField.FLOAT32: {
        "reconstruction_tol": 1e-4,
        "orthonormality_tol": 1e-4,
        "max_ql_iterations": 30,
    },
    ScalarField.FLOAT64: {
        "reconstruction_tol": 1e-10,
        "orthonormality_tol": 1e-10,
        "max_ql_iterations": 30,
    },
    ScalarField.COMPLEX64: {
        "reconstruction_tol": 1e-4,
        "orthonormality_tol": 1e-4,
        "max_ql_iterations": 30,
    },
    ScalarField.COMPLEX128: {
        "reconstruction_tol": 1e-10,
        "orthonormality_tol": 1e-10,
        "max_ql_iterations": 30,
    },
}

_ALIASES: dict[str, ScalarField] = {
    "s": ScalarField.FLOAT32,
    "single": ScalarField.FLOAT32,
    "f4": ScalarField.FLOAT32,
    "d": ScalarField.FLOAT64,
    "double": ScalarField.FLOAT64,
    "f8": ScalarField.FLOAT64,
    "c": ScalarField.COMPLEX64,
    "c8": ScalarField.COMPLEX64,
    "z": ScalarField.COMPLEX128,
    "dcomplex": ScalarField.COMPLEX128,
    "c16": ScalarField.COMPLEX128,
}


# =============================================================================
# FIELD TRAITS
# =============================================================================


def _identity(x: Any) -> Any:
    return x


@dataclass(frozen=True, slots=True)
class FieldTraits:
    """Field-specific operations injected into generic algorithm bodies."""

    field: ScalarField
    dtype: Any
    norm_dtype: Any
    is_complex: bool
    conjugate: Callable[[Any], Any]
    """ConjugateOf: identity for real fields."""
    real_part: Callable[[Any], Any]
    """RealPartOf: identity for real fields."""
    eps: float

    def adjoint(self, a: np.ndarray) -> np.ndarray:
        """Conjugate transpose (plain transpose for real fields)."""
        return self.conjugate(a.T)


def _make_traits(spec: FieldSpec) -> FieldTraits:
    return FieldTraits(
        field=spec.field,
        dtype=spec.dtype,
        norm_dtype=spec.norm_dtype,
        is_complex=spec.is_complex,
        conjugate=np.conjugate if spec.is_complex else _identity,
        real_part=np.real if spec.is_complex else _identity,
        eps=float(np.finfo(spec.norm_dtype).eps),
    )


_FIELD_TRAITS: dict[ScalarField, FieldTraits] = {
    field: _make_traits(spec) for field, spec in _FIELD_SPECS.items()
}


# =============================================================================
# PUBLIC API
# =============================================================================


def get_spec(field: ScalarField | str) -> FieldSpec:
    """
    Get the full specification for a scalar field.

    Args:
        field: Scalar field (enum or string like 'float64', 'complex64', 'z')

    Returns:
        FieldSpec with all field properties

    Raises:
        ValueError: If field is unknown

    Example:
        >>> get_spec("complex64").norm_dtype
        <class 'numpy.float32'>
    """
    if isinstance(field, str):
        field = _parse_field(field)
    return _FIELD_SPECS[field]


def get_traits(field: ScalarField | str) -> FieldTraits:
    """Get the injected operations for a scalar field."""
    if isinstance(field, str):
        field = _parse_field(field)
    return _FIELD_TRAITS[field]


def get_dtype(field: ScalarField | str) -> DTypeLike:
    """Get the numpy dtype for a scalar field."""
    return get_spec(field).dtype


def get_norm_dtype(field: ScalarField | str) -> DTypeLike:
    """
    Get the norm type of a scalar field.

    Eigenvalues, singular values and tolerances are expressed in this type
    even when the matrix itself is complex.

    Example:
        >>> get_norm_dtype("complex128")
        <class 'numpy.float64'>
    """
    return get_spec(field).norm_dtype


def get_eps(field: ScalarField | str) -> float:
    """
    Get machine epsilon of the norm type of a scalar field.

    Example:
        >>> get_eps("float64")
        2.22e-16
    """
    return get_spec(field).machine_epsilon


def get_tolerance(
    field: ScalarField | str,
    tolerance_type: str = "reconstruction_tol",
) -> float | int:
    """
    Get a tolerance or iteration limit for a scalar field.

    Args:
        field: Scalar field
        tolerance_type: One of 'reconstruction_tol', 'orthonormality_tol',
            'max_ql_iterations'

    Returns:
        Tolerance value

    Example:
        >>> get_tolerance("float32", "max_ql_iterations")
        30
    """
    if isinstance(field, str):
        field = _parse_field(field)

    tols = _TOLERANCES[field]
    if tolerance_type not in tols:
        valid = list(tols.keys())
        raise ValueError(f"Unknown tolerance type: {tolerance_type}. Valid: {valid}")

    return tols[tolerance_type]


def field_of(obj: Any) -> ScalarField:
    """
    Determine the scalar field of an array, dtype, or packed matrix.

    Integer and boolean data promote to FLOAT64. Other dtypes outside the
    supported set (float16, longdouble, ...) are rejected.

    Raises:
        ValueError: If the dtype has no supported field
    """
    field = getattr(obj, "field", None)
    if isinstance(field, ScalarField):
        return field

    dtype = np.dtype(obj.dtype) if hasattr(obj, "dtype") else np.dtype(obj)
    if dtype.kind in "biu":
        return ScalarField.FLOAT64
    for candidate, spec in _FIELD_SPECS.items():
        if dtype == np.dtype(spec.dtype):
            return candidate

    valid = [f.value for f in ScalarField]
    raise ValueError(f"Unknown scalar field for dtype '{dtype}'. Valid: {valid}")


def as_field_array(a: Any, field: ScalarField | None = None) -> np.ndarray:
    """Convert ``a`` to an ndarray of a supported field (copying)."""
    a = np.asarray(a)
    if field is None:
        field = field_of(a)
    return np.array(a, dtype=get_dtype(field))


def list_available_fields() -> list[ScalarField]:
    """List all scalar fields, real fields first."""
    return [
        ScalarField.FLOAT32,
        ScalarField.FLOAT64,
        ScalarField.COMPLEX64,
        ScalarField.COMPLEX128,
    ]


# =============================================================================
# INTERNAL HELPERS
# =============================================================================


def _parse_field(name: str) -> ScalarField:
    """Parse a string into a ScalarField enum."""
    normalized = name.lower().replace("-", "").replace("_", "").replace(" ", "")

    for field in ScalarField:
        if field.value == normalized:
            return field
    if normalized in _ALIASES:
        return _ALIASES[normalized]

    valid = [f.value for f in ScalarField]
    raise ValueError(f"Unknown scalar field: '{name}'. Valid: {valid}")
