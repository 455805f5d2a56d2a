"""Elementary numerical kernels.

Small, dimension-explicit routines that the decompositions are built from:

- householder: elementary reflector generation (LAPACK xLARFG convention)
- apply_householder_left / apply_householder_right: reflector application
- givens / rotate_rows / rotate_cols: complex plane rotations with real cosine
- tql2: implicit QL iteration with Wilkinson shifts, optional vectors
- tqlrat: square-root free rational QL iteration, eigenvalues only
- pteqr: positive definite tridiagonal eigenproblem via bidiagonal SVD

Iterative kernels return an ``info`` count: ``n`` on success, ``k < n`` when
only the first ``k`` eigenvalues converged. Invalid arguments raise
KernelError rather than returning a negative ``info``.

References:
- Wilkinson & Reinsch: "Handbook for Automatic Computation II" (1971),
  procedures tql2 and ratqr
- Smith et al.: "Matrix Eigensystem Routines - EISPACK Guide" (1976)
- Anderson et al.: "LAPACK Users' Guide" (3rd ed.), xLARFG, xPTEQR
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import numpy as np
import scipy.linalg

from decomp_lab.errors import KernelError

if TYPE_CHECKING:
    from numpy.typing import NDArray


# =============================================================================
# REFLECTORS AND ROTATIONS
# =============================================================================


def householder(x: NDArray[Any]) -> tuple[NDArray[Any], Any, float]:
    """Generate an elementary reflector.

    Returns ``(v, tau, beta)`` with ``v[0] == 1`` such that
    ``H = I - tau * v @ v^H`` satisfies ``H^H @ x = [beta, 0, ..., 0]``.
    ``beta`` is always real; ``tau == 0`` means ``H = I``.

    Args:
        x: Non-empty 1-D vector (real or complex).
    """
    if x.ndim != 1 or x.size == 0:
        raise KernelError("householder", -1, f"expected non-empty vector, got {x.shape}")

    v = x.copy()
    alpha = x[0]
    xnorm = float(np.linalg.norm(x[1:])) if x.size > 1 else 0.0
    alphr = float(np.real(alpha))
    alphi = float(np.imag(alpha))
    v[0] = 1

    if xnorm == 0.0 and alphi == 0.0:
        return v, v.dtype.type(0), alphr

    beta = -math.copysign(math.hypot(alphr, alphi, xnorm), alphr)
    if np.iscomplexobj(v):
        tau = v.dtype.type(complex((beta - alphr) / beta, -alphi / beta))
    else:
        tau = v.dtype.type((beta - alphr) / beta)
    v[1:] = x[1:] / (alpha - beta)
    return v, tau, beta


def apply_householder_left(c: NDArray[Any], v: NDArray[Any], tau: Any) -> None:
    """In place ``c <- (I - tau v v^H) c``; pass ``conj(tau)`` for ``H^H``."""
    if tau == 0:
        return
    if c.ndim == 1:
        c -= (tau * (v.conj() @ c)) * v
    else:
        c -= tau * np.outer(v, v.conj() @ c)


def apply_householder_right(c: NDArray[Any], v: NDArray[Any], tau: Any) -> None:
    """In place ``c <- c (I - tau v v^H)``."""
    if tau == 0:
        return
    c -= tau * np.outer(c @ v, v.conj())


def givens(x: Any, y: Any) -> tuple[float, Any]:
    """Plane rotation zeroing ``y``.

    Returns ``(c, s)`` with real ``c`` such that
    ``[[c, s], [-conj(s), c]] @ [x, y] = [r, 0]``.
    """
    ax = abs(x)
    ay = abs(y)
    if ay == 0:
        return 1.0, 0.0
    if ax == 0:
        return 0.0, 1.0
    r = math.hypot(ax, ay)
    s = (x / ax) * np.conj(y) / r
    return ax / r, s


def rotate_rows(a: NDArray[Any], p: int, q: int, c: float, s: Any, cols: slice) -> None:
    """Apply ``G = [[c, s], [-conj(s), c]]`` to rows p, q of ``a``."""
    row_p = a[p, cols].copy()
    row_q = a[q, cols]
    a[p, cols] = c * row_p + s * row_q
    a[q, cols] = c * row_q - np.conj(s) * row_p


def rotate_cols(a: NDArray[Any], p: int, q: int, c: float, s: Any, rows: slice) -> None:
    """Apply ``G^H`` from the right to columns p, q of ``a``."""
    col_p = a[rows, p].copy()
    col_q = a[rows, q]
    a[rows, p] = c * col_p + np.conj(s) * col_q
    a[rows, q] = c * col_q - s * col_p


# =============================================================================
# SYMMETRIC TRIDIAGONAL EIGENVALUE KERNELS
# =============================================================================


def _check_tridiagonal(routine: str, d: NDArray[Any], e: NDArray[Any]) -> int:
    n = d.shape[0]
    if d.ndim != 1:
        raise KernelError(routine, -1, "diagonal must be a vector")
    if e.ndim != 1 or e.shape[0] != max(n - 1, 0):
        raise KernelError(routine, -2, f"off-diagonal length {e.shape[0]} for n={n}")
    return n


def _sort_prefix(w: NDArray[Any], z: NDArray[Any] | None, k: int) -> None:
    order = np.argsort(w[:k], kind="stable")
    w[:k] = w[:k][order]
    if z is not None:
        z[:, :k] = z[:, :k][:, order]


def tql2(
    d: NDArray[np.floating],
    e: NDArray[np.floating],
    z: NDArray[np.floating] | None = None,
    *,
    max_iterations: int = 30,
    eps: float = 2.22e-16,
) -> int:
    """Implicit QL iteration for a symmetric tridiagonal matrix.

    Overwrites ``d`` with eigenvalues and, when ``z`` is given (n x n,
    usually the identity), accumulates the rotations into its columns.
    The first ``info`` entries of ``d`` (and columns of ``z``) are final and
    sorted ascending.

    Args:
        d: Diagonal (length n), overwritten.
        e: Off-diagonal (length n-1), destroyed.
        z: Optional n x n matrix, overwritten with eigenvectors.
        max_iterations: QL sweeps allowed per eigenvalue.
        eps: Relative convergence threshold.

    Returns:
        info: number of converged eigenvalues (n on success).
    """
    n = _check_tridiagonal("tql2", d, e)
    if z is not None and z.shape[0] != z.shape[1]:
        raise KernelError("tql2", -3, f"z must be square, got {z.shape}")
    if z is not None and z.shape[1] != n:
        raise KernelError("tql2", -3, f"z has {z.shape[1]} columns, expected {n}")

    dd = [float(x) for x in d]
    ee = [float(x) for x in e] + [0.0]

    f = 0.0
    tst1 = 0.0
    info = n
    for l in range(n):
        tst1 = max(tst1, abs(dd[l]) + abs(ee[l]))
        m = l
        while m < n - 1 and abs(ee[m]) > eps * tst1:
            m += 1

        if m > l:
            iterations = 0
            while True:
                if iterations >= max_iterations:
                    info = l
                    break
                iterations += 1

                # Wilkinson shift from the leading 2x2 block
                g = dd[l]
                p = (dd[l + 1] - g) / (2.0 * ee[l])
                r = math.copysign(math.hypot(p, 1.0), p)
                dd[l] = ee[l] / (p + r)
                dd[l + 1] = ee[l] * (p + r)
                dl1 = dd[l + 1]
                h = g - dd[l]
                for i in range(l + 2, n):
                    dd[i] -= h
                f += h

                # QL sweep from m-1 down to l
                p = dd[m]
                c = c2 = c3 = 1.0
                el1 = ee[l + 1]
                s = s2 = 0.0
                for i in range(m - 1, l - 1, -1):
                    c3 = c2
                    c2 = c
                    s2 = s
                    g = c * ee[i]
                    h = c * p
                    r = math.hypot(p, ee[i])
                    ee[i + 1] = s * r
                    s = ee[i] / r
                    c = p / r
                    p = c * dd[i] - s * g
                    dd[i + 1] = h + s * (c * g + s * dd[i])
                    if z is not None:
                        zi = z[:, i].copy()
                        zi1 = z[:, i + 1].copy()
                        z[:, i + 1] = s * zi + c * zi1
                        z[:, i] = c * zi - s * zi1
                p = -s * s2 * c3 * el1 * ee[l] / dl1
                ee[l] = s * p
                dd[l] = c * p
                if abs(ee[l]) <= eps * tst1:
                    break
            if info < n:
                break

        dd[l] += f
        ee[l] = 0.0

    d[:] = dd
    e[:] = ee[:-1]
    _sort_prefix(d, z, info)
    return info


def tqlrat(
    d: NDArray[np.floating],
    e: NDArray[np.floating],
    *,
    max_iterations: int = 30,
    eps: float = 2.22e-16,
) -> int:
    """Rational QL iteration (no square roots in the inner loop).

    Works on the squared off-diagonal and never forms rotations, so no
    eigenvectors can be produced. On return the first ``info`` entries of
    ``d`` are eigenvalues in ascending order; when ``info < n`` they are
    correct but not necessarily the smallest.

    Returns:
        info: number of converged eigenvalues (n on success).
    """
    n = _check_tridiagonal("tqlrat", d, e)

    dd = [float(x) for x in d]
    e2 = [float(x) * float(x) for x in e] + [0.0]

    f = 0.0
    t = 0.0
    b = 0.0
    c = 0.0
    for l in range(n):
        h = abs(dd[l]) + math.sqrt(e2[l])
        if t <= h:
            t = h
            b = eps * t
            c = b * b

        m = l
        while m < n - 1 and e2[m] > c:
            m += 1

        if m != l:
            iterations = 0
            while True:
                if iterations >= max_iterations:
                    d[:l] = dd[:l]
                    return l
                iterations += 1

                l1 = l + 1
                s = math.sqrt(e2[l])
                g = dd[l]
                p = (dd[l1] - g) / (2.0 * s)
                r = math.hypot(p, 1.0)
                dd[l] = s / (p + math.copysign(r, p))
                h = g - dd[l]
                for i in range(l1, n):
                    dd[i] -= h
                f += h

                g = dd[m]
                if g == 0.0:
                    g = b
                h = g
                s = 0.0
                for i in range(m - 1, l - 1, -1):
                    p = g * h
                    r = p + e2[i]
                    e2[i + 1] = s * r
                    s = e2[i] / r
                    dd[i + 1] = h + s * (h + dd[i])
                    g = dd[i] - e2[i] / g
                    if g == 0.0:
                        g = b
                    h = g * p / r
                e2[l] = s * g
                dd[l] = h

                # guard against underflow in the convergence test
                if h == 0.0 or abs(e2[l]) <= abs(c / h):
                    break
                e2[l] = h * e2[l]
                if e2[l] == 0.0:
                    break

        # insert into the already ordered prefix
        p = dd[l] + f
        i = l
        while i > 0 and p < dd[i - 1]:
            dd[i] = dd[i - 1]
            i -= 1
        dd[i] = p

    d[:] = dd
    return n


def pteqr(
    d: NDArray[np.floating],
    e: NDArray[np.floating],
    *,
    compute_vectors: bool = True,
) -> tuple[NDArray[np.floating], NDArray[np.floating] | None, int]:
    """Eigenpairs of a symmetric positive definite tridiagonal matrix.

    Factors ``T = L D L^T``, forms the bidiagonal ``B = L D^(1/2)`` so that
    ``T = B B^T``, and takes the eigenvalues as squared singular values of
    ``B`` (high relative accuracy). Eigenvectors are the left singular
    vectors.

    Returns:
        (w, z, info): ascending eigenvalues, eigenvectors (or None) and
        ``info == n`` on success. ``info < n`` is the position of the first
        non-positive pivot, or 0 when the SVD fails; ``w`` is then empty.
    """
    n = _check_tridiagonal("pteqr", d, e)
    empty = np.zeros(0, dtype=d.dtype)
    if n == 0:
        return empty, np.zeros((0, 0), dtype=d.dtype) if compute_vectors else None, 0

    dd = d.astype(np.float64)
    ee = e.astype(np.float64)
    pivots = np.empty(n)
    multipliers = np.empty(max(n - 1, 0))
    pivots[0] = dd[0]
    for i in range(n - 1):
        if not pivots[i] > 0.0:
            return empty, None, i
        multipliers[i] = ee[i] / pivots[i]
        pivots[i + 1] = dd[i + 1] - multipliers[i] * ee[i]
    if not pivots[n - 1] > 0.0:
        return empty, None, n - 1

    root = np.sqrt(pivots)
    bidiagonal = np.diag(root) + np.diag(multipliers * root[:-1], -1)
    try:
        if compute_vectors:
            u, sigma, _ = scipy.linalg.svd(bidiagonal, lapack_driver="gesvd")
        else:
            sigma = scipy.linalg.svd(bidiagonal, compute_uv=False, lapack_driver="gesvd")
    except np.linalg.LinAlgError:
        return empty, None, 0

    # singular values come back descending
    w = (sigma[::-1] ** 2).astype(d.dtype)
    z = u[:, ::-1].astype(d.dtype) if compute_vectors else None
    return w, z, n


__all__ = [
    "apply_householder_left",
    "apply_householder_right",
    "givens",
    "householder",
    "pteqr",
    "rotate_cols",
    "rotate_rows",
    "tql2",
    "tqlrat",
]
