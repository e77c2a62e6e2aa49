"""
Dense linear algebra kernels: Gaussian elimination, QR decomposition and
Hessenberg reduction. All routines work on copies and never modify their input.
"""

from __future__ import annotations

import numpy as np

from .errors import InvalidParameter, SingularJacobian
from .types import Array, ArrayLike, Matrix


class LinearSolver:
    """
    Direct solver for dense square systems A*x = b using Gaussian elimination
    with partial pivoting. Nothing is cached between calls, every solve
    factorizes the matrix from scratch.
    """

    def __init__(self, pivot_tolerance: float = 1e-15) -> None:
        #: pivots with a magnitude below this value are considered zero
        self.pivot_tolerance = pivot_tolerance

    def solve(self, A: ArrayLike, b: ArrayLike) -> Array:
        """
        Solve the linear system A*x = b for x.

        Parameters
        ----------
        A
            Square matrix of shape (n, n).
        b
            Right-hand side of shape (n,).

        Returns
        -------
        Array
            The solution vector x.

        Raises
        ------
        SingularJacobian
            If the largest available pivot of a column is below the pivot tolerance.
        """
        A = np.array(A, dtype=float)
        b = np.array(b, dtype=float).ravel()
        n = b.size
        if A.shape != (n, n):
            raise InvalidParameter(f"Matrix of shape {A.shape} does not match right-hand side of size {n}")
        # augmented matrix [A|b]
        aug = np.hstack((A, b.reshape((n, 1))))
        # forward elimination
        for k in range(n):
            # partial pivoting: bring the largest entry of the active column up
            p = k + int(np.argmax(np.abs(aug[k:, k])))
            pivot = aug[p, k]
            if abs(pivot) < self.pivot_tolerance:
                raise SingularJacobian(abs(pivot), k)
            if p != k:
                aug[[k, p]] = aug[[p, k]]
            factors = aug[k + 1 :, k] / aug[k, k]
            aug[k + 1 :, k:] -= np.outer(factors, aug[k, k:])
        # back substitution
        x = np.zeros(n)
        for i in range(n - 1, -1, -1):
            x[i] = (aug[i, n] - np.dot(aug[i, i + 1 : n], x[i + 1 :])) / aug[i, i]
        return x


def solve_linear(A: ArrayLike, b: ArrayLike) -> Array:
    """Solve A*x = b with a default LinearSolver."""
    return LinearSolver().solve(A, b)


def qr_decompose(A: ArrayLike) -> tuple[Matrix, Matrix]:
    """
    QR decomposition by modified Gram-Schmidt orthogonalization.

    The columns of A are processed from left to right. If a column is linearly
    dependent on the previous ones, the corresponding diagonal entry of R is zero
    and Q is completed with a unit vector orthogonal to the previous columns,
    so that Q stays orthogonal in any case.

    Parameters
    ----------
    A
        Square matrix of shape (n, n).

    Returns
    -------
    tuple[Matrix, Matrix]
        The orthogonal matrix Q and the upper triangular matrix R with A = Q*R.
    """
    V = np.array(A, dtype=float)
    n = V.shape[0]
    if V.shape != (n, n):
        raise InvalidParameter(f"QR decomposition needs a square matrix, got shape {V.shape}")
    Q = np.zeros((n, n))
    R = np.zeros((n, n))
    # scale for detecting (numerically) dependent columns
    scale = max(float(np.max(np.abs(V))), 1.0) if n > 0 else 1.0
    for j in range(n):
        v = V[:, j]
        norm = np.linalg.norm(v)
        if norm > 1e-14 * scale:
            R[j, j] = norm
            Q[:, j] = v / norm
        else:
            Q[:, j] = _orthogonal_complement(Q[:, :j])
        # remove the new direction from all remaining columns
        for k in range(j + 1, n):
            R[j, k] = np.dot(Q[:, j], V[:, k])
            V[:, k] -= R[j, k] * Q[:, j]
    return Q, R


def _orthogonal_complement(Q: Matrix) -> Array:
    """Find a unit vector orthogonal to the (orthonormal) columns of Q."""
    n, m = Q.shape
    for i in range(n):
        e = np.zeros(n)
        e[i] = 1.0
        # orthogonalize twice for numerical safety
        for _ in range(2):
            e -= Q @ (Q.T @ e)
        norm = np.linalg.norm(e)
        if norm > 1e-8:
            return e / norm
    # unreachable for m < n
    raise SingularJacobian(0.0, m)


def hessenberg_reduce(A: ArrayLike) -> Matrix:
    """
    Reduce a square matrix to upper Hessenberg form by Householder reflections.

    The result is similar to A (same eigenvalues) and has zeros below the first
    sub-diagonal.
    """
    H = np.array(A, dtype=float)
    n = H.shape[0]
    for k in range(n - 2):
        x = H[k + 1 :, k].copy()
        alpha = np.linalg.norm(x)
        if alpha == 0.0:
            continue
        # choose the sign that avoids cancellation
        if x[0] > 0:
            alpha = -alpha
        v = x
        v[0] -= alpha
        vnorm = np.linalg.norm(v)
        if vnorm == 0.0:
            continue
        v /= vnorm
        # apply P = I - 2 v v^T from the left and from the right
        H[k + 1 :, :] -= 2.0 * np.outer(v, v @ H[k + 1 :, :])
        H[:, k + 1 :] -= 2.0 * np.outer(H[:, k + 1 :] @ v, v)
        H[k + 2 :, k] = 0.0
    return H
