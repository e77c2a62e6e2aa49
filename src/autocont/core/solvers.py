"""Newton solvers for nonlinear root finding and an eigensolver for dense matrices."""

from __future__ import annotations

import logging
from collections.abc import Callable

import numpy as np
import scipy.linalg
import scipy.optimize

from .errors import ConvergenceFailed, InvalidParameter
from .linear_solver import LinearSolver, hessenberg_reduce, qr_decompose
from .types import Array, ArrayLike, ComplexArray, Matrix

logger = logging.getLogger(__name__)


class AbstractNewtonSolver:
    """
    Abstract base class for all Newton solvers.

    Newton solvers find the root of a (possibly high-dimensional, nonlinear)
    function f(u) = 0 using a stepping procedure. An initial guess u0 for the
    solution and the Jacobian J = df/du need to be supplied.
    """

    def __init__(self, convergence_tolerance: float = 1e-10, max_iterations: int = 50) -> None:
        """Initialize the solver."""
        #: maximum number of steps during solve
        self.max_iterations = max_iterations
        #: absolute convergence tolerance for the norm of the residuals
        self.convergence_tolerance = convergence_tolerance
        # internal storage for the number of iterations taken during last solve
        self._iteration_count: int | None = None

    def solve(
        self,
        f: Callable[[Array], Array],
        u0: ArrayLike,
        jac: Callable[[Array], Matrix],
        norm: Callable[[Array], float] | None = None,
    ) -> Array:
        """
        Solve the system f(u) = 0 with the initial guess u0 and the Jacobian jac(u).

        Parameters
        ----------
        f
            The residual function.
        u0
            The initial guess.
        jac
            Function returning the Jacobian matrix df/du.
        norm
            Norm of the residuals used in the convergence test. Defaults to self.norm.

        Returns
        -------
        Array
            The solution vector.
        """
        raise NotImplementedError("'AbstractNewtonSolver' is an abstract base class - do not use for actual solving!")

    @property
    def niterations(self) -> int | None:
        """Access to the number of iterations taken in the last Newton solve."""
        return self._iteration_count

    def norm(self, residuals: Array) -> float:
        """Norm used for checking the residuals for convergence."""
        return float(np.linalg.norm(residuals))

    def throw_no_convergence_error(self, res: float | None = None) -> None:
        """Throw an error when the solver failed to converge."""
        raise ConvergenceFailed(self.max_iterations, res, type(self).__name__)


class NewtonSolver(AbstractNewtonSolver):
    """
    Reference implementation of a simple 'text book' Newton solver.

    Each iteration evaluates the residuals, accepts the current iterate if their
    norm is below the tolerance and otherwise solves J*du = f(u) by Gaussian
    elimination and updates u -> u - du. The iteration in which convergence is
    detected counts as one iteration.
    A singular Jacobian is not retried but propagated as SingularJacobian.
    """

    def __init__(self, convergence_tolerance: float = 1e-10, max_iterations: int = 50) -> None:
        super().__init__(convergence_tolerance, max_iterations)
        #: the linear solver used for the Newton steps
        self.linear_solver = LinearSolver()

    def solve(self, f, u0, jac, norm=None) -> Array:
        self._iteration_count = 0
        norm = norm if norm is not None else self.norm
        u = np.array(u0, dtype=float)
        err = None
        while self._iteration_count < self.max_iterations:
            self._iteration_count += 1
            res = np.atleast_1d(f(u))
            err = norm(res)
            logger.debug("Newton step #%d, residual norm: %.2e", self._iteration_count, err)
            # if system converged to new solution, return solution
            if err < self.convergence_tolerance:
                return u
            # else do a classical Newton step
            du = self.linear_solver.solve(jac(u), res)
            u = u - du
        # if we didn't converge, throw an error
        self.throw_no_convergence_error(err)
        return u  # unreachable


class ScipyNewtonSolver(AbstractNewtonSolver):
    """
    A Newton solver that uses scipy.optimize.root for solving.

    The method (algorithm) to be used can be adjusted with the attribute 'method'.
    """

    def __init__(self, convergence_tolerance: float = 1e-10, max_iterations: int = 50) -> None:
        super().__init__(convergence_tolerance, max_iterations)
        #: choose from the different methods of scipy.optimize.root that use a Jacobian
        self.method = "hybr"

    def solve(self, f, u0, jac=None, norm=None) -> Array:
        opt_result = scipy.optimize.root(f, np.array(u0, dtype=float), jac=jac, method=self.method, tol=self.convergence_tolerance)
        # fetch number of iterations, residuals and status
        err = (norm if norm is not None else self.norm)(opt_result.fun)
        self._iteration_count = int(opt_result.nit if "nit" in opt_result.keys() else opt_result.nfev)
        # if we didn't converge, throw an error
        if not opt_result.success or err >= self.convergence_tolerance:
            self.throw_no_convergence_error(err)
        logger.debug("ScipyNewtonSolver converged after %d iterations, error: %.2e", self._iteration_count, err)
        # return the result vector
        return np.asarray(opt_result.x, dtype=float)


class EigenSolver:
    """
    Eigenvalues of dense real square matrices.

    The default method 'qr' is a self-contained shifted QR iteration: the matrix is
    (optionally) reduced to Hessenberg form, then repeatedly shifted by its trailing
    diagonal entry, factorized by modified Gram-Schmidt, recombined as R*Q and
    shifted back, until all sub-diagonal entries vanish or the iteration budget of
    100*n steps is used up. While the matrix is not yet quasi-triangular, every
    tenth iteration uses an exceptional shift, otherwise the iteration can cycle
    forever, e.g. on permutation matrices. Non-convergence is not an error, the
    best available matrix is used: the flag 'converged' is then False and a
    warning is logged. Eigenvalues are read from the 1x1 and 2x2 diagonal blocks.

    The method 'lapack' delegates to scipy.linalg.eigvals instead.
    """

    def __init__(self, method: str = "qr", hessenberg: bool = True) -> None:
        """Initialize the EigenSolver."""
        #: either 'qr' (own QR iteration) or 'lapack' (scipy)
        self.method = method
        #: reduce to upper Hessenberg form before the QR iteration?
        self.hessenberg = hessenberg
        #: sub-diagonal entries below this magnitude are considered zero
        self.tol = 1e-10
        #: the maximum number of QR iterations per row of the matrix
        self.iterations_per_row = 100
        #: every this many iterations an exceptional shift is used while H is not quasi-triangular
        self.exceptional_shift_interval = 10
        #: number of QR iterations taken in the latest computation
        self.latest_iterations: int | None = None
        #: did the latest QR iteration reach quasi-triangular form?
        self.converged: bool | None = None
        #: results of the latest eigenvalue computation
        self.latest_eigenvalues: ComplexArray | None = None

    def solve(self, A: ArrayLike) -> ComplexArray:
        """
        Compute all eigenvalues of the square matrix A.

        Parameters
        ----------
        A
            Real square matrix of shape (n, n).

        Returns
        -------
        ComplexArray
            One complex eigenvalue per row, not sorted. Complex eigenvalues come
            in conjugate pairs.
        """
        A = np.array(A, dtype=float)
        if A.ndim != 2 or A.shape[0] != A.shape[1]:
            raise InvalidParameter(f"Eigenvalues need a square matrix, got shape {A.shape}")
        if self.method == "lapack":
            eigenvalues = np.asarray(scipy.linalg.eigvals(A), dtype=complex)
            self.converged = True
        elif self.method == "qr":
            eigenvalues = self._qr_eigenvalues(A)
        else:
            raise InvalidParameter(f"Unknown eigenvalue method '{self.method}'")
        self.latest_eigenvalues = eigenvalues
        return eigenvalues

    def _qr_eigenvalues(self, A: Matrix) -> ComplexArray:
        n = A.shape[0]
        self.latest_iterations = 0
        self.converged = True
        if n == 0:
            return np.array([], dtype=complex)
        if n == 1:
            return np.array([complex(A[0, 0], 0.0)])
        if n == 2:
            return eigenvalues_2x2(A)
        H = hessenberg_reduce(A) if self.hessenberg else A.copy()
        identity = np.eye(n)
        for iteration in range(self.iterations_per_row * n):
            mu = H[-1, -1]
            if (iteration + 1) % self.exceptional_shift_interval == 0 and not self._is_quasi_triangular(H):
                # ad hoc shift, breaks cycles of the trailing-entry shift (e.g. permutation matrices)
                mu += 0.75 * float(np.max(np.abs(np.diag(H, k=-1))))
            Q, R = qr_decompose(H - mu * identity)
            H = R @ Q + mu * identity
            self.latest_iterations = iteration + 1
            if np.all(np.abs(np.diag(H, k=-1)) < self.tol):
                break
        self.converged = self._is_quasi_triangular(H)
        if not self.converged:
            logger.warning(
                "QR iteration stalled after %d iterations, eigenvalues may be inaccurate", self.latest_iterations
            )
        return self._extract_eigenvalues(H)

    def _is_quasi_triangular(self, H: Matrix) -> bool:
        """Are all diagonal blocks of H of size 1x1 or 2x2?"""
        nonzero = np.abs(np.diag(H, k=-1)) >= self.tol
        # two neighboring nonzero sub-diagonal entries enclose a block of size >= 3
        return not bool(np.any(nonzero[:-1] & nonzero[1:]))

    def _extract_eigenvalues(self, H: Matrix) -> ComplexArray:
        """Read the eigenvalues of a quasi-upper-triangular matrix from its diagonal blocks."""
        n = H.shape[0]
        eigenvalues: list[complex] = []
        i = 0
        while i < n:
            if i == n - 1 or abs(H[i + 1, i]) < self.tol:
                # 1x1 block: real eigenvalue
                eigenvalues.append(complex(H[i, i], 0.0))
                i += 1
            else:
                # 2x2 block: real pair or complex conjugate pair
                eigenvalues.extend(eigenvalues_2x2(H[i : i + 2, i : i + 2]))
                i += 2
        return np.array(eigenvalues, dtype=complex)


def eigenvalues_2x2(A: ArrayLike) -> ComplexArray:
    """
    Closed-form eigenvalues of a real 2x2 matrix from its trace t and determinant d.

    For a non-negative discriminant t^2 - 4d the eigenvalues (t +- sqrt(disc))/2 are
    real, otherwise they form the conjugate pair t/2 +- i*sqrt(-disc)/2.
    """
    A = np.asarray(A, dtype=float)
    t = A[0, 0] + A[1, 1]
    d = A[0, 0] * A[1, 1] - A[0, 1] * A[1, 0]
    disc = t * t - 4.0 * d
    if disc >= 0:
        root = np.sqrt(disc)
        return np.array([complex((t + root) / 2, 0.0), complex((t - root) / 2, 0.0)])
    root = np.sqrt(-disc)
    return np.array([complex(t / 2, root / 2), complex(t / 2, -root / 2)])


def eigenvalues(A: ArrayLike) -> ComplexArray:
    """Compute the eigenvalues of A with a default EigenSolver."""
    return EigenSolver().solve(A)
