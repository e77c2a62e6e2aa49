"""
The state that belongs to a single continuation run.

A ContinuationContext is created at the start of a run and owned by it. It
binds the system to the run's settings and statistics and provides the
derivatives the drivers need, substituting central finite differences where the
system has no analytic version.
"""

from __future__ import annotations

import numpy as np

from autocont.core.config import ContinuationParams
from autocont.core.errors import InvalidParameter
from autocont.core.solution import ComputationStats
from autocont.core.solvers import AbstractNewtonSolver, NewtonSolver
from autocont.core.system import System
from autocont.core.types import Array, ArrayLike, Matrix


class ContinuationContext:
    """Per-run binding of a system, its settings and the run's statistics."""

    def __init__(self, system: System, params: ContinuationParams, stats: ComputationStats | None = None) -> None:
        #: the system whose equilibria are continued
        self.system = system
        #: the (read-only) settings of the run
        self.params = params
        #: the counters of the run
        self.stats = stats if stats is not None else ComputationStats()
        #: the number of state variables
        self.ndofs = int(system.dimension())

    def check_state(self, x: ArrayLike) -> Array:
        """Convert x to a state vector and make sure its size matches the system."""
        x = np.array(x, dtype=float).ravel()
        if x.size != self.ndofs:
            raise InvalidParameter(f"State of size {x.size} does not match system dimension {self.ndofs}")
        return x

    def residual(self, x: Array, p: float) -> Array:
        """The right-hand side of the system, i.e. the equilibrium residual."""
        return np.atleast_1d(np.asarray(self.system.rhs(x, p), dtype=float))

    def state_jacobian(self, x: Array, p: float) -> Matrix:
        """
        The Jacobian d rhs / dx, analytic if the system has one, else from
        central differences with step fd_epsilon.
        """
        if self.system.has_jacobian:
            return np.atleast_2d(np.asarray(self.system.jacobian(x, p), dtype=float))
        eps = self.params.fd_epsilon
        N = x.size
        J = np.zeros((N, N))
        x1 = np.array(x, dtype=float)
        # perturb every degree of freedom and calculate the columns using central FD
        for i in range(N):
            k = x1[i]
            x1[i] = k + eps
            f1 = self.residual(x1, p)
            x1[i] = k - eps
            f2 = self.residual(x1, p)
            J[:, i] = (f1 - f2) / (2 * eps)
            x1[i] = k
        return J

    def parameter_derivative(self, x: Array, p: float) -> Array:
        """The derivative d rhs / dp, analytic if available, else from central differences."""
        if self.system.has_parameter_derivative:
            return np.atleast_1d(np.asarray(self.system.parameter_derivative(x, p), dtype=float))
        eps = self.params.fd_epsilon
        return (self.residual(x, p + eps) - self.residual(x, p - eps)) / (2 * eps)

    def newton_solver(self) -> NewtonSolver:
        """A fresh Newton solver configured with the run's tolerances."""
        return NewtonSolver(self.params.newton_tol, self.params.newton_max_iter)

    def run_newton(self, solver: AbstractNewtonSolver, f, u0: Array, jac, norm=None) -> Array:
        """Run a Newton solver and account for its iterations, also when it fails."""
        try:
            return solver.solve(f, u0, jac, norm=norm)
        finally:
            self.stats.record_newton(solver.niterations)

    def solve_equilibrium(
        self, x0: ArrayLike, p: float, solver: AbstractNewtonSolver | None = None
    ) -> tuple[Array, int, float]:
        """
        Solve rhs(x, p) = 0 for x at fixed parameter p, starting from x0. Uses the
        given Newton solver or, by default, a fresh one with the run's tolerances.

        Returns
        -------
        tuple[Array, int, float]
            The equilibrium, the number of Newton iterations and the final residual norm.
        """
        if solver is None:
            solver = self.newton_solver()
        x = self.run_newton(
            solver,
            lambda u: self.residual(u, p),
            self.check_state(x0),
            lambda u: self.state_jacobian(u, p),
        )
        residual_norm = float(np.linalg.norm(self.residual(x, p)))
        return x, solver.niterations or 0, residual_norm
