"""Drivers for natural-parameter and pseudo-arclength continuation."""

from __future__ import annotations

import logging

import numpy as np

from autocont.core.config import ContinuationParams
from autocont.core.errors import ContinuationError, SingularJacobian, StepTooSmall
from autocont.core.linear_solver import LinearSolver
from autocont.core.solution import BifurcationPoint, ContinuationBranch, SolutionPoint
from autocont.core.solvers import AbstractNewtonSolver, EigenSolver
from autocont.core.stability import StabilityClassifier
from autocont.core.system import System
from autocont.core.types import Array, ArrayLike, ComplexArray

from .bifurcations import count_unstable, critical_eigenvalues, detect_bifurcation
from .context import ContinuationContext

logger = logging.getLogger(__name__)


class ContinuationStepper:
    """
    Abstract base class for all parameter continuation drivers.

    A driver takes a system, an initial state and the settings of the run and
    returns the complete branch. Drivers keep no state between runs, everything
    that belongs to a run lives in its ContinuationContext.
    """

    #: name given to the branches computed by this driver
    branch_name = "continuation"

    def __init__(
        self, eigen_solver: EigenSolver | None = None, newton_solver: AbstractNewtonSolver | None = None
    ) -> None:
        #: classifies the stability of every accepted point
        self.stability = StabilityClassifier(eigen_solver)
        #: the Newton solver for all nonlinear solves, if None a NewtonSolver
        #: with the run's newton_tol and newton_max_iter is used
        self.newton_solver = newton_solver

    def run(self, system: System, initial_state: ArrayLike, params: ContinuationParams) -> ContinuationBranch:
        """Trace the branch of equilibria starting from initial_state at params.par_start."""
        raise NotImplementedError(
            "'ContinuationStepper' is an abstract base class - do not use for actual parameter continuation!"
        )

    def _new_branch(self, ctx: ContinuationContext) -> ContinuationBranch:
        return ContinuationBranch(
            name=self.branch_name,
            parameter_name=ctx.params.parameter,
            variables=tuple(ctx.system.variable_name(i) for i in range(ctx.ndofs)),
            stats=ctx.stats,
        )

    def _newton_solver(self, ctx: ContinuationContext) -> AbstractNewtonSolver:
        return self.newton_solver if self.newton_solver is not None else ctx.newton_solver()

    def _classify(self, ctx: ContinuationContext, x: Array, p: float) -> tuple[ComplexArray, bool]:
        return self.stability.classify(ctx.state_jacobian(x, p))

    def _append(
        self,
        ctx: ContinuationContext,
        branch: ContinuationBranch,
        x: Array,
        p: float,
        residual_norm: float,
        arclength: float = 0.0,
        tangent: Array | None = None,
    ) -> SolutionPoint:
        """Classify a converged point, check it for bifurcations and append it to the branch."""
        eigenvalues, stable = self._classify(ctx, x, p)
        bifurcation = None
        if ctx.params.detect_bifurcations and not branch.is_empty():
            bifurcation = detect_bifurcation(eigenvalues, branch.last.eigenvalues)
        point = SolutionPoint(
            parameter=p,
            state=x,
            stable=stable,
            eigenvalues=eigenvalues,
            bifurcation=bifurcation,
            arclength=arclength,
            residual_norm=residual_norm,
            tangent=tangent,
        )
        branch.add_solution_point(point)
        ctx.stats.steps += 1
        if bifurcation is not None:
            branch.add_bifurcation(
                BifurcationPoint(
                    type=bifurcation,
                    parameter=point.parameter,
                    state=point.state,
                    eigenvalues=critical_eigenvalues(eigenvalues),
                    tangent=tangent,
                )
            )
            ctx.stats.bifurcations += 1
            logger.info("Bifurcation found: %s at %s = %.6g", bifurcation.name, ctx.params.parameter, p)
        return point


class NaturalContinuation(ContinuationStepper):
    """
    Natural parameter continuation.

    The parameter is advanced by a fixed step towards par_end and the equilibrium
    is re-solved with Newton's method, starting from the previous solution. The
    step size is not adapted and folds cannot be passed: near a fold the Jacobian
    becomes singular and the run fails with a ContinuationError.
    """

    branch_name = "natural"

    def run(self, system, initial_state, params) -> ContinuationBranch:
        ctx = ContinuationContext(system, params)
        branch = self._new_branch(ctx)
        x = ctx.check_state(initial_state)
        direction = params.direction
        ds = abs(params.ds)
        # slack against round-off when landing exactly on par_end
        slack = 1e-12 * max(1.0, abs(params.par_end))
        for k in range(params.max_steps):
            p = params.par_start + direction * k * ds
            if (p - params.par_end) * direction > slack:
                break
            x, iterations, residual_norm = ctx.solve_equilibrium(x, p, self._newton_solver(ctx))
            point = self._append(ctx, branch, x, p, residual_norm)
            logger.info(
                "Step #%d, %s=%.6g, Newton iterations: %d, #+EVs: %d",
                k + 1,
                params.parameter,
                p,
                iterations,
                count_unstable(point.eigenvalues),
            )
        return branch


def arclength_norm(residuals: Array) -> float:
    """
    Convergence norm for the extended (arclength) system [F(x, p); constraint]:
    below the tolerance iff both the norm of F and the constraint are.
    """
    return max(float(np.linalg.norm(residuals[:-1])), abs(float(residuals[-1])))


class PseudoArclengthContinuation(ContinuationStepper):
    """
    Pseudo-arclength continuation.

    The branch is parametrized by its arclength s in the extended (x, p)-space, so
    that folds, where d rhs / dx is singular but the extended system is not, can be
    passed. Each step predicts along the unit tangent and corrects with Newton's
    method on the extended system

        F(x, p) = 0
        tangent . ((x, p) - (x0, p0)) - ds = 0

    A failed corrector halves the step size and retries from the last accepted
    point; a fast one (less than ndesired_newton_steps iterations) increases it.
    """

    branch_name = "arclength"

    def __init__(
        self, eigen_solver: EigenSolver | None = None, newton_solver: AbstractNewtonSolver | None = None
    ) -> None:
        super().__init__(eigen_solver, newton_solver)
        #: step size is increased if the corrector needs less iterations than this
        self.ndesired_newton_steps = 3
        #: ds increases by this factor after a fast corrector
        self.ds_increase_factor = 1.5
        #: ds decreases by this factor after a failed corrector
        self.ds_decrease_factor = 0.5
        #: the linear solver for the tangent computation
        self.linear_solver = LinearSolver()

    def run(self, system, initial_state, params, initial_direction: float | None = None) -> ContinuationBranch:
        """
        Trace the branch of equilibria starting from initial_state at params.par_start.

        Parameters
        ----------
        system
            The system to continue.
        initial_state
            Initial guess for the equilibrium at par_start.
        params
            The settings of the run.
        initial_direction
            Sign of the initial parameter change. Defaults to the direction from
            par_start towards par_end.

        Raises
        ------
        StepTooSmall
            If the corrector failed until the step size fell below ds_min. The
            branch computed so far is attached to the exception.
        """
        ctx = ContinuationContext(system, params)
        branch = self._new_branch(ctx)
        if params.max_steps == 0:
            return branch
        direction = params.direction if initial_direction is None else float(np.sign(initial_direction) or 1.0)
        # converge onto the branch at the starting parameter
        p = params.par_start
        x, _, residual_norm = ctx.solve_equilibrium(initial_state, p, self._newton_solver(ctx))
        tangent = self.compute_tangent(ctx, x, p, direction=direction)
        self._append(ctx, branch, x, p, residual_norm, tangent=tangent)
        s = 0.0
        ds = abs(params.ds)
        while ctx.stats.steps < params.max_steps:
            try:
                x_new, p_new, iterations = self.correct(ctx, x, p, tangent, ds)
            except ContinuationError as err:
                # retry from the last accepted point with a smaller step
                ds *= self.ds_decrease_factor
                ctx.stats.step_size_reductions += 1
                if ds < params.ds_min:
                    raise StepTooSmall(ds, branch) from err
                logger.warning("Corrector did not converge (%s), trying again with ds = %.3e", err, ds)
                continue
            new_tangent = self.compute_tangent(ctx, x_new, p_new, reference=tangent)
            s += float(np.linalg.norm(np.append(x_new - x, p_new - p)))
            residual_norm = float(np.linalg.norm(ctx.residual(x_new, p_new)))
            point = self._append(ctx, branch, x_new, p_new, residual_norm, arclength=s, tangent=new_tangent)
            logger.info(
                "Step #%d, %s=%.6g, ds=%.2e, Newton iterations: %d, #+EVs: %d",
                ctx.stats.steps,
                params.parameter,
                p_new,
                ds,
                iterations,
                count_unstable(point.eigenvalues),
            )
            x, p, tangent = x_new, p_new, new_tangent
            # adapt step size
            if iterations < self.ndesired_newton_steps:
                ds = min(ds * self.ds_increase_factor, params.ds_max)
            # stop when the parameter crossed par_end
            if (p - params.par_end) * params.direction > 0:
                break
        return branch

    def correct(
        self, ctx: ContinuationContext, x: Array, p: float, tangent: Array, ds: float
    ) -> tuple[Array, float, int]:
        """
        Predict along the tangent and correct onto the branch.

        Returns
        -------
        tuple[Array, float, int]
            The new state, the new parameter and the number of Newton iterations.
        """
        N = x.size
        y0 = np.append(x, p)

        def rhs_ext(y: Array) -> Array:
            # extended rhs: model's rhs & arclength condition
            arclength_condition = np.dot(tangent, y - y0) - ds
            return np.append(ctx.residual(y[:N], y[N]), arclength_condition)

        def jac_ext(y: Array) -> Array:
            # extended jacobian [[dF/dx, dF/dp], [tangent]]
            jac = ctx.state_jacobian(y[:N], y[N])
            dfdp = ctx.parameter_derivative(y[:N], y[N])
            return np.vstack((np.hstack((jac, dfdp.reshape((N, 1)))), tangent.reshape((1, N + 1))))

        # make initial guess: y -> y + ds * tangent
        y_pred = y0 + ds * tangent
        solver = self._newton_solver(ctx)
        y = ctx.run_newton(solver, rhs_ext, y_pred, jac_ext, norm=arclength_norm)
        return y[:N], float(y[N]), solver.niterations or 0

    def compute_tangent(
        self,
        ctx: ContinuationContext,
        x: Array,
        p: float,
        reference: Array | None = None,
        direction: float = 1.0,
    ) -> Array:
        """
        Unit tangent to the branch at (x, p).

        The parameter component is fixed to 1 and dF/dx * dx = -dF/dp is solved for
        the state components. If dF/dx is singular (exactly at a fold), the bordered
        system [[dF/dx, dF/dp], [reference]] * t = (0, 1) is solved instead. The
        result is normalized and oriented either along the reference tangent
        (positive dot product) or, without reference, so that its parameter
        component has the sign of direction.
        """
        N = x.size
        jac = ctx.state_jacobian(x, p)
        dfdp = ctx.parameter_derivative(x, p)
        try:
            dx = self.linear_solver.solve(jac, -dfdp)
            tangent = np.append(dx, 1.0)
        except SingularJacobian:
            if reference is None:
                raise
            bordered = np.vstack((np.hstack((jac, dfdp.reshape((N, 1)))), reference.reshape((1, N + 1))))
            rhs = np.zeros(N + 1)
            rhs[N] = 1.0
            tangent = self.linear_solver.solve(bordered, rhs)
        tangent /= np.linalg.norm(tangent)
        if reference is None:
            if tangent[N] * direction < 0:
                tangent = -tangent
        elif np.dot(tangent, reference) < 0:
            tangent = -tangent
        return tangent


def natural_continuation(system: System, initial_state: ArrayLike, params: ContinuationParams) -> ContinuationBranch:
    """Run a natural parameter continuation with default solvers."""
    return NaturalContinuation().run(system, initial_state, params)


def arclength_continuation(system: System, initial_state: ArrayLike, params: ContinuationParams) -> ContinuationBranch:
    """Run a pseudo-arclength continuation with default solvers."""
    return PseudoArclengthContinuation().run(system, initial_state, params)
