"""Locating and classifying equilibria at a fixed parameter value."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from autocont.core.config import ContinuationParams
from autocont.core.errors import ContinuationError
from autocont.core.solvers import AbstractNewtonSolver, EigenSolver
from autocont.core.stability import FixedPointType, StabilityClassifier, classify_fixed_point
from autocont.core.system import System
from autocont.core.types import Array, ArrayLike, ComplexArray

from .context import ContinuationContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Equilibrium:
    """An equilibrium of a system at a fixed parameter value."""

    state: Array
    parameter: float
    eigenvalues: ComplexArray
    stable: bool
    point_type: FixedPointType


def newton_solve(
    system: System,
    initial_state: ArrayLike,
    parameter: float,
    tolerance: float = 1e-10,
    max_iterations: int = 50,
) -> tuple[Array, int]:
    """
    Solve rhs(x, parameter) = 0 for x with Newton's method.

    Returns
    -------
    tuple[Array, int]
        The equilibrium and the number of iterations used.
    """
    ctx = ContinuationContext(system, _fixed_parameter(parameter, tolerance, max_iterations))
    x, iterations, _ = ctx.solve_equilibrium(initial_state, parameter)
    return x, iterations


def find_equilibria(
    system: System,
    parameter: float,
    guesses: Iterable[ArrayLike],
    tolerance: float = 1e-10,
    max_iterations: int = 100,
    solver: AbstractNewtonSolver | None = None,
    eigen_solver: EigenSolver | None = None,
) -> list[Equilibrium]:
    """
    Find the distinct equilibria reachable from a set of initial guesses.

    Newton's method is started from every guess; guesses that do not converge are
    skipped. Solutions closer than 100 * tolerance to an already found one are
    considered duplicates. Every equilibrium is classified by its eigenvalues.
    """
    ctx = ContinuationContext(system, _fixed_parameter(parameter, tolerance, max_iterations))
    classifier = StabilityClassifier(eigen_solver)
    found: list[Equilibrium] = []
    for guess in guesses:
        newton = solver if solver is not None else ctx.newton_solver()
        try:
            x = ctx.run_newton(
                newton,
                lambda u: ctx.residual(u, parameter),
                ctx.check_state(guess),
                lambda u: ctx.state_jacobian(u, parameter),
            )
        except ContinuationError as err:
            logger.debug("No equilibrium found from guess %s: %s", guess, err)
            continue
        # check if we already found this one
        if any(np.linalg.norm(eq.state - x) <= 100 * tolerance for eq in found):
            continue
        eigenvalues, stable = classifier.classify(ctx.state_jacobian(x, parameter))
        found.append(
            Equilibrium(
                state=x,
                parameter=float(parameter),
                eigenvalues=eigenvalues,
                stable=stable,
                point_type=classify_fixed_point(eigenvalues),
            )
        )
    return found


def _fixed_parameter(parameter: float, tolerance: float, max_iterations: int) -> ContinuationParams:
    """Settings for solving at a single parameter value."""
    return ContinuationParams(
        parameter="p",
        par_start=parameter,
        par_end=parameter,
        newton_tol=tolerance,
        newton_max_iter=max_iterations,
    )
