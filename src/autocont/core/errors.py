"""
Exceptions raised by the solvers and continuation drivers.

All of them derive from numpy's LinAlgError, which is what the Newton solvers
traditionally raise on failure, so existing ``except LinAlgError`` clauses
keep catching them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from .solution import ContinuationBranch


class ContinuationError(np.linalg.LinAlgError):
    """Base class for all errors of the continuation core."""


class ConvergenceFailed(ContinuationError):
    """A Newton iteration did not reach the tolerance within its iteration budget."""

    def __init__(self, max_iterations: int, residual: float | None = None, solver: str = "Newton solver") -> None:
        self.max_iterations = max_iterations
        self.residual = residual
        msg = f"{solver} did not converge after {max_iterations} iterations!"
        if residual is not None:
            msg += f" Residual norm: {residual:.2e}"
        super().__init__(msg)


class SingularJacobian(ContinuationError):
    """A vanishing pivot was met while eliminating a linear system."""

    def __init__(self, pivot: float, column: int) -> None:
        self.pivot = pivot
        self.column = column
        super().__init__(f"Singular matrix: pivot {pivot:.2e} in column {column}")


class StepTooSmall(ContinuationError):
    """
    The arclength corrector kept failing until the step size fell below ds_min.

    The branch computed up to the failure is attached as ``branch``.
    """

    def __init__(self, ds: float, branch: ContinuationBranch | None = None) -> None:
        self.ds = ds
        self.branch = branch
        super().__init__(f"Step size ds = {ds:.3e} fell below the minimum step size")


class InvalidParameter(ContinuationError, ValueError):
    """The caller supplied inconsistent input."""
