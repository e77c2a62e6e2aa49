"""Linear stability of equilibria from the eigenvalues of their Jacobian."""

from __future__ import annotations

from enum import Enum

import numpy as np

from .solvers import EigenSolver
from .types import ArrayLike, ComplexArray


class FixedPointType(Enum):
    """Classification of an equilibrium by the eigenvalues of its Jacobian."""

    STABLE_NODE = "stable node"
    UNSTABLE_NODE = "unstable node"
    STABLE_FOCUS = "stable focus"
    UNSTABLE_FOCUS = "unstable focus"
    SADDLE = "saddle"
    CENTER = "center"
    UNKNOWN = "unknown"


class StabilityClassifier:
    """
    Derives the eigenvalues and the stability of an equilibrium from its Jacobian.

    An equilibrium is stable iff every eigenvalue has a strictly negative real part.
    The classifier holds no state besides the eigensolver it delegates to.
    """

    def __init__(self, eigen_solver: EigenSolver | None = None) -> None:
        #: the eigensolver used for the Jacobians
        self.eigen_solver = eigen_solver if eigen_solver is not None else EigenSolver()

    def classify(self, jacobian: ArrayLike) -> tuple[ComplexArray, bool]:
        """
        Compute the eigenvalues of a Jacobian and its stability flag.

        Parameters
        ----------
        jacobian
            The Jacobian matrix of the system at the equilibrium.

        Returns
        -------
        tuple[ComplexArray, bool]
            The eigenvalues and whether all of them have negative real part.
        """
        eigenvalues = self.eigen_solver.solve(jacobian)
        return eigenvalues, is_stable(eigenvalues)


def is_stable(eigenvalues: ArrayLike) -> bool:
    """True iff all eigenvalues have a negative real part."""
    return bool(np.all(np.real(eigenvalues) < 0))


def classify_fixed_point(eigenvalues: ArrayLike, zero_tolerance: float = 1e-10) -> FixedPointType:
    """
    Classify an equilibrium as node, focus, saddle or center.

    Any eigenvalue with a vanishing real part makes the point a center (the linear
    analysis is inconclusive there). Otherwise, mixed signs of the real parts give a
    saddle, and the presence of complex eigenvalues distinguishes foci from nodes.
    """
    ev = np.asarray(eigenvalues, dtype=complex)
    if ev.size == 0:
        return FixedPointType.UNKNOWN
    re = ev.real
    if np.any(np.abs(re) < zero_tolerance):
        return FixedPointType.CENTER
    all_real = bool(np.all(np.abs(ev.imag) < zero_tolerance))
    if np.all(re < 0):
        return FixedPointType.STABLE_NODE if all_real else FixedPointType.STABLE_FOCUS
    if np.all(re > 0):
        return FixedPointType.UNSTABLE_NODE if all_real else FixedPointType.UNSTABLE_FOCUS
    return FixedPointType.SADDLE
