"""
Continuation and bifurcation functionality.

This package provides the drivers for path continuation (natural,
pseudo-arclength), bifurcation detection and branch switching.
"""

from .bifurcations import critical_eigenvalues, detect_bifurcation
from .branch_switching import BranchSwitcher, generate_bifurcation_diagram, switch_branch
from .context import ContinuationContext
from .continuation_steppers import (
    ContinuationStepper,
    NaturalContinuation,
    PseudoArclengthContinuation,
    arclength_continuation,
    natural_continuation,
)
from .equilibria import Equilibrium, find_equilibria, newton_solve

__all__ = [
    "ContinuationContext",
    "ContinuationStepper",
    "NaturalContinuation",
    "PseudoArclengthContinuation",
    "natural_continuation",
    "arclength_continuation",
    "detect_bifurcation",
    "critical_eigenvalues",
    "BranchSwitcher",
    "switch_branch",
    "generate_bifurcation_diagram",
    "Equilibrium",
    "find_equilibria",
    "newton_solve",
]
