"""
AUTOCONT: continuation of equilibria and bifurcation detection.

Traces the solutions of parametrized equilibrium problems F(x, p) = 0 of ODE
systems, classifies their stability, detects saddle-node and Hopf bifurcations
and switches to emerging branches.
"""

from . import continuation, demo_systems
from .continuation import (
    BranchSwitcher,
    NaturalContinuation,
    PseudoArclengthContinuation,
    arclength_continuation,
    find_equilibria,
    generate_bifurcation_diagram,
    natural_continuation,
    newton_solve,
    switch_branch,
)
from .core import (
    BifurcationDiagram,
    BifurcationPoint,
    BifurcationType,
    ComputationStats,
    ContinuationBranch,
    ContinuationError,
    ContinuationParams,
    ConvergenceFailed,
    EigenSolver,
    FunctionSystem,
    InvalidParameter,
    LinearSolver,
    NewtonSolver,
    SingularJacobian,
    SolutionPoint,
    StabilityClassifier,
    StepTooSmall,
    System,
    eigenvalues,
    solve_linear,
)

__all__ = [
    "System",
    "FunctionSystem",
    "ContinuationParams",
    "SolutionPoint",
    "BifurcationPoint",
    "BifurcationType",
    "ComputationStats",
    "ContinuationBranch",
    "BifurcationDiagram",
    "LinearSolver",
    "solve_linear",
    "EigenSolver",
    "eigenvalues",
    "NewtonSolver",
    "StabilityClassifier",
    "NaturalContinuation",
    "PseudoArclengthContinuation",
    "BranchSwitcher",
    "natural_continuation",
    "arclength_continuation",
    "switch_branch",
    "generate_bifurcation_diagram",
    "find_equilibria",
    "newton_solve",
    "ContinuationError",
    "ConvergenceFailed",
    "SingularJacobian",
    "StepTooSmall",
    "InvalidParameter",
    "continuation",
    "demo_systems",
]
