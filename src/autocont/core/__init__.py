"""
The 'core' package contains the numerical building blocks: linear algebra,
Newton and eigen solvers, stability classification, the system interface and
the result data structures.
"""

from .config import ContinuationParams
from .errors import (
    ContinuationError,
    ConvergenceFailed,
    InvalidParameter,
    SingularJacobian,
    StepTooSmall,
)
from .linear_solver import LinearSolver, hessenberg_reduce, qr_decompose, solve_linear
from .solution import (
    BifurcationDiagram,
    BifurcationPoint,
    BifurcationType,
    ComputationStats,
    ContinuationBranch,
    SolutionPoint,
)
from .solvers import EigenSolver, NewtonSolver, ScipyNewtonSolver, eigenvalues
from .stability import FixedPointType, StabilityClassifier, classify_fixed_point, is_stable
from .system import FunctionSystem, System

__all__ = [
    "ContinuationParams",
    "ContinuationError",
    "ConvergenceFailed",
    "SingularJacobian",
    "StepTooSmall",
    "InvalidParameter",
    "LinearSolver",
    "solve_linear",
    "qr_decompose",
    "hessenberg_reduce",
    "NewtonSolver",
    "ScipyNewtonSolver",
    "EigenSolver",
    "eigenvalues",
    "StabilityClassifier",
    "FixedPointType",
    "classify_fixed_point",
    "is_stable",
    "System",
    "FunctionSystem",
    "SolutionPoint",
    "BifurcationPoint",
    "BifurcationType",
    "ComputationStats",
    "ContinuationBranch",
    "BifurcationDiagram",
]
