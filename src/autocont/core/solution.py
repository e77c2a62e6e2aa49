"""
Data structures for the results of a continuation: solution points,
bifurcation points, branches and bifurcation diagrams.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from enum import Enum

import numpy as np

from .types import Array, ArrayLike, Axes, ComplexArray


class BifurcationType(Enum):
    """Types of bifurcations, the values are the labels used in diagrams."""

    SADDLE_NODE = "SN"
    TRANSCRITICAL = "TC"
    PITCHFORK = "PF"
    HOPF = "HB"
    PERIOD_DOUBLING = "PD"
    TORUS = "TR"
    BRANCH_POINT = "BP"
    LIMIT_POINT_CYCLE = "LPC"
    USER_ZERO = "UZ"


def _frozen_array(values: ArrayLike | None, dtype=float) -> np.ndarray | None:
    """Copy the values into a read-only array."""
    if values is None:
        return None
    arr = np.array(values, dtype=dtype)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class SolutionPoint:
    """
    A single equilibrium on a branch, including its stability information.

    Solution points are immutable: all arrays are copied into read-only storage
    on construction.
    """

    #: value of the continuation parameter
    parameter: float
    #: the equilibrium state
    state: Array
    #: is the equilibrium linearly stable?
    stable: bool
    #: eigenvalues of the Jacobian, one per state dimension
    eigenvalues: ComplexArray
    #: period of a periodic orbit (not computed by the equilibrium drivers)
    period: float | None = None
    #: Floquet multipliers of a periodic orbit (not computed by the equilibrium drivers)
    floquet_multipliers: ComplexArray | None = None
    #: type of the bifurcation detected at this point, if any
    bifurcation: BifurcationType | None = None
    #: cumulative arclength along the branch
    arclength: float = 0.0
    #: norm of the residuals when the point was accepted
    residual_norm: float = 0.0
    #: unit tangent (dx/ds, dp/ds) for points of an arclength continuation
    tangent: Array | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameter", float(self.parameter))
        object.__setattr__(self, "state", _frozen_array(self.state))
        object.__setattr__(self, "eigenvalues", _frozen_array(self.eigenvalues, dtype=complex))
        object.__setattr__(self, "floquet_multipliers", _frozen_array(self.floquet_multipliers, dtype=complex))
        object.__setattr__(self, "tangent", _frozen_array(self.tangent))
        object.__setattr__(self, "stable", bool(self.stable))

    @property
    def dimension(self) -> int:
        """The number of state variables."""
        return int(self.state.size)

    def is_bifurcation(self) -> bool:
        """Is the solution point a bifurcation?"""
        return self.bifurcation is not None

    def norm(self) -> float:
        """The L2-norm of the state, as used in bifurcation diagrams."""
        return float(np.linalg.norm(self.state))


@dataclass(frozen=True, eq=False)
class BifurcationPoint:
    """
    A bifurcation detected on a branch.

    parameter and state are exactly those of the solution point at which the
    bifurcation was detected.
    """

    #: the type of bifurcation
    type: BifurcationType
    #: value of the continuation parameter
    parameter: float
    #: the state at the bifurcation
    state: Array
    #: the eigenvalues closest to the imaginary axis
    eigenvalues: ComplexArray
    #: tangent (dx/ds, dp/ds) of the branch, only known for arclength continuation
    tangent: Array | None = None
    #: period of an emerging periodic orbit, if known
    period: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameter", float(self.parameter))
        object.__setattr__(self, "state", _frozen_array(self.state))
        object.__setattr__(self, "eigenvalues", _frozen_array(self.eigenvalues, dtype=complex))
        object.__setattr__(self, "tangent", _frozen_array(self.tangent))

    @property
    def hopf_frequency(self) -> float | None:
        """Angular frequency of the critical eigenvalue pair at a Hopf point."""
        if self.type is not BifurcationType.HOPF or self.eigenvalues.size == 0:
            return None
        return float(np.max(np.abs(self.eigenvalues.imag)))


@dataclass
class ComputationStats:
    """Counters collected during a continuation run."""

    #: number of accepted continuation steps
    steps: int = 0
    #: cumulative number of Newton iterations
    newton_iterations: int = 0
    #: number of Jacobian evaluations
    jacobian_evaluations: int = 0
    #: how often the step size had to be reduced
    step_size_reductions: int = 0
    #: number of detected bifurcations
    bifurcations: int = 0
    #: number of branch switches performed
    branch_switches: int = 0

    def record_newton(self, iterations: int | None) -> None:
        """Account for a Newton solve: every iteration evaluates one Jacobian."""
        if iterations:
            self.newton_iterations += iterations
            self.jacobian_evaluations += iterations

    def merge(self, other: ComputationStats) -> None:
        """Add the counters of another run to this one."""
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))


@dataclass
class ContinuationBranch:
    """
    A branch is obtained from a continuation run and stores the solution points in
    the order they were computed, the bifurcations found along the way and the
    statistics of the run. Branches only ever grow by appending.
    """

    #: name / tag of the branch
    name: str = ""
    #: name of the continuation parameter
    parameter_name: str = ""
    #: names of the state variables, used for labelling
    variables: tuple[str, ...] = ()
    #: list of solutions along the branch
    points: list[SolutionPoint] = field(default_factory=list)
    #: bifurcations detected along the branch
    bifurcations: list[BifurcationPoint] = field(default_factory=list)
    #: counters of the computation
    stats: ComputationStats = field(default_factory=ComputationStats)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[SolutionPoint]:
        return iter(self.points)

    def is_empty(self) -> bool:
        """Is the current branch empty?"""
        return len(self.points) == 0

    def add_solution_point(self, point: SolutionPoint) -> None:
        """Append a solution to the branch."""
        self.points.append(point)

    def add_bifurcation(self, bifurcation: BifurcationPoint) -> None:
        """Register a bifurcation point."""
        self.bifurcations.append(bifurcation)

    def extend(self, other: ContinuationBranch) -> None:
        """Append the points, bifurcations and statistics of another branch."""
        self.points.extend(other.points)
        self.bifurcations.extend(other.bifurcations)
        self.stats.merge(other.stats)

    @property
    def last(self) -> SolutionPoint:
        """The most recently computed point."""
        return self.points[-1]

    def parameter_vals(self) -> np.ndarray:
        """List of continuation parameter values along the branch"""
        return np.array([s.parameter for s in self.points])

    def state_vals(self, index: int | None = None) -> np.ndarray:
        """States along the branch, or one component of them if an index is given"""
        states = np.array([s.state for s in self.points])
        if index is None:
            return states
        return states[:, index] if states.size else states

    def norm_vals(self) -> np.ndarray:
        """list of solution norm values along the branch"""
        return np.array([s.norm() for s in self.points])

    def variable_name(self, index: int) -> str:
        """Name of the state variable with the given index."""
        if index < len(self.variables):
            return self.variables[index]
        return f"x{index}"

    def arclength_vals(self) -> np.ndarray:
        """Cumulative arclength along the branch"""
        return np.array([s.arclength for s in self.points])

    def stability_vals(self) -> np.ndarray:
        """Stability flags along the branch"""
        return np.array([s.stable for s in self.points], dtype=bool)

    def data(self, only: str | None = None, state_index: int | None = None) -> tuple[np.ndarray, np.ndarray]:
        """
        Return the parameter values and a measure of the solutions along the branch.

        Parameters
        ----------
        only
            Restrict the data to "stable" or "unstable" parts or to "bifurcations".
            The other entries are masked.
        state_index
            Use this state component as measure. Defaults to the norm of the state.

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            Masked arrays of parameter values and measures.
        """
        condition: bool | list[bool] = False
        if only == "stable":
            condition = [not s.stable for s in self.points]
        elif only == "unstable":
            condition = [s.stable for s in self.points]
        elif only == "bifurcations":
            condition = [not s.is_bifurcation() for s in self.points]
        measure = self.norm_vals() if state_index is None else self.state_vals(state_index)
        pvals = np.ma.masked_where(condition, self.parameter_vals())
        yvals = np.ma.masked_where(condition, measure)
        return (pvals, yvals)

    def plot(self, ax: Axes, state_index: int | None = None, color: str = "C0") -> None:
        """Plot the branch: thin lines for unstable, thick lines for stable parts."""
        p, y = self.data(state_index=state_index)
        ax.plot(p, y, linewidth=0.7, color=color)
        p, y = self.data(only="stable", state_index=state_index)
        ax.plot(p, y, linewidth=1.8, color=color)
        p, y = self.data(only="bifurcations", state_index=state_index)
        ax.plot(p, y, "*", color="C2")
        # annotate bifurcations with their types
        for point in self.points:
            if point.bifurcation is not None:
                y0 = point.norm() if state_index is None else point.state[state_index]
                ax.annotate(" " + point.bifurcation.value, (point.parameter, y0))


class BifurcationDiagram:
    """
    Basically just a list of branches and methods to act upon.
    Also: a fancy plotting method.
    """

    def __init__(self, parameter_name: str = "") -> None:
        #: list of branches
        self.branches: list[ContinuationBranch] = []
        #: name of the continuation parameter
        self.parameter_name = parameter_name
        #: name of the measure on the y-axis
        self.norm_name = "norm"

    def add_branch(self, branch: ContinuationBranch) -> None:
        """Add a branch to the diagram"""
        self.branches.append(branch)

    def bifurcations(self) -> list[BifurcationPoint]:
        """All bifurcation points of all branches"""
        return [b for branch in self.branches for b in branch.bifurcations]

    def plot(self, ax: Axes, state_index: int | None = None) -> None:
        """Plot the bifurcation diagram"""
        for branch in self.branches:
            branch.plot(ax, state_index=state_index)
        ax.plot(np.nan, np.nan, "*", color="C2", label="bifurcations")
        ax.set_xlabel(self.parameter_name)
        if state_index is None:
            ax.set_ylabel(self.norm_name)
        elif self.branches:
            ax.set_ylabel(self.branches[0].variable_name(state_index))
        else:
            ax.set_ylabel(f"x{state_index}")
        ax.legend()
