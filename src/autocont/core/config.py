"""Configuration of a continuation run."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

import numpy as np

from .errors import InvalidParameter


@dataclass(frozen=True)
class ContinuationParams:
    """
    Immutable settings of a continuation run.

    The continuation drivers only read these values. Derived settings, e.g. for
    a switched branch, are created with replace().

    The initial step size ds must lie within [ds_min, ds_max] for every driver.
    Natural continuation never adapts its step, but a natural run with a step
    larger than the default ds_max still needs ds_max raised accordingly.
    """

    #: name of the continuation parameter, used for labelling
    parameter: str
    #: value of the parameter at the start of the branch
    par_start: float
    #: value of the parameter at which the continuation stops
    par_end: float
    #: initial step size, the fixed step of natural continuation
    ds: float = 0.01
    #: minimum step size, the arclength corrector gives up below this value
    ds_min: float = 1e-6
    #: maximum step size, also bounds ds of natural continuation
    ds_max: float = 0.1
    #: maximum number of continuation steps
    max_steps: int = 100
    #: absolute tolerance for the norm of the residuals in Newton's method
    newton_tol: float = 1e-10
    #: maximum number of Newton iterations per solve
    newton_max_iter: int = 50
    #: compare eigenvalues of neighboring points for detecting bifurcations?
    detect_bifurcations: bool = True
    #: magnitude of the perturbation along the tangent when switching branches
    switch_perturbation: float = 1e-3
    #: step size of the central finite differences for missing derivatives
    fd_epsilon: float = 1e-8

    def __post_init__(self) -> None:
        if not (np.isfinite(self.par_start) and np.isfinite(self.par_end)):
            raise InvalidParameter("Parameter bounds must be finite")
        if not 0 < self.ds_min <= self.ds_max:
            raise InvalidParameter(f"Need 0 < ds_min <= ds_max, got ds_min={self.ds_min}, ds_max={self.ds_max}")
        if not self.ds_min <= abs(self.ds) <= self.ds_max:
            raise InvalidParameter(f"Step size ds={self.ds} outside of [{self.ds_min}, {self.ds_max}]")
        if self.max_steps < 0 or self.newton_max_iter < 1:
            raise InvalidParameter("Step and iteration budgets must be positive")
        if self.newton_tol <= 0 or self.fd_epsilon <= 0:
            raise InvalidParameter("Tolerances must be positive")

    @property
    def direction(self) -> float:
        """+1 if the parameter should increase towards par_end, else -1."""
        return 1.0 if self.par_end >= self.par_start else -1.0

    def replace(self, **changes) -> ContinuationParams:
        """Return a copy with some fields replaced."""
        return dataclasses.replace(self, **changes)
