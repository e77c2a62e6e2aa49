"""Switching to emerging branches at bifurcation points."""

from __future__ import annotations

import logging

from autocont.core.config import ContinuationParams
from autocont.core.errors import ContinuationError, InvalidParameter
from autocont.core.solution import BifurcationDiagram, BifurcationPoint, BifurcationType, ContinuationBranch
from autocont.core.system import System
from autocont.core.types import ArrayLike

from .continuation_steppers import PseudoArclengthContinuation

logger = logging.getLogger(__name__)


class BranchSwitcher:
    """
    Restarts an arclength continuation from a point perturbed away from a bifurcation.

    The state and parameter of the bifurcation are shifted along its stored tangent
    by the perturbation magnitude. The continuation then starts from there, with
    par_start set to the perturbed parameter value.
    """

    def __init__(self, stepper: PseudoArclengthContinuation | None = None) -> None:
        #: the driver used for tracing the new branch
        self.stepper = stepper if stepper is not None else PseudoArclengthContinuation()

    def switch(
        self,
        system: System,
        bifurcation: BifurcationPoint,
        params: ContinuationParams,
        perturbation: float | None = None,
    ) -> ContinuationBranch:
        """
        Trace a new branch starting near the given bifurcation.

        Parameters
        ----------
        system
            The system the bifurcation was found in.
        bifurcation
            The bifurcation point, it must carry a tangent.
        params
            The settings of the run.
        perturbation
            Magnitude of the shift along the tangent, defaults to params.switch_perturbation.

        Returns
        -------
        ContinuationBranch
            A new branch named "switched" with the points, bifurcations and
            statistics of the continuation and a branch switch count of 1.
        """
        if bifurcation.tangent is None:
            raise InvalidParameter("Cannot switch branches at a bifurcation point without tangent")
        if perturbation is None:
            perturbation = params.switch_perturbation
        N = bifurcation.state.size
        tangent = bifurcation.tangent
        if tangent.size != N + 1:
            raise InvalidParameter(f"Tangent of size {tangent.size} does not match state of size {N}")
        # perturb state and parameter along the tangent
        x = bifurcation.state + perturbation * tangent[:N]
        p = bifurcation.parameter + perturbation * tangent[N]
        logger.info("Switching branch at %s point, %s = %.6g", bifurcation.type.name, params.parameter, p)
        sub_branch = self.stepper.run(system, x, params.replace(par_start=p))
        branch = ContinuationBranch(name="switched", parameter_name=params.parameter, variables=sub_branch.variables)
        branch.stats.branch_switches = 1
        branch.extend(sub_branch)
        return branch


def switch_branch(
    system: System,
    bifurcation: BifurcationPoint,
    params: ContinuationParams,
    perturbation: float | None = None,
) -> ContinuationBranch:
    """Switch branches at a bifurcation with a default BranchSwitcher."""
    return BranchSwitcher().switch(system, bifurcation, params, perturbation)


def generate_bifurcation_diagram(
    system: System,
    initial_state: ArrayLike,
    params: ContinuationParams,
    max_recursion: int = 2,
    stepper: PseudoArclengthContinuation | None = None,
) -> BifurcationDiagram:
    """
    Automatically generate a bifurcation diagram.

    The branch through initial_state is traced with arclength continuation. Then,
    branch switching is attempted at every bifurcation with a tangent (Hopf points
    are skipped, periodic orbits are not followed) and the new branches are
    treated the same way, up to the given maximum recursion. Sub-branches that fail
    are skipped with a warning.
    """
    stepper = stepper if stepper is not None else PseudoArclengthContinuation()
    switcher = BranchSwitcher(stepper)
    diagram = BifurcationDiagram(parameter_name=params.parameter)
    branch = stepper.run(system, initial_state, params)
    diagram.add_branch(branch)
    _switch_recursively(system, branch, params, switcher, diagram, max_recursion)
    return diagram


def _switch_recursively(
    system: System,
    branch: ContinuationBranch,
    params: ContinuationParams,
    switcher: BranchSwitcher,
    diagram: BifurcationDiagram,
    max_recursion: int,
) -> None:
    # return if no more recursion is allowed
    if max_recursion < 1:
        return
    for bif in branch.bifurcations:
        if bif.type is BifurcationType.HOPF or bif.tangent is None:
            continue
        try:
            new_branch = switcher.switch(system, bif, params)
        except ContinuationError as err:
            logger.warning("Branch switching at %s = %.6g failed: %s", params.parameter, bif.parameter, err)
            continue
        diagram.add_branch(new_branch)
        _switch_recursively(system, new_branch, params, switcher, diagram, max_recursion - 1)
