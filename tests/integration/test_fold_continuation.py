"""
Integration tests: trace complete branches through folds, switch branches and
build bifurcation diagrams.
"""

import numpy as np
import pytest

from autocont import (
    BranchSwitcher,
    ContinuationError,
    ContinuationParams,
    FunctionSystem,
    PseudoArclengthContinuation,
    StepTooSmall,
    arclength_continuation,
    generate_bifurcation_diagram,
    natural_continuation,
)
from autocont.core.solution import BifurcationType
from autocont.demo_systems import FoldNormalForm, PitchforkNormalForm

FOLD_PARAMS = ContinuationParams("mu", 1.0, -1.0, ds=0.05, ds_max=0.1, max_steps=60)


@pytest.fixture(scope="module")
def fold_branch():
    return arclength_continuation(FoldNormalForm(), [1.0], FOLD_PARAMS)


def test_arclength_passes_the_fold(fold_branch) -> None:
    mu = fold_branch.parameter_vals()
    x = fold_branch.state_vals(0)

    assert fold_branch.name == "arclength"
    assert len(fold_branch) == FOLD_PARAMS.max_steps
    # the branch turns around at the fold mu = 0
    assert -1e-8 <= mu.min() <= 0.01
    assert x.min() < -0.5
    np.testing.assert_allclose(mu, x**2, atol=1e-8)
    # arclength grows monotonically
    assert np.all(np.diff(fold_branch.arclength_vals()) > 0)


def test_arclength_tangents(fold_branch) -> None:
    tangents = np.array([point.tangent for point in fold_branch])
    np.testing.assert_allclose(np.linalg.norm(tangents, axis=1), 1.0)
    # dmu/ds changes its sign at the fold
    assert tangents[0, 1] < 0
    assert tangents[-1, 1] > 0
    # consecutive tangents point in the same direction
    assert np.all(np.sum(tangents[1:] * tangents[:-1], axis=1) > 0)


def test_fold_is_detected(fold_branch) -> None:
    assert len(fold_branch.bifurcations) == 1
    fold = fold_branch.bifurcations[0]
    assert fold.type is BifurcationType.SADDLE_NODE
    assert abs(fold.parameter) < 0.01
    assert fold.tangent is not None and fold.tangent.size == 2
    # upper branch stable, lower branch unstable
    assert fold_branch.points[0].stable
    assert not fold_branch.last.stable


def test_branch_invariants(fold_branch) -> None:
    for point in fold_branch:
        assert point.eigenvalues.size == point.dimension
        assert point.stable == bool(np.all(point.eigenvalues.real < 0))
    assert fold_branch.stats.steps == len(fold_branch)
    assert fold_branch.stats.bifurcations == len(fold_branch.bifurcations)
    assert fold_branch.stats.newton_iterations == fold_branch.stats.jacobian_evaluations


def test_natural_continuation_fails_at_fold() -> None:
    with pytest.raises(ContinuationError):
        natural_continuation(FoldNormalForm(), [1.0], FOLD_PARAMS)


def test_step_too_small_keeps_partial_branch() -> None:
    # the branch x = sqrt(p) ends at p = 0, beyond it the rhs is undefined
    system = FunctionSystem(
        1,
        lambda x, p: x - np.sqrt(p),
        jac=lambda x, p: [[1.0]],
        dfdp=lambda x, p: [-0.5 / np.sqrt(p)],
    )
    params = ContinuationParams("p", 1.0, -1.0, ds=0.05, ds_min=1e-4, max_steps=500)

    with np.errstate(all="ignore"):
        with pytest.raises(StepTooSmall) as excinfo:
            arclength_continuation(system, [1.0], params)

    err = excinfo.value
    assert err.ds < params.ds_min
    assert err.branch is not None and len(err.branch) > 1
    assert np.all(err.branch.parameter_vals() >= 0)
    assert err.branch.stats.step_size_reductions > 0


def test_arclength_stops_beyond_par_end() -> None:
    params = ContinuationParams("mu", 1.0, 2.0, ds=0.05, ds_max=0.1)

    branch = arclength_continuation(PitchforkNormalForm(), [1.0], params)

    assert branch.last.parameter >= 2.0
    assert np.all(branch.parameter_vals()[:-1] < 2.0)
    assert len(branch) < params.max_steps
    np.testing.assert_allclose(branch.state_vals(0), np.sqrt(branch.parameter_vals()), atol=1e-6)


def test_switch_branch_at_fold(fold_branch) -> None:
    fold = fold_branch.bifurcations[0]
    params = FOLD_PARAMS.replace(max_steps=10)

    switched = BranchSwitcher(PseudoArclengthContinuation()).switch(FoldNormalForm(), fold, params)

    assert switched.name == "switched"
    assert switched.stats.branch_switches == 1
    assert switched.variables == ("x",)
    assert len(switched) == 10
    # the new branch starts close to the fold
    assert abs(switched.points[0].parameter - fold.parameter) < 0.01


def test_generate_bifurcation_diagram() -> None:
    diagram = generate_bifurcation_diagram(FoldNormalForm(), [1.0], FOLD_PARAMS, max_recursion=1)

    main = diagram.branches[0]
    assert main.name == "arclength"
    assert len(diagram.branches) == 1 + len(main.bifurcations)
    assert all(branch.name == "switched" for branch in diagram.branches[1:])
    assert diagram.parameter_name == "mu"
    assert len(diagram.bifurcations()) >= len(main.bifurcations)
