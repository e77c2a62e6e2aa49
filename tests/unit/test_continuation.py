"""Sociable unit tests for the continuation drivers, equilibria and branch switching."""

import logging

import numpy as np
import pytest

from autocont.continuation import (
    BranchSwitcher,
    NaturalContinuation,
    PseudoArclengthContinuation,
    find_equilibria,
    natural_continuation,
    newton_solve,
)
from autocont.continuation.continuation_steppers import ContinuationStepper
from autocont.core.config import ContinuationParams
from autocont.core.errors import InvalidParameter
from autocont.core.solution import BifurcationPoint, BifurcationType
from autocont.core.solvers import ScipyNewtonSolver
from autocont.core.stability import FixedPointType
from autocont.core.system import FunctionSystem
from autocont.demo_systems import FoldNormalForm, HopfNormalForm, Lorenz, PitchforkNormalForm, TranscriticalNormalForm


def test_abstract_stepper() -> None:
    with pytest.raises(NotImplementedError):
        ContinuationStepper().run(FoldNormalForm(), [1.0], ContinuationParams("mu", 0.0, 1.0))


def test_natural_continuation_fold_branch() -> None:
    params = ContinuationParams("mu", 0.25, 2.0, ds=0.05, max_steps=100, detect_bifurcations=False)

    branch = natural_continuation(FoldNormalForm(), [0.5], params)

    assert branch.name == "natural"
    assert branch.parameter_name == "mu"
    # mu = 0.25, 0.3, ..., 2.0
    assert len(branch) == 36
    assert branch.last.parameter == pytest.approx(2.0)
    np.testing.assert_allclose(branch.state_vals(0), np.sqrt(branch.parameter_vals()), atol=1e-8)
    assert all(point.stable for point in branch)
    assert all(point.tangent is None for point in branch)
    assert branch.bifurcations == []


def test_natural_continuation_from_the_fold() -> None:
    # the first point sits at the fold, Newton converges only linearly there
    params = ContinuationParams("mu", 0.0, 2.0, ds=0.1, max_steps=30, detect_bifurcations=False)

    branch = natural_continuation(FoldNormalForm(), [0.01], params)

    assert len(branch) > 10
    assert branch.last.parameter > 1.5


def test_natural_continuation_respects_max_steps() -> None:
    params = ContinuationParams("mu", 0.25, 2.0, ds=0.05, max_steps=5)
    branch = natural_continuation(FoldNormalForm(), [0.5], params)
    assert len(branch) == 5
    assert branch.last.parameter == pytest.approx(0.45)


def test_natural_continuation_decreasing_parameter() -> None:
    params = ContinuationParams("mu", 2.0, 1.0, ds=0.1)
    branch = natural_continuation(FoldNormalForm(), [1.4], params)
    assert np.all(np.diff(branch.parameter_vals()) < 0)
    assert branch.last.parameter == pytest.approx(1.0)


def test_natural_continuation_is_repeatable() -> None:
    params = ContinuationParams("mu", 0.25, 1.0, ds=0.05)
    stepper = NaturalContinuation()
    first = stepper.run(FoldNormalForm(), [0.5], params)
    second = stepper.run(FoldNormalForm(), [0.5], params)
    np.testing.assert_array_equal(first.parameter_vals(), second.parameter_vals())
    np.testing.assert_array_equal(first.state_vals(), second.state_vals())
    assert first.stats == second.stats


def test_natural_continuation_stats() -> None:
    params = ContinuationParams("mu", 0.25, 1.0, ds=0.05)
    branch = natural_continuation(FoldNormalForm(), [0.5], params)
    assert branch.stats.steps == len(branch)
    assert branch.stats.newton_iterations == branch.stats.jacobian_evaluations
    assert branch.stats.newton_iterations >= len(branch)
    assert branch.stats.step_size_reductions == 0


def test_natural_continuation_with_finite_differences() -> None:
    params = ContinuationParams("mu", 0.5, 2.0, ds=0.1)
    branch = natural_continuation(PitchforkNormalForm(), [0.7], params)
    np.testing.assert_allclose(branch.state_vals(0), np.sqrt(branch.parameter_vals()), atol=1e-6)
    assert branch.last.parameter == pytest.approx(2.0)


def test_natural_continuation_detects_hopf() -> None:
    # the grid avoids mu = 0, where the real part vanishes exactly
    params = ContinuationParams("mu", -0.45, 0.55, ds=0.1)

    branch = natural_continuation(HopfNormalForm(), [0.0, 0.0], params)

    assert len(branch) == 11
    assert len(branch.bifurcations) == 1
    bif = branch.bifurcations[0]
    assert bif.type is BifurcationType.HOPF
    assert bif.parameter == pytest.approx(0.05)
    assert bif.hopf_frequency == pytest.approx(1.0)
    assert bif.tangent is None
    # the bifurcation coincides with a solution point of the branch
    point = [s for s in branch if s.is_bifurcation()]
    assert len(point) == 1
    assert point[0].parameter == bif.parameter
    np.testing.assert_array_equal(point[0].state, bif.state)
    assert branch.stats.bifurcations == 1
    # stable before and unstable after
    assert branch.points[4].stable and not branch.points[5].stable


def test_natural_continuation_detects_transcritical_as_saddle_node(caplog) -> None:
    params = ContinuationParams("mu", -0.45, 0.55, ds=0.1)

    with caplog.at_level(logging.INFO, logger="autocont"):
        branch = natural_continuation(TranscriticalNormalForm(), [0.0], params)

    assert [b.type for b in branch.bifurcations] == [BifurcationType.SADDLE_NODE]
    assert branch.bifurcations[0].parameter == pytest.approx(0.05)
    assert "Bifurcation found: SADDLE_NODE" in caplog.text


def test_no_detection_when_disabled() -> None:
    params = ContinuationParams("mu", -0.45, 0.55, ds=0.1, detect_bifurcations=False)
    branch = natural_continuation(HopfNormalForm(), [0.0, 0.0], params)
    assert branch.bifurcations == []
    assert not any(point.is_bifurcation() for point in branch)


def test_every_point_is_consistent() -> None:
    params = ContinuationParams("mu", -0.45, 0.55, ds=0.1)
    branch = natural_continuation(HopfNormalForm(), [0.0, 0.0], params)
    for point in branch:
        assert point.eigenvalues.size == point.dimension
        assert point.stable == bool(np.all(point.eigenvalues.real < 0))
        assert point.residual_norm < params.newton_tol


def test_arclength_continuation_zero_steps() -> None:
    params = ContinuationParams("mu", 1.0, 2.0, max_steps=0)
    branch = PseudoArclengthContinuation().run(FoldNormalForm(), [1.0], params)
    assert branch.is_empty()


def test_arclength_tangent_orientation() -> None:
    params = ContinuationParams("mu", 1.0, 2.0, ds=0.05, max_steps=3)
    stepper = PseudoArclengthContinuation()

    branch = stepper.run(FoldNormalForm(), [1.0], params)
    # increasing mu: dx/ds > 0 on the upper branch
    tangent = branch.points[0].tangent
    assert tangent[1] > 0 and tangent[0] > 0
    assert np.linalg.norm(tangent) == pytest.approx(1.0)

    # going the other way flips the tangent
    branch = stepper.run(FoldNormalForm(), [1.0], params, initial_direction=-1)
    assert branch.points[0].tangent[1] < 0
    assert branch.points[1].parameter < 1.0


def test_switching_needs_a_tangent() -> None:
    params = ContinuationParams("mu", 0.0, 1.0)
    bif = BifurcationPoint(BifurcationType.HOPF, 0.0, [0.0, 0.0], [1j, -1j])
    with pytest.raises(InvalidParameter):
        BranchSwitcher().switch(HopfNormalForm(), bif, params)


def test_switching_checks_tangent_size() -> None:
    params = ContinuationParams("mu", 0.0, 1.0)
    bif = BifurcationPoint(BifurcationType.SADDLE_NODE, 0.0, [0.0], [0.0], tangent=[1.0, 0.0, 0.0])
    with pytest.raises(InvalidParameter):
        BranchSwitcher().switch(FoldNormalForm(), bif, params)


def test_newton_solve() -> None:
    x, iterations = newton_solve(FoldNormalForm(), [2.0], 1.0)
    np.testing.assert_allclose(x, [1.0])
    assert iterations > 1


def test_find_equilibria_pitchfork() -> None:
    equilibria = find_equilibria(PitchforkNormalForm(), 1.0, [[-2.0], [0.1], [2.0], [1.9]])

    assert len(equilibria) == 3
    states = sorted(float(eq.state[0]) for eq in equilibria)
    np.testing.assert_allclose(states, [-1.0, 0.0, 1.0], atol=1e-8)
    types = {round(float(eq.state[0])): eq.point_type for eq in equilibria}
    assert types[-1] is FixedPointType.STABLE_NODE
    assert types[1] is FixedPointType.STABLE_NODE
    assert types[0] is FixedPointType.UNSTABLE_NODE
    assert all(eq.parameter == 1.0 for eq in equilibria)


def test_find_equilibria_skips_failed_guesses() -> None:
    # no equilibria of dx/dt = mu - x^2 for mu < 0
    assert find_equilibria(FoldNormalForm(), -1.0, [[0.5], [2.0]], max_iterations=20) == []


def test_find_equilibria_lorenz_origin_is_saddle() -> None:
    (origin,) = find_equilibria(Lorenz(), 28.0, [[0.0, 0.0, 0.0]])
    np.testing.assert_allclose(origin.state, 0.0)
    assert origin.point_type is FixedPointType.SADDLE
    assert not origin.stable
    # one unstable direction
    assert np.count_nonzero(origin.eigenvalues.real > 0) == 1


class CountingScipySolver(ScipyNewtonSolver):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls = 0

    def solve(self, f, u0, jac=None, norm=None):
        self.calls += 1
        return super().solve(f, u0, jac, norm=norm)


def test_natural_continuation_uses_given_newton_solver() -> None:
    solver = CountingScipySolver(convergence_tolerance=1e-8)
    params = ContinuationParams("mu", 1.0, 1.2, ds=0.05)

    branch = NaturalContinuation(newton_solver=solver).run(FoldNormalForm(), [1.01], params)

    assert solver.calls == len(branch) == 5
    np.testing.assert_allclose(branch.state_vals(0), np.sqrt(branch.parameter_vals()), atol=1e-8)


def test_arclength_continuation_uses_given_newton_solver() -> None:
    solver = CountingScipySolver(convergence_tolerance=1e-8)
    params = ContinuationParams("mu", 1.0, 1.2, ds=0.05, max_steps=5)

    branch = PseudoArclengthContinuation(newton_solver=solver).run(FoldNormalForm(), [1.01], params)

    # one initial solve and one corrector solve per further point
    assert solver.calls == len(branch)
    assert len(branch) > 1
    np.testing.assert_allclose(branch.parameter_vals(), branch.state_vals(0) ** 2, atol=1e-7)


def test_arclength_step_size_grows_up_to_ds_max() -> None:
    # the branch x = p is a straight line, so each predictor is exact and the
    # corrector converges in a single iteration
    system = FunctionSystem(1, lambda x, p: x - p, jac=lambda x, p: [[1.0]], dfdp=lambda x, p: [-1.0])
    params = ContinuationParams("p", 0.0, 1.0, ds=0.01, ds_max=0.1, max_steps=12)

    branch = PseudoArclengthContinuation().run(system, [0.0], params)

    assert len(branch) == 12
    chords = np.diff(branch.arclength_vals())
    # 0.01, 0.015, 0.0225, 0.03375, 0.050625, 0.0759375, then capped at 0.1
    expected = np.minimum(0.01 * 1.5 ** np.arange(11), 0.1)
    np.testing.assert_allclose(chords, expected, atol=1e-10)
    np.testing.assert_allclose(branch.state_vals(0), branch.parameter_vals(), atol=1e-12)


def test_branches_carry_variable_names() -> None:
    params = ContinuationParams("mu", -0.45, 0.55, ds=0.1, max_steps=3)
    assert natural_continuation(HopfNormalForm(), [0.0, 0.0], params).variables == ("x", "y")
    assert natural_continuation(PitchforkNormalForm(), [0.7], params.replace(par_start=0.5)).variables == ("x",)
