"""
Parametrized ODE systems dx/dt = F(x, p) whose equilibria are continued.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

from .types import Array, Matrix


class System:
    """
    Base class for all parametrized ODE systems dx/dt = rhs(x, p).

    Custom systems inherit from this class and implement dimension() and rhs(x, p).
    They may additionally override jacobian(x, p) (the derivative d rhs / dx) and
    parameter_derivative(x, p) (d rhs / dp). Whether they did is reported by
    has_jacobian and has_parameter_derivative. Systems never approximate these
    derivatives themselves: the continuation drivers fall back to finite
    differences when an analytic version is missing.
    """

    #: optional names of the state variables, used for labelling
    variables: Sequence[str] = ()

    def dimension(self) -> int:
        """The number of state variables."""
        raise NotImplementedError("No dimension implemented for this system!")

    def rhs(self, x: Array, p: float) -> Array:
        """Calculate the right-hand side of the system dx/dt = rhs(x, p)."""
        raise NotImplementedError("No right-hand side (rhs) implemented for this system!")

    def jacobian(self, x: Array, p: float) -> Matrix:
        """Analytic Jacobian d rhs / dx, if available."""
        raise NotImplementedError("No analytic Jacobian implemented for this system!")

    def parameter_derivative(self, x: Array, p: float) -> Array:
        """Analytic parameter derivative d rhs / dp, if available."""
        raise NotImplementedError("No analytic parameter derivative implemented for this system!")

    @property
    def has_jacobian(self) -> bool:
        """Does the system provide an analytic Jacobian?"""
        return type(self).jacobian is not System.jacobian

    @property
    def has_parameter_derivative(self) -> bool:
        """Does the system provide an analytic parameter derivative?"""
        return type(self).parameter_derivative is not System.parameter_derivative

    def variable_name(self, index: int) -> str:
        """Name of the state variable with the given index."""
        if index < len(self.variables):
            return self.variables[index]
        return f"x{index}"


class FunctionSystem(System):
    """
    A System assembled from plain functions.

    Example
    -------
    >>> fold = FunctionSystem(1, lambda x, mu: mu - x**2, jac=lambda x, mu: -2 * np.diag(x))
    """

    def __init__(
        self,
        dimension: int,
        rhs: Callable[[Array, float], Array],
        jac: Callable[[Array, float], Matrix] | None = None,
        dfdp: Callable[[Array, float], Array] | None = None,
        variables: Sequence[str] = (),
    ) -> None:
        self._dimension = dimension
        self._rhs = rhs
        self._jac = jac
        self._dfdp = dfdp
        self.variables = tuple(variables)

    def dimension(self) -> int:
        return self._dimension

    def rhs(self, x, p):
        return np.atleast_1d(np.asarray(self._rhs(x, p), dtype=float))

    def jacobian(self, x, p):
        if self._jac is None:
            return super().jacobian(x, p)
        return np.atleast_2d(np.asarray(self._jac(x, p), dtype=float))

    def parameter_derivative(self, x, p):
        if self._dfdp is None:
            return super().parameter_derivative(x, p)
        return np.atleast_1d(np.asarray(self._dfdp(x, p), dtype=float))

    @property
    def has_jacobian(self) -> bool:
        return self._jac is not None

    @property
    def has_parameter_derivative(self) -> bool:
        return self._dfdp is not None
