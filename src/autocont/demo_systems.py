"""
A few classic systems for demonstrations and tests. The continuation parameter
is always the second argument of rhs(x, p).
"""

import numpy as np

from .core.system import System


class FoldNormalForm(System):
    """Saddle-node normal form dx/dt = mu - x^2, with a fold at mu = 0."""

    variables = ("x",)

    def dimension(self):
        return 1

    def rhs(self, x, mu):
        return np.array([mu - x[0] ** 2])

    def jacobian(self, x, mu):
        return np.array([[-2 * x[0]]])

    def parameter_derivative(self, x, mu):
        return np.array([1.0])


class TranscriticalNormalForm(System):
    """Transcritical normal form dx/dt = mu*x - x^2."""

    variables = ("x",)

    def dimension(self):
        return 1

    def rhs(self, x, mu):
        return np.array([mu * x[0] - x[0] ** 2])

    def jacobian(self, x, mu):
        return np.array([[mu - 2 * x[0]]])


class PitchforkNormalForm(System):
    """
    Supercritical pitchfork normal form dx/dt = mu*x - x^3.
    No analytic derivatives, so these come from finite differences.
    """

    variables = ("x",)

    def dimension(self):
        return 1

    def rhs(self, x, mu):
        return np.array([mu * x[0] - x[0] ** 3])


class HopfNormalForm(System):
    """
    Normal form of a supercritical Hopf bifurcation at mu = 0:
    dx/dt = mu*x - omega*y - x*(x^2 + y^2)
    dy/dt = omega*x + mu*y - y*(x^2 + y^2)
    """

    variables = ("x", "y")

    def __init__(self, omega=1.0):
        self.omega = omega

    def dimension(self):
        return 2

    def rhs(self, u, mu):
        x, y = u
        r2 = x**2 + y**2
        return np.array([mu * x - self.omega * y - x * r2, self.omega * x + mu * y - y * r2])

    def jacobian(self, u, mu):
        x, y = u
        r2 = x**2 + y**2
        return np.array(
            [
                [mu - r2 - 2 * x**2, -self.omega - 2 * x * y],
                [self.omega - 2 * x * y, mu - r2 - 2 * y**2],
            ]
        )


class Lorenz(System):
    """The Lorenz system, continued in rho."""

    variables = ("x", "y", "z")

    def __init__(self, sigma=10.0, beta=8.0 / 3.0):
        self.sigma = sigma
        self.beta = beta

    def dimension(self):
        return 3

    def rhs(self, u, rho):
        x, y, z = u
        return np.array([self.sigma * (y - x), x * (rho - z) - y, x * y - self.beta * z])

    def jacobian(self, u, rho):
        x, y, z = u
        return np.array(
            [
                [-self.sigma, self.sigma, 0.0],
                [rho - z, -1.0, -x],
                [y, x, -self.beta],
            ]
        )

    def parameter_derivative(self, u, rho):
        return np.array([0.0, u[0], 0.0])


class FitzHughNagumo(System):
    """
    The FitzHugh-Nagumo model, continued in the applied current I:
    dv/dt = v - v^3/3 - w + I
    dw/dt = epsilon * (v + a - b*w)
    """

    variables = ("v", "w")

    def __init__(self, a=0.7, b=0.8, epsilon=0.08):
        self.a = a
        self.b = b
        self.epsilon = epsilon

    def dimension(self):
        return 2

    def rhs(self, u, current):
        v, w = u
        return np.array([v - v**3 / 3 - w + current, self.epsilon * (v + self.a - self.b * w)])

    def jacobian(self, u, current):
        v, _ = u
        return np.array([[1 - v**2, -1.0], [self.epsilon, -self.epsilon * self.b]])
