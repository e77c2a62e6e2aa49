"""Common type aliases used throughout the package."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeAlias

import numpy as np
import numpy.typing

if TYPE_CHECKING:
    import matplotlib.axes

# Common type for real vectors, e.g. the state of a system
Array: TypeAlias = numpy.typing.NDArray[np.float64]

# Dense real matrices, e.g. Jacobians
Matrix: TypeAlias = numpy.typing.NDArray[np.float64]

# Type for eigenvalue lists: one complex number (real, imag) per state dimension
ComplexArray: TypeAlias = numpy.typing.NDArray[np.complexfloating]

# Objects that can be coerced into an Array
ArrayLike: TypeAlias = numpy.typing.ArrayLike

# Common type for matplotlib axes
if TYPE_CHECKING:
    Axes: TypeAlias = matplotlib.axes.Axes
else:
    Axes: TypeAlias = Any
