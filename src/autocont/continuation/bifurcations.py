"""
Detection of bifurcations by comparing the eigenvalues of neighboring
solution points.
"""

from __future__ import annotations

import numpy as np

from autocont.core.solution import BifurcationType
from autocont.core.types import ArrayLike, ComplexArray

#: imaginary parts below this magnitude count as zero
IMAG_ZERO_TOLERANCE = 1e-6

#: eigenvalues with a real part closer to zero than this are considered critical
CRITICAL_REAL_PART = 0.1


def _sorted_by_real_part(eigenvalues: ArrayLike) -> ComplexArray:
    """Sort eigenvalues by descending real part."""
    ev = np.asarray(eigenvalues, dtype=complex)
    # stable sort, so that conjugate pairs keep their order
    return ev[np.argsort(-ev.real, kind="stable")]


def detect_bifurcation(current: ArrayLike, previous: ArrayLike) -> BifurcationType | None:
    """
    Compare the eigenvalues of two neighboring points for a stability change.

    Both lists are sorted by descending real part and compared rank by rank. The
    first pair whose real parts have opposite signs decides the type: if both
    eigenvalues are real, a single real eigenvalue crossed zero (saddle-node);
    if the previous eigenvalue was complex, a complex pair crossed the
    imaginary axis (Hopf). Eigenvalues alone cannot tell a saddle-node from a
    transcritical or pitchfork bifurcation, so those are all reported as
    saddle-node.

    NOTE: pairing eigenvalues by rank can mis-pair them when two eigenvalues
    cross in the same step or lie close together.

    Parameters
    ----------
    current
        Eigenvalues at the new point.
    previous
        Eigenvalues at the previous point.

    Returns
    -------
    BifurcationType | None
        The type of the detected bifurcation, or None for a regular step or if
        the lists differ in length.
    """
    cur = _sorted_by_real_part(current)
    prev = _sorted_by_real_part(previous)
    if cur.size != prev.size:
        return None
    for c, p in zip(cur, prev):
        if np.sign(c.real) * np.sign(p.real) >= 0:
            continue
        if abs(c.imag) < IMAG_ZERO_TOLERANCE and abs(p.imag) < IMAG_ZERO_TOLERANCE:
            return BifurcationType.SADDLE_NODE
        if abs(p.imag) > IMAG_ZERO_TOLERANCE:
            return BifurcationType.HOPF
    return None


def critical_eigenvalues(eigenvalues: ArrayLike, threshold: float = CRITICAL_REAL_PART) -> ComplexArray:
    """The eigenvalues close to the stability boundary (|Re| < threshold)."""
    ev = np.asarray(eigenvalues, dtype=complex)
    return ev[np.abs(ev.real) < threshold]


def count_unstable(eigenvalues: ArrayLike) -> int:
    """Number of eigenvalues with a non-negative real part."""
    return int(np.count_nonzero(np.real(eigenvalues) >= 0))
