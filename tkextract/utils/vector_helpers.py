"""Small numpy helpers for module geometry."""

from typing import Tuple

import numpy as np


def xy_radius(points: np.ndarray) -> np.ndarray:
    """Distance from the beam axis of each point, i.e. the radius of its projection on z = 0."""
    points = np.atleast_2d(points)
    return np.hypot(points[:, 0], points[:, 1])


def extrema(values) -> Tuple[float, float]:
    values = np.asarray(values, dtype=float)
    return float(np.min(values)), float(np.max(values))


def rectangle_footprint(center, width_axis, length_axis, width, length) -> np.ndarray:
    """
    Footprint vertices v0..v3 of a rectangular module.

    Parameters:
    -----------
    center : array-like
        Module center
    width_axis, length_axis : array-like
        Unit vectors along the module width and length
    width, length : float
        Module dimensions (mm)

    Returns:
    --------
    np.ndarray of shape (4, 3): v0 = c - w - l, v1 = c - w + l, v2 = c + w + l, v3 = c + w - l
    """
    return trapezoid_footprint(center, width_axis, length_axis, width, width, length)


def trapezoid_footprint(center, width_axis, length_axis, min_width, max_width, length) -> np.ndarray:
    """Footprint of a wedge module; the narrow edge lies at -length/2."""
    center = np.asarray(center, dtype=float)
    u = np.asarray(width_axis, dtype=float)
    v = np.asarray(length_axis, dtype=float)
    half_length = 0.5 * length * v
    return np.array([
        center - 0.5 * min_width * u - half_length,
        center - 0.5 * max_width * u + half_length,
        center + 0.5 * max_width * u + half_length,
        center + 0.5 * min_width * u - half_length,
    ])
