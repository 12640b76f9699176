"""Umbral shadow test for a point behind an occulting body."""

from __future__ import annotations

import numpy as np

from orbit_ephemeris.constants import EARTH_MAJOR_AXIS_IN_AU, SUN_RADIUS_IN_AU


def umbra_radius(
    primary_loc: np.ndarray,
    axial_distance: float,
    primary_radius_au: float = EARTH_MAJOR_AXIS_IN_AU,
    source_radius_au: float = SUN_RADIUS_IN_AU,
) -> float:
    """Radius of the umbral cone at a distance along the source-primary axis.

    Negative beyond the cone's apex; same units as the inputs.
    """
    primary_dist = float(np.linalg.norm(primary_loc))
    return primary_radius_au - (axial_distance - primary_dist) * (
        source_radius_au - primary_radius_au
    ) / primary_dist


def in_umbra(
    primary_loc: np.ndarray,
    point: np.ndarray,
    primary_radius_au: float = EARTH_MAJOR_AXIS_IN_AU,
    source_radius_au: float = SUN_RADIUS_IN_AU,
) -> bool:
    """Return True if a point lies in the primary body's umbra.

    With the light source at the origin, the point is projected onto the
    source-primary axis. Points nearer the source than the primary are never
    shadowed. Beyond the primary, the umbra radius shrinks linearly from the
    primary's radius; the point is shadowed if its off-axis distance is
    smaller than that radius.

    Parameters:
        primary_loc: Primary body position relative to the source (e.g. the
            Earth's heliocentric vector, AU).
        point: Candidate point in the same frame and units.
        primary_radius_au: Radius of the occulting body in AU (default Earth).
        source_radius_au: Radius of the light source in AU (default Sun).

    Returns:
        True if the point is in the umbra.
    """
    primary_loc = np.asarray(primary_loc, dtype=np.float64)
    point = np.asarray(point, dtype=np.float64)
    primary_dist = float(np.linalg.norm(primary_loc))
    x = float(np.dot(primary_loc, point)) / primary_dist
    if x <= primary_dist:
        return False
    shadow_radius = umbra_radius(primary_loc, x, primary_radius_au, source_radius_au)
    if shadow_radius <= 0.0:
        return False
    off_axis = point - primary_loc * (x / primary_dist)
    return float(np.linalg.norm(off_axis)) < shadow_radius
