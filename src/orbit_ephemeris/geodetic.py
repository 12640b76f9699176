"""Planetodetic latitude/altitude <-> parallax constants for an oblate body."""

from __future__ import annotations

import logging
import math

from orbit_ephemeris.constants import (
    AU_IN_METERS,
    EARTH_INDEX,
    body_axis_ratio,
    body_radius_in_meters,
)

logger = logging.getLogger(__name__)

# Refinements stop once both corrections fall below these, or after the cap.
GEODETIC_ALT_TOLERANCE_M = 1.0e-6
GEODETIC_LAT_TOLERANCE = 1.0e-12
GEODETIC_MAX_ITERATIONS = 100


def to_parallax(lat: float, alt_m: float, body: int = EARTH_INDEX) -> tuple[float, float]:
    """Convert planetodetic latitude and altitude to parallax constants.

    Parameters:
        lat: Planetodetic latitude in radians.
        alt_m: Height above the reference spheroid in meters.
        body: Body index (3=Earth); must have a registered radius and axis ratio.

    Returns:
        (rho_cos_phi, rho_sin_phi) in units of the body's equatorial radius.

    Raises:
        ValueError: If the body has no registered shape.
    """
    axis_ratio = body_axis_ratio(body)
    major_axis = body_radius_in_meters(body)
    u = math.atan2(math.sin(lat) * axis_ratio, math.cos(lat))
    h = alt_m / major_axis
    rho_sin_phi = axis_ratio * math.sin(u) + h * math.sin(lat)
    rho_cos_phi = math.cos(u) + h * math.cos(lat)
    return (rho_cos_phi, rho_sin_phi)


def to_geodetic(
    rho_cos_phi: float,
    rho_sin_phi: float,
    body: int = EARTH_INDEX,
    max_iterations: int = GEODETIC_MAX_ITERATIONS,
) -> tuple[float, float]:
    """Convert parallax constants back to planetodetic latitude and altitude.

    Starts from the spherical guess (geocentric latitude, zero altitude) and
    repeatedly re-projects the guess through to_parallax, nudging latitude by
    the angular residual and altitude by the radial residual. Earth converges
    in a handful of refinements; strongly oblate bodies such as Saturn take
    about twenty.

    Parameters:
        rho_cos_phi: Parallax constant in equatorial radii.
        rho_sin_phi: Parallax constant in equatorial radii.
        body: Body index.
        max_iterations: Upper bound on the number of refinements.

    Returns:
        (lat, alt_m): latitude in radians, altitude in meters.
    """
    major_axis = body_radius_in_meters(body)
    lat0 = math.atan2(rho_sin_phi, rho_cos_phi)
    rho0 = math.hypot(rho_cos_phi, rho_sin_phi)
    lat, alt = lat0, 0.0
    for _ in range(max_iterations):
        rc2, rs2 = to_parallax(lat, alt, body)
        d_alt = (math.hypot(rc2, rs2) - rho0) * major_axis
        d_lat = math.atan2(rs2, rc2) - lat0
        alt -= d_alt
        lat -= d_lat
        if abs(d_alt) < GEODETIC_ALT_TOLERANCE_M and abs(d_lat) < GEODETIC_LAT_TOLERANCE:
            break
    else:
        logger.debug(
            'Geodetic conversion for body %d stopped after %d refinements', body, max_iterations
        )
    return (lat, alt)


def parallax_in_au(
    rho_cos_phi: float, rho_sin_phi: float, body: int = EARTH_INDEX
) -> tuple[float, float]:
    """Scale parallax constants from equatorial radii to AU."""
    scale = body_radius_in_meters(body) / AU_IN_METERS
    return (rho_cos_phi * scale, rho_sin_phi * scale)
