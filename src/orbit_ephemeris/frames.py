"""Reference-frame helpers: ecliptic/equatorial rotation, polar angles, sidereal time, alt/az."""

from __future__ import annotations

import math

import cspyce
import numpy as np

from orbit_ephemeris.constants import (
    AU_IN_METERS,
    DAYS_PER_CENTURY,
    EARTH_INDEX,
    J2000,
    body_radius_in_meters,
)
from orbit_ephemeris.geodetic import to_geodetic

# Both frames are inertial and built into SPICE, so no kernel is needed.
ECLIPTIC_TO_EQUATORIAL = np.array(cspyce.pxform('ECLIPJ2000', 'J2000', 0.0), dtype=np.float64)
EQUATORIAL_TO_ECLIPTIC = ECLIPTIC_TO_EQUATORIAL.T


def ecliptic_to_equatorial(vec: np.ndarray) -> np.ndarray:
    """Rotate a J2000 ecliptic 3-vector into the J2000 equatorial frame."""
    return ECLIPTIC_TO_EQUATORIAL @ np.asarray(vec, dtype=np.float64)


def equatorial_to_ecliptic(vec: np.ndarray) -> np.ndarray:
    """Rotate a J2000 equatorial 3-vector into the J2000 ecliptic frame."""
    return EQUATORIAL_TO_ECLIPTIC @ np.asarray(vec, dtype=np.float64)


def vector_to_polar(vec: np.ndarray) -> tuple[float, float, float]:
    """Return (lon, lat, r) of a vector; lon in [0, 2*pi), lat in [-pi/2, pi/2]."""
    r, lon, lat = cspyce.recrad(np.asarray(vec[:3], dtype=np.float64))
    return (float(lon), float(lat), float(r))


def angle_between(v1: np.ndarray, v2: np.ndarray) -> float:
    """Angle between two vectors, radians."""
    return float(cspyce.vsep(np.asarray(v1, dtype=np.float64), np.asarray(v2, dtype=np.float64)))


def gmst(jd_ut: float) -> float:
    """Greenwich mean sidereal angle in radians at a UT Julian date."""
    t = (jd_ut - J2000) / DAYS_PER_CENTURY
    theta = (
        280.46061837
        + 360.98564736629 * (jd_ut - J2000)
        + 0.000387933 * t * t
        - t**3 / 38710000.0
    )
    return math.radians(theta % 360.0)


def alt_az(ra: float, dec: float, lat: float, lst: float) -> tuple[float, float]:
    """Altitude and azimuth of an equatorial direction.

    Parameters:
        ra: Right ascension, radians.
        dec: Declination, radians.
        lat: Site latitude, radians.
        lst: Local sidereal angle, radians.

    Returns:
        (alt, az) in radians; azimuth is measured from north through east, in [0, 2*pi).
    """
    hour_angle = lst - ra
    sin_alt = math.sin(lat) * math.sin(dec) + math.cos(lat) * math.cos(dec) * math.cos(hour_angle)
    alt = math.asin(max(-1.0, min(1.0, sin_alt)))
    az = math.atan2(
        -math.cos(dec) * math.sin(hour_angle),
        math.sin(dec) * math.cos(lat) - math.cos(dec) * math.sin(lat) * math.cos(hour_angle),
    )
    return (alt, az % (2.0 * math.pi))


def ground_track(
    geo_equatorial: np.ndarray,
    jd_ut: float,
    body: int = EARTH_INDEX,
    geometric: bool = False,
) -> tuple[float, float, float]:
    """Sub-object point on a rotating body.

    Parameters:
        geo_equatorial: Object position from the body's center, J2000 equatorial, AU.
        jd_ut: UT Julian date (sets the body's rotation).
        body: Body index (Earth unless another center is used).
        geometric: Give geocentric latitude and distance above the mean radius
            instead of planetodetic latitude and height above the spheroid.

    Returns:
        (lon, lat, alt_au): east longitude in (-pi, pi], latitude in radians,
        altitude in AU.
    """
    radius_au = body_radius_in_meters(body) / AU_IN_METERS
    x, y, z = (float(c) for c in geo_equatorial)
    lon = math.atan2(y, x) - gmst(jd_ut)
    lon = math.atan2(math.sin(lon), math.cos(lon))
    rho_cos_phi = math.hypot(x, y) / radius_au
    rho_sin_phi = z / radius_au
    if geometric:
        lat = math.atan2(rho_sin_phi, rho_cos_phi)
        alt_au = math.hypot(x, math.hypot(y, z)) - radius_au
        return (lon, lat, alt_au)
    lat, alt_m = to_geodetic(rho_cos_phi, rho_sin_phi, body)
    return (lon, lat, alt_m / AU_IN_METERS)
