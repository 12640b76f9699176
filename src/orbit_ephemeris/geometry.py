"""Per-step observing geometry: light-time corrected vectors, sky position and apparent motion."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from orbit_ephemeris.constants import AU_PER_DAY, DPR
from orbit_ephemeris.formatting import format_motion
from orbit_ephemeris.frames import ecliptic_to_equatorial, vector_to_polar

# radians/day -> arcminutes/hour
_RADIANS_PER_DAY_TO_ARCMIN_PER_HOUR = DPR * 60.0 / 24.0


@dataclass(frozen=True)
class GeometrySample:
    """Geometry of one realization at one ephemeris step.

    Vectors are in AU (velocities AU/day). Equatorial vectors are J2000.

    Parameters:
        orbi_after: Heliocentric ecliptic object position at emission time.
        topo_ecliptic: Observer-to-object vector, ecliptic.
        topo_eq: Observer-to-object vector, equatorial.
        topo_vel_eq: Object velocity relative to the observer, equatorial.
        geo_eq: Body-center-to-object vector, equatorial.
        r: Observer-object distance.
        solar_r: Sun-object distance.
        earth_r: Sun-observer distance.
        radial_vel: Rate of change of r, AU/day.
        ra: Right ascension, radians in [0, 2*pi) before any sky offset.
        dec: Declination, radians.
    """

    orbi_after: np.ndarray
    topo_ecliptic: np.ndarray
    topo_eq: np.ndarray
    topo_vel_eq: np.ndarray
    geo_eq: np.ndarray
    r: float
    solar_r: float
    earth_r: float
    radial_vel: float
    ra: float
    dec: float

    @property
    def cos_elong(self) -> float:
        """Cosine of the solar elongation seen from the observer."""
        value = (self.r * self.r + self.earth_r * self.earth_r - self.solar_r * self.solar_r) / (
            2.0 * self.earth_r * self.r
        )
        return max(-1.0, min(1.0, value))


def compute_geometry(
    state: np.ndarray,
    obs_state: np.ndarray,
    geo_state: np.ndarray,
    light_time: bool = True,
) -> GeometrySample:
    """Relate an object state to an observer at one instant.

    With light_time, the object is moved back along its velocity by the
    light travel time over the instantaneous distance (a single correction
    step, no iteration). The observer-relative velocity is not corrected.

    Parameters:
        state: Object heliocentric ecliptic state (AU, AU/day).
        obs_state: Observer heliocentric ecliptic state.
        geo_state: State of the observer's body center.
        light_time: Apply the light-time correction (observables only).

    Returns:
        GeometrySample.
    """
    state = np.asarray(state, dtype=np.float64)
    obs_posn = np.asarray(obs_state[:3], dtype=np.float64)
    obs_vel = np.asarray(obs_state[3:6], dtype=np.float64)
    orbi = state[:3].copy()
    topo = orbi - obs_posn
    geo = orbi - np.asarray(geo_state[:3], dtype=np.float64)
    topo_vel = state[3:6] - obs_vel
    if light_time:
        diff = -state[3:6] * float(np.linalg.norm(topo)) / AU_PER_DAY
        orbi = orbi + diff
        topo = topo + diff
        geo = geo + diff
    topo_eq = ecliptic_to_equatorial(topo)
    topo_vel_eq = ecliptic_to_equatorial(topo_vel)
    ra, dec, r = vector_to_polar(topo_eq)
    return GeometrySample(
        orbi_after=orbi,
        topo_ecliptic=topo,
        topo_eq=topo_eq,
        topo_vel_eq=topo_vel_eq,
        geo_eq=ecliptic_to_equatorial(geo),
        r=r,
        solar_r=float(np.linalg.norm(orbi)),
        earth_r=float(np.linalg.norm(obs_posn)),
        radial_vel=float(np.dot(topo_eq, topo_vel_eq)) / r,
        ra=ra,
        dec=dec,
    )


@dataclass(frozen=True)
class MotionDetails:
    """Apparent motion on the sky, in arcminutes per hour.

    Parameters:
        ra_motion: Eastward rate (already scaled by cos(dec)).
        dec_motion: Northward rate.
        total_motion: Total rate.
        position_angle: Direction of motion in degrees, north through east, [0, 360).
    """

    ra_motion: float
    dec_motion: float
    total_motion: float
    position_angle: float


def motion_details(sample: GeometrySample) -> MotionDetails:
    """Apparent sky motion of a sample from its observer-relative velocity."""
    u = sample.topo_eq / sample.r
    v = sample.topo_vel_eq
    du_dt = (v - u * float(np.dot(u, v))) / sample.r
    sin_ra, cos_ra = math.sin(sample.ra), math.cos(sample.ra)
    sin_dec, cos_dec = math.sin(sample.dec), math.cos(sample.dec)
    east = np.array([-sin_ra, cos_ra, 0.0])
    north = np.array([-sin_dec * cos_ra, -sin_dec * sin_ra, cos_dec])
    ra_motion = float(np.dot(du_dt, east)) * _RADIANS_PER_DAY_TO_ARCMIN_PER_HOUR
    dec_motion = float(np.dot(du_dt, north)) * _RADIANS_PER_DAY_TO_ARCMIN_PER_HOUR
    pa = math.degrees(math.atan2(ra_motion, dec_motion)) % 360.0
    return MotionDetails(
        ra_motion=ra_motion,
        dec_motion=dec_motion,
        total_motion=math.hypot(ra_motion, dec_motion),
        position_angle=pa,
    )


def motion_text(motion: MotionDetails, separate: bool = False) -> str:
    """Motion columns: ' rrrrrr dddddd' (separate rates) or ' tttttt ppp.p '."""
    if separate:
        return f' {format_motion(motion.ra_motion)} {format_motion(motion.dec_motion)}'
    return f' {format_motion(motion.total_motion)} {motion.position_angle:5.1f} '
