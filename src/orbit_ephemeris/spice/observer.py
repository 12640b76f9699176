"""Default observer locator: site and planet positions from SPICE."""

from __future__ import annotations

import cspyce
import numpy as np

from orbit_ephemeris.constants import (
    AU_IN_KM,
    BODY_NAIF_IDS,
    BODY_NAMES,
    EARTH_INDEX,
    MOON_INDEX,
    SECONDS_PER_DAY,
    SUN_INDEX,
    body_radius_in_meters,
)
from orbit_ephemeris.observer import ObserverFrame
from orbit_ephemeris.time_utils import et_from_jd_tt

ECLIPTIC_FRAME = 'ECLIPJ2000'

# km, km/s -> AU, AU/day
_STATE_SCALE = np.array([1.0, 1.0, 1.0, SECONDS_PER_DAY, SECONDS_PER_DAY, SECONDS_PER_DAY]) / AU_IN_KM


def _ssb_state(naif_id: int, et: float) -> np.ndarray:
    return np.array(cspyce.spkssb(naif_id, et, ECLIPTIC_FRAME), dtype=np.float64)


def heliocentric_state(body: int, et: float) -> np.ndarray:
    """Heliocentric ecliptic J2000 state of a body, in AU and AU/day.

    Parameters:
        body: Body index (3=Earth, 10=Moon).
        et: Ephemeris seconds past J2000.

    Returns:
        Length-6 array.
    """
    state = _ssb_state(BODY_NAIF_IDS[body], et) - _ssb_state(BODY_NAIF_IDS[SUN_INDEX], et)
    return state * _STATE_SCALE


def site_offset_state(observer: ObserverFrame, et: float) -> np.ndarray:
    """State of a site relative to its body's center, ecliptic J2000, AU and AU/day.

    The body-fixed site vector is built from the parallax constants and
    longitude, then carried into the ecliptic frame with the body's state
    transformation so the velocity includes the body's rotation.
    """
    radius_km = body_radius_in_meters(observer.body) / 1000.0
    body_fixed = np.array(
        [
            observer.rho_cos_phi * np.cos(observer.lon) * radius_km,
            observer.rho_cos_phi * np.sin(observer.lon) * radius_km,
            observer.rho_sin_phi * radius_km,
            0.0,
            0.0,
            0.0,
        ]
    )
    frame = f'IAU_{BODY_NAMES[observer.body].upper()}'
    xform = np.array(cspyce.sxform(frame, ECLIPTIC_FRAME, et), dtype=np.float64)
    return (xform @ body_fixed) * _STATE_SCALE


class SpiceObserverLocator:
    """ObserverLocator backed by loaded SPICE kernels (see load_spice_kernels)."""

    def observer_state(self, jd_tt: float, observer: ObserverFrame) -> np.ndarray:
        """Heliocentric ecliptic state (AU, AU/day) of the site at a TT Julian date."""
        et = et_from_jd_tt(jd_tt)
        state = heliocentric_state(observer.body, et)
        if observer.is_topocentric:
            state = state + site_offset_state(observer, et)
        return state

    def earth_moon_positions(self, jd_tt: float) -> tuple[np.ndarray, np.ndarray]:
        """Heliocentric ecliptic positions (AU) of the Earth and the Moon."""
        et = et_from_jd_tt(jd_tt)
        earth = heliocentric_state(EARTH_INDEX, et)[:3]
        moon = heliocentric_state(MOON_INDEX, et)[:3]
        return (earth, moon)
