"""Apparent magnitude from phase geometry, and radar signal-to-noise estimates."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

from orbit_ephemeris.constants import (
    DOUBTFUL_PHASE_ANGLE,
    MAG_CLAMP,
    OPTICAL_ALBEDO,
    RADAR_ALBEDO,
)
from orbit_ephemeris.errors import RadarProfileError

logger = logging.getLogger(__name__)

# H = 0 with albedo 1 corresponds to a 1300 km diameter.
DIAMETER_AT_H0_METERS = 1300.0e3

# Rotation period guess: big rocks (H <= 21) spin in 3 h, small ones (H >= 25) in 0.3 h.
BIG_ROCK_H, BIG_ROCK_PERIOD = 21.0, 3.0
SMALL_ROCK_H, SMALL_ROCK_PERIOD = 25.0, 0.3


def phase_angle(solar_r: float, obs_dist: float, earth_sun: float) -> float:
    """Sun-object-observer angle in radians from the three sides of the triangle."""
    cos_ph = (solar_r * solar_r + obs_dist * obs_dist - earth_sun * earth_sun) / (
        2.0 * solar_r * obs_dist
    )
    return math.acos(max(-1.0, min(1.0, cos_ph)))


class StandardPhaseModel:
    """Default phase-and-distance term.

    Asteroids use the IAU H-G system (slope parameter G); comets use the
    total-magnitude law 5 log(delta) + 10 log(r).
    """

    def __init__(self, slope: float = 0.15) -> None:
        self.slope = slope

    def __call__(
        self, is_comet: bool, solar_r: float, obs_dist: float, earth_sun: float
    ) -> tuple[float, float]:
        """Return (magnitude term, phase angle in radians)."""
        ph_ang = phase_angle(solar_r, obs_dist, earth_sun)
        if is_comet:
            return (5.0 * math.log10(obs_dist) + 10.0 * math.log10(solar_r), ph_ang)
        tan_half = math.tan(ph_ang / 2.0)
        phi1 = math.exp(-3.33 * tan_half**0.63)
        phi2 = math.exp(-1.87 * tan_half**1.22)
        reflected = (1.0 - self.slope) * phi1 + self.slope * phi2
        if reflected <= 0.0:
            return (MAG_CLAMP, ph_ang)
        return (5.0 * math.log10(solar_r * obs_dist) - 2.5 * math.log10(reflected), ph_ang)


@dataclass(frozen=True)
class MagnitudeEstimate:
    """Apparent magnitude of the object at one step.

    Parameters:
        magnitude: Apparent magnitude, clamped to 999.
        phase_angle: Sun-object-observer angle in radians.
        doubtful: Phase angle over 120 degrees for a non-cometary body.
    """

    magnitude: float
    phase_angle: float
    doubtful: bool = False


def apparent_magnitude(
    abs_mag: float,
    solar_r: float,
    obs_dist: float,
    earth_sun: float,
    is_comet: bool = False,
    model: Callable[[bool, float, float, float], tuple[float, float]] | None = None,
) -> MagnitudeEstimate:
    """Apparent magnitude from absolute magnitude and phase geometry.

    Parameters:
        abs_mag: Absolute magnitude (H for asteroids, M1 for comets).
        solar_r: Object-Sun distance, AU.
        obs_dist: Object-observer distance, AU.
        earth_sun: Observer-Sun distance, AU.
        is_comet: Selects the comet law; comets are never marked doubtful.
        model: Phase-and-distance term; any callable with StandardPhaseModel's
            signature. Defaults to StandardPhaseModel().

    Returns:
        MagnitudeEstimate. Values above 999 (object nearly behind the Sun)
        are clamped to 999.
    """
    model = model or StandardPhaseModel()
    term, ph_ang = model(is_comet, solar_r, obs_dist, earth_sun)
    mag = min(abs_mag + term, MAG_CLAMP)
    doubtful = ph_ang > DOUBTFUL_PHASE_ANGLE and not is_comet
    return MagnitudeEstimate(magnitude=mag, phase_angle=ph_ang, doubtful=doubtful)


def diameter_from_abs_mag(abs_mag: float, optical_albedo: float = OPTICAL_ALBEDO) -> float:
    """Diameter in meters of an object of absolute magnitude H and given albedo."""
    return DIAMETER_AT_H0_METERS * 0.1 ** (abs_mag / 5.0) / math.sqrt(optical_albedo)


def guessed_rotation_period(abs_mag: float) -> float:
    """Rotation period in hours guessed from H: small rocks spin faster."""
    if abs_mag < BIG_ROCK_H:
        return BIG_ROCK_PERIOD
    if abs_mag < SMALL_ROCK_H:
        return SMALL_ROCK_PERIOD + (BIG_ROCK_PERIOD - SMALL_ROCK_PERIOD) * (
            SMALL_ROCK_H - abs_mag
        ) / (SMALL_ROCK_H - BIG_ROCK_H)
    return SMALL_ROCK_PERIOD


@dataclass(frozen=True)
class RadarProfile:
    """Per-station radar constants.

    Parameters:
        power_watts: Transmitter power.
        system_temp_k: System temperature in kelvin.
        gain: Antenna gain in K/Jy.
        altitude_limit: Lowest usable altitude, radians.
        radar_constant: Calibration constant.
    """

    power_watts: float
    system_temp_k: float
    gain: float
    altitude_limit: float
    radar_constant: float

    def header_lines(self, abs_mag: float) -> list[str]:
        """Assumption lines written above a radar ephemeris."""
        return [
            f'Assumes power={self.power_watts / 1000.0:.2f} kW, '
            f'Tsys={self.system_temp_k:.1f} deg K, gain {self.gain:.2f} K/Jy',
            f'Assumed rotation period = {guessed_rotation_period(abs_mag):.2f} hours, '
            f'diameter {diameter_from_abs_mag(abs_mag):.1f} meters',
        ]


def parse_radar_profile(text: str) -> RadarProfile:
    """Parse 'power,tsys,gain,alt_limit_deg,radar_constant'.

    The altitude limit is converted to radians here, once.

    Raises:
        RadarProfileError: If the text does not hold five numbers.
    """
    parts = [p.strip() for p in text.split(',')]
    if len(parts) < 5:
        raise RadarProfileError(f'Radar profile {text!r} needs five comma-separated values')
    try:
        power, tsys, gain, alt_limit_deg, constant = (float(p) for p in parts[:5])
    except ValueError as e:
        raise RadarProfileError(f'Radar profile {text!r} is not numeric: {e}') from e
    if tsys <= 0.0:
        raise RadarProfileError(f'Radar profile {text!r} has non-positive system temperature')
    return RadarProfile(
        power_watts=power,
        system_temp_k=tsys,
        gain=gain,
        altitude_limit=math.radians(alt_limit_deg),
        radar_constant=constant,
    )


def radar_profile_for(station_code: str, profile_text: str | None) -> RadarProfile | None:
    """Radar profile for a station, or None when the station has none configured."""
    if not profile_text:
        logger.debug('No radar profile for station %r; SNR column disabled', station_code)
        return None
    profile = parse_radar_profile(profile_text)
    logger.info('Radar profile for station %s: %s', station_code, profile)
    return profile


def radar_snr_per_day(
    profile: RadarProfile,
    abs_mag: float,
    dist_au: float,
    radar_albedo: float = RADAR_ALBEDO,
    optical_albedo: float = OPTICAL_ALBEDO,
) -> float:
    """Estimated radar signal-to-noise ratio per day of integration.

    SNR grows as radar_constant * albedo * sqrt(P * D) * D / r^4 times
    power * gain / Tsys, with the diameter D from H and the optical albedo
    and the rotation period P guessed from H.

    Parameters:
        profile: Station radar profile.
        abs_mag: Absolute magnitude.
        dist_au: Object-station distance, AU.
        radar_albedo: Radar cross section over projected area.
        optical_albedo: Albedo used to size the object.

    Returns:
        SNR per day.
    """
    period = guessed_rotation_period(abs_mag)
    diameter = diameter_from_abs_mag(abs_mag, optical_albedo)
    snr = (
        profile.radar_constant
        * radar_albedo
        * math.sqrt(period * diameter)
        * diameter
        / dist_au**4
    )
    return snr * profile.power_watts * profile.gain / profile.system_temp_k
