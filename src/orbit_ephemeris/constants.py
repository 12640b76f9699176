"""Fixed constants: units, physical constants, body shapes and NAIF codes."""

import math

# Units
AU_IN_KM = 149597870.7
AU_IN_METERS = AU_IN_KM * 1000.0
SPEED_OF_LIGHT = 299792.458  # km/s
SECONDS_PER_DAY = 86400.0
HOURS_PER_DAY = 24.0
MINUTES_PER_DAY = 1440.0
DAYS_PER_WEEK = 7.0
DAYS_PER_YEAR = 365.25
AU_PER_DAY = SPEED_OF_LIGHT * SECONDS_PER_DAY / AU_IN_KM  # speed of light, AU/day
LIGHT_YEAR_IN_KM = DAYS_PER_YEAR * SECONDS_PER_DAY * SPEED_OF_LIGHT

# Epochs
J2000 = 2451545.0
J2000_MIDNIGHT = J2000 - 0.5  # JD of 2000-01-01 00:00, day zero for rms-julian
DAYS_PER_CENTURY = 36525.0

# Angles
DPR = 180.0 / math.pi
RADIANS_PER_ARCSEC = math.pi / (180.0 * 3600.0)
ARCSEC_PER_RADIAN = 180.0 * 3600.0 / math.pi

# Gravitation: Gauss' constant gives GM(sun) in AU^3/day^2
GAUSS_K = 0.01720209895
SOLAR_GM = GAUSS_K * GAUSS_K

# Radii used by the shadow test
EARTH_MAJOR_AXIS = 6378140.0  # meters
EARTH_MAJOR_AXIS_IN_AU = EARTH_MAJOR_AXIS / AU_IN_METERS
SUN_RADIUS_IN_AU = 696000.0 / AU_IN_KM

# Body index: 0=Sun, 1..9=Mercury..Pluto, 10=Moon
SUN_INDEX = 0
EARTH_INDEX = 3
MOON_INDEX = 10

# Body index -> (equatorial radius in meters, polar/equatorial axis ratio)
BODY_SHAPES: dict[int, tuple[float, float]] = {
    0: (696000000.0, 1.0),
    1: (2439700.0, 1.0),
    2: (6051800.0, 1.0),
    3: (EARTH_MAJOR_AXIS, 0.99664719),
    4: (3396190.0, 3376200.0 / 3396190.0),
    5: (71492000.0, 66854000.0 / 71492000.0),
    6: (60268000.0, 54364000.0 / 60268000.0),
    7: (25559000.0, 24973000.0 / 25559000.0),
    8: (24764000.0, 24341000.0 / 24764000.0),
    9: (1188300.0, 1.0),
    10: (1737400.0, 1.0),
}

# Body index -> NAIF body ID
BODY_NAIF_IDS: dict[int, int] = {
    0: 10,
    1: 199,
    2: 299,
    3: 399,
    4: 499,
    5: 599,
    6: 699,
    7: 799,
    8: 899,
    9: 999,
    10: 301,
}

BODY_NAMES: dict[int, str] = {
    0: 'Sun',
    1: 'Mercury',
    2: 'Venus',
    3: 'Earth',
    4: 'Mars',
    5: 'Jupiter',
    6: 'Saturn',
    7: 'Uranus',
    8: 'Neptune',
    9: 'Pluto',
    10: 'Moon',
}

# Reference bodies for MOID columns (Mercury..Neptune)
MOID_BODIES = (1, 2, 3, 4, 5, 6, 7, 8)

# Twilight limits (sun altitude, degrees) for the visibility code
CIVIL_TWILIGHT_DEG = -6.0
NAUTICAL_TWILIGHT_DEG = -12.0
ASTRONOMICAL_TWILIGHT_DEG = -18.0

# Radar/magnitude defaults
OPTICAL_ALBEDO = 0.1
RADAR_ALBEDO = 0.1
DEFAULT_MAG_LIMIT = 22.0
MAG_CLAMP = 999.0
DOUBTFUL_PHASE_ANGLE = math.pi * 2.0 / 3.0  # 120 degrees


def body_radius_in_meters(body: int) -> float:
    """Return the equatorial radius of a body by index.

    Parameters:
        body: Body index (0=Sun, 3=Earth, 10=Moon).

    Returns:
        Equatorial radius in meters.

    Raises:
        ValueError: If the body has no registered shape.
    """
    return _body_shape(body)[0]


def body_axis_ratio(body: int) -> float:
    """Return the polar/equatorial axis ratio of a body by index."""
    return _body_shape(body)[1]


def _body_shape(body: int) -> tuple[float, float]:
    try:
        return BODY_SHAPES[body]
    except KeyError:
        raise ValueError(f'No radius/axis ratio registered for body index {body}') from None
