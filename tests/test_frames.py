"""Tests for frame rotations, polar angles, sidereal time and alt/az."""

from __future__ import annotations

import math

import numpy as np
import pytest

from orbit_ephemeris.constants import AU_IN_METERS, EARTH_INDEX, J2000, body_radius_in_meters
from orbit_ephemeris.frames import (
    alt_az,
    angle_between,
    ecliptic_to_equatorial,
    equatorial_to_ecliptic,
    gmst,
    ground_track,
    vector_to_polar,
)

OBLIQUITY = math.radians(84381.448 / 3600.0)


def test_ecliptic_pole_in_equatorial_frame() -> None:
    """The ecliptic north pole tilts toward -y by the J2000 obliquity."""
    pole = ecliptic_to_equatorial(np.array([0.0, 0.0, 1.0]))
    assert pole == pytest.approx([0.0, -math.sin(OBLIQUITY), math.cos(OBLIQUITY)], abs=1e-12)
    vec = np.array([0.3, -0.4, 1.2])
    assert equatorial_to_ecliptic(ecliptic_to_equatorial(vec)) == pytest.approx(vec, abs=1e-14)


def test_vector_to_polar() -> None:
    """Longitude is in [0, 2*pi); the radius is the vector length."""
    lon, lat, r = vector_to_polar(np.array([0.0, -2.0, 0.0]))
    assert lon == pytest.approx(1.5 * math.pi)
    assert lat == pytest.approx(0.0)
    assert r == pytest.approx(2.0)
    lon, lat, r = vector_to_polar(np.array([1.0, 1.0, math.sqrt(2.0), 9.0, 9.0, 9.0]))
    assert lon == pytest.approx(math.pi / 4)
    assert lat == pytest.approx(math.pi / 4)
    assert r == pytest.approx(2.0)


def test_angle_between() -> None:
    """Separation ignores vector length."""
    assert angle_between(np.array([1.0, 0.0, 0.0]), np.array([0.0, 5.0, 0.0])) == pytest.approx(math.pi / 2)
    assert angle_between(np.array([1.0, 1.0, 0.0]), np.array([-2.0, -2.0, 0.0])) == pytest.approx(math.pi)


def test_gmst_at_j2000() -> None:
    """Mean sidereal angle at J2000 is 280.46061837 degrees."""
    assert gmst(J2000) == pytest.approx(math.radians(280.46061837), abs=1e-12)


def test_alt_az() -> None:
    """Overhead gives altitude 90 degrees; an equatorial source six hours west sets due west."""
    alt, _ = alt_az(1.0, 0.6, 0.6, 1.0)
    assert alt == pytest.approx(math.pi / 2)
    alt, az = alt_az(0.0, 0.0, 0.0, math.pi / 2)
    assert alt == pytest.approx(0.0, abs=1e-12)
    assert az == pytest.approx(1.5 * math.pi)


def test_geometric_ground_track() -> None:
    """A point one Earth radius above the equator on the x axis at J2000."""
    radius_au = body_radius_in_meters(EARTH_INDEX) / AU_IN_METERS
    lon, lat, alt_au = ground_track(np.array([2.0 * radius_au, 0.0, 0.0]), J2000, geometric=True)
    assert lon == pytest.approx(math.radians(360.0 - 280.46061837), abs=1e-12)
    assert lat == pytest.approx(0.0)
    assert alt_au == pytest.approx(radius_au)
