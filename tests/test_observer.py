"""Tests for observing-site frames and MPC station lookup."""

from __future__ import annotations

import math
from pathlib import Path

import pytest

from orbit_ephemeris.errors import StationError
from orbit_ephemeris.observer import (
    ObserverFrame,
    load_station,
    observer_from_lat_lon_alt,
    parse_obscode_line,
)

_OBSCODES = """\
Code  Long.   cos      sin    Name
500   0.0000 0.00000  0.000000Geocentric
568 204.52780 0.94171 +0.33725 Mauna Kea
C51                           WISE
G96 249.21128 0.845111+0.533614Mt. Lemmon Survey
"""


def test_parse_obscode_line() -> None:
    """A station line gives longitude in radians and both parallax constants."""
    frame = parse_obscode_line('568 204.52780 0.94171 +0.33725 Mauna Kea')
    assert frame is not None
    assert frame.code == '568'
    assert frame.lon == pytest.approx(math.radians(204.5278))
    assert frame.rho_cos_phi == 0.94171
    assert frame.rho_sin_phi == 0.33725
    assert frame.name == 'Mauna Kea'
    assert frame.is_topocentric
    assert frame.note_text() == '(568) Mauna Kea'


def test_parse_obscode_line_skips_headers_and_space_stations() -> None:
    """Header lines and stations without parallax constants give None."""
    assert parse_obscode_line('Code  Long.   cos      sin    Name') is None
    assert parse_obscode_line('C51                           WISE') is None
    assert parse_obscode_line('') is None


def test_load_station_from_file(tmp_path: Path) -> None:
    """Stations are found by code in an ObsCodes file."""
    path = tmp_path / 'ObsCodes.html'
    path.write_text(_OBSCODES, encoding='utf-8')
    frame = load_station('568', path)
    assert frame.name == 'Mauna Kea'
    assert load_station('500').is_topocentric is False
    with pytest.raises(StationError, match='not found'):
        load_station('C51', path)
    with pytest.raises(StationError, match='not found'):
        load_station('XYZ', path)


def test_load_station_errors(tmp_path: Path) -> None:
    """A missing file or no file at all raises StationError."""
    with pytest.raises(StationError, match='Cannot read'):
        load_station('568', tmp_path / 'missing.html')
    with pytest.raises(StationError, match='No station file'):
        load_station('568')


def test_observer_from_lat_lon_alt() -> None:
    """A site from geodetic coordinates reports the same latitude back."""
    frame = observer_from_lat_lon_alt(19.8, -155.47, 4205.0)
    assert frame.is_topocentric
    assert frame.lon == pytest.approx(math.radians(-155.47))
    assert frame.latitude() == pytest.approx(math.radians(19.8), abs=1e-9)
    assert frame.name == '(19.80000, -155.47000, 4205)'


def test_geocentric_frame() -> None:
    """The geocentric view of a site keeps its code but drops the offset."""
    frame = ObserverFrame(lon=1.0, rho_cos_phi=0.9, rho_sin_phi=0.4, code='568', name='Mauna Kea')
    center = frame.geocentric
    assert not center.is_topocentric
    assert center.code == '568'
    assert ObserverFrame().parallax_in_au() == (0.0, 0.0)
