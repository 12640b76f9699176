"""Observing site: parallax-constant frame and station lookup."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path

from orbit_ephemeris.constants import EARTH_INDEX
from orbit_ephemeris.errors import StationError
from orbit_ephemeris.geodetic import parallax_in_au, to_geodetic, to_parallax

logger = logging.getLogger(__name__)

GEOCENTER_CODE = '500'


@dataclass(frozen=True)
class ObserverFrame:
    """Site fixed to a body, described by parallax constants.

    Parameters:
        body: Body index the site is fixed to (3=Earth).
        lon: East longitude in radians.
        rho_cos_phi: Parallax constant, in units of the body's equatorial radius.
        rho_sin_phi: Parallax constant, in units of the body's equatorial radius.
        code: Station code (three characters), if any.
        name: Station name.
    """

    body: int = EARTH_INDEX
    lon: float = 0.0
    rho_cos_phi: float = 0.0
    rho_sin_phi: float = 0.0
    code: str = GEOCENTER_CODE
    name: str = 'Geocentric'

    @property
    def is_topocentric(self) -> bool:
        """True if the site is off the body's center."""
        return self.rho_cos_phi != 0.0 or self.rho_sin_phi != 0.0

    @property
    def geocentric(self) -> ObserverFrame:
        """Frame at the same body's center."""
        return ObserverFrame(body=self.body, code=self.code, name=self.name)

    def parallax_in_au(self) -> tuple[float, float]:
        """Return (rho_cos_phi, rho_sin_phi) in AU."""
        return parallax_in_au(self.rho_cos_phi, self.rho_sin_phi, self.body)

    def latitude(self) -> float:
        """Planetodetic latitude of the site in radians."""
        lat, _ = to_geodetic(self.rho_cos_phi, self.rho_sin_phi, self.body)
        return lat

    def note_text(self) -> str:
        """Station caption written above an ephemeris, e.g. '(568) Mauna Kea'."""
        return f'({self.code}) {self.name}'


def observer_from_lat_lon_alt(
    lat_deg: float,
    lon_deg: float,
    alt_m: float,
    body: int = EARTH_INDEX,
    name: str = '',
) -> ObserverFrame:
    """Build a site frame from planetodetic coordinates.

    Parameters:
        lat_deg: Latitude in degrees.
        lon_deg: East longitude in degrees.
        alt_m: Altitude above the reference spheroid in meters.
        body: Body index.
        name: Optional site name.

    Returns:
        ObserverFrame with parallax constants from to_parallax.
    """
    rho_cos_phi, rho_sin_phi = to_parallax(math.radians(lat_deg), alt_m, body)
    return ObserverFrame(
        body=body,
        lon=math.radians(lon_deg),
        rho_cos_phi=rho_cos_phi,
        rho_sin_phi=rho_sin_phi,
        code='',
        name=name or f'({lat_deg:.5f}, {lon_deg:.5f}, {alt_m:.0f})',
    )


def parse_obscode_line(line: str) -> ObserverFrame | None:
    """Parse one MPC ObsCodes line: 'code  lon  rho_cos_phi  rho_sin_phi  name'.

    Parameters:
        line: Station list line (e.g. '568 204.52780 0.94171 +0.33725 Mauna Kea').

    Returns:
        ObserverFrame, or None for headers and stations without parallax data
        (such as space-based codes).
    """
    if len(line) < 4 or line[3] != ' ':
        return None
    code = line[:3]
    parts = line[4:].split(None, 3)
    if len(parts) < 3:
        return None
    try:
        lon_deg = float(parts[0])
        rho_cos_phi = float(parts[1])
        rho_sin_phi = float(parts[2])
    except ValueError:
        return None
    name = parts[3].strip() if len(parts) > 3 else ''
    return ObserverFrame(
        body=EARTH_INDEX,
        lon=math.radians(lon_deg),
        rho_cos_phi=rho_cos_phi,
        rho_sin_phi=rho_sin_phi,
        code=code,
        name=name,
    )


def load_station(code: str, path: str | Path | None = None) -> ObserverFrame:
    """Look up a station by its three-character code.

    Parameters:
        code: Station code; '500' (geocenter) needs no station file.
        path: MPC ObsCodes file.

    Returns:
        ObserverFrame for the station.

    Raises:
        StationError: If the code is not found or the file cannot be read.
    """
    code = code.strip()
    if code == GEOCENTER_CODE:
        return ObserverFrame()
    if path is None:
        raise StationError(f'No station file given to look up code {code!r}')
    try:
        with Path(path).open(encoding='utf-8', errors='replace') as f:
            for line in f:
                if line.startswith(code + ' '):
                    frame = parse_obscode_line(line.rstrip('\n'))
                    if frame is not None:
                        return frame
    except OSError as e:
        raise StationError(f'Cannot read station file {path}: {e}') from e
    raise StationError(f'Station {code!r} not found in {path}')
