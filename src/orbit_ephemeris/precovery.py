"""Precovery: which archived plates would have caught the object on past nights.

A sky-coverage index lists one night per line as ``YYYYDDD <coverage file>``.
Each coverage file lists one plate per line with the RA/Dec (radians) of its
four corners. Corner 0 is read from columns 0 and 10; corner i (1..3) from
columns 18*i + 1 and 18*i + 10.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import numpy as np

from orbit_ephemeris.collaborators import Integrator, ObserverLocator, PlateCoverage
from orbit_ephemeris.config import get_sky_coverage_path
from orbit_ephemeris.constants import J2000
from orbit_ephemeris.errors import ConfigurationError, OutputFileError
from orbit_ephemeris.frames import ecliptic_to_equatorial, vector_to_polar
from orbit_ephemeris.observer import ObserverFrame
from orbit_ephemeris.time_utils import day_from_ymd

logger = logging.getLogger(__name__)

# Leading number of a fixed-width field; anything after it is ignored.
_NUMBER = re.compile(r'\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)')

_CORNER_COLUMNS = ((0, 10), (19, 28), (37, 46), (55, 64))


@dataclass(frozen=True)
class PlateNight:
    """One night of the coverage index.

    Parameters:
        jd: Julian date (TT) at which the object is placed for this night.
        coverage_name: Coverage file name as written in the index.
    """

    jd: float
    coverage_name: str


@dataclass(frozen=True)
class PlateField:
    """RA/Dec box spanned by the four corners of one plate (radians)."""

    ra_min: float
    ra_max: float
    dec_min: float
    dec_max: float

    @classmethod
    def from_corners(cls, corners: list[tuple[float, float]]) -> PlateField:
        """Box around the corners; RAs are unwrapped so a plate may straddle RA 0."""
        ra_min = ra_max = corners[0][0]
        dec_min = dec_max = corners[0][1]
        for ra, dec in corners[1:]:
            while ra - ra_min > math.pi:
                ra -= 2.0 * math.pi
            while ra - ra_max < -math.pi:
                ra += 2.0 * math.pi
            ra_min = min(ra_min, ra)
            ra_max = max(ra_max, ra)
            dec_min = min(dec_min, dec)
            dec_max = max(dec_max, dec)
        return cls(ra_min, ra_max, dec_min, dec_max)

    def contains(self, ra: float, dec: float) -> bool:
        """True if the direction lies strictly inside the box."""
        while ra - self.ra_min > math.pi:
            ra -= 2.0 * math.pi
        while ra - self.ra_min < -math.pi:
            ra += 2.0 * math.pi
        return self.ra_min < ra < self.ra_max and self.dec_min < dec < self.dec_max


def _number_at(line: str, column: int) -> float:
    match = _NUMBER.match(line, column)
    if match is None:
        raise ValueError(f'no number at column {column}')
    return float(match.group(1))


def parse_plate_field(line: str) -> PlateField:
    """Parse one coverage-file line into a PlateField.

    Raises:
        ValueError: If a corner coordinate is missing.
    """
    corners = [(_number_at(line, ra_col), _number_at(line, dec_col)) for ra_col, dec_col in _CORNER_COLUMNS]
    return PlateField.from_corners(corners)


def night_jd(yyyyddd: int) -> float:
    """Julian date of the midnight that ends day-of-year DDD of year YYYY."""
    year, doy = divmod(yyyyddd, 1000)
    return J2000 + day_from_ymd(year, 1, 1) + doy + 0.5


class SkyCoverageFiles:
    """Plate coverage read from an index file and per-night coverage files.

    Coverage file names are resolved against the index file's directory.
    """

    def __init__(self, index_path: str | Path | None = None) -> None:
        self.index_path = Path(index_path if index_path is not None else get_sky_coverage_path())

    def nights(self) -> Iterator[PlateNight]:
        """Nights listed in the index, in file order.

        Raises:
            ConfigurationError: If the index cannot be read or a date is malformed.
        """
        try:
            lines = self.index_path.read_text(encoding='utf-8').splitlines()
        except OSError as e:
            raise ConfigurationError(f'Cannot read sky coverage index {self.index_path}: {e}') from e
        for line_no, line in enumerate(lines, 1):
            line = line.rstrip()
            if not line:
                continue
            try:
                yyyyddd = int(line[:7])
            except ValueError as e:
                raise ConfigurationError(f'{self.index_path}:{line_no}: bad night {line[:7]!r}') from e
            yield PlateNight(night_jd(yyyyddd), line[8:].strip())

    def plate_fields(self, night: PlateNight) -> list[PlateField] | None:
        """Plates of one night in file order, or None if its coverage file is missing.

        Raises:
            ConfigurationError: If a plate line is malformed.
        """
        path = self.index_path.parent / night.coverage_name
        try:
            lines = path.read_text(encoding='utf-8').splitlines()
        except OSError as e:
            logger.info('Skipping coverage file %s: %s', path, e)
            return None
        fields: list[PlateField] = []
        for line_no, line in enumerate(lines, 1):
            try:
                fields.append(parse_plate_field(line))
            except ValueError as e:
                raise ConfigurationError(f'{path}:{line_no}: {e}') from e
        return fields


def find_precovery_plates(
    orbit: np.ndarray,
    epoch_jd: float,
    coverage: PlateCoverage,
    integrator: Integrator,
    observer_locator: ObserverLocator,
    output: TextIO,
) -> int:
    """Write every plate whose field held the object, as ``<plate line> <coverage file>``.

    The orbit is carried from night to night in index order and seen from the
    geocenter without light-time correction.

    Parameters:
        orbit: Heliocentric ecliptic state (AU, AU/day) at epoch_jd.
        epoch_jd: Epoch (TT) of the state.
        coverage: Source of nights and plate fields.
        integrator: Orbit propagator.
        observer_locator: Geocenter positions.
        output: Stream receiving one line per matching plate.

    Returns:
        Number of matching plates.
    """
    state = np.array(orbit, dtype=np.float64)
    jd = epoch_jd
    geocenter = ObserverFrame()
    n_found = 0
    for night in coverage.nights():
        state = np.asarray(integrator.propagate(state, jd, night.jd), dtype=np.float64)
        jd = night.jd
        observer = observer_locator.observer_state(jd, geocenter)
        topo = ecliptic_to_equatorial(state[:3] - np.asarray(observer[:3], dtype=np.float64))
        ra, dec, _ = vector_to_polar(topo)
        fields = coverage.plate_fields(night)
        if fields is None:
            continue
        for line_no, plate in enumerate(fields, 1):
            if plate.contains(ra, dec):
                output.write(f'{line_no:4d} {night.coverage_name}\n')
                n_found += 1
    logger.debug('Precovery search found %d plate(s)', n_found)
    return n_found


def write_precovery_file(
    path: str | Path,
    orbit: np.ndarray,
    epoch_jd: float,
    coverage: PlateCoverage,
    integrator: Integrator,
    observer_locator: ObserverLocator,
) -> int:
    """Run find_precovery_plates into a file.

    The index is read before the output is created, so a missing index leaves
    no file behind; any later error removes the partial file.

    Raises:
        ConfigurationError: If the coverage index cannot be read.
        OutputFileError: If the output file cannot be created.
    """
    nights = list(coverage.nights())
    out_path = Path(path)
    try:
        f = out_path.open('w', encoding='utf-8')
    except OSError as e:
        raise OutputFileError(f'Cannot create precovery file {path}: {e}') from e
    try:
        with f:
            return find_precovery_plates(
                orbit, epoch_jd, _ListedNights(coverage, nights), integrator, observer_locator, f
            )
    except BaseException:
        out_path.unlink(missing_ok=True)
        raise


class _ListedNights:
    """Coverage with its nights already read."""

    def __init__(self, coverage: PlateCoverage, nights: list[PlateNight]) -> None:
        self._coverage = coverage
        self._nights = nights

    def nights(self) -> list[PlateNight]:
        return self._nights

    def plate_fields(self, night: PlateNight) -> list[PlateField] | None:
        return self._coverage.plate_fields(night)
