"""Default elements writers: eight-line and one-line (MPCORB-style) osculating elements."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path

import cspyce
import julian
import numpy as np

from orbit_ephemeris.constants import DAYS_PER_YEAR, DPR, SOLAR_GM
from orbit_ephemeris.time_utils import day_sec_from_jd, et_from_jd_tt

logger = logging.getLogger(__name__)

_MONTH_ABBREVS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')
_PACKED_DIGITS = '0123456789ABCDEFGHIJKLMNOPQRSTUV'


@dataclass(frozen=True)
class OsculatingElements:
    """Heliocentric ecliptic J2000 elements; angles in degrees.

    Parameters:
        epoch_jd: Epoch (TT Julian date).
        q: Perihelion distance, AU.
        e: Eccentricity.
        incl: Inclination.
        node: Longitude of ascending node.
        peri: Argument of perihelion.
        mean_anomaly: Mean anomaly at epoch.
        a: Semimajor axis, AU (negative for hyperbolic orbits, inf if parabolic).
        n: Mean motion, degrees/day.
    """

    epoch_jd: float
    q: float
    e: float
    incl: float
    node: float
    peri: float
    mean_anomaly: float
    a: float
    n: float

    @property
    def period_years(self) -> float | None:
        """Orbital period in years, None for open orbits."""
        if self.e >= 1.0 or self.n <= 0.0:
            return None
        return 360.0 / self.n / DAYS_PER_YEAR

    @property
    def aphelion(self) -> float | None:
        """Aphelion distance in AU, None for open orbits."""
        if self.e >= 1.0:
            return None
        return self.a * (1.0 + self.e)


def elements_from_state(state: np.ndarray, epoch_jd: float, gm: float = SOLAR_GM) -> OsculatingElements:
    """Osculating elements of a heliocentric ecliptic state (AU, AU/day) via cspyce.oscelt.

    cspyce only sees the epoch as a time tag; with the state in AU and AU/day
    and gm in AU^3/day^2 all elements come out in those units.
    """
    elts = cspyce.oscelt(list(state), et_from_jd_tt(epoch_jd), gm)
    q, e, incl, node, peri, m0 = (float(v) for v in elts[:6])
    if e == 1.0:
        a, n = math.inf, 0.0
    else:
        a = q / (1.0 - e)
        n = math.sqrt(gm / abs(a) ** 3) * DPR
    return OsculatingElements(
        epoch_jd=epoch_jd,
        q=q,
        e=e,
        incl=incl * DPR,
        node=node * DPR % 360.0,
        peri=peri * DPR % 360.0,
        mean_anomaly=m0 * DPR % 360.0 if e < 1.0 else m0 * DPR,
        a=a,
        n=n,
    )


def _epoch_ymd(epoch_jd: float) -> tuple[int, int, float]:
    day, sec = day_sec_from_jd(epoch_jd)
    year, month, mday = julian.ymd_from_day(day)
    return (int(year), int(month), int(mday) + sec / 86400.0)


def packed_epoch(epoch_jd: float) -> str:
    """Five-character packed date ('K2438' for 2024 Mar 8) used by one-line elements."""
    year, month, day = _epoch_ymd(epoch_jd + 0.5 / 86400.0)
    century = chr(ord('A') + year // 100 - 10)
    return f'{century}{year % 100:02d}{_PACKED_DIGITS[month]}{_PACKED_DIGITS[int(day)]}'


class EightLineElementsWriter:
    """Writes elements in an eight-line human-readable block."""

    def __init__(self, abs_mag: float = 0.0, slope: float = 0.15, name: str = '') -> None:
        self.abs_mag = abs_mag
        self.slope = slope
        self.name = name

    def lines(self, elem: OsculatingElements) -> list[str]:
        """Text lines for one element set."""
        year, month, day = _epoch_ymd(elem.epoch_jd)
        period = elem.period_years
        aphelion = elem.aphelion
        return [
            f'{self.name or "Object"}',
            f'Epoch {year} {_MONTH_ABBREVS[month - 1]} {day:9.6f} TT = JDT {elem.epoch_jd:.6f}',
            f'M {elem.mean_anomaly:12.8f}              (2000.0)',
            f'n {elem.n:12.8f}     Peri. {elem.peri:12.8f}',
            f'a {elem.a:12.8f}     Node  {elem.node:12.8f}',
            f'e {elem.e:12.8f}     Incl. {elem.incl:12.8f}',
            (f'P {period:12.4f}' if period is not None else 'P     (open orbit)')
            + f'     H {self.abs_mag:5.2f}  G {self.slope:4.2f}',
            f'q {elem.q:12.8f}'
            + (f'     Q {aphelion:12.8f}' if aphelion is not None else ''),
        ]

    def write(self, state: np.ndarray, epoch_jd: float, path: str | Path, with_comments: bool) -> None:
        """Write the elements of state at epoch_jd to path (overwriting it)."""
        elem = elements_from_state(state, epoch_jd)
        lines = self.lines(elem)
        if with_comments:
            lines.append(f'# State (AU, AU/day): {" ".join(f"{v:.12f}" for v in state)}')
        Path(path).write_text('\n'.join(lines) + '\n', encoding='utf-8')
        logger.debug('Wrote eight-line elements to %s', path)


class OneLineElementsWriter:
    """Writes elements as one MPCORB-style line."""

    def __init__(self, abs_mag: float = 0.0, slope: float = 0.15, designation: str = '') -> None:
        self.abs_mag = abs_mag
        self.slope = slope
        self.designation = designation

    def line(self, elem: OsculatingElements) -> str:
        """One line: designation, H, G, epoch, M, peri, node, incl, e, n, a."""
        return (
            f'{self.designation[:7]:<7s} {self.abs_mag:5.2f} {self.slope:5.2f} '
            f'{packed_epoch(elem.epoch_jd)} {elem.mean_anomaly:9.5f}  {elem.peri:9.5f}  '
            f'{elem.node:9.5f}  {elem.incl:9.5f}  {elem.e:9.7f} {elem.n:11.8f} {elem.a:11.7f}'
        )

    def write(self, state: np.ndarray, epoch_jd: float, path: str | Path, with_comments: bool) -> None:
        """Write the one-line elements of state at epoch_jd to path (overwriting it)."""
        text = self.line(elements_from_state(state, epoch_jd)) + '\n'
        if with_comments:
            text += f'# Epoch JDT {epoch_jd:.6f}; ecliptic and equinox J2000.0\n'
        Path(path).write_text(text, encoding='utf-8')
        logger.debug('Wrote one-line elements to %s', path)
