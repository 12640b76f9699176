"""Time conversion wrappers around rms-julian: Julian dates, TT-UTC, date columns."""

from __future__ import annotations

import logging
import math
import re

import julian

from orbit_ephemeris.config import get_leapsecs_path
from orbit_ephemeris.constants import J2000, J2000_MIDNIGHT, SECONDS_PER_DAY

logger = logging.getLogger(__name__)

# Leap seconds loaded once at first use.
_leapsecs_loaded = False

# Date column unit letter -> number of such units per day
_UNITS_PER_DAY = {'d': 1, 'h': 24, 'm': 1440, 's': 86400}


def _ensure_leapsecs() -> None:
    """Load leap seconds file if not already loaded.

    rms-julian requires a NAIF LSK (e.g. naif0012.tls). If the configured file
    is missing or unreadable, falls back to rms-julian's bundled LSK.
    """
    global _leapsecs_loaded
    if _leapsecs_loaded:
        return
    julian.set_ut_model('SPICE')
    path = get_leapsecs_path()
    try:
        julian.load_lsk(path)
        _leapsecs_loaded = True
    except (OSError, KeyError, ValueError) as e:
        logger.info(
            'Leap seconds from %s not used (%s); using rms-julian bundled LSK.',
            path,
            e,
        )
        try:
            julian.load_lsk()
        except Exception as fallback_err:
            logger.error(
                'Fallback to rms-julian bundled LSK failed: %s',
                fallback_err,
                exc_info=True,
            )
            raise
        _leapsecs_loaded = True


def day_sec_from_jd(jd: float) -> tuple[int, float]:
    """Split a Julian date into (day since 2000-01-01, seconds into that day)."""
    day = math.floor(jd - J2000_MIDNIGHT)
    return (int(day), (jd - J2000_MIDNIGHT - day) * SECONDS_PER_DAY)


def jd_from_day_sec(day: int, sec: float) -> float:
    """Inverse of day_sec_from_jd."""
    return J2000_MIDNIGHT + day + sec / SECONDS_PER_DAY


def day_from_ymd(year: int, month: int, day: int) -> int:
    """Days since 2000-01-01 of a calendar date."""
    return int(julian.day_from_ymd(year, month, day))


def parse_datetime(string: str) -> float | None:
    """Parse a date/time string or a bare Julian date to a UTC Julian date.

    Parameters:
        string: Date/time string accepted by rms-julian (ISO 'Z' suffix allowed),
            or a number, taken as a JD (an 'JD' prefix is accepted).

    Returns:
        Julian date (UTC), or None on parse failure.
    """
    stripped = string.strip()
    jd_match = re.fullmatch(r'(?:JD\s*)?([-+]?\d+(?:\.\d*)?)', stripped, flags=re.IGNORECASE)
    if jd_match is not None:
        return float(jd_match.group(1))
    _ensure_leapsecs()
    candidate_strings = [stripped]
    if stripped.endswith(('Z', 'z')):
        # rms-julian does not parse ISO UTC suffix "Z"; drop it so the value
        # is treated as UTC.
        candidate_strings.append(stripped[:-1])
    for candidate in candidate_strings:
        try:
            result = julian.day_sec_from_string(candidate)
            day, sec = result[0], result[1]
            return jd_from_day_sec(int(day), float(sec))
        except (ValueError, TypeError, LookupError, OSError):
            continue
    return None


def td_minus_utc(jd_utc: float) -> float:
    """Return TT-UTC in seconds at a UTC Julian date (TDB used as TT).

    Parameters:
        jd_utc: Julian date in UTC.

    Returns:
        Seconds to add to UTC to obtain dynamical time.
    """
    _ensure_leapsecs()
    day, sec = day_sec_from_jd(jd_utc)
    tai = float(julian.tai_from_day_sec(day, sec))
    tdb = float(julian.tdb_from_tai(tai))
    return tdb - (jd_utc - J2000) * SECONDS_PER_DAY


def et_from_jd_tt(jd_tt: float) -> float:
    """Convert a dynamical-time Julian date to SPICE ephemeris seconds past J2000."""
    return (jd_tt - J2000) * SECONDS_PER_DAY


def format_ephemeris_date(jd: float, units: str = 'd', n_digits: int = 0) -> str:
    """Format the date column of an ephemeris line.

    The layout depends on the step's unit letter: 'd' gives 'YYYY MM DD',
    'h' adds ' HH', 'm' adds ' HH:MM' and 's' adds ' HH:MM:SS'. n_digits
    decimal places of the last unit follow. Rounding is done on integer ticks
    so repeated steps never accumulate floating error; a rounded time of 24:00
    rolls over to the next day. Units 'w' and 'y' use the day layout.

    Parameters:
        jd: Julian date (in the time scale being shown).
        units: Step unit letter.
        n_digits: Decimal places of the last shown unit.

    Returns:
        Date text, e.g. '2024 03 08.34' or '2024 03 08 12:30'.
    """
    units = units if units in _UNITS_PER_DAY else 'd'
    scale = 10**n_digits
    ticks_per_day = _UNITS_PER_DAY[units] * scale
    day = math.floor(jd - J2000_MIDNIGHT)
    ticks = int(math.floor((jd - J2000_MIDNIGHT - day) * ticks_per_day + 0.5))
    if ticks >= ticks_per_day:
        day += 1
        ticks -= ticks_per_day
    year, month, mday = julian.ymd_from_day(int(day))
    text = f'{int(year):4d} {int(month):02d} {int(mday):02d}'
    whole, fraction = divmod(ticks, scale)
    if units == 'h':
        text += f' {whole:02d}'
    elif units == 'm':
        hours, minutes = divmod(whole, 60)
        text += f' {hours:02d}:{minutes:02d}'
    elif units == 's':
        hours, rem = divmod(whole, 3600)
        minutes, seconds = divmod(rem, 60)
        text += f' {hours:02d}:{minutes:02d}:{seconds:02d}'
    if n_digits:
        text += f'.{fraction:0{n_digits}d}'
    return text
