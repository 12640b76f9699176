"""Ephemeris request parameters: step-size mini-language, output mode and option bits."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import numpy as np

from orbit_ephemeris.constants import DAYS_PER_WEEK, DAYS_PER_YEAR, HOURS_PER_DAY, MINUTES_PER_DAY
from orbit_ephemeris.errors import StepSizeError
from orbit_ephemeris.observer import ObserverFrame

logger = logging.getLogger(__name__)

# Output modes (mutually exclusive; low three bits of an option word)
OPTION_OBSERVABLES = 0
OPTION_STATE_VECTOR_OUTPUT = 1
OPTION_POSITION_OUTPUT = 2
OPTION_MPCORB_OUTPUT = 3
OPTION_8_LINE_OUTPUT = 4
OPTION_CLOSE_APPROACHES = 5
MODE_MASK = 7

# Independent option bits
OPTION_ALT_AZ_OUTPUT = 0x8
OPTION_RADIAL_VEL_OUTPUT = 0x10
OPTION_MOTION_OUTPUT = 0x20
OPTION_PHASE_ANGLE_OUTPUT = 0x40
OPTION_SEPARATE_MOTIONS = 0x80
OPTION_ROUND_TO_NEAREST_STEP = 0x100
OPTION_SPACE_VEL_OUTPUT = 0x200
OPTION_PHASE_ANGLE_BISECTOR = 0x400
OPTION_HELIO_ECLIPTIC = 0x800
OPTION_TOPO_ECLIPTIC = 0x1000
OPTION_COMPUTER_FRIENDLY = 0x2000
OPTION_VISIBILITY = 0x4000
OPTION_SUPPRESS_UNOBSERVABLE = 0x8000
OPTION_SHOW_SIGMAS = 0x10000
OPTION_LUNAR_ELONGATION = 0x20000
OPTION_MOIDS = 0x40000
OPTION_GROUND_TRACK = 0x80000

MODE_NAME_TO_ID: dict[str, int] = {
    'observables': OPTION_OBSERVABLES,
    'state': OPTION_STATE_VECTOR_OUTPUT,
    'state-vector': OPTION_STATE_VECTOR_OUTPUT,
    'position': OPTION_POSITION_OUTPUT,
    'mpcorb': OPTION_MPCORB_OUTPUT,
    'elements': OPTION_8_LINE_OUTPUT,
    '8-line': OPTION_8_LINE_OUTPUT,
    'close-approaches': OPTION_CLOSE_APPROACHES,
}

OPTION_NAME_TO_BIT: dict[str, int] = {
    'alt-az': OPTION_ALT_AZ_OUTPUT,
    'altaz': OPTION_ALT_AZ_OUTPUT,
    'radial-vel': OPTION_RADIAL_VEL_OUTPUT,
    'rvel': OPTION_RADIAL_VEL_OUTPUT,
    'motion': OPTION_MOTION_OUTPUT,
    'phase-angle': OPTION_PHASE_ANGLE_OUTPUT,
    'separate-motions': OPTION_SEPARATE_MOTIONS,
    'round': OPTION_ROUND_TO_NEAREST_STEP,
    'space-vel': OPTION_SPACE_VEL_OUTPUT,
    'svel': OPTION_SPACE_VEL_OUTPUT,
    'bisector': OPTION_PHASE_ANGLE_BISECTOR,
    'helio-ecliptic': OPTION_HELIO_ECLIPTIC,
    'topo-ecliptic': OPTION_TOPO_ECLIPTIC,
    'computer-friendly': OPTION_COMPUTER_FRIENDLY,
    'visibility': OPTION_VISIBILITY,
    'suppress': OPTION_SUPPRESS_UNOBSERVABLE,
    'sigmas': OPTION_SHOW_SIGMAS,
    'uncertainty': OPTION_SHOW_SIGMAS,
    'lunar-elong': OPTION_LUNAR_ELONGATION,
    'moids': OPTION_MOIDS,
    'ground-track': OPTION_GROUND_TRACK,
}

_STEP_RE = re.compile(r'\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*([A-Za-z]?)\s*$')

# Unit letter -> multiplier taking the literal to days
_STEP_UNIT_TO_DAYS = {
    'd': 1.0,
    'h': 1.0 / HOURS_PER_DAY,
    'm': 1.0 / MINUTES_PER_DAY,
    's': 1.0 / (MINUTES_PER_DAY * 60.0),
    'w': DAYS_PER_WEEK,
    'y': DAYS_PER_YEAR,
}


@dataclass(frozen=True)
class StepSize:
    """Parsed step size.

    Parameters:
        days: Step in days (negative for a backward ephemeris).
        units: Unit letter the step was given in (d, h, m, s, w, y).
        n_digits: Fractional digits in the literal; sets date-column precision.
    """

    days: float
    units: str = 'd'
    n_digits: int = 0


def parse_step_size(text: str) -> StepSize:
    """Parse the step-size mini-language.

    A decimal number followed by an optional, case-insensitive unit letter:
    d (days, default), h (hours), m (minutes), s (seconds), w (weeks) or
    y (Julian years). '4h' is 1/6 day; '.05d' gives two date digits.

    Parameters:
        text: Step-size text.

    Returns:
        StepSize.

    Raises:
        StepSizeError: If the text does not parse, has an unknown unit letter,
            or gives a zero step.
    """
    match = _STEP_RE.match(text or '')
    if match is None:
        raise StepSizeError(f'Unparsable step size {text!r}')
    literal, units = match.group(1), (match.group(2) or 'd').lower()
    if units not in _STEP_UNIT_TO_DAYS:
        raise StepSizeError(f'Unknown step unit {units!r} in {text!r}; use d, h, m, s, w or y')
    value = float(literal)
    if value == 0.0:
        raise StepSizeError(f'Step size {text!r} is zero')
    n_digits = 0
    if '.' in literal:
        mantissa = literal.split('.', 1)[1]
        n_digits = len(re.match(r'\d*', mantissa).group(0))  # type: ignore[union-attr]
    return StepSize(days=value * _STEP_UNIT_TO_DAYS[units], units=units, n_digits=n_digits)


def parse_mode(value: str) -> int:
    """Parse an output mode name or number.

    Raises:
        ValueError: If value is not a known mode.
    """
    v = value.strip().lower()
    if v.isdigit() and int(v) in MODE_NAME_TO_ID.values():
        return int(v)
    if v in MODE_NAME_TO_ID:
        return MODE_NAME_TO_ID[v]
    raise ValueError(f'Unknown output mode {value!r}; use one of: ' + ', '.join(MODE_NAME_TO_ID))


def parse_options(tokens: list[str]) -> int:
    """Convert option tokens to an option bit word.

    Parameters:
        tokens: Names (e.g. motion, alt-az) or integers (decimal or 0x hex).

    Returns:
        OR of the option bits; unknown tokens are skipped (logged).
    """
    bits = 0
    for s in tokens:
        for part in s.replace(',', ' ').split():
            key = part.strip().lower()
            try:
                bits |= int(key, 0)
                continue
            except ValueError:
                pass
            if key in OPTION_NAME_TO_BIT:
                bits |= OPTION_NAME_TO_BIT[key]
            else:
                logger.warning('Unknown ephemeris option %r; use a known name or a number', part)
    return bits & ~MODE_MASK


@dataclass(frozen=True)
class EphemerisOptions:
    """Immutable option word: output mode plus independent column bits."""

    mode: int = OPTION_OBSERVABLES
    flags: int = 0

    @classmethod
    def from_bits(cls, options: int) -> EphemerisOptions:
        """Split a combined option word into mode and flags."""
        return cls(mode=options & MODE_MASK, flags=options & ~MODE_MASK)

    @property
    def bits(self) -> int:
        """Combined option word."""
        return self.mode | self.flags

    def has(self, flag: int) -> bool:
        """True if the option bit is set."""
        return bool(self.flags & flag)


@dataclass
class EphemerisParams:
    """Parameters for one ephemeris run.

    Parameters:
        orbits: One heliocentric ecliptic state (AU, AU/day) per orbit
            realization, all at epoch_jd.
        epoch_jd: Epoch (TT) of the orbit states.
        jd_start: First ephemeris date (UTC unless the run is in TT).
        step: Step-size text (see parse_step_size).
        n_steps: Number of lines.
        observer: Observing site.
        options: Output mode and option bits.
        abs_mag: Absolute magnitude; 0 means unknown.
        is_comet: Selects comet magnitude law and suppresses the doubtful marker.
        note_text: Optional note; written as '#<note>' above the table.
        primary_index: Position in orbits of the primary solution; every other
            realization is an uncertainty sample.
    """

    orbits: list[np.ndarray]
    epoch_jd: float
    jd_start: float
    step: str
    n_steps: int
    observer: ObserverFrame = field(default_factory=ObserverFrame)
    options: EphemerisOptions = field(default_factory=EphemerisOptions)
    abs_mag: float = 0.0
    is_comet: bool = False
    note_text: str = ''
    primary_index: int = 0
