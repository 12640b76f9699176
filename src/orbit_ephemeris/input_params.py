"""Input Parameters section: a plain-text summary of the run written above the table."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, TextIO

from orbit_ephemeris.constants import BODY_NAMES, EARTH_INDEX
from orbit_ephemeris.params import (
    MODE_NAME_TO_ID,
    OPTION_NAME_TO_BIT,
    parse_step_size,
)
from orbit_ephemeris.time_utils import format_ephemeris_date

if TYPE_CHECKING:
    from orbit_ephemeris.config import RunConfig
    from orbit_ephemeris.params import EphemerisParams

_UNIT_PLURAL = {
    'd': 'days',
    'h': 'hours',
    'm': 'minutes',
    's': 'seconds',
    'w': 'weeks',
    'y': 'years',
}


def _w(stream: TextIO, line: str) -> None:
    """Write a line to the stream."""
    stream.write(line + '\n')


def _mode_name(mode: int) -> str:
    """First registered name of an output mode."""
    for name, value in MODE_NAME_TO_ID.items():
        if value == mode:
            return name
    return str(mode)


def _option_names(flags: int) -> list[str]:
    """Names of the option bits set in flags, one name per bit."""
    names: list[str] = []
    seen = 0
    for name, bit in OPTION_NAME_TO_BIT.items():
        if flags & bit and not seen & bit:
            names.append(name)
            seen |= bit
    return names


def _interval_text(step_text: str) -> str:
    """'4h' -> '4 hours'; '-.5d' -> '-0.5 days'."""
    step = parse_step_size(step_text)
    literal = step_text.strip().rstrip('dhmswyDHMSWY').strip()
    value = float(literal)
    shown = str(int(value)) if value == int(value) else str(value)
    return f'{shown} {_UNIT_PLURAL[step.units]}'


def write_input_parameters(stream: TextIO, params: EphemerisParams, config: RunConfig) -> None:
    """Write the Input Parameters section for an ephemeris run.

    Parameters:
        stream: Output text stream.
        params: Ephemeris parameters to summarize.
        config: Run configuration (time scale, magnitude limit).
    """
    _w(stream, 'Input Parameters')
    _w(stream, '----------------')
    _w(stream, ' ')
    scale = 'TT' if config.tt_ephemeris else 'UTC'
    _w(stream, f'     Start time: {format_ephemeris_date(params.jd_start, "m")} {scale}')
    _w(stream, f'       Interval: {_interval_text(params.step)}')
    _w(stream, f'          Steps: {params.n_steps}')
    _w(stream, f'    Output mode: {_mode_name(params.options.mode)}')
    options = _option_names(params.options.flags)
    for i, name in enumerate(options or ['']):
        prefix = '        Options: ' if i == 0 else '                 '
        _w(stream, f'{prefix}{name}'.rstrip())
    observer = params.observer
    if observer.is_topocentric:
        _w(stream, f'      Viewpoint: {observer.note_text().strip()}')
        _w(stream, f'                 Lon = {math.degrees(observer.lon):.5f} (deg east)')
        _w(stream, f'                 rho cos phi = {observer.rho_cos_phi:.6f}')
        _w(stream, f'                 rho sin phi = {observer.rho_sin_phi:+.6f}')
    elif observer.body == EARTH_INDEX:
        _w(stream, "      Viewpoint: Earth's center")
    else:
        _w(stream, f"      Viewpoint: {BODY_NAMES[observer.body]}'s center")
    n = len(params.orbits)
    _w(stream, f'   Realizations: {n}' + (f' (1 primary, {n - 1} uncertainty samples)' if n > 1 else ''))
    abs_mag = params.abs_mag or config.fallback_abs_mag
    _w(stream, f'  Abs.magnitude: {abs_mag:.2f}' if abs_mag else '  Abs.magnitude: unknown')
    _w(stream, f'Magnitude limit: {config.mag_limit:.1f}')
    _w(stream, ' ')
