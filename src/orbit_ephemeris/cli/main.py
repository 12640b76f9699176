"""CLI entry point: orbit-ephemeris."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys
from pathlib import Path
from typing import NoReturn

import numpy as np

from orbit_ephemeris.collaborators import Collaborators
from orbit_ephemeris.config import RunConfig, get_obscodes_path, run_config_from_env
from orbit_ephemeris.elements import EightLineElementsWriter, OneLineElementsWriter
from orbit_ephemeris.ephemeris import EphemerisStepper, write_ephemeris_file
from orbit_ephemeris.errors import (
    ConfigurationError,
    EphemerisError,
    ReportSection,
    SectionUnavailable,
    check_report_sections,
)
from orbit_ephemeris.input_params import write_input_parameters
from orbit_ephemeris.magnitude import StandardPhaseModel
from orbit_ephemeris.observer import ObserverFrame, load_station, observer_from_lat_lon_alt
from orbit_ephemeris.params import (
    EphemerisOptions,
    EphemerisParams,
    parse_mode,
    parse_options,
)
from orbit_ephemeris.precovery import SkyCoverageFiles, find_precovery_plates, write_precovery_file
from orbit_ephemeris.rendering.scatter import draw_uncertainty_cloud
from orbit_ephemeris.spice.load import load_spice_kernels
from orbit_ephemeris.spice.observer import SpiceObserverLocator
from orbit_ephemeris.spice.propagate import TwoBodyIntegrator
from orbit_ephemeris.time_utils import parse_datetime

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool = False) -> None:
    """Configure logging for CLI (stderr, level from --verbose or ORBIT_EPHEMERIS_LOG)."""
    level = logging.DEBUG if verbose else logging.WARNING
    env_level = os.environ.get('ORBIT_EPHEMERIS_LOG', '').upper()
    if env_level in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
        level = getattr(logging, env_level)
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(name)s: %(message)s',
        stream=sys.stderr,
    )
    logging.getLogger('matplotlib').setLevel(logging.WARNING)


def _parse_jd(text: str, what: str) -> float:
    """Parse a date or Julian date argument.

    Raises:
        ConfigurationError: If the text is not a date.
    """
    jd = parse_datetime(text)
    if jd is None:
        raise ConfigurationError(f'Invalid {what} {text!r}')
    return jd


def read_orbits_file(path: str | Path) -> list[np.ndarray]:
    """Read orbit realizations: one state per line, six numbers (AU, AU/day).

    Blank lines and lines starting with '#' are skipped. States keep their file
    order, so --primary can name the primary solution by position.

    Raises:
        ConfigurationError: If the file cannot be read or a line is malformed.
    """
    orbits: list[np.ndarray] = []
    try:
        lines = Path(path).read_text(encoding='utf-8').splitlines()
    except OSError as e:
        raise ConfigurationError(f'Cannot read orbits file {path}: {e}') from e
    for line_no, line in enumerate(lines, 1):
        text = line.strip()
        if not text or text.startswith('#'):
            continue
        parts = text.replace(',', ' ').split()
        try:
            values = [float(p) for p in parts]
        except ValueError as e:
            raise ConfigurationError(f'{path}:{line_no}: {e}') from e
        if len(values) != 6:
            raise ConfigurationError(f'{path}:{line_no}: expected 6 numbers, got {len(values)}')
        orbits.append(np.array(values, dtype=np.float64))
    return orbits


def _observer_from_args(args: argparse.Namespace) -> ObserverFrame:
    """Station from --site, --station or the geocenter."""
    if args.site is not None:
        lat, lon, alt = args.site
        return observer_from_lat_lon_alt(lat, lon, alt)
    if args.station:
        return load_station(args.station, args.obscodes or get_obscodes_path())
    return ObserverFrame()


def _params_from_args(args: argparse.Namespace) -> EphemerisParams:
    """Build EphemerisParams from parsed arguments.

    Raises:
        ConfigurationError: For missing orbits, bad dates or an unknown station.
    """
    orbits = [np.array(s, dtype=np.float64) for s in (args.state or [])]
    if args.orbits_file:
        orbits.extend(read_orbits_file(args.orbits_file))
    if not orbits:
        raise ConfigurationError('No orbit given; use --state or --orbits-file')
    try:
        mode = parse_mode(args.mode)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    epoch_jd = _parse_jd(args.epoch, 'epoch')
    jd_start = _parse_jd(args.start, 'start time') if args.start else epoch_jd
    return EphemerisParams(
        orbits=orbits,
        epoch_jd=epoch_jd,
        jd_start=jd_start,
        step=args.step,
        n_steps=args.steps,
        observer=_observer_from_args(args),
        options=EphemerisOptions(mode=mode, flags=parse_options(args.options or [])),
        abs_mag=args.abs_mag,
        is_comet=args.comet,
        note_text=args.note,
        primary_index=args.primary,
    )


def _config_from_args(args: argparse.Namespace) -> RunConfig:
    """Environment configuration with command-line overrides applied."""
    config = run_config_from_env()
    overrides: dict[str, object] = {}
    if args.mag_limit is not None:
        overrides['mag_limit'] = args.mag_limit
    if args.tt:
        overrides['tt_ephemeris'] = True
    if args.au_only:
        overrides['au_only_distances'] = True
    return dataclasses.replace(config, **overrides) if overrides else config


def _ephemeris_cmd(args: argparse.Namespace) -> int:
    """Generate an ephemeris.

    Returns:
        0 on success, 1 on error, 2 if a report section could not be produced.
    """
    try:
        params = _params_from_args(args)
        config = _config_from_args(args)
    except EphemerisError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    ok, reason = load_spice_kernels(args.kernels or None)
    if not ok:
        print(f'Error: {reason}', file=sys.stderr)
        return 1

    abs_mag = params.abs_mag or config.fallback_abs_mag
    collaborators = Collaborators(
        integrator=TwoBodyIntegrator(),
        observer_locator=SpiceObserverLocator(),
        magnitude_model=StandardPhaseModel(args.slope),
        elements_writer=EightLineElementsWriter(abs_mag, args.slope, args.name),
        mpcorb_writer=OneLineElementsWriter(abs_mag, args.slope, args.name),
    )
    if args.precovery:
        return _precovery_cmd(args, params, collaborators)
    try:
        if args.summary:
            write_input_parameters(sys.stdout, params, config)
        if args.output:
            stepper = write_ephemeris_file(args.output, params, collaborators, config)
            if check_report_sections({ReportSection.EPHEMERIS: args.output}):
                logger.warning('Ephemeris file %s is empty', args.output)
        else:
            stepper = EphemerisStepper(params, collaborators, config)
            stepper.run(sys.stdout)
        if args.scatter_plot:
            if stepper.last_ra_decs:
                draw_uncertainty_cloud(
                    stepper.last_ra_decs, stepper.last_ellipse, args.scatter_plot, title=args.name
                )
            else:
                logger.warning('No uncertainty cloud to plot; use --options sigmas with several orbits')
    except SectionUnavailable as e:
        print(f'Error: {e}', file=sys.stderr)
        return 2
    except EphemerisError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    return 0


def _precovery_cmd(args: argparse.Namespace, params: EphemerisParams, collaborators: Collaborators) -> int:
    """List archived plates that held the primary orbit.

    Returns:
        0 on success, 1 on error.
    """
    coverage = SkyCoverageFiles(args.sky_coverage)
    try:
        if not 0 <= params.primary_index < len(params.orbits):
            raise ConfigurationError(f'Primary orbit index {params.primary_index} is outside the orbits given')
        orbit = params.orbits[params.primary_index]
        if args.output:
            write_precovery_file(
                args.output,
                orbit,
                params.epoch_jd,
                coverage,
                collaborators.integrator,
                collaborators.observer_locator,
            )
        else:
            find_precovery_plates(
                orbit,
                params.epoch_jd,
                coverage,
                collaborators.integrator,
                collaborators.observer_locator,
                sys.stdout,
            )
    except EphemerisError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for orbit-ephemeris."""
    parser = argparse.ArgumentParser(
        prog='orbit-ephemeris',
        description='Ephemerides, state vectors, elements and close approaches for orbit realizations.',
    )
    parser.add_argument(
        '--state',
        type=float,
        nargs=6,
        action='append',
        metavar=('X', 'Y', 'Z', 'VX', 'VY', 'VZ'),
        help='Heliocentric ecliptic J2000 state (AU, AU/day); repeat for more realizations',
    )
    parser.add_argument(
        '--orbits-file', type=str, default=None, help='File of states, one per line'
    )
    parser.add_argument(
        '--primary',
        type=int,
        default=0,
        help='Position of the primary solution among --state and --orbits-file states (default 0)',
    )
    parser.add_argument('--epoch', type=str, required=True, help='Epoch (TT) of the states: date or JD')
    parser.add_argument('--start', type=str, default='', help='First ephemeris date (default: epoch)')
    parser.add_argument('--step', type=str, default='1d', help="Step size, e.g. 1d, 4h, 30m, 10s, 2w, .5y")
    parser.add_argument('--steps', type=int, default=20, help='Number of steps')
    parser.add_argument(
        '--station', type=str, default='', help='MPC station code (500 = geocenter); env: OBSCODES_PATH'
    )
    parser.add_argument('--obscodes', type=str, default=None, help='MPC ObsCodes station file')
    parser.add_argument(
        '--site',
        type=float,
        nargs=3,
        default=None,
        metavar=('LAT', 'LON', 'ALT'),
        help='Observer by latitude, east longitude (deg) and altitude (m)',
    )
    parser.add_argument(
        '--mode',
        type=str,
        default='observables',
        help='observables, state, position, mpcorb, elements or close-approaches',
    )
    parser.add_argument(
        '--options',
        type=str,
        nargs='*',
        default=None,
        help='Option names or bits (e.g. motion alt-az visibility sigmas 0x200)',
    )
    parser.add_argument('--abs-mag', type=float, default=0.0, help='Absolute magnitude (0 = unknown)')
    parser.add_argument('--slope', type=float, default=0.15, help='Phase slope parameter G')
    parser.add_argument('--comet', action='store_true', help='Use the comet magnitude law')
    parser.add_argument('--name', type=str, default='', help='Object name for headers and elements')
    parser.add_argument('--note', type=str, default='', help="Note line (default: '(code) station name')")
    parser.add_argument(
        '--mag-limit', type=float, default=None, help='Faintest magnitude shown; env: EPHEMERIS_MAG_LIMIT'
    )
    parser.add_argument('--tt', action='store_true', help='Dates in TT; env: TT_EPHEMERIS')
    parser.add_argument('--au-only', action='store_true', help='Always give distances in AU')
    parser.add_argument(
        '--kernels', type=str, nargs='*', default=None, help='SPICE kernels; env: SPICE_KERNELS'
    )
    parser.add_argument('--summary', action='store_true', help='Write the Input Parameters summary first')
    parser.add_argument(
        '--scatter-plot', type=str, default=None, help='PNG of the last uncertainty cloud'
    )
    parser.add_argument(
        '--precovery',
        action='store_true',
        help='List archived plates that held the primary orbit instead of an ephemeris',
    )
    parser.add_argument(
        '--sky-coverage', type=str, default=None, help='Plate coverage index; env: SKY_COVERAGE'
    )
    parser.add_argument('-o', '--output', type=str, default=None, help='Output file (default: stdout)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Show DEBUG logs')
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for orbit-ephemeris.

    Returns:
        Exit code 0 on success, 1 on failure, 2 if a report section is missing.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose)
    return _ephemeris_cmd(args)


def cli_main() -> NoReturn:
    """Entry point for console_scripts; calls main() and exits with its return code."""
    sys.exit(main())


if __name__ == '__main__':
    sys.exit(main())
