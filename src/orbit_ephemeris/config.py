"""Configuration: SPICE/station paths from environment and run-scoped settings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from orbit_ephemeris.constants import DEFAULT_MAG_LIMIT

logger = logging.getLogger(__name__)

# Paths; env var overrides with sensible defaults.
DEFAULT_SPICE_PATH = '/var/www/SPICE/'
DEFAULT_SPICE_KERNELS = ('naif0012.tls', 'pck00011.tpc', 'de440s.bsp')
DEFAULT_OBSCODES_PATH = 'ObsCodes.html'
DEFAULT_SKY_COVERAGE_PATH = 'sky_cov.txt'
DEFAULT_ELEMENTS_FILE = 'elements.txt'
DEFAULT_MPCORB_FILE = 'mpc_fmt.txt'


def get_spice_path() -> str:
    """Return SPICE kernel root directory (SPICE_PATH env var or default)."""
    return os.environ.get('SPICE_PATH', DEFAULT_SPICE_PATH)


def get_spice_kernels() -> list[str]:
    """Return kernel file names to load, relative to the SPICE path.

    Returns:
        Names from the comma-separated SPICE_KERNELS env var, or the defaults
        (leap seconds, planetary constants, DE440 short ephemeris).
    """
    raw = os.environ.get('SPICE_KERNELS', '').strip()
    if not raw:
        return list(DEFAULT_SPICE_KERNELS)
    return [name.strip() for name in raw.split(',') if name.strip()]


def get_leapsecs_path() -> str:
    """Return path to a NAIF LSK leap seconds file for rms-julian.

    Prefers JULIAN_LEAPSECS, then the first .tls kernel found under SPICE_PATH.

    Returns:
        Path string to LSK file (may not exist; callers fall back to the
        rms-julian bundled LSK).
    """
    path = os.environ.get('JULIAN_LEAPSECS', '').strip()
    if path:
        return path
    base = Path(get_spice_path())
    for name in ('naif0012.tls', 'naif0011.tls', 'leapseconds.tls'):
        p = base / name
        if p.exists():
            return str(p)
    return str(base / 'naif0012.tls')


def get_obscodes_path() -> str:
    """Return path of the MPC station list (OBSCODES_PATH env var or default)."""
    return os.environ.get('OBSCODES_PATH', DEFAULT_OBSCODES_PATH)


def get_sky_coverage_path() -> str:
    """Return path of the precovery plate index (SKY_COVERAGE env var or default)."""
    return os.environ.get('SKY_COVERAGE', DEFAULT_SKY_COVERAGE_PATH)


def get_radar_profiles() -> dict[str, str]:
    """Return raw radar profile texts keyed by three-character station code.

    Profiles are stored as RADAR_<code> = "power_W,tsys_K,gain,alt_limit_deg,radar_constant".
    """
    profiles: dict[str, str] = {}
    for key, value in os.environ.items():
        if key.startswith('RADAR_') and len(key) == 9 and value.strip():
            profiles[key[6:]] = value.strip()
    return profiles


def get_fallback_abs_mag() -> float:
    """Return absolute magnitude to use when none is known (ABS_MAG, 0 = unknown)."""
    return _env_float('ABS_MAG', 0.0)


def get_file_name(template_file_name: str, process_count: int = 0) -> str:
    """Return a per-process variant of a scratch file name.

    A single process keeps the template name. Process N (N > 0) cuts the stem to
    five characters and appends N, so 'elements.txt' becomes 'eleme1.txt'.

    Parameters:
        template_file_name: Base name including an extension.
        process_count: Zero for a single process, else the process number.

    Returns:
        File name to use.

    Raises:
        ValueError: If a suffix is needed and the template has no extension,
            or process_count is outside 0..999.
    """
    if not process_count:
        return template_file_name
    if not 0 < process_count < 1000:
        raise ValueError(f'process_count must be 0..999, got {process_count}')
    path = Path(template_file_name)
    if not path.suffix:
        raise ValueError(f'File name {template_file_name!r} has no extension')
    stem = path.stem[:5]
    return str(path.with_name(f'{stem}{process_count}{path.suffix}'))


@dataclass(frozen=True)
class RunConfig:
    """Run-scoped settings threaded into the ephemeris stepper.

    Built once per run (see run_config_from_env) so that no kernel reads the
    environment or module-level state while stepping.
    """

    mag_limit: float = DEFAULT_MAG_LIMIT
    au_only_distances: bool = False
    process_count: int = 0
    tt_ephemeris: bool = False
    fallback_abs_mag: float = 0.0
    vector_ecliptic: bool = False
    vector_posn_mult: float = 1.0
    vector_time_mult: float = 1.0
    ra_offset_arcsec: float = 0.0
    dec_offset_arcsec: float = 0.0
    geometric_ground_track: bool = False
    elements_file: str = DEFAULT_ELEMENTS_FILE
    mpcorb_file: str = DEFAULT_MPCORB_FILE
    radar_profiles: dict[str, str] = field(default_factory=dict)

    def scratch_file(self, template_file_name: str) -> str:
        """Return the per-process name of a scratch file for this run."""
        return get_file_name(template_file_name, self.process_count)

    def radar_profile_text(self, station_code: str) -> str | None:
        """Return the radar profile text configured for a station, if any."""
        return self.radar_profiles.get(station_code[:3])


def run_config_from_env() -> RunConfig:
    """Build a RunConfig from environment variables.

    Reads EPHEMERIS_MAG_LIMIT, PROCESS_COUNT, TT_EPHEMERIS, ABS_MAG,
    VECTOR_OPTS, RA_OFFSET, DEC_OFFSET, GEOMETRIC_GROUND_TRACK, ELEMENTS_FILE,
    MPCORB_FILE and RADAR_<code>.

    Returns:
        RunConfig with defaults for anything unset or unparsable.
    """
    vector_ecliptic, posn_mult, time_mult = _parse_vector_opts(os.environ.get('VECTOR_OPTS', ''))
    process_count = int(_env_float('PROCESS_COUNT', 0.0))
    return RunConfig(
        mag_limit=_env_float('EPHEMERIS_MAG_LIMIT', DEFAULT_MAG_LIMIT),
        process_count=process_count,
        tt_ephemeris=_env_flag('TT_EPHEMERIS', False),
        fallback_abs_mag=get_fallback_abs_mag(),
        vector_ecliptic=vector_ecliptic,
        vector_posn_mult=posn_mult,
        vector_time_mult=time_mult,
        ra_offset_arcsec=_env_float('RA_OFFSET', 0.0),
        dec_offset_arcsec=_env_float('DEC_OFFSET', 0.0),
        geometric_ground_track=_env_flag('GEOMETRIC_GROUND_TRACK', False),
        elements_file=os.environ.get('ELEMENTS_FILE', DEFAULT_ELEMENTS_FILE),
        mpcorb_file=os.environ.get('MPCORB_FILE', DEFAULT_MPCORB_FILE),
        radar_profiles=get_radar_profiles(),
    )


def _parse_vector_opts(value: str) -> tuple[bool, float, float]:
    """Parse VECTOR_OPTS 'ecliptic,posn_mult,time_mult'; zero multipliers are ignored."""
    ecliptic, posn_mult, time_mult = False, 1.0, 1.0
    parts = [p.strip() for p in value.split(',')]
    try:
        if parts and parts[0]:
            ecliptic = int(parts[0]) != 0
        if len(parts) > 1 and parts[1]:
            posn_mult = float(parts[1]) or 1.0
        if len(parts) > 2 and parts[2]:
            time_mult = float(parts[2]) or 1.0
    except ValueError as e:
        logger.error('Invalid VECTOR_OPTS %r: %s; using defaults', value, e)
        return (False, 1.0, 1.0)
    return (ecliptic, posn_mult, time_mult)


def _env_float(key: str, default: float) -> float:
    """Parse a float env var; log and return default when it is not numeric."""
    value = os.environ.get(key, '').strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.error('Invalid %s %r (must be numeric); using %s', key, value, default)
        return default


def _env_flag(key: str, default: bool) -> bool:
    """Interpret an env var as a flag: empty = default, '0'/'n'/'f' = False."""
    value = os.environ.get(key, '').strip().lower()
    if not value:
        return default
    return value[0] not in ('0', 'n', 'f')
