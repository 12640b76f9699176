"""Ephemeris stepper: steps orbit realizations through time and writes one of five output modes.

The stepper owns no physics of its own. Propagation, observer positions,
magnitudes, element files and MOIDs come from the Collaborators bundle;
geometry, formatting and the small estimators come from sibling modules.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import numpy as np

from orbit_ephemeris.close_approach import detect_close_approach
from orbit_ephemeris.collaborators import Collaborators, ElementsWriter, Integrator
from orbit_ephemeris.config import RunConfig
from orbit_ephemeris.constants import (
    ASTRONOMICAL_TWILIGHT_DEG,
    AU_IN_KM,
    CIVIL_TWILIGHT_DEG,
    DPR,
    MOID_BODIES,
    NAUTICAL_TWILIGHT_DEG,
    RADIANS_PER_ARCSEC,
    SECONDS_PER_DAY,
)
from orbit_ephemeris.errors import (
    ConfigurationError,
    OutputFileError,
    ReportSection,
    SectionUnavailable,
)
from orbit_ephemeris.formatting import (
    format_dec,
    format_distance,
    format_magnitude,
    format_ra,
    format_snr,
    format_uncertainty,
    format_velocity,
)
from orbit_ephemeris.frames import (
    alt_az,
    angle_between,
    ecliptic_to_equatorial,
    equatorial_to_ecliptic,
    gmst,
    ground_track,
    vector_to_polar,
)
from orbit_ephemeris.geometry import GeometrySample, compute_geometry, motion_details, motion_text
from orbit_ephemeris.magnitude import (
    RadarProfile,
    apparent_magnitude,
    radar_profile_for,
    radar_snr_per_day,
)
from orbit_ephemeris.params import (
    OPTION_8_LINE_OUTPUT,
    OPTION_ALT_AZ_OUTPUT,
    OPTION_CLOSE_APPROACHES,
    OPTION_COMPUTER_FRIENDLY,
    OPTION_GROUND_TRACK,
    OPTION_HELIO_ECLIPTIC,
    OPTION_LUNAR_ELONGATION,
    OPTION_MOIDS,
    OPTION_MOTION_OUTPUT,
    OPTION_MPCORB_OUTPUT,
    OPTION_OBSERVABLES,
    OPTION_PHASE_ANGLE_BISECTOR,
    OPTION_PHASE_ANGLE_OUTPUT,
    OPTION_POSITION_OUTPUT,
    OPTION_RADIAL_VEL_OUTPUT,
    OPTION_ROUND_TO_NEAREST_STEP,
    OPTION_SEPARATE_MOTIONS,
    OPTION_SHOW_SIGMAS,
    OPTION_SPACE_VEL_OUTPUT,
    OPTION_STATE_VECTOR_OUTPUT,
    OPTION_SUPPRESS_UNOBSERVABLE,
    OPTION_TOPO_ECLIPTIC,
    OPTION_VISIBILITY,
    EphemerisParams,
    parse_step_size,
)
from orbit_ephemeris.record import Record
from orbit_ephemeris.shadow import in_umbra
from orbit_ephemeris.time_utils import format_ephemeris_date, td_minus_utc
from orbit_ephemeris.uncertainty import UncertaintyEllipse, fit_uncertainty_ellipse

logger = logging.getLogger(__name__)

SUPPRESSED_LINE = '................'

_VECTOR_MODES = (OPTION_STATE_VECTOR_OUTPUT, OPTION_POSITION_OUTPUT)
_ELEMENT_MODES = (OPTION_MPCORB_OUTPUT, OPTION_8_LINE_OUTPUT)
_KNOWN_MODES = (OPTION_OBSERVABLES, OPTION_CLOSE_APPROACHES) + _VECTOR_MODES + _ELEMENT_MODES

_HR_MIN_TEXTS = {'d': '', 'h': ' HH', 'm': ' HH:MM', 's': ' HH:MM:SS'}

# (option bit, caption, dashes) for optional observables columns before the magnitude.
_SKY_COLUMNS = (
    (OPTION_PHASE_ANGLE_OUTPUT, ' ph_ang  ', ' ------  '),
    (OPTION_PHASE_ANGLE_BISECTOR, ' ph_ang_bisector  ', ' ---------------  '),
    (OPTION_HELIO_ECLIPTIC, ' helio ecliptic   ', ' ---------------  '),
    (OPTION_TOPO_ECLIPTIC, ' topo ecliptic    ', ' ---------------  '),
)


class Role(enum.Enum):
    """What a realization is used for."""

    PRIMARY = 'primary'
    UNCERTAINTY_SAMPLE = 'uncertainty_sample'


@dataclass
class Realization:
    """One orbit realization, carried forward from step to step.

    Parameters:
        state: Heliocentric ecliptic state (AU, AU/day) at jd.
        role: PRIMARY for the nominal orbit, else UNCERTAINTY_SAMPLE.
        jd: TT Julian date of state.
    """

    state: np.ndarray
    role: Role
    jd: float

    def advance(self, integrator: Integrator, jd_to: float) -> None:
        """Propagate the state to jd_to (TT)."""
        self.state = np.asarray(integrator.propagate(self.state, self.jd, jd_to), dtype=np.float64)
        self.jd = jd_to


@dataclass(frozen=True)
class SkyDirections:
    """Alt/az of the object, the Sun and the Moon for one step, radians."""

    obj_alt: float
    obj_az: float
    sun_alt: float
    moon_alt: float
    moon_more_than_half_lit: bool
    in_shadow: bool
    lunar_elong: float


def _vector_precision(mult: float, n_digits: int) -> int:
    """Decimals for '%16.Nf' vector output: one fewer per factor of ten in mult."""
    value = mult
    while value > 1.2 and n_digits > 0:
        value /= 10.0
        n_digits -= 1
    return n_digits


def _visibility_code(sky: SkyDirections) -> str:
    """Two-character sun/moon code: '*', 'C', 'N', 'A' or ' ', then 'M', 'm' or ' '."""
    sun_alt_deg = sky.sun_alt * DPR
    if sun_alt_deg > 0.0:
        sun_code = '*'
    elif sun_alt_deg > CIVIL_TWILIGHT_DEG:
        sun_code = 'C'
    elif sun_alt_deg > NAUTICAL_TWILIGHT_DEG:
        sun_code = 'N'
    elif sun_alt_deg > ASTRONOMICAL_TWILIGHT_DEG:
        sun_code = 'A'
    else:
        sun_code = ' '
    if sky.moon_alt > 0.0:
        moon_code = 'M' if sky.moon_more_than_half_lit else 'm'
    else:
        moon_code = ' '
    return sun_code + moon_code


class EphemerisStepper:
    """Generates one ephemeris for a set of orbit realizations.

    Every check that can fail on configuration is made when the stepper is
    built, so a bad request never leaves a half-written output behind.

    Parameters:
        params: Ephemeris request.
        collaborators: Integrator, observer locator and optional writers.
        config: Run configuration.

    Raises:
        StepSizeError: If the step does not parse or is zero.
        ConfigurationError: If the mode is unknown, no orbits are given, the
            primary index is out of range, or an elements mode has no elements
            writer.
        RadarProfileError: If the station's radar profile is malformed.
    """

    def __init__(self, params: EphemerisParams, collaborators: Collaborators, config: RunConfig) -> None:
        self.params = params
        self.collaborators = collaborators
        self.config = config
        self.step = parse_step_size(params.step)
        self.mode = params.options.mode
        if self.mode not in _KNOWN_MODES:
            raise ConfigurationError(f'Unknown ephemeris output mode {self.mode}')
        if not params.orbits:
            raise ConfigurationError('No orbit realizations given')
        if not 0 <= params.primary_index < len(params.orbits):
            raise ConfigurationError(
                f'Primary orbit index {params.primary_index} is outside the {len(params.orbits)} realization(s)'
            )
        if params.n_steps < 0:
            raise ConfigurationError(f'Number of steps must not be negative, got {params.n_steps}')
        self.elements_writer = self._elements_writer() if self.mode in _ELEMENT_MODES else None
        if self.mode in _ELEMENT_MODES and self.elements_writer is None:
            raise ConfigurationError('Elements output requested but no elements writer is configured')

        options = params.options
        observer = params.observer
        self.computer_friendly = options.has(OPTION_COMPUTER_FRIENDLY)
        # Vector and element output is always in dynamical time.
        self.tt = config.tt_ephemeris or self.mode in _VECTOR_MODES + _ELEMENT_MODES
        self.show_topocentric = observer.is_topocentric and self.mode == OPTION_OBSERVABLES
        self.show_alt_az = options.has(OPTION_ALT_AZ_OUTPUT) and self.show_topocentric
        self.show_visibility = options.has(OPTION_VISIBILITY) and self.show_topocentric
        self.show_uncertainties = (
            options.has(OPTION_SHOW_SIGMAS) and len(params.orbits) > 1 and self.mode == OPTION_OBSERVABLES
        )
        self.abs_mag = params.abs_mag or config.fallback_abs_mag
        self.radar: RadarProfile | None = None
        if self.mode == OPTION_OBSERVABLES:
            profile_text = config.radar_profile_text(observer.code)
            if profile_text and not self.abs_mag:
                logger.warning('No absolute magnitude known; radar SNR column disabled')
            elif profile_text:
                self.radar = radar_profile_for(observer.code, profile_text)
        self.show_moids = options.has(OPTION_MOIDS) and collaborators.moid_calculator is not None
        if options.has(OPTION_MOIDS) and not self.show_moids:
            logger.warning('MOIDs requested but no MOID calculator is configured; MOID columns dropped')
        self.latitude = observer.latitude() if observer.is_topocentric else 0.0
        self.last_ra_decs: list[tuple[float, float]] = []
        self.last_ellipse: UncertaintyEllipse | None = None

    def _elements_writer(self) -> ElementsWriter | None:
        if self.mode == OPTION_8_LINE_OUTPUT:
            return self.collaborators.elements_writer
        return self.collaborators.mpcorb_writer

    def _hr_min_text(self) -> str:
        text = _HR_MIN_TEXTS.get(self.step.units, '')
        if self.step.n_digits:
            text += '.' + self.step.units * self.step.n_digits
        return text

    def note_text(self) -> str:
        """Note written as '#<note>' above an observables table, '' for none."""
        if self.params.note_text:
            return self.params.note_text
        observer = self.params.observer
        return observer.note_text() if observer.code else ''

    def header_lines(self) -> list[str]:
        """Lines written before the first ephemeris step."""
        params = self.params
        if self.mode in _VECTOR_MODES + _ELEMENT_MODES:
            return [f'{params.jd_start:.5f} {self.step.days:f} {params.n_steps}']
        if self.mode == OPTION_CLOSE_APPROACHES:
            return []
        lines: list[str] = []
        note = self.note_text()
        if note:
            lines.append(f'#{note}')
        if self.computer_friendly:
            return lines
        if self.radar is not None:
            lines.extend(self.radar.header_lines(self.abs_mag))
        flags = params.options
        hr_min = self._hr_min_text()
        caption = f'Date {"(TT)" if self.tt else "(UTC)"}{hr_min}   RA              '
        caption += 'Dec         delta   r     elong '
        dashes = '---- -- --' + ''.join(c if c == ' ' else '-' for c in hr_min)
        dashes += '  ------------   ' + '------------  ------ ------ ----- '
        if self.show_visibility:
            caption += 'SM '
            dashes += '-- '
        for bit, column_caption, column_dashes in _SKY_COLUMNS:
            if flags.has(bit):
                caption += column_caption
                dashes += column_dashes
        if self.abs_mag:
            caption += ' mag'
            dashes += ' ---'
        if flags.has(OPTION_LUNAR_ELONGATION):
            caption += '  LuElo'
            dashes += '  -----'
        if flags.has(OPTION_MOTION_OUTPUT):
            caption += "  RA '/hr dec " if flags.has(OPTION_SEPARATE_MOTIONS) else "  '/hr    PA  "
            dashes += ' ------ ------'
        if self.show_alt_az:
            caption += ' alt  az'
            dashes += ' --- ---'
        if flags.has(OPTION_RADIAL_VEL_OUTPUT):
            caption += '  rvel '
            dashes += '  -----'
        if self.radar is not None:
            caption += '  SNR'
            dashes += ' ----'
        if flags.has(OPTION_GROUND_TRACK):
            caption += '  lon      lat      alt (km) '
            dashes += ' -------- -------- ----------'
        if flags.has(OPTION_SPACE_VEL_OUTPUT):
            caption += '  svel '
            dashes += '  -----'
        if self.show_uncertainties:
            caption += ' " sig PA'
            dashes += ' ---- ---'
        lines.append(caption)
        lines.append(dashes)
        return lines

    def step_jd(self, i: int) -> float:
        """Date of step i, snapped to the step grid when rounding is requested."""
        step = self.step.days
        jd = self.params.jd_start + i * step
        if self.params.options.has(OPTION_ROUND_TO_NEAREST_STEP):
            jd = math.floor((jd - 0.5) / step + 0.5) * step + 0.5
        return jd

    def run(self, output: TextIO) -> None:
        """Write the header and every step to output."""
        params = self.params
        logger.info(
            'Ephemeris: %d steps of %s from JD %.5f, mode %d, %d realization(s)',
            params.n_steps,
            params.step,
            params.jd_start,
            self.mode,
            len(params.orbits),
        )
        for line in self.header_lines():
            output.write(line + '\n')
        realizations = [
            Realization(
                state=np.array(orbit, dtype=np.float64),
                role=Role.PRIMARY if idx == params.primary_index else Role.UNCERTAINTY_SAMPLE,
                jd=params.epoch_jd,
            )
            for idx, orbit in enumerate(params.orbits)
        ]
        primary_realization = next(r for r in realizations if r.role is Role.PRIMARY)
        active = realizations if self.show_uncertainties else [primary_realization]
        integrator = self.collaborators.integrator
        locator = self.collaborators.observer_locator
        observer = params.observer
        last_line_shown = True
        prev_radial_vel = 0.0
        for i in range(params.n_steps):
            curr_jd = self.step_jd(i)
            delta_t = td_minus_utc(curr_jd) / SECONDS_PER_DAY
            if self.tt:
                ephem_t, utc = curr_jd, curr_jd - delta_t
            else:
                ephem_t, utc = curr_jd + delta_t, curr_jd
            obs_state = np.asarray(locator.observer_state(ephem_t, observer), dtype=np.float64)
            if observer.is_topocentric:
                geo_state = np.asarray(locator.observer_state(ephem_t, observer.geocentric), dtype=np.float64)
            else:
                geo_state = obs_state
            by_role: dict[Role, list[GeometrySample]] = {role: [] for role in Role}
            for realization in active:
                realization.advance(integrator, ephem_t)
                by_role[realization.role].append(
                    compute_geometry(
                        realization.state,
                        obs_state,
                        geo_state,
                        light_time=self.mode == OPTION_OBSERVABLES,
                    )
                )
            primary = by_role[Role.PRIMARY][0]
            if self.mode in _VECTOR_MODES:
                output.write(self.vector_line(curr_jd, primary) + '\n')
            elif self.mode in _ELEMENT_MODES:
                self._splice_elements(primary_realization.state, ephem_t, i == params.n_steps - 1, output)
            elif self.mode == OPTION_CLOSE_APPROACHES:
                approach = detect_close_approach(
                    prev_radial_vel,
                    primary.radial_vel,
                    self.step.days,
                    curr_jd,
                    primary.topo_eq,
                    primary.topo_vel_eq,
                )
                if approach is not None:
                    output.write(approach.text() + '\n')
            else:
                last_line_shown = self._write_observables(
                    output,
                    curr_jd,
                    utc,
                    ephem_t,
                    obs_state,
                    primary_realization,
                    primary,
                    by_role[Role.UNCERTAINTY_SAMPLE],
                    last_line_shown,
                )
            prev_radial_vel = primary.radial_vel

    def vector_line(self, curr_jd: float, sample: GeometrySample) -> str:
        """State-vector or position line: JD, then observer-relative position (and velocity)."""
        config = self.config
        posn = sample.topo_eq
        vel = sample.topo_vel_eq
        if config.vector_ecliptic:
            posn = equatorial_to_ecliptic(posn)
            vel = equatorial_to_ecliptic(vel)
        posn_mult = config.vector_posn_mult
        vel_mult = posn_mult / config.vector_time_mult
        digits = _vector_precision(posn_mult, 10)
        line = f'{curr_jd:.5f}' + ''.join(f'{v * posn_mult:16.{digits}f}' for v in posn)
        if self.mode == OPTION_STATE_VECTOR_OUTPUT:
            digits = _vector_precision(vel_mult, 12)
            line += ' ' + ''.join(f'{v * vel_mult:16.{digits}f}' for v in vel)
        return line

    def _splice_elements(self, state: np.ndarray, ephem_t: float, with_comments: bool, output: TextIO) -> None:
        """Have the elements writer write its scratch file, then copy that file to output."""
        template = self.config.elements_file if self.mode == OPTION_8_LINE_OUTPUT else self.config.mpcorb_file
        path = Path(self.config.scratch_file(template))
        writer = self.elements_writer
        if writer is None:
            raise ConfigurationError('No elements writer configured')
        writer.write(state, ephem_t, path, with_comments)
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            raise SectionUnavailable(ReportSection.ELEMENTS, f'cannot read {path}: {e}') from e
        logger.debug('Spliced %d bytes of elements from %s', len(text), path)
        output.write(text)

    def sky_directions(
        self, utc: float, ephem_t: float, obs_state: np.ndarray, primary: GeometrySample, ra: float, dec: float
    ) -> SkyDirections:
        """Alt/az of the object, Sun and Moon, plus the Moon-derived quantities."""
        lst = gmst(utc) + self.params.observer.lon
        obj_alt, obj_az = alt_az(ra, dec, self.latitude, lst)
        sun_ra, sun_dec, _ = vector_to_polar(ecliptic_to_equatorial(-obs_state[:3]))
        sun_alt, _ = alt_az(sun_ra, sun_dec, self.latitude, lst)
        earth_loc, moon_loc = self.collaborators.observer_locator.earth_moon_positions(ephem_t)
        earth_loc = np.asarray(earth_loc, dtype=np.float64)
        moon_vect = np.asarray(moon_loc, dtype=np.float64) - earth_loc
        moon_eq = ecliptic_to_equatorial(moon_vect)
        moon_ra, moon_dec, _ = vector_to_polar(moon_eq)
        moon_alt, _ = alt_az(moon_ra, moon_dec, self.latitude, lst)
        return SkyDirections(
            obj_alt=obj_alt,
            obj_az=obj_az,
            sun_alt=sun_alt,
            moon_alt=moon_alt,
            moon_more_than_half_lit=float(np.dot(earth_loc, moon_vect)) > 0.0,
            in_shadow=in_umbra(earth_loc, primary.orbi_after),
            lunar_elong=angle_between(moon_eq, primary.geo_eq),
        )

    def _write_observables(
        self,
        output: TextIO,
        curr_jd: float,
        utc: float,
        ephem_t: float,
        obs_state: np.ndarray,
        primary_realization: Realization,
        primary: GeometrySample,
        uncertainty_samples: list[GeometrySample],
        last_line_shown: bool,
    ) -> bool:
        """Write one observables line (or the suppression placeholder); return whether it was shown.

        Magnitude, shadow, visibility and every other column come from the
        primary realization; the uncertainty samples only feed the ellipse.
        """
        config = self.config
        flags = self.params.options
        cf = self.computer_friendly
        ra_offset = config.ra_offset_arcsec * RADIANS_PER_ARCSEC
        dec_offset = config.dec_offset_arcsec * RADIANS_PER_ARCSEC
        ra = primary.ra + ra_offset
        dec = primary.dec + dec_offset
        sky = self.sky_directions(utc, ephem_t, obs_state, primary, ra, dec)

        if cf:
            date_text = f'{curr_jd:13.5f}'
            r_text = f'{primary.r:14.9f}'
            solar_r_text = f'{primary.solar_r:12.7f}'
        else:
            date_text = format_ephemeris_date(curr_jd, self.step.units, self.step.n_digits)
            # radar users want delta in AU even for very close objects
            r_text = format_distance(primary.r, au_only=config.au_only_distances or self.radar is not None)
            solar_r_text = format_distance(primary.solar_r, au_only=config.au_only_distances)
        rec = Record()
        rec.append(
            f'{date_text}  {format_ra(ra * DPR / 15.0, cf)}   {format_dec(dec * DPR, cf)} '
            f'{r_text}{solar_r_text} {math.degrees(math.acos(primary.cos_elong)):5.1f}'
        )
        if self.show_visibility:
            rec.append(' ' + _visibility_code(sky))

        estimate = apparent_magnitude(
            self.abs_mag,
            primary.solar_r,
            primary.r,
            primary.earth_r,
            self.params.is_comet,
            self.collaborators.magnitude_model,
        )
        show = estimate.magnitude <= config.mag_limit
        if flags.has(OPTION_PHASE_ANGLE_OUTPUT):
            rec.append(f' {estimate.phase_angle * DPR:8.4f}')
        if flags.has(OPTION_PHASE_ANGLE_BISECTOR):
            bisector = primary.topo_ecliptic / primary.r + primary.orbi_after / primary.solar_r
            lon, lat, _ = vector_to_polar(bisector)
            rec.append(f' {lon * DPR:8.4f} {lat * DPR:8.4f}')
        if flags.has(OPTION_HELIO_ECLIPTIC):
            lon, lat, _ = vector_to_polar(primary.orbi_after)
            rec.append(f' {lon * DPR:8.4f} {lat * DPR:8.4f}')
        if flags.has(OPTION_TOPO_ECLIPTIC):
            lon, lat, _ = vector_to_polar(primary.topo_ecliptic)
            rec.append(f' {lon * DPR:8.4f} {lat * DPR:8.4f}')
        if self.abs_mag:
            rec.append(format_magnitude(estimate.magnitude, sky.in_shadow, estimate.doubtful))
        if flags.has(OPTION_LUNAR_ELONGATION):
            rec.append(f'{sky.lunar_elong * DPR:6.1f}')
        if flags.has(OPTION_MOTION_OUTPUT):
            rec.append(motion_text(motion_details(primary), flags.has(OPTION_SEPARATE_MOTIONS)))
        if self.show_alt_az:
            rec.append(
                f' {"+" if sky.obj_alt > 0.0 else "-"}{int(abs(sky.obj_alt * DPR) + 0.5):02d}'
                f' {int(sky.obj_az * DPR + 0.5):03d}'
            )
        if flags.has(OPTION_RADIAL_VEL_OUTPUT):
            rvel = primary.radial_vel * AU_IN_KM / SECONDS_PER_DAY
            rec.append(f'{rvel:12.6f}' if cf else format_velocity(rvel))
        if self.radar is not None:
            if sky.obj_alt < 0.0:
                rec.append('  n/a')
            else:
                snr = radar_snr_per_day(self.radar, self.abs_mag, primary.r)
                rec.append(' ' + format_snr(snr))
        if flags.has(OPTION_GROUND_TRACK):
            lon, lat, alt_au = ground_track(
                primary.geo_eq, utc, self.params.observer.body, config.geometric_ground_track
            )
            rec.append(f'{lon * DPR:9.4f} {lat * DPR:+08.4f} {alt_au * AU_IN_KM:10.3f}'[:29])
        if flags.has(OPTION_SPACE_VEL_OUTPUT):
            svel = float(np.linalg.norm(primary.topo_vel_eq)) * AU_IN_KM / SECONDS_PER_DAY
            rec.append(format_velocity(svel))

        if flags.has(OPTION_SUPPRESS_UNOBSERVABLE):
            if self.radar is not None:
                show = sky.obj_alt > self.radar.altitude_limit
            elif self.show_topocentric and show:
                show = sky.obj_alt > 0.0 and sky.sun_alt < 0.0

        if not show:
            if last_line_shown:
                output.write(SUPPRESSED_LINE + '\n')
            return False
        if self.show_moids:
            calculator = self.collaborators.moid_calculator
            for planet in MOID_BODIES:
                moid = calculator.moid(primary_realization.state, ephem_t, planet)  # type: ignore[union-attr]
                rec.append(f'{moid:8.4f}')
        if self.show_uncertainties:
            ra_decs = [(s.ra + ra_offset, s.dec + dec_offset) for s in [primary, *uncertainty_samples]]
            ellipse = fit_uncertainty_ellipse(ra_decs)
            self.last_ra_decs = ra_decs
            self.last_ellipse = ellipse
            rec.append(format_uncertainty(ellipse.major_axis_arcsec, ellipse.posn_ang, cf))
        rec.write(output)
        return True


def generate_ephemeris(
    params: EphemerisParams, collaborators: Collaborators, config: RunConfig, output: TextIO
) -> None:
    """Write an ephemeris for params to an open text stream.

    Parameters:
        params: Ephemeris request.
        collaborators: Integrator, observer locator and optional writers.
        config: Run configuration.
        output: Destination stream.

    Raises:
        ConfigurationError: Raised before anything is written (see EphemerisStepper).
        UncertaintyFitError: If an uncertainty ellipse cannot be fitted.
        SectionUnavailable: If an elements scratch file cannot be read back.
    """
    EphemerisStepper(params, collaborators, config).run(output)


def write_ephemeris_file(
    path: str | Path, params: EphemerisParams, collaborators: Collaborators, config: RunConfig
) -> EphemerisStepper:
    """Validate the request, then write the ephemeris to a file.

    Returns:
        The stepper that produced the file (its last uncertainty cloud is
        kept for plotting).

    Raises:
        OutputFileError: If the file cannot be opened for writing.
        ConfigurationError: If the request is invalid; the file is not created.

    Any error raised while the steps are written removes the partial file
    before it propagates.
    """
    stepper = EphemerisStepper(params, collaborators, config)
    out_path = Path(path)
    try:
        f = out_path.open('w', encoding='utf-8')
    except OSError as e:
        raise OutputFileError(f'Cannot open ephemeris output {path}: {e}') from e
    try:
        with f:
            stepper.run(f)
    except BaseException:
        out_path.unlink(missing_ok=True)
        raise
    logger.info('Wrote ephemeris to %s', path)
    return stepper
