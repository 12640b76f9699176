"""Tests for the ephemeris stepper, using fake collaborators and no SPICE kernels."""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import pytest

from orbit_ephemeris.collaborators import Collaborators
from orbit_ephemeris.config import RunConfig
from orbit_ephemeris.ephemeris import (
    SUPPRESSED_LINE,
    EphemerisStepper,
    generate_ephemeris,
    write_ephemeris_file,
)
from orbit_ephemeris.errors import (
    ConfigurationError,
    OutputFileError,
    ReportSection,
    SectionUnavailable,
    StepSizeError,
)
from orbit_ephemeris.observer import ObserverFrame
from orbit_ephemeris.params import (
    OPTION_8_LINE_OUTPUT,
    OPTION_CLOSE_APPROACHES,
    OPTION_COMPUTER_FRIENDLY,
    OPTION_MOIDS,
    OPTION_MOTION_OUTPUT,
    OPTION_OBSERVABLES,
    OPTION_POSITION_OUTPUT,
    OPTION_ROUND_TO_NEAREST_STEP,
    OPTION_SHOW_SIGMAS,
    OPTION_STATE_VECTOR_OUTPUT,
    EphemerisOptions,
    EphemerisParams,
)

J2000 = 2451545.0


class LinearIntegrator:
    """Straight-line motion at constant velocity."""

    def propagate(self, state: np.ndarray, jd_from: float, jd_to: float) -> np.ndarray:
        out = np.array(state, dtype=np.float64)
        out[:3] += out[3:6] * (jd_to - jd_from)
        return out


class StaticEarthLocator:
    """Observer fixed at 1 AU on the +x axis, Moon just beyond it."""

    def observer_state(self, jd_tt: float, observer: ObserverFrame) -> np.ndarray:
        del jd_tt, observer
        return np.array([1.0, 0.0, 0.0, 0.0, 0.0, 0.0])

    def earth_moon_positions(self, jd_tt: float) -> tuple[np.ndarray, np.ndarray]:
        del jd_tt
        return (np.array([1.0, 0.0, 0.0]), np.array([1.00257, 0.0, 0.0]))


class FileElementsWriter:
    """Writes a one-line stand-in for an element set and records each call."""

    def __init__(self) -> None:
        self.calls: list[tuple[float, bool]] = []

    def write(self, state: np.ndarray, epoch_jd: float, path: str | Path, with_comments: bool) -> None:
        del state
        self.calls.append((epoch_jd, with_comments))
        Path(path).write_text(f'elements at {epoch_jd:.1f} comments={with_comments}\n', encoding='utf-8')


class SilentElementsWriter:
    """Claims to write elements but leaves no file."""

    def write(self, state: np.ndarray, epoch_jd: float, path: str | Path, with_comments: bool) -> None:
        del state, epoch_jd, path, with_comments


class PlanetIndexMoids:
    """MOID equal to a hundredth of the planet index."""

    def moid(self, state: np.ndarray, jd: float, planet: int) -> float:
        del state, jd
        return planet / 100.0


@pytest.fixture(autouse=True)
def _no_leap_seconds(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the stepper with UTC equal to TT so no leap-second kernel is needed."""
    monkeypatch.setattr('orbit_ephemeris.ephemeris.td_minus_utc', lambda jd: 0.0)


def _collaborators(**kwargs: object) -> Collaborators:
    return Collaborators(integrator=LinearIntegrator(), observer_locator=StaticEarthLocator(), **kwargs)


def _params(orbits: list[list[float]], mode: int = OPTION_OBSERVABLES, flags: int = 0, **kwargs: object) -> EphemerisParams:
    values: dict[str, object] = {
        'epoch_jd': J2000,
        'jd_start': J2000 - 0.5,
        'step': '1d',
        'n_steps': 1,
        'options': EphemerisOptions(mode=mode, flags=flags),
    }
    values.update(kwargs)
    return EphemerisParams(orbits=[np.array(o, dtype=np.float64) for o in orbits], **values)  # type: ignore[arg-type]


def _run(params: EphemerisParams, collaborators: Collaborators | None = None, config: RunConfig | None = None) -> list[str]:
    out = io.StringIO()
    generate_ephemeris(params, collaborators or _collaborators(), config or RunConfig(), out)
    return out.getvalue().splitlines()


def test_observables_line() -> None:
    """An object 1 AU from the Earth at quadrature gives the expected columns."""
    lines = _run(_params([[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]]))
    assert lines[0] == '#(500) Geocentric'
    assert lines[1].startswith('Date (UTC)   RA              Dec         delta   r     elong')
    assert lines[2].startswith('---- -- --  ------------')
    assert lines[3] == '2000 01 01  06 00 00.000   +23 26 21.45  1.0000 1.4142  90.0'
    assert len(lines) == 4


def test_observables_header_columns() -> None:
    """Optional columns add captions; computer-friendly output drops the caption."""
    stepper = EphemerisStepper(
        _params([[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]], flags=OPTION_MOTION_OUTPUT, step='2.5h', abs_mag=18.0),
        _collaborators(),
        RunConfig(),
    )
    caption = stepper.header_lines()[1]
    assert caption.startswith('Date (UTC) HH.h   RA')
    assert ' mag' in caption
    assert "'/hr    PA" in caption
    friendly = EphemerisStepper(
        _params([[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]], flags=OPTION_COMPUTER_FRIENDLY, note_text='test run'),
        _collaborators(),
        RunConfig(),
    )
    assert friendly.header_lines() == ['#test run']


def test_faint_steps_are_suppressed_once() -> None:
    """Consecutive lines below the magnitude limit collapse to a single placeholder."""
    orbits = [[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]]
    lines = _run(_params(orbits, n_steps=3, abs_mag=30.0))
    assert lines[3:] == [SUPPRESSED_LINE]
    shown = _run(_params(orbits, n_steps=3, abs_mag=30.0), config=RunConfig(mag_limit=99.0))
    assert len(shown) == 6
    assert all(line.startswith('2000 01 0') for line in shown[3:])


def test_uncertainty_column_from_two_realizations() -> None:
    """With sigmas requested, the spread of the realizations is appended."""
    params = _params(
        [[1.0, 1.0, 0.0, 0.0, 0.0, 0.0], [1.0, 1.0, 1.0e-5, 0.0, 0.0, 0.0]],
        flags=OPTION_SHOW_SIGMAS,
    )
    stepper = EphemerisStepper(params, _collaborators(), RunConfig())
    out = io.StringIO()
    stepper.run(out)
    lines = out.getvalue().splitlines()
    assert lines[1].endswith(' " sig PA')
    assert lines[3].endswith('  2.1  90')
    assert len(stepper.last_ra_decs) == 2
    assert stepper.last_ellipse is not None
    assert stepper.last_ellipse.n_samples == 2


def test_moid_columns() -> None:
    """Each planet's MOID is appended to shown lines."""
    params = _params([[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]], flags=OPTION_MOIDS)
    lines = _run(params, _collaborators(moid_calculator=PlanetIndexMoids()))
    assert lines[3].endswith('  0.0100  0.0200  0.0300  0.0400  0.0500  0.0600  0.0700  0.0800')


def test_moids_without_calculator_are_dropped(caplog: pytest.LogCaptureFixture) -> None:
    """Without a MOID calculator the columns are dropped with a warning."""
    stepper = EphemerisStepper(
        _params([[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]], flags=OPTION_MOIDS), _collaborators(), RunConfig()
    )
    assert not stepper.show_moids
    assert 'MOID' in caplog.text


@pytest.mark.parametrize('mode', [OPTION_STATE_VECTOR_OUTPUT, OPTION_POSITION_OUTPUT])
def test_vector_output(mode: int) -> None:
    """Vector modes write a start/step/count header, then JD and observer-relative vectors."""
    params = _params([[1.5, 0.0, 0.0, 0.0, 0.01, 0.0]], mode=mode, jd_start=J2000, n_steps=2)
    lines = _run(params)
    assert lines[0] == '2451545.00000 1.000000 2'
    values = [float(v) for v in lines[1].split()]
    assert values[0] == J2000
    assert values[1:4] == pytest.approx([0.5, 0.0, 0.0], abs=1e-12)
    if mode == OPTION_STATE_VECTOR_OUTPUT:
        assert len(values) == 7
        assert np.linalg.norm(values[4:7]) == pytest.approx(0.01)
    else:
        assert len(values) == 4
    second = [float(v) for v in lines[2].split()]
    assert second[0] == J2000 + 1.0
    assert np.linalg.norm(second[1:4]) == pytest.approx(np.hypot(0.5, 0.01))


def test_vector_output_scaled_to_km() -> None:
    """Position multipliers scale the vector and reduce the printed decimals."""
    params = _params([[1.5, 0.0, 0.0, 0.0, 0.0, 0.0]], mode=OPTION_POSITION_OUTPUT, jd_start=J2000)
    lines = _run(params, config=RunConfig(vector_posn_mult=1000.0))
    x_text = lines[1].split()[1]
    assert x_text == '500.0000000'


def test_close_approach_reported_between_steps() -> None:
    """A sign change of the radial velocity reports the interpolated minimum."""
    params = _params(
        [[1.01, -0.045, 0.0, 0.0, 0.01, 0.0]],
        mode=OPTION_CLOSE_APPROACHES,
        jd_start=J2000,
        n_steps=10,
    )
    lines = _run(params)
    assert lines == ['Close approach at 2000 01 06 00:00:  .01000']


def test_elements_spliced_from_scratch_file(tmp_path: Path) -> None:
    """Element modes copy the writer's scratch file, with comments on the last step only."""
    writer = FileElementsWriter()
    params = _params(
        [[1.5, 0.0, 0.0, 0.0, 0.01, 0.0]], mode=OPTION_8_LINE_OUTPUT, jd_start=J2000, n_steps=2
    )
    config = RunConfig(elements_file=str(tmp_path / 'elements.txt'))
    lines = _run(params, _collaborators(elements_writer=writer), config)
    assert lines == [
        '2451545.00000 1.000000 2',
        'elements at 2451545.0 comments=False',
        'elements at 2451546.0 comments=True',
    ]
    assert writer.calls == [(J2000, False), (J2000 + 1.0, True)]


def test_elements_mode_needs_writer() -> None:
    """Requesting elements with no writer fails before any output."""
    params = _params([[1.5, 0.0, 0.0, 0.0, 0.01, 0.0]], mode=OPTION_8_LINE_OUTPUT)
    with pytest.raises(ConfigurationError, match='elements writer'):
        EphemerisStepper(params, _collaborators(), RunConfig())


def test_unreadable_elements_file(tmp_path: Path) -> None:
    """A scratch file that never appears makes the elements section unavailable."""
    params = _params([[1.5, 0.0, 0.0, 0.0, 0.01, 0.0]], mode=OPTION_8_LINE_OUTPUT, jd_start=J2000)
    config = RunConfig(elements_file=str(tmp_path / 'elements.txt'))
    with pytest.raises(SectionUnavailable) as excinfo:
        _run(params, _collaborators(elements_writer=SilentElementsWriter()), config)
    assert excinfo.value.section is ReportSection.ELEMENTS


def test_invalid_requests_rejected() -> None:
    """Unknown modes and empty orbit lists are configuration errors."""
    with pytest.raises(ConfigurationError, match='mode'):
        EphemerisStepper(_params([[1.0] * 6], mode=6), _collaborators(), RunConfig())
    with pytest.raises(ConfigurationError, match='No orbit'):
        EphemerisStepper(_params([]), _collaborators(), RunConfig())


def test_bad_step_leaves_no_file(tmp_path: Path) -> None:
    """A zero step fails before the output file is created."""
    path = tmp_path / 'ephem.txt'
    with pytest.raises(StepSizeError):
        write_ephemeris_file(path, _params([[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]], step='0d'), _collaborators(), RunConfig())
    assert not path.exists()


def test_unwritable_output(tmp_path: Path) -> None:
    """An output path in a missing directory raises OutputFileError."""
    path = tmp_path / 'missing' / 'ephem.txt'
    with pytest.raises(OutputFileError):
        write_ephemeris_file(path, _params([[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]]), _collaborators(), RunConfig())


def test_write_ephemeris_file(tmp_path: Path) -> None:
    """The ephemeris is written to the named file."""
    path = tmp_path / 'ephem.txt'
    write_ephemeris_file(path, _params([[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]], n_steps=2), _collaborators(), RunConfig())
    assert len(path.read_text(encoding='utf-8').splitlines()) == 5


def test_round_to_nearest_step() -> None:
    """Rounding snaps step dates to the step grid."""
    stepper = EphemerisStepper(
        _params([[1.0] * 6], flags=OPTION_ROUND_TO_NEAREST_STEP, jd_start=J2000 + 0.3),
        _collaborators(),
        RunConfig(),
    )
    assert stepper.step_jd(0) == J2000 + 0.5
    assert stepper.step_jd(2) == J2000 + 2.5


def test_radar_needs_absolute_magnitude(caplog: pytest.LogCaptureFixture) -> None:
    """A radar station adds assumption lines only when H is known."""
    station = ObserverFrame(lon=4.2, rho_cos_phi=0.83, rho_sin_phi=0.56, code='253', name='Goldstone')
    config = RunConfig(radar_profiles={'253': '450000,20,1.0,18,1e-10'})
    orbits = [[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]]
    without_h = EphemerisStepper(_params(orbits, observer=station), _collaborators(), config)
    assert without_h.radar is None
    assert 'radar SNR column disabled' in caplog.text
    with_h = EphemerisStepper(_params(orbits, observer=station, abs_mag=20.0), _collaborators(), config)
    header = with_h.header_lines()
    assert header[0] == '#(253) Goldstone'
    assert header[1].startswith('Assumes power=450.00 kW')
    assert header[3].endswith('  SNR')


class IntegratorFailingAfter:
    """Linear motion until a cutoff date, then a propagation failure."""

    def __init__(self, cutoff_jd: float) -> None:
        self.cutoff_jd = cutoff_jd

    def propagate(self, state: np.ndarray, jd_from: float, jd_to: float) -> np.ndarray:
        if jd_to > self.cutoff_jd:
            raise RuntimeError(f'propagation failed at {jd_to}')
        return LinearIntegrator().propagate(state, jd_from, jd_to)


def test_failure_mid_run_removes_partial_file(tmp_path: Path) -> None:
    """An error after some lines are written leaves no output file behind."""
    path = tmp_path / 'ephem.txt'
    collaborators = Collaborators(
        integrator=IntegratorFailingAfter(J2000), observer_locator=StaticEarthLocator()
    )
    with pytest.raises(RuntimeError, match='propagation failed'):
        write_ephemeris_file(
            path, _params([[1.0, 1.0, 0.0, 0.0, 0.0, 0.0]], n_steps=3), collaborators, RunConfig()
        )
    assert not path.exists()


def test_primary_chosen_by_role_not_position() -> None:
    """A primary listed second still drives every column, magnitude included."""
    primary = [1.0, 1.0, 0.0, 0.0, 0.0, 0.0]
    sample = [1.0, 3.0, 0.0, 0.0, 0.0, 0.0]
    expected = _run(_params([primary], abs_mag=18.0))
    lines = _run(_params([sample, primary], abs_mag=18.0, primary_index=1))
    assert lines == expected
    assert lines[3].startswith('2000 01 01  06 00 00.000   +23 26 21.45  1.0000 1.4142  90.0')


def test_uncertainty_centered_on_primary_wherever_listed() -> None:
    """The ellipse is fitted around the primary whatever its position in the list."""
    primary = [1.0, 1.0, 0.0, 0.0, 0.0, 0.0]
    samples = [[1.0, 1.0, 1.0e-5, 0.0, 0.0, 0.0], [1.0, 1.0, 2.0e-5, 0.0, 0.0, 0.0]]
    first = _run(_params([primary, *samples], flags=OPTION_SHOW_SIGMAS))
    middle = _run(_params([samples[0], primary, samples[1]], flags=OPTION_SHOW_SIGMAS, primary_index=1))
    assert middle == first


def test_primary_index_out_of_range() -> None:
    """A primary index past the end of the orbit list is a configuration error."""
    with pytest.raises(ConfigurationError, match='Primary orbit index 2'):
        EphemerisStepper(_params([[1.0] * 6, [1.0] * 6], primary_index=2), _collaborators(), RunConfig())
