"""Tests for the orbit-ephemeris command line."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from orbit_ephemeris.cli import main as cli_main
from orbit_ephemeris.errors import ConfigurationError
from orbit_ephemeris.observer import ObserverFrame

_QUADRATURE = ['--state', '1', '1', '0', '0', '0', '0']


class _LinearIntegrator:
    def propagate(self, state: np.ndarray, jd_from: float, jd_to: float) -> np.ndarray:
        out = np.array(state, dtype=np.float64)
        out[:3] += out[3:6] * (jd_to - jd_from)
        return out


class _StaticEarthLocator:
    def observer_state(self, jd_tt: float, observer: ObserverFrame) -> np.ndarray:
        del jd_tt, observer
        return np.array([1.0, 0.0, 0.0, 0.0, 0.0, 0.0])

    def earth_moon_positions(self, jd_tt: float) -> tuple[np.ndarray, np.ndarray]:
        del jd_tt
        return (np.array([1.0, 0.0, 0.0]), np.array([1.00257, 0.0, 0.0]))


@pytest.fixture
def no_spice(monkeypatch: pytest.MonkeyPatch) -> None:
    """Replace kernel loading and the SPICE-backed defaults with in-memory fakes."""
    monkeypatch.setattr('orbit_ephemeris.cli.main.load_spice_kernels', lambda kernels: (True, None))
    monkeypatch.setattr('orbit_ephemeris.cli.main.TwoBodyIntegrator', _LinearIntegrator)
    monkeypatch.setattr('orbit_ephemeris.cli.main.SpiceObserverLocator', _StaticEarthLocator)
    monkeypatch.setattr('orbit_ephemeris.ephemeris.td_minus_utc', lambda jd: 0.0)
    monkeypatch.delenv('EPHEMERIS_MAG_LIMIT', raising=False)
    monkeypatch.delenv('TT_EPHEMERIS', raising=False)


def test_observables_to_stdout(no_spice: None, capsys: pytest.CaptureFixture[str]) -> None:
    """A geocentric run prints the note, caption, dashes and one line per step."""
    rc = cli_main.main([*_QUADRATURE, '--epoch', '2451544.5', '--steps', '2'])
    out = capsys.readouterr().out.splitlines()
    assert rc == 0
    assert out[0] == '#(500) Geocentric'
    assert out[3].startswith('2000 01 01  06 00 00.000')
    assert out[4].startswith('2000 01 02')
    assert len(out) == 5


def test_summary_precedes_table(no_spice: None, capsys: pytest.CaptureFixture[str]) -> None:
    """--summary writes the Input Parameters section first."""
    rc = cli_main.main([*_QUADRATURE, '--epoch', '2451544.5', '--steps', '1', '--summary', '--tt'])
    out = capsys.readouterr().out.splitlines()
    assert rc == 0
    assert out[0] == 'Input Parameters'
    assert '     Start time: 2000 01 01 00:00 TT' in out


def test_state_vectors_to_file(no_spice: None, tmp_path: Path) -> None:
    """-o writes the chosen mode to a file."""
    path = tmp_path / 'vectors.txt'
    rc = cli_main.main([*_QUADRATURE, '--epoch', '2451545', '--mode', 'state', '--steps', '3', '-o', str(path)])
    lines = path.read_text(encoding='utf-8').splitlines()
    assert rc == 0
    assert lines[0] == '2451545.00000 1.000000 3'
    assert len(lines) == 4


def test_missing_orbit(no_spice: None, capsys: pytest.CaptureFixture[str]) -> None:
    """Without --state or --orbits-file the run fails with exit code 1."""
    rc = cli_main.main(['--epoch', '2451545'])
    assert rc == 1
    assert 'Error: No orbit given' in capsys.readouterr().err


def test_zero_step(no_spice: None, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """A zero step is reported and no output file is left behind."""
    path = tmp_path / 'ephem.txt'
    rc = cli_main.main([*_QUADRATURE, '--epoch', '2451545', '--step', '0h', '-o', str(path)])
    assert rc == 1
    assert 'zero' in capsys.readouterr().err
    assert not path.exists()


def test_kernel_failure(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """Kernel load failures stop the run before any output."""
    monkeypatch.setattr(
        'orbit_ephemeris.cli.main.load_spice_kernels', lambda kernels: (False, 'SPICE kernels not loaded: x')
    )
    rc = cli_main.main([*_QUADRATURE, '--epoch', '2451545'])
    captured = capsys.readouterr()
    assert rc == 1
    assert captured.out == ''
    assert 'Error: SPICE kernels not loaded' in captured.err


def test_orbits_file_and_scatter_plot(no_spice: None, tmp_path: Path) -> None:
    """Realizations from a file feed the uncertainty column and the cloud plot."""
    orbits = tmp_path / 'orbits.txt'
    orbits.write_text(
        '# primary first\n1 1 0 0 0 0\n\n1, 1, 1e-5, 0, 0, 0\n1 1 -1e-5 0 0 0\n', encoding='utf-8'
    )
    out_path = tmp_path / 'ephem.txt'
    png = tmp_path / 'cloud.png'
    rc = cli_main.main(
        [
            '--orbits-file',
            str(orbits),
            '--epoch',
            '2451544.5',
            '--steps',
            '1',
            '--options',
            'sigmas',
            '--scatter-plot',
            str(png),
            '-o',
            str(out_path),
        ]
    )
    assert rc == 0
    assert out_path.read_text(encoding='utf-8').splitlines()[1].endswith(' " sig PA')
    assert png.stat().st_size > 0


def test_read_orbits_file_errors(tmp_path: Path) -> None:
    """Malformed or missing orbit files raise ConfigurationError naming the line."""
    path = tmp_path / 'orbits.txt'
    path.write_text('1 2 3 4 5\n', encoding='utf-8')
    with pytest.raises(ConfigurationError, match='orbits.txt:1: expected 6 numbers'):
        cli_main.read_orbits_file(path)
    path.write_text('1 2 3 4 5 six\n', encoding='utf-8')
    with pytest.raises(ConfigurationError, match='orbits.txt:1'):
        cli_main.read_orbits_file(path)
    with pytest.raises(ConfigurationError, match='Cannot read'):
        cli_main.read_orbits_file(tmp_path / 'missing.txt')


def test_primary_picked_by_position(
    no_spice: None, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """--primary names which state in the orbits file is the nominal solution."""
    orbits = tmp_path / 'orbits.txt'
    orbits.write_text('1 3 0 0 0 0\n1 1 0 0 0 0\n', encoding='utf-8')
    rc = cli_main.main(['--orbits-file', str(orbits), '--primary', '1', '--epoch', '2451544.5', '--steps', '1'])
    out = capsys.readouterr().out.splitlines()
    assert rc == 0
    assert out[3] == '2000 01 01  06 00 00.000   +23 26 21.45  1.0000 1.4142  90.0'

    rc = cli_main.main(['--orbits-file', str(orbits), '--primary', '5', '--epoch', '2451544.5'])
    assert rc == 1
    assert 'Error: Primary orbit index 5' in capsys.readouterr().err


def test_precovery_listing(
    no_spice: None, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """--precovery lists the plates holding the primary orbit, to stdout or -o."""
    plate = f'{1.5:10.6f}{0.35:9.6f}{1.65:9.6f}{0.35:9.6f}{1.65:9.6f}{0.45:9.6f}{1.5:9.6f}{0.45:9.6f}'
    (tmp_path / 'night.txt').write_text(plate + '\n' + plate + '\n', encoding='utf-8')
    index = tmp_path / 'sky_cov.txt'
    index.write_text('2000001 night.txt\n', encoding='utf-8')
    argv = [*_QUADRATURE, '--epoch', '2451545.0', '--precovery', '--sky-coverage', str(index)]

    assert cli_main.main(argv) == 0
    assert capsys.readouterr().out == '   1 night.txt\n   2 night.txt\n'

    out_path = tmp_path / 'plates.txt'
    assert cli_main.main([*argv, '-o', str(out_path)]) == 0
    assert out_path.read_text(encoding='utf-8') == '   1 night.txt\n   2 night.txt\n'

    rc = cli_main.main([*_QUADRATURE, '--epoch', '2451545.0', '--precovery', '--sky-coverage', str(tmp_path / 'x')])
    assert rc == 1
    assert 'Cannot read sky coverage index' in capsys.readouterr().err
