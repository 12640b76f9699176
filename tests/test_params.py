"""Tests for the step-size mini-language, output modes and option bits."""

from __future__ import annotations

import pytest

from orbit_ephemeris.errors import ConfigurationError, StepSizeError
from orbit_ephemeris.params import (
    OPTION_ALT_AZ_OUTPUT,
    OPTION_CLOSE_APPROACHES,
    OPTION_MOTION_OUTPUT,
    OPTION_OBSERVABLES,
    OPTION_SHOW_SIGMAS,
    OPTION_SPACE_VEL_OUTPUT,
    OPTION_STATE_VECTOR_OUTPUT,
    EphemerisOptions,
    parse_mode,
    parse_options,
    parse_step_size,
)


@pytest.mark.parametrize(
    ('text', 'days', 'units', 'n_digits'),
    [
        ('4h', 1.0 / 6.0, 'h', 0),
        ('30m', 30.0 / 1440.0, 'm', 0),
        ('10s', 10.0 / 86400.0, 's', 0),
        ('2w', 14.0, 'w', 0),
        ('1y', 365.25, 'y', 0),
        ('1', 1.0, 'd', 0),
        ('.05d', 0.05, 'd', 2),
        ('-1.5D', -1.5, 'd', 1),
        (' 2.500H ', 2.5 / 24.0, 'h', 3),
    ],
)
def test_parse_step_size(text: str, days: float, units: str, n_digits: int) -> None:
    """Step literals convert to days, keeping the unit letter and fraction digits."""
    step = parse_step_size(text)
    assert step.days == pytest.approx(days)
    assert step.units == units
    assert step.n_digits == n_digits


@pytest.mark.parametrize('text', ['0d', '0', '0.0h'])
def test_zero_step_rejected(text: str) -> None:
    """A zero step is a configuration error."""
    with pytest.raises(StepSizeError, match='zero'):
        parse_step_size(text)


@pytest.mark.parametrize('text', ['', 'abc', '4q', '1.2.3d'])
def test_bad_step_rejected(text: str) -> None:
    """Unparsable steps and unknown unit letters are rejected."""
    with pytest.raises(StepSizeError):
        parse_step_size(text)


def test_step_size_error_is_configuration_error() -> None:
    """Step errors can be caught as configuration errors or ValueError."""
    with pytest.raises(ConfigurationError):
        parse_step_size('0d')
    with pytest.raises(ValueError):
        parse_step_size('0d')


def test_parse_mode_names_and_numbers() -> None:
    """Modes are accepted by name or number."""
    assert parse_mode('observables') == OPTION_OBSERVABLES
    assert parse_mode('STATE') == OPTION_STATE_VECTOR_OUTPUT
    assert parse_mode('5') == OPTION_CLOSE_APPROACHES
    with pytest.raises(ValueError, match='Unknown output mode'):
        parse_mode('sideways')


def test_parse_options_names_and_numbers() -> None:
    """Option tokens may be names, decimal or hex numbers, comma or space separated."""
    bits = parse_options(['motion,alt-az', '0x200'])
    assert bits == OPTION_MOTION_OUTPUT | OPTION_ALT_AZ_OUTPUT | OPTION_SPACE_VEL_OUTPUT
    assert parse_options([str(OPTION_SHOW_SIGMAS)]) == OPTION_SHOW_SIGMAS


def test_parse_options_drops_mode_bits_and_unknown_names(caplog: pytest.LogCaptureFixture) -> None:
    """Mode bits never leak into the option word; unknown names are logged and skipped."""
    bits = parse_options(['7', 'sparkles'])
    assert bits == 0
    assert 'sparkles' in caplog.text


def test_ephemeris_options_round_trip_bits() -> None:
    """An option word splits into mode and flags and recombines."""
    word = OPTION_CLOSE_APPROACHES | OPTION_MOTION_OUTPUT
    options = EphemerisOptions.from_bits(word)
    assert options.mode == OPTION_CLOSE_APPROACHES
    assert options.has(OPTION_MOTION_OUTPUT)
    assert not options.has(OPTION_ALT_AZ_OUTPUT)
    assert options.bits == word
