"""Tests for close-approach detection between ephemeris steps."""

from __future__ import annotations

import numpy as np
import pytest

from orbit_ephemeris.close_approach import CloseApproach, detect_close_approach, sign_change


def test_sign_change_forward_and_backward() -> None:
    """Forward steps look for - to +, backward steps for + to -."""
    assert sign_change(-0.1, 0.1, 1.0)
    assert sign_change(-0.1, 0.0, 1.0)
    assert not sign_change(0.1, -0.1, 1.0)
    assert sign_change(0.1, -0.1, -1.0)
    assert not sign_change(-0.1, 0.1, -1.0)
    assert not sign_change(-0.1, 0.1, 0.0)


def test_detect_interpolates_minimum() -> None:
    """Linear motion gives the perpendicular distance and the time to reach it."""
    topo = np.array([1.0e-3, 1.0e-4, 0.0])
    topo_vel = np.array([-0.01, 0.0, 0.0])
    approach = detect_close_approach(-0.1, 0.1, 1.0, 2451545.0, topo, topo_vel)
    assert approach is not None
    assert approach.dt == pytest.approx(0.1)
    assert approach.jd == pytest.approx(2451545.1)
    assert approach.dist == pytest.approx(1.0e-4)


def test_detect_without_sign_change() -> None:
    """No sign change, no close approach."""
    topo = np.array([1.0e-3, 0.0, 0.0])
    assert detect_close_approach(-0.1, -0.05, 1.0, 2451545.0, topo, np.zeros(3)) is None


def test_detect_stationary_object() -> None:
    """Zero relative velocity keeps the current distance."""
    topo = np.array([0.0, 3.0e-3, 4.0e-3])
    approach = detect_close_approach(-0.1, 0.1, 1.0, 2451545.0, topo, np.zeros(3))
    assert approach is not None
    assert approach.dt == 0.0
    assert approach.dist == pytest.approx(5.0e-3)


def test_close_approach_text() -> None:
    """The log line shows the date to the minute and the formatted distance."""
    approach = CloseApproach(jd=2451545.25, dist=0.005, dt=-0.5)
    assert approach.text() == 'Close approach at 2000 01 01 18:00:  747989'


def test_symmetric_pass_lands_midway() -> None:
    """Radial velocity -0.5 -> +0.5 AU/day across a step puts the minimum at mid-step."""
    miss = 0.1
    x = miss / np.sqrt(3.0)
    step = 2.0 * x
    topo = np.array([x, miss, 0.0])
    topo_vel = np.array([1.0, 0.0, 0.0])
    # radial velocity at the current step is x / sqrt(x^2 + b^2) = +0.5
    assert float(np.dot(topo, topo_vel) / np.linalg.norm(topo)) == pytest.approx(0.5)
    approach = detect_close_approach(-0.5, 0.5, step, 100.0, topo, topo_vel)
    assert approach is not None
    assert approach.jd == pytest.approx(100.0 - step / 2.0)
    assert approach.dist == pytest.approx(miss)
