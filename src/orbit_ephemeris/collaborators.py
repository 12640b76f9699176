"""Interfaces the ephemeris stepper relies on but does not implement itself.

Orbit propagation, observer and planet positions, the phase/distance
magnitude term, element writing, MOID computation and plate coverage are
supplied by the caller. Default implementations live in orbit_ephemeris.spice,
orbit_ephemeris.elements, orbit_ephemeris.magnitude and
orbit_ephemeris.precovery.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

from orbit_ephemeris.magnitude import StandardPhaseModel
from orbit_ephemeris.observer import ObserverFrame

if TYPE_CHECKING:
    from orbit_ephemeris.precovery import PlateField, PlateNight


@runtime_checkable
class Integrator(Protocol):
    """Propagates a heliocentric ecliptic state (AU, AU/day) between two TT Julian dates."""

    def propagate(self, state: np.ndarray, jd_from: float, jd_to: float) -> np.ndarray: ...


@runtime_checkable
class ObserverLocator(Protocol):
    """Heliocentric ecliptic positions of observing sites and of the Earth and Moon."""

    def observer_state(self, jd_tt: float, observer: ObserverFrame) -> np.ndarray:
        """6-vector (AU, AU/day) of the site; a non-topocentric frame gives the body center."""
        ...

    def earth_moon_positions(self, jd_tt: float) -> tuple[np.ndarray, np.ndarray]:
        """Heliocentric ecliptic positions (AU) of the Earth and of the Moon."""
        ...


@runtime_checkable
class PhaseMagnitudeModel(Protocol):
    """Magnitude term added to the absolute magnitude; also returns the phase angle."""

    def __call__(
        self, is_comet: bool, solar_r: float, obs_dist: float, earth_sun: float
    ) -> tuple[float, float]: ...


@runtime_checkable
class ElementsWriter(Protocol):
    """Writes osculating elements of a state to a file."""

    def write(
        self, state: np.ndarray, epoch_jd: float, path: str | Path, with_comments: bool
    ) -> None: ...


@runtime_checkable
class MoidCalculator(Protocol):
    """Minimum orbit intersection distance (AU) between an orbit and a planet's."""

    def moid(self, state: np.ndarray, jd: float, planet: int) -> float: ...


@runtime_checkable
class PlateCoverage(Protocol):
    """Nights of archived plates and the sky fields each plate covered."""

    def nights(self) -> Iterable[PlateNight]: ...

    def plate_fields(self, night: PlateNight) -> list[PlateField] | None:
        """Plates of the night in order; None if the night's coverage is unavailable."""
        ...


@dataclass
class Collaborators:
    """Bundle of collaborators for one ephemeris run.

    Parameters:
        integrator: Orbit propagator.
        observer_locator: Site and planet positions.
        magnitude_model: Phase/distance magnitude term.
        elements_writer: Writer for the 8-line elements mode.
        mpcorb_writer: Writer for the one-line (MPCORB) elements mode.
        moid_calculator: MOID source; MOID columns are dropped without one.
    """

    integrator: Integrator
    observer_locator: ObserverLocator
    magnitude_model: PhaseMagnitudeModel = field(default_factory=StandardPhaseModel)
    elements_writer: ElementsWriter | None = None
    mpcorb_writer: ElementsWriter | None = None
    moid_calculator: MoidCalculator | None = None
