"""Default integrator: heliocentric two-body motion via cspyce.prop2b."""

from __future__ import annotations

import cspyce
import numpy as np

from orbit_ephemeris.constants import SOLAR_GM


class TwoBodyIntegrator:
    """Propagate heliocentric states as unperturbed Keplerian orbits about the Sun.

    Units are AU and days; with GM = k^2 (Gauss' constant) prop2b needs no
    conversion.
    """

    def __init__(self, gm: float = SOLAR_GM) -> None:
        self.gm = gm

    def propagate(self, state: np.ndarray, jd_from: float, jd_to: float) -> np.ndarray:
        """Return the state at jd_to given the state at jd_from (TT Julian dates)."""
        dt = jd_to - jd_from
        if dt == 0.0:
            return np.array(state, dtype=np.float64)
        return np.array(cspyce.prop2b(self.gm, list(state), dt), dtype=np.float64)
