"""Close approaches detected from sign changes of the radial velocity between steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from orbit_ephemeris.formatting import format_distance
from orbit_ephemeris.time_utils import format_ephemeris_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloseApproach:
    """Interpolated close approach.

    Parameters:
        jd: Time of closest approach (same time scale as the step's date).
        dist: Distance at that time, AU.
        dt: Offset of jd from the detecting step, days (normally negative).
    """

    jd: float
    dist: float
    dt: float

    def text(self) -> str:
        """Log line, e.g. 'Close approach at 2029 04 13 21:46:   38012'."""
        date = format_ephemeris_date(self.jd, 'm')
        return f'Close approach at {date}: {format_distance(self.dist)}'


def sign_change(prev_radial_vel: float, radial_vel: float, step: float) -> bool:
    """True if the range stopped shrinking (or, stepping backward, growing) since the last step."""
    if step > 0.0:
        return radial_vel >= 0.0 and prev_radial_vel < 0.0
    if step < 0.0:
        return radial_vel <= 0.0 and prev_radial_vel > 0.0
    return False


def detect_close_approach(
    prev_radial_vel: float,
    radial_vel: float,
    step: float,
    jd: float,
    topo: np.ndarray,
    topo_vel: np.ndarray,
) -> CloseApproach | None:
    """Look for a close approach between the previous step and this one.

    On a sign change, the motion is taken as linear at the current step:
    the time of minimum distance is dt = -(v . r) / |v|^2 from now, and the
    distance is |r + dt v|. This is a local approximation, good while the
    step is short relative to the encounter's curvature.

    Parameters:
        prev_radial_vel: Radial velocity at the previous step (AU/day).
        radial_vel: Radial velocity at this step (AU/day).
        step: Step size in days; its sign gives the stepping direction.
        jd: Date of this step.
        topo: Object position relative to the observer, AU.
        topo_vel: Object velocity relative to the observer, AU/day.

    Returns:
        CloseApproach, or None when there is no sign change.
    """
    if not sign_change(prev_radial_vel, radial_vel, step):
        return None
    topo = np.asarray(topo, dtype=np.float64)
    topo_vel = np.asarray(topo_vel, dtype=np.float64)
    v_squared = float(np.dot(topo_vel, topo_vel))
    if v_squared == 0.0:
        return CloseApproach(jd=jd, dist=float(np.linalg.norm(topo)), dt=0.0)
    dt = -float(np.dot(topo_vel, topo)) / v_squared
    dist = float(np.linalg.norm(topo + dt * topo_vel))
    logger.debug('Close approach at JD %.6f: %.9f AU', jd + dt, dist)
    return CloseApproach(jd=jd + dt, dist=dist, dt=dt)
