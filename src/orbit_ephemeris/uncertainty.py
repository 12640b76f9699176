"""Sky-plane uncertainty ellipse fitted to the positions of several orbit realizations."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from orbit_ephemeris.constants import ARCSEC_PER_RADIAN
from orbit_ephemeris.errors import UncertaintyFitError

logger = logging.getLogger(__name__)

# Relative size below which a negative discriminant, or z2 > z1, is rounding noise.
ROUNDING_TOLERANCE = 1e-12

SCATTERGRAM_ROWS = 30


@dataclass(frozen=True)
class UncertaintyEllipse:
    """Fitted uncertainty ellipse.

    Parameters:
        major_axis: Major semi-axis (two-point case: full separation), radians.
        minor_axis: Minor semi-axis, radians (zero in the two-point case).
        posn_ang: Angle of the major axis in radians, measured in the tangent
            plane from the +RA direction toward +Dec.
        n_samples: Number of realizations used.
    """

    major_axis: float
    minor_axis: float
    posn_ang: float
    n_samples: int

    @property
    def major_axis_arcsec(self) -> float:
        """Major semi-axis in arcseconds."""
        return self.major_axis * ARCSEC_PER_RADIAN


def tangent_plane_offsets(ra_decs: Sequence[tuple[float, float]]) -> tuple[np.ndarray, np.ndarray]:
    """Offsets of each position from the first, in arcseconds.

    The RA difference is wrapped into (-pi, pi] and scaled by cos(dec) of the
    first position.

    Parameters:
        ra_decs: (ra, dec) pairs in radians; the first is the reference.

    Returns:
        (x, y) arrays; x[0] == y[0] == 0.
    """
    coords = np.asarray(ra_decs, dtype=np.float64)
    ra0, dec0 = coords[0]
    dx = np.mod(coords[:, 0] - ra0, 2.0 * math.pi)
    dx = np.where(dx > math.pi, dx - 2.0 * math.pi, dx)
    x = dx * math.cos(dec0) * ARCSEC_PER_RADIAN
    y = (coords[:, 1] - dec0) * ARCSEC_PER_RADIAN
    return (x, y)


def two_point_distance_and_pa(
    ra_dec0: tuple[float, float], ra_dec1: tuple[float, float]
) -> tuple[float, float]:
    """Separation and bearing between two sky positions.

    Parameters:
        ra_dec0: (ra, dec) of the reference position, radians.
        ra_dec1: (ra, dec) of the other position, radians.

    Returns:
        (distance, posn_ang) in radians: the great-circle separation (haversine)
        and the direction from the first to the second point in the tangent
        plane, counted from +RA toward +Dec.
    """
    ra0, dec0 = ra_dec0
    ra1, dec1 = ra_dec1
    d_ra = ra1 - ra0
    d_dec = dec1 - dec0
    a = math.sin(d_dec / 2.0) ** 2 + math.cos(dec0) * math.cos(dec1) * math.sin(d_ra / 2.0) ** 2
    dist = 2.0 * math.asin(min(1.0, math.sqrt(a)))
    east = math.cos(dec1) * math.sin(d_ra)
    north = math.cos(dec0) * math.sin(dec1) - math.sin(dec0) * math.cos(dec1) * math.cos(d_ra)
    return (dist, math.atan2(north, east))


def fit_uncertainty_ellipse(ra_decs: Sequence[tuple[float, float]]) -> UncertaintyEllipse:
    """Fit an ellipse to the sky positions of N orbit realizations.

    Offsets are taken in the tangent plane at the first (primary) position.
    The eigenvalues z1 >= z2 of the 2x2 covariance matrix of those offsets
    come from the characteristic quadratic; the major semi-axis is sqrt(z1)
    and the position angle atan2(cov_xy, cov_xx - z2). With exactly two
    positions the separation and bearing are computed directly.

    Parameters:
        ra_decs: (ra, dec) pairs in radians at a common epoch; the first
            belongs to the primary realization.

    Returns:
        UncertaintyEllipse.

    Raises:
        UncertaintyFitError: If fewer than two positions are given, or the
            eigenvalues are not real and ordered beyond rounding.
    """
    n = len(ra_decs)
    if n < 2:
        raise UncertaintyFitError(f'Uncertainty fit needs at least two realizations, got {n}')
    if n == 2:
        dist, posn_ang = two_point_distance_and_pa(ra_decs[0], ra_decs[1])
        return UncertaintyEllipse(major_axis=dist, minor_axis=0.0, posn_ang=posn_ang, n_samples=2)

    x, y = tangent_plane_offsets(ra_decs)
    dx = x - x.mean()
    dy = y - y.mean()
    sum_x2 = float(np.dot(dx, dx)) / n
    sum_xy = float(np.dot(dx, dy)) / n
    sum_y2 = float(np.dot(dy, dy)) / n
    trace = sum_x2 + sum_y2
    det = sum_x2 * sum_y2 - sum_xy * sum_xy
    discrim = trace * trace - 4.0 * det
    if discrim < 0.0:
        if discrim < -ROUNDING_TOLERANCE * trace * trace:
            raise UncertaintyFitError(f'Covariance discriminant is negative ({discrim:g})')
        discrim = 0.0
    z1 = (trace + math.sqrt(discrim)) * 0.5
    if z1 == 0.0:
        return UncertaintyEllipse(major_axis=0.0, minor_axis=0.0, posn_ang=0.0, n_samples=n)
    z2 = det / z1
    if z2 > z1:
        if z2 - z1 > ROUNDING_TOLERANCE * z1:
            raise UncertaintyFitError(f'Minor eigenvalue {z2:g} exceeds major {z1:g}')
        z2 = z1
    posn_ang = math.atan2(sum_xy, sum_x2 - z2)
    logger.debug('Unc ellipse: %f x %f arcsec', math.sqrt(z1), math.sqrt(max(z2, 0.0)))
    if logger.isEnabledFor(logging.DEBUG):
        cutoff = find_cutoff_point(x, y, n * 9 // 10)
        for line in text_scattergram(x, y, SCATTERGRAM_ROWS * 2, SCATTERGRAM_ROWS, cutoff):
            logger.debug('%s', line)
    return UncertaintyEllipse(
        major_axis=math.sqrt(z1) / ARCSEC_PER_RADIAN,
        minor_axis=math.sqrt(max(z2, 0.0)) / ARCSEC_PER_RADIAN,
        posn_ang=posn_ang,
        n_samples=n,
    )


def find_cutoff_point(x: Sequence[float], y: Sequence[float], target_n_inside: int) -> float:
    """Half-width of a square, centered on the origin, holding about target_n_inside points.

    Starts with the box holding every point, shrinks it by 10% until too few
    points remain inside, then returns the last size that held enough.
    """
    xs = np.abs(np.asarray(x, dtype=np.float64))
    ys = np.abs(np.asarray(y, dtype=np.float64))
    lim = float(max(xs.max(initial=0.0), ys.max(initial=0.0)))
    n_inside = len(xs)
    while n_inside > target_n_inside:
        lim /= 1.1
        n_inside = int(np.count_nonzero((xs < lim) & (ys < lim)))
    return lim * 1.1


def _scattergram_spacing(scale: float) -> tuple[int, int]:
    """Tick value (1, 2, 4, 5, 10, 20, 40, ...) and tick spacing in rows, at least 3 rows apart."""
    iscale, spacing, i = 1, 0, 0
    while iscale < 1000000 and spacing < 3:
        if i % 4 == 2:
            iscale += iscale // 4
        else:
            iscale += iscale
        spacing = iscale // int(scale + 1.0)
        i += 1
    return (iscale, spacing)


def text_scattergram(
    x: Sequence[float], y: Sequence[float], xsize: int, ysize: int, span: float
) -> list[str]:
    """Character-cell scatter plot of tangent-plane offsets.

    Each cell counts the points falling in it ('1'..'Z'). RA increases to
    the left. Grid crosses '+' mark tick values, the center is '*', and
    tick labels run along the top and bottom rows and the right edge.

    Parameters:
        x: RA offsets (arcsec).
        y: Dec offsets (arcsec).
        xsize: Plot width in characters (normally twice ysize).
        ysize: Plot height in rows.
        span: Offset shown at the plot's edge, before rounding to a tick.

    Returns:
        Lines from top to bottom.
    """
    iscale, spacing = _scattergram_spacing(span / ysize)
    span = ysize * iscale / spacing
    rows = [[' '] * (xsize + 1) for _ in range(ysize + 1)]
    for px, py in zip(x, y):
        ix = int((xsize - math.floor(px * xsize / span)) / 2)
        iy = int((ysize + math.floor(py * ysize / span)) / 2)
        if 0 <= ix < xsize and 0 < iy < ysize:
            cell = rows[iy][ix]
            if cell == ' ':
                rows[iy][ix] = '1'
            elif cell < 'Z':
                rows[iy][ix] = chr(ord(cell) + 1)
    n_marks = (ysize // 2) // spacing
    for i in range(-n_marks, n_marks + 1):
        num = i * iscale
        yloc = ysize // 2 + i * spacing
        for j in range(-n_marks, n_marks + 1):
            rows[yloc][xsize // 2 + 2 * j * spacing] = '+'
        if not num:
            label = '0'
        elif abs(num) < 1000:
            label = f'{num:+d}'
        elif num % 1000 == 0:
            label = f'{num // 1000:+d}K'
        else:
            label = ''
        rows[yloc].extend('-' + label)
        xloc = yloc * 2 - len(label) // 2
        if xloc >= 0 and label:
            top = rows[0]
            if len(top) < xloc + len(label):
                top.extend(' ' * (xloc + len(label) - len(top)))
            top[xloc : xloc + len(label)] = list(label)
    rows[ysize // 2][xsize // 2] = '*'
    rows[ysize] = list(rows[0])
    return [''.join(row).rstrip() for row in reversed(rows)]
