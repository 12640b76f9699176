"""Matplotlib rendering of an uncertainty cloud with its fitted ellipse."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from pathlib import Path

from orbit_ephemeris.uncertainty import UncertaintyEllipse, tangent_plane_offsets

logger = logging.getLogger(__name__)


def draw_uncertainty_cloud(
    ra_decs: Sequence[tuple[float, float]],
    ellipse: UncertaintyEllipse | None,
    output_path: str | Path,
    title: str = '',
) -> None:
    """Write a PNG scatter plot of realization offsets from the primary position.

    Offsets are plotted in arcseconds with east to the left, as on the sky.
    The fitted ellipse (one sigma) is drawn around the cloud's mean
    when it has a minor axis; a two-point fit is drawn as a line.

    Parameters:
        ra_decs: (ra, dec) in radians, the primary first.
        ellipse: Fitted ellipse for the same positions, or None.
        output_path: PNG file to write.
        title: Plot title.
    """
    try:
        import matplotlib

        matplotlib.use('Agg')
        import matplotlib.pyplot as plt
        from matplotlib.patches import Ellipse
    except ImportError:
        raise ImportError('matplotlib is required for draw_uncertainty_cloud') from None

    x, y = tangent_plane_offsets(ra_decs)
    fig, ax = plt.subplots(figsize=(6, 6))
    ax.scatter(x[1:], y[1:], s=4, color='tab:blue', label='realizations')
    ax.scatter(x[:1], y[:1], s=30, color='tab:red', marker='+', label='primary')
    if ellipse is not None and ellipse.major_axis > 0.0:
        major = ellipse.major_axis_arcsec
        pa_deg = math.degrees(ellipse.posn_ang)
        if ellipse.minor_axis > 0.0:
            minor = ellipse.minor_axis * major / ellipse.major_axis
            ax.add_patch(
                Ellipse(
                    (float(x.mean()), float(y.mean())),
                    2.0 * major,
                    2.0 * minor,
                    angle=pa_deg,
                    fill=False,
                    color='tab:orange',
                )
            )
        else:
            ax.plot(
                [0.0, major * math.cos(ellipse.posn_ang)],
                [0.0, major * math.sin(ellipse.posn_ang)],
                color='tab:orange',
            )
    ax.set_aspect('equal', adjustable='datalim')
    ax.invert_xaxis()
    ax.set_xlabel('RA offset (arcsec)')
    ax.set_ylabel('Dec offset (arcsec)')
    if title:
        ax.set_title(title)
    ax.legend(loc='upper right', fontsize='small')
    fig.savefig(str(output_path), dpi=100)
    plt.close(fig)
    logger.info('Wrote uncertainty plot to %s', output_path)
