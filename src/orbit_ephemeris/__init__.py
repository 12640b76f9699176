"""Ephemeris generation for one or more candidate orbit solutions.

This package steps orbit realizations through a sequence of epochs and writes
observer-relative tables:
- State vectors / positions, orbital-element snapshots, close-approach logs
- Full observables lines: RA/Dec, distances, elongation, magnitude, motion,
  alt/az, radial and space velocity, radar SNR, ground track, MOIDs, and the
  uncertainty ellipse fitted across realizations

SPICE kernels are read through cspyce and time scales are handled by rms-julian.
"""

__all__: list[str] = []
