"""Exception taxonomy and composite-report section status."""

from __future__ import annotations

import enum
from pathlib import Path


class EphemerisError(Exception):
    """Base class for errors raised while preparing or running an ephemeris."""


class ConfigurationError(EphemerisError, ValueError):
    """Fatal run parameter problem; the run is aborted before output is produced."""


class StepSizeError(ConfigurationError):
    """Step size text could not be parsed, or parsed to zero."""


class OutputFileError(ConfigurationError):
    """Output file could not be opened for writing."""


class StationError(ConfigurationError):
    """Observing station code is unknown or its data is unusable."""


class InvariantViolation(EphemerisError, RuntimeError):
    """Numerical or input-data defect (not an expected run-time condition)."""


class UncertaintyFitError(InvariantViolation):
    """Covariance eigenvalues are not real and ordered, or too few samples."""


class RadarProfileError(InvariantViolation):
    """Radar station profile text is malformed."""


class ReportSection(enum.Enum):
    """Sections of a composite report, each backed by one file."""

    OBSERVATIONS = 'observations'
    RESIDUALS = 'residuals'
    ELEMENTS = 'elements'
    EPHEMERIS = 'ephemeris'


class SectionUnavailable(EphemerisError, RuntimeError):
    """A composite-report section could not be produced or read."""

    def __init__(self, section: ReportSection, reason: str = '') -> None:
        self.section = section
        message = f'{section.value} unavailable'
        if reason:
            message += f': {reason}'
        super().__init__(message)


def check_report_sections(paths: dict[ReportSection, str | Path]) -> set[ReportSection]:
    """Return the report sections whose backing file is missing or empty.

    Parameters:
        paths: Mapping of section to the file that should hold its text.

    Returns:
        Set of sections a composite report must mark as missing.
    """
    missing: set[ReportSection] = set()
    for section, path in paths.items():
        p = Path(path)
        if not p.is_file() or p.stat().st_size == 0:
            missing.add(section)
    return missing
