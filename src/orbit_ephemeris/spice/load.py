"""SPICE kernel loading for the default observer locator."""

from __future__ import annotations

import logging
from pathlib import Path

import cspyce

from orbit_ephemeris.config import get_spice_kernels, get_spice_path

logger = logging.getLogger(__name__)

# Kernel paths already furnished in this process.
_loaded_kernels: set[str] = set()


def load_spice_kernels(kernels: list[str] | None = None) -> tuple[bool, str | None]:
    """Furnish the kernels the observer locator needs.

    Kernel names are taken relative to SPICE_PATH; absolute paths are used
    as given. A kernel is furnished at most once per process.

    Parameters:
        kernels: Kernel file names, or None for the configured list
            (SPICE_KERNELS or the defaults).

    Returns:
        (True, None) if every kernel is loaded, (False, reason) on failure.
    """
    base = Path(get_spice_path())
    names = kernels if kernels is not None else get_spice_kernels()
    if not names:
        return (False, 'No SPICE kernels configured')
    missing: list[str] = []
    for name in names:
        path = Path(name) if Path(name).is_absolute() else base / name
        key = str(path)
        if key in _loaded_kernels:
            continue
        if not path.exists():
            missing.append(key)
            continue
        try:
            cspyce.furnsh(key)
        except Exception as e:
            logger.warning('Failed to load %s: %s', key, e)
            missing.append(key)
            continue
        _loaded_kernels.add(key)
        logger.info('Loaded SPICE kernel %s', key)
    if missing:
        return (
            False,
            f'SPICE kernels not loaded: {", ".join(missing)}. '
            'Check SPICE_PATH and SPICE_KERNELS.',
        )
    return (True, None)


def reset_loaded_kernels() -> None:
    """Forget which kernels were furnished (does not unload them from SPICE)."""
    _loaded_kernels.clear()
