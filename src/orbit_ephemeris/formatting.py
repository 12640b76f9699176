"""Fixed-width text fields whose unit and precision follow the value's magnitude.

Every function here is total: values beyond the last rung of a ladder are
rendered as a saturation marker, never raised.
"""

from __future__ import annotations

import math
import re

from orbit_ephemeris.constants import AU_IN_KM, LIGHT_YEAR_IN_KM, SPEED_OF_LIGHT

SI_PREFIXES = 'kMGTPEZYXWVUSRQONLJIHFDCBA'
LOWER_SI_PREFIXES = ' munpfazy '

DISTANCE_WIDTH = 7
VELOCITY_WIDTH = 7
MOTION_WIDTH = 6
SNR_WIDTH = 4
ANGLE_WIDTH = 12
RESIDUAL_WIDTH = 6

_LEADING_NUMBER_RE = re.compile(r'\s*([-+]?(?:\d+\.?\d*|\.\d+))')


def _strip_leading_zero(text: str) -> str:
    """Blank a leading '0' so that 0.1234 shows as ' .1234'."""
    return ' ' + text[1:] if text[:1] == '0' else text


def _leading_value(text: str) -> float:
    """Numeric value at the start of a field, 0.0 if it has none."""
    match = _LEADING_NUMBER_RE.match(text)
    return float(match.group(1)) if match else 0.0


def _dist_in_au(dist_au: float) -> str:
    if dist_au > 999.999:
        text = f'{dist_au:7.1f}'
    elif dist_au > 99.999:
        text = f'{dist_au:7.2f}'
    elif dist_au > 9.999:
        text = f'{dist_au:7.3f}'
    elif dist_au > 0.99:
        text = f'{dist_au:7.4f}'
    else:
        text = f'{dist_au:7.5f}'
    return _strip_leading_zero(text)


def _dist_in_light_years(dist_au: float) -> str:
    light_years = dist_au * AU_IN_KM / LIGHT_YEAR_IN_KM
    if light_years <= 9999.9:
        if light_years > 99.999:
            return f'{light_years:5.0f}LY'
        if light_years > 9.999:
            return f'{light_years:5.1f}LY'
        if light_years > 0.999:
            return f'{light_years:5.2f}LY'
        return _strip_leading_zero(f'{light_years:5.3f}LY')
    light_years /= 1000.0
    idx = 0
    while idx < len(SI_PREFIXES) and light_years > 999.0:
        light_years /= 1000.0
        idx += 1
    if idx == len(SI_PREFIXES):
        return ' <HUGE>'
    value = f'{light_years:4.1f}' if light_years < 9.9 else f'{light_years:4.0f}'
    return f'{value}{SI_PREFIXES[idx]}LY'


def format_distance(dist_au: float, au_only: bool = False) -> str:
    """Format a distance as a 7-character field.

    Within a million km the unit walks mm, cm, m, tenths of km and km. Beyond
    that the value is in AU with 1 to 5 decimals (.12345 below one AU, 1.2345
    from one to ten AU), then light-years, then light-years with an SI
    multiplier ('12kLY'), then ' <HUGE>'.

    Parameters:
        dist_au: Distance in AU.
        au_only: Always use AU (radar ephemerides want no km switch).

    Returns:
        Seven-character text; ' <NEG!>' for a negative distance.
    """
    if dist_au < 0.0:
        return ' <NEG!>'
    if au_only:
        return _dist_in_au(dist_au)
    dist_km = dist_au * AU_IN_KM
    if dist_km < 0.0099:
        return f'{dist_km * 1e6:5.0f}mm'
    if dist_km < 0.099:
        return f'{dist_km * 1e5:5.0f}cm'
    if dist_km < 99.0:
        return f'{dist_km * 1e3:6.0f}m'
    if dist_km < 999.0:
        return f'{dist_km:6.1f}k'
    if dist_km < 999999.0:
        return f'{dist_km:7.0f}'
    if dist_au > 9999.999:
        return _dist_in_light_years(dist_au)
    return _dist_in_au(dist_au)


def format_velocity(vel_km_s: float) -> str:
    """Format a velocity in km/s as a 7-character field.

    Beyond 999999 km/s the value is given in units of c ('  12.3c'); past
    999999 c the field saturates to ' !!!!!!'.
    """
    v = abs(vel_km_s)
    if v < 9.999:
        return f'{vel_km_s:7.3f}'
    if v < 99.999:
        return f'{vel_km_s:7.2f}'
    if v < 999.9:
        return f'{vel_km_s:7.1f}'
    if v < 999999.0:
        return f'{vel_km_s:7.0f}'
    in_c = vel_km_s / SPEED_OF_LIGHT
    if abs(in_c) < 99.999:
        return f'{in_c:6.1f}c'
    if abs(in_c) < 999999.0:
        return f'{in_c:6.0f}c'
    return ' !!!!!!'


def format_snr(value: float) -> str:
    """Format a non-negative quantity in four characters, packing large values with SI prefixes.

    Examples: '0.42', '4.20', '42.0', ' 420', '4200', ' 42k', '420M'; '!!!!'
    when even the prefixes cannot hold it.
    """
    if value > 999.0e21:
        return '!!!!'
    if value > 9999.0:
        count = 0
        while True:
            value /= 1000.0
            if value < 9.9:
                return f'{value:3.1f}{SI_PREFIXES[count]}'
            if value < 999.0:
                return f'{int(value):3d}{SI_PREFIXES[count]}'
            count += 1
    if value > 99.9:
        return f'{int(value + 0.5):4d}'
    if value > 9.9:
        return f'{value:4.1f}'
    if value > 0.99:
        return f'{value:4.2f}'
    return f'{value:5.2f}'[1:]


def format_motion(motion: float) -> str:
    """Format an apparent motion ("/min or '/hr) as a 6-character field."""
    m = abs(motion)
    if m > 999999.0:
        return '------'
    if m > 999.0:
        return f'{motion:6.0f}'
    if m > 99.9:
        return f'{motion:6.1f}'
    return f'{motion:6.2f}'


def format_angle(angle: float, precision: int) -> str:
    """Format an angle (hours or degrees) to a 12-character field.

    Precision codes:
        0..3: 'hh mm ss' with that many decimals of seconds.
        -1..-7: 'hh mm' with (-precision - 1) decimals of minutes.
        100..109: decimal 'dd.ddd', precision % 100 decimals.
        200..208: the angle in hours converted to decimal degrees, 'ddd.ddd'.
        307..312: 'hhmmss' packed with no spaces or point, precision - 306
            extra digits of seconds.
    Other codes show '?' followed by the value.

    Rounding is done on integer ticks, so 59.9996 seconds carries into the
    next minute.

    Parameters:
        angle: Non-negative angle in hours or degrees.
        precision: Precision code.

    Returns:
        Text padded with blanks to 12 characters.
    """
    n_digits = 0
    fraction = 0
    if 100 <= precision <= 109 or 200 <= precision <= 208:
        two_digits = precision < 200
        n_digits = precision % 100
        power_mul = 10**n_digits
        ticks = int(angle * (1.0 if two_digits else 15.0) * power_mul + 0.5)
        whole, fraction = divmod(ticks, power_mul)
        text = f'{whole:02d}' if two_digits else f'{whole:03d}'
    elif -7 <= precision <= -1:
        n_digits = -1 - precision
        power_mul = 10**n_digits
        ticks = int(angle * 60.0 * power_mul + 0.5)
        minutes, fraction = divmod(ticks, power_mul)
        text = f'{minutes // 60:02d} {minutes % 60:02d}'
    elif 0 <= precision <= 3 or 307 <= precision <= 312:
        n_digits = precision % 306
        power_mul = 10**n_digits
        ticks = int(angle * 3600.0 * power_mul + 0.5)
        seconds, fraction = divmod(ticks, power_mul)
        text = f'{seconds // 3600:02d} {(seconds // 60) % 60:02d} {seconds % 60:02d}'
        if precision > 306:
            text = text.replace(' ', '')
    elif -1000.0 < angle < 1000.0:
        text = f'?{angle:.5f}'
    else:
        text = '?'
    if n_digits:
        if not 307 <= precision <= 312:
            text += '.'
        text += f'{fraction:0{n_digits}d}'
    return text[:ANGLE_WIDTH].ljust(ANGLE_WIDTH)


def format_ra(ra_hours: float, computer_friendly: bool = False) -> str:
    """Right ascension as 'hh mm ss.sss', or '%9.5f' degrees when computer-friendly."""
    ra_hours %= 24.0
    if computer_friendly:
        return f'{ra_hours * 15.0:9.5f}'
    # wrap 23:59:59.9996 to 00:00:00.000 rather than 24:00:00.000
    ms = int(ra_hours * 3600000.0 + 0.5) % (24 * 3600000)
    return format_angle(ms / 3600000.0, 3).rstrip()


def format_dec(dec_deg: float, computer_friendly: bool = False) -> str:
    """Declination as '+dd mm ss.ss', or '%9.5f' degrees when computer-friendly."""
    if computer_friendly:
        return f'{dec_deg:9.5f}'
    sign = '-' if dec_deg < 0.0 else '+'
    return sign + format_angle(abs(dec_deg), 2).rstrip()


def format_residual(
    resid_arcsec: float,
    precise: bool = False,
    overprecise: bool = False,
    computer_friendly: bool = False,
) -> str:
    """Format an astrometric residual as a 6-character field ending in its sign.

    The ladder runs from ' Err!' (beyond 999 degrees) through whole degrees
    ('179d'), arcminutes ("314'"), whole arcseconds, tenths, and hundredths
    below one arcsecond ('  .87'). precise adds a digit below ten arcseconds;
    overprecise shows sub-10-mas values with a lower SI prefix ('3.2u').
    The sign character is blank when the shown value is zero.

    Parameters:
        resid_arcsec: Residual in arcseconds.
        precise: One more decimal for small residuals.
        overprecise: Milli/micro/nano-arcsecond forms for tiny residuals.
        computer_friendly: Eight-character ' %+.6f' form, no ladder.

    Returns:
        Residual text.
    """
    if computer_friendly:
        return f' {resid_arcsec:+.6f}'[:8]
    zval = abs(resid_arcsec)
    if zval > 999.0 * 3600.0:
        text = ' Err!'
    elif zval > 59940.0:
        text = f'{zval / 3600.0:4.0f}d'
    elif zval > 9999.9:
        text = f"{zval / 60.0:4.0f}'"
    elif zval > 99.9:
        text = f'{zval:5.0f}'
    elif 0.99 < zval < 9.99 and (precise or overprecise):
        text = f'{zval:5.2f}'
    elif zval > 0.99:
        text = f'{zval:5.1f}'
    elif overprecise and zval < 0.00999:
        i = 0
        while zval < 0.99 and i < 9:
            zval *= 1000.0
            i += 1
        number = f'{zval:4.1f}' if zval < 9.9 else f'{zval:4.0f}'
        text = number + LOWER_SI_PREFIXES[i]
    elif precise or overprecise:
        text = ' ' + f'{zval:5.3f}'[1:]
    else:
        raw = f'{zval:5.2f}'
        text = raw[0] + ' ' + raw[2:]
    text = text[:5].ljust(5)
    if _leading_value(text) == 0.0:
        sign = ' '
    else:
        sign = '+' if resid_arcsec > 0.0 else '-'
    return text + sign


def format_time_residual(seconds: float) -> str:
    """Format a timing residual as a 6-character field (' -.4ms', ' +47ms', ' -217s', ' +027h')."""
    t = abs(seconds)
    sign = '-' if seconds < 0.0 else '+'
    if t < 0.00094:
        return f' {sign}.{int(t * 10000.0 + 0.5):01d}ms'
    if t < 0.099:
        return f' {sign}{int(t * 1000.0 + 0.5):02d}ms'
    if t < 0.994:
        return f' {sign}.{int(t * 100.0 + 0.5):02d}s'
    if t < 9.9:
        return f' {seconds:+4.1f}s'
    if t < 999.0:
        return f' {sign}{int(t + 0.5):03d}s'
    if t / 60.0 < 999.0:
        return f' {sign}{int(t / 60.0 + 0.5):03d}m'
    if t / 3600.0 < 9999.0:
        return f' {sign}{int(t / 3600.0 + 0.5):03d}h'
    return ' !!!! '


def format_sigmas(sigmas: float) -> str:
    """Format a residual in units of its sigma (' +2.3 ', ' -12 ', ' HUGE ')."""
    if sigmas < -999.0 or sigmas > 999.0:
        return ' HUGE '
    if abs(sigmas) > 9.9:
        return f' {sigmas:+4.0f} '
    return f' {sigmas:+4.1f} '


def format_mag_residual(obs_mag: float | None, computed_mag: float) -> str:
    """Observed minus computed magnitude as '%6.2f ', or '------ ' if either is unknown."""
    if obs_mag is None or not computed_mag:
        return '------ '
    return f'{obs_mag - computed_mag:6.2f} '


def format_magnitude(mag: float, in_shadow: bool = False, doubtful: bool = False) -> str:
    """Format an apparent magnitude as a 5-character column.

    ' Sha ' marks an object in the Earth's shadow. A doubtful value (large
    phase angle) has its last digit, and a preceding decimal point, replaced
    by '?'.
    """
    if in_shadow:
        return ' Sha '
    if -9.9 < mag < 99.0:
        text = f' {mag + 0.05:4.1f}'
    else:
        text = f' {int(mag + 0.5):3d} '
    if doubtful:
        chars = list(text)
        chars[-1] = '?'
        if chars[-2] == '.':
            chars[-2] = '?'
        text = ''.join(chars)
    return text


def format_uncertainty(
    dist_arcsec: float, posn_ang: float, computer_friendly: bool = False
) -> str:
    """Format the uncertainty column: ellipse size and position angle.

    Parameters:
        dist_arcsec: Major semi-axis in arcseconds.
        posn_ang: Position angle in radians, measured as returned by the fitter.
        computer_friendly: Show whole arcseconds in six columns.

    Returns:
        ' <size> <pa>': size is '%4.1f' under 9", whole arcsec under 10000",
        arcminutes ("123'") under 60000", else degrees ('12d'); pa is degrees
        modulo 180.
    """
    pa_deg = int(math.floor(-posn_ang * 180.0 / math.pi + 0.5)) % 180
    whole = int(dist_arcsec)
    if computer_friendly:
        size = f'{whole:6d}'
    elif whole < 9:
        size = f'{dist_arcsec:4.1f}'
    elif whole < 10000:
        size = f'{whole:4d}'
    elif whole < 60000:
        size = f"{whole // 60:3d}'"
    else:
        size = f'{whole // 3600:3d}d'
    return f' {size} {pa_deg:3d}'
