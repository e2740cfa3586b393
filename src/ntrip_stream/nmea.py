"""
NMEA GGA sentence formatting

Builds the position reports sent to a caster so it can select corrections
for the client's approximate location.
"""

import numpy as np
from datetime import datetime, timezone
from typing import Optional


MINUTE_DECIMALS = 7


def degrees_to_ddmm(degrees: float, decimals: int = MINUTE_DECIMALS) -> float:
    """
    Convert decimal degrees to NMEA ddmm.mmmm notation

    Args:
        degrees: Angle in decimal degrees (sign is dropped)
        decimals: Minute digits kept; rounding up to 60 carries into degrees

    Returns:
        Whole degrees * 100 + decimal minutes
    """
    value = np.abs(degrees)
    whole = np.floor(value)
    minutes = np.round((value - whole) * 60.0, decimals)
    if minutes >= 60.0:
        whole += 1.0
        minutes = 0.0
    return float(whole * 100.0 + minutes)


def nmea_checksum(body: str) -> str:
    """
    XOR checksum over the characters between '$' and '*'

    Args:
        body: Sentence content, with or without the leading '$'

    Returns:
        Two-digit uppercase hex checksum
    """
    checksum = 0
    for char in body.lstrip('$'):
        checksum ^= ord(char)
    return f"{checksum:02X}"


def format_gga(
    latitude: float,
    longitude: float,
    altitude: float,
    timestamp: Optional[datetime] = None,
    fix_quality: int = 1,
    satellites: int = 8,
    hdop: float = 0.9,
    geoid_separation: float = 0.0,
    talker: str = "GP"
) -> str:
    """
    Format a GGA sentence terminated by CR LF

    Args:
        latitude: Latitude in decimal degrees (north positive)
        longitude: Longitude in decimal degrees (east positive)
        altitude: Altitude above mean sea level in meters
        timestamp: Fix time (defaults to now, UTC)
        fix_quality: GGA fix indicator (1 = GPS fix)
        satellites: Satellites in use
        hdop: Horizontal dilution of precision
        geoid_separation: Geoid separation in meters
        talker: Talker ID

    Returns:
        e.g. "$GPGGA,091530.00,3110.0615660,N,12112.9965290,E,1,08,0.9,10.0000,M,0.000,M,,0000*hh\\r\\n"
    """
    if not -90.0 <= latitude <= 90.0:
        raise ValueError(f"Invalid latitude: {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise ValueError(f"Invalid longitude: {longitude}")

    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    elif timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)

    utc_time = (
        f"{timestamp.hour:02d}{timestamp.minute:02d}"
        f"{timestamp.second:02d}.{timestamp.microsecond // 10000:02d}"
    )

    body = (
        f"{talker}GGA,{utc_time},"
        f"{degrees_to_ddmm(latitude):012.{MINUTE_DECIMALS}f},{'N' if latitude >= 0 else 'S'},"
        f"{degrees_to_ddmm(longitude):013.{MINUTE_DECIMALS}f},{'E' if longitude >= 0 else 'W'},"
        f"{fix_quality:d},{satellites:02d},{hdop:.1f},"
        f"{altitude:.4f},M,{geoid_separation:.3f},M,,0000"
    )

    return f"${body}*{nmea_checksum(body)}\r\n"
