"""
Utility functions for system channel processing.
"""

from typing import Tuple

import numpy as np

from wlanchannel.errors import ChannelConfigurationError


def db_to_linear(db: float) -> float:
    """Convert dB to linear power scale."""
    return 10 ** (db / 10)


def linear_to_db(linear: float) -> float:
    """Convert linear power scale to dB."""
    return 10 * np.log10(linear) if linear > 0 else -np.inf


def db_to_magnitude(db: float) -> float:
    """Convert dB to linear amplitude scale."""
    return 10 ** (db / 20)


def kmh_to_mps(speed_kmh: float) -> float:
    """Convert km/h to m/s."""
    return speed_kmh * 5 / 18


def euclidean_distance(a, b) -> float:
    """Distance in meters between two 3D positions."""
    return float(np.linalg.norm(np.asarray(a, dtype=float) - np.asarray(b, dtype=float)))


def wlan_channel_frequency(channel: int, band: float) -> float:
    """
    Center frequency in Hz of a WLAN channel number.

    Args:
        channel: Channel number
        band: Band in GHz (2.4, 5 or 6)

    Returns:
        Center frequency in Hz
    """
    if np.isclose(band, 2.4):
        if not 1 <= channel <= 14:
            raise ChannelConfigurationError(f"Invalid 2.4 GHz channel number {channel}")
        if channel == 14:
            return 2484e6
        return (2407 + 5 * channel) * 1e6

    if np.isclose(band, 5):
        if not 1 <= channel <= 200:
            raise ChannelConfigurationError(f"Invalid 5 GHz channel number {channel}")
        return (5000 + 5 * channel) * 1e6

    if np.isclose(band, 6):
        if channel == 2:
            return 5935e6
        if not 1 <= channel <= 233:
            raise ChannelConfigurationError(f"Invalid 6 GHz channel number {channel}")
        return (5950 + 5 * channel) * 1e6

    raise ChannelConfigurationError(f"Unsupported band {band} GHz")


def format_band_and_channel(band_and_channel: Tuple[float, int]) -> str:
    """Format a (band, channel) pair for logging."""
    band, channel = band_and_channel
    return f"{band:g} GHz ch{channel}"
