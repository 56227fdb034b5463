"""
TGax Link Fading Process

PURPOSE:
Generates time-varying multipath path gains for one reciprocal link at the
lowest sample rate that still captures the Doppler spread of the
environment. Path gains are produced block by block; each block continues
the process clock of the previous one so consecutive blocks tile in time.

MODEL:
- Tapped delay line built from a power delay profile
- Each (path, transmit antenna, receive antenna) is an independent
  sum-of-sinusoids Rayleigh process (Jakes' classical spectrum)
- First tap is Rician when the link is within the breakpoint distance

USAGE:
    from wlanchannel.fading import TGaxFadingProcess, derive_sample_rate

    process = TGaxFadingProcess(prototype, num_tx=2, num_rx=1, rng=rng)
    process.sample_rate = derive_sample_rate(5.18e9, 1.2)
    process.num_samples = samples_per_quantum(process.sample_rate)
    gains = process.step()   # (num_samples, num_paths, num_tx, num_rx)
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict

import numpy as np
from scipy import constants, special

from wlanchannel.config import (
    DELAY_PROFILES,
    DOPPLER_EPSILON_HZ,
    DOPPLER_INTERPOLATION_FACTOR,
    DOPPLER_NORMALIZATION_FACTOR,
    MIN_CHANNEL_SAMPLE_RATE_HZ,
    PACKET_ITERATION_SIM_TIME,
    PrototypeChannelConfig,
)
from wlanchannel.utils import db_to_linear, kmh_to_mps, linear_to_db

logger = logging.getLogger(__name__)

LIGHT_SPEED = constants.speed_of_light


# ============================================================================
# DOPPLER-ADAPTIVE SAMPLING
# ============================================================================


def doppler_frequency(carrier_frequency_hz: float, environmental_speed_kmh: float) -> float:
    """Maximum Doppler frequency in Hz for a speed in km/h."""
    wavelength = LIGHT_SPEED / carrier_frequency_hz
    return kmh_to_mps(environmental_speed_kmh) / wavelength


def derive_sample_rate(carrier_frequency_hz: float, environmental_speed_kmh: float) -> float:
    """
    Lowest fading-process sample rate capturing the Doppler spread.

    Args:
        carrier_frequency_hz: Carrier frequency
        environmental_speed_kmh: Environmental speed

    Returns:
        Sample rate in Hz, never below MIN_CHANNEL_SAMPLE_RATE_HZ
    """
    fd = doppler_frequency(carrier_frequency_hz, environmental_speed_kmh)
    fc = fd / DOPPLER_NORMALIZATION_FACTOR  # Channel sampling frequency
    if fc > 0:
        # Offset from the exact Doppler multiple
        fc = fc + DOPPLER_EPSILON_HZ
    return max(fc / DOPPLER_INTERPOLATION_FACTOR, MIN_CHANNEL_SAMPLE_RATE_HZ)


def samples_per_quantum(
    sample_rate: float,
    quantum: float = PACKET_ITERATION_SIM_TIME
) -> int:
    """
    Number of samples per block so one block spans at least one quantum.

    The first sample of a block is at time 0, so n samples span
    (n - 1) / sample_rate seconds.
    """
    num_samples = max(math.ceil(quantum * sample_rate), 2)
    while (num_samples - 1) / sample_rate < quantum:
        num_samples += 1
    return num_samples


# ============================================================================
# FADING PROCESS
# ============================================================================


class TGaxFadingProcess:
    """
    Sum-of-sinusoids fading process for one link.

    The link is generated in one canonical direction with shape
    (num_tx, num_rx) antennas; reverse queries permute the antenna axes.
    """

    def __init__(
        self,
        config: PrototypeChannelConfig,
        num_tx: int,
        num_rx: int,
        rng: np.random.Generator
    ):
        self.config = config
        self.num_tx = int(num_tx)
        self.num_rx = int(num_rx)
        self.rng = rng

        profile = DELAY_PROFILES[config.delay_profile]
        self.path_delays = np.array([delay_us * 1e-6 for delay_us, _ in profile])
        powers = np.array([db_to_linear(power_db) for _, power_db in profile])
        if config.normalize_path_gains:
            powers = powers / np.sum(powers)
        self.path_powers = powers

        self.max_doppler_hz = doppler_frequency(
            config.carrier_frequency_hz, config.environmental_speed_kmh
        )

        # Block generation, set by the owning link registry
        self.sample_rate = derive_sample_rate(
            config.carrier_frequency_hz, config.environmental_speed_kmh
        )
        self.num_samples = samples_per_quantum(self.sample_rate)

        self.reset()

    @property
    def num_paths(self) -> int:
        return len(self.path_delays)

    @property
    def block_duration(self) -> float:
        """Simulation time covered by one block, including the gap to the next."""
        return self.num_samples / self.sample_rate

    def reset(self):
        """Re-randomize the Doppler timeline and rewind the process clock."""
        shape = (self.num_paths, self.num_tx, self.num_rx, self.config.num_sinusoids)
        n = np.arange(self.config.num_sinusoids)

        # Arrival angle per oscillator, jittered within its sector
        arrival = 2 * np.pi * n / self.config.num_sinusoids
        self._arrival_angles = arrival + self.rng.uniform(0, np.pi / self.config.num_sinusoids, shape)
        self._phases = self.rng.uniform(0, 2 * np.pi, shape)
        self._los_phases = self.rng.uniform(0, 2 * np.pi, (self.num_tx, self.num_rx))
        self._time = 0.0

    def step(self) -> np.ndarray:
        """
        Generate the next block of path gains.

        Returns:
            Path gains (num_samples, num_paths, num_tx, num_rx)
        """
        t = self._time + np.arange(self.num_samples) / self.sample_rate
        self._time += self.block_duration

        doppler = self.max_doppler_hz * np.cos(self._arrival_angles)
        arg = 2 * np.pi * doppler[np.newaxis] * t[:, None, None, None, None] + self._phases[np.newaxis]
        scattered = np.sum(np.exp(1j * arg), axis=-1) / np.sqrt(self.config.num_sinusoids)

        gains = scattered * np.sqrt(self.path_powers)[None, :, None, None]

        if self.config.is_los:
            k_linear = db_to_linear(self.config.rician_k_factor_db)
            los = np.sqrt(k_linear / (k_linear + 1)) * np.exp(1j * self._los_phases)
            gains[:, 0] = np.sqrt(self.path_powers[0]) * (
                los[np.newaxis] + scattered[:, 0] / np.sqrt(k_linear + 1)
            )

        logger.debug(
            f"Generated {self.num_samples} path gain samples ending at t={t[-1]:.6f}s"
        )
        return gains.astype(self.config.output_precision.dtype)

    def autocorrelation(self, lags) -> np.ndarray:
        """Theoretical autocorrelation J0(2*pi*fd*tau) of the scattered paths."""
        lags = np.asarray(lags, dtype=float)
        return special.j0(2 * np.pi * self.max_doppler_hz * lags)

    def info(self) -> Dict[str, Any]:
        """Static properties of the realization."""
        return {
            "path_delays": self.path_delays.copy(),
            "average_path_gains_db": np.array([linear_to_db(p) for p in self.path_powers]),
            "is_los": self.config.is_los,
            "k_factor_db": self.config.rician_k_factor_db if self.config.is_los else -np.inf,
            "max_doppler_hz": self.max_doppler_hz,
            "sample_rate": self.sample_rate,
            "num_samples": self.num_samples,
        }
