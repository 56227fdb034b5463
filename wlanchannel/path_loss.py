"""
Distance based path loss.

Models:
- free-space: Friis, 20*log10(4*pi*d/lambda), clamped at 0 dB
- residential / enterprise: IEEE 802.11-14/0980r16 breakpoint models
- custom: user function of (signal, rx_info) returning dB
"""

import logging

import numpy as np

from wlanchannel.config import PathLossModel, SystemChannelConfig
from wlanchannel.fading import LIGHT_SPEED
from wlanchannel.utils import euclidean_distance

logger = logging.getLogger(__name__)


class PathLossCalculator:
    """
    Calculate path loss for the configured propagation model.
    """

    # TGax breakpoint distances (m)
    RESIDENTIAL_BREAKPOINT_M = 5.0
    ENTERPRISE_BREAKPOINT_M = 10.0

    # TGax penetration losses (dB)
    RESIDENTIAL_WALL_LOSS_DB = 5.0
    ENTERPRISE_WALL_LOSS_DB = 7.0
    FLOOR_LOSS_DB = 18.3

    def __init__(self, config: SystemChannelConfig, carrier_freq_hz: float):
        """Initialize path loss calculator."""
        self.config = config
        self.carrier_freq_hz = carrier_freq_hz

    @property
    def wavelength(self) -> float:
        return LIGHT_SPEED / self.carrier_freq_hz

    def free_space_loss_db(self, distance_m: float) -> float:
        """Calculate free-space path loss (Friis equation)."""
        if distance_m <= self.wavelength / (4 * np.pi):
            # Inside the reference distance the formula goes negative
            return 0.0

        return 20 * np.log10(4 * np.pi * distance_m / self.wavelength)

    def _tgax_loss_db(self, distance_m: float, breakpoint_m: float) -> float:
        d = max(distance_m, 1.0)
        return (
            40.052
            + 20 * np.log10((self.carrier_freq_hz / 1e9) / 2.4)
            + 20 * np.log10(min(d, breakpoint_m))
            + (d > breakpoint_m) * 35 * np.log10(d / breakpoint_m)
        )

    def residential_loss_db(self, distance_m: float) -> float:
        """TGax residential scenario path loss."""
        floors = self.config.num_floors
        floor_loss = self.FLOOR_LOSS_DB * floors ** ((floors + 2) / (floors + 1) - 0.46)
        wall_loss = self.RESIDENTIAL_WALL_LOSS_DB * self.config.num_walls
        return self._tgax_loss_db(distance_m, self.RESIDENTIAL_BREAKPOINT_M) + floor_loss + wall_loss

    def enterprise_loss_db(self, distance_m: float) -> float:
        """TGax enterprise scenario path loss."""
        wall_loss = self.ENTERPRISE_WALL_LOSS_DB * self.config.num_walls
        return self._tgax_loss_db(distance_m, self.ENTERPRISE_BREAKPOINT_M) + wall_loss

    def loss_db(self, distance_m: float) -> float:
        """Path loss for a distance using the configured distance model."""
        model = self.config.path_loss_model
        if model is PathLossModel.FREE_SPACE:
            return self.free_space_loss_db(distance_m)
        if model is PathLossModel.RESIDENTIAL:
            return self.residential_loss_db(distance_m)
        if model is PathLossModel.ENTERPRISE:
            return self.enterprise_loss_db(distance_m)
        raise ValueError(f"{model.value} path loss is not a function of distance alone")

    def get_path_loss(self, signal, rx_info) -> float:
        """
        Path loss in dB between the transmitter of a signal and a receiver.

        Args:
            signal: Transmitted signal with transmitter_position
            rx_info: Receiver with position
        """
        if self.config.path_loss_model is PathLossModel.CUSTOM:
            return float(self.config.path_loss_model_fcn(signal, rx_info))

        distance = euclidean_distance(signal.transmitter_position, rx_info.position)
        return float(self.loss_db(distance))
