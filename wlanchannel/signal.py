"""
Records exchanged with the outer network simulator.

Signals, receivers and the node population are owned by the caller; the
system channel only reads them and returns impaired copies of signals.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from wlanchannel.config import InterferenceModeling, PHYAbstraction
from wlanchannel.errors import ChannelConfigurationError
from wlanchannel.utils import wlan_channel_frequency


@dataclass
class WirelessSignal:
    """Transmitted packet as seen by the channel."""
    transmitter_id: int
    transmitter_position: Sequence[float]
    start_time: float                       # Seconds
    duration: float                         # Seconds
    center_frequency: float                 # Hz
    power: float                            # dBm
    data: Optional[np.ndarray] = None       # (num_samples, num_tx) for full waveform
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def midpoint_time(self) -> float:
        return self.start_time + self.duration / 2


@dataclass
class ReceiverInfo:
    """Receiving node."""
    id: int
    position: Sequence[float]


@dataclass
class DeviceConfig:
    """One radio interface of a node."""
    band_and_channel: Tuple[float, int] = (5, 36)     # (band GHz, channel number)
    channel_bandwidth_hz: float = 20e6
    num_transmit_antennas: int = 1
    interference_modeling: InterferenceModeling = InterferenceModeling.CO_CHANNEL

    def __post_init__(self):
        if not isinstance(self.interference_modeling, InterferenceModeling):
            try:
                self.interference_modeling = InterferenceModeling(self.interference_modeling)
            except ValueError:
                raise ChannelConfigurationError(
                    f"Invalid interference modeling {self.interference_modeling!r}"
                ) from None
        if self.num_transmit_antennas < 1:
            raise ChannelConfigurationError(
                f"Number of antennas must be positive, got {self.num_transmit_antennas}"
            )

    @property
    def center_frequency(self) -> float:
        band, channel = self.band_and_channel
        return wlan_channel_frequency(channel, band)


@dataclass
class WLANNode:
    """Node of the network population."""
    id: int
    position: Sequence[float] = (0.0, 0.0, 0.0)
    devices: List[DeviceConfig] = field(default_factory=lambda: [DeviceConfig()])
    phy_abstraction: PHYAbstraction = PHYAbstraction.TGAX_EVALUATION

    def __post_init__(self):
        if not isinstance(self.phy_abstraction, PHYAbstraction):
            try:
                self.phy_abstraction = PHYAbstraction(self.phy_abstraction)
            except ValueError:
                raise ChannelConfigurationError(
                    f"Invalid PHY abstraction {self.phy_abstraction!r}"
                ) from None
        if isinstance(self.devices, DeviceConfig):
            self.devices = [self.devices]

    @property
    def receive_frequencies(self) -> List[float]:
        return [device.center_frequency for device in self.devices]

    def device_for_frequency(self, frequency: float) -> Optional[DeviceConfig]:
        """First device operating on a center frequency, None if the node is absent."""
        for device in self.devices:
            if device.center_frequency == frequency:
                return device
        return None

    def receiver_info(self) -> ReceiverInfo:
        return ReceiverInfo(id=self.id, position=self.position)


@dataclass
class ChannelStatistics:
    """Channel statistics for one link at one time."""
    path_gains: np.ndarray          # (num_times, num_paths, num_tx, num_rx)
    path_filters: np.ndarray        # (num_paths, filter_length)
    path_delays: np.ndarray         # Seconds
    sample_times: np.ndarray        # Seconds

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path_gains": self.path_gains,
            "path_filters": self.path_filters,
            "path_delays": self.path_delays,
            "sample_times": self.sample_times,
        }
