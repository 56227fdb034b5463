"""
System channel configuration constants and data structures.
Path loss formulas follow IEEE 802.11-14/0980r16 (TGax simulation scenarios).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

import numpy as np

from wlanchannel.errors import ChannelConfigurationError


class PathLossModel(Enum):
    """Distance based path loss models."""
    FREE_SPACE = "free-space"
    RESIDENTIAL = "residential"
    ENTERPRISE = "enterprise"
    CUSTOM = "custom"


class PHYAbstraction(Enum):
    """PHY abstraction used by a node."""
    NONE = "none"                                         # Full waveform
    TGAX_EVALUATION = "tgax-evaluation-methodology"
    TGAX_MAC_CALIBRATION = "tgax-mac-calibration"

    @property
    def is_full_waveform(self) -> bool:
        return self is PHYAbstraction.NONE


class InterferenceModeling(Enum):
    """Interference modeling configured on a device."""
    CO_CHANNEL = "co-channel"
    OVERLAPPING_ADJACENT_CHANNEL = "overlapping-adjacent-channel"
    NON_OVERLAPPING_ADJACENT_CHANNEL = "non-overlapping-adjacent-channel"


class DelayProfile(Enum):
    """Power delay profiles for the tapped delay line."""
    MODEL_A = "Model-A"             # Flat, single path
    PEDESTRIAN_A = "Pedestrian-A"   # ITU Pedestrian A
    PEDESTRIAN_B = "Pedestrian-B"   # ITU Pedestrian B
    VEHICULAR_A = "Vehicular-A"     # ITU Vehicular A
    VEHICULAR_B = "Vehicular-B"     # ITU Vehicular B
    URBAN_MACRO = "Urban-Macro"     # 3GPP Urban Macro
    INDOOR_OFFICE = "Indoor-Office"


class OutputPrecision(Enum):
    """Numeric precision of generated path gains."""
    SINGLE = "single"
    DOUBLE = "double"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(np.complex64 if self is OutputPrecision.SINGLE else np.complex128)


class InterpolationMethod(Enum):
    """How path gains are returned for requested sample times."""
    CLOSEST = "closest"   # Nearest cached sample
    LINEAR = "linear"     # Interpolated on the waveform sample grid
    WINDOW = "window"     # Cached samples covering [start, end] plus one either side


# Power delay profiles: (delay in us, relative power in dB)
DELAY_PROFILES = {
    DelayProfile.MODEL_A: [
        (0.0, 0.0)
    ],
    DelayProfile.PEDESTRIAN_A: [
        (0.0, 0.0),
        (0.11, -9.7),
        (0.19, -19.2),
        (0.41, -22.8)
    ],
    DelayProfile.PEDESTRIAN_B: [
        (0.0, 0.0),
        (0.2, -0.9),
        (0.8, -4.9),
        (1.2, -8.0),
        (2.3, -7.8),
        (3.7, -23.9)
    ],
    DelayProfile.VEHICULAR_A: [
        (0.0, 0.0),
        (0.31, -1.0),
        (0.71, -9.0),
        (1.09, -10.0),
        (1.73, -15.0),
        (2.51, -20.0)
    ],
    DelayProfile.VEHICULAR_B: [
        (0.0, -2.5),
        (0.3, 0.0),
        (8.9, -12.8),
        (12.9, -10.0),
        (17.1, -25.2),
        (20.0, -16.0)
    ],
    DelayProfile.URBAN_MACRO: [
        (0.0, 0.0),
        (0.2, -1.0),
        (0.4, -2.0),
        (0.6, -3.0),
        (0.8, -8.0),
        (1.2, -17.2),
        (1.4, -20.8)
    ],
    DelayProfile.INDOOR_OFFICE: [
        (0.0, 0.0),
        (0.05, -3.0),
        (0.11, -10.0),
        (0.17, -18.0),
        (0.23, -26.0)
    ]
}

# Channel timing
PACKET_ITERATION_SIM_TIME = 10e-3     # Generate 10 ms of channel at a time
DOPPLER_NORMALIZATION_FACTOR = 1 / 300
DOPPLER_INTERPOLATION_FACTOR = 1 / 40
DOPPLER_EPSILON_HZ = 1e-6
MIN_CHANNEL_SAMPLE_RATE_HZ = 1e-3

# Channel bandwidths supported by the coordinator (Hz)
AVAILABLE_BANDWIDTHS_HZ = (20e6, 40e6, 80e6, 160e6, 320e6)

# Default prototype channel
DEFAULT_CARRIER_FREQUENCY_HZ = 5.18e9
DEFAULT_SAMPLE_RATE_HZ = 20e6


def _coerce_enum(enum_cls, value, field_name: str):
    """Accept an enum member or its string value."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(repr(m.value) for m in enum_cls)
        raise ChannelConfigurationError(
            f"Invalid {field_name} {value!r}, expected one of {valid}"
        ) from None


@dataclass
class PrototypeChannelConfig:
    """Channel parameters shared by every link on a frequency."""

    delay_profile: DelayProfile = DelayProfile.INDOOR_OFFICE
    transmit_receive_distance_m: float = 15.0
    breakpoint_distance_m: float = 10.0     # LOS at or below this distance
    rician_k_factor_db: float = 3.0         # First tap K-factor when LOS
    environmental_speed_kmh: float = 0.0
    output_precision: OutputPrecision = OutputPrecision.SINGLE
    normalize_path_gains: bool = True
    normalize_channel_outputs: bool = True
    num_sinusoids: int = 16                 # Oscillators per fading path

    # Set per frequency by the coordinator
    carrier_frequency_hz: float = DEFAULT_CARRIER_FREQUENCY_HZ
    sample_rate_hz: float = DEFAULT_SAMPLE_RATE_HZ
    channel_bandwidth_hz: float = DEFAULT_SAMPLE_RATE_HZ

    def __post_init__(self):
        self.delay_profile = _coerce_enum(DelayProfile, self.delay_profile, "delay profile")
        self.output_precision = _coerce_enum(OutputPrecision, self.output_precision, "output precision")
        if self.environmental_speed_kmh < 0:
            raise ChannelConfigurationError(
                f"Environmental speed must be non-negative, got {self.environmental_speed_kmh}"
            )
        if self.transmit_receive_distance_m < 0:
            raise ChannelConfigurationError(
                f"Transmit-receive distance must be non-negative, got {self.transmit_receive_distance_m}"
            )
        if self.carrier_frequency_hz <= 0:
            raise ChannelConfigurationError(
                f"Carrier frequency must be positive, got {self.carrier_frequency_hz}"
            )
        if self.sample_rate_hz <= 0:
            raise ChannelConfigurationError(f"Sample rate must be positive, got {self.sample_rate_hz}")
        if self.num_sinusoids < 1:
            raise ChannelConfigurationError(f"Need at least one sinusoid, got {self.num_sinusoids}")

    @property
    def is_los(self) -> bool:
        """Whether the first tap carries a line-of-sight component."""
        return self.transmit_receive_distance_m <= self.breakpoint_distance_m


@dataclass
class SystemChannelConfig:
    """Large-scale propagation configuration of the system channel."""

    shadow_fading_std_db: float = 0.0       # 0 disables shadow fading
    path_loss_model: Union[PathLossModel, str] = PathLossModel.FREE_SPACE
    # Custom path loss: path_loss_model_fcn(signal, rx_info) -> dB
    path_loss_model_fcn: Optional[Callable] = None
    num_walls: int = 0                      # Walls penetrated (TGax models)
    num_floors: int = 0                     # Floors penetrated (residential)
    seed: Optional[int] = None

    def __post_init__(self):
        self.path_loss_model = _coerce_enum(PathLossModel, self.path_loss_model, "path loss model")
        if self.shadow_fading_std_db < 0:
            raise ChannelConfigurationError(
                f"Shadow fading standard deviation must be non-negative, got {self.shadow_fading_std_db}"
            )
        if self.path_loss_model is PathLossModel.CUSTOM and self.path_loss_model_fcn is None:
            raise ChannelConfigurationError(
                "path_loss_model_fcn is required when the path loss model is 'custom'"
            )
        if self.path_loss_model_fcn is not None and not callable(self.path_loss_model_fcn):
            raise ChannelConfigurationError("path_loss_model_fcn must be callable")
        if self.num_walls < 0 or self.num_floors < 0:
            raise ChannelConfigurationError("Wall and floor penetration counts must be non-negative")
