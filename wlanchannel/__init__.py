"""
WLAN system channel: multi-link fading, path loss and shadow fading for
system-level network simulation.
"""

from wlanchannel.config import (
    DelayProfile,
    InterpolationMethod,
    PathLossModel,
    PHYAbstraction,
    PrototypeChannelConfig,
    SystemChannelConfig,
)
from wlanchannel.errors import (
    ChannelConfigurationError,
    ChannelQueryError,
    NoChannelExistsError,
    SystemChannelError,
)
from wlanchannel.multi_frequency import MultiFrequencySystemChannel
from wlanchannel.signal import (
    ChannelStatistics,
    DeviceConfig,
    ReceiverInfo,
    WirelessSignal,
    WLANNode,
)
from wlanchannel.system_channel import (
    AbstractedSystemChannel,
    FullWaveformSystemChannel,
    SystemChannel,
)

__version__ = "1.0.0"
