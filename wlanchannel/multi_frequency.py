#!/usr/bin/env python3
"""
Multi-Frequency System Channel

PURPOSE:
Single entry point registered with the network simulator. Groups nodes by
operating frequency, builds one system channel per frequency and routes
each transmitted packet to the channel matching its carrier frequency.

USAGE:
    from wlanchannel.multi_frequency import MultiFrequencySystemChannel

    channel = MultiFrequencySystemChannel(nodes, config=SystemChannelConfig(
        shadow_fading_std_db=5.0,
        path_loss_model="enterprise"
    ))
    simulator.add_channel_model(channel.channel_fcn)

    stats = channel.get_channel_statistics(tx_id=1, rx_id=3, sim_time=0.0)

CONSTRAINTS:
- All nodes use the same PHY abstraction (full waveform or abstracted)
- All devices use co-channel interference modeling
- Devices sharing a frequency share one channel bandwidth
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from wlanchannel.config import (
    AVAILABLE_BANDWIDTHS_HZ,
    DELAY_PROFILES,
    DelayProfile,
    InterferenceModeling,
    PrototypeChannelConfig,
    SystemChannelConfig,
)
from wlanchannel.errors import ChannelConfigurationError, ChannelQueryError, NoChannelExistsError
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
from wlanchannel.utils import format_band_and_channel, linear_to_db

logger = logging.getLogger(__name__)


class MultiFrequencySystemChannel:
    """
    System channel for a node population spanning several frequencies.

    Args:
        nodes: Node population
        prototype: Channel configuration used for every link; carrier
            frequency, sample rate and bandwidth are set per frequency
        config: Path loss and shadow fading configuration
    """

    def __init__(
        self,
        nodes: Sequence[WLANNode],
        prototype: Optional[PrototypeChannelConfig] = None,
        config: Optional[SystemChannelConfig] = None
    ):
        nodes = list(nodes)
        if not nodes:
            raise ChannelConfigurationError("At least one node is required")

        prototype = prototype or PrototypeChannelConfig()
        self.config = config or SystemChannelConfig()

        # Backend chosen once from the first node
        self.use_full_phy = nodes[0].phy_abstraction.is_full_waveform

        node_freqs: List[float] = []
        node_bws: List[float] = []
        for node in nodes:
            if node.phy_abstraction.is_full_waveform != self.use_full_phy:
                raise ChannelConfigurationError(
                    "All nodes must be configured to use the same PHY abstraction method"
                )
            for device in node.devices:
                if device.interference_modeling is not InterferenceModeling.CO_CHANNEL:
                    raise ChannelConfigurationError(
                        'All devices must be configured to use "co-channel" interference modeling'
                    )
                node_freqs.append(device.center_frequency)
                node_bws.append(device.channel_bandwidth_hz)

        self.node_ids = [node.id for node in nodes]
        if len(set(self.node_ids)) != len(self.node_ids):
            raise ChannelConfigurationError(f"Node IDs must be unique, got {self.node_ids}")
        self._node_index: Dict[int, int] = {node_id: i for i, node_id in enumerate(self.node_ids)}

        unique_freqs = sorted(set(node_freqs))
        bandwidths = []
        for freq in unique_freqs:
            bw_for_freq = {bw for f, bw in zip(node_freqs, node_bws) if f == freq}
            if len(bw_for_freq) > 1:
                raise ChannelConfigurationError(
                    "All devices using the same frequency must use the same bandwidth "
                    f"({freq / 1e9:.3f} GHz has {sorted(bw / 1e6 for bw in bw_for_freq)} MHz)"
                )
            bw = bw_for_freq.pop()
            if bw not in AVAILABLE_BANDWIDTHS_HZ:
                raise ChannelConfigurationError(
                    f"Unsupported channel bandwidth {bw / 1e6:g} MHz"
                )
            bandwidths.append(bw)

        rng = np.random.default_rng(self.config.seed)
        channel_cls = FullWaveformSystemChannel if self.use_full_phy else AbstractedSystemChannel

        self.channels: List[SystemChannel] = []
        for freq, bw in zip(unique_freqs, bandwidths):
            num_antennas = []
            for node in nodes:
                device = node.device_for_frequency(freq)
                num_antennas.append(None if device is None else device.num_transmit_antennas)

            freq_prototype = replace(
                prototype,
                carrier_frequency_hz=freq,
                sample_rate_hz=bw,
                channel_bandwidth_hz=bw
            )
            self.channels.append(channel_cls(freq_prototype, num_antennas, self.config, rng))

        logger.info(
            f"MultiFrequencySystemChannel initialized: {len(nodes)} nodes, "
            f"{len(self.channels)} frequencies, "
            f"{'full waveform' if self.use_full_phy else 'abstracted PHY'}"
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def center_frequencies(self) -> List[float]:
        return [channel.center_frequency for channel in self.channels]

    def node_index(self, node_id: int) -> int:
        """Local index for a global node ID."""
        try:
            return self._node_index[node_id]
        except KeyError:
            raise ChannelQueryError(f"Unknown node ID {node_id}") from None

    def node_id(self, index: int) -> int:
        """Global node ID for a local index."""
        return self.node_ids[index]

    def get_channel(self, center_frequency: Optional[float] = None) -> SystemChannel:
        """System channel for a carrier frequency (optional with one frequency)."""
        if center_frequency is None:
            if len(self.channels) != 1:
                raise ChannelQueryError(
                    "center_frequency is required when nodes operate on several frequencies"
                )
            return self.channels[0]
        for channel in self.channels:
            if math.isclose(channel.center_frequency, center_frequency, rel_tol=1e-9):
                return channel
        raise ChannelQueryError(f"No channel at {center_frequency / 1e9:.4f} GHz")

    def link_node_ids(self, center_frequency: Optional[float] = None) -> List[Tuple[int, int]]:
        """Global node IDs of each link on a frequency."""
        channel = self.get_channel(center_frequency)
        return [(self.node_id(link.node1), self.node_id(link.node2)) for link in channel.links]

    # ------------------------------------------------------------------
    # Simulator interface
    # ------------------------------------------------------------------

    @property
    def channel_fcn(self) -> Callable[[ReceiverInfo, WirelessSignal], WirelessSignal]:
        """Impairment callback (rx_info, signal) -> impaired signal."""
        return lambda rx_info, signal: self.impair_signal(signal, rx_info)

    def impair_signal(self, signal: WirelessSignal, rx_info: ReceiverInfo) -> WirelessSignal:
        """
        Apply path loss, shadow fading and frequency-selective fading.

        Args:
            signal: Transmitted signal with global transmitter ID
            rx_info: Receiver with global node ID

        Returns:
            Impaired copy of the signal
        """
        node_tx_id = signal.transmitter_id
        channel = self.get_channel(signal.center_frequency)

        local_signal = replace(signal, transmitter_id=self.node_index(node_tx_id))
        local_rx = replace(rx_info, id=self.node_index(rx_info.id))

        try:
            impaired = channel.impair(local_signal, local_rx)
        except NoChannelExistsError as err:
            raise NoChannelExistsError(node_tx_id, rx_info.id) from err

        # Restore original transmitter node ID
        return replace(impaired, transmitter_id=node_tx_id)

    def get_channel_statistics(
        self,
        tx_id: int,
        rx_id: int,
        sim_time: float,
        center_frequency: Optional[float] = None
    ) -> ChannelStatistics:
        """
        Channel statistics between two nodes at a simulation time.

        Raises:
            NoChannelExistsError: tx_id == rx_id or a node is not on the frequency
            ChannelQueryError: Unknown node ID or frequency
        """
        channel = self.get_channel(center_frequency)
        try:
            return channel.get_channel_statistics(
                self.node_index(tx_id), self.node_index(rx_id), sim_time
            )
        except NoChannelExistsError as err:
            raise NoChannelExistsError(tx_id, rx_id) from err

    def reset(
        self,
        tx_id: Optional[int] = None,
        rx_id: Optional[int] = None,
        center_frequency: Optional[float] = None
    ):
        """Reset every link, or one link on one frequency."""
        if tx_id is None and rx_id is None:
            channels = self.channels if center_frequency is None else [self.get_channel(center_frequency)]
            for channel in channels:
                channel.reset()
            return
        if tx_id is None or rx_id is None:
            raise ChannelQueryError("Both tx_id and rx_id are required to reset a single link")
        self.get_channel(center_frequency).reset(self.node_index(tx_id), self.node_index(rx_id))


# ============================================================================
# CLI INTERFACE
# ============================================================================


def main():
    """Command-line interface for the system channel."""
    import argparse
    import json

    parser = argparse.ArgumentParser(
        description="WLAN System Channel - inspect links between nodes"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # ========================================
    # Demo command
    # ========================================
    demo_parser = subparsers.add_parser("demo", help="Two-node link demonstration")
    demo_parser.add_argument(
        "--distance",
        type=float,
        default=20.0,
        help="Distance between nodes in meters"
    )
    demo_parser.add_argument(
        "--band",
        type=float,
        default=5.0,
        help="Band in GHz (2.4, 5 or 6)"
    )
    demo_parser.add_argument(
        "--channel",
        type=int,
        default=36,
        help="Channel number"
    )
    demo_parser.add_argument(
        "--speed",
        type=float,
        default=0.0,
        help="Environmental speed in km/h"
    )
    demo_parser.add_argument(
        "--path-loss-model",
        choices=["free-space", "residential", "enterprise"],
        default="free-space",
        help="Path loss model"
    )
    demo_parser.add_argument(
        "--shadow-fading",
        type=float,
        default=0.0,
        help="Shadow fading standard deviation in dB"
    )
    demo_parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducibility"
    )
    demo_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format"
    )

    # ========================================
    # Profiles command
    # ========================================
    profiles_parser = subparsers.add_parser("profiles", help="Show delay profiles")
    profiles_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format"
    )

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s'
    )

    if args.command == "demo":
        device = DeviceConfig(band_and_channel=(args.band, args.channel))
        nodes = [
            WLANNode(id=1, position=(0.0, 0.0, 0.0), devices=[device]),
            WLANNode(id=2, position=(args.distance, 0.0, 0.0), devices=[device]),
        ]
        logger.info(f"Two nodes on {format_band_and_channel(device.band_and_channel)}")

        system_channel = MultiFrequencySystemChannel(
            nodes,
            prototype=PrototypeChannelConfig(environmental_speed_kmh=args.speed),
            config=SystemChannelConfig(
                shadow_fading_std_db=args.shadow_fading,
                path_loss_model=args.path_loss_model,
                seed=args.seed
            )
        )
        channel = system_channel.get_channel()
        signal = WirelessSignal(
            transmitter_id=1,
            transmitter_position=nodes[0].position,
            start_time=0.0,
            duration=100e-6,
            center_frequency=device.center_frequency,
            power=20.0
        )
        rx_info = nodes[1].receiver_info()
        impaired = system_channel.impair_signal(signal, rx_info)
        stats = impaired.metadata["channel"]
        path_power = float(np.sum(np.abs(stats.path_gains) ** 2))

        result = {
            "center_frequency_hz": channel.center_frequency,
            "distance_m": args.distance,
            "path_loss_db": channel.get_path_loss(signal, rx_info),
            "shadow_fading_db": channel.get_shadow_fading(
                system_channel.node_index(1), system_channel.node_index(2)
            ),
            "rx_power_dbm": impaired.power,
            "num_paths": int(stats.path_gains.shape[1]),
            "path_gain_power_db": float(linear_to_db(path_power)),
            "sample_time_s": float(stats.sample_times[0]),
        }

        if args.format == "json":
            print(json.dumps(result, indent=2))
        else:
            print("Two-node link")
            print("=" * 50)
            for key, value in result.items():
                print(f"  {key}: {value}")

    elif args.command == "profiles":
        profiles_info = {}
        for profile in DelayProfile:
            taps = DELAY_PROFILES[profile]
            profiles_info[profile.value] = {
                "num_paths": len(taps),
                "delays_us": [delay for delay, _ in taps],
                "powers_db": [power for _, power in taps],
            }

        if args.format == "json":
            print(json.dumps(profiles_info, indent=2))
        else:
            print("Delay Profiles")
            print("=" * 70)
            for name, info in profiles_info.items():
                print(f"\n{name}:")
                for key, value in info.items():
                    print(f"  {key}: {value}")

    else:
        parser.print_help()
        return 1

    return 0


if __name__ == "__main__":
    import sys
    sys.exit(main())
