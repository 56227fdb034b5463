#!/usr/bin/env python3
"""
WLAN System Channel (one frequency)

PURPOSE:
Impairs packets exchanged between nodes sharing one carrier frequency.
Every node pair has a reciprocal fading channel whose path gains are
generated lazily at a Doppler-limited rate and interpolated to the
waveform sample rate on demand.

IMPAIRMENT PIPELINE:
1. Path Loss - free-space, TGax residential/enterprise or custom
2. Shadow Fading - log-normal, fixed per link until reset
3. Frequency-selective fading:
   - Full waveform: tapped delay line filtering of the samples
   - Abstracted PHY: channel statistics attached to the signal metadata

USAGE:
    from wlanchannel.system_channel import FullWaveformSystemChannel

    channel = FullWaveformSystemChannel(prototype, num_antennas=[2, 1, 2])
    gains, times = channel.get_path_gains(0, 2, num_samples=100)
    impaired = channel.impair(signal, rx_info)

NOTES:
- Node identifiers here are local indices 0..N-1; the multi-frequency
  coordinator translates global node IDs
- Not safe for concurrent use on the same link
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from wlanchannel.config import (
    InterpolationMethod,
    PrototypeChannelConfig,
    SystemChannelConfig,
)
from wlanchannel.errors import ChannelQueryError
from wlanchannel.link_registry import Link, LinkRegistry
from wlanchannel.path_loss import PathLossCalculator
from wlanchannel.signal import ChannelStatistics, ReceiverInfo, WirelessSignal
from wlanchannel.utils import db_to_magnitude

logger = logging.getLogger(__name__)


# ============================================================================
# BASE CHANNEL
# ============================================================================


class SystemChannel:
    """
    Channel manager for all links on one frequency.

    Subclasses decide how frequency-selective fading is applied.
    """

    # Whether signal samples are scaled and filtered
    FULL_WAVEFORM = False

    def __init__(
        self,
        prototype: PrototypeChannelConfig,
        num_antennas: Sequence[Optional[int]],
        config: Optional[SystemChannelConfig] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initialize system channel.

        Args:
            prototype: Channel configuration used for every link
            num_antennas: Antenna count per node, None if the node does not
                operate on this frequency
            config: Path loss and shadow fading configuration
            rng: Random generator (seeded from config if None)
        """
        self.prototype = prototype
        self.config = config or SystemChannelConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)

        self.registry = LinkRegistry(
            prototype,
            num_antennas,
            shadow_fading_std_db=self.config.shadow_fading_std_db,
            rng=self.rng
        )
        self.path_loss_calc = PathLossCalculator(self.config, prototype.carrier_frequency_hz)

        logger.info(
            f"{type(self).__name__} initialized at {self.center_frequency / 1e9:.3f} GHz "
            f"with {len(self.registry)} links, path loss={self.config.path_loss_model.value}"
        )

    @property
    def center_frequency(self) -> float:
        return self.prototype.carrier_frequency_hz

    @property
    def links(self):
        return self.registry.links

    # ------------------------------------------------------------------
    # Link state
    # ------------------------------------------------------------------

    def reset(self, tx: Optional[int] = None, rx: Optional[int] = None):
        """Reset all links, or the link between tx and rx."""
        self.registry.reset(tx, rx)

    def initialize(self):
        """Reset all links and generate the first path gains at t=0."""
        self.reset()
        for link in self.links:
            self.get_path_gains(link.node1, link.node2, 1, 0.0, InterpolationMethod.CLOSEST)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_path_gains(
        self,
        tx: int,
        rx: int,
        num_samples: int,
        start_time: Optional[Union[float, Sequence[float]]] = None,
        method: Union[InterpolationMethod, str] = InterpolationMethod.LINEAR
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Path gains between tx and rx.

        Args:
            tx: Transmitter index
            rx: Receiver index
            num_samples: Number of samples at the waveform sample rate
                (2 in window mode)
            start_time: Start time in seconds, (start, end) in window mode,
                None to continue after the previous request
            method: 'closest', 'linear' (default) or 'window'

        Returns:
            Tuple of (path_gains, sample_times); path gains are
            (num_times, num_paths, num_tx, num_rx) in the queried direction
        """
        link, swapped = self.registry.get(tx, rx)
        return link.cache.query(
            link.process,
            link.sample_rate,
            num_samples,
            start_time=start_time,
            method=method,
            swapped=swapped
        )

    def get_path_delays(self, tx: int, rx: int) -> np.ndarray:
        """Path delays in seconds between tx and rx."""
        link, _ = self.registry.get(tx, rx)
        return link.get_path_delays()

    def get_path_filters(self, tx: int, rx: int) -> Tuple[np.ndarray, np.ndarray]:
        """Path filters and path delays between tx and rx."""
        link, _ = self.registry.get(tx, rx)
        return link.get_path_filters()

    def get_shadow_fading(self, tx: int, rx: int) -> float:
        """Shadow fading in dB between tx and rx."""
        link, _ = self.registry.get(tx, rx)
        return link.shadow_fading_db

    def get_path_loss(self, signal: WirelessSignal, rx_info: ReceiverInfo) -> float:
        """Path loss in dB for a signal at a receiver."""
        return self.path_loss_calc.get_path_loss(signal, rx_info)

    def get_channel_statistics(self, tx: int, rx: int, sim_time: float) -> ChannelStatistics:
        """
        Channel statistics between tx and rx at a simulation time.

        Repeated calls for the same pair and time return the same path gains
        until the link is reset.
        """
        path_gains, sample_times = self.get_path_gains(
            tx, rx, 1, sim_time, InterpolationMethod.CLOSEST
        )
        path_filters, path_delays = self.get_path_filters(tx, rx)
        return ChannelStatistics(
            path_gains=path_gains,
            path_filters=path_filters,
            path_delays=path_delays,
            sample_times=sample_times
        )

    def get_channel_statistics_for_signal(
        self,
        signal: WirelessSignal,
        rx_info: ReceiverInfo
    ) -> ChannelStatistics:
        """Channel statistics closest to the midpoint of a packet."""
        return self.get_channel_statistics(signal.transmitter_id, rx_info.id, signal.midpoint_time)

    # ------------------------------------------------------------------
    # Impairments
    # ------------------------------------------------------------------

    def apply_path_loss(self, signal: WirelessSignal, rx_info: ReceiverInfo) -> WirelessSignal:
        """Subtract path loss from the signal power (and scale samples)."""
        pl = self.get_path_loss(signal, rx_info)
        changes: Dict[str, Any] = {"power": signal.power - pl}
        if self.FULL_WAVEFORM and signal.data is not None:
            changes["data"] = signal.data * db_to_magnitude(-pl)
        return replace(signal, **changes)

    def apply_shadow_fading(self, signal: WirelessSignal, rx_info: ReceiverInfo) -> WirelessSignal:
        """Add the link shadow fading to the signal power (and scale samples)."""
        shadow = self.get_shadow_fading(signal.transmitter_id, rx_info.id)
        changes: Dict[str, Any] = {"power": signal.power + shadow}
        if self.FULL_WAVEFORM and signal.data is not None:
            changes["data"] = signal.data * db_to_magnitude(shadow)
        return replace(signal, **changes)

    def apply_fading(self, signal: WirelessSignal, rx_info: ReceiverInfo) -> WirelessSignal:
        raise NotImplementedError

    def impair(self, signal: WirelessSignal, rx_info: ReceiverInfo) -> WirelessSignal:
        """Path loss, shadow fading, then frequency-selective fading."""
        signal = self.apply_path_loss(signal, rx_info)
        signal = self.apply_shadow_fading(signal, rx_info)
        return self.apply_fading(signal, rx_info)


# ============================================================================
# FULL WAVEFORM CHANNEL
# ============================================================================


class FullWaveformSystemChannel(SystemChannel):
    """
    System channel filtering waveform samples through each link.
    """

    FULL_WAVEFORM = True

    @staticmethod
    def _as_matrix(x: np.ndarray) -> np.ndarray:
        x = np.asarray(x)
        return x.reshape(-1, 1) if x.ndim == 1 else x

    @staticmethod
    def _check_antennas(link: Link, swapped: bool, x: np.ndarray):
        num_tx = link.num_rx if swapped else link.num_tx
        if x.shape[1] != num_tx:
            raise ChannelQueryError(
                f"Waveform has {x.shape[1]} transmit antennas, link expects {num_tx}"
            )

    def apply_channel_to_waveform(
        self,
        x: np.ndarray,
        tx: int,
        rx: int,
        time_offset: Optional[float] = None
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Filter a waveform through the channel between tx and rx.

        Args:
            x: Waveform (num_samples, num_tx)
            tx: Transmitter index
            rx: Receiver index
            time_offset: Time of the first sample in seconds. When given the
                filter memory is cleared; when omitted filtering continues
                from the previous call.

        Returns:
            Tuple of (filtered_waveform, path_gains)
        """
        link, swapped = self.registry.get(tx, rx)
        x = self._as_matrix(x)
        self._check_antennas(link, swapped, x)

        chan_filt = link.get_channel_filter(swapped)
        if time_offset is not None:
            chan_filt.reset()

        path_gains, _ = self.get_path_gains(tx, rx, x.shape[0], time_offset)
        return chan_filt(x, path_gains), path_gains

    def apply_channel_to_signal(
        self,
        signal: WirelessSignal,
        rx_info: ReceiverInfo
    ) -> Tuple[WirelessSignal, np.ndarray, Dict[str, Any]]:
        """
        Filter the samples of a signal through the channel to a receiver.

        The waveform is padded to flush the filter, the implementation
        delay is removed and the duration is extended by the remaining
        transient.

        Returns:
            Tuple of (impaired_signal, path_gains, channel_info)
        """
        if signal.data is None:
            raise ChannelQueryError("Full waveform channel requires signal data")

        link, swapped = self.registry.get(signal.transmitter_id, rx_info.id)
        data = self._as_matrix(signal.data)
        self._check_antennas(link, swapped, data)

        chan_filt = link.get_channel_filter(swapped)
        chan_info = chan_filt.info()
        filter_len = chan_filt.filter_length
        filter_delay = chan_filt.filter_delay

        # Trailing zeros flush the channel delay
        num_pad = filter_len - 1
        data_pad = np.concatenate([data, np.zeros((num_pad, data.shape[1]), dtype=data.dtype)])

        path_gains, _ = self.get_path_gains(
            signal.transmitter_id, rx_info.id, data_pad.shape[0], signal.start_time
        )

        # One packet at a time; no state from an earlier packet
        chan_filt.reset()
        filtered = chan_filt(data_pad, path_gains)

        num_transient = filter_len - 1 - filter_delay
        impaired = replace(
            signal,
            data=filtered[filter_delay:],
            duration=signal.duration + num_transient / chan_filt.sample_rate
        )
        return impaired, path_gains[filter_delay:], chan_info

    def apply_fading(self, signal: WirelessSignal, rx_info: ReceiverInfo) -> WirelessSignal:
        impaired, _, _ = self.apply_channel_to_signal(signal, rx_info)
        return impaired


# ============================================================================
# ABSTRACTED PHY CHANNEL
# ============================================================================


class AbstractedSystemChannel(SystemChannel):
    """
    System channel for abstracted PHY: no filtering, statistics only.
    """

    FULL_WAVEFORM = False

    def apply_fading(self, signal: WirelessSignal, rx_info: ReceiverInfo) -> WirelessSignal:
        stats = self.get_channel_statistics_for_signal(signal, rx_info)
        metadata = dict(signal.metadata)
        metadata["channel"] = stats
        return replace(signal, metadata=metadata)
