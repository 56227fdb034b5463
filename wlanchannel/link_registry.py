"""
Link registry for one frequency.

Enumerates every unordered node pair, owns one reciprocal fading process per
pair where both nodes operate on the frequency, and maps (tx, rx) queries
onto the canonical lower-index -> higher-index direction.
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from wlanchannel.channel_filter import ChannelFilter
from wlanchannel.config import PrototypeChannelConfig
from wlanchannel.errors import ChannelConfigurationError, ChannelQueryError, NoChannelExistsError
from wlanchannel.fading import TGaxFadingProcess, derive_sample_rate, samples_per_quantum
from wlanchannel.path_gains import PathGainCache

logger = logging.getLogger(__name__)


def normalize_antenna_count(count) -> Optional[int]:
    """Map None/NaN to None (node absent), otherwise a positive int."""
    if count is None:
        return None
    if isinstance(count, numbers.Real) and math.isnan(count):
        return None
    if int(count) != count or count < 1:
        raise ChannelConfigurationError(f"Antenna count must be a positive integer, got {count}")
    return int(count)


@dataclass
class Link:
    """Channel between two nodes, generated in the node1 -> node2 direction."""

    node1: int
    node2: int
    num_tx: int
    num_rx: int
    sample_rate: float                  # Waveform sample rate (Hz)
    process: TGaxFadingProcess
    shadow_fading_db: float = 0.0
    cache: PathGainCache = field(default_factory=PathGainCache)
    normalize_outputs: bool = True

    # Computed on first use, shared by both directions
    path_delays: Optional[np.ndarray] = None
    path_filters: Optional[np.ndarray] = None
    filter_delay: Optional[int] = None
    # One stateful filter per direction: {swapped: ChannelFilter}
    filters: Dict[bool, ChannelFilter] = field(default_factory=dict)

    def clear(self):
        """Drop cached gains, cursor, delays and filters."""
        self.cache.clear()
        self.path_delays = None
        self.path_filters = None
        self.filter_delay = None
        self.filters = {}

    def get_path_delays(self) -> np.ndarray:
        if self.path_delays is None:
            self.path_delays = self.process.path_delays.copy()
        return self.path_delays

    def get_path_filters(self) -> Tuple[np.ndarray, np.ndarray]:
        """Path filter coefficients and path delays at the waveform sample rate."""
        if self.path_filters is None:
            filter_info = ChannelFilter(
                self.get_path_delays(), self.sample_rate, self.normalize_outputs
            ).info()
            self.path_filters = filter_info["channel_filter_coefficients"]
            self.filter_delay = filter_info["channel_filter_delay"]
        return self.path_filters, self.path_delays

    def get_channel_filter(self, swapped: bool) -> ChannelFilter:
        """Stateful filter for one direction of the link."""
        if swapped not in self.filters:
            self.filters[swapped] = ChannelFilter(
                self.get_path_delays(), self.sample_rate, self.normalize_outputs
            )
            logger.debug(
                f"Created channel filter for link {self.node1}<->{self.node2} "
                f"({'reverse' if swapped else 'forward'})"
            )
        return self.filters[swapped]


class LinkRegistry:
    """
    All links of one frequency.

    Args:
        prototype: Channel configuration cloned for every link
        num_antennas: Antenna count per node; None or NaN if the node does
            not operate on this frequency
        shadow_fading_std_db: Shadow fading standard deviation (dB)
        rng: Random generator for fading and shadowing
    """

    def __init__(
        self,
        prototype: PrototypeChannelConfig,
        num_antennas: Sequence[Optional[int]],
        shadow_fading_std_db: float = 0.0,
        rng: Optional[np.random.Generator] = None
    ):
        self.prototype = prototype
        self.num_antennas = [normalize_antenna_count(n) for n in num_antennas]
        self.shadow_fading_std_db = shadow_fading_std_db
        self.rng = rng if rng is not None else np.random.default_rng()

        self.links: List[Link] = []
        self._index: Dict[Tuple[int, int], int] = {}

        for node1, node2 in combinations(range(len(self.num_antennas)), 2):
            num_tx = self.num_antennas[node1]
            num_rx = self.num_antennas[node2]
            if num_tx is None or num_rx is None:
                # No link
                continue

            process = TGaxFadingProcess(prototype, num_tx, num_rx, self.rng)
            link = Link(
                node1=node1,
                node2=node2,
                num_tx=num_tx,
                num_rx=num_rx,
                sample_rate=prototype.sample_rate_hz,
                process=process,
                shadow_fading_db=self.shadow_fading_std_db * self.rng.standard_normal(),
                normalize_outputs=prototype.normalize_channel_outputs,
            )
            self._index[(node1, node2)] = len(self.links)
            self.links.append(link)

        logger.debug(
            f"Created {len(self.links)} links for {len(self.num_antennas)} nodes "
            f"at {prototype.carrier_frequency_hz / 1e9:.3f} GHz"
        )

        self.reset()

    def __len__(self) -> int:
        return len(self.links)

    def __iter__(self) -> Iterator[Link]:
        return iter(self.links)

    @property
    def num_nodes(self) -> int:
        return len(self.num_antennas)

    def lookup(self, tx: int, rx: int) -> Tuple[int, bool]:
        """
        Link index for a (tx, rx) pair.

        Returns:
            Tuple of (link_index, swapped); swapped is True when the query
            runs against the generated direction and antenna axes must be
            permuted.
        """
        swapped = tx > rx
        key = (rx, tx) if swapped else (tx, rx)
        if key not in self._index:
            raise NoChannelExistsError(tx, rx)
        return self._index[key], swapped

    def get(self, tx: int, rx: int) -> Tuple[Link, bool]:
        idx, swapped = self.lookup(tx, rx)
        return self.links[idx], swapped

    def reset(self, tx: Optional[int] = None, rx: Optional[int] = None):
        """
        Reset all links, or the link between tx and rx.

        Clears cached gains, re-draws shadow fading when enabled and sets
        each fading process to the lowest sample rate the Doppler allows.
        """
        if tx is not None or rx is not None:
            if tx is None or rx is None:
                raise ChannelQueryError("Both tx and rx are required to reset a single link")
            links = [self.get(tx, rx)[0]]
        else:
            links = self.links

        for link in links:
            link.clear()

            if self.shadow_fading_std_db > 0:
                link.shadow_fading_db = self.shadow_fading_std_db * self.rng.standard_normal()

            process = link.process
            process.sample_rate = derive_sample_rate(
                self.prototype.carrier_frequency_hz,
                self.prototype.environmental_speed_kmh
            )
            process.num_samples = samples_per_quantum(process.sample_rate)
            process.reset()
