"""
Path gain cache and interpolator.

Each link keeps a short, time-stamped history of fading-process blocks.
Requests for an arbitrary window of sample times pull new blocks from the
process only when the cached history ends before the last requested time.
Before a new block is appended, older history is trimmed to the one sample
preceding the request so memory stays bounded. Sequential requests without
an explicit start time continue one sample period after the previous request.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from wlanchannel.config import InterpolationMethod
from wlanchannel.errors import ChannelQueryError

logger = logging.getLogger(__name__)


def resolve_interpolation_method(method: Union[InterpolationMethod, str]) -> InterpolationMethod:
    """Accept an InterpolationMethod or its name."""
    if isinstance(method, InterpolationMethod):
        return method
    try:
        return InterpolationMethod(method)
    except ValueError:
        raise ChannelQueryError(
            f"Expected interpolation method 'closest', 'linear' or 'window', got {method!r}"
        ) from None


def interpolate_linear(times: np.ndarray, gains: np.ndarray, sample_times: np.ndarray) -> np.ndarray:
    """
    Linear interpolation of path gains along the time axis.

    Exact at cached sample times: a request equal to times[i] returns gains[i].
    """
    if len(times) == 1:
        return np.repeat(gains.astype(np.complex128), len(sample_times), axis=0)

    lo = np.searchsorted(times, sample_times, side="right") - 1
    lo = np.clip(lo, 0, len(times) - 2)
    hi = lo + 1
    frac = (sample_times - times[lo]) / (times[hi] - times[lo])
    frac = frac.reshape((-1,) + (1,) * (gains.ndim - 1))

    g = gains.astype(np.complex128)
    return g[lo] * (1 - frac) + g[hi] * frac


@dataclass
class PathGainCache:
    """Cached path gain history and query cursor for one link."""

    path_times: Optional[np.ndarray] = None     # (num_cached,)
    path_gains: Optional[np.ndarray] = None     # (num_cached, paths, tx, rx)
    last_path_time: float = -1.0
    path_time_offset: float = 0.0
    sample_time_offset: float = 0.0

    def clear(self):
        """Drop cached history and rewind the cursor."""
        self.path_times = None
        self.path_gains = None
        self.last_path_time = -1.0
        self.path_time_offset = 0.0
        self.sample_time_offset = 0.0

    @property
    def num_cached(self) -> int:
        return 0 if self.path_times is None else len(self.path_times)

    def _trim(self, earliest_needed: float):
        """Keep history from the sample before earliest_needed onwards."""
        if self.path_times is None:
            return
        later = np.flatnonzero(self.path_times >= earliest_needed)
        if later.size:
            keep = max(later[0] - 1, 0)
        else:
            # Keep the last sample so one precedes the next request
            keep = len(self.path_times) - 1
        self.path_times = self.path_times[keep:]
        self.path_gains = self.path_gains[keep:]

    def _extend(self, process, until: float, earliest_needed: float):
        """Pull process blocks until the cache covers time `until`."""
        while until > self.last_path_time:
            block = process.step()
            times = self.path_time_offset + np.arange(process.num_samples) / process.sample_rate
            self.last_path_time = float(times[-1])
            self.path_time_offset = self.last_path_time + 1 / process.sample_rate

            if self.path_times is None:
                self.path_times = times
                self.path_gains = block
            else:
                self._trim(earliest_needed)
                self.path_times = np.concatenate([self.path_times, times])
                self.path_gains = np.concatenate([self.path_gains, block], axis=0)

            logger.debug(
                f"Cached path gains up to t={self.last_path_time:.6f}s ({self.num_cached} samples)"
            )

    def query(
        self,
        process,
        sample_rate: float,
        num_samples: int,
        start_time: Optional[Union[float, Sequence[float]]] = None,
        method: Union[InterpolationMethod, str] = InterpolationMethod.LINEAR,
        swapped: bool = False
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Path gains for a window of sample times.

        Args:
            process: Fading process supplying new blocks
            sample_rate: Sample rate of the requested grid in Hz
            num_samples: Number of samples requested (2 for WINDOW)
            start_time: Start time in seconds; (start, end) for WINDOW;
                None continues from the previous request
            method: CLOSEST, LINEAR or WINDOW
            swapped: Return gains for the reverse direction

        Returns:
            Tuple of (path_gains, sample_times)
        """
        method = resolve_interpolation_method(method)

        if method is InterpolationMethod.WINDOW:
            if start_time is None or np.ndim(start_time) != 1 or len(start_time) != 2:
                raise ChannelQueryError("Window mode requires start_time=(start, end)")
            if num_samples != 2:
                raise ChannelQueryError(f"Window mode requires num_samples=2, got {num_samples}")
            window_start, window_end = float(start_time[0]), float(start_time[1])
            if window_end < window_start:
                raise ChannelQueryError(
                    f"Window end {window_end} precedes window start {window_start}"
                )
            sample_times = np.array([window_start, window_end])
        else:
            if num_samples < 1:
                raise ChannelQueryError(f"num_samples must be at least 1, got {num_samples}")
            if start_time is None:
                offset = self.sample_time_offset
            elif np.ndim(start_time) == 0:
                offset = float(start_time)
            else:
                raise ChannelQueryError(
                    f"Expected a scalar start time for {method.value} mode, got {start_time!r}"
                )
            sample_times = offset + np.arange(num_samples) / sample_rate

        if sample_times[0] < 0:
            raise ChannelQueryError(f"Sample times must be non-negative, got {sample_times[0]}")

        self.sample_time_offset = float(sample_times[-1] + 1 / sample_rate)

        self._extend(process, sample_times[-1], sample_times[0])

        gains = self.path_gains
        if swapped:
            # Generated for one direction; reverse swaps tx/rx antenna axes
            gains = np.swapaxes(gains, 2, 3)

        if sample_times[0] < self.path_times[0]:
            raise ChannelQueryError(
                f"Requested time {sample_times[0]} precedes retained path gain history "
                f"starting at {self.path_times[0]}"
            )

        if method is InterpolationMethod.CLOSEST:
            closest = np.argmin(np.abs(self.path_times[:, None] - sample_times[None, :]), axis=0)
            return gains[closest], self.path_times[closest]

        if method is InterpolationMethod.WINDOW:
            first = np.flatnonzero(self.path_times <= window_start)[-1]
            last = np.flatnonzero(self.path_times >= window_end)[0]
            return gains[first:last + 1], self.path_times[first:last + 1]

        return interpolate_linear(self.path_times, gains, sample_times), sample_times
