"""
Multipath channel filter.

Implements a tapped delay line: each path delay is realized by a
fractional-delay FIR row, and time-varying path gains weight the filtered
paths per sample. Convolution memory is kept between calls so a waveform
can be filtered in pieces; reset() drops it.
"""

import logging
from typing import Any, Dict

import numpy as np

logger = logging.getLogger(__name__)


class ChannelFilter:
    """
    Fractional-delay channel filter for one link direction.

    Filtering follows
        y[n, rx] = sum_p sum_tx g[n, p, tx, rx] * sum_k h[p, k] * x[n - k, tx]
    """

    # Half span of the windowed sinc used for fractional delays
    FRACTIONAL_DELAY_SPAN = 7
    # Delays within this many samples of an integer are treated as integer
    INTEGER_DELAY_TOLERANCE = 1e-6

    def __init__(
        self,
        path_delays: np.ndarray,
        sample_rate: float,
        normalize_outputs: bool = True
    ):
        """
        Initialize channel filter.

        Args:
            path_delays: Path delays in seconds
            sample_rate: Waveform sample rate in Hz
            normalize_outputs: Scale outputs by 1/sqrt(num_rx)
        """
        self.path_delays = np.asarray(path_delays, dtype=float)
        self.sample_rate = sample_rate
        self.normalize_outputs = normalize_outputs

        self.coefficients, self.filter_delay = self._compute_filter_coefficients()
        self._history = None

    @property
    def filter_length(self) -> int:
        return self.coefficients.shape[1]

    def _compute_filter_coefficients(self):
        """Compute FIR coefficients (num_paths, filter_length) and filter delay."""
        delays = self.path_delays * self.sample_rate  # In samples

        if np.all(np.abs(delays - np.round(delays)) < self.INTEGER_DELAY_TOLERANCE):
            integer_delays = np.round(delays).astype(int)
            h = np.zeros((len(delays), integer_delays.max() + 1))
            h[np.arange(len(delays)), integer_delays] = 1.0
            return h, 0

        span = self.FRACTIONAL_DELAY_SPAN
        length = int(np.floor(delays.max())) + 2 * span + 2
        n = np.arange(length)

        # Raised-cosine windowed sinc centred on each delay
        x = n[None, :] - span - delays[:, None]
        window = np.where(np.abs(x) < span + 1, 0.5 * (1 + np.cos(np.pi * x / (span + 1))), 0.0)
        h = np.sinc(x) * window

        # Unity gain at DC
        h = h / np.sum(h, axis=1, keepdims=True)
        return h, span

    def reset(self):
        """Clear convolution memory."""
        self._history = None

    def __call__(self, x: np.ndarray, path_gains: np.ndarray) -> np.ndarray:
        """
        Filter a waveform.

        Args:
            x: Waveform (num_samples, num_tx)
            path_gains: Path gains (num_samples, num_paths, num_tx, num_rx)

        Returns:
            Filtered waveform (num_samples, num_rx)
        """
        x = np.asarray(x)
        num_samples, num_tx = x.shape
        memory = self.filter_length - 1

        if self._history is None or self._history.shape[1] != num_tx:
            self._history = np.zeros((memory, num_tx), dtype=np.complex128)

        xx = np.concatenate([self._history, x.astype(np.complex128)], axis=0)

        # Per path filtered input (num_samples, num_paths, num_tx)
        filtered = np.zeros((num_samples, self.coefficients.shape[0], num_tx), dtype=np.complex128)
        for k in range(self.filter_length):
            segment = xx[memory - k:memory - k + num_samples]
            filtered += self.coefficients[:, k][None, :, None] * segment[:, None, :]

        self._history = xx[xx.shape[0] - memory:]

        y = np.einsum("npt,nptr->nr", filtered, path_gains)
        if self.normalize_outputs:
            y = y / np.sqrt(path_gains.shape[-1])
        return y

    def info(self) -> Dict[str, Any]:
        """Filter coefficients and implementation delay."""
        return {
            "channel_filter_coefficients": self.coefficients.copy(),
            "channel_filter_delay": self.filter_delay,
        }
