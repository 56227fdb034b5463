"""
Unit tests for the path gain cache and interpolator.
"""

import numpy as np
import pytest

from wlanchannel.config import InterpolationMethod
from wlanchannel.errors import ChannelQueryError
from wlanchannel.fading import TGaxFadingProcess
from wlanchannel.path_gains import PathGainCache, interpolate_linear, resolve_interpolation_method

FS = 20e6


@pytest.fixture
def process(mobile_prototype):
    """Mobile fading process with 2x1 antennas."""
    return TGaxFadingProcess(mobile_prototype, 2, 1, np.random.default_rng(11))


class TestInterpolateLinear:
    """Test suite for linear interpolation."""

    def test_midpoint(self):
        """Test halfway between two samples."""
        times = np.array([0.0, 1.0])
        gains = np.array([0.0, 2.0 + 2.0j]).reshape(2, 1, 1, 1)

        result = interpolate_linear(times, gains, np.array([0.5]))

        assert result[0, 0, 0, 0] == pytest.approx(1.0 + 1.0j)

    def test_exact_at_nodes(self):
        """Test interpolation at cached times returns cached values."""
        rng = np.random.default_rng(1)
        times = np.array([0.0, 0.1, 0.2, 0.3])
        gains = rng.standard_normal((4, 2, 1, 1)) + 1j * rng.standard_normal((4, 2, 1, 1))

        result = interpolate_linear(times, gains, times)

        np.testing.assert_array_equal(result, gains)

    def test_single_cached_sample(self):
        """Test a single cached sample is held."""
        gains = np.array([1.0 + 0j]).reshape(1, 1, 1, 1)
        result = interpolate_linear(np.array([0.0]), gains, np.array([0.0, 0.0]))
        assert result.shape == (2, 1, 1, 1)


class TestResolveInterpolationMethod:
    """Test suite for interpolation method names."""

    def test_names(self):
        """Test method names map to enum members."""
        assert resolve_interpolation_method("closest") is InterpolationMethod.CLOSEST
        assert resolve_interpolation_method(InterpolationMethod.WINDOW) is InterpolationMethod.WINDOW

    def test_invalid_name(self):
        """Test unknown method raises error."""
        with pytest.raises(ChannelQueryError, match="interpolation method"):
            resolve_interpolation_method("cubic")


class TestPathGainCache:
    """Test suite for PathGainCache queries."""

    def test_cold_start(self, process):
        """Test a query at t=0 with an empty cache generates the first block."""
        cache = PathGainCache()
        assert cache.num_cached == 0

        gains, times = cache.query(process, FS, 10, start_time=0.0)

        assert gains.shape == (10, 5, 2, 1)
        assert times[0] == 0.0
        assert cache.num_cached == process.num_samples

    def test_continuity(self, process):
        """Test consecutive queries tile the timeline without gap or overlap."""
        cache = PathGainCache()
        _, first = cache.query(process, FS, 100, start_time=0.0)
        _, second = cache.query(process, FS, 100)
        _, third = cache.query(process, FS, 1)

        assert second[0] == first[-1] + 1 / FS
        assert third[0] == second[-1] + 1 / FS

    def test_continuation_matches_single_query(self, mobile_prototype):
        """Test two halves match one query of the whole window."""
        a = TGaxFadingProcess(mobile_prototype, 1, 1, np.random.default_rng(5))
        b = TGaxFadingProcess(mobile_prototype, 1, 1, np.random.default_rng(5))
        cache_a, cache_b = PathGainCache(), PathGainCache()

        g1, _ = cache_a.query(a, FS, 500, start_time=0.0)
        g2, _ = cache_a.query(a, FS, 500)
        whole, _ = cache_b.query(b, FS, 1000, start_time=0.0)

        np.testing.assert_allclose(np.concatenate([g1, g2]), whole, rtol=1e-9, atol=1e-12)

    def test_idempotent_at_cached_times(self, process):
        """Test linear query at a cached sample time returns that sample."""
        cache = PathGainCache()
        cache.query(process, FS, 10, start_time=0.0)
        node_time = cache.path_times[5]
        node_gain = cache.path_gains[5].copy()

        gains, times = cache.query(process, FS, 1, start_time=node_time)

        assert times[0] == node_time
        np.testing.assert_array_equal(gains[0], node_gain)

    def test_repeated_query_identical(self, process):
        """Test querying the same window twice is bit-identical."""
        cache = PathGainCache()
        first, _ = cache.query(process, FS, 64, start_time=2e-3)
        second, _ = cache.query(process, FS, 64, start_time=2e-3)

        np.testing.assert_array_equal(first, second)

    def test_trimming(self, process):
        """Test pulling a block drops history older than the sample before the request."""
        cache = PathGainCache()
        previous_first = -1.0
        for start in (0.0, 1e-3, 4.5e-3, 12e-3, 12.5e-3, 31e-3):
            previous_last = cache.last_path_time
            cache.query(process, FS, 50, start_time=start)

            if 0 <= previous_last < cache.last_path_time:
                older = cache.path_times[cache.path_times <= previous_last]
                assert np.sum(older < start) <= 1
            assert cache.path_times[0] <= start
            assert cache.path_times[0] >= previous_first
            assert np.all(np.diff(cache.path_times) > 0)
            assert cache.num_cached <= 3 * process.num_samples
            previous_first = cache.path_times[0]

    def test_extends_across_blocks(self, process):
        """Test a request beyond the cached history pulls more blocks."""
        cache = PathGainCache()
        cache.query(process, FS, 10, start_time=25e-3)

        assert cache.last_path_time >= 25e-3
        assert cache.path_times[-1] == cache.last_path_time

    def test_request_before_history(self, process):
        """Test queries before trimmed history raise error in every mode."""
        cache = PathGainCache()
        cache.query(process, FS, 10, start_time=0.0)
        cache.query(process, FS, 10, start_time=15e-3)

        with pytest.raises(ChannelQueryError, match="precedes retained"):
            cache.query(process, FS, 10, start_time=5e-3)
        with pytest.raises(ChannelQueryError, match="precedes retained"):
            cache.query(process, FS, 1, start_time=5e-3, method="closest")
        with pytest.raises(ChannelQueryError, match="precedes retained"):
            cache.query(process, FS, 2, start_time=(5e-3, 6e-3), method="window")

    def test_earlier_request_within_history(self, process):
        """Test an earlier closest request served from the same block keeps its time."""
        cache = PathGainCache()
        cache.query(process, FS, 1, start_time=2.5e-3, method="closest")

        _, times = cache.query(process, FS, 1, start_time=1.05e-3, method="closest")

        assert abs(times[0] - 1.05e-3) <= 0.5 / process.sample_rate

    def test_closest(self, process):
        """Test closest mode returns cached samples and their times."""
        cache = PathGainCache()
        cache.query(process, FS, 1, start_time=0.0)
        target = cache.path_times[3] + 0.2 / process.sample_rate
        expected = cache.path_gains[3].copy()

        gains, times = cache.query(process, FS, 1, start_time=target, method="closest")

        assert times[0] == pytest.approx(target - 0.2 / process.sample_rate)
        np.testing.assert_array_equal(gains[0], expected)

    def test_window(self, process):
        """Test window mode brackets the requested interval."""
        cache = PathGainCache()
        gains, times = cache.query(
            process, FS, 2, start_time=(1e-3, 1.2e-3), method=InterpolationMethod.WINDOW
        )

        assert times[0] <= 1e-3
        assert times[1] > 1e-3
        assert times[-2] < 1.2e-3
        assert times[-1] >= 1.2e-3
        assert gains.shape[0] == len(times)

    def test_window_requires_bounds(self, process):
        """Test window mode argument validation."""
        cache = PathGainCache()
        with pytest.raises(ChannelQueryError, match="start_time=\\(start, end\\)"):
            cache.query(process, FS, 2, start_time=1e-3, method="window")
        with pytest.raises(ChannelQueryError, match="num_samples=2"):
            cache.query(process, FS, 3, start_time=(0.0, 1e-3), method="window")
        with pytest.raises(ChannelQueryError, match="precedes window start"):
            cache.query(process, FS, 2, start_time=(2e-3, 1e-3), method="window")

    def test_scalar_start_required(self, process):
        """Test linear mode rejects a start time pair."""
        with pytest.raises(ChannelQueryError, match="scalar start time"):
            PathGainCache().query(process, FS, 2, start_time=(0.0, 1e-3))

    def test_invalid_sample_count(self, process):
        """Test zero samples raises error."""
        with pytest.raises(ChannelQueryError, match="at least 1"):
            PathGainCache().query(process, FS, 0, start_time=0.0)

    def test_negative_start(self, process):
        """Test negative start time raises error."""
        with pytest.raises(ChannelQueryError, match="non-negative"):
            PathGainCache().query(process, FS, 1, start_time=-1e-3)

    def test_swapped(self, process):
        """Test reverse direction swaps antenna axes."""
        cache = PathGainCache()
        forward, _ = cache.query(process, FS, 4, start_time=0.0)
        reverse, _ = cache.query(process, FS, 4, start_time=0.0, swapped=True)

        assert reverse.shape == (4, 5, 1, 2)
        np.testing.assert_array_equal(reverse, np.swapaxes(forward, 2, 3))

    def test_clear(self, process):
        """Test clear drops history and rewinds the cursor."""
        cache = PathGainCache()
        cache.query(process, FS, 10, start_time=1e-3)
        cache.clear()

        assert cache.num_cached == 0
        assert cache.last_path_time == -1.0
        assert cache.sample_time_offset == 0.0
