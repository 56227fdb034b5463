"""
Unit tests for the TGax link fading process.
"""

import numpy as np
import pytest

from wlanchannel.config import PrototypeChannelConfig
from wlanchannel.fading import TGaxFadingProcess


def make_process(config, num_tx=2, num_rx=3, seed=7):
    return TGaxFadingProcess(config, num_tx, num_rx, np.random.default_rng(seed))


class TestTGaxFadingProcess:
    """Test suite for TGaxFadingProcess."""

    def test_block_shape_and_dtype(self, mobile_prototype):
        """Test step returns (samples, paths, tx, rx) in the configured precision."""
        process = make_process(mobile_prototype)
        gains = process.step()

        assert gains.shape == (process.num_samples, 5, 2, 3)
        assert gains.dtype == np.complex128

    def test_single_precision(self):
        """Test single precision output."""
        process = make_process(PrototypeChannelConfig(environmental_speed_kmh=1.2))
        assert process.step().dtype == np.complex64

    def test_normalized_path_powers(self, mobile_prototype):
        """Test normalized path powers sum to one."""
        process = make_process(mobile_prototype)
        assert np.sum(process.path_powers) == pytest.approx(1.0)

    def test_path_delays_in_seconds(self, mobile_prototype):
        """Test path delays are converted from microseconds."""
        process = make_process(mobile_prototype)
        np.testing.assert_allclose(process.path_delays, [0.0, 50e-9, 110e-9, 170e-9, 230e-9])

    def test_blocks_are_continuous(self, mobile_prototype):
        """Test two consecutive blocks match one block of twice the length."""
        a = make_process(mobile_prototype)
        b = make_process(mobile_prototype)
        b.num_samples = 2 * a.num_samples

        two_blocks = np.concatenate([a.step(), a.step()])
        one_block = b.step()

        np.testing.assert_allclose(two_blocks, one_block, rtol=1e-9, atol=1e-12)

    def test_static_channel_constant(self, static_prototype):
        """Test zero Doppler gives identical samples over time."""
        process = make_process(static_prototype)
        gains = process.step()

        assert process.num_samples == 2
        assert np.array_equal(gains[0], gains[1])

    def test_reset_rewinds_clock(self, mobile_prototype):
        """Test reset draws a new realization and restarts at t=0."""
        process = make_process(mobile_prototype)
        first = process.step()
        process.step()
        process.reset()

        assert process._time == 0.0
        assert not np.allclose(process.step(), first)

    def test_average_power(self):
        """Test average total power of a static channel ensemble is near one."""
        config = PrototypeChannelConfig(environmental_speed_kmh=0.0, output_precision="double")
        rng = np.random.default_rng(3)
        powers = []
        for _ in range(400):
            process = TGaxFadingProcess(config, 1, 1, rng)
            powers.append(np.sum(np.abs(process.step()[0]) ** 2))

        assert np.mean(powers) == pytest.approx(1.0, abs=0.2)

    def test_autocorrelation(self, mobile_prototype):
        """Test autocorrelation is one at zero lag and decays."""
        process = make_process(mobile_prototype)
        r = process.autocorrelation([0.0, 1e-3, 10e-3])

        assert r[0] == pytest.approx(1.0)
        assert abs(r[1]) < 1.0

    def test_info_los(self):
        """Test info reports Rician K-factor only when LOS."""
        los = make_process(PrototypeChannelConfig(transmit_receive_distance_m=5.0))
        nlos = make_process(PrototypeChannelConfig(transmit_receive_distance_m=50.0))

        assert los.info()["is_los"] is True
        assert los.info()["k_factor_db"] == 3.0
        assert nlos.info()["k_factor_db"] == -np.inf
