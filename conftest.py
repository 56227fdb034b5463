"""Pytest configuration and shared fixtures for system channel tests."""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from wlanchannel.config import PHYAbstraction, PrototypeChannelConfig, SystemChannelConfig  # noqa: E402
from wlanchannel.signal import DeviceConfig, WLANNode  # noqa: E402


@pytest.fixture
def make_nodes():
    """Factory for nodes on a line, one device each."""

    def _make_nodes(antennas, phy_abstraction=PHYAbstraction.TGAX_EVALUATION,
                    band_and_channel=(5, 36), bandwidth=20e6, spacing=10.0, first_id=1):
        return [
            WLANNode(
                id=first_id + i,
                position=(spacing * i, 0.0, 0.0),
                devices=[DeviceConfig(
                    band_and_channel=band_and_channel,
                    channel_bandwidth_hz=bandwidth,
                    num_transmit_antennas=n
                )],
                phy_abstraction=phy_abstraction
            )
            for i, n in enumerate(antennas)
        ]

    return _make_nodes


@pytest.fixture
def mobile_prototype():
    """Prototype channel with Doppler so path gains vary in time."""
    return PrototypeChannelConfig(environmental_speed_kmh=1.2, output_precision="double")


@pytest.fixture
def static_prototype():
    """Prototype channel with zero environmental speed."""
    return PrototypeChannelConfig(environmental_speed_kmh=0.0)


@pytest.fixture
def seeded_config():
    """Free-space, no shadowing, reproducible."""
    return SystemChannelConfig(seed=42)
