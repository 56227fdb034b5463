"""
Setup configuration for the WLAN system channel.
"""

from setuptools import setup, find_packages

setup(
    name="wlan-system-channel",
    version="1.0.0",
    description="Multi-link WLAN fading channel, path loss and shadow fading for system-level simulation",
    packages=find_packages(exclude=["*.tests", "*.tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "scipy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "wlan-system-channel=wlanchannel.multi_frequency:main",
        ],
    },
)
