"""Shared fixtures for PhaseFIR tests."""

import numpy as np
import pytest

from models import BiquadFilter, FirDesignSettings, NamedFilter


@pytest.fixture
def fs() -> int:
    return 48000


@pytest.fixture
def peaking_1k() -> BiquadFilter:
    """+6 dB peaking at 1 kHz, Q 1."""
    return BiquadFilter(kind="Peaking", freq=1000.0, q=1.0, gain=6.0)


@pytest.fixture
def design_settings() -> FirDesignSettings:
    """2049 taps, Hann, full band, peak normalization."""
    return FirDesignSettings(
        tap_mode="taps",
        taps=2049,
        band_low_hz=20.0,
        band_high_hz=20000.0,
        window="Hann",
        normalize=True,
    )


@pytest.fixture
def channel_filters():
    """A channel pipeline with the FIR slot in the middle."""
    return [
        NamedFilter("gain", {"type": "Gain", "parameters": {"gain": -3.0}}),
        NamedFilter("xo_lp", {"type": "Biquad", "parameters": {"type": "LinkwitzRileyLowpass", "freq": 2000.0, "order": 4}}),
        NamedFilter("peq1", {"type": "Biquad", "parameters": {"type": "Peaking", "freq": 80.0, "q": 4.0, "gain": -6.0}}),
        NamedFilter("fir", {"type": "Conv", "parameters": {"type": "Values", "values": [1.0]}}),
        NamedFilter("post", {"type": "DiffEq", "parameters": {"a": [1.0, -0.5], "b": [0.5]}}),
    ]


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(0)
