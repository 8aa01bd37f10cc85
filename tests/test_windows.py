"""Tests for phasefir_windows."""

import logging

import numpy as np
import pytest
import scipy.signal

from phasefir_windows import generate_window, kaiser_window


def test_hamming_5_closed_form():
    w = generate_window(5, "Hamming")
    expected = np.array([0.08, 0.54, 1.0, 0.54, 0.08])
    np.testing.assert_allclose(w, expected, atol=1e-9, rtol=0)


@pytest.mark.parametrize("length", [0, 1, -3])
def test_short_lengths_give_single_one(length):
    np.testing.assert_array_equal(generate_window(length, "Hann"), [1.0])


@pytest.mark.parametrize(
    "name, reference",
    [
        ("Hann", scipy.signal.windows.hann),
        ("Hamming", scipy.signal.windows.hamming),
        ("Blackman", scipy.signal.windows.blackman),
    ],
)
def test_cosine_windows_match_scipy(name, reference):
    for n in (2, 7, 64, 1025):
        np.testing.assert_allclose(generate_window(n, name), reference(n, sym=True), atol=1e-12)


def test_kaiser_matches_scipy():
    for beta in (0.0, 4.0, 8.6, 12.0):
        np.testing.assert_allclose(
            generate_window(257, "Kaiser", beta),
            scipy.signal.windows.kaiser(257, beta, sym=True),
            rtol=1e-10,
            atol=1e-12,
        )


def test_kaiser_default_beta():
    np.testing.assert_allclose(generate_window(33, "Kaiser"), kaiser_window(33, 8.6))


def test_rectangular_is_ones():
    np.testing.assert_array_equal(generate_window(9, "Rectangular"), np.ones(9))


def test_windows_are_symmetric():
    for name in ("Hann", "Hamming", "Blackman", "Kaiser"):
        w = generate_window(101, name)
        np.testing.assert_allclose(w, w[::-1], atol=1e-12)
        assert w[50] == pytest.approx(1.0)


def test_unknown_window_falls_back_to_rectangular(caplog):
    with caplog.at_level(logging.WARNING, logger="PhaseFIR.windows"):
        w = generate_window(5, "Tukey")
    np.testing.assert_array_equal(w, np.ones(5))
    assert "Tukey" in caplog.text
