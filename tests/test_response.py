"""Tests for phasefir_response (complex response engine)."""

import numpy as np
import pytest

import phasefir_response
from models import DelayFilter, DiffEqFilter, GainFilter, PassthroughFilter
from phasefir_response import (
    chain_response,
    filter_response,
    fir_response,
    group_delay_seconds,
    rad_to_deg,
    to_db,
    unwrap_phase,
    wrap_rad_to_pi,
)

FS = 48000.0


class TestFilterResponse:
    def test_gain_db_and_linear(self):
        assert filter_response(GainFilter(gain=6.0), 100.0, FS) == pytest.approx(10 ** (6 / 20))
        assert filter_response(GainFilter(gain=2.0, scale="linear", inverted=True), 100.0, FS) == pytest.approx(-2.0)

    def test_delay_units(self):
        f = 1000.0
        w = 2 * np.pi * f / FS
        expected = np.exp(-1j * w * 48)
        for d in (DelayFilter(delay=1.0, unit="ms"), DelayFilter(delay=48, unit="samples"), DelayFilter(delay=343.0, unit="mm")):
            assert filter_response(d, f, FS) == pytest.approx(expected, abs=1e-9)

    def test_delay_rounds_unless_subsample(self):
        f = 5000.0
        w = 2 * np.pi * f / FS
        assert filter_response(DelayFilter(delay=10.4, unit="samples"), f, FS) == pytest.approx(np.exp(-1j * w * 10))
        assert filter_response(DelayFilter(delay=10.4, unit="samples", subsample=True), f, FS) == pytest.approx(
            np.exp(-1j * w * 10.4)
        )

    def test_diffeq_matches_direct_evaluation(self):
        flt = DiffEqFilter(a=(1.0, -0.5), b=(0.5, 0.25))
        f = np.array([0.0, 1000.0, 12000.0])
        z1 = np.exp(-1j * 2 * np.pi * f / FS)
        expected = (0.5 + 0.25 * z1) / (1.0 - 0.5 * z1)
        np.testing.assert_allclose(filter_response(flt, f, FS), expected, rtol=1e-12)

    def test_diffeq_zero_denominator_gives_zero(self):
        assert filter_response(DiffEqFilter(a=(0.0,), b=(1.0,)), 1000.0, FS) == 0

    def test_diffeq_empty_coefficients_is_unity(self):
        assert filter_response(DiffEqFilter(a=(), b=()), 1000.0, FS) == 1

    @pytest.mark.parametrize("ftype", ["Volume", "Dither", "Compressor", "NoiseGate", "Loudness", "Conv"])
    def test_passthrough_types_are_unity(self, ftype):
        assert filter_response(PassthroughFilter(ftype), 440.0, FS) == 1
        assert filter_response({"type": ftype, "parameters": {}}, 440.0, FS) == 1

    def test_scalar_in_scalar_out(self):
        assert isinstance(filter_response(GainFilter(), 100.0, FS), complex)
        assert filter_response(GainFilter(), [100.0, 200.0], FS).shape == (2,)


class TestChainResponse:
    def test_product_of_filters(self):
        chain = [
            {"type": "Gain", "parameters": {"gain": -6.0}},
            {"type": "Biquad", "parameters": {"type": "Peaking", "freq": 1000.0, "q": 1.0, "gain": 6.0}},
        ]
        assert abs(chain_response(chain, 1000.0, FS)) == pytest.approx(1.0, rel=1e-9)

    def test_empty_chain_is_unity(self):
        np.testing.assert_array_equal(chain_response((), np.array([10.0, 100.0]), FS), [1.0, 1.0])
        assert chain_response(None, 50.0, FS) == 1


class TestFirResponse:
    def test_delta_is_pure_delay(self):
        taps = np.zeros(11)
        taps[5] = 1.0
        f = np.linspace(0, 24000, 33)
        np.testing.assert_allclose(fir_response(taps, FS, f), np.exp(-1j * 2 * np.pi * f / FS * 5), atol=1e-12)

    def test_empty_taps_give_zeros(self):
        np.testing.assert_array_equal(fir_response([], FS, [100.0, 200.0]), [0.0, 0.0])

    def test_fft_path_agrees_on_bins(self, monkeypatch, rng):
        taps = rng.standard_normal(100)
        nfft = 2048
        f = np.arange(0, nfft // 2 + 1, 7) * FS / nfft
        direct = fir_response(taps, FS, f)
        monkeypatch.setattr(phasefir_response, "DIRECT_WORK_LIMIT", 0)
        via_fft = fir_response(taps, FS, f)
        np.testing.assert_allclose(via_fft, direct, atol=1e-9)

    def test_fft_path_interpolates_between_bins(self, monkeypatch):
        taps = np.zeros(301)
        taps[150] = 1.0
        f = np.geomspace(20, 20000, 64)
        monkeypatch.setattr(phasefir_response, "DIRECT_WORK_LIMIT", 0)
        h = fir_response(taps, FS, f)
        np.testing.assert_allclose(np.abs(h), 1.0, atol=1e-12)
        np.testing.assert_allclose(h, np.exp(-1j * 2 * np.pi * f / FS * 150), atol=1e-2)


class TestPhaseHelpers:
    def test_to_db_floors(self):
        assert to_db(0) == pytest.approx(-240.0)
        assert to_db(1 + 0j) == 0.0
        assert np.all(np.isfinite(to_db(np.zeros(4))))

    def test_wrap_rad_to_pi(self):
        np.testing.assert_allclose(wrap_rad_to_pi(np.array([np.pi, -np.pi, 3 * np.pi / 2, 0.1])),
                                   [-np.pi, -np.pi, -np.pi / 2, 0.1], atol=1e-12)
        assert rad_to_deg(np.pi) == pytest.approx(180.0)

    def test_unwrap_short_inputs_unchanged(self):
        assert unwrap_phase([]).size == 0
        np.testing.assert_array_equal(unwrap_phase([3.0]), [3.0])

    def test_unwrap_removes_jumps(self):
        true = -np.linspace(0, 20, 200)
        wrapped = wrap_rad_to_pi(true)
        np.testing.assert_allclose(unwrap_phase(wrapped), true, atol=1e-9)

    def test_group_delay_of_linear_phase(self):
        tau = 0.002
        f = np.linspace(10, 10000, 300)
        ph = -2 * np.pi * f * tau
        np.testing.assert_allclose(group_delay_seconds(ph, f), tau, rtol=1e-9)

    def test_group_delay_zero_df(self):
        gd = group_delay_seconds([0.0, -1.0, -2.0], [100.0, 100.0, 100.0])
        np.testing.assert_array_equal(gd, [0.0, 0.0, 0.0])
        assert group_delay_seconds([1.0], [100.0]).tolist() == [0.0]
