# phasefir_response.py
import logging

import numpy as np
import scipy.fft
import scipy.signal

from models import (
    BiquadFilter,
    DelayFilter,
    DiffEqFilter,
    GainFilter,
    filter_from_dict,
)
from phasefir_biquad import biquad_sections

logger = logging.getLogger("PhaseFIR.response")

DB_FLOOR_EPS = 1e-12

# taps x frequencies above this switches fir_response to the FFT path
DIRECT_WORK_LIMIT = 1 << 24
FFT_MIN_SIZE = 2048


def _as_freq_array(f):
    return np.atleast_1d(np.asarray(f, dtype=float))


def _scalar_or_array(h, f):
    return complex(h[0]) if np.ndim(f) == 0 else h


def _freqz(b, a, freqs, fs):
    with np.errstate(divide="ignore", invalid="ignore"):
        _, h = scipy.signal.freqz(b, a, worN=freqs, fs=fs)
    h = np.asarray(h, dtype=complex)
    # Zero denominator -> 0, as a dead section would behave
    h[~np.isfinite(h)] = 0.0
    return h


def delay_in_samples(flt: DelayFilter, sample_rate: float) -> float:
    if flt.unit == "samples":
        d = flt.delay
    elif flt.unit == "ms":
        d = flt.delay / 1000.0 * sample_rate
    else:
        # mm -> speed of sound 343 m/s
        d = flt.delay / 343000.0 * sample_rate
    return float(d) if flt.subsample else float(np.round(d))


def filter_response(flt, f, sample_rate):
    """Complex response of one filter at frequency f (Hz, scalar or array)."""
    flt = filter_from_dict(flt)
    freqs = _as_freq_array(f)

    if isinstance(flt, BiquadFilter):
        h = np.ones(freqs.shape, dtype=complex)
        for b, a in biquad_sections(flt, sample_rate):
            h *= _freqz(b, a, freqs, sample_rate)
    elif isinstance(flt, DiffEqFilter):
        if len(flt.a) == 0 or len(flt.b) == 0:
            h = np.ones(freqs.shape, dtype=complex)
        else:
            h = _freqz(np.asarray(flt.b), np.asarray(flt.a), freqs, sample_rate)
    elif isinstance(flt, GainFilter):
        mag = flt.gain if flt.scale == "linear" else 10.0 ** (flt.gain / 20.0)
        sign = -1.0 if flt.inverted else 1.0
        h = np.full(freqs.shape, mag * sign, dtype=complex)
    elif isinstance(flt, DelayFilter):
        w = 2.0 * np.pi * freqs / sample_rate
        h = np.exp(-1j * w * delay_in_samples(flt, sample_rate))
    else:
        # Volume, Dither, dynamics, Conv: unity in previews
        h = np.ones(freqs.shape, dtype=complex)

    return _scalar_or_array(h, f)


def chain_response(filters, f, sample_rate):
    """Product of per-filter responses across the ordered chain."""
    freqs = _as_freq_array(f)
    acc = np.ones(freqs.shape, dtype=complex)
    for flt in filters or ():
        acc *= filter_response(flt, freqs, sample_rate)
    return _scalar_or_array(acc, f)


def _next_pow2(n: int) -> int:
    return 1 << max(0, int(np.ceil(np.log2(max(1, int(n))))))


def _fir_response_fft(taps, sample_rate, freqs):
    """
    FFT-sampled DTFT with polar interpolation between bins.
    Interpolating magnitude and phase separately avoids fake notches when
    the phase rotates quickly between bins (long linear-phase FIRs).
    """
    nfft = _next_pow2(max(FFT_MIN_SIZE, 4 * taps.size))
    spec = scipy.fft.rfft(taps, n=nfft)
    nyq_bin = nfft // 2

    bins = np.clip(np.maximum(freqs, 0.0) / sample_rate * nfft, 0.0, float(nyq_bin))
    k0 = np.floor(bins).astype(int)
    k1 = np.minimum(nyq_bin, k0 + 1)
    frac = bins - k0

    h0 = spec[k0]
    h1 = spec[k1]
    mag = np.abs(h0) + (np.abs(h1) - np.abs(h0)) * frac
    p0 = np.angle(h0)
    p1 = np.angle(h1)
    d = p1 - p0
    p1 = np.where(d > np.pi, p1 - 2 * np.pi, np.where(d < -np.pi, p1 + 2 * np.pi, p1))
    phase = p0 + (p1 - p0) * frac
    return mag * np.exp(1j * phase)


def fir_response(taps, sample_rate, frequencies):
    """
    DTFT of `taps` at each requested frequency (Hz).

    Direct summation while len(taps) * len(frequencies) stays under
    DIRECT_WORK_LIMIT; beyond that an FFT-based evaluation keeps very long
    FIRs (up to 262143 taps) interactive.
    """
    taps = np.asarray(taps, dtype=float).ravel()
    freqs = _as_freq_array(frequencies)
    if taps.size == 0:
        return np.zeros(freqs.shape, dtype=complex)

    if taps.size * freqs.size <= DIRECT_WORK_LIMIT:
        return _freqz(taps, np.array([1.0]), freqs, sample_rate)

    logger.debug(f"FIR response via FFT: {taps.size} taps x {freqs.size} points")
    return _fir_response_fft(taps, float(sample_rate), freqs)


def to_db(c):
    """20*log10(|c|) floored at DB_FLOOR_EPS (never -inf)."""
    v = 20.0 * np.log10(np.maximum(DB_FLOOR_EPS, np.abs(c)))
    return float(v) if np.ndim(v) == 0 else v


def phase_rad(c):
    return np.angle(c)


def wrap_rad_to_pi(rad):
    """Wrap to [-pi, pi)."""
    return (np.asarray(rad) + np.pi) % (2.0 * np.pi) - np.pi


def rad_to_deg(rad):
    return np.rad2deg(rad)


def unwrap_phase(phases):
    """Remove 2*pi jumps. Inputs of length 0 or 1 are returned unchanged."""
    p = np.asarray(phases, dtype=float)
    if p.size <= 1:
        return p
    return np.unwrap(p)


def group_delay_seconds(unwrapped_phases, frequencies):
    """
    tau = -dphi/dw = -(1 / 2pi) * dphi/df.
    Central differences inside, one-sided at the ends; df == 0 gives 0.
    """
    ph = np.asarray(unwrapped_phases, dtype=float)
    fr = np.asarray(frequencies, dtype=float)
    n = min(ph.size, fr.size)
    out = np.zeros(n)
    if n <= 1:
        return out
    ph = ph[:n]
    fr = fr[:n]

    i0 = np.concatenate(([0], np.arange(0, n - 2), [n - 2]))
    i2 = np.concatenate(([1], np.arange(2, n), [n - 1]))
    df = fr[i2] - fr[i0]
    dphi = ph[i2] - ph[i0]
    ok = df != 0
    out[ok] = -(dphi[ok] / df[ok]) / (2.0 * np.pi)
    return out
