"""
Preview series for the phase-correction editor.

Everything here is evaluated on an explicit frequency grid and returns plain
numpy arrays / dicts, so plotting collaborators can draw them directly.
"""
import logging

import numpy as np

from models import DelayFilter, filter_from_dict
from phasefir_response import (
    chain_response,
    delay_in_samples,
    fir_response,
    group_delay_seconds,
    phase_rad,
    rad_to_deg,
    to_db,
    unwrap_phase,
    wrap_rad_to_pi,
)
from phasefir_operations import target_delay_samples

logger = logging.getLogger("PhaseFIR.analysis")

FREQUENCY_POINTS = 512
MIN_FREQUENCY = 20.0
MAX_FREQUENCY = 20000.0


def generate_frequencies(count=FREQUENCY_POINTS, f_min=MIN_FREQUENCY, f_max=MAX_FREQUENCY):
    """Log-spaced preview grid (Hz)."""
    return np.logspace(np.log10(f_min), np.log10(f_max), int(count))


def build_complex_series(frequencies, filters, sample_rate):
    return np.asarray(chain_response(filters, np.asarray(frequencies, dtype=float), sample_rate), dtype=complex)


def build_fir_series(taps, sample_rate, frequencies):
    return fir_response(taps, sample_rate, frequencies)


def multiply_series(a, b):
    """Element-wise product; b shorter than a is padded with unity."""
    a = np.asarray(a, dtype=complex)
    b = np.asarray(b, dtype=complex)
    out = a.copy()
    n = min(a.size, b.size)
    out[:n] *= b[:n]
    return out


def build_magnitude_stats(points):
    """min / max / peak-abs of the dB magnitude, or None for an empty series."""
    if points is None:
        return None
    db = np.atleast_1d(to_db(np.asarray(points)))
    db = db[np.isfinite(db)]
    if db.size == 0:
        return None
    mn = float(db.min())
    mx = float(db.max())
    return {"min_db": mn, "max_db": mx, "peak_abs_db": max(abs(mn), abs(mx))}


def build_phase_series_deg(complex_points, frequencies, ref_delay_samples, sample_rate, hide_below_db):
    """
    Phase (deg) with the reference delay removed, wrapped to [-180, 180).
    Points quieter than hide_below_db are NaN so the plot leaves a gap.
    """
    c = np.asarray(complex_points, dtype=complex)
    f = np.asarray(frequencies, dtype=float)[:c.size]
    phases = unwrap_phase(phase_rad(c))
    w = 2.0 * np.pi * f / float(sample_rate)
    deg = rad_to_deg(wrap_rad_to_pi(phases + w * ref_delay_samples))
    deg = np.asarray(deg, dtype=float)
    deg[np.atleast_1d(to_db(c)) < hide_below_db] = np.nan
    return deg


def build_delay_ms_series(complex_points, frequencies):
    ph = unwrap_phase(phase_rad(np.asarray(complex_points, dtype=complex)))
    return group_delay_seconds(ph, frequencies) * 1000.0


def pipeline_delay_samples(filters, sample_rate):
    """Sum of explicit Delay filters in the chain, in samples."""
    total = 0.0
    for flt in filters or ():
        flt = filter_from_dict(flt)
        if isinstance(flt, DelayFilter):
            total += delay_in_samples(flt, sample_rate)
    return total


def combined_group_delay_samples(filters, taps, sample_rate, frequencies, ref_delay_samples=None):
    """
    Group delay (samples) of chain x FIR.

    The FIR's nominal delay is removed before unwrapping so the residual phase
    stays small on sparse grids, then added back. A perfect correction gives a
    flat curve at the reference delay.
    """
    f = np.asarray(frequencies, dtype=float)
    taps = np.asarray(taps, dtype=float).ravel()
    if ref_delay_samples is None:
        ref_delay_samples = target_delay_samples(taps.size)
    fs = float(sample_rate)

    h = build_complex_series(f, filters, fs) * fir_response(taps, fs, f)
    h = h * np.exp(1j * 2.0 * np.pi * f / fs * ref_delay_samples)
    residual = group_delay_seconds(unwrap_phase(phase_rad(h)), f) * fs
    logger.debug(f"Combined group delay: {f.size} points, reference {ref_delay_samples} samples")
    return residual + ref_delay_samples
