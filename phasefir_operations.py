# phasefir_operations.py
from __future__ import annotations

import math
from typing import Optional, Tuple

import numpy as np

from models import MAX_FIR_TAPS, FirDesignSettings
from phasefir_windows import generate_window


def clamp_odd(value, min_value: int = 1, max_value: Optional[int] = None) -> int:
    """
    Truncate to int, clamp, and bump to the nearest odd length within bounds.
    Odd lengths keep the group delay on an integer sample. Non-finite -> min_value.
    """
    try:
        v = float(value)
    except (TypeError, ValueError):
        return int(min_value)
    if not math.isfinite(v):
        return int(min_value)

    n = int(v)  # trunc
    if n < min_value:
        n = min_value
    if max_value is not None and n > max_value:
        n = max_value
    if n % 2 == 0:
        n += 1
    if max_value is not None and n > max_value:
        n = max_value - 1 if max_value % 2 == 0 else max_value
    if n < min_value:
        n = min_value + 1 if min_value % 2 == 0 else min_value
    return int(n)


def effective_tap_count(settings: FirDesignSettings, sample_rate: float) -> int:
    """Resolve the FIR length from the tap mode (latency budget or explicit taps)."""
    return clamp_odd(requested_tap_count(settings, sample_rate), 1, MAX_FIR_TAPS)


def requested_tap_count(settings: FirDesignSettings, sample_rate: float) -> float:
    """Unclamped length implied by the settings (used to detect clamping)."""
    if settings.tap_mode == "latency":
        delay = np.round(float(settings.max_latency_ms) / 1000.0 * float(sample_rate))
        return float(delay * 2 + 1)
    return float(settings.taps)


def target_delay_samples(taps: int) -> int:
    return max(0, (int(taps) - 1) // 2)


def target_latency_ms(taps: int, sample_rate: float) -> float:
    if not sample_rate or sample_rate <= 0:
        return 0.0
    return target_delay_samples(taps) / float(sample_rate) * 1000.0


def taps_for_latency_ms(latency_ms: float, sample_rate: float) -> int:
    """Inverse of target_latency_ms: odd length whose centre delay is latency_ms."""
    delay = np.round(float(latency_ms) / 1000.0 * float(sample_rate))
    return clamp_odd(delay * 2 + 1, 1, MAX_FIR_TAPS)


def estimate_linear_phase_latency_ms(tap_count, sample_rate) -> float:
    try:
        n = float(tap_count)
        fs = float(sample_rate)
    except (TypeError, ValueError):
        return 0.0
    if not (math.isfinite(fs) and fs > 0 and math.isfinite(n) and n > 0):
        return 0.0
    return (n - 1) / 2.0 / fs * 1000.0


def find_fir_peak(values) -> Tuple[float, int]:
    """(peak |tap|, first index of the peak). Empty -> (0.0, 0)."""
    arr = np.abs(np.asarray(values, dtype=float).ravel())
    if arr.size == 0:
        return 0.0, 0
    idx = int(np.argmax(arr))
    return float(arr[idx]), idx


def scale_fir(values, scale) -> np.ndarray:
    arr = np.array(values, dtype=float).ravel()
    if not np.isfinite(scale) or scale == 1:
        return arr
    return arr * float(scale)


def invert_fir_polarity(values) -> np.ndarray:
    return -np.asarray(values, dtype=float).ravel()


def normalize_fir_peak(values) -> np.ndarray:
    peak, _ = find_fir_peak(values)
    if peak <= 0:
        return np.array(values, dtype=float).ravel()
    return scale_fir(values, 1.0 / peak)


def apply_fir_gain_db(values, gain_db) -> np.ndarray:
    if not np.isfinite(gain_db) or gain_db == 0:
        return np.array(values, dtype=float).ravel()
    return scale_fir(values, 10.0 ** (float(gain_db) / 20.0))


def shift_fir(values, shift_samples) -> np.ndarray:
    """Non-circular shift; samples shifted past either end are dropped, gaps zero."""
    arr = np.asarray(values, dtype=float).ravel()
    n = arr.size
    out = np.zeros(n)
    if n == 0:
        return out
    shift = int(shift_samples)
    if shift == 0:
        return arr.copy()
    if abs(shift) >= n:
        return out
    if shift > 0:
        out[shift:] = arr[:n - shift]
    else:
        out[:n + shift] = arr[-shift:]
    return out


def resize_fir_centered(values, length, window: Optional[str] = None, kaiser_beta=None) -> np.ndarray:
    """
    Crop or zero-pad around the centre sample to an odd `length`.
    Optionally taper the result with `window` (Rectangular / None = untouched).
    """
    src = np.asarray(values, dtype=float).ravel()
    n_out = clamp_odd(length, 1)
    if src.size == 0:
        return np.zeros(n_out)

    src_center = (src.size - 1) // 2
    dst_center = (n_out - 1) // 2
    start = src_center - dst_center

    out = np.zeros(n_out)
    lo = max(0, start)
    hi = min(src.size, start + n_out)
    if hi > lo:
        out[lo - start:hi - start] = src[lo:hi]

    if window and window != "Rectangular":
        out *= generate_window(n_out, window, kaiser_beta)
    return out


def conv_values_parameters(values) -> dict:
    """Conv filter parameters for an inline coefficient list."""
    return {"type": "Values", "values": [float(v) for v in np.asarray(values, dtype=float).ravel()]}
