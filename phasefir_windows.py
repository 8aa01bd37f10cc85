# phasefir_windows.py
import logging

import numpy as np
import scipy.special

from models import WINDOW_TYPES

logger = logging.getLogger("PhaseFIR.windows")

DEFAULT_KAISER_BETA = 8.6


def _cosine_window(length, a0, a1, a2=0.0):
    """Generalized symmetric cosine window (Hann, Hamming, Blackman)."""
    n = np.arange(length, dtype=float)
    x = 2.0 * np.pi * n / (length - 1)
    return a0 - a1 * np.cos(x) + a2 * np.cos(2.0 * x)


def kaiser_window(length, beta=DEFAULT_KAISER_BETA):
    """Kaiser: I0(beta * sqrt(1 - x^2)) / I0(beta), x in [-1, 1]."""
    n = np.arange(length, dtype=float)
    x = 2.0 * n / (length - 1) - 1.0
    arg = float(beta) * np.sqrt(np.maximum(0.0, 1.0 - x * x))
    return scipy.special.i0(arg) / scipy.special.i0(float(beta))


def generate_window(length: int, window_type: str = "Hann", kaiser_beta=None) -> np.ndarray:
    """
    Symmetric tapering window of `length` samples.

    Rectangular, Hann, Hamming, Blackman and Kaiser use the textbook closed
    forms with denominator (N - 1). Length 1 (or less) gives [1.0].
    """
    length = int(length)
    if length <= 1:
        return np.ones(1)

    if window_type == "Rectangular":
        return np.ones(length)
    if window_type == "Hann":
        return _cosine_window(length, 0.5, 0.5)
    if window_type == "Hamming":
        return _cosine_window(length, 0.54, 0.46)
    if window_type == "Blackman":
        return _cosine_window(length, 0.42, 0.5, 0.08)
    if window_type == "Kaiser":
        beta = DEFAULT_KAISER_BETA if kaiser_beta is None else float(kaiser_beta)
        return kaiser_window(length, beta)

    logger.warning(f"Unknown window {window_type!r} (expected one of {WINDOW_TYPES}); using Rectangular")
    return np.ones(length)
