"""
Biquad coefficient design (RBJ cookbook + CamillaDSP conventions).

Every design is returned as a list of (b, a) sections with a0 normalized to
1, so single biquads, first-order sections and Butterworth / Linkwitz-Riley
cascades are evaluated the same way.

Notes
- Shelf `slope` is in dB/octave as in CamillaDSP configs (S = slope / 12).
- First-order shelves / allpass follow CamillaDSP's bilinear forms.
- Butterworth and Linkwitz-Riley use scipy.signal.butter second-order
  sections; LR(n) is two cascaded Butterworth(n/2).
"""
from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np
import scipy.signal

from models import BiquadFilter

logger = logging.getLogger("PhaseFIR.biquad")

Section = Tuple[np.ndarray, np.ndarray]

_UNITY: Section = (np.array([1.0]), np.array([1.0]))


def _normalized(b0, b1, b2, a0, a1, a2) -> Section:
    return (
        np.array([b0 / a0, b1 / a0, b2 / a0]),
        np.array([1.0, a1 / a0, a2 / a0]),
    )


def _sos_sections(sos) -> List[Section]:
    return [(np.asarray(s[:3], dtype=float), np.asarray(s[3:], dtype=float)) for s in np.atleast_2d(sos)]


def _butter_sections(order: int, freq: float, btype: str, fs: float) -> List[Section]:
    nyq = 0.5 * float(fs)
    if not (0.0 < float(freq) < nyq):
        logger.warning(f"Butterworth cutoff {freq} Hz outside (0, {nyq:g}) Hz; section treated as unity")
        return [_UNITY]
    sos = scipy.signal.butter(int(order), float(freq), btype=btype, fs=float(fs), output="sos")
    return _sos_sections(sos)


def _linkwitz_transform(p: BiquadFilter, fs: float) -> Section:
    d0i = (2.0 * np.pi * p.freq_act) ** 2
    d1i = (2.0 * np.pi * p.freq_act) / p.q_act
    c0i = (2.0 * np.pi * p.freq_target) ** 2
    c1i = (2.0 * np.pi * p.freq_target) / p.q_target
    fc = (p.freq_target + p.freq_act) / 2.0
    gn = 2.0 * np.pi * fc / np.tan(np.pi * fc / fs)
    cci = c0i + gn * c1i + gn ** 2
    b0 = (d0i + gn * d1i + gn ** 2) / cci
    b1 = 2.0 * (d0i - gn ** 2) / cci
    b2 = (d0i - gn * d1i + gn ** 2) / cci
    a1 = 2.0 * (c0i - gn ** 2) / cci
    a2 = (c0i - gn * c1i + gn ** 2) / cci
    return np.array([b0, b1, b2]), np.array([1.0, a1, a2])


def biquad_sections(p: BiquadFilter, fs: float) -> List[Section]:
    """Design the section list for one Biquad filter at sample rate fs."""
    kind = p.kind

    if kind in ("ButterworthLowpass", "ButterworthHighpass"):
        btype = "lowpass" if kind.endswith("Lowpass") else "highpass"
        return _butter_sections(max(1, int(p.order)), p.freq, btype, fs)

    if kind in ("LinkwitzRileyLowpass", "LinkwitzRileyHighpass"):
        btype = "lowpass" if kind.endswith("Lowpass") else "highpass"
        half = max(1, int(p.order) // 2)
        secs = _butter_sections(half, p.freq, btype, fs)
        return secs + secs

    if kind == "LinkwitzTransform":
        return [_linkwitz_transform(p, fs)]

    w0 = 2.0 * np.pi * p.freq / fs
    cos_w0 = np.cos(w0)
    sin_w0 = np.sin(w0)

    if kind == "Lowpass":
        alpha = sin_w0 / (2.0 * p.q)
        return [_normalized((1 - cos_w0) / 2, 1 - cos_w0, (1 - cos_w0) / 2,
                            1 + alpha, -2 * cos_w0, 1 - alpha)]

    if kind == "Highpass":
        alpha = sin_w0 / (2.0 * p.q)
        return [_normalized((1 + cos_w0) / 2, -(1 + cos_w0), (1 + cos_w0) / 2,
                            1 + alpha, -2 * cos_w0, 1 - alpha)]

    if kind == "LowpassFO":
        k = np.tan(w0 / 2.0)
        return [(np.array([k / (1 + k), k / (1 + k)]), np.array([1.0, (k - 1) / (k + 1)]))]

    if kind == "HighpassFO":
        k = np.tan(w0 / 2.0)
        return [(np.array([1 / (1 + k), -1 / (1 + k)]), np.array([1.0, (k - 1) / (k + 1)]))]

    if kind == "Peaking":
        A = 10.0 ** (p.gain / 40.0)
        alpha = sin_w0 / (2.0 * p.q)
        return [_normalized(1 + alpha * A, -2 * cos_w0, 1 - alpha * A,
                            1 + alpha / A, -2 * cos_w0, 1 - alpha / A)]

    if kind in ("Lowshelf", "Highshelf"):
        A = 10.0 ** (p.gain / 40.0)
        S = max(p.slope, 1e-6) / 12.0
        alpha = sin_w0 / 2.0 * np.sqrt(max(0.0, (A + 1 / A) * (1 / S - 1) + 2))
        sq = 2.0 * np.sqrt(A) * alpha
        if kind == "Lowshelf":
            return [_normalized(
                A * ((A + 1) - (A - 1) * cos_w0 + sq),
                2 * A * ((A - 1) - (A + 1) * cos_w0),
                A * ((A + 1) - (A - 1) * cos_w0 - sq),
                (A + 1) + (A - 1) * cos_w0 + sq,
                -2 * ((A - 1) + (A + 1) * cos_w0),
                (A + 1) + (A - 1) * cos_w0 - sq,
            )]
        return [_normalized(
            A * ((A + 1) + (A - 1) * cos_w0 + sq),
            -2 * A * ((A - 1) + (A + 1) * cos_w0),
            A * ((A + 1) + (A - 1) * cos_w0 - sq),
            (A + 1) - (A - 1) * cos_w0 + sq,
            2 * ((A - 1) - (A + 1) * cos_w0),
            (A + 1) - (A - 1) * cos_w0 - sq,
        )]

    if kind == "LowshelfFO":
        A = 10.0 ** (p.gain / 40.0)
        tn = np.tan(w0 / 2.0)
        a0 = tn + A
        return [(np.array([(A * A * tn + A) / a0, (A * A * tn - A) / a0]),
                 np.array([1.0, (tn - A) / a0]))]

    if kind == "HighshelfFO":
        A = 10.0 ** (p.gain / 40.0)
        tn = np.tan(w0 / 2.0)
        a0 = A * tn + 1.0
        return [(np.array([(A * tn + A * A) / a0, (A * tn - A * A) / a0]),
                 np.array([1.0, (A * tn - 1.0) / a0]))]

    if kind == "Notch":
        alpha = sin_w0 / (2.0 * p.q)
        return [_normalized(1.0, -2 * cos_w0, 1.0, 1 + alpha, -2 * cos_w0, 1 - alpha)]

    if kind == "Bandpass":
        alpha = sin_w0 / (2.0 * p.q)
        return [_normalized(alpha, 0.0, -alpha, 1 + alpha, -2 * cos_w0, 1 - alpha)]

    if kind == "Allpass":
        alpha = sin_w0 / (2.0 * p.q)
        return [_normalized(1 - alpha, -2 * cos_w0, 1 + alpha, 1 + alpha, -2 * cos_w0, 1 - alpha)]

    if kind == "AllpassFO":
        tn = np.tan(w0 / 2.0)
        c = (tn - 1.0) / (tn + 1.0)
        return [(np.array([c, 1.0]), np.array([1.0, c]))]

    # Tuntematon alatyyppi: läpäisy
    return [_UNITY]
