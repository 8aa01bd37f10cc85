import numpy as np
import scipy.fft
import logging
logger = logging.getLogger("PhaseFIR.dsp")
from models import MAX_FIR_TAPS, DesignResult, FirDesignSettings, IDENTITY_TAPS
from phasefir_operations import clamp_odd, effective_tap_count, requested_tap_count, target_delay_samples, find_fir_peak
from phasefir_response import chain_response
from phasefir_windows import generate_window
#PhaseFIR design engine
#Excess-phase inversion by frequency sampling, windowed-sinc helpers

MAX_FFT_SIZE = 1 << 20          # 1 048 576, UI-responsiveness/memory bound
MIN_FFT_SIZE = 2048
INVERSE_EPS = 1e-12             # |H| below this: no defined phase to invert
NEAR_SINGULAR_MAG = 1e-6        # warn when correction is requested this close to a zero

FIR_SHAPES = ("Lowpass", "Highpass", "Bandpass", "Bandstop")


def _next_pow2(n):
    n = int(n)
    return 1 if n <= 1 else 1 << (n - 1).bit_length()


def design_oversample(taps):
    """
    Taajuusnäytteistyksen ylinäytteistys. Tiheämpi FFT-ruudukko antaa
    katkaisulle ja ikkunoinnille tilaa -> vähemmän magnitudiripplettä.
    """
    if taps <= 8192:
        return 16
    if taps <= 32768:
        return 8
    if taps <= 131072:
        return 4
    if taps <= 262144:
        return 2
    return 1


def smoothstep(edge0, edge1, x):
    """Cubic t^2 (3 - 2t) ramp from 0 at edge0 to 1 at edge1. Equal edges -> step."""
    x = np.asarray(x, dtype=float)
    if edge0 == edge1:
        return (x >= edge1).astype(float)
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def band_weight(freqs, low_hz, high_hz, transition_octaves, nyquist):
    """
    1 inside [low_hz, high_hz], smoothstep to 0 over `transition_octaves`
    outside it. Edges at 0 Hz / Nyquist get no taper.
    """
    f = np.asarray(freqs, dtype=float)
    low = max(0.0, float(low_hz))
    high = max(low, min(float(high_hz), nyquist))
    if high <= 0:
        return np.zeros_like(f)

    t_oct = max(0.0, float(transition_octaves))
    if t_oct == 0:
        return ((f >= low) & (f <= high)).astype(float)

    low_start = 0.0 if low <= 0 else low / 2.0 ** t_oct
    high_end = min(nyquist, high * 2.0 ** t_oct)

    w_low = np.ones_like(f) if low <= 0 else smoothstep(low_start, low, f)
    w_high = np.ones_like(f) if high >= nyquist else 1.0 - smoothstep(high, high_end, f)
    return np.clip(w_low * w_high, 0.0, 1.0)


def magnitude_weight(mag, threshold_db, transition_db):
    """Soft gate: 0 at threshold_db - transition_db, 1 at threshold_db and above."""
    mag_db = 20.0 * np.log10(np.maximum(INVERSE_EPS, np.abs(np.asarray(mag))))
    t_db = max(0.0, float(transition_db))
    if t_db == 0:
        return (mag_db >= threshold_db).astype(float)
    return smoothstep(threshold_db - t_db, threshold_db, mag_db)


def _validated_band(settings, nyquist):
    low = float(settings.band_low_hz)
    high = float(settings.band_high_hz)
    if not (np.isfinite(low) and np.isfinite(high)):
        raise ValueError(f"Correction band edges must be finite (got {low}, {high})")
    low = min(max(low, 0.0), nyquist)
    high = min(max(high, 0.0), nyquist)
    if high < low:
        raise ValueError(f"Correction band is inverted: low {low:.1f} Hz > high {high:.1f} Hz")
    return low, high


def _validated_sample_rate(sample_rate):
    try:
        fs = float(sample_rate)
    except (TypeError, ValueError):
        raise ValueError(f"sample_rate must be a number (got {sample_rate!r})")
    if not np.isfinite(fs) or fs <= 0:
        raise ValueError(f"sample_rate must be finite and > 0 (got {sample_rate!r})")
    return fs


def design_phase_correction(sample_rate, settings: FirDesignSettings, selected_filters, effective_taps):
    """
    Linear-phase FIR that inverts the excess phase of `selected_filters`.

    Correction spectrum on an oversampled rfft grid:
        C(f) = exp(j * (-w*D + weight(f) * angle(conj(H) / |H|)))
    with D = (taps - 1) // 2, so outside the band / below the magnitude gate
    the FIR is a pure delay of D samples. Magnitude of H is left untouched.

    Raises ValueError on invalid sample rate or band edges.
    """
    warnings = []

    # --- 1. VALIDOINTI ---
    fs = _validated_sample_rate(sample_rate)
    nyquist = fs / 2.0
    low_hz, high_hz = _validated_band(settings, nyquist)

    taps_used = clamp_odd(effective_taps, 1, MAX_FIR_TAPS)
    try:
        requested = float(effective_taps)
    except (TypeError, ValueError):
        requested = float("nan")
    if not (1 <= requested <= MAX_FIR_TAPS):
        warnings.append(f"Tap count {effective_taps} clamped to {taps_used}.")

    filters = tuple(selected_filters or ())

    # --- 2. IDENTITEETTI ---
    if not filters:
        warnings.append("No filters selected for phase correction; using identity.")
    if taps_used <= 1 or not filters:
        return DesignResult(
            taps=np.array(IDENTITY_TAPS),
            warnings=tuple(warnings),
            taps_used=1,
            delay_samples=0,
            fft_size=0,
        )

    delay = target_delay_samples(taps_used)

    # --- 3. FFT-RUUDUKKO ---
    fft_size = _next_pow2(max(MIN_FFT_SIZE, taps_used * design_oversample(taps_used)))
    if fft_size > MAX_FFT_SIZE:
        warnings.append(f"FFT size capped at {MAX_FFT_SIZE} for performance; ripple may increase.")
        fft_size = MAX_FFT_SIZE
    nyq_bin = fft_size // 2

    k = np.arange(nyq_bin + 1)
    freqs = k / fft_size * fs
    w = 2.0 * np.pi * k / fft_size

    # --- 4. KETJUN VASTE & PAINOT ---
    H = np.asarray(chain_response(filters, freqs, fs), dtype=complex)
    mag = np.abs(H)

    weight = band_weight(freqs, low_hz, high_hz, settings.transition_octaves, nyquist)
    weight = weight * magnitude_weight(mag, settings.magnitude_threshold_db, settings.magnitude_transition_db)
    # Real FIR: DC and Nyquist must stay real
    weight[0] = 0.0
    weight[-1] = 0.0

    n_singular = int(np.count_nonzero((mag < NEAR_SINGULAR_MAG) & (weight > 0)))
    if n_singular:
        warnings.append(
            f"|H(f)| is near zero at {n_singular} design bins; phase inversion is ill-defined there."
        )

    # Principal angle of conj(H)/|H|; undefined phase -> 0
    inv_angle = np.where(mag > INVERSE_EPS, np.angle(np.conj(H)), 0.0)

    # --- 5. KORJAUSSPEKTRI (viive + painotettu käänteisvaihe) ---
    total_angle = -w * delay + weight * inv_angle
    spec = np.exp(1j * total_angle)
    spec[0] = spec[0].real
    spec[-1] = spec[-1].real

    ir = scipy.fft.irfft(spec, n=fft_size)

    # --- 6. PÄÄKEILA INDEKSIIN D & KATKAISU ---
    peak_idx = int(np.argmax(np.abs(ir)))
    taps = np.roll(ir, delay - peak_idx)[:taps_used].copy()

    # --- 7. IKKUNA ---
    taps *= generate_window(taps_used, settings.window, settings.kaiser_beta)

    # --- 8. NORMALISOINTI ---
    if settings.normalize:
        peak, _ = find_fir_peak(taps)
        if peak > 0:
            taps /= peak
        else:
            warnings.append("Normalization skipped (peak tap is 0).")

    logger.info(
        f"Phase correction: {len(filters)} filters, {taps_used} taps, D={delay}, "
        f"FFT {fft_size}, band {low_hz:.1f}-{high_hz:.1f} Hz, window {settings.window}"
    )
    for msg in warnings:
        logger.debug(f"Design warning: {msg}")

    return DesignResult(
        taps=taps,
        warnings=tuple(warnings),
        taps_used=taps_used,
        delay_samples=delay,
        fft_size=fft_size,
    )


def design_preview(sample_rate, settings: FirDesignSettings, selected_filters):
    """
    Resolve the tap count from the settings and design.
    Configuration errors come back as DesignResult.error instead of raising.
    """
    warnings = []
    try:
        fs = _validated_sample_rate(sample_rate)
        taps = effective_tap_count(settings, fs)
        requested = requested_tap_count(settings, fs)
        if not (1 <= requested <= MAX_FIR_TAPS):
            warnings.append(f"Requested length {requested:g} taps clamped to {taps}.")
        result = design_phase_correction(fs, settings, selected_filters, taps)
    except ValueError as e:
        logger.warning(f"Phase correction design failed: {e}")
        return DesignResult(taps=None, error=str(e))

    if not warnings:
        return result
    return DesignResult(
        taps=result.taps,
        warnings=tuple(warnings) + result.warnings,
        taps_used=result.taps_used,
        delay_samples=result.delay_samples,
        fft_size=result.fft_size,
    )


def fir_magnitude_at(taps, sample_rate, f):
    """|H(e^jw)| of `taps` at one frequency, direct DTFT."""
    h = np.asarray(taps, dtype=float).ravel()
    if h.size == 0:
        return 0.0
    w = 2.0 * np.pi * float(f) / float(sample_rate)
    return float(np.abs(np.sum(h * np.exp(-1j * w * np.arange(h.size)))))


def design_fir(shape, sample_rate, taps, f1, f2=None, window="Hann", kaiser_beta=None, normalize=False):
    """
    Windowed-sinc FIR: Lowpass/Highpass (cutoff f1) or Bandpass/Bandstop (f1..f2).
    With normalize the gain is 1.0 at the passband reference (DC, Nyquist or band centre).
    """
    n_taps = max(1, int(np.floor(taps)))
    fs = _validated_sample_rate(sample_rate)
    if f1 is None or not np.isfinite(f1) or f1 <= 0:
        raise ValueError("f1 must be > 0")
    if shape not in FIR_SHAPES:
        raise ValueError(f"Unsupported FIR shape: {shape}")
    if shape in ("Bandpass", "Bandstop") and f2 is None:
        raise ValueError(f"f2 is required for {shape}")

    nyquist = fs / 2.0
    f1 = min(max(float(f1), 0.0), nyquist)
    f2 = None if f2 is None else min(max(float(f2), 0.0), nyquist)

    m = (n_taps - 1) / 2.0
    x = np.arange(n_taps) - m

    def lp(fc):
        return 2.0 * fc * np.sinc(2.0 * fc * x)

    delta = np.zeros(n_taps)
    delta[int(round(m))] = 1.0

    fc1 = f1 / fs
    if shape == "Lowpass":
        ideal = lp(fc1)
    elif shape == "Highpass":
        ideal = delta - lp(fc1)
    else:
        fc2 = f2 / fs
        lo, hi = min(fc1, fc2), max(fc1, fc2)
        bp = lp(hi) - lp(lo)
        ideal = bp if shape == "Bandpass" else delta - bp

    h = ideal * generate_window(n_taps, window, kaiser_beta)

    if normalize:
        if shape in ("Lowpass", "Bandstop"):
            ref = 0.0
        elif shape == "Highpass":
            ref = nyquist
        else:
            ref = (f1 + f2) / 2.0
        mag = fir_magnitude_at(h, fs, ref)
        if mag > 0:
            h = h / mag
    return h
