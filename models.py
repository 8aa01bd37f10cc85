from dataclasses import dataclass, field
from typing import Optional, List, Dict, Tuple, Any, Mapping, Sequence, Union

import numpy as np

# Max FIR length accepted by the designer (odd, 2^18 - 1)
MAX_FIR_TAPS = 262143
SETTINGS_VERSION = 1

WINDOW_TYPES = ("Rectangular", "Hann", "Hamming", "Blackman", "Kaiser")
TAP_MODES = ("latency", "taps")

BIQUAD_KINDS = (
    "Lowpass", "Highpass", "LowpassFO", "HighpassFO",
    "Peaking", "Lowshelf", "Highshelf", "LowshelfFO", "HighshelfFO",
    "Notch", "Bandpass", "Allpass", "AllpassFO", "LinkwitzTransform",
    "ButterworthLowpass", "ButterworthHighpass",
    "LinkwitzRileyLowpass", "LinkwitzRileyHighpass",
)

# Filter types that only ever contribute unity in a response preview
PASSTHROUGH_TYPES = ("Volume", "Dither", "Compressor", "NoiseGate", "Loudness", "Conv")


# --- 1. SUODINKETJU (FILTER CHAIN) ---

@dataclass(frozen=True)
class BiquadFilter:
    kind: str                       # Biquad-alatyyppi (Peaking, Lowpass, ...)
    freq: float = 1000.0            # Keski-/rajataajuus (Hz)
    q: float = 0.707                # Q
    gain: float = 0.0               # Vahvistus (dB), peaking/shelf
    slope: float = 12.0             # Shelf-jyrkkyys (dB/okt)
    order: int = 2                  # Butterworth / Linkwitz-Riley -kertaluku
    freq_act: float = 0.0           # LinkwitzTransform: nykyinen resonanssi
    q_act: float = 0.707
    freq_target: float = 0.0        # LinkwitzTransform: tavoiteresonanssi
    q_target: float = 0.707

    type = "Biquad"


@dataclass(frozen=True)
class DiffEqFilter:
    a: Tuple[float, ...] = (1.0,)   # Nimittäjä
    b: Tuple[float, ...] = (1.0,)   # Osoittaja

    type = "DiffEq"


@dataclass(frozen=True)
class GainFilter:
    gain: float = 0.0
    inverted: bool = False
    scale: str = "dB"               # "dB" tai "linear"

    type = "Gain"


@dataclass(frozen=True)
class DelayFilter:
    delay: float = 0.0
    unit: str = "ms"                # "ms", "samples" tai "mm"
    subsample: bool = False

    type = "Delay"


@dataclass(frozen=True)
class PassthroughFilter:
    type: str = "Volume"


FilterVariant = Union[BiquadFilter, DiffEqFilter, GainFilter, DelayFilter, PassthroughFilter]
FilterChainConfig = Tuple[FilterVariant, ...]


@dataclass(frozen=True)
class NamedFilter:
    """A pipeline filter together with its stable configuration name."""
    name: str
    config: FilterVariant


def _f(params: Mapping[str, Any], key: str, default: float) -> float:
    v = params.get(key, default)
    return float(default if v is None else v)


def filter_from_dict(d: Union[Mapping[str, Any], FilterVariant]) -> FilterVariant:
    """
    Parse a CamillaDSP-style filter mapping ({"type": ..., "parameters": {...}})
    into its tagged dataclass. Already-parsed variants are returned as-is.
    """
    if isinstance(d, (BiquadFilter, DiffEqFilter, GainFilter, DelayFilter, PassthroughFilter)):
        return d
    if isinstance(d, NamedFilter):
        return filter_from_dict(d.config)

    ftype = str(d.get("type", "") or "")
    params = d.get("parameters", None) or {}

    if ftype == "Biquad":
        kind = str(params.get("type", "") or "")
        return BiquadFilter(
            kind=kind,
            freq=_f(params, "freq", 1000.0),
            q=_f(params, "q", 0.707),
            gain=_f(params, "gain", 0.0),
            slope=_f(params, "slope", 12.0),
            order=int(params.get("order", 2) or 2),
            freq_act=_f(params, "freq_act", 0.0),
            q_act=_f(params, "q_act", 0.707),
            freq_target=_f(params, "freq_target", 0.0),
            q_target=_f(params, "q_target", 0.707),
        )
    if ftype == "DiffEq":
        a = tuple(float(x) for x in (params.get("a") or ()))
        b = tuple(float(x) for x in (params.get("b") or ()))
        return DiffEqFilter(a=a, b=b)
    if ftype == "Gain":
        return GainFilter(
            gain=_f(params, "gain", 0.0),
            inverted=bool(params.get("inverted", False)),
            scale=str(params.get("scale", "dB") or "dB"),
        )
    if ftype == "Delay":
        return DelayFilter(
            delay=_f(params, "delay", 0.0),
            unit=str(params.get("unit", "ms") or "ms"),
            subsample=bool(params.get("subsample", False)),
        )
    return PassthroughFilter(type=ftype or "Unknown")


def filter_chain_from_dicts(items: Optional[Sequence[Any]]) -> FilterChainConfig:
    return tuple(filter_from_dict(d) for d in (items or ()))


# --- 2. FIR-TAPIT ---

IDENTITY_TAPS: Tuple[float, ...] = (1.0,)


def is_identity_taps(values) -> bool:
    """None/empty counts as identity, as does exactly [1.0]."""
    if values is None:
        return True
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        return True
    return arr.size == 1 and abs(float(arr[0]) - 1.0) < 1e-12


def taps_equal(a, b) -> bool:
    if a is None or b is None:
        return a is None and b is None
    aa = np.asarray(a, dtype=float).ravel()
    bb = np.asarray(b, dtype=float).ravel()
    return aa.shape == bb.shape and bool(np.array_equal(aa, bb))


# --- 3. SUUNNITTELUASETUKSET ---

@dataclass
class FirDesignSettings:

    # --- 1. PITUUS (TAPS / LATENSSI) ---
    tap_mode: str = "latency"             # "latency" tai "taps"
    max_latency_ms: float = 50.0          # Latenssibudjetti (latency-tila)
    taps: int = 2049                      # Pyydetty pituus (taps-tila)

    # --- 2. KORJAUSKAISTA ---
    band_low_hz: float = 20.0
    band_high_hz: float = 20000.0
    transition_octaves: float = 0.25      # Kaistan reunojen siirtymä (okt)

    # --- 3. MAGNITUDIPORTTI ---
    magnitude_threshold_db: float = -30.0 # Tämän alla vaihetta ei korjata
    magnitude_transition_db: float = 12.0 # Pehmeä siirtymä (dB)
    phase_hide_below_db: float = -80.0    # Vaihekäyrän piilotus esikatselussa

    # --- 4. IKKUNA JA NORMALISOINTI ---
    window: str = "Hann"
    kaiser_beta: float = 8.6
    normalize: bool = True

    # --- 5. ISTUNTO ---
    preview_enabled: bool = True
    selected_filter_names: Optional[List[str]] = None  # None = kaikki korjattavat

    version: int = SETTINGS_VERSION


# --- 4. TULOKSET JA TILA ---

@dataclass(frozen=True, eq=False)
class DesignResult:
    taps: Optional[np.ndarray] = None
    error: Optional[str] = None
    warnings: Tuple[str, ...] = ()
    taps_used: int = 0
    delay_samples: int = 0
    fft_size: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.taps is not None


@dataclass
class EditorActionState:
    current: np.ndarray = field(default_factory=lambda: np.array(IDENTITY_TAPS))
    undo_stack: List[np.ndarray] = field(default_factory=list)
    baseline: Optional[np.ndarray] = None
    last_applied: Optional[np.ndarray] = None
    pending_settings: Optional[Dict[str, Any]] = None
