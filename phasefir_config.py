# phasefir_config.py
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

import numpy as np

from models import (
    FirDesignSettings,
    MAX_FIR_TAPS,
    SETTINGS_VERSION,
    TAP_MODES,
    WINDOW_TYPES,
)

logger = logging.getLogger("PhaseFIR.config")

SETTINGS_FILE = "fir_phase_correction.json"

# Stored key (dashboard metadata, camelCase) -> FirDesignSettings field
KEY_MAP = {
    "previewEnabled": "preview_enabled",
    "tapMode": "tap_mode",
    "maxLatencyMs": "max_latency_ms",
    "taps": "taps",
    "bandLowHz": "band_low_hz",
    "bandHighHz": "band_high_hz",
    "transitionOctaves": "transition_octaves",
    "magnitudeThresholdDb": "magnitude_threshold_db",
    "magnitudeTransitionDb": "magnitude_transition_db",
    "phaseHideBelowDb": "phase_hide_below_db",
    "window": "window",
    "kaiserBeta": "kaiser_beta",
    "normalize": "normalize",
    "selectedFilterNames": "selected_filter_names",
}

DEFAULT_SETTINGS: Dict[str, Any] = {
    "version": SETTINGS_VERSION,
    "previewEnabled": True,
    "tapMode": "latency",
    "maxLatencyMs": 50.0,
    "taps": 2049,
    "bandLowHz": 20.0,
    "bandHighHz": 20000.0,
    "transitionOctaves": 0.25,
    "magnitudeThresholdDb": -30.0,
    "magnitudeTransitionDb": 12.0,
    "phaseHideBelowDb": -80.0,
    "window": "Hann",
    "kaiserBeta": 8.6,
    "normalize": True,
    "selectedFilterNames": None,
}

_BOOL_KEYS = ("previewEnabled", "normalize")

# Sane ranges; values outside are clamped, never rejected
SETTINGS_CLAMPS = {
    "maxLatencyMs": (0.0, 5000.0),
    "taps": (1, MAX_FIR_TAPS),
    "transitionOctaves": (0.0, 4.0),
    "magnitudeTransitionDb": (0.0, 60.0),
    "kaiserBeta": (0.0, 50.0),
}


def _to_float(x, default: float) -> float:
    """Parse x as float; if it fails or is non-finite, return default."""
    try:
        v = float(x)
    except Exception:
        return float(default)
    if not np.isfinite(v):
        return float(default)
    return float(v)


def _clamp_float(v, lo: float, hi: float) -> float:
    x = _to_float(v, lo)
    if x < lo:
        return float(lo)
    if x > hi:
        return float(hi)
    return float(x)


def _to_bool(x, default: bool) -> bool:
    # Legacy: checkbox pins saved as []/[True]
    if isinstance(x, list):
        return bool(x)
    if isinstance(x, str):
        return x.strip().lower() in ("true", "1", "yes", "on")
    if isinstance(x, (bool, int, float)):
        return bool(x)
    return bool(default)


def normalize_settings_dict(saved: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge a stored settings record over DEFAULT_SETTINGS.

    Every optional field gets its documented default, so a prior session
    resumes identically. Unknown keys are dropped.
    """
    data = dict(DEFAULT_SETTINGS)
    if not saved:
        return data

    ver = saved.get("version", SETTINGS_VERSION)
    if ver != SETTINGS_VERSION:
        logger.warning(f"Unknown settings version {ver!r}; reading as v{SETTINGS_VERSION}")

    for k in KEY_MAP:
        if k in saved and saved[k] is not None:
            data[k] = saved[k]

    for k in _BOOL_KEYS:
        data[k] = _to_bool(data[k], DEFAULT_SETTINGS[k])

    if data["tapMode"] not in TAP_MODES:
        data["tapMode"] = DEFAULT_SETTINGS["tapMode"]
    if data["window"] not in WINDOW_TYPES:
        logger.warning(f"Unknown window {data['window']!r}; using {DEFAULT_SETTINGS['window']}")
        data["window"] = DEFAULT_SETTINGS["window"]

    for k in ("bandLowHz", "bandHighHz", "magnitudeThresholdDb", "phaseHideBelowDb"):
        data[k] = _to_float(data[k], DEFAULT_SETTINGS[k])

    for k, (lo, hi) in SETTINGS_CLAMPS.items():
        data[k] = _clamp_float(_to_float(data[k], DEFAULT_SETTINGS[k]), float(lo), float(hi))
    data["taps"] = int(round(data["taps"]))

    names = data.get("selectedFilterNames")
    if isinstance(names, str):
        data["selectedFilterNames"] = [names]
    elif isinstance(names, (list, tuple)):
        data["selectedFilterNames"] = [str(n) for n in names]
    elif names is not None:
        logger.warning(f"Ignoring selectedFilterNames of type {type(names).__name__}")
        data["selectedFilterNames"] = None

    data["version"] = SETTINGS_VERSION
    return data


def settings_from_dict(saved: Optional[Mapping[str, Any]]) -> FirDesignSettings:
    data = normalize_settings_dict(saved)
    kwargs = {field: data[key] for key, field in KEY_MAP.items()}
    return FirDesignSettings(**kwargs)


def settings_to_dict(settings: FirDesignSettings) -> Dict[str, Any]:
    """Version-tagged record in the dashboard's storage format."""
    out: Dict[str, Any] = {"version": SETTINGS_VERSION}
    for key, field in KEY_MAP.items():
        v = getattr(settings, field)
        if field == "selected_filter_names" and v is not None:
            v = list(v)
        out[key] = v
    return out


def load_settings_store(path: str = SETTINGS_FILE) -> Dict[str, Dict[str, Any]]:
    """
    Read {filter_name: settings_record} from JSON. Best effort: a missing or
    broken file gives an empty store.
    """
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read settings store {path}: {e}")
        return {}

    if not isinstance(saved, dict):
        logger.warning(f"Settings store {path} is not an object; ignoring")
        return {}

    store = {}
    for name, rec in saved.items():
        if isinstance(rec, dict):
            store[str(name)] = normalize_settings_dict(rec)
    return store


def save_settings_store(store: Mapping[str, Mapping[str, Any]], path: str = SETTINGS_FILE) -> None:
    clean = {str(k): normalize_settings_dict(v) for k, v in (store or {}).items()}
    with open(path, "w", encoding="utf-8") as f:
        json.dump(clean, f, indent=4)
