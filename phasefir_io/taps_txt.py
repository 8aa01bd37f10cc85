# phasefir_io/taps_txt.py
import re

import numpy as np

_COMMENT_RE = re.compile(r"(#|//).*$")
# Letters other than e/E mark a header line (e/E kept for 1.5e-3)
_HEADER_RE = re.compile(r"[a-df-zA-DF-Z]")
_NUMBER_RE = re.compile(r"[-+]?\d*\.?\d+(?:[eE][-+]?\d+)?")


def compute_tap_stats(taps):
    arr = np.asarray(taps, dtype=float)
    if arr.size == 0:
        return {"min": 0.0, "max": 0.0, "peak": 0.0}
    return {"min": float(arr.min()), "max": float(arr.max()), "peak": float(np.max(np.abs(arr)))}


def parse_taps_from_text(text, filename="coefficients.txt"):
    """
    Read FIR coefficients from a text export: one value per line, the last
    number on the line wins (index columns are ignored). `#` and `//`
    comments and header lines are skipped.

    Returns (taps, meta, stats). Raises ValueError if no coefficient is found.
    """
    if isinstance(text, (bytes, bytearray)):
        text = text.decode("utf-8", errors="ignore")

    taps = []
    for raw in str(text).splitlines():
        line = _COMMENT_RE.sub("", raw).strip()
        if not line:
            continue
        if _HEADER_RE.search(line):
            continue
        matches = _NUMBER_RE.findall(line)
        if not matches:
            continue
        try:
            v = float(matches[-1])
        except ValueError:
            continue
        if not np.isfinite(v):
            continue
        taps.append(v)

    if not taps:
        raise ValueError("No coefficients found in text")

    arr = np.asarray(taps, dtype=float)
    meta = {"source": "text", "filename": filename}
    return arr, meta, compute_tap_stats(arr)
