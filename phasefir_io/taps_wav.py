# phasefir_io/taps_wav.py
import io

import numpy as np
import scipy.io.wavfile

from .taps_txt import compute_tap_stats


def _wav_to_float(sig: np.ndarray) -> np.ndarray:
    """Integer PCM -> float in [-1, 1). 24-bit arrives left-justified in int32."""
    x = np.asarray(sig)
    if x.dtype.kind == "f":
        return x.astype(np.float64)
    if x.dtype == np.uint8:
        return (x.astype(np.float64) - 128.0) / 128.0
    if x.dtype == np.int16:
        return x.astype(np.float64) / 32768.0
    if x.dtype == np.int32:
        return x.astype(np.float64) / 2147483648.0
    raise ValueError(f"Unsupported WAV sample type: {x.dtype}")


def _fmt_bits_per_sample(file_content: bytes):
    """bitsPerSample from the RIFF fmt chunk, or None if it is not found."""
    pos = 12
    while pos + 8 <= len(file_content):
        chunk_id = file_content[pos:pos + 4]
        size = int.from_bytes(file_content[pos + 4:pos + 8], "little")
        if chunk_id == b"fmt " and size >= 16:
            return int.from_bytes(file_content[pos + 22:pos + 24], "little")
        pos += 8 + size + (size & 1)
    return None


def parse_taps_from_wav_bytes(file_content: bytes, channel: int = 0, normalize: bool = False, filename: str = "impulse.wav"):
    """
    Read one channel of a WAV impulse as FIR taps (PCM 8/16/24/32 or float 32/64).
    With normalize the taps are scaled so peak |tap| = 1.0.

    Returns (taps, meta, stats). Raises ValueError for unreadable files or a
    channel index out of range.
    """
    if not file_content or len(file_content) < 12 or file_content[:4] != b"RIFF" or file_content[8:12] != b"WAVE":
        raise ValueError("Invalid WAV: missing RIFF/WAVE header")

    try:
        fs, sig = scipy.io.wavfile.read(io.BytesIO(file_content))
    except (ValueError, EOFError) as e:
        raise ValueError(f"Invalid WAV: {e}") from e

    raw_dtype = np.asarray(sig).dtype
    bits = _fmt_bits_per_sample(file_content)
    sig = _wav_to_float(sig)
    n_channels = 1 if sig.ndim == 1 else int(sig.shape[1])

    ch = int(channel)
    if ch < 0 or ch >= n_channels:
        raise ValueError(f"Invalid WAV: channel {ch} out of range (0-{n_channels - 1})")
    taps = sig if sig.ndim == 1 else sig[:, ch]
    taps = np.ascontiguousarray(taps, dtype=float)
    if taps.size == 0:
        raise ValueError("Invalid WAV: no samples found")

    if normalize:
        peak = float(np.max(np.abs(taps)))
        if peak > 0:
            taps = taps / peak

    meta = {
        "source": "wav",
        "filename": filename,
        "sample_rate": int(fs),
        "channels": n_channels,
        "bit_depth": int(bits or raw_dtype.itemsize * 8),
        "format": "float" if raw_dtype.kind == "f" else "pcm",
    }
    return taps, meta, compute_tap_stats(taps)
