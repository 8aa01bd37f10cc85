# phasefir_io/taps_loader.py
import os

from .taps_txt import parse_taps_from_text
from .taps_wav import parse_taps_from_wav_bytes


def parse_taps_from_upload(file_dict, *, channel: int = 0, normalize: bool = False):
    """
    Dispatch an uploaded file ({"filename": ..., "content": bytes}) to the WAV
    or text reader by extension, falling back to the RIFF header.
    """
    if not file_dict or file_dict.get("content") is None:
        raise ValueError("No file content")
    name = str(file_dict.get("filename", "") or "")
    content = file_dict["content"]
    ext = os.path.splitext(name)[1].lower()

    is_riff = isinstance(content, (bytes, bytearray)) and content[:4] == b"RIFF"
    if ext == ".wav" or is_riff:
        return parse_taps_from_wav_bytes(bytes(content), channel=channel, normalize=normalize, filename=name or "impulse.wav")
    return parse_taps_from_text(content, filename=name or "coefficients.txt")


def parse_taps_from_path(path, *, channel: int = 0, normalize: bool = False):
    p = str(path).strip().strip('"').strip("'")
    with open(p, "rb") as f:
        content = f.read()
    return parse_taps_from_upload({"filename": os.path.basename(p), "content": content}, channel=channel, normalize=normalize)
