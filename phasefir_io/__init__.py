from .taps_txt import compute_tap_stats, parse_taps_from_text
from .taps_wav import parse_taps_from_wav_bytes
from .taps_loader import parse_taps_from_path, parse_taps_from_upload
