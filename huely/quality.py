# =============================================================================
# Huely - Frame-Quality Guard
# =============================================================================
# Cheap heuristic for catching frames taken before a webcam sensor has warmed
# up. It samples a window of the encoded JPEG bytes just past the typical
# header region and counts near-zero bytes; nearly-black frames compress into
# long runs of such bytes.
#
# This is a statistical approximation, not a decode. The offset and window
# depend on the encoder's header size, so both are tunables in Config.
# =============================================================================

import numpy as np

DEFAULT_SAMPLE_OFFSET = 100
DEFAULT_SAMPLE_SIZE = 1000
DEFAULT_DARK_BYTE_THRESHOLD = 20
DEFAULT_DARK_FRACTION_THRESHOLD = 0.9


def dark_fraction(
    data: bytes,
    sample_offset: int = DEFAULT_SAMPLE_OFFSET,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    dark_byte_threshold: int = DEFAULT_DARK_BYTE_THRESHOLD,
) -> float:
    """
    Fraction of sampled bytes below ``dark_byte_threshold``.

    The window starts at ``sample_offset`` and holds at most ``sample_size``
    bytes. Returns 0.0 when the buffer ends before the window starts.
    """
    window = np.frombuffer(data, dtype=np.uint8)[sample_offset:sample_offset + sample_size]
    if window.size == 0:
        return 0.0
    return float(np.count_nonzero(window < dark_byte_threshold)) / window.size


def is_degenerate(
    data: bytes,
    sample_offset: int = DEFAULT_SAMPLE_OFFSET,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    dark_byte_threshold: int = DEFAULT_DARK_BYTE_THRESHOLD,
    dark_fraction_threshold: float = DEFAULT_DARK_FRACTION_THRESHOLD,
) -> bool:
    """True when the frame looks black/blank (sensor not warmed up)."""
    fraction = dark_fraction(data, sample_offset, sample_size, dark_byte_threshold)
    return fraction > dark_fraction_threshold


class FrameQualityGuard:
    """is_degenerate() bound to the thresholds of a Config instance."""

    def __init__(self, config):
        self._sample_offset = config.dark_sample_offset
        self._sample_size = config.dark_sample_size
        self._dark_byte_threshold = config.dark_byte_threshold
        self._dark_fraction_threshold = config.dark_fraction_threshold

    def dark_fraction(self, data: bytes) -> float:
        return dark_fraction(
            data, self._sample_offset, self._sample_size, self._dark_byte_threshold
        )

    def is_degenerate(self, data: bytes) -> bool:
        return self.dark_fraction(data) > self._dark_fraction_threshold
