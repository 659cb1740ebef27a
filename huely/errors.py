# =============================================================================
# Huely - Error Taxonomy
# =============================================================================
# Exceptions raised by the capture pipeline and the vision client. Only the
# capture orchestrator decides whether a failure is retried; every other
# component raises and lets the error propagate.
# =============================================================================


class HuelyError(Exception):
    """Base class for every error surfaced to the user."""


class DeviceError(HuelyError):
    """No usable camera device (empty device list, unsupported platform)."""


class CaptureError(HuelyError):
    """The native capture tool failed, timed out, or retries were exhausted."""


class NormalizationError(CaptureError):
    """Captured output is missing, stale, or unreadable."""


class DegenerateFrameError(CaptureError):
    """Frame classified as black/blank; only used inside the retry loop."""


class AnalysisError(HuelyError):
    """The vision service rejected the request or could not be reached."""
