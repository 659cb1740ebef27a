# =============================================================================
# Huely - Webcam Capture & Vision Analysis Package
# =============================================================================
# This package contains the capture pipeline (device enumeration, native tool
# drivers, normalization, frame-quality guard, orchestration) and the thin
# layers around it: vision client, credential store and terminal session.
# =============================================================================

__version__ = "1.0.0"
