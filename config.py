# =============================================================================
# Huely - Centralized Configuration
# =============================================================================
# Provides a single Config dataclass containing all tunable parameters for
# the capture pipeline and the vision client. Parameters are overridable via
# environment variables with the HUELY_ prefix
# (e.g., HUELY_MAX_ATTEMPTS=5, HUELY_CAPTURE_DIR=/var/tmp/huely).
# =============================================================================

import os
import tempfile
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional


def _default_capture_dir() -> str:
    """Working directory for capture artifacts inside the system temp dir."""
    return os.path.join(tempfile.gettempdir(), "huely-captures")


def _default_credentials_path() -> str:
    """Per-user credential file (~/.huely/config.json)."""
    return str(Path.home() / ".huely" / "config.json")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """
    Centralized configuration for Huely.

    All fields can be overridden via environment variables prefixed with HUELY_.
    """

    # -- Capture --
    capture_dir: str = field(default_factory=_default_capture_dir)
    capture_width: int = 1280
    capture_height: int = 720
    capture_quality: int = 100  # Passed to the native tool
    capture_timeout_seconds: float = 30.0

    # -- Warm-up (fswebcam / embedded boards) --
    warmup_skip_frames: int = 20
    warmup_delay_seconds: int = 1
    brightness: int = 60
    contrast: int = 15
    gamma: int = 100

    # -- Normalization --
    jpeg_quality: int = 95  # Pillow re-encode quality for BMP/PPM/PNG
    freshness_seconds: float = 5.0

    # -- Artifact housekeeping --
    sweep_age_seconds: float = 30.0
    retention_seconds: float = 300.0

    # -- Retry policy --
    max_attempts: int = 3
    retry_settle_seconds: float = 1.0

    # -- Frame-quality guard (byte-sampling heuristic) --
    dark_sample_offset: int = 100
    dark_sample_size: int = 1000
    dark_byte_threshold: int = 20
    dark_fraction_threshold: float = 0.9

    # -- Vision service --
    api_base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    max_tokens: int = 1500
    temperature: float = 0.7
    request_timeout_seconds: float = 60.0
    request_max_retries: int = 3

    # -- Credentials --
    credentials_path: str = field(default_factory=_default_credentials_path)

    # -- Logging --
    debug: bool = False

    def __post_init__(self):
        """Apply environment variable overrides."""
        self._apply_env_overrides()

    def _apply_env_overrides(self):
        """
        Override config fields from environment variables.

        Looks for HUELY_<FIELD_NAME_UPPERCASE> environment variables and
        applies them with the field's declared type.
        """
        converters = {int: int, float: float, str: str, bool: _parse_bool}
        for f in fields(self):
            env_key = f"HUELY_{f.name.upper()}"
            env_value = os.environ.get(env_key)
            if env_value is None:
                continue
            field_type = f.type if isinstance(f.type, type) else type(getattr(self, f.name))
            convert = converters.get(field_type, str)
            setattr(self, f.name, convert(env_value))


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Return the singleton Config instance, creating it on first call.

    Returns:
        Config: The global configuration object.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance
