# =============================================================================
# Huely - Capture Orchestrator
# =============================================================================
# Composes driver, normalizer and frame-quality guard into a single capture
# operation that yields one valid, non-degenerate JPEG or a definitive error.
#
# Per attempt:
#   Idle -> Invoking -> Normalizing -> QualityChecking
#        -> Accepted | RetryPending | Failed
#
# Only degenerate (black) frames are retried, with an increasing settle delay
# so the sensor's auto-exposure can converge. Every other failure propagates
# immediately. Files of a rejected attempt are removed before returning.
# =============================================================================

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import Config
from huely.drivers import CameraDriver
from huely.errors import CaptureError, DegenerateFrameError, NormalizationError
from huely.normalize import ImageNormalizer, detect_format
from huely.quality import FrameQualityGuard
from huely.schemas import CaptureArtifact, ImageFormat
from huely.store import FileArtifactStore, new_session_id

logger = logging.getLogger(__name__)


class CaptureState(str, Enum):
    IDLE = "idle"
    INVOKING = "invoking"
    NORMALIZING = "normalizing"
    QUALITY_CHECKING = "quality_checking"
    ACCEPTED = "accepted"
    RETRY_PENDING = "retry_pending"
    FAILED = "failed"


@dataclass(frozen=True)
class CaptureRequest:
    """One attempt of a capture_one() call."""

    device_id: str
    output_directory: str
    attempt_number: int


class CaptureOrchestrator:
    """
    Bounded-retry still capture from a single camera.

    Args:
        driver:     Platform driver that runs the native capture tool.
        config:     Config with retry, freshness and darkness settings.
        store:      Artifact store; defaults to one on ``config.capture_dir``.
        normalizer: Image normalizer; defaults to one built from ``config``.
        guard:      Frame-quality guard; defaults to one built from ``config``.
    """

    def __init__(
        self,
        driver: CameraDriver,
        config: Config,
        store: Optional[FileArtifactStore] = None,
        normalizer: Optional[ImageNormalizer] = None,
        guard: Optional[FrameQualityGuard] = None,
    ):
        self._driver = driver
        self._config = config
        self._store = store or FileArtifactStore(config.capture_dir)
        self._normalizer = normalizer or ImageNormalizer(
            freshness_seconds=config.freshness_seconds,
            jpeg_quality=config.jpeg_quality,
        )
        self._guard = guard or FrameQualityGuard(config)

    @property
    def store(self) -> FileArtifactStore:
        return self._store

    def capture_one(self, device_id: str) -> str:
        """
        Capture one still image from ``device_id``.

        Returns:
            Path of a JPEG that passed the quality guard. The caller owns the
            file and deletes it when done.

        Raises:
            CaptureError: If the tool fails, the output cannot be normalized,
                          or every attempt produced a degenerate frame.
        """
        max_attempts = self._config.max_attempts

        for attempt in range(1, max_attempts + 1):
            request = CaptureRequest(
                device_id=device_id,
                output_directory=self._store.directory,
                attempt_number=attempt,
            )
            try:
                return self._attempt(request)
            except DegenerateFrameError as exc:
                logger.warning("Attempt %d/%d rejected: %s", attempt, max_attempts, exc)
                if attempt < max_attempts:
                    settle = self._config.retry_settle_seconds * attempt
                    logger.debug("Waiting %.1fs for the sensor to settle", settle)
                    time.sleep(settle)

        raise CaptureError(
            f"capture failed after {max_attempts} attempts: "
            "the camera kept returning black frames"
        )

    def _attempt(self, request: CaptureRequest) -> str:
        """Run one attempt; on any failure its files are discarded."""
        self._store.sweep(older_than=self._config.sweep_age_seconds)

        session_id = new_session_id()
        handle = self._store.put(session_id, raw_extension=self._driver.raw_extension)
        self._enter(request, session_id, CaptureState.IDLE)

        try:
            self._enter(request, session_id, CaptureState.INVOKING)
            reported_path = self._driver.invoke(request.device_id, handle.raw_path)

            self._enter(request, session_id, CaptureState.NORMALIZING)
            self._normalizer.normalize(reported_path, session_id, handle.final_path)

            self._enter(request, session_id, CaptureState.QUALITY_CHECKING)
            content = self._store.resolve(handle)
            artifact = CaptureArtifact(
                file_path=handle.final_path,
                content=content,
                format=detect_format(content),
            )
            if artifact.format is not ImageFormat.JPEG:
                raise NormalizationError(
                    f"Normalized artifact is {artifact.format.value}, not JPEG"
                )
            if self._guard.is_degenerate(artifact.content):
                self._enter(request, session_id, CaptureState.RETRY_PENDING)
                raise DegenerateFrameError(
                    "Captured image appears to be black. Camera may need more warm-up time."
                )
        except DegenerateFrameError:
            self._store.discard(session_id)
            raise
        except CaptureError:
            self._enter(request, session_id, CaptureState.FAILED)
            self._store.discard(session_id)
            raise
        except OSError as exc:
            self._enter(request, session_id, CaptureState.FAILED)
            self._store.discard(session_id)
            raise CaptureError(f"Failed to process captured image: {exc}") from exc

        self._enter(request, session_id, CaptureState.ACCEPTED)
        return artifact.file_path

    @staticmethod
    def _enter(request: CaptureRequest, session_id: str, state: CaptureState) -> None:
        logger.debug(
            "Capture %s attempt %d (device=%s): %s",
            session_id, request.attempt_number, request.device_id, state.value,
        )
