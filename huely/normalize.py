# =============================================================================
# Huely - Image Normalizer
# =============================================================================
# Native capture tools disagree on where they write, which extension they
# pick and which format they produce (fswebcam: JPEG, imagesnap: JPEG with
# its own extension, CommandCam: BMP, some V4L setups: PPM). The normalizer
# finds the file the tool actually wrote for the current session, rejects
# stale leftovers, and leaves exactly one JPEG at the final path.
# =============================================================================

import logging
import os
import re
import time
from typing import Optional

from PIL import Image

from huely.errors import NormalizationError
from huely.schemas import ImageFormat

logger = logging.getLogger(__name__)

# Probe order when the reported path does not exist ("" = no extension)
CANDIDATE_EXTENSIONS = (".jpg", ".jpeg", ".bmp", ".ppm", ".png", "")

_IMAGE_EXTENSION_RE = re.compile(r"\.(jpg|jpeg|bmp|ppm|png)$", re.IGNORECASE)

_MAGIC_BYTES = (
    (b"\xff\xd8", ImageFormat.JPEG),
    (b"BM", ImageFormat.BMP),
    (b"P6", ImageFormat.PPM),
    (b"\x89PNG", ImageFormat.PNG),
)


def detect_format(data: bytes) -> ImageFormat:
    """Classify ``data`` by its leading magic bytes."""
    for magic, image_format in _MAGIC_BYTES:
        if data.startswith(magic):
            return image_format
    return ImageFormat.UNKNOWN


class ImageNormalizer:
    """
    Converts a raw capture into a validated JPEG.

    Args:
        freshness_seconds: Maximum age of the captured file; older files are
                           treated as leftovers of an earlier capture.
        jpeg_quality:      Pillow quality used when re-encoding to JPEG.
    """

    def __init__(self, freshness_seconds: float = 5.0, jpeg_quality: int = 95):
        self._freshness_seconds = freshness_seconds
        self._jpeg_quality = jpeg_quality

    def resolve_output(self, raw_path: str, session_id: str) -> str:
        """
        Locate the file the capture tool wrote for ``session_id``.

        The reported path is used when it exists. Otherwise each candidate
        extension is appended to its base name, and only a candidate whose
        name carries the session identifier is accepted.

        Raises:
            NormalizationError: If no candidate exists.
        """
        if os.path.exists(raw_path):
            return raw_path

        base_path = _IMAGE_EXTENSION_RE.sub("", raw_path)
        for extension in CANDIDATE_EXTENSIONS:
            candidate = base_path + extension
            if session_id in os.path.basename(candidate) and os.path.exists(candidate):
                logger.debug("Resolved capture output %s -> %s", raw_path, candidate)
                return candidate

        directory = os.path.dirname(raw_path) or "."
        try:
            present = ", ".join(sorted(os.listdir(directory)))
        except OSError:
            present = "<unreadable>"
        raise NormalizationError(
            f"Artifact not found: looked for {raw_path} "
            f"with ID {session_id}. Files in dir: {present}"
        )

    def normalize(
        self,
        raw_path: str,
        session_id: str,
        final_path: str,
        now: Optional[float] = None,
    ) -> str:
        """
        Turn the raw capture into a JPEG at ``final_path``.

        JPEG input is moved unchanged. BMP, PPM and PNG input is decoded and
        re-encoded; the intermediate file is deleted afterwards.

        Args:
            raw_path:   Path reported by the capture tool.
            session_id: Identifier of the current capture attempt.
            final_path: Destination of the normalized JPEG.
            now:        Reference time for the freshness check.

        Returns:
            ``final_path``.

        Raises:
            NormalizationError: If the output is missing, stale or unreadable.
        """
        captured_path = self.resolve_output(raw_path, session_id)
        self._check_fresh(captured_path, now)

        with open(captured_path, "rb") as f:
            data = f.read()
        if not data:
            raise NormalizationError(f"Unreadable artifact: {captured_path} is empty")

        image_format = detect_format(data)
        logger.debug("Capture output %s detected as %s", captured_path, image_format.value)

        if image_format is ImageFormat.JPEG:
            os.replace(captured_path, final_path)
        else:
            self._convert_to_jpeg(captured_path, final_path, image_format)
            os.remove(captured_path)
        return final_path

    def _check_fresh(self, path: str, now: Optional[float]) -> None:
        now = time.time() if now is None else now
        age = now - os.stat(path).st_mtime
        if age > self._freshness_seconds:
            raise NormalizationError(
                f"Stale artifact: captured image is {age * 1000:.0f}ms old, "
                "probably left over from a previous capture."
            )

    def _convert_to_jpeg(self, source: str, destination: str, image_format: ImageFormat) -> None:
        try:
            with Image.open(source) as image:
                image.convert("RGB").save(destination, "JPEG", quality=self._jpeg_quality)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            for path in (destination, source):
                if os.path.exists(path):
                    os.remove(path)
            raise NormalizationError(
                f"Unreadable artifact: could not decode {image_format.value} capture: {exc}"
            ) from exc
        logger.debug("Converted %s capture to JPEG: %s", image_format.value, destination)
