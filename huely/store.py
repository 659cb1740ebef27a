# =============================================================================
# Huely - Capture Artifact Store
# =============================================================================
# Owns the working directory where capture artifacts live. Every attempt gets
# a session identifier that is embedded in its filenames:
#
#   capture_temp_<session>[.<ext>]   raw output of the native tool
#   capture_<session>.jpeg           normalized JPEG handed to the caller
#
# Files of other sessions are only ever removed by sweep(), which is bounded
# by age and never touches a file younger than the requested window.
# =============================================================================

import logging
import os
import random
import string
import time
from dataclasses import dataclass
from typing import List, Optional

from huely.errors import NormalizationError

logger = logging.getLogger(__name__)

ARTIFACT_PREFIX = "capture_"
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def new_session_id() -> str:
    """Return ``<epoch-ms>_<6 random base-36 chars>``."""
    timestamp = int(time.time() * 1000)
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=6))
    return f"{timestamp}_{suffix}"


@dataclass(frozen=True)
class ArtifactHandle:
    """Paths reserved for one capture attempt."""

    session_id: str
    raw_path: str
    final_path: str


class FileArtifactStore:
    """
    Artifact storage backed by a directory on disk.

    Args:
        directory: Working directory for artifacts; created if missing.
    """

    def __init__(self, directory: str):
        self._directory = directory
        os.makedirs(self._directory, exist_ok=True)

    @property
    def directory(self) -> str:
        return self._directory

    def put(self, session_id: str, raw_extension: str = "") -> ArtifactHandle:
        """Reserve the raw and final paths for ``session_id``."""
        os.makedirs(self._directory, exist_ok=True)
        raw_name = f"{ARTIFACT_PREFIX}temp_{session_id}{raw_extension}"
        final_name = f"{ARTIFACT_PREFIX}{session_id}.jpeg"
        return ArtifactHandle(
            session_id=session_id,
            raw_path=os.path.join(self._directory, raw_name),
            final_path=os.path.join(self._directory, final_name),
        )

    def resolve(self, handle: ArtifactHandle) -> bytes:
        """
        Read the normalized artifact for ``handle``.

        Raises:
            NormalizationError: If the final file is missing or unreadable.
        """
        try:
            with open(handle.final_path, "rb") as f:
                return f.read()
        except OSError as exc:
            raise NormalizationError(
                f"Could not read artifact {handle.final_path}: {exc}"
            ) from exc

    def session_files(self, session_id: str) -> List[str]:
        """Paths of every artifact tagged with ``session_id``."""
        return [
            os.path.join(self._directory, name)
            for name in self._list()
            if name.startswith(ARTIFACT_PREFIX) and session_id in name
        ]

    def discard(self, session_id: str) -> int:
        """Delete every artifact of ``session_id``. Returns the count removed."""
        removed = 0
        for path in self.session_files(session_id):
            if self._remove(path):
                removed += 1
        if removed:
            logger.debug("Discarded %d artifact(s) of session %s", removed, session_id)
        return removed

    def sweep(self, older_than: float, now: Optional[float] = None) -> int:
        """
        Delete artifacts whose modification time is more than ``older_than``
        seconds in the past.

        Returns:
            The number of files removed.
        """
        now = time.time() if now is None else now
        removed = 0
        for name in self._list():
            if not name.startswith(ARTIFACT_PREFIX):
                continue
            path = os.path.join(self._directory, name)
            try:
                age = now - os.stat(path).st_mtime
            except FileNotFoundError:
                continue
            if age > older_than and self._remove(path):
                removed += 1

        if removed:
            logger.debug(
                "Swept %d artifact(s) older than %.0fs from %s",
                removed, older_than, self._directory,
            )
        return removed

    def _list(self) -> List[str]:
        try:
            return sorted(os.listdir(self._directory))
        except FileNotFoundError:
            return []

    def _remove(self, path: str) -> bool:
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Could not remove %s: %s", path, exc)
            return False
