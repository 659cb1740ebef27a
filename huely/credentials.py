# =============================================================================
# Huely - Credential Store
# =============================================================================
# Flat JSON file holding the vision service API key (~/.huely/config.json).
# =============================================================================

import json
import logging
import os
from typing import Optional

from pydantic import ValidationError

from huely.schemas import CredentialFile

logger = logging.getLogger(__name__)

API_KEY_ENV = "OPENAI_API_KEY"


class CredentialStore:
    """
    Reads and writes the API key in a single JSON object.

    A missing or corrupt file reads as empty; other keys already present in
    the file are preserved when it is rewritten.

    Args:
        path: Location of the JSON file.
    """

    def __init__(self, path: str):
        self._path = path
        self._data = self._load()

    @property
    def path(self) -> str:
        return self._path

    def _load(self) -> CredentialFile:
        if not os.path.exists(self._path):
            return CredentialFile()
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                return CredentialFile.model_validate(json.load(f))
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Ignoring unreadable credential file %s: %s", self._path, exc)
            return CredentialFile()

    def _save(self) -> None:
        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(self._data.model_dump(by_alias=True, exclude_none=True), f, indent=2)

    def get_key(self) -> Optional[str]:
        return self._data.openai_api_key or None

    def set_key(self, api_key: str) -> None:
        self._data.openai_api_key = api_key
        self._save()
        logger.debug("Stored API key in %s", self._path)

    def clear_key(self) -> None:
        self._data.openai_api_key = None
        self._save()

    def resolve_key(self) -> Optional[str]:
        """Stored key, else the OPENAI_API_KEY environment variable."""
        return self.get_key() or os.environ.get(API_KEY_ENV) or None
