"""Persistence of the CAPTCHA exemption cookie between runs."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from common.config import settings

logger = logging.getLogger(__name__)


class StoredCredentials(BaseModel):
    """On-disk layout of the credential file."""

    cookie: Optional[str] = None
    updated_at: Optional[datetime] = None


class CredentialStore:
    """Reads and writes the saved cookie as a small JSON file."""

    def __init__(self, path: Optional[str] = None):
        """
        Initialize the credential store.

        Args:
            path: JSON file location, defaults to settings.credential_store_path
        """
        self.path = Path(path or settings.credential_store_path)

    def _load(self) -> StoredCredentials:
        if not self.path.exists():
            return StoredCredentials()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return StoredCredentials.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"⚠️  Ignoring unreadable credential file {self.path}: {e}")
            return StoredCredentials()

    def get(self) -> Optional[str]:
        """
        Return the saved cookie.

        Returns:
            Cookie string, or None if nothing usable is stored
        """
        return self._load().cookie or None

    def set(self, credential: str) -> None:
        """
        Save a cookie for future runs.

        Args:
            credential: Cookie string to persist

        Raises:
            IOError: If the credential file cannot be written
        """
        stored = StoredCredentials(
            cookie=credential, updated_at=datetime.now(timezone.utc)
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(stored.model_dump_json(indent=2), encoding="utf-8")
            logger.debug(f"Saved credential to {self.path}")
        except OSError as e:
            logger.error(f"❌ Failed to save credential: {e}")
            raise IOError(f"Failed to save credential: {e}") from e
