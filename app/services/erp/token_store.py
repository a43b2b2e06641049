"""Bearer token persistence for the ERP integration.

The token lives in a single ``ERP_TOKEN=<token>`` line of an env-style file so
that it survives restarts and is shared by every process pointed at the same
file. The store is a best-effort cache: IO failures are logged and swallowed,
and the ERP remains the authority on whether a token still works.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import get_key, set_key, unset_key

logger = logging.getLogger(__name__)

TOKEN_KEY = "ERP_TOKEN"


class TokenStore:
    """Read/write the ERP bearer token in an env-style side-channel file."""

    def __init__(self, path: str | Path, key: str = TOKEN_KEY):
        self.path = Path(path)
        self.key = key
        self._token: str | None = None

    @staticmethod
    def _clean(value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    def get(self) -> str | None:
        """Return the current token, or None when absent or blank."""
        if self.path.is_file():
            try:
                stored = self._clean(get_key(self.path, self.key))
            except OSError as exc:
                logger.warning("ERP token read failed path=%s error=%s", self.path, exc)
            else:
                if stored is not None:
                    self._token = stored
                    return stored
        # Nothing usable on disk: fall back to the in-memory copy
        return self._clean(self._token)

    def set(self, token: str) -> None:
        token = self._clean(token)
        if token is None:
            logger.warning("Refusing to store blank ERP token")
            return
        self._token = token
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
            set_key(self.path, self.key, token, quote_mode="never")
            logger.info("ERP token stored path=%s length=%d", self.path, len(token))
        except OSError as exc:
            logger.warning("ERP token write failed path=%s error=%s", self.path, exc)

    def clear(self) -> None:
        self._token = None
        if not self.path.is_file():
            return
        try:
            if get_key(self.path, self.key) is not None:
                unset_key(self.path, self.key)
                logger.info("ERP token cleared path=%s", self.path)
        except OSError as exc:
            logger.warning("ERP token clear failed path=%s error=%s", self.path, exc)
