"""
API token storage for RailBar.

Provides a pluggable token store. The polling engine treats the token as an
opaque string; an empty or missing token means "unconfigured".
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..config import Settings

logger = structlog.get_logger(__name__)


class TokenStore(ABC):
    """Abstract base class for token storage."""

    @abstractmethod
    def load(self) -> str | None:
        """
        Load the stored token.

        Returns:
            The token, or None if nothing is stored
        """

    @abstractmethod
    def save(self, token: str) -> None:
        """
        Store a token. An empty string clears it.

        Args:
            token: API token
        """


class InMemoryTokenStore(TokenStore):
    """Token held in process memory only."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def load(self) -> str | None:
        return self._token

    def save(self, token: str) -> None:
        self._token = token or None


class FileTokenStore(TokenStore):
    """Token persisted to a file readable only by the current user."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> str | None:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read token file {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e
        return token or None

    def save(self, token: str) -> None:
        try:
            if not token:
                self.path.unlink(missing_ok=True)
                logger.info("API token cleared", path=str(self.path))
                return

            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(token)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot write token file {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e
        logger.info("API token saved", path=str(self.path))


class TokenStoreFactory:
    """Factory for creating token stores from settings."""

    @staticmethod
    def create_token_store(settings: "Settings") -> TokenStore:
        """
        Create a token store.

        A token given through the environment takes precedence and is kept
        in memory; otherwise the token file is used.
        """
        if settings.railway_api_token:
            return InMemoryTokenStore(settings.railway_api_token)
        return FileTokenStore(settings.token_file)
