"""ID-token credential for calling the engine.

The engine sits behind identity-aware auth: every call carries a Google-signed
ID token whose audience is the engine base URL. One credential is created per
process, acquired at startup and refreshed on expiry.
"""

import asyncio
import threading
from typing import Any, Callable, Optional

import google.auth.exceptions
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import id_token

from relay.logging_config import get_logger

logger = get_logger("auth_service")


class CredentialError(Exception):
    """ID token could not be obtained for the engine audience."""


class EngineCredential:
    def __init__(
        self,
        audience: str,
        credentials: Optional[Any] = None,
        request_factory: Callable[[], Any] = GoogleAuthRequest,
    ):
        self.audience = audience
        self._credentials = credentials
        self._request_factory = request_factory
        self._lock = threading.Lock()

    def acquire(self) -> None:
        """Fetch the first token. Raises CredentialError so startup fails loudly."""
        with self._lock:
            try:
                if self._credentials is None:
                    self._credentials = id_token.fetch_id_token_credentials(
                        self.audience, request=self._request_factory()
                    )
                self._credentials.refresh(self._request_factory())
            except google.auth.exceptions.GoogleAuthError as e:
                raise CredentialError(f"Failed to acquire ID token for {self.audience}: {e}") from e
        logger.info("Engine credential acquired", extra={"context": {"audience": self.audience}})

    def get_token(self) -> str:
        with self._lock:
            if self._credentials is None:
                raise CredentialError("Engine credential used before acquire()")
            if not self._credentials.valid:
                logger.debug("Refreshing engine ID token")
                try:
                    self._credentials.refresh(self._request_factory())
                except google.auth.exceptions.GoogleAuthError as e:
                    raise CredentialError(f"Failed to refresh ID token: {e}") from e
            return self._credentials.token

    async def get_token_async(self) -> str:
        # google-auth refresh is blocking
        return await asyncio.to_thread(self.get_token)
