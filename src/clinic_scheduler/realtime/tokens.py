"""Single-use socket tokens.

A patient fetches a token over the authenticated HTTP session, then presents
it once when opening the WebSocket. The session cookie never travels on the
socket handshake.
"""

import secrets
from functools import lru_cache

from loguru import logger

from clinic_scheduler.cache import CacheBackend, get_cache_backend
from clinic_scheduler.constants import SOCKET_TOKEN_PREFIX
from clinic_scheduler.exceptions import TransientInfraError
from clinic_scheduler.settings import get_settings

TOKEN_BYTES = 32


class EphemeralTokenStore:
    """Token -> subject mapping with a short TTL and single-use consumption."""

    def __init__(self, backend: CacheBackend, ttl_seconds: int = 60, prefix: str = SOCKET_TOKEN_PREFIX):
        self.backend = backend
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    def issue(self, subject_id: str) -> str:
        """Create a token for the subject and return it."""
        token = secrets.token_hex(TOKEN_BYTES)
        try:
            self.backend.set(f"{self.prefix}{token}", subject_id, self.ttl_seconds)
        except TransientInfraError as e:
            # The token is still returned; the socket join will be refused.
            logger.warning("Failed to store socket token for {}: {}", subject_id, e)
        logger.debug("Issued socket token for {} (ttl={}s)", subject_id, self.ttl_seconds)
        return token

    def consume(self, token: str) -> str | None:
        """Return the token's subject and delete the token.

        Returns:
            The subject id, or None when the token is unknown, expired or the
            backend cannot be reached
        """
        if not token:
            return None
        try:
            subject_id = self.backend.pop(f"{self.prefix}{token}")
        except TransientInfraError as e:
            logger.warning("Failed to consume socket token: {}", e)
            return None
        if subject_id is None:
            logger.debug("Socket token rejected (unknown or expired)")
        return subject_id


@lru_cache
def get_token_store() -> EphemeralTokenStore:
    """Get the socket token store singleton."""
    return EphemeralTokenStore(get_cache_backend(), ttl_seconds=get_settings().socket_token_ttl_seconds)
