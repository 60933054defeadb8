# src/familycare_web/session_manager.py

import logging
import time
import typing

from .identity_client import IdentityError, IdentityProviderClient
from .session_codec import SessionCodec
from .session_data import Session
from .session_store import CookieSessionStore

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Resolves the caller's session on every request.

    Unauthenticated: no cookie, or a cookie that does not decode. No network call.
    Valid: decoded and not yet expired. No network call.
    Expired: one refresh against the identity provider. On success the new session is
    persisted and returned; on any failure the cookie is dropped and the caller is
    treated as logged out.
    """

    def __init__(
        self,
        codec: SessionCodec,
        identity_client: IdentityProviderClient,
        clock: typing.Callable[[], float] = time.time,
    ):
        self._codec = codec
        self._identity_client = identity_client
        self._clock = clock

    async def resolve(self, store: CookieSessionStore) -> typing.Optional[Session]:
        session = self._codec.deserialize(store.read_session())
        if session is None:
            return None

        if not session.is_expired(self._clock()):
            return session

        try:
            refreshed = await self._identity_client.refresh_session(session.refresh_token)
        except IdentityError as e:
            logger.warning("Session refresh failed for user %s, clearing session cookie: %s", session.user_id, e)
            self.clear(store)
            return None

        self.persist(store, refreshed)
        logger.info("Session refreshed for user %s", refreshed.user_id)
        return refreshed

    def persist(self, store: CookieSessionStore, session: Session) -> None:
        store.write_session(self._codec.serialize(session), session.expires_at)

    def clear(self, store: CookieSessionStore) -> None:
        store.clear_session()
