"""OAuth authorization-code callback handling.

Terminal states of one callback request:

    ERROR_FROM_PROVIDER       the redirect carried ``error``; no exchange attempted
    MISSING_TRANSACTION_DATA  code/state query params or any transaction cookie absent
    UNKNOWN_PROVIDER          provider cookie not in the configured provider set
    STATE_MISMATCH            cookie state != query state; never exchanges
    EXCHANGE_FAILED           the identity provider rejected the code/verifier pair
    SUCCESS                   session written, user sent to the landing page

Every terminal state clears the transaction cookies. Only SUCCESS writes the
session cookie.
"""

import enum
import logging
import secrets
import typing
from dataclasses import dataclass

from . import messages
from .auth_utils import LANDING_PATH, build_login_redirect
from .identity_client import IdentityError, IdentityProviderClient
from .session_data import Session
from .session_manager import SessionManager
from .session_store import CookieSessionStore

logger = logging.getLogger(__name__)


class CallbackState(str, enum.Enum):
    ERROR_FROM_PROVIDER = "error_from_provider"
    MISSING_TRANSACTION_DATA = "missing_transaction_data"
    UNKNOWN_PROVIDER = "unknown_provider"
    STATE_MISMATCH = "state_mismatch"
    EXCHANGE_FAILED = "exchange_failed"
    SUCCESS = "success"


@dataclass(frozen=True)
class CallbackResult:
    state: CallbackState
    redirect_url: str
    message: typing.Optional[str] = None
    session: typing.Optional[Session] = None


class OAuthCallbackHandler:

    def __init__(
        self,
        identity_client: IdentityProviderClient,
        session_manager: SessionManager,
        providers: typing.Iterable[str],
    ):
        self._identity_client = identity_client
        self._session_manager = session_manager
        self._providers = frozenset(providers)

    def _fail(self, store: CookieSessionStore, state: CallbackState, message: str) -> CallbackResult:
        store.clear_oauth_transaction()
        logger.info("OAuth callback ended in %s: %s", state.value, message)
        return CallbackResult(state=state, redirect_url=build_login_redirect(error=message), message=message)

    async def handle(self, query: typing.Mapping[str, str], store: CookieSessionStore) -> CallbackResult:
        error = query.get("error")
        if error:
            return self._fail(store, CallbackState.ERROR_FROM_PROVIDER, query.get("error_description") or error)

        code = query.get("code")
        returned_state = query.get("state")
        transaction = store.read_oauth_transaction().complete()

        if not code or not returned_state or transaction is None:
            return self._fail(store, CallbackState.MISSING_TRANSACTION_DATA, messages.OAUTH_TRANSACTION_EXPIRED)

        if transaction.provider not in self._providers:
            return self._fail(store, CallbackState.UNKNOWN_PROVIDER, messages.OAUTH_UNKNOWN_PROVIDER)

        if not secrets.compare_digest(transaction.state.encode("utf-8"), returned_state.encode("utf-8")):
            logger.warning("OAuth state mismatch for provider %s - possible CSRF or replay", transaction.provider)
            return self._fail(store, CallbackState.STATE_MISMATCH, messages.OAUTH_STATE_MISMATCH)

        try:
            session = await self._identity_client.exchange_code_for_session(code, transaction.code_verifier)
        except IdentityError as e:
            return self._fail(store, CallbackState.EXCHANGE_FAILED, e.message or messages.OAUTH_EXCHANGE_FAILED)

        store.clear_oauth_transaction()
        self._session_manager.persist(store, session)
        logger.info("OAuth sign-in via %s succeeded for user %s", transaction.provider, session.user_id)
        return CallbackResult(state=CallbackState.SUCCESS, redirect_url=LANDING_PATH, session=session)
