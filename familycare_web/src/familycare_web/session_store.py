# src/familycare_web/session_store.py

import typing
from datetime import datetime, timezone

from starlette.responses import Response

from .session_data import OAuthTransaction, PartialOAuthTransaction

SESSION_COOKIE_NAME = "familycare_auth"
SESSION_COOKIE_MAX_AGE = 60 * 60 * 24 * 7  # 7 days

OAUTH_VERIFIER_COOKIE_NAME = "familycare_oauth_verifier"
OAUTH_STATE_COOKIE_NAME = "familycare_oauth_state"
OAUTH_PROVIDER_COOKIE_NAME = "familycare_oauth_provider"
OAUTH_COOKIE_MAX_AGE = 60 * 10  # 10 minutes

OAUTH_COOKIE_NAMES = (
    OAUTH_VERIFIER_COOKIE_NAME,
    OAUTH_STATE_COOKIE_NAME,
    OAUTH_PROVIDER_COOKIE_NAME,
)

COOKIE_PATH = "/"
COOKIE_SAMESITE = "lax"


class CookieSessionStore:
    """
    Moves the encoded session and the OAuth transaction in and out of cookies.
    Reads come from the incoming request's cookies, writes go onto the outgoing response.
    Knows nothing about the encoding of the values it carries.
    """

    def __init__(self, cookies: typing.Mapping[str, str], response: Response, secure: bool = False):
        self._cookies = cookies
        self._response = response
        self._secure = secure

    @property
    def response(self) -> Response:
        return self._response

    def _set(self, key: str, value: str, max_age: int, expires: typing.Optional[datetime] = None) -> None:
        self._response.set_cookie(
            key,
            value,
            max_age=max_age,
            expires=expires,
            path=COOKIE_PATH,
            httponly=True,
            secure=self._secure,
            samesite=COOKIE_SAMESITE,
        )

    def _delete(self, key: str) -> None:
        self._response.delete_cookie(
            key,
            path=COOKIE_PATH,
            httponly=True,
            secure=self._secure,
            samesite=COOKIE_SAMESITE,
        )

    # --- Session cookie ---

    def read_session(self) -> typing.Optional[str]:
        return self._cookies.get(SESSION_COOKIE_NAME) or None

    def write_session(self, value: str, expires_at: int) -> None:
        # Expires pins the cookie to the credential's own lifetime
        self._set(
            SESSION_COOKIE_NAME,
            value,
            max_age=SESSION_COOKIE_MAX_AGE,
            expires=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        )

    def clear_session(self) -> None:
        self._delete(SESSION_COOKIE_NAME)

    # --- OAuth transaction cookies, always written and cleared together ---

    def write_oauth_transaction(self, transaction: OAuthTransaction) -> None:
        self._set(OAUTH_VERIFIER_COOKIE_NAME, transaction.code_verifier, max_age=OAUTH_COOKIE_MAX_AGE)
        self._set(OAUTH_STATE_COOKIE_NAME, transaction.state, max_age=OAUTH_COOKIE_MAX_AGE)
        self._set(OAUTH_PROVIDER_COOKIE_NAME, transaction.provider, max_age=OAUTH_COOKIE_MAX_AGE)

    def read_oauth_transaction(self) -> PartialOAuthTransaction:
        return PartialOAuthTransaction(
            provider=self._cookies.get(OAUTH_PROVIDER_COOKIE_NAME) or None,
            code_verifier=self._cookies.get(OAUTH_VERIFIER_COOKIE_NAME) or None,
            state=self._cookies.get(OAUTH_STATE_COOKIE_NAME) or None,
        )

    def clear_oauth_transaction(self) -> None:
        for name in OAUTH_COOKIE_NAMES:
            self._delete(name)
