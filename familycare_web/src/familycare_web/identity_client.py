# src/familycare_web/identity_client.py

import logging
import time
import typing
from datetime import datetime, timezone
from urllib.parse import urlencode

import httpx

from . import messages
from .config import Settings
from .session_data import PendingConfirmation, Session, SignUpResult

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10.0

# Keys the identity provider may put its human-readable error under, in order of preference
ERROR_MESSAGE_KEYS = ("error_description", "msg", "message", "error")


class IdentityError(Exception):
    """Any failure reported by, or while talking to, the identity provider."""

    def __init__(self, message: str, status_code: typing.Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class IdentityProviderError(IdentityError):
    """The identity provider rejected the request, or could not be reached."""


class IdentityContractError(IdentityError):
    """A success response was missing fields every session response must carry."""


def extract_error_message(payload: typing.Any) -> str:
    if isinstance(payload, dict):
        for key in ERROR_MESSAGE_KEYS:
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return messages.IDENTITY_REQUEST_FAILED


def _is_representable(timestamp: int) -> bool:
    # The session cookie's Expires attribute needs a real calendar date
    try:
        datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        return False
    return True


class IdentityProviderClient:
    """
    Client for the hosted identity provider's token endpoints (Supabase GoTrue REST contract).
    Every operation is a single POST with no retry; each normalises the response into a Session
    or raises an IdentityError.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: typing.Optional[httpx.AsyncClient] = None,
        clock: typing.Callable[[], float] = time.time,
    ):
        self._settings = settings
        self._http_client = http_client
        self._clock = clock

    # --- Session normalisation ---

    def _to_session(self, payload: typing.Any) -> Session:
        if not isinstance(payload, dict):
            raise IdentityContractError(messages.SESSION_TOKENS_MISSING)

        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        expires_in = payload.get("expires_in")
        user = payload.get("user") if isinstance(payload.get("user"), dict) else {}
        user_id = user.get("id")

        if (
            not isinstance(access_token, str) or not access_token
            or not isinstance(refresh_token, str) or not refresh_token
            or isinstance(expires_in, bool) or not isinstance(expires_in, int) or expires_in <= 0
            or not isinstance(user_id, str) or not user_id
        ):
            raise IdentityContractError(messages.SESSION_TOKENS_MISSING)

        expires_at = int(self._clock()) + expires_in
        if not _is_representable(expires_at):
            raise IdentityContractError(messages.SESSION_TOKENS_MISSING)

        email = user.get("email")
        return Session(
            user_id=user_id,
            email=email if isinstance(email, str) else "",
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )

    # --- Transport ---

    async def _post_auth(self, endpoint: str, body: typing.Dict[str, str]) -> typing.Dict[str, typing.Any]:
        url = f"{self._settings.auth_base_url}{endpoint}"
        headers = {
            "Content-Type": "application/json",
            "apikey": self._settings.SUPABASE_ANON_KEY,
        }

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, headers=headers, json=body, timeout=REQUEST_TIMEOUT_SECONDS)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, headers=headers, json=body, timeout=REQUEST_TIMEOUT_SECONDS)
        except httpx.RequestError as e:
            logger.warning("Request to identity provider failed (%s): %s", endpoint, e)
            raise IdentityProviderError(messages.IDENTITY_UNREACHABLE) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = extract_error_message(payload)
            logger.info("Identity provider rejected %s with %s: %s", endpoint, response.status_code, message)
            raise IdentityProviderError(message, status_code=response.status_code)

        return payload if isinstance(payload, dict) else {}

    # --- Operations ---

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        payload = await self._post_auth("/token?grant_type=password", {"email": email, "password": password})
        return self._to_session(payload)

    async def sign_up_with_password(self, email: str, password: str) -> SignUpResult:
        payload = await self._post_auth("/signup", {"email": email, "password": password})
        if not payload.get("access_token"):
            # Email confirmation pending, no tokens issued yet
            return PendingConfirmation(email=email)
        return self._to_session(payload)

    async def exchange_code_for_session(self, auth_code: str, code_verifier: str) -> Session:
        payload = await self._post_auth(
            "/token?grant_type=pkce",
            {"auth_code": auth_code, "code_verifier": code_verifier},
        )
        return self._to_session(payload)

    async def refresh_session(self, refresh_token: str) -> Session:
        payload = await self._post_auth("/token?grant_type=refresh_token", {"refresh_token": refresh_token})
        return self._to_session(payload)

    def build_authorize_url(self, provider: str, code_challenge: str, state: str, redirect_to: str) -> str:
        query = urlencode({
            "provider": provider,
            "code_challenge": code_challenge,
            "code_challenge_method": "s256",
            "state": state,
            "redirect_to": redirect_to,
        })
        return f"{self._settings.auth_base_url}/authorize?{query}"
