"""Shared fixtures and fakes for the FamilyCare web tests."""

import typing

import pytest
from starlette.responses import Response

from familycare_web.config import Settings
from familycare_web.identity_client import IdentityProviderError
from familycare_web.session_codec import SessionCodec
from familycare_web.session_data import PendingConfirmation, Session, SignUpResult
from familycare_web.session_store import CookieSessionStore

NOW = 1_700_000_000
SUPABASE_URL = "https://familycare.supabase.test"


def make_settings(**overrides: typing.Any) -> Settings:
    values: typing.Dict[str, typing.Any] = {
        "SUPABASE_URL": SUPABASE_URL,
        "SUPABASE_ANON_KEY": "anon-key",
        "SESSION_ENCRYPTION_KEY": "correct horse battery staple",
        "APP_ENV": "development",
        "APP_BASE_URL": "http://localhost:8000",
        "OAUTH_PROVIDERS": "google,kakao",
        "PUBLIC_TEST_MODE": "off",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session(**overrides: typing.Any) -> Session:
    values: typing.Dict[str, typing.Any] = {
        "user_id": "user-123",
        "email": "guardian@example.com",
        "access_token": "access-abc",
        "refresh_token": "refresh-abc",
        "expires_at": NOW + 3600,
    }
    values.update(overrides)
    return Session(**values)


def set_cookie_headers(response: Response) -> typing.List[str]:
    return [value.decode("latin-1") for key, value in response.raw_headers if key == b"set-cookie"]


def cookie_header_for(response: Response, name: str) -> typing.Optional[str]:
    for header in set_cookie_headers(response):
        if header.startswith(f"{name}="):
            return header
    return None


class FakeIdentityClient:
    """Stands in for IdentityProviderClient, recording every call."""

    def __init__(
        self,
        refreshed: typing.Optional[Session] = None,
        exchanged: typing.Optional[Session] = None,
        signed_in: typing.Optional[Session] = None,
        signed_up: typing.Optional[SignUpResult] = None,
        error: typing.Optional[Exception] = None,
    ):
        self.refreshed = refreshed
        self.exchanged = exchanged
        self.signed_in = signed_in
        self.signed_up = signed_up
        self.error = error
        self.calls: typing.List[typing.Tuple[str, tuple]] = []

    def _result(self, name: str, args: tuple, value: typing.Any) -> typing.Any:
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error
        return value

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        return self._result("sign_in_with_password", (email, password), self.signed_in)

    async def sign_up_with_password(self, email: str, password: str) -> SignUpResult:
        return self._result("sign_up_with_password", (email, password), self.signed_up or PendingConfirmation(email))

    async def exchange_code_for_session(self, auth_code: str, code_verifier: str) -> Session:
        return self._result("exchange_code_for_session", (auth_code, code_verifier), self.exchanged)

    async def refresh_session(self, refresh_token: str) -> Session:
        return self._result("refresh_session", (refresh_token,), self.refreshed)

    def build_authorize_url(self, provider: str, code_challenge: str, state: str, redirect_to: str) -> str:
        self.calls.append(("build_authorize_url", (provider, code_challenge, state, redirect_to)))
        return f"{SUPABASE_URL}/auth/v1/authorize?provider={provider}&state={state}"


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def codec(settings: Settings) -> SessionCodec:
    return SessionCodec(settings)


@pytest.fixture
def response() -> Response:
    return Response()


@pytest.fixture
def make_store(response: Response) -> typing.Callable[..., CookieSessionStore]:
    def _make(cookies: typing.Optional[typing.Dict[str, str]] = None) -> CookieSessionStore:
        return CookieSessionStore(cookies or {}, response, secure=False)
    return _make


@pytest.fixture
def rejecting_client() -> FakeIdentityClient:
    return FakeIdentityClient(error=IdentityProviderError("Invalid Refresh Token: Already Used", status_code=400))
