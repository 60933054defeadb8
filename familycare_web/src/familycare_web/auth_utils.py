# src/familycare_web/auth_utils.py
import logging
import typing
from dataclasses import dataclass
from urllib.parse import quote, urlencode

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from . import messages
from .config import Settings
from .identity_client import IdentityProviderClient
from .session_codec import SessionCodec
from .session_data import Session
from .session_store import CookieSessionStore

if typing.TYPE_CHECKING:
    from .oauth_callback import OAuthCallbackHandler
    from .session_manager import SessionManager

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth"
LANDING_PATH = "/dashboard"


@dataclass
class AuthServices:
    """Per-process auth components, built once from the Settings in create_app()."""
    settings: Settings
    codec: SessionCodec
    identity_client: IdentityProviderClient
    session_manager: "SessionManager"
    callback_handler: "OAuthCallbackHandler"


def get_auth_services(request: Request) -> AuthServices:
    return request.app.state.auth


# --- Redirect helpers ---

def build_login_redirect(
    mode: str = "login",
    error: typing.Optional[str] = None,
    message: typing.Optional[str] = None,
) -> str:
    """
    Builds the auth entry point URL. Messages are percent-encoded with %20 for
    spaces so they survive being echoed back into the page untouched.
    """
    params = {"mode": mode}
    if error:
        params["error"] = error
    if message:
        params["message"] = message
    return f"{LOGIN_PATH}?{urlencode(params, quote_via=quote)}"


def redirect_to(url: str) -> RedirectResponse:
    # 303 so browsers follow a form POST with a GET
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def as_form_string(value: typing.Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def store_for(request: Request, response: Response, services: AuthServices) -> CookieSessionStore:
    return CookieSessionStore(request.cookies, response, secure=services.settings.is_production)


# --- Dependencies ---

async def get_optional_session(request: Request, response: Response) -> typing.Optional[Session]:
    """
    Resolves the session, refreshing it if expired. Cookie updates are written to the
    dependency Response, which FastAPI merges into the route's response.
    """
    services = get_auth_services(request)
    return await services.session_manager.resolve(store_for(request, response, services))


async def require_session(request: Request, response: Response) -> Session:
    """
    Like get_optional_session, but never returns None: an unauthenticated caller is
    redirected to the login page with a message instead.
    """
    session = await get_optional_session(request, response)
    if session is not None:
        return session

    logger.info("No usable session for %s. Redirecting to login.", request.url.path)
    headers = {"Location": build_login_redirect(error=messages.LOGIN_REQUIRED)}
    # Carry the session cookie deletion issued while resolving, if any
    set_cookie = response.headers.get("set-cookie")
    if set_cookie:
        headers["Set-Cookie"] = set_cookie
    raise HTTPException(
        status_code=status.HTTP_303_SEE_OTHER,
        detail=messages.LOGIN_REQUIRED,
        headers=headers,
    )
