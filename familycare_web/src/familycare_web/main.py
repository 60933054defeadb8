# src/familycare_web/main.py

import logging
import typing
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, FastAPI, Form, Request, Response, status
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from . import messages
from .auth_utils import (
    AuthServices,
    LANDING_PATH,
    as_form_string,
    build_login_redirect,
    get_auth_services,
    get_optional_session,
    redirect_to,
    require_session,
    store_for,
)
from .config import Settings, load_env_file
from .identity_client import IdentityError, IdentityProviderClient
from .oauth_callback import OAuthCallbackHandler
from .pkce import generate_oauth_state, generate_pkce_pair
from .session_codec import SessionCodec
from .session_data import OAuthTransaction, PendingConfirmation, Session
from .session_manager import SessionManager
from .session_store import SESSION_COOKIE_NAME

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

PUBLIC_TEST_USER_ID = "00000000-0000-4000-8000-000000000001"
PUBLIC_TEST_EMAIL = "guest@familycare.test"

PROTECTED_PATH_PREFIXES = ("/dashboard", "/settings", "/api/dashboard")


class ProtectedPathMiddleware(BaseHTTPMiddleware):
    """
    Cheap gate in front of protected pages: no session cookie at all means straight to login.
    Whether the cookie holds a usable session is decided later by the session dependencies.
    """

    async def dispatch(self, request, call_next):
        path = request.url.path
        if path.startswith(PROTECTED_PATH_PREFIXES) and not request.cookies.get(SESSION_COOKIE_NAME):
            logger.info("Protected path %s requested without a session cookie. Redirecting to login.", path)
            return RedirectResponse(url=build_login_redirect(), status_code=status.HTTP_307_TEMPORARY_REDIRECT)
        return await call_next(request)


router = APIRouter()


def _not_configured_redirect(mode: str = "login") -> RedirectResponse:
    return redirect_to(build_login_redirect(mode=mode, error=messages.IDENTITY_NOT_CONFIGURED))


# --- Authentication Routes ---

@router.get("/auth")
async def auth_page(
        request: Request,
        mode: str = "login",
        error: typing.Optional[str] = None,
        message: typing.Optional[str] = None,
):
    services = get_auth_services(request)
    return {
        "mode": "signup" if mode == "signup" else "login",
        "error": error,
        "message": message,
        "providers": list(services.settings.OAUTH_PROVIDERS),
        "identityProviderConfigured": services.settings.is_identity_provider_configured,
    }


@router.post("/auth/login")
async def login(request: Request, email: str = Form(""), password: str = Form("")):
    services = get_auth_services(request)
    if not services.settings.is_identity_provider_configured:
        return _not_configured_redirect()

    email = as_form_string(email).lower()
    password = as_form_string(password)
    if not email or not password:
        return redirect_to(build_login_redirect(error=messages.CREDENTIALS_REQUIRED))

    try:
        session = await services.identity_client.sign_in_with_password(email, password)
    except IdentityError as e:
        return redirect_to(build_login_redirect(error=e.message))
    except Exception:
        logger.exception("Unexpected error during password sign-in")
        return redirect_to(build_login_redirect(error=messages.GENERIC_FAILURE))

    response = redirect_to(LANDING_PATH)
    services.session_manager.persist(store_for(request, response, services), session)
    logger.info("Password sign-in succeeded for user %s", session.user_id)
    return response


@router.post("/auth/signup")
async def signup(request: Request, email: str = Form(""), password: str = Form("")):
    services = get_auth_services(request)
    if not services.settings.is_identity_provider_configured:
        return _not_configured_redirect(mode="signup")

    email = as_form_string(email).lower()
    password = as_form_string(password)
    if not email or not password:
        return redirect_to(build_login_redirect(mode="signup", error=messages.CREDENTIALS_REQUIRED))
    if len(password) < MIN_PASSWORD_LENGTH:
        return redirect_to(build_login_redirect(mode="signup", error=messages.PASSWORD_TOO_SHORT))

    try:
        result = await services.identity_client.sign_up_with_password(email, password)
    except IdentityError as e:
        return redirect_to(build_login_redirect(mode="signup", error=e.message))
    except Exception:
        logger.exception("Unexpected error during password sign-up")
        return redirect_to(build_login_redirect(mode="signup", error=messages.GENERIC_FAILURE))

    if isinstance(result, PendingConfirmation):
        logger.info("Sign-up accepted, email confirmation pending")
        return redirect_to(build_login_redirect(message=messages.SIGNUP_PENDING_CONFIRMATION))

    response = redirect_to(LANDING_PATH)
    services.session_manager.persist(store_for(request, response, services), result)
    logger.info("Sign-up completed with immediate session for user %s", result.user_id)
    return response


@router.post("/auth/oauth")
async def start_oauth(request: Request, provider: str = Form("")):
    services = get_auth_services(request)
    if not services.settings.is_identity_provider_configured:
        return _not_configured_redirect()

    provider = as_form_string(provider).lower()
    if provider not in services.settings.OAUTH_PROVIDERS:
        return redirect_to(build_login_redirect(error=messages.UNSUPPORTED_PROVIDER))

    pkce = generate_pkce_pair()
    state = generate_oauth_state()
    authorize_url = services.identity_client.build_authorize_url(
        provider=provider,
        code_challenge=pkce.code_challenge,
        state=state,
        redirect_to=services.settings.oauth_callback_url,
    )

    response = redirect_to(authorize_url)
    store_for(request, response, services).write_oauth_transaction(
        OAuthTransaction(provider=provider, code_verifier=pkce.code_verifier, state=state)
    )
    logger.info("Starting OAuth flow with provider %s", provider)
    return response


@router.get("/auth/callback")
async def auth_callback(request: Request):
    services = get_auth_services(request)
    response = redirect_to(LANDING_PATH)
    store = store_for(request, response, services)

    if not services.settings.is_identity_provider_configured:
        store.clear_oauth_transaction()
        response.headers["location"] = build_login_redirect(error=messages.IDENTITY_NOT_CONFIGURED)
        return response

    result = await services.callback_handler.handle(request.query_params, store)
    # Cookies were written onto this response by the handler; only the target changes
    response.headers["location"] = result.redirect_url
    return response


@router.post("/auth/logout")
async def logout(request: Request):
    services = get_auth_services(request)
    response = redirect_to(build_login_redirect(message=messages.LOGGED_OUT))
    store = store_for(request, response, services)
    store.clear_oauth_transaction()
    services.session_manager.clear(store)
    logger.info("Logged out; session and OAuth transaction cookies cleared")
    return response


# --- Session API ---

@router.get("/api/session")
async def session_info(request: Request, response: Response):
    services = get_auth_services(request)
    response.headers["Cache-Control"] = "no-store"

    session: typing.Optional[Session] = None
    if services.settings.is_identity_provider_configured:
        session = await get_optional_session(request, response)

    generated_at = datetime.now(timezone.utc).isoformat()
    if services.settings.PUBLIC_TEST_MODE or session is None:
        return {
            "mode": "public-test",
            "userId": session.user_id if session else PUBLIC_TEST_USER_ID,
            "email": (session.email if session else "") or PUBLIC_TEST_EMAIL,
            "generatedAt": generated_at,
        }

    return {
        "mode": "authenticated",
        "userId": session.user_id,
        "email": session.email,
        "generatedAt": generated_at,
    }


@router.get("/dashboard")
async def dashboard(session: Session = Depends(require_session)):
    return {"userId": session.user_id, "email": session.email}


# --- App Setup ---

def build_auth_services(
        settings: Settings,
        identity_client: typing.Optional[IdentityProviderClient] = None,
) -> AuthServices:
    codec = SessionCodec(settings)
    identity_client = identity_client or IdentityProviderClient(settings)
    session_manager = SessionManager(codec, identity_client)
    callback_handler = OAuthCallbackHandler(identity_client, session_manager, settings.OAUTH_PROVIDERS)
    return AuthServices(
        settings=settings,
        codec=codec,
        identity_client=identity_client,
        session_manager=session_manager,
        callback_handler=callback_handler,
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
        settings: typing.Optional[Settings] = None,
        identity_client: typing.Optional[IdentityProviderClient] = None,
) -> FastAPI:
    if settings is None:
        load_env_file()
        settings = Settings()

    app = FastAPI(
        title="FamilyCare Web",
        description="Guardian sign-in, session cookies and OAuth PKCE for the FamilyCare app.",
        version="0.1.0",
    )
    app.state.auth = build_auth_services(settings, identity_client)
    app.add_middleware(ProtectedPathMiddleware)
    app.include_router(router)

    @app.on_event("startup")
    async def startup_event():
        configure_logging(settings)
        logger.info("--- FamilyCare Web (FastAPI) Starting Up ---")
        logger.info("Environment: %s", settings.APP_ENV)
        logger.info("Identity provider configured: %s", "Yes" if settings.is_identity_provider_configured else "No")
        logger.info("OAuth providers: %s", settings.OAUTH_PROVIDERS)
        logger.info("OAuth callback URL: %s", settings.oauth_callback_url)
        logger.info("Public test mode: %s", "on" if settings.PUBLIC_TEST_MODE else "off")
        if settings.SESSION_ENCRYPTION_KEY:
            logger.info("Session encryption key is set")
        elif settings.is_production:
            logger.critical("SESSION_ENCRYPTION_KEY is not set. Sign-ins will fail until it is configured.")
        else:
            logger.warning("SESSION_ENCRYPTION_KEY is not set. Session cookies will be written in plaintext.")

    return app
