"""
Google OAuth routes: consent redirect, code exchange, logout
"""
import asyncio
import functools
import logging
import os

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from google_auth_oauthlib.flow import Flow

from ..core.config import OAUTH_SCOPES, Settings
from ..core.errors import ConfigurationError
from ..dependencies import SESSION_AUTH_KEY, get_settings

logger = logging.getLogger(__name__)

# Google adds userinfo scopes to the granted set; accept the token anyway
os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

# Session keys for the in-flight authorization request
SESSION_STATE_KEY = "oauth_state"
SESSION_VERIFIER_KEY = "oauth_code_verifier"

router = APIRouter()


def build_flow(settings: Settings, **kwargs) -> Flow:
    """OAuth web flow for the configured Google client"""
    if not settings.oauth_configured:
        raise ConfigurationError("Missing GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET in .env")
    client_config = {
        "web": {
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": [settings.oauth_redirect_uri],
        }
    }
    return Flow.from_client_config(
        client_config,
        scopes=OAUTH_SCOPES,
        redirect_uri=settings.oauth_redirect_uri,
        **kwargs,
    )


@router.get("/auth/google")
async def start_google_auth(request: Request, settings: Settings = Depends(get_settings)):
    """Redirect the user to Google's consent screen"""
    flow = build_flow(settings)
    auth_url, state = flow.authorization_url(access_type="offline", prompt="consent")
    request.session[SESSION_STATE_KEY] = state
    request.session[SESSION_VERIFIER_KEY] = flow.code_verifier
    logger.info("Redirecting to Google OAuth consent screen")
    return RedirectResponse(url=auth_url, status_code=302)


@router.get("/auth/google/callback")
async def google_auth_callback(request: Request, code: str = None, state: str = None,
                               error: str = None, settings: Settings = Depends(get_settings)):
    """Exchange the authorization code and keep the access token in the session"""
    expected_state = request.session.pop(SESSION_STATE_KEY, None)
    code_verifier = request.session.pop(SESSION_VERIFIER_KEY, None)

    if error or not code:
        logger.warning(f"OAuth callback without code (error={error})")
        return RedirectResponse(url="/", status_code=302)
    if not expected_state or state != expected_state:
        logger.warning("OAuth callback state mismatch")
        return RedirectResponse(url="/", status_code=302)

    flow = build_flow(settings, state=expected_state, code_verifier=code_verifier)
    try:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, functools.partial(flow.fetch_token, code=code))
    except Exception as e:
        logger.error(f"OAuth token exchange failed: {e}", exc_info=True)
        return RedirectResponse(url="/", status_code=302)

    credentials = flow.credentials
    request.session[SESSION_AUTH_KEY] = {
        "access_token": credentials.token,
        "scopes": list(getattr(credentials, "granted_scopes", None) or credentials.scopes or []),
    }
    logger.info("OAuth login completed")
    return RedirectResponse(url="/", status_code=302)


@router.get("/logout")
async def logout(request: Request):
    request.session.clear()
    return RedirectResponse(url="/", status_code=302)
