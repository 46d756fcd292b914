import logging
import os

import httpx

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_tracker.config import settings
from attendance_tracker.core.exceptions import AttendanceError
from attendance_tracker.crud.user import get_or_create_user
from attendance_tracker.dependencies import SESSION_USER_KEY, get_current_user, get_db
from attendance_tracker.models.user import User
from attendance_tracker.schemas.user_schema import UserResponse
from attendance_tracker.services.oauth import GoogleOAuthClient, get_oauth_client

# Setup logger
logger = logging.getLogger(__name__)

auth_routes = APIRouter(tags=["auth"])

OAUTH_STATE_KEY = "oauth_state"


@auth_routes.get("/login", include_in_schema=False)
async def login_page():
    return FileResponse(os.path.join(settings.STATIC_DIR, "login.html"))


@auth_routes.get("/logout", include_in_schema=False)
async def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/login", status_code=status.HTTP_302_FOUND)


@auth_routes.get("/auth/google", include_in_schema=False)
async def google_login(
        request: Request,
        oauth: GoogleOAuthClient = Depends(get_oauth_client)
):
    """Start the Google sign-in flow."""
    if not oauth.is_configured:
        logger.error("Google OAuth is not configured (GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET)")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Google sign-in is not configured"
        )

    state = oauth.new_state()
    request.session[OAUTH_STATE_KEY] = state
    return RedirectResponse(oauth.authorization_url(state), status_code=status.HTTP_302_FOUND)


@auth_routes.get("/auth/google/callback", include_in_schema=False)
async def google_callback(
        request: Request,
        code: str = "",
        state: str = "",
        db: AsyncSession = Depends(get_db),
        oauth: GoogleOAuthClient = Depends(get_oauth_client)
):
    """Finish sign-in: store the user in the session and go to the roster page."""
    expected_state = request.session.pop(OAUTH_STATE_KEY, None)
    if not code or not expected_state or state != expected_state:
        logger.warning("OAuth callback rejected: missing code or state mismatch")
        return RedirectResponse("/login", status_code=status.HTTP_302_FOUND)

    try:
        profile = await oauth.fetch_profile(code)
        user = await get_or_create_user(db, profile)
    except AttendanceError as e:
        logger.warning(f"OAuth login failed: {e.message}")
        return RedirectResponse("/login", status_code=status.HTTP_302_FOUND)
    except httpx.HTTPError as e:
        logger.error(f"OAuth provider unreachable: {str(e)}", exc_info=True)
        return RedirectResponse("/login", status_code=status.HTTP_302_FOUND)

    request.session[SESSION_USER_KEY] = user.id
    logger.info(f"User {user.email} signed in")
    return RedirectResponse("/", status_code=status.HTTP_302_FOUND)


@auth_routes.get("/api/user", response_model=UserResponse)
async def current_user(user: User = Depends(get_current_user)):
    return user
