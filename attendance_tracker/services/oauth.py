import logging
import secrets
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from attendance_tracker.config import settings
from attendance_tracker.core.exceptions import Unauthorized
from attendance_tracker.schemas.user_schema import OAuthProfile

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


@dataclass
class OAuthConfig:
    """Configuration for the Google authorization-code flow"""
    client_id: str
    client_secret: str
    redirect_uri: str
    scopes: List[str] = field(default_factory=lambda: ["openid", "profile", "email"])
    timeout: float = 10.0


class GoogleOAuthClient:
    """Thin authorization-code client for Google sign-in."""

    def __init__(self, config: OAuthConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.config.client_id and self.config.client_secret)

    @staticmethod
    def new_state() -> str:
        return secrets.token_urlsafe(24)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.config.scopes),
            "state": state,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}"

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport)

    async def fetch_profile(self, code: str) -> OAuthProfile:
        """
        Exchange an authorization code and load the signed-in identity.

        Raises:
            Unauthorized: the provider rejected the code or returned no identity
        """
        async with self._http_client() as client:
            token_response = await client.post(GOOGLE_TOKEN_URL, data={
                "code": code,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "redirect_uri": self.config.redirect_uri,
                "grant_type": "authorization_code",
            })
            if token_response.status_code != 200:
                logger.warning(f"Token exchange failed with status {token_response.status_code}")
                raise Unauthorized("OAuth token exchange failed")

            access_token = token_response.json().get("access_token")
            if not access_token:
                raise Unauthorized("OAuth provider returned no access token")

            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            if userinfo_response.status_code != 200:
                logger.warning(f"Userinfo request failed with status {userinfo_response.status_code}")
                raise Unauthorized("Could not load OAuth profile")

        info = userinfo_response.json()
        if not info.get("sub") or not info.get("email"):
            raise Unauthorized("OAuth profile is missing an id or email")

        return OAuthProfile(
            external_id=str(info["sub"]),
            name=info.get("name") or info["email"],
            email=info["email"],
        )


_oauth_client: Optional[GoogleOAuthClient] = None


def get_oauth_client() -> GoogleOAuthClient:
    """Get or create the process-wide OAuth client."""
    global _oauth_client
    if _oauth_client is None:
        _oauth_client = GoogleOAuthClient(OAuthConfig(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            redirect_uri=settings.GOOGLE_REDIRECT_URI,
        ))
    return _oauth_client
