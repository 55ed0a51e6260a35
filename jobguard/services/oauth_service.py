"""
Google OAuth 2.0 authorization-code flow.
"""

from urllib.parse import urlencode

import httpx

from jobguard.config import settings
from jobguard.errors import ProviderError
from jobguard.models.account import AuthProvider
from jobguard.services.auth_service import ExternalProfile
from jobguard.utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class GoogleOAuthClient:
    def __init__(self, client_id: str, client_secret: str, redirect_uri: str, timeout: float = 10):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    def authorization_url(self, state: str = "") -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid profile email",
            "access_type": "online",
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def fetch_profile(self, code: str) -> ExternalProfile:
        """Exchange the authorization code and read the user's profile."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                token_response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise ProviderError("Google did not return an access token")

                profile_response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                profile_response.raise_for_status()
                data = profile_response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Google OAuth request rejected", status_code=e.response.status_code)
            raise ProviderError("Google authentication failed")
        except httpx.RequestError as e:
            logger.error("Google OAuth request failed", error=str(e))
            raise ProviderError("Google authentication is unavailable")

        return profile_from_userinfo(data)


def profile_from_userinfo(data: dict) -> ExternalProfile:
    name = (data.get("name") or "").split(" ")
    return ExternalProfile(
        provider=AuthProvider.GOOGLE.value,
        external_id=str(data.get("sub") or ""),
        email=data.get("email"),
        first_name=data.get("given_name") or name[0] or "User",
        last_name=data.get("family_name") or " ".join(name[1:]),
        avatar=data.get("picture"),
    )


def get_oauth_client() -> GoogleOAuthClient:
    """FastAPI dependency; tests override it with a fake client."""
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_callback_url,
    )
