"""
Identity providers
Resolve a bearer token to the caller's user id and email.

Three backends, selected by AUTH_PROVIDER:
- supabase: remote lookup of the token owner via the auth REST API
- jwt: local HS256 verification with a shared secret
- firebase: Firebase ID token verification via firebase-admin
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import firebase_admin
import httpx
import jwt
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from podadmin.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None


class AuthenticationError(Exception):
    """Token could not be resolved to an identity"""


class IdentityProvider:
    """Base class - resolve() must raise AuthenticationError for any rejected token"""

    async def resolve(self, token: str) -> Identity:
        raise NotImplementedError

    async def aclose(self):
        return None


# ==================== SUPABASE ====================

class SupabaseIdentityProvider(IdentityProvider):
    def __init__(self, url: str, anon_key: str, timeout: float = 5.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.user_endpoint = f"{url.rstrip('/')}/auth/v1/user"
        self.anon_key = anon_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def resolve(self, token: str) -> Identity:
        try:
            response = await self._client.get(
                self.user_endpoint,
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.error("User lookup request failed: %s", e)
            raise AuthenticationError("Identity service unavailable") from e

        if response.status_code != 200:
            raise AuthenticationError(f"Token rejected with status {response.status_code}")

        user = response.json()
        user_id = user.get("id")
        if not user_id:
            raise AuthenticationError("User lookup returned no id")

        return Identity(user_id=user_id, email=user.get("email"))

    async def aclose(self):
        await self._client.aclose()


# ==================== LOCAL JWT ====================

class JWTIdentityProvider(IdentityProvider):
    ALGORITHM = "HS256"

    def __init__(self, secret: str, audience: Optional[str] = None):
        self.secret = secret
        self.audience = audience

    async def resolve(self, token: str) -> Identity:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.ALGORITHM],
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}") from e

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Token has no subject")

        return Identity(user_id=str(user_id), email=payload.get("email"))


# ==================== FIREBASE ====================

class FirebaseIdentityProvider(IdentityProvider):
    def __init__(self, project_id: str, client_email: str, private_key: str):
        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": project_id,
                "client_email": client_email,
                "private_key": private_key.replace("\\n", "\n"),
                "token_uri": "https://oauth2.googleapis.com/token",
            })
            self._app = firebase_admin.initialize_app(cred)
            logger.info("Firebase initialized for project %s", project_id)

    async def resolve(self, token: str) -> Identity:
        try:
            decoded = await asyncio.to_thread(
                firebase_auth.verify_id_token, token, app=self._app
            )
        except (firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError, ValueError) as e:
            raise AuthenticationError(f"Firebase token rejected: {e}") from e

        return Identity(user_id=decoded["uid"], email=decoded.get("email"))


def build_identity_provider(settings: Settings) -> IdentityProvider:
    """Construct the configured provider, failing fast on missing credentials"""
    if settings.AUTH_PROVIDER == "supabase":
        return SupabaseIdentityProvider(
            settings.require("SUPABASE_URL"),
            settings.require("SUPABASE_ANON_KEY"),
        )
    if settings.AUTH_PROVIDER == "jwt":
        return JWTIdentityProvider(
            settings.require("AUTH_JWT_SECRET"),
            audience=settings.AUTH_JWT_AUDIENCE or None,
        )
    return FirebaseIdentityProvider(
        settings.require("FIREBASE_PROJECT_ID"),
        settings.require("FIREBASE_CLIENT_EMAIL"),
        settings.require("FIREBASE_PRIVATE_KEY"),
    )
