"""
shared/middleware/auth.py
FastAPI dependency functions for authentication and authorization.
Bearer tokens are introspected by the Supabase auth service; admin
rights come from the user_roles table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from shared.models.models import AppRole, UserRoleAssignment
from shared.utils.errors import Unauthenticated, Unauthorized, UpstreamError

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: Optional[str] = None


class AuthLevel(str, Enum):
    PUBLIC = "public"
    USER = "user"
    ADMIN = "admin"


class SupabaseIdentityProvider:
    """Resolves an access token to a user through GET /auth/v1/user."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.transport = transport

    @staticmethod
    def _json_object(response: httpx.Response) -> Optional[dict]:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    async def get_user(self, token: str) -> AuthenticatedUser:
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.get(
                    f"{self.base_url}/auth/v1/user",
                    headers={
                        "apikey": self.api_key,
                        "Authorization": f"Bearer {token}",
                    },
                )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Authentication service unavailable: {e}")

        data = self._json_object(response)

        if response.status_code != 200:
            detail = (data.get("msg") or data.get("message")) if data else None
            raise Unauthenticated(f"Authentication error: {detail or response.status_code}")

        if data is None:
            raise UpstreamError("Authentication service returned an invalid response")
        if not data.get("id"):
            raise Unauthenticated("User not authenticated")
        return AuthenticatedUser(id=data["id"], email=data.get("email"))


def get_identity_provider() -> SupabaseIdentityProvider:
    """Built per request; overridden in tests."""
    return SupabaseIdentityProvider(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY or settings.SUPABASE_SERVICE_ROLE_KEY,
    )


async def has_role(db: AsyncSession, user_id: str, role: AppRole) -> bool:
    result = await db.execute(
        select(UserRoleAssignment.id).where(
            UserRoleAssignment.user_id == user_id,
            UserRoleAssignment.role == role,
        )
    )
    return result.first() is not None


class RequireAuth:
    """
    Dependency factory parameterized by the required auth level.

    PUBLIC resolves to None without looking at the header. USER needs a
    token the identity provider accepts. ADMIN additionally needs an
    admin row in user_roles.
    """

    def __init__(self, level: AuthLevel):
        self.level = level

    async def __call__(
        self,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        provider: SupabaseIdentityProvider = Depends(get_identity_provider),
        db: AsyncSession = Depends(get_db),
    ) -> Optional[AuthenticatedUser]:
        if self.level == AuthLevel.PUBLIC:
            return None

        if not credentials:
            raise Unauthenticated("No authorization header provided")

        user = await provider.get_user(credentials.credentials)

        if self.level == AuthLevel.ADMIN and not await has_role(db, user.id, AppRole.ADMIN):
            raise Unauthorized("Unauthorized")
        return user


# Convenience dependencies
require_user = RequireAuth(AuthLevel.USER)
require_admin = RequireAuth(AuthLevel.ADMIN)
