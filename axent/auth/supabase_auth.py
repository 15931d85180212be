"""
Bearer-token verification against the Supabase auth service
Every user-scoped function resolves the caller through here before touching data
"""

from fastapi import Depends, Header
import httpx
from typing import Optional, Dict, Any

from axent.config import settings
from axent.errors import UnauthorizedError
from axent.utils.logger import get_logger

logger = get_logger(__name__)

LOGIN_REQUIRED_MESSAGE = "Silakan login terlebih dahulu."
INVALID_TOKEN_MESSAGE = "Token tidak valid. Silakan login ulang."
INVALID_SESSION_MESSAGE = "Sesi tidak valid. Silakan login ulang."


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header"""
    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("No valid authorization header provided")
        raise UnauthorizedError("Unauthorized", LOGIN_REQUIRED_MESSAGE)

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise UnauthorizedError("Unauthorized", LOGIN_REQUIRED_MESSAGE)
    return token


class SupabaseAuthClient:
    """Thin client for the auth service's "get user from token" call"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self.api_key = api_key or settings.SUPABASE_ANON_KEY
        self.http_client = http_client

    async def get_user(self, token: str) -> Optional[Dict[str, Any]]:
        """Resolve a JWT to its user payload; None when the service knows no such user"""
        if not self.base_url:
            raise UnauthorizedError("Unauthorized", INVALID_TOKEN_MESSAGE)

        headers = {"apikey": self.api_key, "Authorization": f"Bearer {token}"}
        url = f"{self.base_url}/auth/v1/user"
        try:
            if self.http_client is not None:
                response = await self.http_client.get(url, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
                    response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Auth service unreachable: {e}")
            raise UnauthorizedError("Unauthorized", INVALID_TOKEN_MESSAGE)

        if response.status_code != 200:
            logger.error(f"Auth error: {response.status_code} {response.text[:200]}")
            raise UnauthorizedError("Unauthorized", INVALID_TOKEN_MESSAGE)

        try:
            user = response.json()
        except ValueError:
            logger.error(f"Auth service returned a non-JSON body: {response.text[:200]}")
            raise UnauthorizedError("Unauthorized", INVALID_TOKEN_MESSAGE)

        if not isinstance(user, dict) or not user.get("id"):
            return None
        return user


auth_client = SupabaseAuthClient()


def get_auth_client() -> SupabaseAuthClient:
    return auth_client


async def get_current_user_id(
    authorization: Optional[str] = Header(default=None),
    client: SupabaseAuthClient = Depends(get_auth_client),
) -> str:
    """FastAPI dependency returning the server-verified user id"""
    token = extract_bearer_token(authorization)
    user = await client.get_user(token)
    if not user:
        logger.error("No user found from token")
        raise UnauthorizedError("Unauthorized", INVALID_SESSION_MESSAGE)

    logger.info(f"Authenticated user: {user['id']}")
    return user["id"]
