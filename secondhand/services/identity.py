"""
Identity Gateway - bearer token resolution and user creation

The marketplace does not own credentials. Tokens are issued by the identity
provider (Supabase Auth / GoTrue); every user-scoped request resolves its
bearer token to a stable user id through this gateway.

Endpoints used:
- GET  {SUPABASE_URL}/auth/v1/user          resolve an access token
- POST {SUPABASE_URL}/auth/v1/admin/users   create a confirmed user (service role)
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from secondhand.core.config import settings
from secondhand.core.exceptions import AuthenticationError, UnexpectedError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedUser:
    """Identity resolved from a bearer token."""
    id: str
    email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class IdentityProviderError(UnexpectedError):
    """The identity provider could not be reached or answered unexpectedly."""
    default_code = "IDENTITY_PROVIDER_FAILED"


class IdentityGateway(ABC):
    """Narrow interface over the identity provider."""

    @abstractmethod
    async def resolve(self, token: str) -> AuthenticatedUser:
        """Resolve a bearer token. Raises AuthenticationError if it is not valid."""

    @abstractmethod
    async def create_user(self, email: str, password: str, username: str) -> Dict[str, Any]:
        """Create a confirmed user. Raises ValidationError if the provider rejects it."""

    async def close(self) -> None:
        return None


class SupabaseIdentityGateway(IdentityGateway):
    """
    Supabase Auth client.

    Required settings:
    - SUPABASE_URL: project URL
    - SUPABASE_SERVICE_ROLE_KEY: service role key (admin user creation)
    """

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key
        self.timeout = timeout
        self._http_client = client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create reusable HTTP client."""
        if not self.base_url:
            raise IdentityProviderError("Identity provider not configured")
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self):
        """Close HTTP client on shutdown."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        """Pull the provider's error text out of a GoTrue error body."""
        try:
            data = resp.json()
        except ValueError:
            return resp.text or f"HTTP {resp.status_code}"
        for name in ("msg", "message", "error_description", "error"):
            if isinstance(data, dict) and data.get(name):
                return str(data[name])
        return f"HTTP {resp.status_code}"

    async def resolve(self, token: str) -> AuthenticatedUser:
        if not token:
            raise AuthenticationError("Authorization token required")

        client = await self._get_http_client()
        try:
            resp = await client.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "apikey": self.service_role_key,
                    "Authorization": f"Bearer {token}",
                },
            )
        except httpx.HTTPError as e:
            raise IdentityProviderError(
                "Identity provider unreachable", details={"error": str(e)}
            ) from e

        if resp.status_code in (401, 403, 404):
            raise AuthenticationError("Unauthorized")
        if resp.status_code != 200:
            raise IdentityProviderError(
                "Identity provider error",
                details={"status": resp.status_code, "error": self._error_message(resp)},
            )

        data = resp.json()
        if not data.get("id"):
            raise AuthenticationError("Unauthorized")

        return AuthenticatedUser(
            id=data["id"],
            email=data.get("email"),
            metadata=data.get("user_metadata") or {},
        )

    async def create_user(self, email: str, password: str, username: str) -> Dict[str, Any]:
        client = await self._get_http_client()
        try:
            resp = await client.post(
                f"{self.base_url}/auth/v1/admin/users",
                headers={
                    "apikey": self.service_role_key,
                    "Authorization": f"Bearer {self.service_role_key}",
                },
                json={
                    "email": email,
                    "password": password,
                    "user_metadata": {"username": username},
                    # No email server is configured, so users are confirmed on creation
                    "email_confirm": True,
                },
            )
        except httpx.HTTPError as e:
            raise IdentityProviderError(
                "Identity provider unreachable", details={"error": str(e)}
            ) from e

        if 400 <= resp.status_code < 500:
            message = self._error_message(resp)
            logger.info(f"Signup rejected for {email}: {message}")
            raise ValidationError(message)
        if resp.status_code >= 300:
            raise IdentityProviderError(
                "Identity provider error",
                details={"status": resp.status_code, "error": self._error_message(resp)},
            )

        data = resp.json()
        # Older GoTrue versions wrap the user object
        return data.get("user", data) if isinstance(data, dict) else data


# Global gateway (initialized lazily)
_identity_gateway: Optional[IdentityGateway] = None


def get_identity_gateway() -> IdentityGateway:
    """Get the process-wide identity gateway."""
    global _identity_gateway

    if _identity_gateway is None:
        if not settings.SUPABASE_URL:
            logger.warning("SUPABASE_URL not configured; identity provider calls will fail")
        _identity_gateway = SupabaseIdentityGateway(
            base_url=settings.SUPABASE_URL,
            service_role_key=settings.SUPABASE_SERVICE_ROLE_KEY,
            timeout=settings.AUTH_TIMEOUT_SECONDS,
        )

    return _identity_gateway


async def close_identity_gateway():
    """Close the gateway HTTP client on shutdown."""
    global _identity_gateway
    if _identity_gateway is not None:
        await _identity_gateway.close()
        _identity_gateway = None
