"""Session provider - resolves the acting identity for a request.

Tokens use a simple bearer format carrying the identity directly:
``Bearer <tenant_id>:<user_id>[:<role>,<role>...]``.
"""

import logging
from typing import Protocol

from leavedesk.app.db.context import RequestContext
from leavedesk.app.errors import AuthenticationError

logger = logging.getLogger(__name__)


class SessionProvider(Protocol):
    """Resolves the acting identity from request credentials."""

    async def resolve_session(self, authorization: str | None) -> RequestContext:
        """Resolve identity, tenant and roles.

        Raises:
            AuthenticationError: If no valid session exists
        """
        ...


class BearerSessionProvider:
    """SessionProvider parsing ``tenant:user[:roles]`` bearer tokens."""

    def __init__(self, default_roles: list[str] | None = None) -> None:
        """Initialize provider.

        Args:
            default_roles: Roles granted when the token names none
        """
        self._default_roles = frozenset(default_roles or ["employee"])

    async def resolve_session(self, authorization: str | None) -> RequestContext:
        """Extract request context from the authorization header.

        Args:
            authorization: Authorization header (e.g., "Bearer <token>")

        Returns:
            RequestContext with tenant_id, user_id and roles

        Raises:
            AuthenticationError: If the header is missing or malformed
        """
        if not authorization:
            raise AuthenticationError("Missing authorization header")

        if not authorization.startswith("Bearer "):
            raise AuthenticationError("Invalid authorization header format")

        token = authorization[7:].strip()  # Strip "Bearer "
        parts = token.split(":")

        if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
            logger.info("Rejected malformed bearer token")
            raise AuthenticationError("Invalid token format (expected tenant_id:user_id[:roles])")

        roles = self._default_roles
        if len(parts) == 3:
            roles = frozenset(r.strip() for r in parts[2].split(",") if r.strip())
            if not roles:
                raise AuthenticationError("Token names an empty role list")

        return RequestContext(tenant_id=parts[0], user_id=parts[1], roles=roles)
