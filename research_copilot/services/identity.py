from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from supabase import Client, create_client

from research_copilot.errors import AuthError, ConfigurationError
from research_copilot.services import logger as log_service
from research_copilot.services.http import sanitize_ssl_keylogfile


@dataclass(frozen=True, slots=True)
class Identity:
    user_id: str
    workspace_id: str | None = None


class IdentityResolver(Protocol):
    async def resolve(self, token: str) -> Identity: ...


class SupabaseIdentityResolver:
    """Resolves a bearer JWT to a user via Supabase auth."""

    def __init__(self, url: str, service_key: str):
        self.url = url
        self.service_key = service_key
        self._client: Client | None = None

    def client(self) -> Client:
        if not (self.url and self.service_key):
            raise ConfigurationError(detail="SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set")
        if self._client is None:
            sanitize_ssl_keylogfile()
            self._client = create_client(self.url, self.service_key)
        return self._client

    async def resolve(self, token: str) -> Identity:
        auth_client = self.client()
        try:
            # supabase-py is synchronous; keep the event loop free.
            result = await asyncio.to_thread(auth_client.auth.get_user, token)
        except Exception as e:
            log_service.log_event(
                event_type="auth_failed",
                message="Auth validation failed",
                level=logging.WARNING,
                error=str(e),
            )
            raise AuthError("Authentication failed. Please sign in again.") from e

        user = getattr(result, "user", None)
        if user is None:
            raise AuthError("Invalid or expired session. Please sign in again.")

        metadata: Any = getattr(user, "user_metadata", None) or {}
        workspace_id = metadata.get("current_workspace_id") if isinstance(metadata, dict) else None
        return Identity(user_id=str(user.id), workspace_id=str(workspace_id) if workspace_id else None)
