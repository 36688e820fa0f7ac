from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header

from research_copilot.agents.orchestrator import ResearchOrchestrator
from research_copilot.agents.synthesis import SynthesisEngine
from research_copilot.config import settings
from research_copilot.errors import AuthError
from research_copilot.services.identity import Identity, IdentityResolver, SupabaseIdentityResolver
from research_copilot.services.rate_limiter import RateLimiter
from research_copilot.tools.agent_search import AgentSearchProvider
from research_copilot.tools.fast_search import FastSearchProvider


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    """One limiter per process; every request shares its windows."""
    return RateLimiter(limit=settings.rate_limit, window_ms=settings.rate_window_ms)


@lru_cache(maxsize=1)
def get_identity_resolver() -> IdentityResolver:
    return SupabaseIdentityResolver(settings.supabase_url, settings.supabase_service_role_key)


@lru_cache(maxsize=1)
def get_orchestrator() -> ResearchOrchestrator:
    agent_provider = None
    if settings.youcom_api_key:
        agent_provider = AgentSearchProvider(settings.youcom_api_key)
    return ResearchOrchestrator(
        rate_limiter=get_rate_limiter(),
        fast_provider=FastSearchProvider(),
        agent_provider=agent_provider,
        synthesis_engine=SynthesisEngine(),
    )


def bearer_token(authorization: str | None = Header(default=None)) -> str:
    if not authorization:
        raise AuthError()
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Invalid or expired session. Please sign in again.")
    return token.strip()


async def current_identity(
    token: str = Depends(bearer_token),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Identity:
    return await resolver.resolve(token)
