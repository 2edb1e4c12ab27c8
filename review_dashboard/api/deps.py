"""
FastAPI dependencies.

Everything process-wide comes from the ``ServiceRegistry`` on
``app.state``; sessions are request scoped.
"""

from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from review_dashboard.core.exceptions import AuthenticationError, AuthorizationError
from review_dashboard.core.logging import manager_id as manager_id_var
from review_dashboard.core.rate_limiting import RateLimitScope, extract_identifier
from review_dashboard.core.registry import ServiceRegistry
from review_dashboard.core.security import MANAGER_ROLE
from review_dashboard.models.manager import Manager
from review_dashboard.repositories.manager import ManagerRepository
from review_dashboard.services.review import (
    ModerationService,
    PublicReviewService,
    ReviewIngestionService,
)

bearer_scheme = HTTPBearer(auto_error=False)


# ------------------------------------------------------------------ #
# Registry / session
# ------------------------------------------------------------------ #
def get_registry(request: Request) -> ServiceRegistry:
    return request.app.state.registry


RegistryDep = Annotated[ServiceRegistry, Depends(get_registry)]


async def get_db(registry: RegistryDep) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; committed on success, rolled back on error"""
    async with registry.database.get_async_session() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_db)]


def get_client_ip(request: Request) -> str:
    return extract_identifier(request, RateLimitScope.IP)


ClientIPDep = Annotated[str, Depends(get_client_ip)]


# ------------------------------------------------------------------ #
# Current manager
# ------------------------------------------------------------------ #
async def get_current_manager(
    registry: RegistryDep,
    session: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Manager:
    """
    Resolve the manager behind the bearer token.

    Raises:
        AuthenticationError: missing, invalid or expired token, or the
            manager no longer exists (401)
        AuthorizationError: token without the manager role (403)
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()

    token_manager = registry.token_manager
    payload = token_manager.verify_token(credentials.credentials)
    if payload.get("role") != MANAGER_ROLE:
        raise AuthorizationError("Manager role required", required_role=MANAGER_ROLE)

    manager = await ManagerRepository(session).get_by_id(token_manager.get_manager_id(payload))
    if manager is None:
        raise AuthenticationError("Manager account not found")

    manager_id_var.set(str(manager.id))
    return manager


CurrentManagerDep = Annotated[Manager, Depends(get_current_manager)]


# ------------------------------------------------------------------ #
# Service factories
# ------------------------------------------------------------------ #
def get_moderation_service(registry: RegistryDep, session: SessionDep) -> ModerationService:
    return ModerationService(session, registry.cache, registry.settings.moderation)


def get_public_review_service(registry: RegistryDep, session: SessionDep) -> PublicReviewService:
    return PublicReviewService(session, registry.settings.moderation)


def get_ingestion_service(registry: RegistryDep, session: SessionDep) -> ReviewIngestionService:
    return ReviewIngestionService(
        session,
        registry.hostaway_client,
        cache=registry.cache,
        moderation_settings=registry.settings.moderation,
        db_settings=registry.settings.database,
    )


ModerationServiceDep = Annotated[ModerationService, Depends(get_moderation_service)]
PublicReviewServiceDep = Annotated[PublicReviewService, Depends(get_public_review_service)]
IngestionServiceDep = Annotated[ReviewIngestionService, Depends(get_ingestion_service)]
