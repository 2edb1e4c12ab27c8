"""
Process-wide service registry.

Built once by ``create_app`` and stored on ``app.state.registry``; route
dependencies read it from the request instead of importing module-level
singletons.
"""

from dataclasses import dataclass
from typing import Optional

from .cache import CacheManager
from .config import Settings
from .database import DatabaseManager
from .logging import get_logger
from .rate_limiting import RateLimiter
from .security import TokenManager
from review_dashboard.services.integrations import GooglePlacesClient, HostawayClient

logger = get_logger(__name__)


@dataclass
class ServiceRegistry:
    settings: Settings
    database: DatabaseManager
    cache: CacheManager
    rate_limiter: RateLimiter
    token_manager: TokenManager
    hostaway_client: HostawayClient
    google_client: GooglePlacesClient

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        database: Optional[DatabaseManager] = None,
        hostaway_client: Optional[HostawayClient] = None,
        google_client: Optional[GooglePlacesClient] = None
    ) -> "ServiceRegistry":
        """
        Wire every shared service from configuration.

        Any service may be passed in pre-built (tests inject an in-memory
        database and stub provider clients).
        """
        registry = cls(
            settings=settings,
            database=database or DatabaseManager(settings.database),
            cache=CacheManager.from_settings(settings.cache, settings.redis),
            rate_limiter=RateLimiter.from_settings(settings.rate_limit, settings.redis),
            token_manager=TokenManager(settings.security),
            hostaway_client=hostaway_client or HostawayClient.from_settings(settings.integrations),
            google_client=google_client or GooglePlacesClient.from_settings(settings.integrations),
        )
        registry.database.initialize()
        logger.info("Service registry initialized", extra={
            'environment': settings.ENVIRONMENT,
            'cache_backend': settings.cache.CACHE_BACKEND,
            'rate_limit_backend': settings.rate_limit.RATE_LIMIT_BACKEND,
            'hostaway_configured': registry.hostaway_client.is_configured,
            'google_configured': registry.google_client.is_configured,
        })
        return registry

    async def close(self):
        await self.hostaway_client.close()
        await self.google_client.close()
        await self.cache.close()
        await self.rate_limiter.close()
        await self.database.close()
        logger.info("Service registry closed")
