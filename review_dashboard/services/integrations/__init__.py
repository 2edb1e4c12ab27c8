"""
Outbound clients for review sources.
"""

from review_dashboard.services.integrations.base_client import BaseIntegrationClient
from review_dashboard.services.integrations.google_places_client import GooglePlacesClient
from review_dashboard.services.integrations.hostaway_client import HostawayClient

__all__ = ["BaseIntegrationClient", "GooglePlacesClient", "HostawayClient"]
