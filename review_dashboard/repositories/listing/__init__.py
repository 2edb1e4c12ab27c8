from review_dashboard.repositories.listing.listing_repository import ListingRepository

__all__ = ["ListingRepository"]
