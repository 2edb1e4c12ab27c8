from review_dashboard.models.listing.listing import Listing

__all__ = ["Listing"]
