"""
API Router - aggregates every endpoint module under the API prefix.
"""

from fastapi import APIRouter

from review_dashboard.api.routes import auth, google_reviews, health, listings, manager, public, reviews

router = APIRouter(
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        422: {"description": "Validation Error"},
        429: {"description": "Too Many Requests"},
        500: {"description": "Internal Server Error"},
    }
)

# public paths are registered ahead of /reviews/{review_id}
router.include_router(public.router)
router.include_router(reviews.router)
router.include_router(listings.router)
router.include_router(manager.router)
router.include_router(auth.router)
router.include_router(google_reviews.router)
router.include_router(health.router)
