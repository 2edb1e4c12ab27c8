"""
Manager review endpoints: Hostaway ingestion, dashboard listing and
moderation.
"""

import math
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from pydantic import ValidationError as PydanticValidationError

from review_dashboard.api.deps import (
    ClientIPDep,
    CurrentManagerDep,
    IngestionServiceDep,
    ModerationServiceDep,
    RegistryDep,
    SessionDep,
)
from review_dashboard.api.route_wrapper import cached_endpoint
from review_dashboard.core.exceptions import ReviewNotFoundError, create_validation_error
from review_dashboard.models.base import ReviewStatus, ReviewType
from review_dashboard.repositories.review import ReviewRepository
from review_dashboard.schemas.common import SuccessResponse
from review_dashboard.schemas.review import (
    ApproveRequest,
    BulkModerationRequest,
    BulkModerationResponse,
    HostawayIngestionData,
    HostawayIngestionResult,
    RejectRequest,
    ReviewFilterParams,
    ReviewListResponse,
    ReviewResponse,
    VisibilityRequest,
)

router = APIRouter(prefix="/reviews", tags=["reviews"])

ReviewIdPath = Annotated[int, Path(ge=1, description="Review id")]


def get_review_filters(
    registry: RegistryDep,
    status: Optional[ReviewStatus] = Query(default=None),
    type: Optional[ReviewType] = Query(default=None),
    min_rating: Optional[int] = Query(default=None, alias="minRating"),
    max_rating: Optional[int] = Query(default=None, alias="maxRating"),
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    search: Optional[str] = Query(default=None),
    sort_by: str = Query(default="submittedAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
    page: int = Query(default=1),
    limit: int = Query(default=20),
) -> ReviewFilterParams:
    max_page_size = registry.settings.moderation.DASHBOARD_MAX_PAGE_SIZE
    if limit > max_page_size:
        raise create_validation_error({"limit": [f"Limit must be at most {max_page_size}"]})
    try:
        return ReviewFilterParams(
            status=status,
            type=type,
            min_rating=min_rating,
            max_rating=max_rating,
            date_from=date_from,
            date_to=date_to,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
    except PydanticValidationError as e:
        field_errors = {}
        for error in e.errors():
            location = ".".join(str(part) for part in error.get("loc", ())) or "query"
            field_errors.setdefault(location, []).append(error.get("msg", "Invalid value"))
        raise create_validation_error(field_errors) from e


ReviewFiltersDep = Annotated[ReviewFilterParams, Depends(get_review_filters)]


# ------------------------------------------------------------------ #
# Ingestion
# ------------------------------------------------------------------ #
@router.get("/hostaway", response_model=SuccessResponse[HostawayIngestionResult])
@cached_endpoint("hostaway_ingestion", rate_limit="hostaway_ingestion")
async def ingest_hostaway_reviews(
    request: Request,
    manager: CurrentManagerDep,
    service: IngestionServiceDep,
):
    """Pull reviews from Hostaway and return every stored review with stats."""
    report = await service.ingest_hostaway()
    return SuccessResponse.create(
        data=HostawayIngestionResult(
            data=HostawayIngestionData(
                reviews=[ReviewResponse.model_validate(r) for r in report.reviews],
                stats=report.stats,
                rejected=report.rejected,
                ingested=report.ingested,
                source_available=report.source_available,
            )
        ),
        message=None if report.source_available else "Hostaway unavailable, showing stored reviews",
    )


# ------------------------------------------------------------------ #
# Dashboard queries
# ------------------------------------------------------------------ #
@router.get("", response_model=SuccessResponse[ReviewListResponse])
async def list_reviews(
    manager: CurrentManagerDep,
    session: SessionDep,
    filters: ReviewFiltersDep,
    listing_id: Optional[int] = Query(default=None, alias="listingId", ge=1),
):
    reviews, total = await ReviewRepository(session).search(filters, listing_id=listing_id)
    return SuccessResponse.create(
        data=ReviewListResponse(
            reviews=[ReviewResponse.model_validate(r) for r in reviews],
            total=total,
            page=filters.page,
            limit=filters.limit,
            total_pages=math.ceil(total / filters.limit) if total else 0,
        )
    )


# ------------------------------------------------------------------ #
# Moderation
# ------------------------------------------------------------------ #
@router.post("/bulk", response_model=SuccessResponse[BulkModerationResponse])
async def bulk_moderate(
    payload: BulkModerationRequest,
    manager: CurrentManagerDep,
    service: ModerationServiceDep,
    client_ip: ClientIPDep,
):
    result = await service.bulk(
        payload.action,
        payload.review_ids,
        manager.id,
        reason=payload.reason,
        notes=payload.notes,
        ip_address=client_ip,
    )
    return SuccessResponse.create(data=result)


@router.get("/{review_id}", response_model=SuccessResponse[ReviewResponse])
async def get_review(review_id: ReviewIdPath, manager: CurrentManagerDep, session: SessionDep):
    review = await ReviewRepository(session).get_by_id(review_id)
    if review is None:
        raise ReviewNotFoundError(review_id)
    return SuccessResponse.create(data=ReviewResponse.model_validate(review))


@router.post("/{review_id}/approve", response_model=SuccessResponse[ReviewResponse])
async def approve_review(
    review_id: ReviewIdPath,
    manager: CurrentManagerDep,
    service: ModerationServiceDep,
    client_ip: ClientIPDep,
    payload: Optional[ApproveRequest] = None,
):
    review = await service.approve(
        review_id,
        manager.id,
        notes=payload.notes if payload else None,
        ip_address=client_ip,
    )
    return SuccessResponse.create(data=ReviewResponse.model_validate(review), message="Review approved")


@router.post("/{review_id}/reject", response_model=SuccessResponse[ReviewResponse])
async def reject_review(
    review_id: ReviewIdPath,
    manager: CurrentManagerDep,
    service: ModerationServiceDep,
    client_ip: ClientIPDep,
    payload: Optional[RejectRequest] = None,
):
    review = await service.reject(
        review_id,
        manager.id,
        payload.reason if payload else None,
        notes=payload.notes if payload else None,
        ip_address=client_ip,
    )
    return SuccessResponse.create(data=ReviewResponse.model_validate(review), message="Review rejected")


@router.post("/{review_id}/revoke", response_model=SuccessResponse[ReviewResponse])
async def revoke_review(
    review_id: ReviewIdPath,
    manager: CurrentManagerDep,
    service: ModerationServiceDep,
    client_ip: ClientIPDep,
):
    review = await service.revoke(review_id, manager.id, ip_address=client_ip)
    return SuccessResponse.create(data=ReviewResponse.model_validate(review), message="Approval revoked")


@router.post("/{review_id}/reopen", response_model=SuccessResponse[ReviewResponse])
async def reopen_review(
    review_id: ReviewIdPath,
    manager: CurrentManagerDep,
    service: ModerationServiceDep,
    client_ip: ClientIPDep,
):
    review = await service.reopen(review_id, manager.id, ip_address=client_ip)
    return SuccessResponse.create(data=ReviewResponse.model_validate(review), message="Review reopened")


@router.patch("/{review_id}/visibility", response_model=SuccessResponse[ReviewResponse])
async def set_review_visibility(
    review_id: ReviewIdPath,
    payload: VisibilityRequest,
    manager: CurrentManagerDep,
    service: ModerationServiceDep,
    client_ip: ClientIPDep,
):
    review = await service.set_public(review_id, manager.id, payload.is_public, ip_address=client_ip)
    return SuccessResponse.create(data=ReviewResponse.model_validate(review))
