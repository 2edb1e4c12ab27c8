"""
Review moderation service.

Implements the review state machine:

    pending  --approve-->  approved
    pending  --reject-->   rejected
    approved --revoke-->   pending    (reversal)
    rejected --reopen-->   pending    (reversal)

plus the visibility toggle on approved reviews. Every status change is a
single conditional UPDATE guarded by the expected current status, committed
together with its activity-log row.
"""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from review_dashboard.core.cache import CacheManager
from review_dashboard.core.config import ModerationSettings
from review_dashboard.core.exceptions import (
    BaseAppException,
    InvalidTransitionError,
    ReviewNotFoundError,
    ValidationError,
)
from review_dashboard.core.logging import get_logger
from review_dashboard.models.base import ActivityAction, ReviewStatus
from review_dashboard.models.review import Review
from review_dashboard.repositories.review import ActivityLogRepository, ReviewRepository
from review_dashboard.schemas.review import BulkModerationResponse, ModerationItemResult
from review_dashboard.services.review.public_review_service import invalidate_public_reviews
from review_dashboard.utils.datetime_utils import DateTimeHelper

logger = get_logger(__name__)


class ModerationService:
    """
    Manager-driven review transitions.

    Re-applying a transition that already holds is a no-op that returns the
    current review. Conflicting transitions raise ``InvalidTransitionError``
    and leave the review unchanged.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: Optional[CacheManager] = None,
        moderation_settings: Optional[ModerationSettings] = None
    ):
        self.session = session
        self.cache = cache
        self.settings = moderation_settings or ModerationSettings()
        self.reviews = ReviewRepository(session)
        self.activity = ActivityLogRepository(session)

    # ==================== Transitions ====================

    async def approve(
        self,
        review_id: int,
        manager_id: int,
        notes: Optional[str] = None,
        ip_address: Optional[str] = None,
        log_action: ActivityAction = ActivityAction.APPROVE_REVIEW
    ) -> Review:
        values: Dict[str, Any] = {
            "status": ReviewStatus.APPROVED,
            "approved_by": manager_id,
            "approved_at": DateTimeHelper.now(),
        }
        if notes is not None:
            values["notes"] = notes
        return await self._transition(
            review_id,
            manager_id,
            action="approve",
            from_status=ReviewStatus.PENDING,
            to_status=ReviewStatus.APPROVED,
            values=values,
            log_action=log_action,
            details={"notes": notes} if notes else {},
            ip_address=ip_address,
        )

    async def reject(
        self,
        review_id: int,
        manager_id: int,
        reason: Optional[str],
        notes: Optional[str] = None,
        ip_address: Optional[str] = None,
        log_action: ActivityAction = ActivityAction.REJECT_REVIEW
    ) -> Review:
        """
        Reject a pending review.

        Raises:
            ValidationError: If ``reason`` is missing or blank
            InvalidTransitionError: If the review is approved
            ReviewNotFoundError: If the review does not exist
        """
        reason = self._require_reason(reason)
        values: Dict[str, Any] = {
            "status": ReviewStatus.REJECTED,
            "rejected_by": manager_id,
            "rejected_at": DateTimeHelper.now(),
            "rejection_reason": reason,
        }
        if notes is not None:
            values["notes"] = notes
        return await self._transition(
            review_id,
            manager_id,
            action="reject",
            from_status=ReviewStatus.PENDING,
            to_status=ReviewStatus.REJECTED,
            values=values,
            log_action=log_action,
            details={"reason": reason},
            ip_address=ip_address,
        )

    async def revoke(self, review_id: int, manager_id: int, ip_address: Optional[str] = None) -> Review:
        """Return an approved review to pending and hide it"""
        self._require_reversal(review_id, "revoke")
        return await self._transition(
            review_id,
            manager_id,
            action="revoke",
            from_status=ReviewStatus.APPROVED,
            to_status=ReviewStatus.PENDING,
            values={
                "status": ReviewStatus.PENDING,
                "approved_by": None,
                "approved_at": None,
                "is_public": False,
            },
            log_action=ActivityAction.REVOKE_APPROVAL,
            ip_address=ip_address,
        )

    async def reopen(self, review_id: int, manager_id: int, ip_address: Optional[str] = None) -> Review:
        """Return a rejected review to pending"""
        self._require_reversal(review_id, "reopen")
        return await self._transition(
            review_id,
            manager_id,
            action="reopen",
            from_status=ReviewStatus.REJECTED,
            to_status=ReviewStatus.PENDING,
            values={
                "status": ReviewStatus.PENDING,
                "rejected_by": None,
                "rejected_at": None,
                "rejection_reason": None,
            },
            log_action=ActivityAction.REOPEN_REVIEW,
            ip_address=ip_address,
        )

    async def set_public(
        self,
        review_id: int,
        manager_id: int,
        is_public: bool,
        ip_address: Optional[str] = None
    ) -> Review:
        """
        Show or hide an approved review on the public read path.

        Hiding a review that is not approved is a no-op since it is not
        public anyway; showing one raises ``InvalidTransitionError``.
        """
        review = await self._load(review_id)

        if review.status != ReviewStatus.APPROVED:
            if is_public:
                raise InvalidTransitionError(review_id, review.status.value, "publish")
            return review
        if review.is_public == is_public:
            return review

        try:
            updated = await self.reviews.set_visibility(review_id, is_public)
            if not updated:
                # status changed underneath us
                current = await self._load(review_id)
                if is_public:
                    raise InvalidTransitionError(review_id, current.status.value, "publish")
                return current

            await self.activity.log_action(
                manager_id,
                ActivityAction.SET_VISIBILITY,
                review_id=review_id,
                details={"is_public": is_public},
                ip_address=ip_address,
            )
            await self.reviews.commit()
        except BaseAppException:
            await self.session.rollback()
            raise

        review = await self._load(review_id)
        await self._invalidate(review.listing_id)
        logger.info("Review visibility changed", extra={
            'review_id': review_id,
            'manager_id': manager_id,
            'is_public': is_public,
        })
        return review

    # ==================== Bulk ====================

    async def bulk(
        self,
        action: str,
        review_ids: Iterable[int],
        manager_id: int,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> BulkModerationResponse:
        """
        Approve or reject many reviews.

        Each item is committed on its own; a failing item is rolled back and
        reported without affecting the others.

        Returns:
            BulkModerationResponse with one result per distinct review id
        """
        if action not in ("approve", "reject"):
            raise ValidationError(
                f"Unsupported bulk action: {action}",
                field_errors={"action": ["Must be approve or reject"]},
            )
        if action == "reject":
            reason = self._require_reason(reason)

        results: List[ModerationItemResult] = []
        for review_id in dict.fromkeys(review_ids):
            try:
                if action == "approve":
                    review = await self.approve(
                        review_id, manager_id, notes=notes, ip_address=ip_address,
                        log_action=ActivityAction.BULK_APPROVE,
                    )
                else:
                    review = await self.reject(
                        review_id, manager_id, reason, notes=notes, ip_address=ip_address,
                        log_action=ActivityAction.BULK_REJECT,
                    )
            except BaseAppException as e:
                await self.session.rollback()
                results.append(ModerationItemResult(
                    review_id=review_id,
                    success=False,
                    error_code=e.error_code.value,
                    message=e.message,
                ))
                continue
            results.append(ModerationItemResult(review_id=review_id, success=True, status=review.status))

        succeeded = sum(1 for r in results if r.success)
        logger.info("Bulk moderation completed", extra={
            'action': action,
            'manager_id': manager_id,
            'succeeded': succeeded,
            'failed': len(results) - succeeded,
        })
        return BulkModerationResponse(results=results, succeeded=succeeded, failed=len(results) - succeeded)

    # ==================== Internals ====================

    async def _load(self, review_id: int) -> Review:
        review = await self.reviews.get_by_id(review_id, refresh=True)
        if review is None:
            raise ReviewNotFoundError(review_id)
        return review

    async def _transition(
        self,
        review_id: int,
        manager_id: int,
        *,
        action: str,
        from_status: ReviewStatus,
        to_status: ReviewStatus,
        values: Dict[str, Any],
        log_action: ActivityAction,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None
    ) -> Review:
        review = await self._load(review_id)
        if review.status == to_status:
            return review
        if review.status != from_status:
            raise InvalidTransitionError(review_id, review.status.value, action)

        try:
            updated = await self.reviews.transition(review_id, from_status, values)
            if not updated:
                # a concurrent writer moved the review first
                current = await self._load(review_id)
                if current.status == to_status:
                    return current
                raise InvalidTransitionError(review_id, current.status.value, action)

            await self.activity.log_action(
                manager_id,
                log_action,
                review_id=review_id,
                details={"from": from_status.value, "to": to_status.value, **(details or {})},
                ip_address=ip_address,
            )
            await self.reviews.commit()
        except BaseAppException:
            await self.session.rollback()
            raise

        review = await self._load(review_id)
        await self._invalidate(review.listing_id)
        logger.info("Review moderated", extra={
            'review_id': review_id,
            'manager_id': manager_id,
            'action': action,
            'status': to_status.value,
        })
        return review

    async def _invalidate(self, listing_id: int):
        if self.cache is not None:
            await invalidate_public_reviews(self.cache, listing_id)

    @staticmethod
    def _require_reason(reason: Optional[str]) -> str:
        if reason is None or not reason.strip():
            raise ValidationError(
                "A rejection reason is required",
                field_errors={"reason": ["Must not be empty"]},
            )
        return reason.strip()

    def _require_reversal(self, review_id: int, action: str):
        if not self.settings.ALLOW_REVERSAL:
            raise InvalidTransitionError(
                review_id,
                "decided",
                action,
                message="Moderation decisions cannot be reversed",
            )
