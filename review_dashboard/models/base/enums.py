"""
Enumerations shared by models and schemas.
"""

from enum import Enum


class ReviewStatus(str, Enum):
    """Moderation state of a review"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewType(str, Enum):
    """Direction of a review"""

    HOST_TO_GUEST = "host-to-guest"
    GUEST_TO_HOST = "guest-to-host"


class ReviewSource(str, Enum):
    """External origin of a review"""

    HOSTAWAY = "hostaway"
    GOOGLE = "google"


class ActivityAction(str, Enum):
    """Manager actions recorded in the activity log"""

    APPROVE_REVIEW = "APPROVE_REVIEW"
    REJECT_REVIEW = "REJECT_REVIEW"
    REVOKE_APPROVAL = "REVOKE_APPROVAL"
    REOPEN_REVIEW = "REOPEN_REVIEW"
    SET_VISIBILITY = "SET_VISIBILITY"
    BULK_APPROVE = "BULK_APPROVE"
    BULK_REJECT = "BULK_REJECT"
