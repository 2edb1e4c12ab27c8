"""
Review model.

One row per provider review, keyed for idempotent ingestion by
``(source, external_id)`` and carrying the moderation state and audit trail.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import false

from review_dashboard.models.base import (
    BaseModel,
    ReviewSource,
    ReviewStatus,
    ReviewType,
    TimestampMixin,
    enum_type,
    json_type,
)

__all__ = ["Review"]


class Review(BaseModel, TimestampMixin):
    """
    Guest or host review ingested from an external source.

    Moderation columns are written only by the moderation service; ingestion
    refreshes content columns and leaves decided reviews untouched.
    """

    __tablename__ = "reviews"

    # Provenance and idempotency key
    source = Column(
        enum_type(ReviewSource, "review_source"),
        nullable=False,
        comment="Origin of the review (hostaway, google)",
    )
    external_id = Column(
        String(128),
        nullable=False,
        comment="Provider identifier, synthesized when the provider has none",
    )
    hostaway_id = Column(
        Integer,
        nullable=True,
        unique=True,
        index=True,
        comment="Hostaway review id",
    )

    listing_id = Column(
        Integer,
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Content
    type = Column(
        enum_type(ReviewType, "review_type"),
        nullable=False,
        index=True,
    )
    status = Column(
        enum_type(ReviewStatus, "review_status"),
        nullable=False,
        default=ReviewStatus.PENDING,
        server_default=ReviewStatus.PENDING.value,
        index=True,
    )
    rating = Column(Integer, nullable=True, index=True, comment="Overall rating (1-5)")
    content = Column(Text, nullable=False)
    author_name = Column(String(255), nullable=False)
    author_email = Column(String(255), nullable=True)
    categories = Column(
        json_type,
        nullable=False,
        default=list,
        comment="Ordered [{category, rating}] pairs",
    )
    submitted_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Moderation audit trail
    approved_by = Column(
        Integer,
        ForeignKey("managers.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(
        Integer,
        ForeignKey("managers.id", ondelete="SET NULL"),
        nullable=True,
    )
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    is_public = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    # Relationships
    listing = relationship("Listing", back_populates="reviews", lazy="raise")

    __table_args__ = (
        UniqueConstraint("source", "external_id", name="uq_reviews_source_external_id"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_reviews_rating_range",
        ),
        CheckConstraint(
            "NOT is_public OR status = 'approved'",
            name="ck_reviews_public_requires_approval",
        ),
        Index(
            "ix_reviews_public_lookup",
            "listing_id",
            "status",
            "is_public",
            "submitted_at",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Review(id={self.id}, source={self.source}, "
            f"external_id={self.external_id}, status={self.status})>"
        )
