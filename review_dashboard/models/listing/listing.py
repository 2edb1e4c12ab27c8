"""
Listing model: the rentable property reviews are attached to.
"""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from review_dashboard.models.base import BaseModel, TimestampMixin

__all__ = ["Listing"]


class Listing(BaseModel, TimestampMixin):
    __tablename__ = "listings"

    hostaway_listing_id = Column(Integer, nullable=True, unique=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)

    reviews = relationship("Review", back_populates="listing", lazy="raise")
