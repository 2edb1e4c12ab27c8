"""
Manager model: the single role allowed to moderate reviews.
"""

from sqlalchemy import Boolean, Column, String

from review_dashboard.models.base import BaseModel, TimestampMixin

__all__ = ["Manager"]


class Manager(BaseModel, TimestampMixin):
    __tablename__ = "managers"

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    is_first_user = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Manager(id={self.id}, email={self.email})>"
