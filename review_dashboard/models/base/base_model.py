"""
Base model configuration for SQLAlchemy ORM.

Provides the declarative base and an abstract model with an integer
primary key and serialization helpers.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, Enum as SQLEnum, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
json_type = JSON().with_variant(JSONB(), "postgresql")


class BaseModel(Base):
    """
    Abstract base model with common fields and methods.
    """

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    def to_dict(self, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Args:
            exclude: List of column names to exclude

        Returns:
            Dictionary representation of the model
        """
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            if column.name in exclude:
                continue
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                result[column.name] = value.isoformat()
            elif isinstance(value, Enum):
                result[column.name] = value.value
            else:
                result[column.name] = value

        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


def enum_type(enum_cls, name: str) -> SQLEnum:
    """String-backed enum column storing member values ('pending', not 'PENDING')"""
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=32,
        validate_strings=True,
    )
