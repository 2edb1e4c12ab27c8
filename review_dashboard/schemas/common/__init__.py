from review_dashboard.schemas.common.base import (
    BaseCreateSchema,
    BaseFilterSchema,
    BaseResponseSchema,
    BaseSchema,
)
from review_dashboard.schemas.common.response import ErrorResponse, SuccessResponse

__all__ = [
    "BaseSchema",
    "BaseCreateSchema",
    "BaseResponseSchema",
    "BaseFilterSchema",
    "SuccessResponse",
    "ErrorResponse",
]
