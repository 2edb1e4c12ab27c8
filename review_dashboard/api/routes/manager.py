"""
Current manager profile.
"""

from fastapi import APIRouter

from review_dashboard.api.deps import CurrentManagerDep
from review_dashboard.schemas.common import SuccessResponse
from review_dashboard.schemas.manager import ManagerProfile

router = APIRouter(prefix="/manager", tags=["manager"])


@router.get("", response_model=SuccessResponse[ManagerProfile])
async def get_manager_profile(manager: CurrentManagerDep):
    return SuccessResponse.create(data=ManagerProfile.model_validate(manager))
