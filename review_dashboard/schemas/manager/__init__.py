from review_dashboard.schemas.manager.manager import (
    LoginRequest,
    ManagerProfile,
    SetupRequest,
    TokenResponse,
)

__all__ = ["LoginRequest", "ManagerProfile", "SetupRequest", "TokenResponse"]
