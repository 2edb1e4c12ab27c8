"""
Manager authentication: first-run account setup and login.
"""

from fastapi import APIRouter, status

from review_dashboard.api.deps import RegistryDep, SessionDep
from review_dashboard.core.exceptions import (
    AuthenticationError,
    DuplicateEntryError,
    create_validation_error,
)
from review_dashboard.core.logging import get_logger
from review_dashboard.core.security import PasswordManager
from review_dashboard.models.manager import Manager
from review_dashboard.repositories.manager import ManagerRepository
from review_dashboard.schemas.common import SuccessResponse
from review_dashboard.schemas.manager import (
    LoginRequest,
    ManagerProfile,
    SetupRequest,
    TokenResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(registry, manager: Manager) -> TokenResponse:
    return TokenResponse(
        access_token=registry.token_manager.create_manager_token(manager.id),
        expires_in=registry.token_manager.expires_in_seconds,
        manager=ManagerProfile.model_validate(manager),
    )


@router.post("/login", response_model=SuccessResponse[TokenResponse])
async def login(payload: LoginRequest, registry: RegistryDep, session: SessionDep):
    manager = await ManagerRepository(session).get_by_email(payload.email)
    # same error for unknown email and wrong password
    if manager is None or not PasswordManager.verify_password(payload.password, manager.password_hash):
        logger.warning("Failed manager login", extra={'email': payload.email})
        raise AuthenticationError("Invalid email or password")

    logger.info("Manager logged in", extra={'manager_id': manager.id})
    return SuccessResponse.create(data=_token_response(registry, manager))


@router.post(
    "/setup",
    response_model=SuccessResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
)
async def setup_first_manager(payload: SetupRequest, registry: RegistryDep, session: SessionDep):
    """
    Create the first manager account.

    Only allowed while no manager exists; afterwards accounts are created
    out of band.
    """
    min_length = registry.settings.security.PASSWORD_MIN_LENGTH
    if len(payload.password) < min_length:
        raise create_validation_error({"password": [f"Password must be at least {min_length} characters"]})

    repo = ManagerRepository(session)
    if await repo.count() > 0:
        raise DuplicateEntryError("A manager account already exists", field="email", table="managers")

    manager = await repo.create_manager(
        name=payload.name,
        email=payload.email,
        password_hash=PasswordManager.hash_password(payload.password),
        is_first_user=True,
    )
    await repo.commit()
    logger.info("First manager account created", extra={'manager_id': manager.id})
    return SuccessResponse.create(data=_token_response(registry, manager), message="Manager account created")
