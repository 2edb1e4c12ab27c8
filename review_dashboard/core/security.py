"""
Security and Authentication Module

Password hashing and JWT access tokens for the manager role.
"""

import secrets
from typing import Any, Dict, Optional
from datetime import timedelta
from enum import Enum

import jwt
from passlib.context import CryptContext

from .config import SecuritySettings
from .exceptions import AuthenticationError, InvalidTokenError, TokenExpiredError
from .logging import get_logger
from review_dashboard.utils.datetime_utils import DateTimeHelper

logger = get_logger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MANAGER_ROLE = "manager"


class TokenType(str, Enum):
    """Token type enumeration"""
    ACCESS = "access"


class PasswordManager:
    """Password hashing utilities"""

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            # Malformed stored hash
            logger.warning("Password hash could not be verified")
            return False


class TokenManager:
    """JWT token management utilities"""

    def __init__(self, security_settings: SecuritySettings):
        self.secret_key = security_settings.SECRET_KEY
        self.algorithm = security_settings.ALGORITHM
        self.access_token_expire = timedelta(
            minutes=security_settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    @property
    def expires_in_seconds(self) -> int:
        return int(self.access_token_expire.total_seconds())

    def create_token(
        self,
        data: Dict[str, Any],
        token_type: TokenType = TokenType.ACCESS,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create JWT token with specified data and expiration.

        Args:
            data: Claims to encode in the token
            token_type: Type of token to create
            expires_delta: Custom expiration time

        Returns:
            Encoded JWT token
        """
        now = DateTimeHelper.now()
        to_encode = data.copy()
        to_encode.update({
            "exp": now + (expires_delta or self.access_token_expire),
            "iat": now,
            "type": token_type.value,
            "jti": secrets.token_urlsafe(16),
        })
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def create_manager_token(self, manager_id: int) -> str:
        return self.create_token({"sub": str(manager_id), "role": MANAGER_ROLE})

    def verify_token(
        self,
        token: str,
        expected_type: Optional[TokenType] = TokenType.ACCESS
    ) -> Dict[str, Any]:
        """
        Verify and decode JWT token.

        Raises:
            InvalidTokenError: If token is invalid
            TokenExpiredError: If token has expired
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except jwt.PyJWTError as e:
            logger.warning("Token verification failed", extra={'reason': str(e)})
            raise InvalidTokenError(reason=str(e))

        if expected_type and payload.get("type") != expected_type.value:
            raise InvalidTokenError("Invalid token type")
        if not payload.get("sub"):
            raise InvalidTokenError("Token has no subject")

        return payload

    def get_manager_id(self, payload: Dict[str, Any]) -> int:
        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Invalid token subject")
