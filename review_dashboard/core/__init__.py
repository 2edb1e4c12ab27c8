"""Core application modules."""

from .config import Settings, get_settings
from .security import PasswordManager, TokenManager

__all__ = ["Settings", "get_settings", "PasswordManager", "TokenManager"]
