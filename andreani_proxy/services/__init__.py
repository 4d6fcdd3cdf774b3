"""Service layer exports."""

from .credential_store import CredentialStore
from .token_manager import TokenManager

__all__ = ["CredentialStore", "TokenManager"]
