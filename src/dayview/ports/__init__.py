"""Ports - interfaces/protocols for external dependencies."""

from .task_repo import TaskRepository
from .calendar_repo import CalendarRepository
from .credential_store import CredentialStore
from .token_service import TokenGrant, TokenService

__all__ = [
    "TaskRepository",
    "CalendarRepository",
    "CredentialStore",
    "TokenGrant",
    "TokenService",
]
