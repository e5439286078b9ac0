"""Adapters - I/O implementations of ports."""

from .file_credentials import FileCredentialStore
from .token_endpoint import TokenEndpointClient
from .google_calendar import GoogleCalendarAdapter
from .google_tasks import GoogleTasksAdapter

__all__ = [
    "FileCredentialStore",
    "TokenEndpointClient",
    "GoogleCalendarAdapter",
    "GoogleTasksAdapter",
]
