# src/sm_manager/core/errors.py

"""
Error taxonomy.

Not Found is deliberately absent: missing ids/keys come back as None or are a no-op.
"""

from __future__ import annotations


class SMManagerError(Exception):
    """Base class for errors surfaced to the UI layer."""


class StoreUnavailable(SMManagerError):
    """The backing store failed; the write was not applied."""


class InvalidCredential(SMManagerError):
    """Access Gate rejection. One message for every cause."""

    def __init__(self) -> None:
        super().__init__("Invalid credential.")


class ConflictingIdentifier(SMManagerError):
    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"{field} already in use: {value}")
        self.field = field
        self.value = value


class PermissionDenied(SMManagerError):
    """The session identity is not allowed to perform the operation."""
