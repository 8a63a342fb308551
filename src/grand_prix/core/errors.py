# src/grand_prix/core/errors.py

from __future__ import annotations


class GrandPrixError(Exception):
    """Base class for errors whose message is meant for the user."""


class ValidationError(GrandPrixError):
    """Rejected input or a premature action (shown to the user, nothing changes)."""


class AuthError(GrandPrixError):
    """A gating sign-in/sign-up/profile call failed; the screen transition is aborted."""


class BackendError(GrandPrixError):
    """Hosted backend call failed (HTTP error status or transport failure)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
