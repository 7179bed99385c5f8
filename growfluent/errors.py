"""
Error taxonomy for GrowFluent.

Scheduler math never raises these; they mark the seams to the oracle,
the store and the session state machine.
"""

from __future__ import annotations


class GrowFluentError(Exception):
    """Base class for all GrowFluent errors."""


class SelectionRefused(GrowFluentError):
    """A session could not start because the selection was empty or too small."""

    def __init__(self, session_type: str, reason: str):
        self.session_type = session_type
        self.reason = reason
        super().__init__(f"{session_type} session refused: {reason}")


class InvalidTransition(GrowFluentError):
    """An orchestrator call was made in a state that does not allow it."""

    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while session is {state}")


class OracleTransient(GrowFluentError):
    """Rate limit or quota failure. Safe to retry."""


class OracleFailed(GrowFluentError):
    """Oracle call failed for good (non-retryable or retries exhausted)."""


class PersistenceFailed(GrowFluentError):
    """A remote store operation failed."""

    def __init__(self, message: str, not_found: bool = False):
        self.not_found = not_found
        super().__init__(message)
