"""
Repository-layer exceptions for dialer persistence flows.
"""

from __future__ import annotations


class DialerRepositoryError(Exception):
    """Base exception for dialer repository failures."""


class AlertNotFoundError(DialerRepositoryError):
    """Raised when a referenced alert does not exist."""

    def __init__(self, alert_id: object) -> None:
        super().__init__(f"Alert {alert_id} not found.")
        self.alert_id = alert_id


class UnsupportedDialectError(DialerRepositoryError):
    """Raised when an upsert is attempted on a backend without ON CONFLICT support."""
