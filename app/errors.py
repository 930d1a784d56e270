"""Domain errors raised by the compliance services.

The HTTP layer maps each class to a status code; workers log them.
"""

from __future__ import annotations


class ComplianceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ComplianceValidationError(ComplianceError):
    status_code = 400


class NotFoundError(ComplianceError):
    status_code = 404


class PermissionDeniedError(ComplianceError):
    status_code = 403


class ChannelDeliveryError(ComplianceError):
    """A single notification channel could not deliver."""

    status_code = 502

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel
