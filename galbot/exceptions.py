"""Custom exceptions for GalBot."""

from typing import Any, Optional


class GalBotException(Exception):
    """Base exception for all GalBot errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationException(GalBotException):
    """Exception raised when configuration is invalid."""

    pass


# =============================================================================
# Adapter Exceptions
# =============================================================================

class UpstreamError(GalBotException):
    """Exception raised when a generation API call fails.

    Covers network errors, timeouts, non-success statuses and payloads
    that do not have the expected shape.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.status_code = status_code
        full_details = {**(details or {}), "status_code": status_code} if status_code else details
        super().__init__(message, full_details)


class StorageError(GalBotException):
    """Exception raised when archiving an asset to blob storage fails."""

    pass


# =============================================================================
# Ledger Exceptions
# =============================================================================

class StoreUnavailable(GalBotException):
    """Exception raised when the credit ledger cannot be read or written."""

    pass


# =============================================================================
# Domain Rule Exceptions
# =============================================================================

class InvalidAmount(GalBotException):
    """Exception raised when a credit amount is not a positive integer."""

    def __init__(self, amount: Any):
        super().__init__("Invalid credit amount", {"amount": amount})
        self.amount = amount


class PermissionDenied(GalBotException):
    """Exception raised when a privileged command is used by someone else."""

    def __init__(self, user_id: str, command_name: str):
        super().__init__(
            f"User '{user_id}' may not use '{command_name}'",
            {"user_id": user_id, "command_name": command_name},
        )
        self.user_id = user_id
        self.command_name = command_name
