"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.
"""

from photobot.models.domain import PipelineStage


class PhotoBotError(Exception):
    """Base exception for all bot errors."""

    pass


class StorageError(PhotoBotError):
    """Raised when the ledger database cannot be reached or a query fails."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"Storage error during {operation}: {message}")


# ============================================================================
# Authorization failures (photo submission refused before any upstream call)
# ============================================================================


class AuthorizationError(PhotoBotError):
    """Raised when a photo submission is refused."""

    def __init__(self, user_id: int, reason: str) -> None:
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"User {user_id} not authorized: {reason}")


class AccountNotRegisteredError(AuthorizationError):
    """Raised when the submitter never used /start."""

    def __init__(self, user_id: int) -> None:
        super().__init__(user_id, "account not registered")


class OutOfCreditsError(AuthorizationError):
    """Raised when the submitter has no credits left."""

    def __init__(self, user_id: int, credits: int) -> None:
        self.credits = credits
        super().__init__(user_id, f"out of credits (balance {credits})")


class DailyQuotaExhaustedError(AuthorizationError):
    """Raised when the submitter reached the daily limit."""

    def __init__(self, user_id: int, daily_used: int, daily_limit: int) -> None:
        self.daily_used = daily_used
        self.daily_limit = daily_limit
        super().__init__(user_id, f"daily quota exhausted ({daily_used}/{daily_limit})")


# ============================================================================
# Upstream failures (collapsed into one generic apology for the user)
# ============================================================================


class UpstreamError(PhotoBotError):
    """Raised when a remote collaborator fails during the enhancement pipeline."""

    def __init__(self, stage: PipelineStage, message: str) -> None:
        self.stage = stage
        self.message = message
        super().__init__(f"Upstream failure at {stage.value}: {message}")


class FileHostError(UpstreamError):
    """Raised when the anonymous file host rejects or fails an upload."""

    def __init__(self, message: str) -> None:
        super().__init__(PipelineStage.UPLOADED, message)


class RelayError(UpstreamError):
    """Raised when forwarding the original photo to the archive channel fails."""

    def __init__(self, message: str) -> None:
        super().__init__(PipelineStage.RELAYED, message)


class EnhancementAPIError(UpstreamError):
    """Raised when the enhancement API is unreachable or returns an invalid payload."""

    def __init__(self, message: str) -> None:
        super().__init__(PipelineStage.ENHANCED, message)


# ============================================================================
# Admin console failures
# ============================================================================


class PermissionDeniedError(PhotoBotError):
    """Raised when a non-operator invokes an admin action."""

    def __init__(self, user_id: int, action: str) -> None:
        self.user_id = user_id
        self.action = action
        super().__init__(f"User {user_id} is not allowed to run {action}")


class AccountNotFoundError(PhotoBotError):
    """Raised when an admin action targets an unknown account."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Account not found: {user_id}")


class InvalidCreditCommandError(PhotoBotError):
    """Raised when a credit adjustment reply is not '<id> <amount>'."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Invalid credit command: {text!r}")
