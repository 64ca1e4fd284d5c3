"""
Standardized exception hierarchy for habitquest
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class HabitQuestError(Exception):
    """
    Base exception for all habitquest errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise HabitQuestError(
            message="Failed to save completions",
            user_id="user-1",
            operation="toggle_completion",
            context={"habit_id": "abc-123"}
        )
    """

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for callers (UI layer, CLI)"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (User Input)
# ==========================================

class ValidationError(HabitQuestError):
    """
    Raised when user input fails validation, before anything is mutated

    Examples:
    - Empty habit name
    - Unknown difficulty
    - Malformed date key

    Example:
        raise ValidationError(
            message="Habit name cannot be empty",
            field="name",
            value="   ",
            user_id="user-1"
        )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


class RecordNotFoundError(HabitQuestError):
    """Requested record does not exist"""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


# ==========================================
# Storage Errors
# ==========================================

class StorageError(HabitQuestError):
    """
    Base class for persistence failures
    """
    pass


class StorageConnectionError(StorageError):
    """Key-value store is unreachable"""

    def __init__(self, message: str = "Storage connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble reaching your saved data. Please try again in a moment.",
            **kwargs
        )


class StorageWriteError(StorageError):
    """Writing a collection failed; prior durable state was restored"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs
    ):
        self.key = key
        super().__init__(
            message=message,
            user_message="We couldn't save your progress. Nothing was changed, please try again.",
            context={"key": key},
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(HabitQuestError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> HabitQuestError:
    """
    Wrap external exceptions (redis, filesystem) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate HabitQuestError subclass

    Example:
        try:
            await client.set(key, payload)
        except redis.RedisError as e:
            raise wrap_external_exception(e, operation="store_set", context={"key": key})
    """
    # Import here to avoid circular dependencies
    import redis

    if isinstance(error, HabitQuestError):
        return error

    # Store unreachable
    if isinstance(error, (redis.ConnectionError, redis.TimeoutError)):
        return StorageConnectionError(
            message=f"Storage connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, (redis.RedisError, OSError)):
        return StorageWriteError(
            message=f"Storage operation failed: {str(error)}",
            key=(context or {}).get("key"),
            user_id=user_id,
            operation=operation,
            cause=error
        )

    # Generic fallback
    else:
        return HabitQuestError(
            message=f"{operation} failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
