"""
Error handling utilities and custom exceptions for the Virtual Model Routing Engine.
"""

import random
import time
from functools import wraps
from typing import Optional, Dict, Any, Tuple, Type


class VirtualModelRoutingError(Exception):
    """Base exception for all Virtual Model Routing Engine errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}


class ConfigurationError(VirtualModelRoutingError):
    """Raised when there are configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="CONFIG_ERROR", **kwargs)
        self.config_key = config_key


class InvalidTargetError(VirtualModelRoutingError):
    """Raised when a target is missing required fields."""

    def __init__(self, message: str, target_id: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="INVALID_TARGET", **kwargs)
        self.target_id = target_id


class DuplicateTargetError(VirtualModelRoutingError):
    """Raised when registering an id that is already present."""

    def __init__(self, target_id: str, **kwargs):
        super().__init__(f"Virtual model '{target_id}' already exists", error_code="DUPLICATE_TARGET", **kwargs)
        self.target_id = target_id


class TargetNotFoundOrDisabledError(VirtualModelRoutingError):
    """Raised when a named target cannot be used."""

    def __init__(self, message: str, target_id: Optional[str] = None, error_code: str = "TARGET_UNAVAILABLE", **kwargs):
        super().__init__(message, error_code=error_code, **kwargs)
        self.target_id = target_id


class TargetNotFoundError(TargetNotFoundOrDisabledError):
    """Raised when a target id is not registered."""

    def __init__(self, target_id: str, **kwargs):
        super().__init__(f"Virtual model '{target_id}' not found", target_id=target_id,
                         error_code="TARGET_NOT_FOUND", **kwargs)


class TargetDisabledError(TargetNotFoundOrDisabledError):
    """Raised when an explicitly requested target is disabled."""

    def __init__(self, target_id: str, **kwargs):
        super().__init__(f"Virtual model '{target_id}' is disabled", target_id=target_id,
                         error_code="TARGET_DISABLED", **kwargs)


class InvalidRuleError(VirtualModelRoutingError):
    """Raised when a routing rule is malformed."""

    def __init__(self, message: str, rule_id: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="INVALID_RULE", **kwargs)
        self.rule_id = rule_id


class NoEnabledTargetsError(VirtualModelRoutingError):
    """Raised when the registry is empty or fully disabled."""

    def __init__(self, message: str = "No enabled virtual models available", **kwargs):
        super().__init__(message, error_code="NO_ENABLED_TARGETS", **kwargs)


class NoSuitableTargetError(VirtualModelRoutingError):
    """Raised when scoring yields no candidate and no fallback applies."""

    def __init__(self, message: str = "No suitable virtual models found for this request", **kwargs):
        super().__init__(message, error_code="NO_SUITABLE_TARGET", **kwargs)


class DispatchError(VirtualModelRoutingError):
    """Raised when forwarding a request to a backend fails."""

    def __init__(self, message: str, target_id: Optional[str] = None, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, error_code="DISPATCH_ERROR", **kwargs)
        self.target_id = target_id
        self.status_code = status_code


def handle_error(error: Exception, logger=None, context: Optional[Dict[str, Any]] = None) -> VirtualModelRoutingError:
    """
    Convert generic exceptions to VirtualModelRoutingError instances.

    Args:
        error: The original exception
        logger: Optional RoutingLogger for error reporting
        context: Additional context information

    Returns:
        VirtualModelRoutingError instance
    """
    if isinstance(error, VirtualModelRoutingError):
        routing_error = error
    elif isinstance(error, ValueError):
        routing_error = ConfigurationError(str(error), context=context)
    elif isinstance(error, (ConnectionError, TimeoutError)):
        routing_error = DispatchError(f"Backend unreachable: {str(error)}", context=context)
    else:
        routing_error = VirtualModelRoutingError(str(error), context=context)

    if logger:
        logger.log_error(routing_error, context)

    return routing_error


def retry_with_backoff(max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 60.0,
                       retry_on: Tuple[Type[BaseException], ...] = (Exception,)):
    """
    Decorator factory implementing retry logic with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds
        retry_on: Exception types that trigger a retry
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    last_exception = e

                    if attempt == max_retries:
                        break

                    # Exponential backoff with jitter
                    delay = min(base_delay * (2 ** attempt), max_delay)
                    jitter = random.uniform(0.1, 0.3) * delay
                    time.sleep(delay + jitter)

            raise DispatchError(
                f"All retry attempts failed: {str(last_exception)}",
                context={"max_retries": max_retries, "last_error": str(last_exception)}
            ) from last_exception

        return wrapper

    return decorator

