"""
Centralized error handling utilities.

Layered approach:

1. **Custom Exceptions** - Typed, user-friendly error classes (see base, cluster, config modules)
2. **Error Context** - Preserve technical details for logging, show friendly messages to users
3. **Recovery Hints** - Tell users what to do when things fail
4. **Error Isolation** - A failed scale request must not take down the worker pool

## Handling Patterns

| Pattern | Code |
|---------|------|
| Log and swallow in a worker | `@handle_errors(operation_name="scale", re_raise=False)` |
| Log and re-raise | `@handle_errors(operation_name="init", re_raise=True)` |
| Critical section with auto-logging | `with ErrorContext("connect to cluster"): ...` |
| Convert a backend failure | `raise wrap_api_error(e, "scale deployment web") from e` |
"""

import logging
from collections.abc import Callable
from functools import wraps
from typing import Optional, TypeVar

import requests
from kubernetes.client.exceptions import ApiException

from .base import KubepadError
from .cluster import ClusterApiError
from .config import ConfigFileInvalidError, ConfigValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def handle_errors(
    *,
    operation_name: str,
    user_notification: Optional[Callable[[str], None]] = None,
    fallback_value: Optional[T] = None,
    re_raise: bool = True,
    log_level: int = logging.ERROR,
) -> Callable:
    """
    Decorator for consistent error handling.

    Args:
        operation_name: Name of the operation for logging (e.g., "scale row 3")
        user_notification: Optional callback to notify the user
        fallback_value: Value to return if error occurs and re_raise=False
        re_raise: Whether to re-raise the exception after handling
        log_level: Logging level for the error (default: ERROR)

    Returns:
        Decorated function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)

            except KubepadError as e:
                logger.log(log_level, f"Failed to {operation_name}: {e.technical_message}")

                if user_notification:
                    user_notification(e.get_full_message())

                if re_raise:
                    raise
                return fallback_value

            except Exception as e:
                logger.log(
                    log_level,
                    f"Unexpected error during {operation_name}: {e}",
                    exc_info=True,
                )

                if user_notification:
                    user_notification(f"Error: {e}")

                if re_raise:
                    raise
                return fallback_value

        return wrapper
    return decorator


class ErrorContext:
    """
    Context manager for error handling with automatic logging.

    Example:
        ```python
        with ErrorContext("connect to cluster", re_raise=False) as ctx:
            cluster.start()

        if ctx.error:
            print(f"Failed: {ctx.error}")
        ```
    """

    def __init__(
        self,
        operation: str,
        logger_instance: Optional[logging.Logger] = None,
        re_raise: bool = True,
    ):
        self.operation = operation
        self.logger = logger_instance or logger
        self.re_raise = re_raise
        self.error: Optional[BaseException] = None

    def __enter__(self):
        self.logger.debug(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Log any exception; suppress it only when re_raise is False."""
        if exc_type is None:
            self.logger.debug(f"Completed: {self.operation}")
            return False

        self.error = exc_val

        if isinstance(exc_val, KubepadError):
            self.logger.error(f"Failed to {self.operation}: {exc_val.technical_message}")
        else:
            self.logger.error(f"Failed to {self.operation}: {exc_val}", exc_info=True)

        return not self.re_raise


def wrap_pydantic_error(error: Exception, file_path: str) -> KubepadError:
    """
    Convert Pydantic validation errors to Kubepad exceptions.

    Args:
        error: The Pydantic ValidationError
        file_path: Path to the config file that failed validation

    Returns:
        A ConfigurationError with appropriate type and message
    """
    from pydantic import ValidationError

    error_msg = str(error)

    if "Invalid JSON" in error_msg or "json_invalid" in error_msg:
        # Format: "Invalid JSON: <actual error> [type=json_invalid, ..."
        if "Invalid JSON:" in error_msg:
            parse_error = error_msg.split("Invalid JSON:")[1].split("[type=")[0].strip()
        else:
            parse_error = error_msg

        return ConfigFileInvalidError(file_path, parse_error)

    if isinstance(error, ValidationError):
        errors = error.errors()
        if len(errors) == 1:
            first_error = errors[0]
            field = ".".join(str(loc) for loc in first_error.get("loc", ("unknown",)))
            return ConfigValidationError(
                field=field,
                value=first_error.get("input"),
                error_msg=first_error.get("msg", "validation failed"),
                file_path=file_path,
            )
        if errors:
            error_lines = []
            for err in errors:
                field = ".".join(str(loc) for loc in err.get("loc", ("unknown",)))
                error_lines.append(f"  - {field}: {err.get('msg', 'validation failed')}")

            return ConfigValidationError(
                field="multiple fields",
                value=None,
                error_msg=f"{len(errors)} validation errors:\n" + "\n".join(error_lines),
                file_path=file_path,
            )

    return ConfigValidationError(field="unknown", value=None, error_msg=error_msg, file_path=file_path)


def wrap_api_error(error: Exception, operation: str) -> KubepadError:
    """
    Convert low-level backend client errors to Kubepad exceptions.

    Maps Kubernetes/OpenShift ``ApiException`` and ``requests`` failures
    (Marathon) to ``ClusterApiError`` with a status code and recovery hint.

    Args:
        error: The original exception from the client library
        operation: What was being attempted (e.g., "scale deployment web")

    Returns:
        A KubepadError describing the failure
    """
    if isinstance(error, KubepadError):
        return error

    if isinstance(error, ApiException):
        status = error.status
        hint = None
        if status in (401, 403):
            hint = "Check your kubeconfig credentials and RBAC permissions for deployments"
        elif status == 404:
            hint = "Check the configured namespace/project; the resource may have been deleted"
        elif status == 409:
            hint = "The resource changed concurrently; run a reset to resynchronize"
        return ClusterApiError(operation, error.reason or str(error), status=status, recovery_hint=hint)

    if isinstance(error, requests.HTTPError):
        status = error.response.status_code if error.response is not None else None
        hint = None
        if status in (401, 403):
            hint = "Check the Marathon access token (marathon.access_token_file or dcos.toml)"
        elif status == 409:
            hint = "The app is locked by a running deployment; retry with marathon.force enabled"
        return ClusterApiError(operation, str(error), status=status, recovery_hint=hint)

    if isinstance(error, requests.RequestException):
        return ClusterApiError(
            operation,
            str(error),
            recovery_hint="Check that marathon.api_endpoint is reachable",
        )

    return ClusterApiError(operation, f"{type(error).__name__}: {error}")


def format_error_for_display(error: Exception) -> tuple[str, Optional[str]]:
    """
    Format an exception for user display.

    Returns:
        Tuple of (user_message, recovery_hint or None)
    """
    if isinstance(error, KubepadError):
        return error.user_message, error.recovery_hint

    error_type = type(error).__name__
    return f"{error_type}: {error}", None
