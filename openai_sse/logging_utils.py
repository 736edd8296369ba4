"""
Centralized logging and error handling utilities.

This module provides decorators and helper functions to standardize logging
and error handling across the REST and streaming layers.

Features:
- Structured logging with contextual information
- Error classification for API and streaming failures
- Decorator that converts foreign exceptions into APIError
- Performance timing for one-shot operations
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ParamSpec, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from .llm.exceptions import (
    APIError,
    DecodeError,
    OpenAIError,
    StreamCancelledError,
    StreamError,
    TransportError,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Type variables for generic decorators
P = ParamSpec("P")
T = TypeVar("T")
AsyncCallable = Callable[P, Awaitable[T]]

logger = structlog.get_logger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Set the stdlib root level that structlog's level filter honours."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown logging level '{level}'")
    logging.basicConfig(level=numeric_level, format="%(message)s")
    logging.getLogger().setLevel(numeric_level)


class ErrorHandler:
    """Centralized error classification with structured logging."""

    @staticmethod
    def classify_error(error: BaseException) -> str:
        """
        Classify an error into a logging/reporting category.

        Args:
            error: The exception to classify

        Returns:
            Error category string
        """
        if isinstance(error, APIError):
            return error.category
        if isinstance(error, DecodeError):
            return "decode_error"
        if isinstance(error, StreamCancelledError):
            return "cancelled"
        if isinstance(error, TransportError):
            if error.status_code is not None:
                return "http_status_error"
            return "connection_error"
        if isinstance(error, StreamError):
            return "stream_error"
        if isinstance(error, httpx.TimeoutException | TimeoutError):
            return "timeout_error"
        if isinstance(error, httpx.HTTPStatusError):
            return "http_status_error"
        if isinstance(error, FileNotFoundError | IsADirectoryError):
            return "file_error"
        if isinstance(error, httpx.TransportError | ConnectionError | OSError):
            return "connection_error"
        if isinstance(error, ValidationError):
            return "validation_error"
        if isinstance(error, ValueError | TypeError):
            return "parameter_error"
        return "unknown_error"

    @staticmethod
    def create_api_error(
        error: Exception,
        operation: str,
        context: dict[str, Any] | None = None,
        custom_message: str | None = None,
    ) -> APIError:
        """
        Create a standardized APIError with structured logging.

        Args:
            error: Original exception
            operation: Description of the operation that failed
            context: Additional context for logging and error data
            custom_message: Override the default error message

        Returns:
            APIError carrying status code and response body when available
        """
        error_category = ErrorHandler.classify_error(error)
        context = context or {}

        status_code: int | None = None
        response_data: dict[str, Any] = {}
        if isinstance(error, httpx.HTTPStatusError):
            status_code = error.response.status_code
            try:
                body = error.response.json()
            except ValueError:
                body = {"body": error.response.text}
            response_data = body if isinstance(body, dict) else {"body": body}
        elif isinstance(error, OpenAIError):
            status_code = error.status_code
            response_data = error.response_data

        message = custom_message or f"{operation} failed: {error!s}"

        logger.error(
            "Operation failed",
            operation=operation,
            error_type=type(error).__name__,
            error_category=error_category,
            status_code=status_code,
            error_message=str(error),
            **context,
        )

        return APIError(
            message,
            operation=operation,
            category=error_category,
            status_code=status_code,
            response_data=response_data,
        )


def log_operation(
    operation: str,
    *,
    log_args: bool = False,
    log_result: bool = False,
    log_timing: bool = True,
    context: dict[str, Any] | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for logging async operations with structured context.

    Args:
        operation: Description of the operation being performed
        log_args: Whether to log function arguments
        log_result: Whether to log function result
        log_timing: Whether to log execution timing
        context: Additional context to include in logs

    Returns:
        Decorated function with logging
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = logger.bind(
                operation=operation,
                function=func.__name__,
                **(context or {}),
            )

            log_data = {}
            if log_args:
                log_data.update({
                    "args": args[1:] if args else [],  # Skip 'self' if present
                    "kwargs": kwargs,
                })

            operation_logger.debug("Operation started", **log_data)

            start_time = time.perf_counter() if log_timing else None

            try:
                result = await func(*args, **kwargs)

                end_log_data: dict[str, Any] = {}
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    end_log_data["duration_ms"] = duration
                if log_result:
                    end_log_data["result"] = result

                operation_logger.info(
                    "Operation completed successfully", **end_log_data
                )
                return result

            except Exception as e:
                error_log_data: dict[str, Any] = {
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                }
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    error_log_data["duration_ms"] = duration

                operation_logger.error("Operation failed", **error_log_data)
                raise

        return wrapper
    return decorator


def handle_api_errors(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    custom_message: str | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for standardized REST error handling.

    APIError instances pass through untouched; anything else is converted
    into an APIError carrying the operation name and error category.
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except APIError:
                raise
            except Exception as e:
                raise ErrorHandler.create_api_error(
                    e, operation, context, custom_message
                ) from e

        return wrapper
    return decorator


def api_operation(operation: str, **kwargs: Any) -> Callable:
    """Combined logging and API error handling decorator."""
    log_kwargs = {
        k: v for k, v in kwargs.items()
        if k in ["log_args", "log_result", "log_timing", "context"]
    }
    error_kwargs = {
        k: v for k, v in kwargs.items()
        if k in ["context", "custom_message"]
    }

    def decorator(func):
        return handle_api_errors(operation, **error_kwargs)(
            log_operation(operation, **log_kwargs)(func)
        )
    return decorator


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
):
    """
    Async context manager for operation logging.

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(
        operation=operation,
        **(context or {}),
    )

    operation_logger.debug("Operation started")
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger

        log_data: dict[str, Any] = {}
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            log_data["duration_ms"] = duration

        operation_logger.info("Operation completed successfully", **log_data)

    except Exception as e:
        error_log_data: dict[str, Any] = {
            "error_type": type(e).__name__,
            "error_message": str(e),
        }
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            error_log_data["duration_ms"] = duration

        operation_logger.error("Operation failed", **error_log_data)
        raise


class ContextualLogger:
    """Logger that maintains context across related operations."""

    def __init__(self, base_context: dict[str, Any] | None = None):
        self.base_context = base_context or {}
        self._logger = logger.bind(**self.base_context)

    def bind(self, **context: Any) -> ContextualLogger:
        """Create a new logger with additional context."""
        merged_context = {**self.base_context, **context}
        return ContextualLogger(merged_context)

    def info(self, message: str, **context: Any) -> None:
        self._logger.info(message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._logger.warning(message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._logger.error(message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, **context)
