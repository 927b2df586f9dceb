"""
Service call decorators for correlation IDs and logging.
"""
import functools
import time
import uuid
from typing import Callable, Any, TypeVar
from logger_config import get_logger

logger = get_logger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def agcod_operation(operation: str) -> Callable[[F], F]:
    """
    Decorator for AGCOD service calls.

    Provides:
    - Request correlation IDs for logging
    - Start, completion and failure log lines with elapsed time

    Exceptions are logged and re-raised unchanged.

    Args:
        operation: AGCOD operation name, e.g. 'CreateGiftCard'

    Returns:
        Decorator for the service method
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            correlation_id = str(uuid.uuid4())
            extra = {"correlation_id": correlation_id, "operation": operation}

            logger.info(f"AGCOD {operation} invoked", extra=extra)
            started = time.monotonic()

            try:
                result = func(*args, **kwargs)
            except ValueError as e:
                # Validation errors are the caller's to fix, no traceback needed
                logger.warning(
                    f"AGCOD {operation} rejected: {str(e)}",
                    extra=extra
                )
                raise
            except Exception as e:
                logger.error(
                    f"AGCOD {operation} failed: {str(e)}",
                    extra=extra,
                    exc_info=True
                )
                raise

            elapsed_ms = (time.monotonic() - started) * 1000
            logger.info(
                f"AGCOD {operation} completed in {elapsed_ms:.0f}ms",
                extra=extra
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
