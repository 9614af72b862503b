#!/usr/bin/env python3
"""
decorators.py
--------------------
Shared decorators for store and link graph operations.
"""
from functools import wraps
from typing import Callable
from datetime import datetime

from .logging_manager import safe_logger


def log_store_operation(operation_name: str):
    """
    Decorator to log an operation with timing and context.

    The decorated method's instance must expose a ``logger`` attribute
    (a CommonplaceLogger or None). Positional string-like arguments are
    recorded as the operation's targets.

    Args:
        operation_name: Name of the operation being logged

    Returns:
        Decorator function
    """

    def decorator(function: Callable) -> Callable:
        @wraps(function)
        def wrapper(self, *args, **kwargs):
            logger = safe_logger(getattr(self, "logger", None))
            start_time = datetime.now()
            operation_id = f"{operation_name}_{start_time.strftime('%Y%m%d_%H%M%S_%f')}"
            targets = [str(arg) for arg in args]

            logger.log_debug(
                f"Starting {operation_name}",
                {"operation_id": operation_id, "targets": targets},
            )

            try:
                result = function(self, *args, **kwargs)
            except Exception as e:
                duration = (datetime.now() - start_time).total_seconds()
                logger.log_error(
                    e,
                    {
                        "operation": operation_name,
                        "operation_id": operation_id,
                        "targets": targets,
                        "duration_seconds": duration,
                    },
                )
                raise

            duration = (datetime.now() - start_time).total_seconds()
            logger.log_operation(
                f"{operation_name}_completed",
                {
                    "operation_id": operation_id,
                    "targets": targets,
                    "duration_seconds": duration,
                    "success": True,
                },
            )
            return result

        return wrapper

    return decorator
