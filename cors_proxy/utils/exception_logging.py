"""
Utility functions for exception logging that must never fail the request
being served.
"""

import logging


def _safe_str(obj) -> str:
    """
    Safely convert an object to string, handling cases where __str__ or __repr__ might fail.

    Args:
        obj: The object to convert to string

    Returns:
        A string representation of the object, falling back to safe alternatives
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def describe_exception(exception: BaseException) -> str:
    """
    Short "Type: message" description. Some httpx errors stringify to an empty
    message, in which case only the type name is returned.
    """
    if exception is None:
        return "None"
    message = _safe_str(exception)
    name = type(exception).__name__
    return f"{name}: {message}" if message else name


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: BaseException,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with its type, message and traceback, including the
    chained cause when there is one. Never raises.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Forwarder]", "[Config]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        message = f"{safe_prefix} Exception: {describe_exception(exception)}"
        cause = getattr(exception, "__cause__", None)
        if cause is not None:
            message += f" (caused by {describe_exception(cause)})"
        logger.log(
            level, message, exc_info=exception if exception is not None else False
        )
    except Exception:
        # If logging with exc_info fails, try a minimal message
        try:
            logger.log(level, f"{prefix} Exception (logging failed)")
        except Exception:
            pass
