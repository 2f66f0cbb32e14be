"""
Logging utilities for staking operations.

Structured events for RPC calls, deposits and position scans, with
timing attached so slow endpoints show up in the logs.
"""

import time
import functools
from typing import Dict, Any, Optional, Callable
from contextlib import contextmanager
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class OperationType(Enum):
    """Types of staking operations for logging."""
    STAKE_DEPOSIT = "stake_deposit"
    NONCE_PROBE = "nonce_probe"
    BALANCE_QUERY = "balance_query"
    POSITION_SCAN = "position_scan"
    ACCOUNT_INSPECTION = "account_inspection"
    TRANSACTION = "transaction"
    HEALTH_CHECK = "health_check"


class LogLevel(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _categorize_performance(execution_time: float) -> str:
    if execution_time < 0.1:
        return "excellent"
    elif execution_time < 0.5:
        return "good"
    elif execution_time < 2.0:
        return "acceptable"
    elif execution_time < 10.0:
        return "slow"
    else:
        return "very_slow"


def log_staking_operation(
    operation_type: OperationType,
    operation_name: str,
    level: LogLevel = LogLevel.INFO,
    include_performance: bool = True
):
    """
    Decorator that logs start, completion and failure of a staking operation.

    Exceptions are logged and re-raised unchanged.

    Args:
        operation_type: Type of staking operation
        operation_name: Name of the operation
        level: Log level for start/completion events
        include_performance: Whether to include timing
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            operation_id = f"{operation_name}_{int(start_time)}"
            base_data = {
                "operation_id": operation_id,
                "operation_type": operation_type.value,
                "operation_name": operation_name,
            }

            getattr(logger, level.value)(
                "Staking operation started", status="started", **base_data
            )

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                error_data = dict(
                    base_data,
                    status="failed",
                    success=False,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                if include_performance:
                    execution_time = time.time() - start_time
                    error_data["execution_time_seconds"] = execution_time
                    error_data["performance_category"] = _categorize_performance(execution_time)

                logger.error("Staking operation failed", **error_data)
                raise

            success_data = dict(base_data, status="completed", success=True)
            if include_performance:
                execution_time = time.time() - start_time
                success_data["execution_time_seconds"] = execution_time
                success_data["performance_category"] = _categorize_performance(execution_time)

            getattr(logger, level.value)("Staking operation completed", **success_data)
            return result

        return wrapper

    return decorator


@contextmanager
def log_operation_context(
    operation_type: OperationType,
    operation_name: str,
    context_data: Optional[Dict[str, Any]] = None,
    level: LogLevel = LogLevel.INFO
):
    """
    Context manager for logging a block of staking work.

    Yields the operation id.
    """
    start_time = time.time()
    operation_id = f"{operation_name}_{int(start_time)}"

    log_data = {
        "operation_id": operation_id,
        "operation_type": operation_type.value,
        "operation_name": operation_name,
    }
    if context_data:
        log_data.update(context_data)

    getattr(logger, level.value)("Staking operation context started", status="started", **log_data)

    try:
        yield operation_id
    except Exception as e:
        execution_time = time.time() - start_time
        logger.error(
            "Staking operation context failed",
            status="failed",
            success=False,
            error_type=type(e).__name__,
            error_message=str(e),
            execution_time_seconds=execution_time,
            performance_category=_categorize_performance(execution_time),
            **log_data
        )
        raise

    execution_time = time.time() - start_time
    getattr(logger, level.value)(
        "Staking operation context completed",
        status="completed",
        success=True,
        execution_time_seconds=execution_time,
        performance_category=_categorize_performance(execution_time),
        **log_data
    )


def log_stake_event(
    event_type: str,
    owner: str,
    nonce: Optional[int] = None,
    receipt_address: Optional[str] = None,
    additional_data: Optional[Dict[str, Any]] = None,
    level: LogLevel = LogLevel.INFO
):
    """
    Log a stake position event (prepared, submitted, confirmed, failed).
    """
    log_data = {
        "event_type": "stake_event",
        "stake_event_type": event_type,
        "owner": owner,
        "timestamp": time.time()
    }

    if nonce is not None:
        log_data["nonce"] = nonce
    if receipt_address:
        log_data["receipt_address"] = receipt_address
    if additional_data:
        log_data.update(additional_data)

    getattr(logger, level.value)("Stake event", **log_data)


def log_rpc_metrics(
    endpoint_name: str,
    method: str,
    response_time: float,
    success: bool,
    error_message: Optional[str] = None
):
    """
    Log RPC call metrics.

    Args:
        endpoint_name: Name of the RPC endpoint
        method: RPC method called
        response_time: Response time in seconds
        success: Whether the call was successful
        error_message: Error message if failed
    """
    log_data = {
        "event_type": "rpc_metrics",
        "endpoint_name": endpoint_name,
        "rpc_method": method,
        "response_time_seconds": response_time,
        "success": success,
        "performance_category": _categorize_performance(response_time),
        "timestamp": time.time()
    }

    if error_message:
        log_data["error_message"] = error_message

    if success:
        logger.debug("RPC call metrics", **log_data)
    else:
        logger.warning("RPC call failed", **log_data)


def create_operation_logger(component_name: str) -> structlog.BoundLogger:
    """Create a logger bound to a component name."""
    return logger.bind(component=component_name)
