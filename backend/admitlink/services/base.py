# backend/admitlink/services/base.py
"""
Base Service Pattern for the messaging core.

Provides common functionality for all service classes including:
- Transaction management
- Logging
- Error handling
- Performance monitoring
"""

import asyncio
from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


def _finish_measurement(
    service: Any, operation_name: str, started: float, success: bool, error_type: Any
) -> None:
    elapsed = time.time() - started

    if hasattr(service, "_record_metric"):
        service._record_metric(operation_name, elapsed, success)

    if elapsed > SLOW_OPERATION_SECONDS and hasattr(service, "logger"):
        service.logger.warning(f"Slow operation detected: {operation_name} took {elapsed:.2f}s")

    try:
        prometheus_metrics.record_service_operation(
            service=service.__class__.__name__,
            operation=operation_name,
            duration=elapsed,
            status="success" if success else "error",
            error_type=error_type,
        )
    except Exception as exc:  # metrics must never fail the operation
        logger.debug("Failed to record metrics for %s: %s", operation_name, exc)


class BaseService:
    """
    Base class for all service layer components.

    Provides common patterns for:
    - Database session management
    - Transaction handling
    - Performance monitoring
    """

    _class_metrics: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Context manager for database transactions.

        Usage:
            with self.transaction():
                self.repository.create(...)
                # commit happens on exit, rollback on error
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except SQLAlchemyError as e:
            # SQL text and parameters stay in the log, never in the client-facing message
            self.logger.error("Transaction failed: %s", e, exc_info=True)
            self.db.rollback()
            raise ServiceException("Database operation failed") from e
        except Exception as e:
            self.logger.error(f"Unexpected error in transaction: {str(e)}")
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Works for both plain and ``async def`` methods.

        Usage:
            @BaseService.measure_operation("append_message")
            def append(self, ...):
                ...
        """

        def decorator(func: F) -> F:
            if asyncio.iscoroutinefunction(func):

                @wraps(func)
                async def async_wrapper(self, *args, **kwargs):
                    started = time.time()
                    success = False
                    error_type = None
                    try:
                        result = await func(self, *args, **kwargs)
                        success = True
                        return result
                    except Exception as e:
                        error_type = type(e).__name__
                        raise
                    finally:
                        _finish_measurement(self, operation_name, started, success, error_type)

                return cast(F, async_wrapper)

            @wraps(func)
            def wrapper(self, *args, **kwargs):
                started = time.time()
                success = False
                error_type = None
                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    _finish_measurement(self, operation_name, started, success, error_type)

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with structured context."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        metrics = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
        data = metrics.setdefault(
            operation,
            {
                "count": 0,
                "total_time": 0.0,
                "success_count": 0,
                "failure_count": 0,
                "min_time": float("inf"),
                "max_time": 0.0,
            },
        )
        data["count"] += 1
        data["total_time"] += elapsed
        data["min_time"] = min(data["min_time"], elapsed)
        data["max_time"] = max(data["max_time"], elapsed)
        if success:
            data["success_count"] += 1
        else:
            data["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Per-operation timing summary for this service class."""
        result: Dict[str, Any] = {}
        for operation, data in BaseService._class_metrics.get(self.__class__.__name__, {}).items():
            count = data["count"]
            if count == 0:
                continue
            result[operation] = {
                "count": count,
                "avg_time": data["total_time"] / count,
                "min_time": data["min_time"],
                "max_time": data["max_time"],
                "success_rate": data["success_count"] / count,
            }
        return result
