"""
Core metrics and monitoring decorators for the WhatsApp agent.

This module defines Prometheus metrics and decorators for tracking:
- Inbound message counts
- Thread-store writes by backend outcome
- Workflow processing time
- External API latency (LLM and messaging gateway)
- Error rates
"""

import time
import functools
import inspect
import logging
from typing import Optional, Callable, Union
from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)

# Ingestion metrics
INBOUND_MESSAGES = Counter(
    'inbound_messages_total',
    'Total number of inbound chat messages received',
    ['thread_type', 'sender']  # sender: 'agent' or 'user'
)

# Storage metrics
STORAGE_WRITES = Counter(
    'thread_store_writes_total',
    'Thread store writes by the backend that accepted them',
    ['operation', 'result']  # result: durable, fallback, failed
)

FALLBACK_THREADS_PENDING = Gauge(
    'fallback_threads_pending_replay',
    'Threads written to the in-memory fallback that are waiting for replay'
)

# Error metrics
ERROR_COUNT = Counter(
    'error_total',
    'Total number of errors',
    ['type', 'location']  # type: e.g., 'workflow', 'storage', 'gateway'; location: specific component
)

# Workflow metrics
WORKFLOW_PROCESSING_TIME = Histogram(
    'workflow_processing_duration_seconds',
    'Time spent executing a workflow',
    ['workflow_name'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, float("inf")]
)

# External API metrics
LLM_REQUEST_TIME = Histogram(
    'llm_request_duration_seconds',
    'Time spent waiting for LLM API',
    ['model'],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, float("inf")]
)

GATEWAY_REQUEST_TIME = Histogram(
    'gateway_request_duration_seconds',
    'Time spent waiting for the messaging gateway API',
    ['endpoint'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, float("inf")]
)


def _observe(metric: Histogram, labels: Optional[Callable], args: tuple, duration: float, func_name: str) -> None:
    if labels and args:
        # For instance methods, first arg is 'self'
        metric.labels(**labels(args[0])).observe(duration)
    else:
        metric.observe(duration)
    logger.debug(
        f"Function {func_name} execution time: {duration:.2f} seconds",
        extra={'duration': duration, 'function': func_name}
    )


def track_latency(metric: Histogram, labels: Optional[Callable] = None) -> Callable:
    """
    A decorator factory that tracks the execution time of a function using a Prometheus Histogram.

    Works for both plain functions and coroutine functions.

    Args:
        metric (Histogram): The Prometheus Histogram to record the timing in
        labels (Callable, optional): Function of `self` that returns the metric labels dictionary

    Returns:
        Callable: The decorated function
    """
    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return await func(*args, **kwargs)
                finally:
                    _observe(metric, labels, args, time.time() - start_time, func.__name__)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                _observe(metric, labels, args, time.time() - start_time, func.__name__)
        return wrapper
    return decorator


def _record_error(error_type: str, location: Union[str, Callable], args: tuple, error: Exception) -> None:
    if callable(location):
        location = location(args[0]) if args else 'unknown'
    ERROR_COUNT.labels(type=error_type, location=location).inc()
    logger.error(
        f"Error in {location} ({error_type}): {str(error)}",
        extra={
            'error_type': error_type,
            'location': location,
            'error': str(error)
        },
        exc_info=True
    )


def track_errors(error_type: str, location: Union[str, Callable]) -> Callable:
    """
    A decorator factory that counts and logs errors raised by a function, then re-raises them.

    Args:
        error_type (str): Type of error (e.g., 'workflow', 'gateway')
        location (Union[str, Callable]): Where the error occurred, or a function of `self` returning it

    Returns:
        Callable: The decorated function

    Example:
        @track_errors('workflow', lambda self: self.get_workflow_name())
        async def execute(self, context):
            ...
    """
    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    _record_error(error_type, location, args, e)
                    raise
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _record_error(error_type, location, args, e)
                raise
        return wrapper
    return decorator
