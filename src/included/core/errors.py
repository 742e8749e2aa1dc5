# src/included/core/errors.py

"""
Error taxonomy.

- ValidationError: caller-facing, raised synchronously, never retried.
- SummarizationError: ends a task as failed (after the client's own retries).
- DeliveryError: ends a notification as failed (after the sweeper's retries).
- RoutingError: inbound message rejected before any task is created.
- StoreError: the persistence layer could not complete an operation.
"""

from __future__ import annotations


class IncludedError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(IncludedError):
    pass


class SummarizationError(IncludedError):
    pass


class DeliveryError(IncludedError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RoutingError(IncludedError):
    def __init__(self, message: str, *, address: str | None = None) -> None:
        super().__init__(message)
        self.address = address


class StoreError(IncludedError):
    pass
