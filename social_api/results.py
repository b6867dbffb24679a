"""
Outcome type returned by the service layer.

Every mutating or lookup operation returns a ServiceResult that carries
either the value or a FailureReason with a short detail naming the rule
that failed. The API layer collapses failures to its documented status
codes; tests assert on the reason directly.
"""

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class FailureReason(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    STORAGE_FAULT = "storage_fault"


class ServiceResult(BaseModel, Generic[T]):
    value: Optional[T] = None
    reason: Optional[FailureReason] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def outcome(self) -> str:
        """Label used for logs and metrics: 'ok' or the failure reason."""
        return "ok" if self.ok else self.reason.value

    @classmethod
    def succeed(cls, value: T) -> "ServiceResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, reason: FailureReason, detail: Optional[str] = None) -> "ServiceResult[T]":
        return cls(reason=reason, detail=detail)
