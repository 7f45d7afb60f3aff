"""
Error taxonomy for the access engine.

Services raise these; app.main turns them into JSON responses.
Decision queries never raise for a plain "no", they return False.
"""
from typing import Any, Dict, Optional

from fastapi import status


class AccessEngineError(Exception):
    """Base class for every error surfaced by the access engine."""

    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.kind, "detail": self.detail}
        body.update(self.extra)
        return body


class NotFoundError(AccessEngineError):
    """Referenced profile, organization, plan, subscription, user or item does not exist."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(AccessEngineError):
    """Caller is authenticated but lacks the required grant."""

    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(AccessEngineError):
    """Malformed input: unknown enum value, inconsistent booleans, cyclic parent."""

    kind = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class QuotaExceededError(ForbiddenError):
    """A plan limit would be exceeded. Carries the counts for display."""

    kind = "quota_exceeded"

    def __init__(
        self,
        resource_kind: str,
        current_count: int,
        limit: Optional[int],
        requested: int = 1,
    ):
        super().__init__(
            f"Quota exceeded for {resource_kind}: {current_count}/{limit} used, {requested} requested",
            resource_kind=resource_kind,
            current_count=current_count,
            limit=limit,
            requested=requested,
        )
        self.resource_kind = resource_kind
        self.current_count = current_count
        self.limit = limit
        self.requested = requested
