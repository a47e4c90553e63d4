"""Shared service error definitions."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ServiceError(Exception):
    code: str
    message: str
    status_code: int = 400

    def __str__(self) -> str:  # noqa: D401 override
        return f"{self.code}: {self.message}"


class ValidationError(ServiceError):
    """Caller supplied an invalid or missing payment descriptor field."""

    __slots__ = ("field",)

    def __init__(self, message: str, field: str | None = None) -> None:
        ServiceError.__init__(self, code="ERR_VALIDATION", message=message, status_code=422)
        self.field = field


def err_bad_payload(message: str | None = None) -> ServiceError:
    return ServiceError(code="ERR_BAD_PAYLOAD", message=message or "Invalid request payload", status_code=400)


def err_not_found(message: str | None = None) -> ServiceError:
    return ServiceError(code="ERR_NOT_FOUND", message=message or "Resource not found", status_code=404)
