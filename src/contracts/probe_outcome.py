from enum import Enum
from typing import Optional

from pydantic import BaseModel


class OutcomeKind(str, Enum):
    """
    Classification of a probe, used as the ``status`` metric label.
    """

    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    TRANSPORT_FAILURE = "error"


class ErrorType(str, Enum):
    """
    Finer-grained reason for a transport failure, used as the ``error_type`` metric label.
    """

    REQUEST_CREATION = "request_creation"
    REQUEST_FAILED = "request_failed"


def classify_status(status_code: int) -> OutcomeKind:
    if status_code >= 500:
        return OutcomeKind.SERVER_ERROR
    if status_code >= 400:
        return OutcomeKind.CLIENT_ERROR
    return OutcomeKind.SUCCESS


class ProbeOutcome(BaseModel):
    """
    Data model representing the result of one probe (including its retries).
    """

    kind: OutcomeKind
    status_code: Optional[int] = None
    duration: float = 0.0
    error_type: Optional[ErrorType] = None
    error: Optional[str] = None
    attempts: int = 1

    @classmethod
    def from_status(cls, status_code: int, duration: float, attempts: int = 1):
        return cls(
            kind=classify_status(status_code),
            status_code=status_code,
            duration=duration,
            attempts=attempts,
        )

    @classmethod
    def transport_failure(
        cls,
        error_type: ErrorType,
        duration: float,
        error: Optional[str] = None,
        attempts: int = 1,
    ):
        return cls(
            kind=OutcomeKind.TRANSPORT_FAILURE,
            duration=duration,
            error_type=error_type,
            error=error,
            attempts=attempts,
        )

    @property
    def label(self) -> str:
        return self.kind.value

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS
