from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class FailureReason(str, Enum):
    CONVERSION_FAILED = "conversion_failed"
    ENGINE_UNAVAILABLE = "engine_unavailable"
    STAGING_VIOLATION = "staging_violation"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class Success(Generic[T]):
    payload: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """A conversion that did not produce a payload.

    ``exit_code`` is the engine's process status, or None when the engine
    never ran (it could not be loaded, or staging was misused).
    """

    exit_code: int | None
    message: str
    reason: FailureReason = FailureReason.CONVERSION_FAILED
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False


ConversionOutcome = Union[Success[T], Failure]
