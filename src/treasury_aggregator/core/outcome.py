"""Tagged result of an aggregation, collapsed to a 200 body only at the handler boundary."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Generic, TypeVar

from treasury_aggregator.core.models import WireModel

T = TypeVar("T", bound=WireModel)


class OutcomeStatus(StrEnum):
    OK = "ok"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class Outcome(Generic[T]):
    """
    Result of an aggregation that may have degraded.

    Attributes
    ----------
    status : OutcomeStatus
        Whether every source answered, some did, or the aggregation failed
    data : T
        Best result accumulated (an empty record when failed)
    warnings : list[str]
        Sources that could not be resolved
    error : str | None
        Failure message for a failed outcome

    """

    status: OutcomeStatus
    data: T
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def ok(cls, data: T) -> "Outcome[T]":
        return cls(OutcomeStatus.OK, data)

    @classmethod
    def partial(cls, data: T, warnings: list[str]) -> "Outcome[T]":
        return cls(OutcomeStatus.PARTIAL, data, warnings=list(warnings))

    @classmethod
    def failed(cls, data: T, error: str) -> "Outcome[T]":
        return cls(OutcomeStatus.FAILED, data, error=error)

    @classmethod
    def from_warnings(cls, data: T, warnings: list[str]) -> "Outcome[T]":
        """Build an ok outcome, or a partial one when any warning was collected."""
        if warnings:
            return cls.partial(data, warnings)
        return cls.ok(data)

    @property
    def is_ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    def to_body(self) -> dict:
        """
        Collapse into the client-facing JSON body.

        Returns
        -------
        dict
            Serialised data plus ``error`` (failed) or ``warnings`` (partial)

        """
        body = self.data.to_json()
        if self.status is OutcomeStatus.FAILED:
            body["error"] = self.error or "unknown error"
        elif self.status is OutcomeStatus.PARTIAL:
            body["warnings"] = list(self.warnings)
        return body
