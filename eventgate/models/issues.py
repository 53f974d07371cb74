"""Configuration validation issues — returned as values, never raised."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class IssueCode(str, Enum):
    """Every kind of problem ``PolicySet.validate`` can report."""

    DUPLICATE_RULE_ID = "duplicate_rule_id"
    EMPTY_RULE_ID = "empty_rule_id"
    INVALID_SAMPLE_RATE = "invalid_sample_rate"
    NO_DEFAULT = "no_default"
    UNREFERENCED_GROUP = "unreferenced_group"
    UNKNOWN_GROUP = "unknown_group"
    CONFLICTING_ENVIRONMENT = "conflicting_environment"


class ValidationIssue(BaseModel):
    """One finding from a policy validation pass."""

    model_config = ConfigDict(frozen=True)

    severity: IssueSeverity
    code: IssueCode
    message: str
    rule_id: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == IssueSeverity.ERROR

    def __str__(self) -> str:
        return self.message
