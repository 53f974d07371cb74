"""Policy guard — collect-all validation with an optional hard stop.

Validation never raises on its own: ``PolicySet.validate`` and
``check_rule_data`` return every problem they find, so a caller can see the
whole picture before deciding whether to proceed.  Embedders that want a
fail-fast startup call ``enforce_policy_constraints`` once after building
their policy set; it raises ``PolicyConfigurationError`` listing every
error-severity issue at once.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from eventgate.core.policy_set import PolicySet
from eventgate.models.issues import IssueSeverity, ValidationIssue
from eventgate.models.rules import Rule

logger = logging.getLogger(__name__)


class PolicyConfigurationError(RuntimeError):
    """Raised when a policy set has error-severity validation issues.

    Carries the full issue list on ``issues``.
    """

    def __init__(self, message: str, issues: list[ValidationIssue]) -> None:
        super().__init__(message)
        self.issues = issues


def enforce_policy_constraints(policy_set: PolicySet) -> list[ValidationIssue]:
    """Validate *policy_set*, logging warnings and raising on errors.

    Returns
    -------
    list[ValidationIssue]
        The warning-level issues, when there are no errors.

    Raises
    ------
    PolicyConfigurationError
        If any error-severity issue was found.
    """
    issues = policy_set.validate()
    errors = [i for i in issues if i.severity == IssueSeverity.ERROR]
    warnings = [i for i in issues if i.severity == IssueSeverity.WARNING]

    for warning in warnings:
        logger.warning("Policy warning [%s]: %s", warning.code.value, warning.message)

    if errors:
        msg = "Policy validation failed.\n" + "\n".join(
            f"  - {e.message}" for e in errors
        )
        logger.error(msg)
        raise PolicyConfigurationError(msg, errors)

    logger.info("Policy validation passed (%d warnings).", len(warnings))
    return warnings


def check_rule_data(data: Mapping[str, Any]) -> list[str]:
    """Try to build a ``Rule`` from *data*; return every problem found.

    An empty list means the data is a valid rule.
    """
    try:
        Rule.model_validate(dict(data))
    except ValidationError as exc:
        problems: list[str] = []
        for err in exc.errors():
            location = ".".join(str(part) for part in err["loc"]) or "rule"
            problems.append(f"{location}: {err['msg']}")
        return problems
    return []
