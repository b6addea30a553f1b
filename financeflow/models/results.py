"""
Result Models

Validation and write operations report their outcome as values rather
than exceptions. Callers branch on `success` / `is_valid` instead of
wrapping every write in try/except.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of validating a draft before it is written.

    Errors block the write. Warnings are shown but do not block.
    """

    validated_at: datetime = Field(default_factory=datetime.now)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    @property
    def first_error(self) -> Optional[str]:
        """Message of the first blocking issue, for single-line form errors."""
        errors = self.errors
        return errors[0].message if errors else None


class OperationResult(BaseModel):
    """
    Outcome of a write through the session.

    success=True  -> entity_id is set (for creates) and local state is patched.
    success=False -> reason explains why; local state is unchanged.
    """

    success: bool
    entity_id: Optional[str] = None
    reason: Optional[str] = None
    validation: Optional[ValidationResult] = None

    @classmethod
    def ok(cls, entity_id: Optional[str] = None) -> "OperationResult":
        return cls(success=True, entity_id=entity_id)

    @classmethod
    def failed(
        cls,
        reason: str,
        validation: Optional[ValidationResult] = None,
    ) -> "OperationResult":
        return cls(success=False, reason=reason, validation=validation)

    @classmethod
    def invalid(cls, validation: ValidationResult) -> "OperationResult":
        return cls(
            success=False,
            reason=validation.first_error or "Validation failed",
            validation=validation,
        )
