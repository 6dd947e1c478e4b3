"""
Domain Errors

Error types raised by business modules. Each carries a stable code that
the HTTP layer maps to a status code.
"""

from typing import Any, Dict, List, Optional


# Common domain error codes
NOT_FOUND = "NOT_FOUND"
ALREADY_EXISTS = "ALREADY_EXISTS"
INVALID_INPUT = "INVALID_INPUT"
VALIDATION_FAILED = "VALIDATION_FAILED"
UNAUTHORIZED = "UNAUTHORIZED"
FORBIDDEN = "FORBIDDEN"
CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"
INVALID_STATE = "INVALID_STATE"
BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"


class DomainError(Exception):
    """A domain failure with a machine-readable code and optional field."""

    def __init__(self, code: str, message: str, field: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        self.code = code
        self.message = message
        self.field = field
        self.cause = cause
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.field:
            return f"[{self.code}] {self.message} (field: {self.field})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "message": self.message}
        if self.field:
            data["field"] = self.field
        return data


class NotFoundError(DomainError):
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(NOT_FOUND, f"{resource} not found: {identifier}")


class ValidationError(DomainError):
    """Validation failure for a single field."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.value = value
        super().__init__(VALIDATION_FAILED, message, field=field)

    def __str__(self) -> str:
        return f"validation failed for field '{self.field}': {self.message}"


class ValidationErrors(DomainError):
    """Several field validation failures reported together."""

    def __init__(self, errors: Optional[List[ValidationError]] = None):
        self.errors: List[ValidationError] = list(errors or [])
        field = self.errors[0].field if len(self.errors) == 1 else None
        super().__init__(VALIDATION_FAILED, self._summary(), field=field)

    def _summary(self) -> str:
        if not self.errors:
            return "no validation errors"
        if len(self.errors) == 1:
            return self.errors[0].message
        return f"validation failed for {len(self.errors)} fields"

    def add(self, field: str, message: str, value: Any = None) -> None:
        self.errors.append(ValidationError(field, message, value))
        self.message = self._summary()
        self.field = self.errors[0].field if len(self.errors) == 1 else None

    def append(self, error: ValidationError) -> None:
        self.add(error.field, error.message, error.value)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def __str__(self) -> str:
        if len(self.errors) == 1:
            return str(self.errors[0])
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if len(self.errors) > 1:
            data["details"] = [error.to_dict() for error in self.errors]
        return data


class BusinessRuleError(DomainError):
    """A business rule was violated."""

    def __init__(self, rule: str, message: str, context: Optional[Dict[str, Any]] = None):
        self.rule = rule
        self.context = dict(context or {})
        super().__init__(BUSINESS_RULE_VIOLATION, message)

    def __str__(self) -> str:
        return f"business rule violation: {self.rule} - {self.message}"
