"""
Domain Exceptions
=================

Error conditions raised by the repositories and domain services.

Repositories raise NotFound and DuplicateKey; services add
ValidationFailed and IllegalTransition and let repository errors through.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

class DomainException(Exception):
    """Base exception for all domain-related errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

class NotFound(DomainException):
    """Raised when an entity (own or referenced) does not exist"""

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(
            f"{entity} with ID {identifier} not found",
            {"entity": entity, "id": str(identifier)}
        )

@dataclass
class ValidationIssue:
    field: str
    message: str

    def to_dict(self):
        return {"field": self.field, "message": self.message}

class ValidationFailed(DomainException):
    """Raised with every violated field and business rule at once"""

    def __init__(self, entity: str, issues: List[ValidationIssue]):
        self.entity = entity
        self.issues = list(issues)
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in self.issues)
        super().__init__(
            f"{entity} validation failed: {summary}",
            {"entity": entity, "errors": [issue.to_dict() for issue in self.issues]}
        )

    @property
    def fields(self) -> List[str]:
        return [issue.field for issue in self.issues]

class DuplicateKey(DomainException):
    """Raised when a uniqueness constraint would be violated"""

    def __init__(self, entity: str, field: str, value: Any):
        self.entity = entity
        self.field = field
        self.value = value
        super().__init__(
            f"{entity} with {field} '{value}' already exists",
            {"entity": entity, "field": field, "value": value}
        )

class IllegalTransition(DomainException):
    """Raised when a status change is not allowed from the current status"""

    def __init__(self, entity: str, identifier: Any, current: str, target: str, reason: str):
        self.entity = entity
        self.identifier = identifier
        self.current = current
        self.target = target
        self.reason = reason
        super().__init__(
            f"Cannot move {entity} {identifier} from '{current}' to '{target}': {reason}",
            {
                "entity": entity,
                "id": str(identifier),
                "current_status": current,
                "target_status": target,
            }
        )

class ConfigurationError(DomainException):
    """Raised when the local user profile cannot be set up"""
    pass
