"""Error taxonomy shared by services and adapters."""


class IntakeError(Exception):
    """Base class for errors surfaced to callers."""

    error_type = "intake_error"

    def __init__(self, message: str, details: dict[str, object] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(IntakeError):
    """Malformed or out-of-range input."""

    error_type = "validation_error"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NotFoundError(IntakeError):
    """A referenced catalog item, entry or day's ledger is absent."""

    error_type = "not_found"

    def __init__(self, resource: str, identifier: object):
        super().__init__(
            f"{resource} '{identifier}' not found",
            {"resource": resource, "id": str(identifier)},
        )
        self.resource = resource
        self.identifier = identifier


class DependencyError(IntakeError):
    """Catalog lookup or persistence I/O failed; the operation is safe to retry."""

    error_type = "dependency_error"

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message, {"operation": operation} if operation else None)
        self.operation = operation


class ConflictError(DependencyError):
    """A concurrent writer changed the ledger row first."""

    error_type = "conflict"
